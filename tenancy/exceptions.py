# exceptions.py
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.core.exceptions import ValidationError
from django.db import IntegrityError
import logging
from django.conf import settings

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base class for tenant/catalog errors"""


class RemoteUnavailable(CatalogError):
    """The backing store could not be reached or did not answer in time"""


class TenantMismatch(CatalogError):
    """A record or branch does not belong to the active tenant"""


class ItemNotFound(CatalogError):
    """No such record inside the active tenant"""


class ReplayFailure(CatalogError):
    """A queued write failed again on replay"""

    def __init__(self, message, entry_id=None):
        super().__init__(message)
        self.entry_id = entry_id


STATUS_MESSAGES = {
    400: 'Validation error',
    401: 'Authentication required',
    403: 'Permission denied',
    404: 'Resource not found',
    500: 'Internal server error',
}


def error_response(message, details, status_code):
    return Response({
        'error': True,
        'message': message,
        'details': details,
        'status_code': status_code
    }, status=status_code)


def custom_exception_handler(exc, context):
    """
    Wrap every API error in {error, message, details, status_code}
    """
    response = exception_handler(exc, context)

    if response is not None:
        response.data = {
            'error': True,
            'message': STATUS_MESSAGES.get(response.status_code, 'An error occurred'),
            'details': response.data,
            'status_code': response.status_code
        }
        return response

    if isinstance(exc, RemoteUnavailable):
        logger.warning(f"Backing store unavailable: {exc}")
        return error_response('Service temporarily unavailable', {'error': str(exc)},
                              status.HTTP_503_SERVICE_UNAVAILABLE)

    if isinstance(exc, TenantMismatch):
        logger.warning(f"Tenant mismatch: {exc}")
        return error_response('Permission denied',
                              {'error': 'Resource does not belong to the active tenant'},
                              status.HTTP_403_FORBIDDEN)

    if isinstance(exc, ItemNotFound):
        return error_response('Resource not found', {'error': str(exc)}, status.HTTP_404_NOT_FOUND)

    if isinstance(exc, ValidationError):
        logger.error(f"Validation Error: {exc}")
        return error_response('Validation error', {'non_field_errors': exc.messages},
                              status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, IntegrityError):
        logger.error(f"Integrity Error: {exc}")
        return error_response('Database integrity error',
                              {'error': 'This operation violates database constraints'},
                              status.HTTP_400_BAD_REQUEST)

    logger.error(f"Unexpected Error: {exc}", exc_info=exc)
    return error_response('An unexpected error occurred',
                          {'error': str(exc)} if settings.DEBUG else {},
                          status.HTTP_500_INTERNAL_SERVER_ERROR)
