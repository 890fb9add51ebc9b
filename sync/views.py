from asgiref.sync import async_to_sync
from drf_yasg.utils import swagger_auto_schema
from rest_framework import permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from .service import get_catalog_service


@api_view(['GET'])
@permission_classes([permissions.IsAdminUser])
def offline_queue(request):
    """Writes waiting for the backing store, oldest first"""
    entries = get_catalog_service().queue.entries()
    return Response({
        'count': len(entries),
        'entries': [
            {
                'id': entry.id,
                'op': entry.payload.get('op'),
                'hotel_id': entry.payload.get('hotel_id'),
                'branch_id': entry.payload.get('branch_id'),
                'enqueued_at': entry.enqueued_at,
                'attempts': entry.attempts,
                'last_error': entry.last_error,
            }
            for entry in entries
        ],
    })


@swagger_auto_schema(
    method='post',
    operation_description="Replay queued writes. Failed writes stay queued; a write may be applied twice.",
    responses={200: 'Replay report'}
)
@api_view(['POST'])
@permission_classes([permissions.IsAdminUser])
def replay_offline_queue(request):
    report = async_to_sync(get_catalog_service().replay_offline_writes)()
    return Response(report.as_dict())
