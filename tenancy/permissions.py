from rest_framework import permissions
from rest_framework.exceptions import PermissionDenied

from .models import HotelMembership


class HasTenantContext(permissions.BasePermission):
    """
    Permission to only allow requests that carry a resolved branch

    Public endpoints use it too, so a missing branch is always a 403 and
    never an authentication challenge.
    """
    message = 'No branch selected. Resolve the tenant first.'

    def has_permission(self, request, view):
        context = getattr(request, 'tenant_context', None)
        if not (context and context.hotel_id and context.branch_id):
            raise PermissionDenied(self.message)
        return True


class IsHotelAdmin(permissions.BasePermission):
    """
    Permission to only allow staff or admins of the active hotel
    """
    message = 'Only admins of this hotel can manage its catalog.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        # Staff can manage every hotel
        if request.user.is_staff:
            return True

        context = getattr(request, 'tenant_context', None)
        if not context or not context.hotel_id:
            return False

        return HotelMembership.objects.filter(
            hotel_id=context.hotel_id,
            user=request.user,
            is_active=True
        ).exists()
