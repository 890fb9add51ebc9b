import logging

from asgiref.sync import async_to_sync
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView

from sync.service import get_catalog_service
from tenancy.permissions import HasTenantContext, IsHotelAdmin

from .pricing import ORDER_TYPE_LABELS, order_type_key, price_item
from .serializers import GstSettingsSerializer, MenuItemWriteSerializer

logger = logging.getLogger(__name__)

order_type_parameter = openapi.Parameter(
    'order_type', openapi.IN_QUERY, type=openapi.TYPE_STRING,
    enum=['Dining', 'Takeaway', 'OnlineOrder'], description="Order type to price for (default Dining)",
)


def _breakdown(item, order_type, size_key, gst):
    breakdown = price_item(item, order_type, size_key, gst)
    return breakdown.as_dict() if breakdown is not None else None


def menu_item_payload(item, order_type, gst):
    """A menu record with its price breakdown(s) for one order type"""
    payload = {key: value for key, value in item.items() if key != 'pricing_metadata'}
    metadata = item.get('pricing_metadata') or {}
    payload['source_price'] = metadata.get('source_price')
    if item.get('has_sizes'):
        payload['pricing'] = None
        payload['size_pricing'] = {
            size_key: _breakdown(item, order_type, size_key, gst) for size_key in (item.get('sizes') or {})
        }
    else:
        payload['pricing'] = _breakdown(item, order_type, None, gst)
        payload['size_pricing'] = {}
    return payload


def _write_response(result, created=False):
    if result.queued:
        return Response({
            'status': result.status,
            'queued_id': result.queued_id,
            'detail': 'Saved offline. It will be sent when the connection is back.'
        }, status=status.HTTP_202_ACCEPTED)
    return Response(
        {'status': result.status, 'item': result.record},
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
    )


@swagger_auto_schema(
    method='get',
    operation_description="Menu of the selected branch, priced for one order type",
    manual_parameters=[order_type_parameter],
)
@api_view(['GET'])
@permission_classes([HasTenantContext])
def menu_view(request):
    context = request.tenant_context
    order_type = ORDER_TYPE_LABELS[order_type_key(request.query_params.get('order_type'))]
    service = get_catalog_service()

    items = async_to_sync(service.fetch_menu)(context)
    gst = async_to_sync(service.get_gst_settings)(context)

    available_only = request.query_params.get('available') == 'true'
    if available_only:
        items = [item for item in items if item.get('availability') != 'Unavailable']

    return Response({
        'hotel_id': context.hotel_id,
        'branch_id': context.branch_id,
        'order_type': order_type,
        'gst': gst.as_dict(),
        'items': [menu_item_payload(item, order_type, gst) for item in items],
    })


class MenuItemCreateView(APIView):
    """Add a menu item to the selected branch (hotel admins)"""
    permission_classes = [IsHotelAdmin, HasTenantContext]

    @swagger_auto_schema(
        request_body=MenuItemWriteSerializer,
        responses={201: 'Saved', 202: 'Queued offline', 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = MenuItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = async_to_sync(get_catalog_service().save_menu_item)(request.tenant_context, serializer.to_record())
        return _write_response(result, created=True)


class MenuItemDetailView(APIView):
    """Update or delete a menu item of the selected branch (hotel admins)"""
    permission_classes = [IsHotelAdmin, HasTenantContext]

    @swagger_auto_schema(
        request_body=MenuItemWriteSerializer,
        responses={200: 'Saved', 202: 'Queued offline', 400: 'Bad Request', 404: 'Not in this branch'}
    )
    def put(self, request, item_id):
        serializer = MenuItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = async_to_sync(get_catalog_service().save_menu_item)(
            request.tenant_context, serializer.to_record(), item_id=item_id
        )
        return _write_response(result)

    def delete(self, request, item_id):
        result = async_to_sync(get_catalog_service().delete_menu_item)(request.tenant_context, item_id)
        if result.queued:
            return _write_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class GstSettingsView(APIView):
    """
    get: GST settings in effect for the selected branch
    put: Replace the branch GST defaults (staff may replace the global ones)
    """
    permission_classes = [IsHotelAdmin, HasTenantContext]

    def get(self, request):
        gst = async_to_sync(get_catalog_service().get_gst_settings)(request.tenant_context)
        return Response(gst.as_dict())

    @swagger_auto_schema(request_body=GstSettingsSerializer, responses={200: 'Saved', 202: 'Queued offline'})
    def put(self, request):
        serializer = GstSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        scope = serializer.scope_for(request.user)
        values = serializer.to_config(request.tenant_context.branch_id, scope)

        result = async_to_sync(get_catalog_service().save_config)(values, request.tenant_context)
        logger.info(f"GST settings updated by {request.user} ({scope})")
        if result.queued:
            return _write_response(result)
        return Response({'status': result.status, 'gst': serializer.to_settings().as_dict()})
