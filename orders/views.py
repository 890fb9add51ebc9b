import logging
from decimal import Decimal

from asgiref.sync import async_to_sync
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from catalog.pricing import money
from sync.service import get_catalog_service
from tenancy.permissions import HasTenantContext, IsHotelAdmin

from .billing import build_order_summary, resolve_cart
from .serializers import CartSerializer, OrderCreateSerializer, SalesQuerySerializer

logger = logging.getLogger(__name__)


def _priced_cart(request, serializer):
    """Validate the cart against the branch menu and price it"""
    service = get_catalog_service()
    context = request.tenant_context
    menu = async_to_sync(service.fetch_menu)(context)
    lines = resolve_cart(serializer.validated_data['items'], menu)
    gst = async_to_sync(service.get_gst_settings)(context)
    return build_order_summary(lines, serializer.validated_data['order_type'], gst)


@swagger_auto_schema(
    method='post',
    operation_description="Price a cart for the selected branch",
    request_body=CartSerializer,
    responses={200: 'Order summary', 400: 'Bad Request'}
)
@api_view(['POST'])
@permission_classes([HasTenantContext])
def cart_summary(request):
    serializer = CartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    summary = _priced_cart(request, serializer)
    return Response(summary.as_record())


@swagger_auto_schema(
    method='post',
    operation_description="Place an order. Each line keeps the price breakdown it was sold at.",
    request_body=OrderCreateSerializer,
    responses={201: 'Recorded', 202: 'Queued offline', 400: 'Bad Request'}
)
@api_view(['POST'])
@permission_classes([HasTenantContext])
def place_order(request):
    serializer = OrderCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    summary = _priced_cart(request, serializer)

    result = async_to_sync(get_catalog_service().place_order)(
        request.tenant_context, summary, serializer.validated_data['payment_mode']
    )
    if result.queued:
        return Response({
            'status': result.status,
            'queued_id': result.queued_id,
            'summary': summary.as_record(),
            'detail': 'Order saved offline. It will be sent when the connection is back.'
        }, status=status.HTTP_202_ACCEPTED)

    logger.info(f"Order {result.record.get('id')} placed for branch {request.tenant_context.branch_id}")
    return Response({'status': result.status, 'transaction': result.record}, status=status.HTTP_201_CREATED)


def sales_totals(transactions):
    totals = {
        'total_base_amount': Decimal('0'),
        'total_cgst_amount': Decimal('0'),
        'total_sgst_amount': Decimal('0'),
        'total_gst_amount': Decimal('0'),
        'total': Decimal('0'),
    }
    for txn in transactions:
        for key in totals:
            totals[key] += money(txn.get(key))
    return {key: float(value) for key, value in totals.items()}


def _quantity(value):
    try:
        return int(value) or 1
    except (TypeError, ValueError):
        return 1


def sales_breakdown(transactions):
    """
    Item-wise and daily figures for a list of transaction records.

    Item revenue is unit price times quantity; items are ordered by revenue,
    days by date. The top item is the one sold in the largest quantity.
    """
    items = {}
    daily = {}
    revenue = Decimal('0')
    for txn in transactions:
        total = money(txn.get('total'))
        revenue += total
        day = daily.setdefault(str(txn.get('date') or ''), {'transactions': 0, 'revenue': Decimal('0')})
        day['transactions'] += 1
        day['revenue'] += total

        for line in txn.get('items') or []:
            name = line.get('item_name') if isinstance(line, dict) else None
            if not name:
                continue
            quantity = _quantity(line.get('quantity'))
            price = money(line.get('price')) or money(line.get('final_price'))
            entry = items.setdefault(name, {'quantity': 0, 'revenue': Decimal('0')})
            entry['quantity'] += quantity
            entry['revenue'] += price * quantity

    top_item = None
    for name, entry in items.items():
        if top_item is None or entry['quantity'] > items[top_item]['quantity']:
            top_item = name

    count = len(transactions)
    return {
        'items': [
            {'name': name, 'quantity': entry['quantity'], 'revenue': float(money(entry['revenue']))}
            for name, entry in sorted(items.items(), key=lambda pair: pair[1]['revenue'], reverse=True)
        ],
        'daily': [
            {'date': date, 'transactions': entry['transactions'], 'revenue': float(money(entry['revenue']))}
            for date, entry in sorted(daily.items())
        ],
        'average_order_value': float(money(revenue / count)) if count else 0.0,
        'top_item': top_item,
    }


@swagger_auto_schema(
    method='get',
    operation_description="Sales of the selected branch",
    manual_parameters=[
        openapi.Parameter('from', openapi.IN_QUERY, description="From date (YYYY-MM-DD)", type=openapi.TYPE_STRING),
        openapi.Parameter('to', openapi.IN_QUERY, description="To date (YYYY-MM-DD)", type=openapi.TYPE_STRING),
    ]
)
@api_view(['GET'])
@permission_classes([IsHotelAdmin, HasTenantContext])
def sales_view(request):
    query = SalesQuerySerializer(data={
        'date_from': request.query_params.get('from') or None,
        'date_to': request.query_params.get('to') or None,
    })
    query.is_valid(raise_exception=True)
    date_from = query.validated_data.get('date_from')
    date_to = query.validated_data.get('date_to')

    transactions = async_to_sync(get_catalog_service().fetch_sales)(
        request.tenant_context,
        date_from.isoformat() if date_from else None,
        date_to.isoformat() if date_to else None,
    )
    return Response({
        'hotel_id': request.tenant_context.hotel_id,
        'branch_id': request.tenant_context.branch_id,
        'count': len(transactions),
        'totals': sales_totals(transactions),
        'breakdown': sales_breakdown(transactions),
        'transactions': transactions,
    })
