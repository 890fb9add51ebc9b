import logging

from asgiref.sync import async_to_sync
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from sync.service import get_catalog_service

from .exceptions import ItemNotFound
from .location import parse_request_location, path_for_branch
from .resolver import clear_context, resolve_selection, scope_branches, store_context
from .serializers import BranchSerializer, BranchSwitchSerializer, SelectionSerializer

logger = logging.getLogger(__name__)

location_parameter = openapi.Parameter(
    'location', openapi.IN_QUERY, type=openapi.TYPE_STRING,
    description="Full client URL (hash included) when the front end is statically hosted",
)


def _selectable(branches, selection):
    """Branches the caller may show: only ever those of the selected hotel."""
    if selection.selectable and selection.is_hotel_only:
        return list(selection.selectable)
    if selection.hotel_id:
        return scope_branches(branches, selection.hotel_id)
    return []


def _selection_response(request, selection, branches):
    context = {'page_kind': selection.page_kind}
    hotel_name = selection.branch.get('hotel_name') if selection.branch else None
    if hotel_name is None and selection.selectable:
        hotel_name = selection.selectable[0].get('hotel_name')

    data = SelectionSerializer(selection, context=context).data
    data['branches'] = BranchSerializer(_selectable(branches, selection), many=True, context=context).data
    data['path'] = path_for_branch(
        hotel_name, selection.branch, selection.page_kind or 'user', hotel_id=selection.hotel_id
    ) if selection.hotel_id else None
    if selection.hotel_id and not selection.branch_id:
        data['message'] = 'Select a branch of this hotel.'
    elif not selection.hotel_id:
        data['message'] = 'No branch selected.'
    return Response(data)


def resolve_tenant(request, include_path):
    """Resolve the request's location against the branch list and remember the result."""
    keys = parse_request_location(request, include_path=include_path)
    branches = async_to_sync(get_catalog_service().fetch_branches)()

    current = request.tenant_context
    candidates = branches
    if not keys.has_keys and current is not None:
        # Nothing in the URL: stay inside the hotel already selected
        candidates = scope_branches(branches, current.hotel_id)

    selection = resolve_selection(
        candidates,
        keys,
        fallback_branch_id=current.branch_id if current else '',
        fallback_hotel_id=current.hotel_id if current else '',
    )

    context = selection.to_context()
    if context is None:
        clear_context(request)
    else:
        store_context(request, context)
    logger.info(
        f"Resolved tenant hotel={selection.hotel_id!r} branch={selection.branch_id!r} "
        f"routed={selection.matched_via_routing} ambiguous={selection.ambiguous}"
    )
    return _selection_response(request, selection, branches)


@swagger_auto_schema(
    method='get',
    operation_description="Resolve hotel and branch from the client location and store them in the session",
    manual_parameters=[
        location_parameter,
        openapi.Parameter('hotel', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        openapi.Parameter('branch', openapi.IN_QUERY, type=openapi.TYPE_STRING),
    ],
)
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def tenant_view(request):
    return resolve_tenant(request, include_path=False)


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def tenant_route_view(request, page_kind, hotel, branch=None):
    """/{prefix}/{admin|user}/{hotel}[/{branch}]/ resolved from the path itself"""
    return resolve_tenant(request, include_path=True)


@swagger_auto_schema(
    method='post',
    operation_description="Switch to another branch of the active hotel",
    request_body=BranchSwitchSerializer,
    responses={200: 'Selection', 403: 'Branch belongs to another hotel', 404: 'Unknown branch'},
)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def switch_branch(request):
    serializer = BranchSwitchSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    branch_id = serializer.validated_data['branch_id']

    current = request.tenant_context
    if current is None:
        return Response(
            {"detail": "No hotel selected. Resolve the tenant first."},
            status=status.HTTP_400_BAD_REQUEST
        )

    branches = async_to_sync(get_catalog_service().fetch_branches)()
    branch = next((b for b in branches if str(b.get('id')) == str(branch_id)), None)
    if branch is None:
        raise ItemNotFound(f"Branch {branch_id} not found")

    context = current.switch_branch(branch)
    store_context(request, context)
    logger.info(f"Switched hotel {context.hotel_id} to branch {context.branch_id}")

    hotel_branches = scope_branches(branches, context.hotel_id)
    return Response({
        'hotel_id': context.hotel_id,
        'branch_id': context.branch_id,
        'branch': BranchSerializer(branch).data,
        'branches': BranchSerializer(hotel_branches, many=True).data,
    })
