"""
Location parsing for tenant routing.

Supported layouts, in priority order:

    #/{prefix}/{admin|user}/{hotel}[/{branch}]   hash routing (static hosting)
    /{prefix}/{admin|user}/{hotel}[/{branch}]    primary layout
    /{hotel}[/{branch}]                          legacy layout
    ?hotel=&branch=                              query fallback
"""
import logging
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from django.conf import settings

from .identifiers import normalize, slugify_name

logger = logging.getLogger(__name__)

HOTEL_PARAM = 'hotel'
BRANCH_PARAM = 'branch'
PAGE_ADMIN = 'admin'
PAGE_USER = 'user'
CLIENT_LOCATION_HEADER = 'HTTP_X_CLIENT_LOCATION'
CLIENT_LOCATION_PARAM = 'location'


@dataclass(frozen=True)
class Location:
    path: str = '/'
    fragment: str = ''
    query: str = ''

    @classmethod
    def from_url(cls, url):
        parts = urlsplit(url or '')
        return cls(path=parts.path or '/', fragment=parts.fragment, query=parts.query)


@dataclass(frozen=True)
class ParsedLocation:
    hotel_key: str = None
    branch_key: str = None
    page_kind: str = None
    is_primary_format: bool = False

    @property
    def has_keys(self):
        return bool(self.hotel_key or self.branch_key)


def default_prefix():
    return getattr(settings, 'TENANT_ROUTE_PREFIX', 'kagzso')


def _segments(path):
    return [part for part in path.strip('/').split('/') if part]


def _is_admin_segment(segment):
    segment = segment.lower()
    return segment == 'admin' or (segment.startswith('admin') and segment.endswith('.html'))


def _page_kind_for(path):
    """Admin when a whole path segment is 'admin' or an admin*.html document."""
    if any(_is_admin_segment(segment) for segment in path.split('/')):
        return PAGE_ADMIN
    return PAGE_USER


def _query_value(query, name):
    values = parse_qs(query or '').get(name)
    return normalize(values[0]) if values else None


def parse_location(location, prefix=None):
    """Extract hotel/branch keys and page kind from a Location. Never mutates or raises."""
    prefix = normalize(prefix or default_prefix())
    path = location.path or '/'
    if location.fragment and location.fragment.startswith('/'):
        path = location.fragment

    segments = _segments(path)
    document_kind = None
    # "/admin.html#/..." style paths name a page, not a hotel
    if segments and segments[0].lower().endswith('.html'):
        document_kind = PAGE_ADMIN if _is_admin_segment(segments[0]) else PAGE_USER
        segments = segments[1:]

    if len(segments) >= 3 and normalize(segments[0]) == prefix:
        return ParsedLocation(
            hotel_key=normalize(segments[2]),
            branch_key=normalize(segments[3]) if len(segments) >= 4 else None,
            page_kind=normalize(segments[1]),
            is_primary_format=True,
        )

    page_kind = document_kind or _page_kind_for(location.path or '/')
    hotel_key = normalize(segments[0]) if segments else None
    branch_key = normalize(segments[1]) if len(segments) >= 2 else None
    if hotel_key or branch_key:
        return ParsedLocation(hotel_key=hotel_key, branch_key=branch_key, page_kind=page_kind)

    return ParsedLocation(
        hotel_key=_query_value(location.query, HOTEL_PARAM),
        branch_key=_query_value(location.query, BRANCH_PARAM),
        page_kind=page_kind,
    )


def path_for_branch(hotel_name, branch=None, page_kind=PAGE_USER, prefix=None, hotel_id=None):
    """Canonical primary-layout path for a hotel (and optionally one of its branches)."""
    prefix = prefix or default_prefix()
    if branch:
        explicit = branch.get('admin_url') if page_kind == PAGE_ADMIN else branch.get('user_url')
        if explicit:
            return '/' + explicit.lstrip('/')

    hotel_segment = slugify_name(hotel_name) or normalize(hotel_id)
    if not hotel_segment:
        return None
    if branch and (branch.get('slug') or branch.get('id')):
        branch_segment = branch.get('slug') or branch.get('id')
        return f"/{prefix}/{page_kind}/{hotel_segment}/{branch_segment}"
    return f"/{prefix}/{page_kind}/{hotel_segment}"


class LocationSource:
    """Where the navigation location of a request comes from."""

    def current(self):
        raise NotImplementedError


class RequestPathSource(LocationSource):
    """The request's own path and query string.

    API endpoints are not tenant routes, so they read only the query string.
    """

    def __init__(self, request, include_path=True):
        self.request = request
        self.include_path = include_path

    def current(self):
        path = self.request.path if self.include_path else '/'
        return Location(path=path, query=self.request.META.get('QUERY_STRING', ''))


class ReportedUrlSource(LocationSource):
    """A full client URL (fragment included) reported by a statically hosted front end."""

    def __init__(self, url):
        self.url = url

    def current(self):
        return Location.from_url(self.url)


def location_source_for(request, include_path=True):
    reported = request.META.get(CLIENT_LOCATION_HEADER) or request.GET.get(CLIENT_LOCATION_PARAM)
    if reported:
        return ReportedUrlSource(reported)
    return RequestPathSource(request, include_path=include_path)


def parse_request_location(request, prefix=None, include_path=True):
    location = location_source_for(request, include_path=include_path).current()
    parsed = parse_location(location, prefix=prefix)
    logger.debug(f"Parsed location {location} -> {parsed}")
    return parsed
