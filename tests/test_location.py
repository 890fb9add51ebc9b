import pytest
from django.test import RequestFactory

from tenancy.location import (
    Location, ParsedLocation, ReportedUrlSource, RequestPathSource, location_source_for,
    parse_location, parse_request_location, path_for_branch,
)


def parse(path='/', fragment='', query=''):
    return parse_location(Location(path=path, fragment=fragment, query=query), prefix='kagzso')


def test_primary_layout_with_branch():
    assert parse('/kagzso/user/Grand-Hotel/Main') == ParsedLocation(
        hotel_key='grand-hotel', branch_key='main', page_kind='user', is_primary_format=True
    )


def test_primary_layout_hotel_only():
    parsed = parse('/kagzso/admin/grand-hotel/')
    assert parsed.hotel_key == 'grand-hotel'
    assert parsed.branch_key is None
    assert parsed.page_kind == 'admin'
    assert parsed.is_primary_format


def test_hash_path_wins_over_path():
    parsed = parse('/ignored/path', fragment='/kagzso/user/grand-hotel/main')
    assert (parsed.hotel_key, parsed.branch_key, parsed.is_primary_format) == ('grand-hotel', 'main', True)


def test_hash_without_separator_is_ignored():
    parsed = parse('/h1/b1', fragment='section-2')
    assert (parsed.hotel_key, parsed.branch_key) == ('h1', 'b1')


def test_html_document_segment_only_sets_page_kind():
    parsed = parse('/admin.html')
    assert not parsed.has_keys
    assert parsed.page_kind == 'admin'

    parsed = parse('/admin.html', fragment='/kagzso/admin/grand-hotel/main')
    assert (parsed.hotel_key, parsed.branch_key) == ('grand-hotel', 'main')


def test_legacy_layout():
    assert parse('/H1/B2') == ParsedLocation(hotel_key='h1', branch_key='b2', page_kind='user')
    parsed = parse('/H1')
    assert (parsed.hotel_key, parsed.branch_key, parsed.is_primary_format) == ('h1', None, False)


def test_other_prefix_is_legacy():
    parsed = parse('/other/user/grand-hotel')
    assert not parsed.is_primary_format
    assert (parsed.hotel_key, parsed.branch_key) == ('other', 'user')


def test_query_fallback():
    parsed = parse('/', query='hotel=Grand%20Hotel&branch=B1')
    assert (parsed.hotel_key, parsed.branch_key) == ('grand hotel', 'b1')
    assert not parsed.is_primary_format


def test_path_keys_win_over_query():
    parsed = parse('/h2', query='hotel=h1&branch=b1')
    assert (parsed.hotel_key, parsed.branch_key) == ('h2', None)


def test_root_has_no_keys():
    parsed = parse('/')
    assert not parsed.has_keys
    assert parsed.page_kind == 'user'


def test_parsing_is_repeatable():
    location = Location(path='/kagzso/user/grand-hotel/main', query='x=1')
    assert parse_location(location, prefix='kagzso') == parse_location(location, prefix='kagzso')


def test_location_from_url():
    location = Location.from_url('https://menu.example.com/index.html?hotel=h1#/kagzso/user/grand-hotel')
    assert location.path == '/index.html'
    assert location.query == 'hotel=h1'
    assert location.fragment == '/kagzso/user/grand-hotel'


def test_path_for_branch():
    branch = {'id': 'b1', 'slug': 'main'}
    assert path_for_branch('Grand Hotel', branch, 'user', prefix='kagzso') == '/kagzso/user/grand-hotel/main'
    assert path_for_branch('Grand Hotel', None, 'admin', prefix='kagzso') == '/kagzso/admin/grand-hotel'
    assert path_for_branch('Grand Hotel', {'id': 'b9'}, 'user', prefix='kagzso') == '/kagzso/user/grand-hotel/b9'


def test_path_for_branch_prefers_explicit_urls():
    branch = {'id': 'b1', 'slug': 'main', 'admin_url': 'custom/admin', 'user_url': ''}
    assert path_for_branch('Grand Hotel', branch, 'admin', prefix='kagzso') == '/custom/admin'
    assert path_for_branch('Grand Hotel', branch, 'user', prefix='kagzso') == '/kagzso/user/grand-hotel/main'


def test_path_for_branch_without_hotel():
    assert path_for_branch(None, None, prefix='kagzso') is None
    assert path_for_branch(None, None, prefix='kagzso', hotel_id='H1') == '/kagzso/user/h1'


@pytest.fixture
def rf():
    return RequestFactory()


def test_reported_url_source_is_used_when_present(rf):
    request = rf.get('/api/tenant/', {'location': 'https://menu.example.com/#/kagzso/user/grand-hotel/main'})
    assert isinstance(location_source_for(request), ReportedUrlSource)
    parsed = parse_request_location(request, prefix='kagzso', include_path=False)
    assert (parsed.hotel_key, parsed.branch_key) == ('grand-hotel', 'main')


def test_reported_url_header(rf):
    request = rf.get('/api/tenant/', HTTP_X_CLIENT_LOCATION='https://menu.example.com/h2/b3')
    parsed = parse_request_location(request, prefix='kagzso')
    assert (parsed.hotel_key, parsed.branch_key) == ('h2', 'b3')


def test_request_path_source(rf):
    request = rf.get('/kagzso/user/grand-hotel/main/')
    assert isinstance(location_source_for(request), RequestPathSource)
    parsed = parse_request_location(request, prefix='kagzso')
    assert (parsed.hotel_key, parsed.branch_key) == ('grand-hotel', 'main')


def test_api_paths_are_not_tenant_keys(rf):
    request = rf.get('/api/tenant/', {'hotel': 'h1'})
    parsed = parse_request_location(request, prefix='kagzso', include_path=False)
    assert (parsed.hotel_key, parsed.branch_key) == ('h1', None)


@pytest.mark.parametrize('path, page_kind', [
    ('/badminton-club/main', 'user'),
    ('/h1/administrators', 'user'),
    ('/admin/h1', 'admin'),
    ('/h1/Admin', 'admin'),
    ('/admin-panel.html', 'admin'),
    ('/badminton.html', 'user'),
])
def test_page_kind_needs_a_whole_admin_segment(path, page_kind):
    assert parse(path).page_kind == page_kind
