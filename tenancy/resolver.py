"""
Tenant resolution: which (hotel, branch) a request belongs to.

Branches are plain mappings as returned by the catalog backends:
``id, hotel_id, hotel_name, name, slug, url_path, admin_url, user_url``.
"""
import logging
from dataclasses import dataclass, field, replace

from .exceptions import TenantMismatch
from .identifiers import normalize, slugify_name

logger = logging.getLogger(__name__)

SESSION_HOTEL_KEY = 'selected_hotel_id'
SESSION_BRANCH_KEY = 'selected_branch_id'


def _text(value):
    return '' if value is None else str(value)


@dataclass(frozen=True)
class TenantContext:
    """The active (hotel, branch). An empty branch_id means hotel-only."""
    hotel_id: str
    branch_id: str = ''

    @property
    def is_hotel_only(self):
        return bool(self.hotel_id) and not self.branch_id

    def admits(self, record, check_branch=True):
        """True when a fetched record belongs to this tenant."""
        if _text(record.get('hotel_id')) != _text(self.hotel_id):
            return False
        if check_branch and self.branch_id:
            return _text(record.get('branch_id')) == _text(self.branch_id)
        return True

    def switch_branch(self, branch):
        if _text(branch.get('hotel_id')) != _text(self.hotel_id):
            raise TenantMismatch(
                f"Branch {branch.get('id')} belongs to hotel {branch.get('hotel_id')}, not {self.hotel_id}"
            )
        return replace(self, branch_id=_text(branch.get('id')))


@dataclass(frozen=True)
class Selection:
    hotel_id: str = ''
    branch_id: str = ''
    branch: dict = None
    matched_via_routing: bool = False
    page_kind: str = None
    selectable: tuple = field(default_factory=tuple)
    ambiguous: bool = False

    @property
    def is_hotel_only(self):
        return bool(self.hotel_id) and not self.branch_id

    def to_context(self):
        if not self.hotel_id:
            return None
        return TenantContext(hotel_id=self.hotel_id, branch_id=self.branch_id)


def branch_matches(branch, branch_key):
    """Match a branch by id, slug or the last segment of its url_path."""
    if not branch or not branch_key:
        return False
    if normalize(branch.get('id')) == branch_key or normalize(branch.get('slug')) == branch_key:
        return True
    url_path = normalize(branch.get('url_path'))
    return bool(url_path) and url_path.rstrip('/').endswith('/' + branch_key)


def hotel_matches(branch, hotel_key, is_primary_format):
    """Primary URLs name the hotel; legacy URLs use its id or name slug."""
    if not branch or not hotel_key:
        return False
    hotel_name = branch.get('hotel_name')
    if hotel_name and hotel_key in (slugify_name(hotel_name), normalize(hotel_name)):
        return True
    if is_primary_format:
        return False
    return normalize(branch.get('hotel_id')) == hotel_key


def _picked(branch, matched_via_routing, page_kind):
    return Selection(
        hotel_id=_text(branch.get('hotel_id')),
        branch_id=_text(branch.get('id')),
        branch=branch,
        matched_via_routing=matched_via_routing,
        page_kind=page_kind,
        selectable=(branch,),
    )


def _by_id(branches, branch_id):
    if not branch_id:
        return None
    for branch in branches:
        if _text(branch.get('id')) == _text(branch_id):
            return branch
    return None


def _single_hotel(branches):
    return len({_text(branch.get('hotel_id')) for branch in branches}) == 1


def resolve_selection(branches, keys, fallback_branch_id='', fallback_hotel_id=''):
    """
    Pick the active (hotel, branch) from a branch list and parsed location keys.

    First match wins:
      1. hotel + branch keys   -> the branch matching both
      2. hotel key only        -> hotel-only selection (empty branch_id)
      3. branch key only       -> the branch matching it, unless several hotels match
      4. no keys               -> fallback_branch_id, else the first branch
      5. empty list            -> the raw fallbacks

    When the location carried keys that did not resolve, no arbitrary branch is
    chosen: only an exact fallback id (inside the matched hotel, if any) may
    still select, otherwise the result is hotel-only or empty.
    """
    branches = list(branches or [])
    page_kind = keys.page_kind
    if not branches:
        return Selection(hotel_id=_text(fallback_hotel_id), branch_id=_text(fallback_branch_id), page_kind=page_kind)

    hotel_key, branch_key = keys.hotel_key, keys.branch_key
    hotel_branches = []
    if hotel_key:
        hotel_branches = [b for b in branches if hotel_matches(b, hotel_key, keys.is_primary_format)]
        if hotel_branches and not _single_hotel(hotel_branches):
            logger.warning(f"Hotel key '{hotel_key}' matches more than one hotel; refusing to select")
            return Selection(page_kind=page_kind, ambiguous=True)

    if hotel_key and branch_key:
        for branch in hotel_branches:
            if branch_matches(branch, branch_key):
                return _picked(branch, True, page_kind)

    if hotel_key and not branch_key and hotel_branches:
        return Selection(
            hotel_id=_text(hotel_branches[0].get('hotel_id')),
            matched_via_routing=True,
            page_kind=page_kind,
            selectable=tuple(hotel_branches),
        )

    ambiguous = False
    if branch_key and not hotel_key:
        matched = [b for b in branches if branch_matches(b, branch_key)]
        if matched and _single_hotel(matched):
            return _picked(matched[0], True, page_kind)
        if matched:
            ambiguous = True
            logger.warning(f"Branch key '{branch_key}' matches branches in several hotels; refusing to select")

    if not keys.has_keys:
        fallback = _by_id(branches, fallback_branch_id)
        return _picked(fallback or branches[0], False, page_kind)

    # Routing keys were present but did not resolve
    candidates = hotel_branches if hotel_key else branches
    fallback = _by_id(candidates, fallback_branch_id)
    if fallback is not None:
        return replace(_picked(fallback, False, page_kind), ambiguous=ambiguous)
    if hotel_branches:
        logger.warning(f"Branch key '{branch_key}' not found under hotel '{hotel_key}'")
        return Selection(
            hotel_id=_text(hotel_branches[0].get('hotel_id')),
            page_kind=page_kind,
            selectable=tuple(hotel_branches),
            ambiguous=ambiguous,
        )
    logger.warning(f"Location keys hotel={hotel_key!r} branch={branch_key!r} match no branch")
    return Selection(page_kind=page_kind, ambiguous=ambiguous)


def scope_branches(branches, hotel_id):
    """Only the branches of hotel_id. Re-applied at every fetch boundary."""
    if not hotel_id:
        return list(branches or [])
    return [b for b in branches or [] if _text(b.get('hotel_id')) == _text(hotel_id)]


def load_context(request):
    session = getattr(request, 'session', None)
    if session is None:
        return None
    hotel_id = session.get(SESSION_HOTEL_KEY)
    if not hotel_id:
        return None
    return TenantContext(hotel_id=hotel_id, branch_id=session.get(SESSION_BRANCH_KEY) or '')


def store_context(request, context):
    if context is None:
        clear_context(request)
        return
    request.session[SESSION_HOTEL_KEY] = context.hotel_id
    request.session[SESSION_BRANCH_KEY] = context.branch_id


def clear_context(request):
    session = getattr(request, 'session', None)
    if session is None:
        return
    session.pop(SESSION_HOTEL_KEY, None)
    session.pop(SESSION_BRANCH_KEY, None)
