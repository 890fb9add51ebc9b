"""
TTL cache for branch lists, menus, sales and config, kept in a Django cache alias.

Keys always carry the tenant (hotel, branch) so invalidating one tenant can
never touch another tenant's entries. Each entry is stored as value plus
expires_at; the backing cache keeps it for stale_ttl seconds more so the
offline fallback can still reach it, and culls it after that (or earlier,
under MAX_ENTRIES pressure).

Invalidation rotates a namespace token instead of deleting keys: every key of
a kind carries the kind's token and the tenant scope's token, so a new token
makes all older entries unreachable at once. A token lost to culling has the
same effect.
"""
import logging
import time
import uuid
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)

BRANCHES = 'branches'
MENU = 'menu'
SALES = 'sales'
CONFIG = 'config'

DEFAULT_TTLS = {
    BRANCHES: 300,
    MENU: 180,
    SALES: 60,
    CONFIG: 300,
}

DEFAULT_STALE_TTL = 3600


def cache_key(kind, hotel_id='', branch_id='', *extra):
    key = f"{kind}:{hotel_id or '-'}:{branch_id or '-'}"
    if extra:
        key += '|' + '|'.join('' if part is None else str(part) for part in extra)
    return key


@dataclass
class CacheEntry:
    value: object
    expires_at: float

    def is_expired(self, now):
        return now > self.expires_at


class TenantCache:
    """
    get() only ever returns live entries. Expired entries stay reachable
    through get_stale() until the backing cache drops them.
    """

    def __init__(self, ttls=None, clock=time.monotonic, alias=None, cache=None, stale_ttl=None):
        self.ttls = {**DEFAULT_TTLS, **(ttls or getattr(settings, 'CATALOG_CACHE_TTLS', {}) or {})}
        self.clock = clock
        self.alias = alias or getattr(settings, 'CATALOG_CACHE', 'catalog')
        self.stale_ttl = stale_ttl if stale_ttl is not None else getattr(
            settings, 'CATALOG_STALE_TTL', DEFAULT_STALE_TTL
        )
        self._cache = cache

    @property
    def cache(self):
        if self._cache is None:
            self._cache = caches[self.alias]
        return self._cache

    def ttl_for(self, kind):
        return self.ttls.get(kind, DEFAULT_TTLS[MENU])

    def _token(self, name):
        candidate = uuid.uuid4().hex[:12]
        self.cache.add(name, candidate, None)
        return self.cache.get(name) or candidate

    def _storage_key(self, key):
        kind, _, rest = key.partition(':')
        scope, sep, extra = rest.partition('|')
        kind_token = self._token(f"ns:{kind}")
        scope_token = self._token(f"ns:{kind}:{scope}")
        return f"{kind}.{kind_token}:{scope}.{scope_token}{sep}{extra}"

    def _entry(self, key):
        return self.cache.get(self._storage_key(key))

    def get(self, key):
        entry = self._entry(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry.value

    def get_stale(self, key):
        entry = self._entry(key)
        return entry.value if entry is not None else None

    def set(self, key, value, ttl):
        entry = CacheEntry(value=value, expires_at=self.clock() + ttl)
        self.cache.set(self._storage_key(key), entry, ttl + self.stale_ttl)

    def invalidate(self, kind, hotel_id='', branch_id=''):
        """Drop every entry of one resource kind for exactly one tenant."""
        base = cache_key(kind, hotel_id, branch_id)
        self.cache.delete(f"ns:{base}")
        logger.debug(f"Cache invalidated: {base}")

    def invalidate_kind(self, kind):
        self.cache.delete(f"ns:{kind}")

    def clear(self):
        for kind in self.ttls:
            self.invalidate_kind(kind)

    def __contains__(self, key):
        return self.get(key) is not None
