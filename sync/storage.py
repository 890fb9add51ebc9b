"""Durable local state: last good snapshot per resource and tenant, and the offline queue."""
from django.conf import settings
from django.core.cache import caches

QUEUE_KEY = 'catalog:offline-write-queue'


class LocalStore:
    """
    Thin layer over a Django cache alias that never expires entries
    (CATALOG_LOCAL_STORE, file based by default).
    """

    def __init__(self, alias=None, cache=None):
        self.alias = alias or getattr(settings, 'CATALOG_LOCAL_STORE', 'local')
        self._cache = cache

    @property
    def cache(self):
        if self._cache is None:
            self._cache = caches[self.alias]
        return self._cache

    def load_snapshot(self, key):
        return self.cache.get('snapshot:' + key)

    def save_snapshot(self, key, value):
        self.cache.set('snapshot:' + key, value, None)

    def drop_snapshot(self, key):
        self.cache.delete('snapshot:' + key)

    def load_queue(self):
        return list(self.cache.get(QUEUE_KEY) or [])

    def save_queue(self, entries):
        self.cache.set(QUEUE_KEY, list(entries), None)
