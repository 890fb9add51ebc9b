import uuid

import pytest
from django.core.cache.backends.locmem import LocMemCache

from sync.service import reset_catalog_service
from sync.storage import LocalStore


@pytest.fixture(autouse=True)
def isolated_catalog(settings):
    """Fresh in-memory local store and a rebuilt catalog service for every test"""
    settings.CACHES = {
        'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache'},
        'catalog': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': f"test-catalog-{uuid.uuid4().hex}",
        },
        'local': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': f"test-local-{uuid.uuid4().hex}",
            'TIMEOUT': None,
        },
    }
    settings.CATALOG_BACKEND = 'orm'
    # the test database transaction belongs to the test thread's connection
    settings.CATALOG_ORM_WORKER_THREADS = False
    reset_catalog_service()
    yield
    reset_catalog_service()


@pytest.fixture
def local_store():
    return LocalStore(cache=LocMemCache(f"test-store-{uuid.uuid4().hex}", {}))


@pytest.fixture
def memory_cache():
    """Builds private LocMemCaches, so a test never shares entries with another cache instance"""
    def build(**options):
        return LocMemCache(f"test-cache-{uuid.uuid4().hex}", {"OPTIONS": options})
    return build


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
