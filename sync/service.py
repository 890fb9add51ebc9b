"""
CatalogService: every read and write of catalog data goes through here.

Reads:  live cache -> backend (then cache + local snapshot)
        on RemoteUnavailable: stale cache -> local snapshot -> empty
Writes: tenant checked, sent to the backend, cache invalidated for that
        tenant only; on RemoteUnavailable the write is queued for replay.

Every backend call is raced against a per-resource timeout, and every row a
read returns is checked against the active tenant before it is used.
"""
import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string
from rest_framework import serializers

from catalog.gst import GstSettings, branch_of_key, gst_config_keys
from catalog.pricing import build_pricing_matrix, gst_config_for, includes_tax_for, price_definition_for
from tenancy.exceptions import ItemNotFound, RemoteUnavailable, TenantMismatch

from .cache import BRANCHES, CONFIG, MENU, SALES, TenantCache, cache_key
from .queue import OfflineWriteQueue
from .storage import LocalStore

logger = logging.getLogger(__name__)

WRITE = 'write'

DEFAULT_TIMEOUTS = {
    BRANCHES: 30,
    MENU: 30,
    SALES: 30,
    CONFIG: 5,
    WRITE: 30,
}

BACKENDS = {
    'orm': 'sync.backends.OrmCatalogBackend',
    'supabase': 'sync.backends.SupabaseCatalogBackend',
}

# op -> resource kind whose cache a successful write invalidates
WRITE_OPERATIONS = {
    'save_menu_item': MENU,
    'delete_menu_item': MENU,
    'place_order': SALES,
    'save_config': CONFIG,
}

SAVED = 'saved'
QUEUED = 'queued'


@dataclass
class WriteResult:
    status: str
    record: dict = None
    queued_id: str = None

    @property
    def queued(self):
        return self.status == QUEUED

    def as_dict(self):
        return {'status': self.status, 'record': self.record, 'queued_id': self.queued_id}


def _require_branch(context):
    if context is None or not context.hotel_id or not context.branch_id:
        raise serializers.ValidationError({'branch': 'No branch selected.'})


class CatalogService:
    def __init__(self, backend, cache=None, store=None, queue=None, timeouts=None):
        self.backend = backend
        self.cache = cache or TenantCache()
        self.store = store or LocalStore()
        self.queue = queue or OfflineWriteQueue(self.store)
        self.timeouts = {**DEFAULT_TIMEOUTS, **(timeouts or getattr(settings, 'CATALOG_TIMEOUTS', {}) or {})}

    async def _call(self, kind, awaitable):
        timeout = self.timeouts.get(kind, DEFAULT_TIMEOUTS[WRITE])
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(f"{self.backend.name} {kind} call timed out after {timeout}s")
            raise RemoteUnavailable(f"{kind} request timed out after {timeout}s") from exc

    def _admitted(self, kind, rows, admit):
        kept = []
        for row in rows or []:
            if admit is None or admit(row):
                kept.append(row)
            else:
                logger.warning(
                    f"Dropped {kind} record {row.get('id')} of hotel {row.get('hotel_id')} "
                    f"branch {row.get('branch_id')}: outside the active tenant"
                )
        return kept

    async def _read(self, kind, key, loader, admit=None, empty=list, snapshot=True):
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            value = await self._call(kind, loader())
        except RemoteUnavailable as exc:
            logger.warning(f"Falling back for {key}: {exc}")
            return self._fallback(kind, key, admit, empty)

        if isinstance(value, list):
            value = self._admitted(kind, value, admit)
        self.cache.set(key, value, self.cache.ttl_for(kind))
        if snapshot:
            self.store.save_snapshot(key, value)
        return value

    def _fallback(self, kind, key, admit, empty):
        stale = self.cache.get_stale(key)
        if stale is not None:
            logger.info(f"Serving stale cache for {key}")
            return self._admitted(kind, stale, admit) if isinstance(stale, list) else stale
        snapshot = self.store.load_snapshot(key)
        if snapshot is not None:
            logger.info(f"Serving local snapshot for {key}")
            return self._admitted(kind, snapshot, admit) if isinstance(snapshot, list) else snapshot
        return empty()

    # =============== READS ===============

    async def fetch_branches(self, hotel_id=None):
        def admit(branch):
            return str(branch.get('hotel_id')) == str(hotel_id)

        return await self._read(
            BRANCHES,
            cache_key(BRANCHES, hotel_id or '*'),
            lambda: self.backend.fetch_branches(hotel_id=hotel_id),
            admit if hotel_id else None,
        )

    async def fetch_menu(self, context):
        """Menu of the context's branch. A hotel-only context has no menu."""
        if context is None or not context.branch_id:
            return []
        return await self._read(
            MENU,
            cache_key(MENU, context.hotel_id, context.branch_id),
            lambda: self.backend.fetch_menu(context.hotel_id, context.branch_id),
            context.admits,
        )

    async def fetch_sales(self, context, date_from=None, date_to=None):
        """Transactions of the context's branch. Only the unfiltered list is kept as a local snapshot."""
        if context is None or not context.branch_id:
            return []
        return await self._read(
            SALES,
            cache_key(SALES, context.hotel_id, context.branch_id, date_from, date_to),
            lambda: self.backend.fetch_sales(context.hotel_id, context.branch_id, date_from, date_to),
            context.admits,
            snapshot=not (date_from or date_to),
        )

    async def fetch_config(self, branch_id=None):
        keys = gst_config_keys(branch_id)
        return await self._read(
            CONFIG,
            cache_key(CONFIG, '', branch_id),
            lambda: self.backend.fetch_config(keys),
            empty=dict,
        )

    async def get_gst_settings(self, context=None):
        branch_id = context.branch_id if context is not None else None
        values = await self.fetch_config(branch_id)
        return GstSettings.from_config(values, branch_id)

    async def find_menu_item(self, context, item_id):
        for item in await self.fetch_menu(context):
            if str(item.get('id')) == str(item_id):
                return item
        raise ItemNotFound(f"Menu item {item_id} not found in branch {context.branch_id}")

    # =============== WRITES ===============

    async def apply(self, payload):
        """Send one write to the backend and invalidate the cache it affects."""
        op = payload.get('op')
        if op not in WRITE_OPERATIONS:
            raise ValueError(f"Unknown write operation: {op}")
        result = await self._call(WRITE, getattr(self.backend, op)(**payload.get('args', {})))

        kind = WRITE_OPERATIONS[op]
        if kind == CONFIG:
            self._invalidate_config(payload)
        else:
            self.cache.invalidate(kind, payload.get('hotel_id'), payload.get('branch_id'))
        return result

    def _invalidate_config(self, payload):
        # '<branch_id>:' rows only affect that branch; a global row affects every branch
        branch_id = payload.get('branch_id')
        keys = payload.get('args', {}).get('values', {})
        if branch_id and keys and all(branch_of_key(key) == str(branch_id) for key in keys):
            self.cache.invalidate(CONFIG, '', branch_id)
        else:
            self.cache.invalidate_kind(CONFIG)

    async def _write(self, payload):
        try:
            record = await self.apply(payload)
        except RemoteUnavailable as exc:
            entry = self.queue.enqueue(payload)
            logger.warning(f"{payload['op']} for branch {payload.get('branch_id')} queued offline ({entry.id}): {exc}")
            return WriteResult(status=QUEUED, queued_id=entry.id)
        return WriteResult(status=SAVED, record=record)

    def _check_tenant(self, context, data):
        for field, expected in (('hotel_id', context.hotel_id), ('branch_id', context.branch_id)):
            value = data.get(field)
            if value not in (None, '') and str(value) != str(expected):
                raise TenantMismatch(f"{field} {value} does not match the active tenant ({expected})")

    async def save_menu_item(self, context, data, item_id=None):
        """
        Create or update a menu item of the active branch. The pricing matrix
        is rebuilt from the authored price every time.
        """
        _require_branch(context)
        self._check_tenant(context, data)

        record = {**data, 'hotel_id': context.hotel_id, 'branch_id': context.branch_id}
        if item_id is not None:
            existing = await self.find_menu_item(context, item_id)
            record = {**existing, **record, 'id': existing['id']}
        else:
            record.pop('id', None)

        gst = await self.get_gst_settings(context)
        record['pricing_metadata'] = build_pricing_matrix(
            price_definition_for(record), gst_config_for(record, gst), includes_tax_for(record)
        )
        return await self._write({
            'op': 'save_menu_item',
            'hotel_id': context.hotel_id,
            'branch_id': context.branch_id,
            'args': {'record': record},
        })

    async def delete_menu_item(self, context, item_id):
        _require_branch(context)
        await self.find_menu_item(context, item_id)
        return await self._write({
            'op': 'delete_menu_item',
            'hotel_id': context.hotel_id,
            'branch_id': context.branch_id,
            'args': {'hotel_id': context.hotel_id, 'branch_id': context.branch_id, 'item_id': item_id},
        })

    async def place_order(self, context, summary, payment_mode='Cash'):
        """Record a priced order summary (orders.billing.OrderSummary) as a transaction."""
        _require_branch(context)
        now = timezone.now()
        record = {
            **summary.as_record(),
            'hotel_id': context.hotel_id,
            'branch_id': context.branch_id,
            'payment_mode': payment_mode,
            'date': timezone.localdate(now).isoformat(),
            'date_time': now.isoformat(),
        }
        return await self._write({
            'op': 'place_order',
            'hotel_id': context.hotel_id,
            'branch_id': context.branch_id,
            'args': {'record': record},
        })

    async def save_config(self, values, context=None):
        return await self._write({
            'op': 'save_config',
            'hotel_id': context.hotel_id if context else '',
            'branch_id': context.branch_id if context else '',
            'args': {'values': dict(values)},
        })

    async def replay_offline_writes(self):
        return await self.queue.replay_all(self.apply)


@lru_cache(maxsize=None)
def get_catalog_service():
    """The process-wide service, built once from settings.CATALOG_BACKEND."""
    name = getattr(settings, 'CATALOG_BACKEND', 'orm')
    backend_class = import_string(BACKENDS.get(name, name))
    logger.info(f"Catalog backend: {backend_class.__name__}")
    return CatalogService(backend_class())


def reset_catalog_service():
    get_catalog_service.cache_clear()
