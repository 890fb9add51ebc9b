import asyncio
import logging
import time
from types import SimpleNamespace

import httpx
import pytest
from asgiref.sync import async_to_sync
from rest_framework.exceptions import ValidationError

from catalog.gst import GstSettings
from orders.billing import build_order_summary, resolve_cart
from sync.backends import CatalogBackend, OrmCatalogBackend, SupabaseCatalogBackend, _orm
from sync.cache import SALES, TenantCache, cache_key
from sync.service import QUEUED, SAVED, CatalogService
from tenancy.exceptions import ItemNotFound, RemoteUnavailable, TenantMismatch
from tenancy.resolver import TenantContext

H1_B1 = TenantContext(hotel_id='H1', branch_id='b1')
H1_B2 = TenantContext(hotel_id='H1', branch_id='b2')
H2_B3 = TenantContext(hotel_id='H2', branch_id='b3')


def tea(**fields):
    item = {
        'id': 1, 'hotel_id': 'H1', 'branch_id': 'b1', 'name': 'Masala Tea', 'category': 'Beverages',
        'availability': 'Available', 'price': 105, 'has_sizes': False, 'sizes': {},
        'pricing_mode': 'inclusive', 'pricing_metadata': {}, 'show_tax_on_bill': True, 'gst': {},
    }
    item.update(fields)
    return item


class FakeBackend(CatalogBackend):
    name = 'fake'

    def __init__(self):
        self.branches = [
            {'id': 'b1', 'hotel_id': 'H1', 'hotel_name': 'Grand Hotel', 'slug': 'main'},
            {'id': 'b2', 'hotel_id': 'H1', 'hotel_name': 'Grand Hotel', 'slug': 'beach'},
            {'id': 'b3', 'hotel_id': 'H2', 'hotel_name': 'Sea View', 'slug': 'main'},
        ]
        self.menu = [tea(), tea(id=2, branch_id='b2', name='Coffee'), tea(id=3, hotel_id='H2', branch_id='b3')]
        self.config = {}
        self.orders = []
        self.leak = []
        self.calls = []
        self.down = False
        self.delay = 0

    async def _hit(self, name):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.down:
            raise RemoteUnavailable('store unreachable')

    async def fetch_branches(self, hotel_id=None):
        await self._hit('fetch_branches')
        return [b for b in self.branches if not hotel_id or b['hotel_id'] == hotel_id] + self.leak

    async def fetch_menu(self, hotel_id, branch_id):
        await self._hit('fetch_menu')
        rows = [dict(i) for i in self.menu if i['hotel_id'] == hotel_id and i['branch_id'] == branch_id]
        return rows + self.leak

    async def fetch_sales(self, hotel_id, branch_id, date_from=None, date_to=None):
        await self._hit('fetch_sales')
        return [o for o in self.orders if o['hotel_id'] == hotel_id and o['branch_id'] == branch_id]

    async def fetch_config(self, keys=None):
        await self._hit('fetch_config')
        return {k: v for k, v in self.config.items() if not keys or k in keys}

    async def save_menu_item(self, record):
        await self._hit('save_menu_item')
        if record.get('id'):
            self.menu = [record if i['id'] == record['id'] else i for i in self.menu]
        else:
            record = {**record, 'id': max(i['id'] for i in self.menu) + 1}
            self.menu.append(record)
        return record

    async def delete_menu_item(self, hotel_id, branch_id, item_id):
        await self._hit('delete_menu_item')
        self.menu = [i for i in self.menu if str(i['id']) != str(item_id)]
        return {'id': item_id, 'deleted': True}

    async def place_order(self, record):
        await self._hit('place_order')
        saved = {**record, 'id': f"TXN-{len(self.orders) + 1}"}
        self.orders.append(saved)
        return saved

    async def save_config(self, values):
        await self._hit('save_config')
        self.config.update(values)
        return dict(values)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def service(backend, local_store, clock):
    return CatalogService(
        backend,
        cache=TenantCache(clock=clock),
        store=local_store,
        timeouts={'menu': 1, 'config': 1, 'write': 1},
    )


@pytest.fixture
def sync_logs(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger('sync'), 'propagate', True)
    caplog.set_level(logging.INFO, logger='sync')
    return caplog


def run(coro):
    return asyncio.run(coro)


def test_menu_is_served_from_cache(service, backend):
    first = run(service.fetch_menu(H1_B1))
    second = run(service.fetch_menu(H1_B1))

    assert [item['name'] for item in first] == ['Masala Tea']
    assert second == first
    assert backend.calls == ['fetch_menu']


def test_menu_refetched_after_ttl(service, backend, clock):
    run(service.fetch_menu(H1_B1))
    clock.advance(service.cache.ttl_for('menu') + 1)
    run(service.fetch_menu(H1_B1))
    assert backend.calls == ['fetch_menu', 'fetch_menu']


def test_rows_of_other_tenants_are_dropped(service, backend, sync_logs):
    backend.leak = [tea(id=99, hotel_id='H2', branch_id='b3', name='Foreign')]

    menu = run(service.fetch_menu(H1_B1))

    assert [item['id'] for item in menu] == [1]
    assert 'outside the active tenant' in sync_logs.text


def test_hotel_scoped_branch_list(service, backend):
    backend.leak = [{'id': 'b9', 'hotel_id': 'H2', 'hotel_name': 'Sea View'}]
    branches = run(service.fetch_branches('H1'))
    assert [b['id'] for b in branches] == ['b1', 'b2']


def test_hotel_only_context_has_no_menu(service, backend):
    assert run(service.fetch_menu(TenantContext(hotel_id='H1'))) == []
    assert run(service.fetch_menu(None)) == []
    assert backend.calls == []


def test_tenants_never_share_a_menu(service):
    assert [i['id'] for i in run(service.fetch_menu(H1_B1))] == [1]
    assert [i['id'] for i in run(service.fetch_menu(H1_B2))] == [2]
    assert [i['id'] for i in run(service.fetch_menu(H2_B3))] == [3]


def test_offline_read_falls_back_to_stale_cache(service, backend, clock):
    run(service.fetch_menu(H1_B1))
    clock.advance(10_000)
    backend.down = True

    assert [i['id'] for i in run(service.fetch_menu(H1_B1))] == [1]


def test_offline_read_falls_back_to_snapshot(service, backend, local_store, clock, memory_cache):
    run(service.fetch_menu(H1_B1))

    backend.down = True
    restarted = CatalogService(
        backend, cache=TenantCache(clock=clock, cache=memory_cache()), store=local_store, timeouts={'menu': 1}
    )
    assert [i['id'] for i in run(restarted.fetch_menu(H1_B1))] == [1]
    # nothing was ever fetched for this tenant
    assert run(restarted.fetch_menu(H2_B3)) == []


def test_snapshot_is_filtered_again(service, backend, local_store):
    local_store.save_snapshot('menu:H1:b1', [tea(), tea(id=5, branch_id='b2')])
    backend.down = True
    assert [i['id'] for i in run(service.fetch_menu(H1_B1))] == [1]


def test_slow_backend_times_out(service, backend, sync_logs):
    backend.delay = 0.5
    service.timeouts['menu'] = 0.01

    assert run(service.fetch_menu(H1_B1)) == []
    assert 'timed out' in sync_logs.text


def test_config_fallback_is_empty_dict(service, backend):
    backend.down = True
    assert run(service.fetch_config('b1')) == {}
    gst = run(service.get_gst_settings(H1_B1))
    assert gst == GstSettings.from_config({})


def test_save_menu_item_builds_pricing_matrix(service, backend):
    run(service.fetch_menu(H1_B1))
    run(service.fetch_menu(H1_B2))
    backend.calls.clear()

    result = run(service.save_menu_item(H1_B1, {'name': 'Lassi', 'price': 105, 'pricing_mode': 'inclusive', 'gst': {}}))

    assert result.status == SAVED
    saved = result.record
    assert (saved['hotel_id'], saved['branch_id']) == ('H1', 'b1')
    dining = saved['pricing_metadata']['order_types']['dining']['default']
    assert dining['base_price'] == 100.0
    assert dining['final_price'] == 105.0

    # only the written branch is refetched
    run(service.fetch_menu(H1_B1))
    run(service.fetch_menu(H1_B2))
    assert backend.calls == ['fetch_config', 'save_menu_item', 'fetch_menu']


def test_update_keeps_unchanged_fields(service, backend):
    result = run(service.save_menu_item(H1_B1, {'price': 210}, item_id=1))

    assert result.record['name'] == 'Masala Tea'
    assert result.record['pricing_metadata']['order_types']['dining']['default']['base_price'] == 200.0


def test_update_of_unknown_item(service):
    with pytest.raises(ItemNotFound):
        run(service.save_menu_item(H1_B1, {'price': 10}, item_id=2))


def test_write_for_another_tenant_is_refused(service, backend):
    with pytest.raises(TenantMismatch):
        run(service.save_menu_item(H1_B1, {'name': 'X', 'price': 5, 'hotel_id': 'H2'}))
    assert 'save_menu_item' not in backend.calls


def test_write_needs_a_branch(service):
    with pytest.raises(ValidationError):
        run(service.save_menu_item(TenantContext(hotel_id='H1'), {'name': 'X', 'price': 5}))


def test_write_while_offline_is_queued_then_replayed(service, backend):
    backend.down = True
    result = run(service.save_menu_item(H1_B1, {'name': 'Lassi', 'price': 60, 'gst': {}}))

    assert result.status == QUEUED
    assert result.queued
    assert len(service.queue) == 1

    backend.down = False
    report = run(service.replay_offline_writes())

    assert report.replayed == [result.queued_id]
    assert len(service.queue) == 0
    assert 'Lassi' in [i['name'] for i in run(service.fetch_menu(H1_B1))]


def test_delete_menu_item(service, backend):
    result = run(service.delete_menu_item(H1_B1, 1))
    assert result.status == SAVED
    assert run(service.fetch_menu(H1_B1)) == []

    with pytest.raises(ItemNotFound):
        run(service.delete_menu_item(H1_B1, 3))


def test_place_order_records_transaction(service, backend):
    menu = run(service.fetch_menu(H1_B1))
    summary = build_order_summary(resolve_cart([{'item_id': 1, 'quantity': 2}], menu), 'Dining', GstSettings())

    assert run(service.fetch_sales(H1_B1)) == []
    result = run(service.place_order(H1_B1, summary, 'UPI'))

    (order,) = backend.orders
    assert result.record['id'] == 'TXN-1'
    assert (order['hotel_id'], order['branch_id'], order['payment_mode']) == ('H1', 'b1', 'UPI')
    assert order['total'] == 210.0
    assert order['date'] and order['date_time']
    assert order['items'][0]['quantity'] == 2
    # the sales cache of this branch was dropped
    assert len(run(service.fetch_sales(H1_B1))) == 1


def test_global_config_write_drops_every_config_entry(service, backend):
    run(service.fetch_config('b1'))
    run(service.fetch_config('b2'))
    backend.calls.clear()

    run(service.save_config({'gst_enabled': 'false'}))
    run(service.fetch_config('b1'))
    run(service.fetch_config('b2'))

    assert backend.calls == ['save_config', 'fetch_config', 'fetch_config']
    assert run(service.get_gst_settings(H1_B1)).enabled is False


def test_branch_config_write_keeps_other_branches_cached(service, backend):
    run(service.fetch_config('b1'))
    run(service.fetch_config('b3'))
    backend.calls.clear()

    run(service.save_config({'b1:gst_enabled': 'false'}, H1_B1))
    run(service.fetch_config('b3'))
    assert backend.calls == ['save_config']

    assert run(service.get_gst_settings(H1_B1)).enabled is False
    assert backend.calls == ['save_config', 'fetch_config']
    assert run(service.get_gst_settings(H2_B3)).enabled is True


def test_mixed_config_write_drops_every_config_entry(service, backend):
    run(service.fetch_config('b3'))
    backend.calls.clear()

    run(service.save_config({'b1:gst_enabled': 'false', 'gst_show_tax_on_bill': 'false'}, H1_B1))
    run(service.fetch_config('b3'))

    assert backend.calls == ['save_config', 'fetch_config']


def test_ranged_sales_reads_leave_no_snapshot(service, backend, local_store):
    run(service.fetch_sales(H1_B1, '2024-01-01', '2024-01-31'))
    run(service.fetch_sales(H1_B1))

    assert local_store.load_snapshot(cache_key(SALES, 'H1', 'b1', '2024-01-01', '2024-01-31')) is None
    assert local_store.load_snapshot(cache_key(SALES, 'H1', 'b1', None, None)) == []


class HungOrmBackend(OrmCatalogBackend):
    @_orm
    def fetch_menu(self, hotel_id, branch_id):
        time.sleep(1.5)
        return [tea()]


def test_hung_orm_call_is_abandoned_at_its_timeout(local_store, clock, memory_cache, sync_logs):
    service = CatalogService(
        HungOrmBackend(worker_threads=True),
        cache=TenantCache(clock=clock, cache=memory_cache()),
        store=local_store,
        timeouts={'menu': 0.2},
    )

    started = time.monotonic()
    # views reach the service the same way
    result = async_to_sync(service.fetch_menu)(H1_B1)

    assert result == []
    assert time.monotonic() - started < 1.0
    assert 'timed out' in sync_logs.text


class FakeSupabaseTable:
    def __init__(self, client, name):
        self.client = client
        self.name = name
        self.rows = None

    def insert(self, rows):
        self.rows = rows
        return self

    def execute(self):
        if self.name in self.client.down:
            raise httpx.ConnectError(f"{self.name} unreachable")
        self.client.inserted.setdefault(self.name, []).append(self.rows)
        return SimpleNamespace(data=[self.rows] if isinstance(self.rows, dict) else self.rows)


class FakeSupabaseClient:
    def __init__(self, down=()):
        self.down = set(down)
        self.inserted = {}

    def table(self, name):
        return FakeSupabaseTable(self, name)


def test_supabase_order_failing_between_inserts_is_queued_whole(local_store, clock, memory_cache):
    summary = build_order_summary(resolve_cart([{'item_id': 1, 'quantity': 1}], [tea()]), 'Dining', GstSettings())
    client = FakeSupabaseClient(down={'transaction_items'})
    service = CatalogService(
        SupabaseCatalogBackend(client=client),
        cache=TenantCache(clock=clock, cache=memory_cache()),
        store=local_store,
        timeouts={'write': 1},
    )

    result = run(service.place_order(H1_B1, summary))

    assert result.queued
    # the header is stored without its lines; replay records the order again
    (header,) = client.inserted['transactions']
    assert header['hotel_id'] == 'H1'
    assert 'transaction_items' not in client.inserted

    client.down.clear()
    report = run(service.replay_offline_writes())
    assert len(client.inserted['transactions']) == 2
    assert len(client.inserted['transaction_items']) == 1
    assert report.failed == []
