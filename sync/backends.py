"""
Backing stores for hotels, branches, menus, transactions and config.

CatalogBackend is the only interface CatalogService talks to. The
implementation is picked once from settings.CATALOG_BACKEND; errors that mean
"the store is unreachable" are raised as RemoteUnavailable, everything else
propagates unchanged.
"""
import abc
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor

import httpx
from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import close_old_connections, transaction, InterfaceError, OperationalError
from django.utils.dateparse import parse_date, parse_datetime
from supabase import create_client

from catalog.models import Config, MenuItem
from catalog.pricing import ORDER_TYPE_KEYS, to_decimal
from orders.models import LINE_AMOUNT_FIELDS, Transaction, new_transaction_id
from tenancy.exceptions import ItemNotFound, RemoteUnavailable
from tenancy.models import Branch

logger = logging.getLogger(__name__)

GST_COLUMNS = tuple(
    f"{order_type}_{tax}_percentage" for order_type in ORDER_TYPE_KEYS for tax in ('cgst', 'sgst')
)

MENU_COLUMNS = (
    'hotel_id', 'branch_id', 'name', 'category', 'image_url', 'availability',
    'price', 'has_sizes', 'sizes', 'pricing_mode', 'pricing_metadata', 'show_tax_on_bill',
) + GST_COLUMNS

TRANSACTION_COLUMNS = (
    'hotel_id', 'branch_id', 'date', 'date_time', 'order_type',
    'total_base_amount', 'total_cgst_amount', 'total_sgst_amount', 'total_gst_amount', 'total',
    'applied_gst_rate', 'show_tax_on_bill', 'payment_mode',
)

LINE_COLUMNS = ('item_id', 'item_name', 'order_type', 'size', 'quantity', 'price_includes_tax') + LINE_AMOUNT_FIELDS

DECIMAL_COLUMNS = {'price', *GST_COLUMNS}


def _number(value):
    return None if value is None or value == '' else float(value)


def menu_row(record):
    """Flatten a menu item record into table columns."""
    row = {column: record.get(column) for column in MENU_COLUMNS if column in record}
    row['price'] = _number(record.get('price'))
    row['pricing_metadata'] = record.get('pricing_metadata') or {}
    gst = record.get('gst') or {}
    for order_type in ORDER_TYPE_KEYS:
        rate = gst.get(order_type) or {}
        row[f"{order_type}_cgst_percentage"] = _number(rate.get('cgst'))
        row[f"{order_type}_sgst_percentage"] = _number(rate.get('sgst'))
    return row


def menu_record(row):
    """Inverse of menu_row: a table row as a menu item record."""
    record = {column: row.get(column) for column in MENU_COLUMNS if column not in GST_COLUMNS}
    record['id'] = row.get('id')
    record['price'] = _number(row.get('price'))
    record['pricing_metadata'] = row.get('pricing_metadata') or {}
    record['availability'] = row.get('availability') or 'Available'
    record['show_tax_on_bill'] = row.get('show_tax_on_bill') is not False
    record['gst'] = {
        order_type: {
            'cgst': _number(row.get(f"{order_type}_cgst_percentage")),
            'sgst': _number(row.get(f"{order_type}_sgst_percentage")),
        }
        for order_type in ORDER_TYPE_KEYS
    }
    return record


class CatalogBackend(abc.ABC):
    """Everything the catalog needs from a backing store. All methods are coroutines."""
    name = None

    @abc.abstractmethod
    async def fetch_branches(self, hotel_id=None):
        """Branch records, each with hotel_name. Every hotel when hotel_id is None."""

    @abc.abstractmethod
    async def fetch_menu(self, hotel_id, branch_id):
        """Menu item records of one branch."""

    @abc.abstractmethod
    async def fetch_sales(self, hotel_id, branch_id, date_from=None, date_to=None):
        """Transaction records (with items) of one branch, newest first."""

    @abc.abstractmethod
    async def fetch_config(self, keys=None):
        """{key: value} for the given config keys."""

    @abc.abstractmethod
    async def save_menu_item(self, record):
        """Insert (no id) or update a menu item inside its own tenant. Returns the stored record."""

    @abc.abstractmethod
    async def delete_menu_item(self, hotel_id, branch_id, item_id):
        pass

    @abc.abstractmethod
    async def place_order(self, record):
        """Record a transaction and its lines. The store assigns the id."""

    @abc.abstractmethod
    async def save_config(self, values):
        pass


# =============== WORKER THREADS ===============

@functools.lru_cache(maxsize=None)
def _executor(name):
    workers = getattr(settings, 'CATALOG_WORKER_THREADS', 8)
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"catalog-{name}")


async def _in_worker(name, func, *args, **kwargs):
    """
    Run a blocking call on a worker thread. A caller that stops waiting
    (asyncio.wait_for) gets control back at once while the thread finishes.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor(name), functools.partial(func, *args, **kwargs))


def _with_fresh_connection(func, *args, **kwargs):
    close_old_connections()
    try:
        return func(*args, **kwargs)
    finally:
        close_old_connections()


# =============== DJANGO ORM ===============

def _orm(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            if self.worker_threads:
                return await _in_worker('orm', _with_fresh_connection, func, self, *args, **kwargs)
            return await sync_to_async(func)(self, *args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.warning(f"Database unavailable in {func.__name__}: {exc}")
            raise RemoteUnavailable(f"Database unavailable: {exc}") from exc
    return wrapper


class OrmCatalogBackend(CatalogBackend):
    """
    The models of this project, through the default database.

    Queries run on worker threads with their own connections unless
    worker_threads is off, in which case they run thread-sensitive on the
    caller's connection (needed inside a test transaction).
    """
    name = 'orm'

    def __init__(self, worker_threads=None):
        if worker_threads is None:
            worker_threads = getattr(settings, 'CATALOG_ORM_WORKER_THREADS', True)
        self.worker_threads = worker_threads

    @_orm
    def fetch_branches(self, hotel_id=None):
        queryset = Branch.objects.select_related('hotel')
        if hotel_id:
            queryset = queryset.filter(hotel_id=hotel_id)
        return [branch.as_record() for branch in queryset]

    @_orm
    def fetch_menu(self, hotel_id, branch_id):
        queryset = MenuItem.objects.filter(hotel_id=hotel_id, branch_id=branch_id)
        return [item.as_record() for item in queryset]

    @_orm
    def fetch_sales(self, hotel_id, branch_id, date_from=None, date_to=None):
        queryset = Transaction.objects.filter(hotel_id=hotel_id, branch_id=branch_id).prefetch_related('items')
        if date_from:
            queryset = queryset.filter(date__gte=date_from)
        if date_to:
            queryset = queryset.filter(date__lte=date_to)
        return [txn.as_record() for txn in queryset]

    @_orm
    def fetch_config(self, keys=None):
        queryset = Config.objects.all()
        if keys:
            queryset = queryset.filter(key__in=keys)
        return {row.key: row.value for row in queryset}

    @_orm
    def save_menu_item(self, record):
        values = menu_row(record)
        for column in DECIMAL_COLUMNS:
            if values.get(column) is not None:
                values[column] = to_decimal(values[column])

        item_id = record.get('id')
        if item_id:
            item = MenuItem.objects.filter(
                id=item_id, hotel_id=record.get('hotel_id'), branch_id=record.get('branch_id')
            ).first()
            if item is None:
                raise ItemNotFound(f"Menu item {item_id} not found in branch {record.get('branch_id')}")
            for column, value in values.items():
                setattr(item, column, value)
            item.save()
        else:
            item = MenuItem.objects.create(**values)
        return item.as_record()

    @_orm
    def delete_menu_item(self, hotel_id, branch_id, item_id):
        deleted, _ = MenuItem.objects.filter(id=item_id, hotel_id=hotel_id, branch_id=branch_id).delete()
        if not deleted:
            raise ItemNotFound(f"Menu item {item_id} not found in branch {branch_id}")
        return {'id': item_id, 'deleted': True}

    @_orm
    def place_order(self, record):
        values = {column: record[column] for column in TRANSACTION_COLUMNS if column in record}
        if isinstance(values.get('date_time'), str):
            values['date_time'] = parse_datetime(values['date_time'])
        if isinstance(values.get('date'), str):
            values['date'] = parse_date(values['date'])
        for column in TRANSACTION_COLUMNS:
            if column.startswith('total') or column == 'applied_gst_rate':
                if column in values:
                    values[column] = to_decimal(values[column])

        with transaction.atomic():
            txn = Transaction(**values)
            txn.save()
            for line in record.get('items') or []:
                fields = {column: line.get(column) for column in LINE_COLUMNS if column in line}
                for column in LINE_AMOUNT_FIELDS:
                    fields[column] = to_decimal(fields.get(column))
                txn.items.create(**fields)
        return txn.as_record()

    @_orm
    def save_config(self, values):
        with transaction.atomic():
            for key, value in values.items():
                Config.objects.update_or_create(key=key, defaults={'value': value})
        return dict(values)


# =============== SUPABASE ===============

def _remote(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await _in_worker('supabase', func, *args, **kwargs)
        except httpx.TransportError as exc:
            logger.warning(f"Supabase unreachable in {func.__name__}: {exc}")
            raise RemoteUnavailable(f"Supabase unreachable: {exc}") from exc
    return wrapper


def _sales_record(row):
    record = {column: row.get(column) for column in TRANSACTION_COLUMNS}
    record['id'] = row.get('id')
    for column in TRANSACTION_COLUMNS:
        if column.startswith('total') or column == 'applied_gst_rate':
            record[column] = _number(row.get(column)) or 0.0
    record['show_tax_on_bill'] = row.get('show_tax_on_bill') is not False
    items = []
    for line in row.get('transaction_items') or []:
        item = {column: line.get(column) for column in LINE_COLUMNS}
        for column in LINE_AMOUNT_FIELDS:
            item[column] = _number(line.get(column)) or 0.0
        item['quantity'] = int(line.get('quantity') or 1)
        item['price_includes_tax'] = line.get('price_includes_tax') is not False
        items.append(item)
    record['items'] = items
    return record


class SupabaseCatalogBackend(CatalogBackend):
    """The hosted tables (hotels, branches, menu_items, transactions, transaction_items, config)."""
    name = 'supabase'

    def __init__(self, url=None, key=None, schema=None, client=None):
        self.url = url or settings.SUPABASE_URL
        self.key = key or settings.SUPABASE_KEY
        self.schema = schema or getattr(settings, 'SUPABASE_SCHEMA', None)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not self.url or not self.key:
                raise RemoteUnavailable("SUPABASE_URL and SUPABASE_KEY are not configured")
            self._client = create_client(self.url, self.key)
        return self._client

    def _table(self, name):
        if self.schema:
            return self.client.schema(self.schema).table(name)
        return self.client.table(name)

    @_remote
    def fetch_branches(self, hotel_id=None):
        query = (
            self._table('branches')
            .select('id,name,slug,qr_code_url,hotel_id,url_path,admin_url,user_url,hotels!inner(name)')
            .order('name')
        )
        if hotel_id:
            query = query.eq('hotel_id', hotel_id)
        resp = query.execute()
        branches = []
        for row in resp.data or []:
            hotel = row.pop('hotels', None) or {}
            branches.append({**row, 'hotel_name': hotel.get('name')})
        return branches

    @_remote
    def fetch_menu(self, hotel_id, branch_id):
        resp = (
            self._table('menu_items')
            .select('*')
            .eq('hotel_id', hotel_id)
            .eq('branch_id', branch_id)
            .order('category')
            .order('name')
            .execute()
        )
        return [menu_record(row) for row in resp.data or []]

    @_remote
    def fetch_sales(self, hotel_id, branch_id, date_from=None, date_to=None):
        query = (
            self._table('transactions')
            .select('*, transaction_items(*)')
            .eq('hotel_id', hotel_id)
            .eq('branch_id', branch_id)
            .order('date_time', desc=True)
        )
        if date_from:
            query = query.gte('date', str(date_from))
        if date_to:
            query = query.lte('date', str(date_to))
        resp = query.execute()
        return [_sales_record(row) for row in resp.data or []]

    @_remote
    def fetch_config(self, keys=None):
        query = self._table('config').select('key,value')
        if keys:
            query = query.in_('key', list(keys))
        resp = query.execute()
        return {row['key']: row['value'] for row in resp.data or []}

    @_remote
    def save_menu_item(self, record):
        row = menu_row(record)
        item_id = record.get('id')
        if item_id:
            resp = (
                self._table('menu_items')
                .update(row)
                .eq('id', item_id)
                .eq('hotel_id', record.get('hotel_id'))
                .eq('branch_id', record.get('branch_id'))
                .execute()
            )
            if not resp.data:
                raise ItemNotFound(f"Menu item {item_id} not found in branch {record.get('branch_id')}")
        else:
            resp = self._table('menu_items').insert(row).execute()
        return menu_record(resp.data[0])

    @_remote
    def delete_menu_item(self, hotel_id, branch_id, item_id):
        resp = (
            self._table('menu_items')
            .delete()
            .eq('id', item_id)
            .eq('hotel_id', hotel_id)
            .eq('branch_id', branch_id)
            .execute()
        )
        if not resp.data:
            raise ItemNotFound(f"Menu item {item_id} not found in branch {branch_id}")
        return {'id': item_id, 'deleted': True}

    @_remote
    def place_order(self, record):
        """
        Header and lines are separate inserts, not one transaction. If the lines
        insert fails after the header went through, the order is queued whole
        and the stored header has no lines (see sync.queue).
        """
        transaction_id = new_transaction_id()
        row = {column: record.get(column) for column in TRANSACTION_COLUMNS if column in record}
        row['id'] = transaction_id
        resp = self._table('transactions').insert(row).execute()
        saved = resp.data[0] if resp.data else row

        lines = [
            {
                **{column: line.get(column) for column in LINE_COLUMNS if column in line},
                'transaction_id': transaction_id,
                'hotel_id': record.get('hotel_id'),
                'branch_id': record.get('branch_id'),
            }
            for line in record.get('items') or []
        ]
        if lines:
            self._table('transaction_items').insert(lines).execute()
        logger.info(f"Transaction {transaction_id} saved with {len(lines)} items")
        return _sales_record({**saved, 'transaction_items': lines})

    @_remote
    def save_config(self, values):
        payload = [{'key': key, 'value': value} for key, value in values.items()]
        if payload:
            self._table('config').upsert(payload, on_conflict='key').execute()
        return dict(values)
