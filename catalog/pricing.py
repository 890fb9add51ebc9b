"""
GST pricing engine.

One authored price per item (or per size) is turned into a breakdown for every
order type. The authored price either includes tax ("inclusive", the amount is
the final price) or excludes it ("exclusive", the amount is the base price).
All arithmetic runs in Decimal; outputs are rounded half-up to 2 places once.
"""
import hashlib
import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.utils import timezone

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
HUNDRED = Decimal('100')
ZERO = Decimal('0')

MATRIX_VERSION = 1

PRICING_INCLUSIVE = 'inclusive'
PRICING_EXCLUSIVE = 'exclusive'

ORDER_TYPE_DINING = 'dining'
ORDER_TYPE_TAKEAWAY = 'takeaway'
ORDER_TYPE_ONLINE = 'onlineorder'
ORDER_TYPE_KEYS = (ORDER_TYPE_DINING, ORDER_TYPE_TAKEAWAY, ORDER_TYPE_ONLINE)

ORDER_TYPE_LABELS = {
    ORDER_TYPE_DINING: 'Dining',
    ORDER_TYPE_TAKEAWAY: 'Takeaway',
    ORDER_TYPE_ONLINE: 'OnlineOrder',
}

_ORDER_TYPE_ALIASES = {
    'dining': ORDER_TYPE_DINING,
    'dine in': ORDER_TYPE_DINING,
    'takeaway': ORDER_TYPE_TAKEAWAY,
    'onlineorder': ORDER_TYPE_ONLINE,
    'online order': ORDER_TYPE_ONLINE,
    'online': ORDER_TYPE_ONLINE,
}


def order_type_key(order_type):
    """Map an order type label ('Online Order', 'OnlineOrder', ...) to its key. Unknown -> dining."""
    if order_type is None:
        return ORDER_TYPE_DINING
    return _ORDER_TYPE_ALIASES.get(str(order_type).strip().lower(), ORDER_TYPE_DINING)


def to_decimal(value, default=ZERO):
    """Parse a number without raising; junk becomes default."""
    if value is None or value == '' or isinstance(value, bool):
        return default
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not number.is_finite():
        return default
    return number


def money(value):
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage(value):
    return money(value)


@dataclass(frozen=True)
class GstRate:
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO

    @classmethod
    def from_value(cls, value):
        if isinstance(value, GstRate):
            return value
        value = value or {}
        return cls(cgst=percentage(value.get('cgst')), sgst=percentage(value.get('sgst')))

    @property
    def total(self):
        return self.cgst + self.sgst

    def as_dict(self):
        return {'cgst': float(self.cgst), 'sgst': float(self.sgst)}


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    gst_value: Decimal
    final_price: Decimal
    cgst_percentage: Decimal
    sgst_percentage: Decimal
    price_includes_tax: bool

    def as_dict(self):
        return {
            'base_price': float(self.base_price),
            'cgst_amount': float(self.cgst_amount),
            'sgst_amount': float(self.sgst_amount),
            'gst_value': float(self.gst_value),
            'final_price': float(self.final_price),
            'cgst_percentage': float(self.cgst_percentage),
            'sgst_percentage': float(self.sgst_percentage),
            'price_includes_tax': self.price_includes_tax,
        }

    @classmethod
    def from_dict(cls, data, price_includes_tax=None):
        includes = data.get('price_includes_tax') if price_includes_tax is None else price_includes_tax
        return cls(
            base_price=money(data.get('base_price')),
            cgst_amount=money(data.get('cgst_amount')),
            sgst_amount=money(data.get('sgst_amount')),
            gst_value=money(data.get('gst_value')),
            final_price=money(data.get('final_price')),
            cgst_percentage=percentage(data.get('cgst_percentage')),
            sgst_percentage=percentage(data.get('sgst_percentage')),
            price_includes_tax=includes is not False,
        )


def calculate_pricing(amount, cgst_percentage=0, sgst_percentage=0, includes_tax=True):
    """
    Split (or build up) a price into base, CGST, SGST and final amounts.

    includes_tax=True:  amount is the final price, base = amount / (1 + rate)
    includes_tax=False: amount is the base price, final = amount * (1 + rate)
    """
    cgst = percentage(cgst_percentage)
    sgst = percentage(sgst_percentage)
    amount = to_decimal(amount)
    multiplier = 1 + (cgst + sgst) / HUNDRED

    if includes_tax:
        final_price = amount
        base_price = amount / multiplier if multiplier else amount
    else:
        base_price = amount
        final_price = amount * multiplier

    cgst_amount = money(base_price * cgst / HUNDRED)
    sgst_amount = money(base_price * sgst / HUNDRED)

    return PriceBreakdown(
        base_price=money(base_price),
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        # sum of the rounded components
        gst_value=cgst_amount + sgst_amount,
        final_price=money(final_price),
        cgst_percentage=cgst,
        sgst_percentage=sgst,
        price_includes_tax=bool(includes_tax),
    )


def untaxed(amount, includes_tax=True):
    """Breakdown used when GST is switched off: the authored amount, no tax."""
    return calculate_pricing(amount, 0, 0, includes_tax)


def _price_definition(price_definition):
    price_definition = price_definition or {}
    default = price_definition.get('default')
    sizes = {}
    for size_key, value in (price_definition.get('sizes') or {}).items():
        if value is not None:
            sizes[str(size_key)] = to_decimal(value)
    return (to_decimal(default) if default is not None else None), sizes


def _canonical(number):
    # 100, 100.0 and Decimal('100.00') must fingerprint the same
    return None if number is None else str(number.normalize())


def matrix_fingerprint(price_definition, gst_config, includes_tax):
    default, sizes = _price_definition(price_definition)
    rates = {order_type_key(key): GstRate.from_value(value).as_dict() for key, value in (gst_config or {}).items()}
    blob = json.dumps({
        'default': _canonical(default),
        'sizes': {key: _canonical(value) for key, value in sizes.items()},
        'rates': rates,
        'includes_tax': bool(includes_tax),
    }, sort_keys=True)
    return hashlib.sha1(blob.encode('utf-8')).hexdigest()


def build_pricing_matrix(price_definition, gst_config, includes_tax=True):
    """
    Precompute breakdowns for every order type (and size).

    price_definition: {'default': 120} or {'sizes': {'half': 80, 'full': 150}}
    gst_config:       {'dining': {'cgst': 2.5, 'sgst': 2.5}, ...}
    """
    default, sizes = _price_definition(price_definition)
    matrix = {
        'version': MATRIX_VERSION,
        'fingerprint': matrix_fingerprint(price_definition, gst_config, includes_tax),
        'price_includes_tax': bool(includes_tax),
        'source_price_type': 'final' if includes_tax else 'base',
        'source_price': {
            'default': float(default) if default is not None else None,
            'sizes': {key: float(value) for key, value in sizes.items()},
        },
        'last_updated': timezone.now().isoformat(),
        'order_types': {},
    }

    for key, value in (gst_config or {}).items():
        rate = GstRate.from_value(value)
        entry = {
            'cgst_percentage': float(rate.cgst),
            'sgst_percentage': float(rate.sgst),
            'default': None,
            'sizes': {},
        }
        if default is not None:
            entry['default'] = calculate_pricing(default, rate.cgst, rate.sgst, includes_tax).as_dict()
        for size_key, amount in sizes.items():
            entry['sizes'][size_key] = calculate_pricing(amount, rate.cgst, rate.sgst, includes_tax).as_dict()
        matrix['order_types'][order_type_key(key)] = entry

    return matrix


def get_breakdown_from_metadata(metadata, order_type='Dining', size_key=None):
    """Look a breakdown up in a pricing matrix. None when the combination is absent."""
    if not isinstance(metadata, dict):
        return None
    order_types = metadata.get('order_types')
    if not isinstance(order_types, dict):
        return None
    entry = order_types.get(order_type_key(order_type))
    if not isinstance(entry, dict):
        return None

    if size_key:
        data = (entry.get('sizes') or {}).get(str(size_key))
    else:
        data = entry.get('default')
    if not isinstance(data, dict):
        return None

    return PriceBreakdown.from_dict(
        {
            **data,
            'cgst_percentage': entry.get('cgst_percentage', data.get('cgst_percentage')),
            'sgst_percentage': entry.get('sgst_percentage', data.get('sgst_percentage')),
        },
        price_includes_tax=metadata.get('price_includes_tax', True),
    )


def metadata_is_current(metadata, price_definition, gst_config, includes_tax):
    """A matrix is only trusted when it was built from exactly these inputs."""
    if not isinstance(metadata, dict) or metadata.get('version') != MATRIX_VERSION:
        return False
    return metadata.get('fingerprint') == matrix_fingerprint(price_definition, gst_config, includes_tax)


# =============== MENU ITEM HELPERS ===============

def includes_tax_for(item):
    return (item.get('pricing_mode') or PRICING_INCLUSIVE) != PRICING_EXCLUSIVE


def price_definition_for(item):
    """The authored price of a menu item record, as a price definition."""
    if item.get('has_sizes'):
        sizes = {}
        for size_key, value in (item.get('sizes') or {}).items():
            sizes[size_key] = value.get('price') if isinstance(value, dict) else value
        return {'default': None, 'sizes': sizes}
    return {'default': item.get('price'), 'sizes': {}}


def gst_config_for(item, gst):
    """Per-item rates win over the branch/global defaults held by gst (GstSettings)."""
    overrides = item.get('gst') or {}
    config = {}
    for key in ORDER_TYPE_KEYS:
        default = gst.rate_for(key)
        override = overrides.get(key) or {}
        cgst = override.get('cgst')
        sgst = override.get('sgst')
        config[key] = GstRate(
            cgst=percentage(cgst) if cgst is not None else default.cgst,
            sgst=percentage(sgst) if sgst is not None else default.sgst,
        )
    return config


def source_amount(item, size_key=None):
    definition = price_definition_for(item)
    if size_key:
        return (definition.get('sizes') or {}).get(size_key)
    return definition.get('default')


def price_item(item, order_type='Dining', size_key=None, gst=None):
    """
    Breakdown for one (item, order type, size).

    Uses the stored matrix when it was built from the item's current price and
    rates, otherwise recomputes from the authored price. Returns None when the
    item has no price for that slot.
    """
    amount = source_amount(item, size_key)
    if amount is None:
        return None
    includes_tax = includes_tax_for(item)

    if gst is not None and not gst.enabled:
        return untaxed(amount, includes_tax)

    key = order_type_key(order_type)
    config = gst_config_for(item, gst) if gst is not None else {
        k: GstRate.from_value((item.get('gst') or {}).get(k)) for k in ORDER_TYPE_KEYS
    }
    metadata = item.get('pricing_metadata')
    if metadata_is_current(metadata, price_definition_for(item), config, includes_tax):
        breakdown = get_breakdown_from_metadata(metadata, key, size_key)
        if breakdown is not None:
            return breakdown
    elif metadata:
        logger.debug(f"Stale pricing metadata for item {item.get('id')}; recomputing")

    rate = config[key]
    return calculate_pricing(amount, rate.cgst, rate.sgst, includes_tax)
