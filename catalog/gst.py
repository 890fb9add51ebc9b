"""GST settings stored in the config table."""
from dataclasses import dataclass, field

from .pricing import GstRate, ORDER_TYPE_KEYS, percentage, to_decimal

GST_ENABLED_KEY = 'gst_enabled'
GST_SHOW_TAX_ON_BILL_KEY = 'gst_show_tax_on_bill'

DEFAULT_RATE = GstRate(cgst=to_decimal('2.5'), sgst=to_decimal('2.5'))


def cgst_key(order_type):
    return f"gst_{order_type}_cgst_percentage"


def sgst_key(order_type):
    return f"gst_{order_type}_sgst_percentage"


def gst_config_keys(branch_id=None):
    keys = []
    for order_type in ORDER_TYPE_KEYS:
        keys.extend([cgst_key(order_type), sgst_key(order_type)])
    keys.extend([GST_ENABLED_KEY, GST_SHOW_TAX_ON_BILL_KEY])
    if branch_id:
        keys.extend([scoped_key(branch_id, key) for key in list(keys)])
    return keys


def scoped_key(branch_id, key):
    return f"{branch_id}:{key}"


def branch_of_key(key):
    """Branch id of a '<branch_id>:<key>' row, None for a global one."""
    branch_id, sep, _ = str(key).partition(':')
    return branch_id if sep else None


def _flag(value, default=True):
    if value is None or value == '':
        return default
    return str(value).strip().lower() not in ('false', '0', 'no', 'off')


@dataclass(frozen=True)
class GstSettings:
    rates: dict = field(default_factory=lambda: {key: DEFAULT_RATE for key in ORDER_TYPE_KEYS})
    enabled: bool = True
    show_tax_on_bill: bool = True

    def rate_for(self, order_type_key):
        return self.rates.get(order_type_key, DEFAULT_RATE)

    @classmethod
    def from_config(cls, values, branch_id=None):
        """Build settings from config rows; '<branch_id>:<key>' rows override global ones."""
        values = values or {}

        def lookup(key):
            if branch_id and values.get(scoped_key(branch_id, key)) not in (None, ''):
                return values[scoped_key(branch_id, key)]
            return values.get(key)

        rates = {}
        for order_type in ORDER_TYPE_KEYS:
            cgst = lookup(cgst_key(order_type))
            sgst = lookup(sgst_key(order_type))
            rates[order_type] = GstRate(
                cgst=percentage(cgst) if cgst not in (None, '') else DEFAULT_RATE.cgst,
                sgst=percentage(sgst) if sgst not in (None, '') else DEFAULT_RATE.sgst,
            )
        return cls(
            rates=rates,
            enabled=_flag(lookup(GST_ENABLED_KEY)),
            show_tax_on_bill=_flag(lookup(GST_SHOW_TAX_ON_BILL_KEY)),
        )

    def to_config(self):
        payload = {}
        for order_type, rate in self.rates.items():
            payload[cgst_key(order_type)] = str(rate.cgst)
            payload[sgst_key(order_type)] = str(rate.sgst)
        payload[GST_ENABLED_KEY] = 'true' if self.enabled else 'false'
        payload[GST_SHOW_TAX_ON_BILL_KEY] = 'true' if self.show_tax_on_bill else 'false'
        return payload

    def as_dict(self):
        return {
            'rates': {key: rate.as_dict() for key, rate in self.rates.items()},
            'enabled': self.enabled,
            'show_tax_on_bill': self.show_tax_on_bill,
        }
