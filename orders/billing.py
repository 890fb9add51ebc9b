"""
Cart pricing.

A cart is validated against the branch menu before anything is sent anywhere,
then every line is priced through the pricing engine. Per-line amounts are
unit amounts times quantity, rounded per line; totals are sums of lines.
"""
from dataclasses import dataclass, field
from decimal import Decimal

from rest_framework import serializers

from catalog.pricing import (
    HUNDRED, ORDER_TYPE_LABELS, ZERO, PriceBreakdown, money, order_type_key, price_item,
)


@dataclass(frozen=True)
class CartLine:
    item: dict
    quantity: int = 1
    size: str = None


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    unit: PriceBreakdown

    @property
    def quantity(self):
        return self.line.quantity

    def _times(self, amount):
        return money(amount * self.quantity)

    @property
    def base_amount(self):
        return self._times(self.unit.base_price)

    @property
    def cgst_amount(self):
        return self._times(self.unit.cgst_amount)

    @property
    def sgst_amount(self):
        return self._times(self.unit.sgst_amount)

    @property
    def gst_amount(self):
        return self.cgst_amount + self.sgst_amount

    @property
    def subtotal(self):
        return self._times(self.unit.final_price)

    def as_record(self, order_type):
        """Transaction line snapshot: unit prices, line tax amounts."""
        return {
            'item_id': self.line.item.get('id'),
            'item_name': self.line.item.get('name') or '',
            'order_type': order_type,
            'size': self.line.size,
            'quantity': self.quantity,
            'price': float(self.unit.final_price),
            'base_price': float(self.unit.base_price),
            'final_price': float(self.unit.final_price),
            'cgst_percentage': float(self.unit.cgst_percentage),
            'sgst_percentage': float(self.unit.sgst_percentage),
            'cgst_amount': float(self.cgst_amount),
            'sgst_amount': float(self.sgst_amount),
            'gst_value': float(self.gst_amount),
            'price_includes_tax': self.unit.price_includes_tax,
            'subtotal': float(self.subtotal),
        }


@dataclass(frozen=True)
class OrderSummary:
    order_type: str
    lines: list = field(default_factory=list)
    show_tax_on_bill: bool = True

    def _sum(self, attr):
        return sum((getattr(line, attr) for line in self.lines), ZERO)

    @property
    def total_base_amount(self):
        return self._sum('base_amount')

    @property
    def total_cgst_amount(self):
        return self._sum('cgst_amount')

    @property
    def total_sgst_amount(self):
        return self._sum('sgst_amount')

    @property
    def total_gst_amount(self):
        return self.total_cgst_amount + self.total_sgst_amount

    @property
    def total(self):
        return self._sum('subtotal')

    @property
    def applied_gst_rate(self):
        base = self.total_base_amount
        if not base:
            return Decimal('0.00')
        return money(self.total_gst_amount / base * HUNDRED)

    def as_record(self):
        return {
            'order_type': self.order_type,
            'total_base_amount': float(self.total_base_amount),
            'total_cgst_amount': float(self.total_cgst_amount),
            'total_sgst_amount': float(self.total_sgst_amount),
            'total_gst_amount': float(self.total_gst_amount),
            'total': float(self.total),
            'applied_gst_rate': float(self.applied_gst_rate),
            'show_tax_on_bill': self.show_tax_on_bill,
            'items': [line.as_record(self.order_type) for line in self.lines],
        }


def resolve_cart(cart, menu):
    """
    Match cart entries ({item_id, quantity, size}) to menu records.

    Raises ValidationError listing every bad entry: unknown or unavailable
    items, quantities below one, a missing size on a sized item, unknown sizes.
    """
    if not cart:
        raise serializers.ValidationError({'items': ['Cart is empty.']})

    menu_by_id = {str(item.get('id')): item for item in menu or []}
    lines = []
    errors = []
    for entry in cart:
        item_id = entry.get('item_id')
        item = menu_by_id.get(str(item_id))
        quantity = entry.get('quantity', 1)
        size = entry.get('size') or None

        if item is None:
            errors.append(f"Item {item_id} is not on this branch's menu.")
            continue
        if item.get('availability') == 'Unavailable':
            errors.append(f"{item.get('name')} is currently unavailable.")
            continue
        if quantity is None or quantity < 1:
            errors.append(f"Quantity for {item.get('name')} must be at least 1.")
            continue
        if item.get('has_sizes'):
            if not size:
                errors.append(f"Select a size for {item.get('name')}.")
                continue
            if size not in (item.get('sizes') or {}):
                errors.append(f"{item.get('name')} has no size '{size}'.")
                continue
        else:
            size = None
        lines.append(CartLine(item=item, quantity=quantity, size=size))

    if errors:
        raise serializers.ValidationError({'items': errors})
    return lines


def build_order_summary(lines, order_type='Dining', gst=None):
    """Price every cart line for one order type with the branch GST settings."""
    label = ORDER_TYPE_LABELS[order_type_key(order_type)]
    priced = []
    for line in lines:
        unit = price_item(line.item, label, line.size, gst)
        if unit is None:
            raise serializers.ValidationError({'items': [f"{line.item.get('name')} has no price set."]})
        priced.append(PricedLine(line=line, unit=unit))

    show_tax = all(line.item.get('show_tax_on_bill') is not False for line in lines)
    if gst is not None:
        show_tax = show_tax and gst.enabled and gst.show_tax_on_bill
    return OrderSummary(order_type=label, lines=priced, show_tax_on_bill=show_tax)
