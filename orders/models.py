import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from tenancy.models import Hotel, Branch


def new_transaction_id():
    return f"TXN-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


class Transaction(models.Model):
    """A completed order. Totals and lines are snapshots and never change afterwards."""
    ORDER_TYPE_CHOICES = (
        ("Dining", "Dining"),
        ("Takeaway", "Takeaway"),
        ("OnlineOrder", "Online Order"),
    )

    PAYMENT_MODE_CHOICES = (
        ("Cash", "Cash"),
        ("Card", "Card"),
        ("UPI", "UPI"),
    )

    id = models.CharField(primary_key=True, max_length=64, default=new_transaction_id)
    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name='transactions')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='transactions')
    date = models.DateField()
    date_time = models.DateTimeField()
    order_type = models.CharField(max_length=20, choices=ORDER_TYPE_CHOICES, default="Dining")

    total_base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_cgst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_sgst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    applied_gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    show_tax_on_bill = models.BooleanField(default=True)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default="Cash")

    class Meta:
        db_table = 'transactions'
        ordering = ['-date_time']

    def __str__(self):
        return f"#{self.id} - {self.branch_id} - {self.total}"

    def as_record(self):
        return {
            'id': self.id,
            'hotel_id': self.hotel_id,
            'branch_id': self.branch_id,
            'date': self.date.isoformat(),
            'date_time': self.date_time.isoformat(),
            'order_type': self.order_type,
            'total_base_amount': float(self.total_base_amount),
            'total_cgst_amount': float(self.total_cgst_amount),
            'total_sgst_amount': float(self.total_sgst_amount),
            'total_gst_amount': float(self.total_gst_amount),
            'total': float(self.total),
            'applied_gst_rate': float(self.applied_gst_rate),
            'show_tax_on_bill': self.show_tax_on_bill,
            'payment_mode': self.payment_mode,
            'items': [item.as_record() for item in self.items.all()],
        }

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Recorded transactions cannot be modified.")
        if not self.date_time:
            self.date_time = timezone.now()
        if not self.date:
            self.date = timezone.localdate(self.date_time)
        super().save(*args, **kwargs)


class TransactionItem(models.Model):
    """Line of a transaction with the price breakdown it was sold at."""
    transaction = models.ForeignKey(Transaction, related_name='items', on_delete=models.CASCADE)
    item_id = models.BigIntegerField(null=True, blank=True)
    item_name = models.CharField(max_length=255, blank=True)
    order_type = models.CharField(max_length=20, default="Dining")
    size = models.CharField(max_length=50, null=True, blank=True)
    quantity = models.IntegerField(default=1)

    price = models.DecimalField(max_digits=10, decimal_places=2)
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    cgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    sgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    cgst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    sgst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    gst_value = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    price_includes_tax = models.BooleanField(default=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = 'transaction_items'
        ordering = ['id']

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Recorded transaction lines cannot be modified.")
        super().save(*args, **kwargs)

    def __str__(self):
        size = f" ({self.size})" if self.size else ""
        return f"{self.quantity} x {self.item_name}{size}"

    def as_record(self):
        record = {
            'item_id': self.item_id,
            'item_name': self.item_name,
            'order_type': self.order_type,
            'size': self.size,
            'quantity': self.quantity,
            'price_includes_tax': self.price_includes_tax,
        }
        for name in LINE_AMOUNT_FIELDS:
            record[name] = float(getattr(self, name))
        return record


LINE_AMOUNT_FIELDS = (
    'price', 'base_price', 'final_price', 'cgst_percentage', 'sgst_percentage',
    'cgst_amount', 'sgst_amount', 'gst_value', 'subtotal',
)
