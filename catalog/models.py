from django.db import models
from tenancy.models import Hotel, Branch, TimeStampedModel

from .pricing import ORDER_TYPE_KEYS, PRICING_EXCLUSIVE, PRICING_INCLUSIVE


class Config(models.Model):
    """Key/value settings (GST rates and flags)"""
    key = models.CharField(primary_key=True, max_length=255)
    value = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'config'

    def __str__(self):
        return f"{self.key}={self.value}"


class MenuItem(TimeStampedModel):
    """
    Menu item of exactly one (hotel, branch).

    price / sizes hold the authored price. pricing_metadata is the matrix
    derived from it and is recomputed whenever it does not match.
    """
    AVAILABILITY_CHOICES = [
        ("Available", "Available"),
        ("Unavailable", "Unavailable"),
    ]

    PRICING_MODE_CHOICES = [
        (PRICING_INCLUSIVE, "Price includes tax"),
        (PRICING_EXCLUSIVE, "Tax added on top"),
    ]

    id = models.BigAutoField(primary_key=True)
    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name='menu_items')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='menu_items')
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    availability = models.CharField(max_length=20, choices=AVAILABILITY_CHOICES, default="Available")

    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    has_sizes = models.BooleanField(default=False)
    sizes = models.JSONField(null=True, blank=True)  # {"half": {"price": 80}, "full": {"price": 150}}

    pricing_mode = models.CharField(max_length=20, choices=PRICING_MODE_CHOICES, default=PRICING_INCLUSIVE)
    pricing_metadata = models.JSONField(default=dict, blank=True)
    show_tax_on_bill = models.BooleanField(default=True)

    # Per-item GST overrides; null falls back to the configured default
    dining_cgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    dining_sgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    takeaway_cgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    takeaway_sgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    onlineorder_cgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    onlineorder_sgst_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    class Meta:
        db_table = 'menu_items'
        ordering = ['category', 'name']

    def __str__(self):
        return self.name

    def gst_overrides(self):
        gst = {}
        for key in ORDER_TYPE_KEYS:
            cgst = getattr(self, f"{key}_cgst_percentage")
            sgst = getattr(self, f"{key}_sgst_percentage")
            gst[key] = {
                'cgst': float(cgst) if cgst is not None else None,
                'sgst': float(sgst) if sgst is not None else None,
            }
        return gst

    def as_record(self):
        return {
            'id': self.id,
            'hotel_id': self.hotel_id,
            'branch_id': self.branch_id,
            'name': self.name,
            'category': self.category,
            'image_url': self.image_url,
            'availability': self.availability,
            'price': float(self.price) if self.price is not None else None,
            'has_sizes': self.has_sizes,
            'sizes': self.sizes,
            'pricing_mode': self.pricing_mode,
            'pricing_metadata': self.pricing_metadata or {},
            'show_tax_on_bill': self.show_tax_on_bill,
            'gst': self.gst_overrides(),
        }
