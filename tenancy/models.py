from django.conf import settings
from django.db import models

from .identifiers import slugify_name


class TimeStampedModel(models.Model):
    """Base model with created_at and updated_at fields"""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============== HOTEL & BRANCH MODELS ===============

class Hotel(TimeStampedModel):
    """Top-level tenant. The URL slug is derived from the name, never stored."""
    id = models.CharField(primary_key=True, max_length=64)
    name = models.CharField(max_length=255)

    class Meta:
        db_table = 'hotels'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.id})"

    @property
    def slug(self):
        return slugify_name(self.name)


class Branch(TimeStampedModel):
    """Physical location under a hotel. slug and the URL fields are aliases for id."""
    id = models.CharField(primary_key=True, max_length=64)
    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name='branches')
    name = models.CharField(max_length=255)
    slug = models.CharField(max_length=100, blank=True)
    qr_code_url = models.URLField(max_length=500, blank=True)
    url_path = models.CharField(max_length=255, blank=True)
    admin_url = models.CharField(max_length=255, blank=True)
    user_url = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = 'branches'
        ordering = ['name']

    def __str__(self):
        return f"{self.hotel.name} - {self.name}"

    def as_record(self):
        return {
            'id': self.id,
            'hotel_id': self.hotel_id,
            'hotel_name': self.hotel.name,
            'name': self.name,
            'slug': self.slug,
            'qr_code_url': self.qr_code_url,
            'url_path': self.url_path,
            'admin_url': self.admin_url,
            'user_url': self.user_url,
        }


# =============== ADMIN ACCESS ===============

class HotelMembership(TimeStampedModel):
    """Hotel-User relationship for the admin panel"""
    HOTEL_ROLES = [
        ('hotel_admin', 'Hotel Admin'),
        ('branch_manager', 'Branch Manager'),
    ]

    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='hotel_memberships')
    role = models.CharField(max_length=50, choices=HOTEL_ROLES, default='hotel_admin')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'hotel_memberships'
        unique_together = ['hotel', 'user']

    def __str__(self):
        return f"{self.user} @ {self.hotel_id} ({self.role})"
