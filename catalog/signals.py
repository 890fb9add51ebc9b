# Drop cached menus when items change outside CatalogService (admin, shell, fixtures)
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from sync.cache import CONFIG, MENU
from sync.service import get_catalog_service

from .gst import branch_of_key
from .models import Config, MenuItem


@receiver([post_save, post_delete], sender=MenuItem)
def invalidate_menu_cache(sender, instance, **kwargs):
    """Invalidate the cached menu of the item's own tenant"""
    get_catalog_service().cache.invalidate(MENU, instance.hotel_id, instance.branch_id)


@receiver([post_save, post_delete], sender=Config)
def invalidate_config_cache(sender, instance, **kwargs):
    branch_id = branch_of_key(instance.key)
    cache = get_catalog_service().cache
    if branch_id:
        cache.invalidate(CONFIG, '', branch_id)
    else:
        cache.invalidate_kind(CONFIG)
