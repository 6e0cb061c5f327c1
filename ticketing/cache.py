"""Cache keys for public catalog reads."""

from django.conf import settings
from django.core.cache import cache

CATEGORIES_KEY = "catalog:categories"
EVENTS_LIST_KEY = "catalog:events"
FEATURED_EVENTS_KEY = "catalog:featured"


def event_detail_key(slug: str) -> str:
    return f"catalog:events:{slug}"


def catalog_ttl() -> int:
    return settings.TICKETING_CATALOG_CACHE_TTL


def invalidate_event(slug: str | None) -> None:
    keys = [EVENTS_LIST_KEY, FEATURED_EVENTS_KEY]
    if slug:
        keys.append(event_detail_key(slug))
    cache.delete_many(keys)


def invalidate_categories() -> None:
    cache.delete(CATEGORIES_KEY)
