"""Django signals for cache invalidation.

Inventory counters change through queryset updates, which send no signals;
cached catalog reads may show stale availability until the TTL runs out.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from ticketing.cache import invalidate_categories, invalidate_event
from ticketing.models import Category, Event, TicketType


@receiver([post_save, post_delete], sender=Event)
def invalidate_event_cache(sender, instance, **kwargs):
    """Invalidate caches when an event is saved or deleted."""
    invalidate_event(instance.slug)


@receiver([post_save, post_delete], sender=TicketType)
def invalidate_ticket_type_cache(sender, instance, **kwargs):
    """Invalidate the owning event's caches when a ticket type changes."""
    slug = (
        Event.objects.filter(pk=instance.event_id).values_list("slug", flat=True).first()
    )
    invalidate_event(slug)


@receiver([post_save, post_delete], sender=Category)
def invalidate_category_cache(sender, instance, **kwargs):
    invalidate_categories()
