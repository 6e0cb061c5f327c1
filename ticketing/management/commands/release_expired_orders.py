import logging

from django.core.management.base import BaseCommand

from ticketing.handlers.dependencies import order_service

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Cancel pending orders whose payment hold has ended.

    Meant to run from cron every few minutes; returns the reserved
    inventory of each cancelled order to its ticket types.
    """

    help = "Cancel expired pending orders and release their inventory."

    def handle(self, *args, **options) -> None:
        logger.info("Starting expired-order sweep...")
        released = order_service().release_expired_orders()
        self.stdout.write(self.style.SUCCESS(f"Released {released} expired order(s)"))
