"""Service construction for the HTTP layer and management commands."""

from datetime import timedelta

from django.conf import settings

from ticketing.services.approval_service import ApprovalService
from ticketing.services.catalog_service import CatalogService
from ticketing.services.identity_service import IdentityService
from ticketing.services.order_service import OrderService
from ticketing.services.ticket_service import TicketService
from ticketing.services.waitlist_service import WaitlistService
from ticketing.stores.django_store import (
    DjangoActivityStore,
    DjangoCatalogStore,
    DjangoOrderStore,
    DjangoUserStore,
    DjangoWaitlistStore,
)


def identity_service() -> IdentityService:
    return IdentityService(DjangoUserStore())


def catalog_service() -> CatalogService:
    return CatalogService(
        catalog=DjangoCatalogStore(),
        orders=DjangoOrderStore(),
        users=DjangoUserStore(),
        activities=DjangoActivityStore(),
        identity=identity_service(),
    )


def approval_service() -> ApprovalService:
    return ApprovalService(
        catalog=DjangoCatalogStore(),
        orders=DjangoOrderStore(),
        users=DjangoUserStore(),
        activities=DjangoActivityStore(),
        identity=identity_service(),
    )


def order_service() -> OrderService:
    return OrderService(
        catalog=DjangoCatalogStore(),
        orders=DjangoOrderStore(),
        activities=DjangoActivityStore(),
        identity=identity_service(),
        payment_hold=timedelta(minutes=settings.TICKETING_PAYMENT_HOLD_MINUTES),
    )


def ticket_service() -> TicketService:
    return TicketService(
        catalog=DjangoCatalogStore(),
        orders=DjangoOrderStore(),
        users=DjangoUserStore(),
        activities=DjangoActivityStore(),
        identity=identity_service(),
    )


def waitlist_service() -> WaitlistService:
    return WaitlistService(
        catalog=DjangoCatalogStore(),
        waitlist=DjangoWaitlistStore(),
        identity=identity_service(),
    )
