"""Pytest configuration and shared fixtures."""

from types import SimpleNamespace

import pytest
from rest_framework.test import APIClient

from ticketing import models as orm
from ticketing.domain import ApprovalStatus, Role
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
from tests.factories import NOW, FakeClock, make_event, make_ticket_type, make_user


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def admin_user(db) -> orm.User:
    return make_user("admin", Role.ADMIN)


@pytest.fixture
def organizer(db) -> orm.User:
    return make_user("organizer", Role.ORGANIZER)


@pytest.fixture
def attendee(db) -> orm.User:
    return make_user("attendee", Role.ATTENDEE, last_name="Bekele")


@pytest.fixture
def category(db) -> orm.Category:
    return orm.Category.objects.create(
        name="Music & Concerts", slug="music-concerts", icon="🎵", color="#8B5CF6"
    )


@pytest.fixture
def event(organizer, category) -> orm.Event:
    """A published, approved event a month after NOW."""
    return make_event(organizer, category)


@pytest.fixture
def pending_event(organizer, category) -> orm.Event:
    return make_event(
        organizer,
        category,
        title="Startup Pitch Day",
        slug="startup-pitch-day",
        is_published=False,
        approval_status=ApprovalStatus.PENDING.value,
    )


@pytest.fixture
def free_ticket_type(event) -> orm.TicketType:
    return make_ticket_type(event, name="Free Entry", price=0, total_quantity=100)


@pytest.fixture
def paid_ticket_type(event) -> orm.TicketType:
    return make_ticket_type(event, name="VIP", price=50000, total_quantity=50)


@pytest.fixture
def services(db, clock) -> SimpleNamespace:
    """Every service wired to the Django stores and the fake clock."""
    catalog = DjangoCatalogStore()
    orders = DjangoOrderStore()
    users = DjangoUserStore()
    activities = DjangoActivityStore()
    identity = IdentityService(users)
    return SimpleNamespace(
        identity=identity,
        catalog=CatalogService(catalog, orders, users, activities, identity, clock=clock),
        approval=ApprovalService(catalog, orders, users, activities, identity, clock=clock),
        orders=OrderService(catalog, orders, activities, identity, clock=clock),
        tickets=TicketService(catalog, orders, users, activities, identity, clock=clock),
        waitlist=WaitlistService(catalog, DjangoWaitlistStore(), identity),
    )
