"""Row builders and a hand-driven clock for the test suite."""

import uuid
from datetime import UTC, datetime, timedelta

from ticketing import models as orm
from ticketing.domain import (
    ApprovalStatus,
    Capacity,
    CategoryId,
    Event,
    EventId,
    Identity,
    Money,
    Role,
    TicketType,
    TicketTypeId,
    User,
    UserId,
    UserStatus,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Clock the tests can move by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def identity_of(user: orm.User) -> Identity:
    return Identity(user.external_id)


def make_user(external_id: str, role: Role = Role.ATTENDEE, **fields) -> orm.User:
    fields.setdefault("email", f"{external_id}@example.com")
    fields.setdefault("first_name", external_id.capitalize())
    return orm.User.objects.create(external_id=external_id, role=role.value, **fields)


def make_event(organizer: orm.User, category: orm.Category, **fields) -> orm.Event:
    defaults = {
        "title": "Addis Jazz Night",
        "slug": "addis-jazz-night",
        "description": "An evening of Ethio-jazz.",
        "location_name": "Fendika",
        "address": "Kazanchis, Addis Ababa",
        "starts_at": NOW + timedelta(days=30),
        "ends_at": NOW + timedelta(days=30, hours=4),
        "timezone": "Africa/Addis_Ababa",
        "cover_image_url": "https://example.com/cover.jpg",
        "is_published": True,
        "approval_status": ApprovalStatus.APPROVED.value,
    }
    defaults.update(fields)
    return orm.Event.objects.create(organizer=organizer, category=category, **defaults)


def reschedule(event: orm.Event, starts_at: datetime) -> orm.Event:
    event.starts_at = starts_at
    event.ends_at = starts_at + timedelta(hours=4)
    event.save()
    return event


def make_ticket_type(event: orm.Event, **fields) -> orm.TicketType:
    defaults = {
        "name": "General Admission",
        "price": 0,
        "currency": "ETB",
        "total_quantity": 100,
    }
    defaults.update(fields)
    return orm.TicketType.objects.create(event=event, **defaults)


# Domain objects for tests that run against mocked stores


def build_user(role: Role = Role.ATTENDEE, **fields) -> User:
    defaults = dict(
        id=UserId(uuid.uuid4()),
        external_id="user_1",
        email="selam@example.com",
        first_name="Selam",
        last_name="Tesfaye",
        role=role,
        status=UserStatus.ACTIVE,
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(fields)
    return User(**defaults)


def build_event(**fields) -> Event:
    defaults = dict(
        id=EventId(uuid.uuid4()),
        title="Addis Jazz Night",
        slug="addis-jazz-night",
        description="An evening of Ethio-jazz.",
        organizer_id=UserId(uuid.uuid4()),
        category_id=CategoryId(uuid.uuid4()),
        location_name="Fendika",
        address="Kazanchis",
        starts_at=NOW + timedelta(days=30),
        ends_at=NOW + timedelta(days=30, hours=3),
        timezone="Africa/Addis_Ababa",
        cover_image_url="https://example.com/cover.jpg",
        is_published=True,
        approval_status=ApprovalStatus.APPROVED,
        min_order=1,
        max_order=10,
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(fields)
    return Event(**defaults)


def build_ticket_type(**fields) -> TicketType:
    defaults = dict(
        id=TicketTypeId(uuid.uuid4()),
        event_id=EventId(uuid.uuid4()),
        name="General",
        price=Money(0, "ETB"),
        total_quantity=Capacity(100),
        sold_quantity=Capacity(40),
        is_visible=True,
        min_per_order=1,
        max_per_order=5,
    )
    defaults.update(fields)
    return TicketType(**defaults)
