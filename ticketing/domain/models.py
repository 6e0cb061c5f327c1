"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from ticketing.domain.value_objects import (
    Capacity,
    CategoryId,
    EventId,
    Money,
    OrderId,
    TicketId,
    TicketTypeId,
    UserId,
)


class Role(StrEnum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    ATTENDEE = "attendee"


class UserStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class ApprovalStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewDecision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class OrderStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class TicketStatus(StrEnum):
    VALID = "valid"
    CHECKED_IN = "checked_in"
    VOIDED = "voided"


class WaitlistStatus(StrEnum):
    WAITING = "waiting"
    NOTIFIED = "notified"
    CLAIMED = "claimed"


@dataclass(frozen=True)
class User:
    """Domain representation of a User."""

    id: UserId
    external_id: str
    email: str
    first_name: str | None
    last_name: str | None
    role: Role
    status: UserStatus
    created_at: datetime
    updated_at: datetime
    image_url: str | None = None
    username: str | None = None
    phone: str | None = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def can_organize(self) -> bool:
        return self.role in (Role.ORGANIZER, Role.ADMIN)


@dataclass(frozen=True)
class IdentityProfile:
    """Provider-managed user fields received on identity sync."""

    external_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None
    username: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class Category:
    """Domain representation of a Category."""

    id: CategoryId
    name: str
    slug: str
    icon: str | None = None
    color: str | None = None


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    title: str
    slug: str
    description: str
    organizer_id: UserId
    category_id: CategoryId
    location_name: str
    address: str
    starts_at: datetime
    ends_at: datetime
    timezone: str
    cover_image_url: str
    is_published: bool
    approval_status: ApprovalStatus
    min_order: int
    max_order: int
    created_at: datetime
    updated_at: datetime
    short_description: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    total_capacity: int | None = None
    tags: tuple[str, ...] = ()
    approval_notes: str | None = None
    reviewed_by: UserId | None = None
    reviewed_at: datetime | None = None

    @property
    def is_publicly_visible(self) -> bool:
        return self.is_published and self.approval_status == ApprovalStatus.APPROVED

    def is_managed_by(self, user: User) -> bool:
        return user.is_admin or self.organizer_id == user.id


@dataclass(frozen=True)
class TicketType:
    """Domain representation of a TicketType."""

    id: TicketTypeId
    event_id: EventId
    name: str
    price: Money
    total_quantity: Capacity
    sold_quantity: Capacity
    is_visible: bool
    min_per_order: int
    max_per_order: int
    description: str | None = None
    sale_start: datetime | None = None
    sale_end: datetime | None = None

    @property
    def remaining(self) -> int:
        return self.total_quantity.value - self.sold_quantity.value

    @property
    def is_free(self) -> bool:
        return self.price.is_zero

    def is_on_sale(self, at: datetime) -> bool:
        if self.sale_start is not None and at < self.sale_start:
            return False
        if self.sale_end is not None and at > self.sale_end:
            return False
        return True

    def accepts_quantity(self, quantity: int) -> bool:
        return self.min_per_order <= quantity <= self.max_per_order


@dataclass(frozen=True)
class TicketTypeDraft:
    """Fields for a ticket type that does not exist yet."""

    name: str
    price: Money
    total_quantity: Capacity
    is_visible: bool = True
    min_per_order: int = 1
    max_per_order: int = 10
    description: str | None = None
    sale_start: datetime | None = None
    sale_end: datetime | None = None


@dataclass(frozen=True)
class EventDraft:
    """Fields an organizer supplies when creating an event."""

    title: str
    description: str
    category_id: CategoryId
    location_name: str
    address: str
    starts_at: datetime
    ends_at: datetime
    timezone: str
    cover_image_url: str
    short_description: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    total_capacity: int | None = None
    min_order: int = 1
    max_order: int = 10
    tags: tuple[str, ...] = ()
    ticket_types: tuple[TicketTypeDraft, ...] = ()


@dataclass(frozen=True)
class OrderItem:
    """One ticket type and quantity inside an Order."""

    ticket_type_id: TicketTypeId
    quantity: int
    unit_price: Money

    @property
    def subtotal(self) -> Money:
        return self.unit_price.times(self.quantity)


@dataclass(frozen=True)
class Order:
    """Domain representation of an Order."""

    id: OrderId
    event_id: EventId
    buyer_id: UserId
    total: Money
    status: OrderStatus
    created_at: datetime
    expires_at: datetime | None = None
    completed_at: datetime | None = None
    payment_provider: str | None = None
    payment_reference: str | None = None
    items: tuple[OrderItem, ...] = ()

    @property
    def ticket_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def is_expired(self, at: datetime) -> bool:
        return self.expires_at is not None and at >= self.expires_at


@dataclass(frozen=True)
class Ticket:
    """Domain representation of an issued Ticket."""

    id: TicketId
    order_id: OrderId
    event_id: EventId
    ticket_type_id: TicketTypeId
    user_id: UserId
    ticket_number: str
    qr_code_secret: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    checked_in_at: datetime | None = None
    checked_in_by: UserId | None = None


@dataclass(frozen=True)
class NewTicket:
    """A ticket about to be issued; the store assigns id and timestamps."""

    ticket_type_id: TicketTypeId
    ticket_number: str
    qr_code_secret: str


@dataclass(frozen=True)
class WaitlistEntry:
    """Domain representation of a waitlist entry."""

    event_id: EventId
    user_id: UserId
    status: WaitlistStatus
    created_at: datetime
    ticket_type_ids: tuple[TicketTypeId, ...] = ()


@dataclass(frozen=True)
class Activity:
    """Audit record of an action taken in the system."""

    action: str
    created_at: datetime
    actor_id: UserId | None = None
    event_id: EventId | None = None
    order_id: OrderId | None = None
    metadata: dict = field(default_factory=dict)


# Read aggregates


@dataclass(frozen=True)
class PaidOrderHold:
    """Result of reserving inventory for a paid checkout."""

    order_id: OrderId
    total: Money
    expires_at: datetime


@dataclass(frozen=True)
class EventTickets:
    """A user's tickets for one event."""

    event: Event
    tickets: tuple[Ticket, ...]


@dataclass(frozen=True)
class AttendeeTicket:
    ticket: Ticket
    ticket_type: TicketType | None


@dataclass(frozen=True)
class Attendee:
    """One user's non-voided tickets for an event."""

    user: User
    tickets: tuple[AttendeeTicket, ...]
    total_paid: int

    @property
    def ticket_count(self) -> int:
        return len(self.tickets)


@dataclass(frozen=True)
class OrderConfirmation:
    event: Event
    order: Order
    tickets: tuple[Ticket, ...]


@dataclass(frozen=True)
class EventSalesStats:
    total_tickets_sold: int
    total_checked_in: int
    total_revenue: int
    total_capacity: int


@dataclass(frozen=True)
class OrganizerEvent:
    event: Event
    ticket_types: tuple[TicketType, ...]
    stats: EventSalesStats


@dataclass(frozen=True)
class EventDetail:
    """An event with its ticket types, category and organizer."""

    event: Event
    ticket_types: tuple[TicketType, ...]
    category: Category | None = None
    organizer: User | None = None

    @property
    def available_tickets(self) -> int:
        return sum(tt.remaining for tt in self.ticket_types)

    @property
    def is_sold_out(self) -> bool:
        return self.available_tickets == 0

    @property
    def total_capacity(self) -> int:
        return sum(tt.total_quantity.value for tt in self.ticket_types)

    @property
    def price_range(self) -> tuple[int, int]:
        prices = [tt.price.amount for tt in self.ticket_types]
        if not prices:
            return (0, 0)
        return (min(prices), max(prices))


@dataclass(frozen=True)
class OrganizerStats:
    total_events: int
    published_events: int
    upcoming_events: int
    past_events: int
    total_tickets_sold: int
    total_checked_in: int
    total_revenue: int


@dataclass(frozen=True)
class AdminStats:
    total_events: int
    pending_events: int
    approved_events: int
    rejected_events: int
    published_events: int
    total_users: int
    organizers: int
    attendees: int
    admins: int
    total_tickets_sold: int
    total_revenue: int
