"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every write that a
service groups under ``atomic()`` commits or rolls back as one unit.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import datetime

from ticketing.domain import (
    Activity,
    ApprovalStatus,
    Category,
    CategoryId,
    Event,
    EventDraft,
    EventId,
    IdentityProfile,
    NewTicket,
    Order,
    OrderId,
    OrderItem,
    OrderStatus,
    Role,
    Ticket,
    TicketType,
    TicketTypeDraft,
    TicketTypeId,
    User,
    UserId,
    UserStatus,
    WaitlistEntry,
)


class DuplicateTicketError(Exception):
    """A generated ticket number or QR secret is already taken.

    Raised by ``OrderStore.issue_tickets`` with nothing written, so the
    caller can regenerate and try again inside the same transaction.
    """


class TransactionalStore(ABC):
    """Base for stores whose writes can be grouped atomically."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager running its block as one transaction."""
        ...


class UserStore(TransactionalStore):
    """Interface for the user directory."""

    @abstractmethod
    def get_by_external_id(self, external_id: str) -> User | None:
        """Return the user synced for an identity subject, or None."""
        ...

    @abstractmethod
    def get_user(self, user_id: UserId) -> User | None:
        ...

    @abstractmethod
    def get_users(self, user_ids: Iterable[UserId]) -> dict[UserId, User]:
        """Return the users that exist among user_ids, keyed by id."""
        ...

    @abstractmethod
    def create_user(self, profile: IdentityProfile, role: Role) -> User:
        ...

    @abstractmethod
    def update_profile(self, user_id: UserId, profile: IdentityProfile) -> User:
        """Overwrite provider-managed fields only; role and status are untouched."""
        ...

    @abstractmethod
    def set_status(self, user_id: UserId, status: UserStatus) -> None:
        ...

    @abstractmethod
    def has_records(self, user_id: UserId) -> bool:
        """Check if the user owns events, orders or tickets."""
        ...

    @abstractmethod
    def delete_user(self, user_id: UserId) -> None:
        ...

    @abstractmethod
    def count_by_role(self) -> dict[Role, int]:
        ...


class CatalogStore(TransactionalStore):
    """Interface for categories, events and ticket types."""

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """Return all categories ordered by name."""
        ...

    @abstractmethod
    def get_category(self, category_id: CategoryId) -> Category | None:
        ...

    @abstractmethod
    def get_category_by_slug(self, slug: str) -> Category | None:
        ...

    @abstractmethod
    def create_category(
        self, name: str, slug: str, icon: str | None, color: str | None
    ) -> Category:
        ...

    @abstractmethod
    def slug_exists(self, slug: str) -> bool:
        ...

    @abstractmethod
    def create_event(
        self, draft: EventDraft, slug: str, organizer_id: UserId
    ) -> Event:
        """Insert an unpublished, pending event."""
        ...

    @abstractmethod
    def create_ticket_type(
        self, event_id: EventId, draft: TicketTypeDraft
    ) -> TicketType:
        """Insert a ticket type with sold_quantity set to zero."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def get_event_for_update(self, event_id: EventId) -> Event | None:
        """Return an event and lock its row until the transaction ends."""
        ...

    @abstractmethod
    def get_events(self, event_ids: Iterable[EventId]) -> dict[EventId, Event]:
        ...

    @abstractmethod
    def get_event_by_slug(self, slug: str) -> Event | None:
        ...

    @abstractmethod
    def list_published_events(
        self, category_id: CategoryId | None = None
    ) -> list[Event]:
        """Return published, approved events ordered by starts_at ascending."""
        ...

    @abstractmethod
    def list_events(self, approval_status: ApprovalStatus | None = None) -> list[Event]:
        """Return events ordered by created_at descending, optionally filtered."""
        ...

    @abstractmethod
    def list_events_by_organizer(self, organizer_id: UserId) -> list[Event]:
        ...

    @abstractmethod
    def record_review(
        self,
        event_id: EventId,
        approval_status: ApprovalStatus,
        is_published: bool,
        notes: str | None,
        reviewed_by: UserId,
        reviewed_at: datetime,
    ) -> Event:
        """Write the approval decision and publication flag in one update."""
        ...

    @abstractmethod
    def get_ticket_types(
        self, event_id: EventId, visible_only: bool = False
    ) -> list[TicketType]:
        ...

    @abstractmethod
    def get_ticket_types_by_id(
        self, ticket_type_ids: Iterable[TicketTypeId]
    ) -> dict[TicketTypeId, TicketType]:
        ...

    @abstractmethod
    def lock_ticket_types(
        self, ticket_type_ids: Iterable[TicketTypeId]
    ) -> dict[TicketTypeId, TicketType]:
        """Return ticket types locked for update, keyed by id; missing ids are absent."""
        ...

    @abstractmethod
    def reserve_inventory(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        """Increment sold_quantity by quantity unless that would exceed total_quantity.

        Returns False, changing nothing, when not enough inventory remains.
        """
        ...

    @abstractmethod
    def release_inventory(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        """Decrement sold_quantity by quantity, never below zero."""
        ...


class OrderStore(TransactionalStore):
    """Interface for orders and issued tickets."""

    @abstractmethod
    def find_completed_order(self, buyer_id: UserId, event_id: EventId) -> Order | None:
        ...

    @abstractmethod
    def latest_completed_order(
        self, buyer_id: UserId, event_id: EventId
    ) -> Order | None:
        ...

    @abstractmethod
    def create_order(
        self,
        event_id: EventId,
        buyer_id: UserId,
        status: OrderStatus,
        items: Iterable[OrderItem],
        currency: str,
        expires_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> Order:
        """Insert an order and its items; total_amount is the sum of item subtotals."""
        ...

    @abstractmethod
    def get_order_for_update(self, order_id: OrderId) -> Order | None:
        ...

    @abstractmethod
    def mark_completed(
        self,
        order_id: OrderId,
        payment_reference: str,
        payment_provider: str | None,
        completed_at: datetime,
    ) -> Order:
        ...

    @abstractmethod
    def mark_cancelled(self, order_id: OrderId) -> Order:
        ...

    @abstractmethod
    def expired_pending_orders(self, now: datetime) -> list[OrderId]:
        """Return ids of pending orders whose hold ended at or before now."""
        ...

    @abstractmethod
    def issue_tickets(
        self, order: Order, user_id: UserId, tickets: Iterable[NewTicket]
    ) -> list[Ticket]:
        """Insert valid tickets for an order.

        Raises:
            DuplicateTicketError: If a ticket number or QR secret exists.
        """
        ...

    @abstractmethod
    def tickets_for_order(self, order_id: OrderId) -> list[Ticket]:
        ...

    @abstractmethod
    def tickets_for_user(self, user_id: UserId) -> list[Ticket]:
        """Return all of a user's tickets, any status, newest first."""
        ...

    @abstractmethod
    def tickets_for_event(self, event_id: EventId) -> list[Ticket]:
        """Return all tickets for an event, any status, oldest first."""
        ...

    @abstractmethod
    def tickets_for_events(self, event_ids: Iterable[EventId]) -> list[Ticket]:
        ...

    @abstractmethod
    def get_ticket_by_secret_for_update(self, qr_code_secret: str) -> Ticket | None:
        ...

    @abstractmethod
    def mark_checked_in(
        self, ticket: Ticket, checked_in_by: UserId, checked_in_at: datetime
    ) -> Ticket:
        ...

    @abstractmethod
    def count_tickets_sold(self) -> tuple[int, int]:
        """Return (non-voided ticket count, their summed ticket-type price)."""
        ...


class WaitlistStore(TransactionalStore):
    @abstractmethod
    def get_entry(self, event_id: EventId, user_id: UserId) -> WaitlistEntry | None:
        ...

    @abstractmethod
    def add_entry(
        self,
        event_id: EventId,
        user_id: UserId,
        ticket_type_ids: Iterable[TicketTypeId],
    ) -> WaitlistEntry:
        ...


class ActivityStore(ABC):
    @abstractmethod
    def record(self, activity: Activity) -> None:
        ...

    @abstractmethod
    def list_for_event(self, event_id: EventId, limit: int) -> list[Activity]:
        """Return up to limit activities for an event, newest first."""
        ...
