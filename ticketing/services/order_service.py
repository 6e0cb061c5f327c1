"""Order/ticket ledger.

Turns a purchase intent into inventory reservations, an order record and one
ticket per purchased unit. Every check-then-write sequence below runs inside
a single ``atomic()`` block with the affected ticket-type rows locked, and the
store's conditional increment refuses to push sold_quantity past
total_quantity, so concurrent buyers cannot oversell a ticket type.

Free orders are completed immediately. Paid orders reserve inventory first
(status pending, with a payment hold) and issue tickets once the client
reports that payment completed. Holds that are never completed are cancelled
and their inventory returned by ``release_expired_orders``.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta

from ticketing.domain import (
    Activity,
    Event,
    EventId,
    Identity,
    Money,
    NewTicket,
    Order,
    OrderConfirmation,
    OrderId,
    OrderItem,
    OrderStatus,
    PaidOrderHold,
    Ticket,
    TicketType,
    TicketTypeId,
    UserId,
)
from ticketing.domain.errors import (
    AlreadyRegisteredError,
    EventNotFoundError,
    InsufficientInventoryError,
    InvalidFreeTicketError,
    InvalidTicketTypeError,
    MixedCurrencyError,
    OrderExpiredError,
    OrderItemsMismatchError,
    OrderNotFoundError,
    OrderNotPendingError,
    QuantityOutOfRangeError,
    TicketSalesClosedError,
    ZeroAmountRejectedError,
)
from ticketing.services.common import Clock, parse_id, utcnow
from ticketing.services.identity_service import IdentityService
from ticketing.stores.interfaces import (
    ActivityStore,
    CatalogStore,
    DuplicateTicketError,
    OrderStore,
)

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_HOLD = timedelta(minutes=30)

FREE_TICKET_PREFIX = "FREE"
PAID_TICKET_PREFIX = "TKT"

ISSUE_ATTEMPTS = 3


def ticket_number(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def new_ticket(ticket_type_id: TicketTypeId, prefix: str) -> NewTicket:
    return NewTicket(
        ticket_type_id=ticket_type_id,
        ticket_number=ticket_number(prefix),
        qr_code_secret=str(uuid.uuid4()),
    )


def merge_lines(
    lines: Iterable[tuple[str, int]],
) -> dict[TicketTypeId, int]:
    """Parse (ticket_type_id, quantity) pairs, summing repeated ticket types."""
    merged: dict[TicketTypeId, int] = {}
    for raw_id, quantity in lines:
        ttid = parse_id(TicketTypeId, raw_id, "ticket type")
        merged[ttid] = merged.get(ttid, 0) + int(quantity)
    return merged


class OrderService:
    """Service for free and paid ticket orders."""

    def __init__(
        self,
        catalog: CatalogStore,
        orders: OrderStore,
        activities: ActivityStore,
        identity: IdentityService,
        clock: Clock = utcnow,
        payment_hold: timedelta = DEFAULT_PAYMENT_HOLD,
    ) -> None:
        self._catalog = catalog
        self._orders = orders
        self._activities = activities
        self._identity = identity
        self._clock = clock
        self._payment_hold = payment_hold

    def create_free_order(
        self,
        identity: Identity | None,
        event_id: str,
        ticket_type_id: str,
        quantity: int,
    ) -> Order:
        """Register the caller for an event with a free ticket type.

        Creates one completed order and ``quantity`` tickets, or nothing.

        Raises:
            UnauthenticatedError: If the caller has no synced user.
            InvalidIdError: If an ID is not a valid UUID.
            EventNotFoundError: If the event is missing or not public.
            AlreadyRegisteredError: If the caller already has a completed order.
            InvalidFreeTicketError: If the ticket type is missing, foreign or priced.
            QuantityOutOfRangeError: If quantity breaks the per-order limits.
            TicketSalesClosedError: If the ticket type is outside its sale window.
            InsufficientInventoryError: If fewer than ``quantity`` tickets remain.
        """
        buyer = self._identity.require_user(identity)
        eid = parse_id(EventId, event_id, "event")
        ttid = parse_id(TicketTypeId, ticket_type_id, "ticket type")
        now = self._clock()

        with self._orders.atomic():
            self._purchasable_event(eid)
            if self._orders.find_completed_order(buyer.id, eid) is not None:
                raise AlreadyRegisteredError(event_id)

            ticket_type = self._catalog.lock_ticket_types([ttid]).get(ttid)
            if ticket_type is None or ticket_type.event_id != eid or not ticket_type.is_free:
                raise InvalidFreeTicketError(ticket_type_id)
            self._check_line(ticket_type, quantity, now)
            self._reserve(ticket_type, quantity)

            order = self._orders.create_order(
                eid,
                buyer.id,
                OrderStatus.COMPLETED,
                [OrderItem(ttid, quantity, ticket_type.price)],
                currency=ticket_type.price.currency,
                completed_at=now,
            )
            tickets = self._issue(order, buyer.id, FREE_TICKET_PREFIX)
            self._record("ticket_purchased", buyer.id, order, len(tickets))

        logger.info(
            "Free order %s completed: %d ticket(s) of %s for user %s",
            order.id,
            quantity,
            ttid,
            buyer.id,
        )
        return order

    def create_paid_order(
        self,
        identity: Identity | None,
        event_id: str,
        items: Iterable[tuple[str, int]],
    ) -> PaidOrderHold:
        """Reserve inventory for a paid checkout and open a payment hold.

        Inventory is taken immediately; it is returned only if the hold
        expires and the expired-order sweep cancels the order.

        Raises:
            UnauthenticatedError: If the caller has no synced user.
            InvalidIdError: If an ID is not a valid UUID.
            EventNotFoundError: If the event is missing or not public.
            AlreadyRegisteredError: If the caller already has a completed order.
            InvalidTicketTypeError: If a ticket type is missing or foreign.
            QuantityOutOfRangeError: If a quantity breaks the per-order limits.
            TicketSalesClosedError: If a ticket type is outside its sale window.
            InsufficientInventoryError: If a line exceeds the remaining inventory.
            MixedCurrencyError: If the lines are priced in different currencies.
            ZeroAmountRejectedError: If the order total is zero.
        """
        buyer = self._identity.require_user(identity)
        eid = parse_id(EventId, event_id, "event")
        lines = merge_lines(items)
        now = self._clock()

        with self._orders.atomic():
            self._purchasable_event(eid)
            if self._orders.find_completed_order(buyer.id, eid) is not None:
                raise AlreadyRegisteredError(event_id)

            locked = self._catalog.lock_ticket_types(lines.keys())
            order_items = []
            for ttid, quantity in lines.items():
                ticket_type = locked.get(ttid)
                if ticket_type is None or ticket_type.event_id != eid:
                    raise InvalidTicketTypeError(str(ttid))
                self._check_line(ticket_type, quantity, now)
                if ticket_type.remaining < quantity:
                    raise InsufficientInventoryError(
                        str(ttid), quantity, ticket_type.remaining
                    )
                order_items.append(OrderItem(ttid, quantity, ticket_type.price))

            currencies = {item.unit_price.currency for item in order_items}
            if len(currencies) > 1:
                raise MixedCurrencyError()
            currency = currencies.pop()
            total = sum((item.subtotal for item in order_items), Money.zero(currency))
            if total.is_zero:
                raise ZeroAmountRejectedError()

            for item in order_items:
                self._reserve(locked[item.ticket_type_id], item.quantity)

            order = self._orders.create_order(
                eid,
                buyer.id,
                OrderStatus.PENDING,
                order_items,
                currency=currency,
                expires_at=now + self._payment_hold,
            )
            self._record("order_reserved", buyer.id, order, order.ticket_count)

        logger.info(
            "Paid order %s reserved for user %s: %s until %s",
            order.id,
            buyer.id,
            order.total,
            order.expires_at,
        )
        return PaidOrderHold(order_id=order.id, total=order.total, expires_at=order.expires_at)

    def complete_order_payment(
        self,
        identity: Identity | None,
        order_id: str,
        payment_reference: str,
        items: Iterable[tuple[str, int]] | None = None,
        payment_provider: str | None = None,
    ) -> list[Ticket]:
        """Complete a pending order after payment and issue its tickets.

        Tickets are issued from the lines reserved with the order. When the
        client repeats its items they must match those lines.

        A hold that loses to another completed order of the same buyer can
        never be paid, so it is cancelled and its inventory returned before
        the error is raised.

        Raises:
            UnauthenticatedError: If the caller has no synced user.
            InvalidIdError: If the order_id is not a valid UUID.
            OrderNotFoundError: If the order does not exist or is not the caller's.
            OrderNotPendingError: If the order is not pending.
            OrderExpiredError: If the payment hold has ended.
            OrderItemsMismatchError: If items differ from the reserved lines.
            AlreadyRegisteredError: If the caller completed another order meanwhile.
        """
        buyer = self._identity.require_user(identity)
        oid = parse_id(OrderId, order_id, "order")
        expected = merge_lines(items) if items is not None else None
        now = self._clock()

        try:
            with self._orders.atomic():
                order = self._orders.get_order_for_update(oid)
                if order is None or order.buyer_id != buyer.id:
                    raise OrderNotFoundError(order_id)
                if order.status != OrderStatus.PENDING:
                    raise OrderNotPendingError(order_id)
                if order.is_expired(now):
                    raise OrderExpiredError(order_id)
                reserved = {item.ticket_type_id: item.quantity for item in order.items}
                if expected is not None and expected != reserved:
                    raise OrderItemsMismatchError(order_id)

                order = self._orders.mark_completed(
                    oid, payment_reference, payment_provider, completed_at=now
                )
                tickets = self._issue(order, buyer.id, PAID_TICKET_PREFIX)
                self._record("ticket_purchased", buyer.id, order, len(tickets))
        except AlreadyRegisteredError:
            if self._cancel_pending(oid) is not None:
                logger.info("Cancelled order %s: buyer %s already registered", oid, buyer.id)
            raise

        logger.info(
            "Paid order %s completed with reference %s: %d ticket(s) issued",
            oid,
            payment_reference,
            len(tickets),
        )
        return tickets

    def has_completed_order(self, event_id: str, identity: Identity | None) -> bool:
        """Check if the caller already holds a completed order for the event."""
        eid = parse_id(EventId, event_id, "event")
        user = self._identity.current_user(identity)
        if user is None:
            return False
        return self._orders.find_completed_order(user.id, eid) is not None

    def get_order_confirmation(
        self, identity: Identity | None, slug: str
    ) -> OrderConfirmation | None:
        """Return the caller's latest completed order for an event, with tickets."""
        user = self._identity.current_user(identity)
        if user is None:
            return None
        event = self._catalog.get_event_by_slug(slug)
        if event is None or not event.is_publicly_visible:
            return None
        order = self._orders.latest_completed_order(user.id, event.id)
        if order is None:
            return None
        return OrderConfirmation(
            event=event,
            order=order,
            tickets=tuple(self._orders.tickets_for_order(order.id)),
        )

    def release_expired_orders(self, now: datetime | None = None) -> int:
        """Cancel pending orders whose hold has ended and return their inventory.

        Returns the number of orders cancelled.
        """
        now = now or self._clock()
        released = 0
        for oid in self._orders.expired_pending_orders(now):
            order = self._cancel_pending(oid, expired_at=now)
            if order is None:
                continue
            released += 1
            logger.info("Released expired order %s (%d unit(s))", oid, order.ticket_count)
        if released:
            logger.info("Expired-order sweep cancelled %d order(s)", released)
        return released

    def _cancel_pending(
        self, order_id: OrderId, expired_at: datetime | None = None
    ) -> Order | None:
        """Cancel a pending order and return its reserved inventory.

        With ``expired_at`` the order is only cancelled if its hold has
        ended by then. Returns None when nothing was cancelled.
        """
        with self._orders.atomic():
            order = self._orders.get_order_for_update(order_id)
            # Completed or cancelled by a concurrent request since listing.
            if order is None or order.status != OrderStatus.PENDING:
                return None
            if expired_at is not None and not order.is_expired(expired_at):
                return None
            for item in order.items:
                self._catalog.release_inventory(item.ticket_type_id, item.quantity)
            order = self._orders.mark_cancelled(order_id)
            self._record("order_cancelled", None, order, order.ticket_count)
        return order

    def _purchasable_event(self, event_id: EventId) -> Event:
        event = self._catalog.get_event(event_id)
        if event is None or not event.is_publicly_visible:
            raise EventNotFoundError(str(event_id))
        return event

    def _check_line(
        self, ticket_type: TicketType, quantity: int, now: datetime
    ) -> None:
        if not ticket_type.accepts_quantity(quantity):
            raise QuantityOutOfRangeError(
                str(ticket_type.id), ticket_type.min_per_order, ticket_type.max_per_order
            )
        if not ticket_type.is_on_sale(now):
            raise TicketSalesClosedError(str(ticket_type.id))

    def _reserve(self, ticket_type: TicketType, quantity: int) -> None:
        if ticket_type.remaining < quantity:
            raise InsufficientInventoryError(
                str(ticket_type.id), quantity, ticket_type.remaining
            )
        if not self._catalog.reserve_inventory(ticket_type.id, quantity):
            raise InsufficientInventoryError(
                str(ticket_type.id), quantity, ticket_type.remaining
            )

    def _issue(self, order: Order, user_id: UserId, prefix: str) -> list[Ticket]:
        attempt = 1
        while True:
            new_tickets = [
                new_ticket(item.ticket_type_id, prefix)
                for item in order.items
                for _ in range(item.quantity)
            ]
            try:
                return self._orders.issue_tickets(order, user_id, new_tickets)
            except DuplicateTicketError:
                if attempt >= ISSUE_ATTEMPTS:
                    raise
                logger.warning(
                    "Ticket number collision for order %s, regenerating (attempt %d)",
                    order.id,
                    attempt,
                )
                attempt += 1

    def _record(
        self, action: str, actor_id: UserId | None, order: Order, units: int
    ) -> None:
        self._activities.record(
            Activity(
                action=action,
                created_at=self._clock(),
                actor_id=actor_id,
                event_id=order.event_id,
                order_id=order.id,
                metadata={"units": units, "total": order.total.amount},
            )
        )
