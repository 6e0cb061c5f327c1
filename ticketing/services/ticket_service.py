"""Ticket read views and door check-in."""

import logging

from ticketing.domain import (
    Activity,
    Attendee,
    AttendeeTicket,
    EventId,
    EventTickets,
    Identity,
    Ticket,
    TicketStatus,
    UserId,
)
from ticketing.domain.errors import (
    TicketNotFoundError,
    TicketNotValidError,
    UnauthorizedError,
)
from ticketing.services.common import Clock, parse_id, utcnow
from ticketing.services.identity_service import IdentityService
from ticketing.stores.interfaces import ActivityStore, CatalogStore, OrderStore, UserStore

logger = logging.getLogger(__name__)


class TicketService:
    def __init__(
        self,
        catalog: CatalogStore,
        orders: OrderStore,
        users: UserStore,
        activities: ActivityStore,
        identity: IdentityService,
        clock: Clock = utcnow,
    ) -> None:
        self._catalog = catalog
        self._orders = orders
        self._users = users
        self._activities = activities
        self._identity = identity
        self._clock = clock

    def get_user_tickets(self, identity: Identity | None) -> list[EventTickets]:
        """Return the caller's tickets grouped by event, newest first.

        Every status is included. Anonymous callers get an empty list.
        """
        user = self._identity.current_user(identity)
        if user is None:
            return []
        tickets = self._orders.tickets_for_user(user.id)
        if not tickets:
            return []

        grouped: dict[EventId, list[Ticket]] = {}
        for ticket in tickets:
            grouped.setdefault(ticket.event_id, []).append(ticket)
        events = self._catalog.get_events(grouped.keys())
        return [
            EventTickets(event=events[event_id], tickets=tuple(event_tickets))
            for event_id, event_tickets in grouped.items()
            if event_id in events
        ]

    def get_event_attendees(
        self, identity: Identity | None, event_id: str
    ) -> list[Attendee]:
        """Return non-voided tickets for an event grouped by attendee.

        Callers who are neither the event's organizer nor an admin get an
        empty list rather than an error.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
        """
        eid = parse_id(EventId, event_id, "event")
        user = self._identity.current_user(identity)
        event = self._catalog.get_event(eid)
        if user is None or event is None or not event.is_managed_by(user):
            logger.warning(
                "Attendee list for event %s withheld from %s",
                event_id,
                identity.subject if identity else "anonymous caller",
            )
            return []

        tickets = [
            t for t in self._orders.tickets_for_event(eid) if t.status != TicketStatus.VOIDED
        ]
        users = self._users.get_users({t.user_id for t in tickets})
        ticket_types = self._catalog.get_ticket_types_by_id({t.ticket_type_id for t in tickets})

        grouped: dict[UserId, list[AttendeeTicket]] = {}
        for ticket in tickets:
            if ticket.user_id not in users:
                continue
            grouped.setdefault(ticket.user_id, []).append(
                AttendeeTicket(ticket=ticket, ticket_type=ticket_types.get(ticket.ticket_type_id))
            )
        return [
            Attendee(
                user=users[user_id],
                tickets=tuple(entries),
                total_paid=sum(
                    entry.ticket_type.price.amount for entry in entries if entry.ticket_type
                ),
            )
            for user_id, entries in grouped.items()
        ]

    def check_in_ticket(self, identity: Identity | None, qr_code_secret: str) -> Ticket:
        """Mark a valid ticket as checked in.

        Raises:
            UnauthorizedError: If the caller does not manage the ticket's event.
            TicketNotFoundError: If no ticket carries this QR secret.
            TicketNotValidError: If the ticket is already checked in or voided.
        """
        staff = self._identity.require_organizer(identity)
        now = self._clock()
        with self._orders.atomic():
            ticket = self._orders.get_ticket_by_secret_for_update(qr_code_secret)
            if ticket is None:
                raise TicketNotFoundError()
            event = self._catalog.get_event(ticket.event_id)
            if event is None or not event.is_managed_by(staff):
                raise UnauthorizedError("Ticket belongs to an event you do not manage")
            if ticket.status != TicketStatus.VALID:
                raise TicketNotValidError(ticket.status.value)
            ticket = self._orders.mark_checked_in(ticket, staff.id, now)
            self._activities.record(
                Activity(
                    action="check_in_occurred",
                    created_at=now,
                    actor_id=staff.id,
                    event_id=ticket.event_id,
                    order_id=ticket.order_id,
                    metadata={"ticket_number": ticket.ticket_number},
                )
            )
        logger.info("Ticket %s checked in by %s", ticket.ticket_number, staff.id)
        return ticket
