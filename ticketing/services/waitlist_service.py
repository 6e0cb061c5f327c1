"""Waitlist for sold-out events."""

from ticketing.domain import EventId, Identity, TicketTypeId, WaitlistEntry
from ticketing.domain.errors import EventNotFoundError, InvalidTicketTypeError
from ticketing.services.common import parse_id
from ticketing.services.identity_service import IdentityService
from ticketing.stores.interfaces import CatalogStore, WaitlistStore


class WaitlistService:
    def __init__(
        self, catalog: CatalogStore, waitlist: WaitlistStore, identity: IdentityService
    ) -> None:
        self._catalog = catalog
        self._waitlist = waitlist
        self._identity = identity

    def join_waitlist(
        self,
        identity: Identity | None,
        event_id: str,
        ticket_type_ids: list[str] | None = None,
    ) -> tuple[WaitlistEntry, bool]:
        """Put the caller on an event's waitlist; joining twice is a no-op.

        Raises:
            UnauthenticatedError: If the caller has no synced user.
            InvalidIdError: If an ID is not a valid UUID.
            EventNotFoundError: If the event is missing or not public.
            InvalidTicketTypeError: If a ticket type does not belong to the event.
        """
        user = self._identity.require_user(identity)
        eid = parse_id(EventId, event_id, "event")
        ttids = [parse_id(TicketTypeId, raw, "ticket type") for raw in ticket_type_ids or []]

        with self._waitlist.atomic():
            event = self._catalog.get_event(eid)
            if event is None or not event.is_publicly_visible:
                raise EventNotFoundError(event_id)
            ticket_types = self._catalog.get_ticket_types_by_id(ttids)
            for ttid in ttids:
                if ttid not in ticket_types or ticket_types[ttid].event_id != eid:
                    raise InvalidTicketTypeError(str(ttid))

            existing = self._waitlist.get_entry(eid, user.id)
            if existing is not None:
                return existing, False
            return self._waitlist.add_entry(eid, user.id, ttids), True
