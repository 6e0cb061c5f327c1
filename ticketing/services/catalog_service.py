"""Catalog service - events, ticket types and categories.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
from datetime import datetime, timedelta

from django.utils.text import slugify

from ticketing.domain import (
    Activity,
    Category,
    CategoryId,
    Event,
    EventDetail,
    EventDraft,
    EventId,
    EventSalesStats,
    Identity,
    OrganizerEvent,
    OrganizerStats,
    Ticket,
    TicketStatus,
    TicketType,
    TicketTypeDraft,
    User,
)
from ticketing.domain.errors import (
    CategoryNotFoundError,
    EventNotFoundError,
    InvalidEventDataError,
    UnauthorizedError,
)
from ticketing.services.common import Clock, parse_id, utcnow
from ticketing.services.identity_service import IdentityService
from ticketing.stores.interfaces import ActivityStore, CatalogStore, OrderStore, UserStore

logger = logging.getLogger(__name__)

LISTING_LIMIT = 50
FEATURED_LIMIT = 5
RECOMMENDATION_LIMIT = 6
ACTIVITY_LIMIT = 20

STARTING_SOON = timedelta(days=7)


def validate_ticket_type(draft: TicketTypeDraft) -> None:
    """Raise InvalidEventDataError if a ticket type draft breaks a rule."""
    if not draft.name.strip():
        raise InvalidEventDataError("Ticket type name is required")
    if draft.min_per_order < 1 or draft.max_per_order < draft.min_per_order:
        raise InvalidEventDataError(
            "Per-order limits must satisfy 1 <= minimum <= maximum"
        )
    if (
        draft.sale_start is not None
        and draft.sale_end is not None
        and draft.sale_end < draft.sale_start
    ):
        raise InvalidEventDataError("Sale window ends before it starts")


def sales_stats(
    ticket_types: list[TicketType] | tuple[TicketType, ...], tickets: list[Ticket]
) -> EventSalesStats:
    """Summarize non-voided tickets against an event's ticket types."""
    prices = {tt.id: tt.price.amount for tt in ticket_types}
    sold = [t for t in tickets if t.status != TicketStatus.VOIDED]
    return EventSalesStats(
        total_tickets_sold=len(sold),
        total_checked_in=sum(1 for t in sold if t.status == TicketStatus.CHECKED_IN),
        total_revenue=sum(prices.get(t.ticket_type_id, 0) for t in sold),
        total_capacity=sum(tt.total_quantity.value for tt in ticket_types),
    )


def matches_search(event: Event, term: str) -> bool:
    """Case-insensitive match on title, description, location or a tag."""
    term = term.lower()
    return (
        term in event.title.lower()
        or term in event.description.lower()
        or term in event.location_name.lower()
        or any(term in tag.lower() for tag in event.tags)
    )


def recommendation_score(
    event: Event,
    categories: set[CategoryId],
    tags: set[str],
    now: datetime,
) -> int:
    score = 3 if event.category_id in categories else 0
    score += sum(1 for tag in event.tags if tag.lower() in tags)
    if event.starts_at - now < STARTING_SOON:
        score += 1
    return score


class CatalogService:
    """Service for event catalog operations."""

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

    def list_categories(self) -> list[Category]:
        return self._catalog.list_categories()

    def ensure_categories(self, defaults: list[dict]) -> list[Category]:
        """Create any of the given categories whose slug does not exist yet.

        Returns the categories that were created.
        """
        created = []
        with self._catalog.atomic():
            for entry in defaults:
                if self._catalog.get_category_by_slug(entry["slug"]) is not None:
                    continue
                created.append(
                    self._catalog.create_category(
                        entry["name"], entry["slug"], entry.get("icon"), entry.get("color")
                    )
                )
        for category in created:
            logger.info("Created category %s", category.slug)
        return created

    def create_event(self, identity: Identity | None, draft: EventDraft) -> Event:
        """Create a draft event awaiting admin approval.

        Raises:
            UnauthorizedError: If the caller is not an organizer or admin.
            InvalidEventDataError: If the draft breaks an event rule.
            CategoryNotFoundError: If the category does not exist.
        """
        organizer = self._identity.require_organizer(identity)
        if not draft.title.strip():
            raise InvalidEventDataError("Event title is required")
        if draft.ends_at < draft.starts_at:
            raise InvalidEventDataError("Event ends before it starts")
        if draft.min_order < 1 or draft.max_order < draft.min_order:
            raise InvalidEventDataError("Order limits must satisfy 1 <= minimum <= maximum")
        for ticket_type in draft.ticket_types:
            validate_ticket_type(ticket_type)

        with self._catalog.atomic():
            if self._catalog.get_category(draft.category_id) is None:
                raise CategoryNotFoundError(str(draft.category_id))
            event = self._catalog.create_event(
                draft, self._unique_slug(draft.title), organizer.id
            )
            for ticket_type in draft.ticket_types:
                self._catalog.create_ticket_type(event.id, ticket_type)
            self._activities.record(
                Activity(
                    action="event_created",
                    created_at=self._clock(),
                    actor_id=organizer.id,
                    event_id=event.id,
                    metadata={"ticket_types": len(draft.ticket_types)},
                )
            )
        logger.info("Organizer %s created event %s (%s)", organizer.id, event.id, event.slug)
        return event

    def add_ticket_type(
        self, identity: Identity | None, event_id: str, draft: TicketTypeDraft
    ) -> TicketType:
        """Add a ticket type to an event the caller manages.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            UnauthorizedError: If the caller does not manage the event.
        """
        user = self._identity.require_organizer(identity)
        eid = parse_id(EventId, event_id, "event")
        validate_ticket_type(draft)
        with self._catalog.atomic():
            event = self._catalog.get_event(eid)
            if event is None:
                raise EventNotFoundError(event_id)
            if not event.is_managed_by(user):
                raise UnauthorizedError("Event not found or access denied")
            return self._catalog.create_ticket_type(eid, draft)

    def list_published_events(
        self,
        category_id: str | None = None,
        search: str | None = None,
        limit: int = LISTING_LIMIT,
    ) -> list[EventDetail]:
        """Return publicly visible events, soonest first, with their visible ticket types.

        Raises:
            InvalidIdError: If category_id is given and is not a valid UUID.
        """
        cid = parse_id(CategoryId, category_id, "category") if category_id else None
        events = self._catalog.list_published_events(cid)
        if search:
            events = [e for e in events if matches_search(e, search)]
        return [self._detail(e, visible_only=True) for e in events[:limit]]

    def featured_events(self, limit: int = FEATURED_LIMIT) -> list[EventDetail]:
        """Return the next publicly visible events to start."""
        return [self._detail(e, visible_only=True) for e in self._upcoming()[:limit]]

    def recommended_events(
        self, identity: Identity | None, limit: int = RECOMMENDATION_LIMIT
    ) -> list[EventDetail]:
        """Return upcoming events ranked against the caller's ticket history.

        An event scores 3 for sharing a category with an event the caller
        holds tickets for, 1 per shared tag, and 1 for starting within a
        week. Events the caller already holds tickets for are left out, as
        are events scoring zero. Anonymous callers, callers without tickets
        and histories that score nothing get the soonest events instead.
        """
        now = self._clock()
        upcoming = self._upcoming()
        chosen = upcoming[:limit]

        user = self._identity.current_user(identity)
        attended_ids = (
            {t.event_id for t in self._orders.tickets_for_user(user.id)} if user else set()
        )
        if attended_ids:
            attended = self._catalog.get_events(attended_ids).values()
            categories = {e.category_id for e in attended}
            tags = {tag.lower() for e in attended for tag in e.tags}
            scored = [
                (recommendation_score(e, categories, tags, now), e)
                for e in upcoming
                if e.id not in attended_ids
            ]
            scored = [pair for pair in scored if pair[0] > 0]
            if scored:
                scored.sort(key=lambda pair: (-pair[0], pair[1].starts_at))
                chosen = [e for _, e in scored[:limit]]

        return [self._detail(e, visible_only=True) for e in chosen]

    def get_published_event(self, slug: str) -> EventDetail:
        """Return a publicly visible event with its visible ticket types.

        Raises:
            EventNotFoundError: If no publicly visible event has this slug.
        """
        event = self._catalog.get_event_by_slug(slug)
        if event is None or not event.is_publicly_visible:
            raise EventNotFoundError(slug)
        return self._detail(event, visible_only=True)

    def get_event_for_management(
        self, identity: Identity | None, event_id: str
    ) -> EventDetail:
        """Return an event with all its ticket types for its organizer or an admin.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            UnauthorizedError: If the caller does not manage the event.
        """
        user = self._identity.require_user(identity)
        event = self._managed_event(user, event_id)
        return self._detail(event, visible_only=False)

    def get_event_activity(
        self, identity: Identity | None, event_id: str, limit: int = ACTIVITY_LIMIT
    ) -> list[Activity]:
        """Return the newest activity records of an event the caller manages.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            UnauthorizedError: If the caller does not manage the event.
        """
        user = self._identity.require_user(identity)
        event = self._managed_event(user, event_id)
        return self._activities.list_for_event(event.id, limit)

    def list_organizer_events(self, identity: Identity | None) -> list[OrganizerEvent]:
        """Return the caller's events, upcoming first, each with sales stats."""
        organizer = self._identity.require_organizer(identity)
        events = self._sorted_for_dashboard(
            self._catalog.list_events_by_organizer(organizer.id)
        )
        tickets = self._orders.tickets_for_events([e.id for e in events])
        result = []
        for event in events:
            ticket_types = self._catalog.get_ticket_types(event.id)
            event_tickets = [t for t in tickets if t.event_id == event.id]
            result.append(
                OrganizerEvent(
                    event=event,
                    ticket_types=tuple(ticket_types),
                    stats=sales_stats(ticket_types, event_tickets),
                )
            )
        return result

    def organizer_stats(self, identity: Identity | None) -> OrganizerStats:
        organizer_events = self.list_organizer_events(identity)
        now = self._clock()
        return OrganizerStats(
            total_events=len(organizer_events),
            published_events=sum(1 for oe in organizer_events if oe.event.is_published),
            upcoming_events=sum(1 for oe in organizer_events if oe.event.starts_at > now),
            past_events=sum(1 for oe in organizer_events if oe.event.starts_at <= now),
            total_tickets_sold=sum(oe.stats.total_tickets_sold for oe in organizer_events),
            total_checked_in=sum(oe.stats.total_checked_in for oe in organizer_events),
            total_revenue=sum(oe.stats.total_revenue for oe in organizer_events),
        )

    def _managed_event(self, user: User, event_id: str) -> Event:
        eid = parse_id(EventId, event_id, "event")
        event = self._catalog.get_event(eid)
        if event is None:
            raise EventNotFoundError(event_id)
        if not event.is_managed_by(user):
            raise UnauthorizedError("Event not found or access denied")
        return event

    def _upcoming(self) -> list[Event]:
        now = self._clock()
        return [e for e in self._catalog.list_published_events() if e.starts_at > now]

    def _detail(self, event: Event, visible_only: bool) -> EventDetail:
        return EventDetail(
            event=event,
            ticket_types=tuple(self._catalog.get_ticket_types(event.id, visible_only)),
            category=self._catalog.get_category(event.category_id),
            organizer=self._users.get_user(event.organizer_id),
        )

    def _sorted_for_dashboard(self, events: list[Event]) -> list[Event]:
        now = self._clock()
        upcoming = sorted((e for e in events if e.starts_at > now), key=lambda e: e.starts_at)
        past = sorted(
            (e for e in events if e.starts_at <= now),
            key=lambda e: e.starts_at,
            reverse=True,
        )
        return upcoming + past

    def _unique_slug(self, title: str) -> str:
        base = slugify(title) or "event"
        slug = base
        counter = 1
        while self._catalog.slug_exists(slug):
            slug = f"{base}-{counter}"
            counter += 1
        return slug
