"""Admin approval workflow for organizer-submitted events."""

import logging

from ticketing.domain import (
    Activity,
    AdminStats,
    ApprovalStatus,
    Event,
    EventId,
    Identity,
    ReviewDecision,
    Role,
)
from ticketing.domain.errors import EventAlreadyReviewedError, EventNotFoundError
from ticketing.services.common import Clock, parse_id, utcnow
from ticketing.services.identity_service import IdentityService
from ticketing.stores.interfaces import ActivityStore, CatalogStore, OrderStore, UserStore

logger = logging.getLogger(__name__)


class ApprovalService:
    """Moves events from pending to approved or rejected."""

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

    def review_event(
        self,
        identity: Identity | None,
        event_id: str,
        decision: ReviewDecision,
        notes: str | None = None,
    ) -> ApprovalStatus:
        """Approve or reject a pending event.

        Approval publishes the event in the same update; rejection leaves it
        unpublished.

        Raises:
            UnauthorizedError: If the caller is not an admin.
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            EventAlreadyReviewedError: If the event is no longer pending.
        """
        admin = self._identity.require_admin(identity)
        eid = parse_id(EventId, event_id, "event")
        approve = decision == ReviewDecision.APPROVE
        status = ApprovalStatus.APPROVED if approve else ApprovalStatus.REJECTED
        now = self._clock()

        with self._catalog.atomic():
            event = self._catalog.get_event_for_update(eid)
            if event is None:
                raise EventNotFoundError(event_id)
            if event.approval_status != ApprovalStatus.PENDING:
                raise EventAlreadyReviewedError(event_id)
            self._catalog.record_review(
                eid,
                approval_status=status,
                is_published=approve,
                notes=notes,
                reviewed_by=admin.id,
                reviewed_at=now,
            )
            self._activities.record(
                Activity(
                    action="event_reviewed",
                    created_at=now,
                    actor_id=admin.id,
                    event_id=eid,
                    metadata={"decision": decision.value, "notes": notes},
                )
            )
        logger.info("Admin %s %s event %s", admin.id, status.value, eid)
        return status

    def list_events_for_review(
        self, identity: Identity | None, status: ApprovalStatus | None = None
    ) -> list[Event]:
        self._identity.require_admin(identity)
        return self._catalog.list_events(status)

    def admin_stats(self, identity: Identity | None) -> AdminStats:
        self._identity.require_admin(identity)
        events = self._catalog.list_events()
        by_status = {status: 0 for status in ApprovalStatus}
        for event in events:
            by_status[event.approval_status] += 1
        roles = self._users.count_by_role()
        tickets_sold, revenue = self._orders.count_tickets_sold()
        return AdminStats(
            total_events=len(events),
            pending_events=by_status[ApprovalStatus.PENDING],
            approved_events=by_status[ApprovalStatus.APPROVED],
            rejected_events=by_status[ApprovalStatus.REJECTED],
            published_events=sum(1 for e in events if e.is_published),
            total_users=sum(roles.values()),
            organizers=roles.get(Role.ORGANIZER, 0),
            attendees=roles.get(Role.ATTENDEE, 0),
            admins=roles.get(Role.ADMIN, 0),
            total_tickets_sold=tickets_sold,
            total_revenue=revenue,
        )
