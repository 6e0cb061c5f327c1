"""Unit tests for the services against mocked stores.

These test error handling and domain error mapping.
Run with: pytest tests/test_services.py -v
"""

import logging
import uuid
from datetime import timedelta
from unittest.mock import create_autospec

import pytest

from ticketing.domain import (
    ApprovalStatus,
    EventId,
    Identity,
    IdentityProfile,
    Money,
    Order,
    OrderId,
    OrderItem,
    OrderStatus,
    ReviewDecision,
    Role,
    UserStatus,
)
from ticketing.domain.errors import (
    AlreadyRegisteredError,
    EventAlreadyReviewedError,
    EventNotFoundError,
    InsufficientInventoryError,
    InvalidFreeTicketError,
    InvalidIdError,
    MixedCurrencyError,
    OrderExpiredError,
    OrderItemsMismatchError,
    OrderNotFoundError,
    QuantityOutOfRangeError,
    TicketSalesClosedError,
    UnauthenticatedError,
    UnauthorizedError,
    UserSuspendedError,
    ZeroAmountRejectedError,
)
from ticketing.services.approval_service import ApprovalService
from ticketing.services.catalog_service import matches_search, recommendation_score
from ticketing.services.identity_service import IdentityService
from ticketing.services.order_service import OrderService, merge_lines
from ticketing.services.ticket_service import TicketService
from ticketing.stores.interfaces import (
    ActivityStore,
    CatalogStore,
    DuplicateTicketError,
    OrderStore,
    UserStore,
)
from tests.factories import NOW, FakeClock, build_event, build_ticket_type, build_user

CALLER = Identity("user_1")


@pytest.fixture
def users():
    return create_autospec(UserStore, instance=True)


@pytest.fixture
def catalog():
    return create_autospec(CatalogStore, instance=True)


@pytest.fixture
def orders():
    return create_autospec(OrderStore, instance=True)


@pytest.fixture
def activities():
    return create_autospec(ActivityStore, instance=True)


@pytest.fixture
def identity(users):
    return IdentityService(users)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def buyer(users):
    user = build_user()
    users.get_by_external_id.return_value = user
    return user


@pytest.fixture
def order_service(catalog, orders, activities, identity, clock):
    return OrderService(catalog, orders, activities, identity, clock=clock)


class TestIdentityService:
    """Tests for IdentityService."""

    profile = IdentityProfile(external_id="user_1", email="selam@example.com")

    def test_sync_creates_attendee_for_new_subject(self, identity, users):
        users.get_by_external_id.return_value = None
        users.create_user.return_value = build_user()

        _, created = identity.sync_identity(self.profile)

        assert created
        users.create_user.assert_called_once_with(self.profile, Role.ATTENDEE)

    def test_sync_updates_profile_only_for_existing_user(self, identity, users):
        existing = build_user(role=Role.ORGANIZER)
        users.get_by_external_id.return_value = existing
        users.update_profile.return_value = existing

        user, created = identity.sync_identity(self.profile)

        assert not created
        assert user.role == Role.ORGANIZER
        users.create_user.assert_not_called()
        users.set_status.assert_not_called()

    def test_remove_suspends_user_with_history(self, identity, users):
        user = build_user()
        users.get_by_external_id.return_value = user
        users.has_records.return_value = True

        assert identity.remove_identity("user_1")
        users.set_status.assert_called_once_with(user.id, UserStatus.SUSPENDED)
        users.delete_user.assert_not_called()

    def test_remove_deletes_user_without_history(self, identity, users):
        user = build_user()
        users.get_by_external_id.return_value = user
        users.has_records.return_value = False

        assert identity.remove_identity("user_1")
        users.delete_user.assert_called_once_with(user.id)

    def test_remove_unknown_subject_logs_warning(self, identity, users, caplog):
        users.get_by_external_id.return_value = None
        with caplog.at_level(logging.WARNING, logger="ticketing"):
            assert not identity.remove_identity("ghost")
        assert "ghost" in caplog.text

    def test_require_user_without_identity(self, identity):
        with pytest.raises(UnauthenticatedError):
            identity.require_user(None)

    def test_require_user_suspended(self, identity, users):
        users.get_by_external_id.return_value = build_user(status=UserStatus.SUSPENDED)
        with pytest.raises(UserSuspendedError):
            identity.require_user(CALLER)

    def test_require_admin_rejects_organizer(self, identity, users):
        users.get_by_external_id.return_value = build_user(role=Role.ORGANIZER)
        with pytest.raises(UnauthorizedError):
            identity.require_admin(CALLER)


class TestMergeLines:
    def test_repeated_ticket_types_are_summed(self):
        ttid = str(uuid.uuid4())
        merged = merge_lines([(ttid, 2), (ttid, 3)])
        assert list(merged.values()) == [5]

    def test_invalid_id_raises(self):
        with pytest.raises(InvalidIdError):
            merge_lines([("nope", 1)])


class TestRecommendationScore:
    def test_category_tags_and_start(self):
        event = build_event(tags=("Jazz", "live"), starts_at=NOW + timedelta(days=2))
        score = recommendation_score(event, {event.category_id}, {"jazz", "live"}, NOW)
        assert score == 3 + 2 + 1

    def test_unrelated_distant_event_scores_zero(self):
        event = build_event(tags=("poetry",), starts_at=NOW + timedelta(days=7))
        assert recommendation_score(event, set(), {"jazz"}, NOW) == 0


class TestMatchesSearch:
    @pytest.mark.parametrize("term", ["addis", "ETHIO", "fendika", "Groove"])
    def test_matches(self, term):
        assert matches_search(build_event(tags=("groove",)), term)

    def test_no_match(self):
        assert not matches_search(build_event(), "marathon")


class TestFreeOrder:
    """Tests for OrderService.create_free_order guard clauses."""

    def test_anonymous_caller_rejected(self, order_service, catalog):
        with pytest.raises(UnauthenticatedError):
            order_service.create_free_order(None, str(uuid.uuid4()), str(uuid.uuid4()), 1)
        catalog.lock_ticket_types.assert_not_called()

    def test_invalid_event_id(self, order_service, buyer):
        with pytest.raises(InvalidIdError):
            order_service.create_free_order(CALLER, "bad-id", str(uuid.uuid4()), 1)

    def test_unpublished_event_not_found(self, order_service, catalog, buyer):
        event = build_event(is_published=False)
        catalog.get_event.return_value = event
        with pytest.raises(EventNotFoundError):
            order_service.create_free_order(CALLER, str(event.id), str(uuid.uuid4()), 1)

    def test_priced_ticket_type_rejected(self, order_service, catalog, orders, buyer):
        event = build_event()
        ticket_type = build_ticket_type(event_id=event.id, price=Money(500, "ETB"))
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {ticket_type.id: ticket_type}

        with pytest.raises(InvalidFreeTicketError):
            order_service.create_free_order(CALLER, str(event.id), str(ticket_type.id), 1)
        catalog.reserve_inventory.assert_not_called()

    def test_ticket_type_of_other_event_rejected(self, order_service, catalog, orders, buyer):
        event = build_event()
        ticket_type = build_ticket_type()
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {ticket_type.id: ticket_type}

        with pytest.raises(InvalidFreeTicketError):
            order_service.create_free_order(CALLER, str(event.id), str(ticket_type.id), 1)

    def test_quantity_above_limit(self, order_service, catalog, orders, buyer):
        event = build_event()
        ticket_type = build_ticket_type(event_id=event.id, max_per_order=5)
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {ticket_type.id: ticket_type}

        with pytest.raises(QuantityOutOfRangeError):
            order_service.create_free_order(CALLER, str(event.id), str(ticket_type.id), 6)

    def test_sale_not_started(self, order_service, catalog, orders, buyer):
        event = build_event()
        ticket_type = build_ticket_type(event_id=event.id, sale_start=NOW + timedelta(hours=1))
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {ticket_type.id: ticket_type}

        with pytest.raises(TicketSalesClosedError):
            order_service.create_free_order(CALLER, str(event.id), str(ticket_type.id), 1)

    def test_refused_increment_creates_nothing(self, order_service, catalog, orders, buyer):
        event = build_event()
        ticket_type = build_ticket_type(event_id=event.id)
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {ticket_type.id: ticket_type}
        catalog.reserve_inventory.return_value = False

        with pytest.raises(InsufficientInventoryError):
            order_service.create_free_order(CALLER, str(event.id), str(ticket_type.id), 2)
        orders.create_order.assert_not_called()
        orders.issue_tickets.assert_not_called()


class TestPaidOrder:
    """Tests for OrderService.create_paid_order validation."""

    def test_mixed_currency_rejected(self, order_service, catalog, orders, buyer):
        event = build_event()
        birr = build_ticket_type(event_id=event.id, price=Money(500, "ETB"))
        dollars = build_ticket_type(event_id=event.id, price=Money(500, "USD"))
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {birr.id: birr, dollars.id: dollars}

        with pytest.raises(MixedCurrencyError):
            order_service.create_paid_order(
                CALLER, str(event.id), [(str(birr.id), 1), (str(dollars.id), 1)]
            )
        catalog.reserve_inventory.assert_not_called()

    def test_zero_total_rejected(self, order_service, catalog, orders, buyer):
        event = build_event()
        free = build_ticket_type(event_id=event.id)
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {free.id: free}

        with pytest.raises(ZeroAmountRejectedError):
            order_service.create_paid_order(CALLER, str(event.id), [(str(free.id), 1)])

    def test_hold_expires_after_configured_window(
        self, catalog, orders, activities, identity, clock, buyer
    ):
        service = OrderService(
            catalog, orders, activities, identity, clock=clock, payment_hold=timedelta(minutes=5)
        )
        event = build_event()
        vip = build_ticket_type(event_id=event.id, price=Money(50000, "ETB"))
        catalog.get_event.return_value = event
        orders.find_completed_order.return_value = None
        catalog.lock_ticket_types.return_value = {vip.id: vip}
        catalog.reserve_inventory.return_value = True
        orders.create_order.side_effect = lambda eid, bid, status, items, currency, **kw: Order(
            id=OrderId(uuid.uuid4()),
            event_id=eid,
            buyer_id=bid,
            total=Money(sum(i.subtotal.amount for i in items), currency),
            status=status,
            created_at=NOW,
            expires_at=kw.get("expires_at"),
            items=tuple(items),
        )

        hold = service.create_paid_order(CALLER, str(event.id), [(str(vip.id), 2)])

        assert hold.total == Money(100000, "ETB")
        assert hold.expires_at == NOW + timedelta(minutes=5)


class TestCompleteOrderPayment:
    """Tests for OrderService.complete_order_payment state checks."""

    def pending_order(self, buyer, ticket_type_id=None) -> Order:
        return Order(
            id=OrderId(uuid.uuid4()),
            event_id=EventId(uuid.uuid4()),
            buyer_id=buyer.id,
            total=Money(1000, "ETB"),
            status=OrderStatus.PENDING,
            created_at=NOW,
            expires_at=NOW + timedelta(minutes=30),
            items=(
                OrderItem(
                    ticket_type_id or build_ticket_type().id, 2, Money(500, "ETB")
                ),
            ),
        )

    def test_other_buyers_order_is_not_found(self, order_service, orders, buyer):
        order = self.pending_order(build_user(external_id="someone_else"))
        orders.get_order_for_update.return_value = order
        with pytest.raises(OrderNotFoundError):
            order_service.complete_order_payment(CALLER, str(order.id), "ref-1")

    def test_expired_exactly_at_deadline(self, order_service, orders, buyer, clock):
        order = self.pending_order(buyer)
        orders.get_order_for_update.return_value = order
        clock.now = order.expires_at
        with pytest.raises(OrderExpiredError):
            order_service.complete_order_payment(CALLER, str(order.id), "ref-1")
        orders.mark_completed.assert_not_called()

    def test_succeeds_just_before_deadline(self, order_service, orders, buyer, clock):
        order = self.pending_order(buyer)
        orders.get_order_for_update.return_value = order
        orders.mark_completed.return_value = order
        orders.issue_tickets.return_value = []
        clock.now = order.expires_at - timedelta(milliseconds=1)

        order_service.complete_order_payment(CALLER, str(order.id), "ref-1")

        orders.mark_completed.assert_called_once()
        issued = orders.issue_tickets.call_args.args[2]
        assert len(issued) == 2
        assert all(t.ticket_number.startswith("TKT-") for t in issued)

    def test_items_must_match_reservation(self, order_service, orders, buyer):
        order = self.pending_order(buyer)
        orders.get_order_for_update.return_value = order
        reserved_id = str(order.items[0].ticket_type_id)
        with pytest.raises(OrderItemsMismatchError):
            order_service.complete_order_payment(
                CALLER, str(order.id), "ref-1", items=[(reserved_id, 3)]
            )

    def test_taken_ticket_numbers_regenerated(self, order_service, orders, buyer, caplog):
        order = self.pending_order(buyer)
        orders.get_order_for_update.return_value = order
        orders.mark_completed.return_value = order
        orders.issue_tickets.side_effect = [DuplicateTicketError(str(order.id)), []]

        with caplog.at_level(logging.WARNING, logger="ticketing.services.order_service"):
            order_service.complete_order_payment(CALLER, str(order.id), "ref-1")

        first, second = (c.args[2] for c in orders.issue_tickets.call_args_list)
        assert {t.ticket_number for t in first}.isdisjoint(t.ticket_number for t in second)
        assert "Ticket number collision" in caplog.text

    def test_losing_hold_cancelled(self, order_service, orders, catalog, buyer):
        order = self.pending_order(buyer)
        orders.get_order_for_update.return_value = order
        orders.mark_completed.side_effect = AlreadyRegisteredError(str(order.event_id))
        orders.mark_cancelled.return_value = order

        with pytest.raises(AlreadyRegisteredError):
            order_service.complete_order_payment(CALLER, str(order.id), "ref-1")

        catalog.release_inventory.assert_called_once_with(order.items[0].ticket_type_id, 2)
        orders.mark_cancelled.assert_called_once_with(order.id)
        orders.issue_tickets.assert_not_called()


class TestApprovalService:
    """Tests for ApprovalService.review_event."""

    @pytest.fixture
    def approval(self, catalog, orders, users, activities, identity, clock):
        return ApprovalService(catalog, orders, users, activities, identity, clock=clock)

    @pytest.fixture
    def admin(self, users):
        user = build_user(role=Role.ADMIN)
        users.get_by_external_id.return_value = user
        return user

    def test_approve_publishes(self, approval, catalog, admin):
        event = build_event(is_published=False, approval_status=ApprovalStatus.PENDING)
        catalog.get_event_for_update.return_value = event

        status = approval.review_event(CALLER, str(event.id), ReviewDecision.APPROVE, "ok")

        assert status == ApprovalStatus.APPROVED
        kwargs = catalog.record_review.call_args.kwargs
        assert kwargs["is_published"] is True
        assert kwargs["reviewed_by"] == admin.id
        assert kwargs["reviewed_at"] == NOW

    def test_reject_leaves_unpublished(self, approval, catalog, admin):
        event = build_event(is_published=False, approval_status=ApprovalStatus.PENDING)
        catalog.get_event_for_update.return_value = event

        status = approval.review_event(CALLER, str(event.id), ReviewDecision.REJECT)

        assert status == ApprovalStatus.REJECTED
        assert catalog.record_review.call_args.kwargs["is_published"] is False

    def test_already_reviewed(self, approval, catalog, admin):
        event = build_event(approval_status=ApprovalStatus.REJECTED, is_published=False)
        catalog.get_event_for_update.return_value = event
        with pytest.raises(EventAlreadyReviewedError):
            approval.review_event(CALLER, str(event.id), ReviewDecision.APPROVE)
        catalog.record_review.assert_not_called()

    def test_non_admin_rejected(self, approval, users, catalog):
        users.get_by_external_id.return_value = build_user(role=Role.ORGANIZER)
        with pytest.raises(UnauthorizedError):
            approval.review_event(CALLER, str(uuid.uuid4()), ReviewDecision.APPROVE)
        catalog.get_event_for_update.assert_not_called()


class TestTicketServiceAttendees:
    @pytest.fixture
    def tickets(self, catalog, orders, users, activities, identity, clock):
        return TicketService(catalog, orders, users, activities, identity, clock=clock)

    def test_invalid_event_id(self, tickets):
        with pytest.raises(InvalidIdError):
            tickets.get_event_attendees(CALLER, "not-a-uuid")

    def test_non_owner_gets_empty_list_and_warning(
        self, tickets, users, catalog, orders, caplog
    ):
        users.get_by_external_id.return_value = build_user(role=Role.ORGANIZER)
        event = build_event()
        catalog.get_event.return_value = event

        with caplog.at_level(logging.WARNING, logger="ticketing"):
            assert tickets.get_event_attendees(CALLER, str(event.id)) == []
        orders.tickets_for_event.assert_not_called()
        assert "withheld" in caplog.text
