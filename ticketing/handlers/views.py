"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Let domain errors propagate to the exception handler
- Never contain business logic
- Never expose internal error details
"""

import logging

from django.conf import settings
from django.core.cache import cache
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from svix.webhooks import Webhook, WebhookVerificationError

from ticketing.cache import (
    CATEGORIES_KEY,
    EVENTS_LIST_KEY,
    FEATURED_EVENTS_KEY,
    catalog_ttl,
    event_detail_key,
)
from ticketing.domain import ApprovalStatus, Identity, ReviewDecision
from ticketing.handlers import dependencies
from ticketing.handlers.errors import error_body
from ticketing.handlers.serializers import (
    ActivitySerializer,
    AdminStatsSerializer,
    AttendeeSerializer,
    CategorySerializer,
    CheckInSerializer,
    EventCreateSerializer,
    EventDetailSerializer,
    EventFilterSerializer,
    EventListingSerializer,
    EventTicketsSerializer,
    FreeOrderSerializer,
    LimitSerializer,
    ManagedEventSerializer,
    OrderConfirmationSerializer,
    OrganizerEventSerializer,
    OrganizerStatsSerializer,
    PaidOrderSerializer,
    PaymentSerializer,
    ReviewedEventSerializer,
    ReviewFilterSerializer,
    ReviewSerializer,
    TicketSerializer,
    TicketTypeInputSerializer,
    TicketTypeSerializer,
    UserSerializer,
    WaitlistEntrySerializer,
    WaitlistSerializer,
    lines,
    profile_from_webhook,
)

logger = logging.getLogger(__name__)


def caller(request: Request) -> Identity | None:
    return request.auth if isinstance(request.auth, Identity) else None


def invalid_signature() -> Response:
    return Response(
        error_body("INVALID_SIGNATURE", "Error verifying webhook"),
        status=status.HTTP_400_BAD_REQUEST,
    )


# Catalog


class CategoryListView(APIView):
    """Handler for GET /api/categories"""

    def get(self, request: Request) -> Response:
        data = cache.get(CATEGORIES_KEY)
        if data is None:
            categories = dependencies.catalog_service().list_categories()
            data = list(CategorySerializer(categories, many=True).data)
            cache.set(CATEGORIES_KEY, data, catalog_ttl())
        return Response(data)


class EventListView(APIView):
    """Handler for GET and POST /api/events"""

    def get(self, request: Request) -> Response:
        serializer = EventFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        filters = serializer.validated_data
        cacheable = EventFilterSerializer.is_default(filters)

        data = cache.get(EVENTS_LIST_KEY) if cacheable else None
        if data is None:
            events = dependencies.catalog_service().list_published_events(
                category_id=filters.get("category_id") or None,
                search=filters.get("search") or None,
                limit=filters["limit"],
            )
            data = list(EventListingSerializer(events, many=True).data)
            if cacheable:
                cache.set(EVENTS_LIST_KEY, data, catalog_ttl())
        return Response(data)

    def post(self, request: Request) -> Response:
        serializer = EventCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = dependencies.catalog_service().create_event(
            caller(request), EventCreateSerializer.to_draft(serializer.validated_data)
        )
        return Response(ReviewedEventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(APIView):
    """Handler for GET /api/events/{slug}"""

    def get(self, request: Request, slug: str) -> Response:
        key = event_detail_key(slug)
        data = cache.get(key)
        if data is None:
            detail = dependencies.catalog_service().get_published_event(slug)
            data = dict(EventDetailSerializer(detail).data)
            cache.set(key, data, catalog_ttl())
        return Response(data)


class FeaturedEventsView(APIView):
    """Handler for GET /api/featured-events"""

    def get(self, request: Request) -> Response:
        data = cache.get(FEATURED_EVENTS_KEY)
        if data is None:
            events = dependencies.catalog_service().featured_events()
            data = list(EventListingSerializer(events, many=True).data)
            cache.set(FEATURED_EVENTS_KEY, data, catalog_ttl())
        return Response(data)


class RecommendedEventsView(APIView):
    """Handler for GET /api/recommended-events"""

    def get(self, request: Request) -> Response:
        serializer = LimitSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        events = dependencies.catalog_service().recommended_events(
            caller(request), **serializer.validated_data
        )
        return Response(EventListingSerializer(events, many=True).data)


class OrderConfirmationView(APIView):
    """Handler for GET /api/events/{slug}/confirmation"""

    def get(self, request: Request, slug: str) -> Response:
        confirmation = dependencies.order_service().get_order_confirmation(
            caller(request), slug
        )
        if confirmation is None:
            return Response(
                error_body("ORDER_NOT_FOUND", "No completed order for this event"),
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderConfirmationSerializer(confirmation).data)


# Ordering


class RegistrationStatusView(APIView):
    """Handler for GET /api/events/{event_id}/registration"""

    def get(self, request: Request, event_id: str) -> Response:
        registered = dependencies.order_service().has_completed_order(
            event_id, caller(request)
        )
        return Response({"registered": registered})


class FreeOrderView(APIView):
    """Handler for POST /api/events/{event_id}/free-orders"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = FreeOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = dependencies.order_service().create_free_order(
            caller(request),
            event_id,
            serializer.validated_data["ticket_type_id"],
            serializer.validated_data["quantity"],
        )
        return Response(
            {"order_id": str(order.id), "tickets_created": order.ticket_count},
            status=status.HTTP_201_CREATED,
        )


class PaidOrderView(APIView):
    """Handler for POST /api/events/{event_id}/orders"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = PaidOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        hold = dependencies.order_service().create_paid_order(
            caller(request), event_id, lines(serializer.validated_data["items"])
        )
        return Response(
            {
                "order_id": str(hold.order_id),
                "total_amount": hold.total.amount,
                "currency": hold.total.currency,
                "expires_at": hold.expires_at.isoformat(),
            },
            status=status.HTTP_201_CREATED,
        )


class OrderPaymentView(APIView):
    """Handler for POST /api/orders/{order_id}/payment"""

    def post(self, request: Request, order_id: str) -> Response:
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = serializer.validated_data.get("items")
        tickets = dependencies.order_service().complete_order_payment(
            caller(request),
            order_id,
            serializer.validated_data["payment_reference"],
            items=lines(items) if items is not None else None,
            payment_provider=serializer.validated_data.get("payment_provider"),
        )
        return Response(
            {
                "tickets_created": len(tickets),
                "tickets": TicketSerializer(tickets, many=True).data,
            }
        )


class WaitlistView(APIView):
    """Handler for POST /api/events/{event_id}/waitlist"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = WaitlistSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry, created = dependencies.waitlist_service().join_waitlist(
            caller(request), event_id, serializer.validated_data["ticket_type_ids"]
        )
        return Response(
            WaitlistEntrySerializer(entry).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


# Current user


class CurrentUserView(APIView):
    """Handler for GET /api/me"""

    def get(self, request: Request) -> Response:
        user = dependencies.identity_service().require_user(caller(request))
        return Response(UserSerializer(user).data)


class MyTicketsView(APIView):
    """Handler for GET /api/me/tickets"""

    def get(self, request: Request) -> Response:
        groups = dependencies.ticket_service().get_user_tickets(caller(request))
        return Response(EventTicketsSerializer(groups, many=True).data)


# Organizer


class OrganizerEventListView(APIView):
    """Handler for GET /api/organizer/events"""

    def get(self, request: Request) -> Response:
        events = dependencies.catalog_service().list_organizer_events(caller(request))
        return Response(OrganizerEventSerializer(events, many=True).data)


class OrganizerStatsView(APIView):
    """Handler for GET /api/organizer/stats"""

    def get(self, request: Request) -> Response:
        stats = dependencies.catalog_service().organizer_stats(caller(request))
        return Response(OrganizerStatsSerializer(stats).data)


class ManagedEventView(APIView):
    """Handler for GET /api/manage/events/{event_id}"""

    def get(self, request: Request, event_id: str) -> Response:
        detail = dependencies.catalog_service().get_event_for_management(
            caller(request), event_id
        )
        return Response(ManagedEventSerializer(detail).data)


class EventActivityView(APIView):
    """Handler for GET /api/manage/events/{event_id}/activity"""

    def get(self, request: Request, event_id: str) -> Response:
        serializer = LimitSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        activities = dependencies.catalog_service().get_event_activity(
            caller(request), event_id, **serializer.validated_data
        )
        return Response(ActivitySerializer(activities, many=True).data)


class TicketTypeCreateView(APIView):
    """Handler for POST /api/manage/events/{event_id}/ticket-types"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = TicketTypeInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket_type = dependencies.catalog_service().add_ticket_type(
            caller(request),
            event_id,
            TicketTypeInputSerializer.to_draft(serializer.validated_data),
        )
        return Response(
            TicketTypeSerializer(ticket_type).data, status=status.HTTP_201_CREATED
        )


class EventAttendeesView(APIView):
    """Handler for GET /api/manage/events/{event_id}/attendees"""

    def get(self, request: Request, event_id: str) -> Response:
        attendees = dependencies.ticket_service().get_event_attendees(
            caller(request), event_id
        )
        return Response(AttendeeSerializer(attendees, many=True).data)


class CheckInView(APIView):
    """Handler for POST /api/manage/check-ins"""

    def post(self, request: Request) -> Response:
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = dependencies.ticket_service().check_in_ticket(
            caller(request), serializer.validated_data["qr_code_secret"]
        )
        return Response(TicketSerializer(ticket).data)


# Admin


class AdminEventListView(APIView):
    """Handler for GET /api/admin/events"""

    def get(self, request: Request) -> Response:
        serializer = ReviewFilterSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        raw_status = serializer.validated_data.get("status")
        events = dependencies.approval_service().list_events_for_review(
            caller(request), ApprovalStatus(raw_status) if raw_status else None
        )
        return Response(ReviewedEventSerializer(events, many=True).data)


class EventReviewView(APIView):
    """Handler for POST /api/admin/events/{event_id}/review"""

    def post(self, request: Request, event_id: str) -> Response:
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approval_status = dependencies.approval_service().review_event(
            caller(request),
            event_id,
            ReviewDecision(serializer.validated_data["decision"]),
            serializer.validated_data.get("notes") or None,
        )
        return Response({"status": approval_status.value})


class AdminStatsView(APIView):
    """Handler for GET /api/admin/stats"""

    def get(self, request: Request) -> Response:
        stats = dependencies.approval_service().admin_stats(caller(request))
        return Response(AdminStatsSerializer(stats).data)


# Identity provider


class IdentityWebhookView(APIView):
    """Handler for POST /api/identity/webhook

    Receives user lifecycle events from the identity provider. Deliveries
    are signed with svix; the ``svix-id``, ``svix-timestamp`` and
    ``svix-signature`` headers are checked against the raw body.
    """

    authentication_classes: list = []

    def post(self, request: Request) -> Response:
        # The raw body must be read before request.data parses the stream.
        body = request.body
        headers = {
            name: request.headers.get(name, "")
            for name in ("svix-id", "svix-timestamp", "svix-signature")
        }
        secret = settings.TICKETING_WEBHOOK_SECRET
        if not secret:
            logger.error("Identity webhook received but no signing secret is configured")
            return invalid_signature()
        try:
            payload = Webhook(secret).verify(body, headers)
        except WebhookVerificationError:
            logger.warning("Rejected identity webhook %s: bad signature", headers["svix-id"])
            return invalid_signature()

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            return Response(
                error_body("INVALID_PAYLOAD", "Malformed webhook payload"),
                status=status.HTTP_400_BAD_REQUEST,
            )
        event_type = payload.get("type")
        data = payload["data"]
        identity = dependencies.identity_service()

        if event_type in ("user.created", "user.updated"):
            profile = profile_from_webhook(data)
            if profile is None:
                return Response(
                    error_body("INVALID_PAYLOAD", "Missing user id or primary email address"),
                    status=status.HTTP_400_BAD_REQUEST,
                )
            user, created = identity.sync_identity(profile)
            return Response({"user_id": str(user.id), "created": created})

        if event_type == "user.deleted":
            subject = data.get("id")
            if not subject:
                return Response(
                    error_body("INVALID_PAYLOAD", "Missing user id"),
                    status=status.HTTP_400_BAD_REQUEST,
                )
            return Response({"removed": identity.remove_identity(subject)})

        logger.warning("Ignored identity webhook of type %s", event_type)
        return Response({"ignored": True})
