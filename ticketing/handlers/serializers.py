"""Serializers for transforming domain models to API responses and requests to drafts."""

from django.conf import settings
from rest_framework import serializers

from ticketing.domain import (
    ApprovalStatus,
    Capacity,
    CategoryId,
    EventDraft,
    IdentityProfile,
    Money,
    ReviewDecision,
    TicketTypeDraft,
)
from ticketing.services.catalog_service import LISTING_LIMIT


class CategorySerializer(serializers.Serializer):
    """Serializer for Category domain model."""

    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    slug = serializers.CharField()
    icon = serializers.CharField(allow_null=True)
    color = serializers.CharField(allow_null=True)


class UserSerializer(serializers.Serializer):
    """Serializer for the caller's own User record."""

    id = serializers.UUIDField(source="id.value")
    email = serializers.EmailField()
    first_name = serializers.CharField(allow_null=True)
    last_name = serializers.CharField(allow_null=True)
    display_name = serializers.CharField()
    image_url = serializers.CharField(allow_null=True)
    username = serializers.CharField(allow_null=True)
    role = serializers.CharField()
    status = serializers.CharField()


class PublicUserSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField(source="display_name")
    email = serializers.EmailField()
    image_url = serializers.CharField(allow_null=True)


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.UUIDField(source="id.value")
    title = serializers.CharField()
    slug = serializers.CharField()
    description = serializers.CharField()
    short_description = serializers.CharField(allow_null=True)
    organizer_id = serializers.UUIDField(source="organizer_id.value")
    category_id = serializers.UUIDField(source="category_id.value")
    location_name = serializers.CharField()
    address = serializers.CharField()
    latitude = serializers.FloatField(allow_null=True)
    longitude = serializers.FloatField(allow_null=True)
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    timezone = serializers.CharField()
    cover_image_url = serializers.CharField()
    is_published = serializers.BooleanField()
    approval_status = serializers.CharField()
    min_order = serializers.IntegerField()
    max_order = serializers.IntegerField()
    total_capacity = serializers.IntegerField(allow_null=True)
    tags = serializers.ListField(child=serializers.CharField())
    created_at = serializers.DateTimeField()


class ReviewedEventSerializer(EventSerializer):
    """Event with its approval record, for organizers and admins."""

    approval_notes = serializers.CharField(allow_null=True)
    reviewed_by = serializers.UUIDField(source="reviewed_by.value", allow_null=True)
    reviewed_at = serializers.DateTimeField(allow_null=True)


class TicketTypeSerializer(serializers.Serializer):
    """Serializer for TicketType domain model."""

    id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    name = serializers.CharField()
    description = serializers.CharField(allow_null=True)
    price = serializers.IntegerField(source="price.amount")
    currency = serializers.CharField(source="price.currency")
    total_quantity = serializers.IntegerField(source="total_quantity.value")
    sold_quantity = serializers.IntegerField(source="sold_quantity.value")
    remaining = serializers.IntegerField()
    sale_start = serializers.DateTimeField(allow_null=True)
    sale_end = serializers.DateTimeField(allow_null=True)
    is_visible = serializers.BooleanField()
    min_per_order = serializers.IntegerField()
    max_per_order = serializers.IntegerField()


class EventDetailSerializer(serializers.Serializer):
    event = EventSerializer()
    ticket_types = TicketTypeSerializer(many=True)
    category = CategorySerializer(allow_null=True)
    organizer = PublicUserSerializer(allow_null=True)


def price_range(detail) -> dict:
    low, high = detail.price_range
    currency = (
        detail.ticket_types[0].price.currency
        if detail.ticket_types
        else settings.TICKETING_DEFAULT_CURRENCY
    )
    return {"min": low, "max": high, "currency": currency}


class EventListingSerializer(serializers.Serializer):
    """An event card in public listings."""

    event = EventSerializer()
    category = CategorySerializer(allow_null=True)
    organizer = PublicUserSerializer(allow_null=True)
    price_range = serializers.SerializerMethodField()
    available_tickets = serializers.IntegerField()
    is_sold_out = serializers.BooleanField()

    def get_price_range(self, detail) -> dict:
        return price_range(detail)


class ManagedEventSerializer(serializers.Serializer):
    event = ReviewedEventSerializer()
    ticket_types = TicketTypeSerializer(many=True)
    category = CategorySerializer(allow_null=True)
    organizer = PublicUserSerializer(allow_null=True)
    available_tickets = serializers.IntegerField()
    total_capacity = serializers.IntegerField()
    price_range = serializers.SerializerMethodField()

    def get_price_range(self, detail) -> dict:
        return price_range(detail)


class ActivitySerializer(serializers.Serializer):
    action = serializers.CharField()
    created_at = serializers.DateTimeField()
    actor_id = serializers.UUIDField(source="actor_id.value", allow_null=True)
    order_id = serializers.UUIDField(source="order_id.value", allow_null=True)
    metadata = serializers.DictField()


class EventSalesStatsSerializer(serializers.Serializer):
    total_tickets_sold = serializers.IntegerField()
    total_checked_in = serializers.IntegerField()
    total_revenue = serializers.IntegerField()
    total_capacity = serializers.IntegerField()


class OrganizerEventSerializer(serializers.Serializer):
    event = ReviewedEventSerializer()
    ticket_types = TicketTypeSerializer(many=True)
    stats = EventSalesStatsSerializer()


class OrganizerStatsSerializer(serializers.Serializer):
    total_events = serializers.IntegerField()
    published_events = serializers.IntegerField()
    upcoming_events = serializers.IntegerField()
    past_events = serializers.IntegerField()
    total_tickets_sold = serializers.IntegerField()
    total_checked_in = serializers.IntegerField()
    total_revenue = serializers.IntegerField()


class AdminStatsSerializer(OrganizerStatsSerializer):
    upcoming_events = None
    past_events = None
    total_checked_in = None
    pending_events = serializers.IntegerField()
    approved_events = serializers.IntegerField()
    rejected_events = serializers.IntegerField()
    total_users = serializers.IntegerField()
    organizers = serializers.IntegerField()
    attendees = serializers.IntegerField()
    admins = serializers.IntegerField()


class TicketSerializer(serializers.Serializer):
    """Serializer for a ticket shown to its holder."""

    id = serializers.UUIDField(source="id.value")
    order_id = serializers.UUIDField(source="order_id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    ticket_type_id = serializers.UUIDField(source="ticket_type_id.value")
    ticket_number = serializers.CharField()
    qr_code_secret = serializers.CharField()
    status = serializers.CharField()
    checked_in_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()


class StaffTicketSerializer(TicketSerializer):
    """Ticket as listed to event staff; the QR secret stays with the holder."""

    qr_code_secret = None
    checked_in_by = serializers.UUIDField(source="checked_in_by.value", allow_null=True)


class EventTicketsSerializer(serializers.Serializer):
    event = EventSerializer()
    tickets = TicketSerializer(many=True)


class AttendeeTicketSerializer(serializers.Serializer):
    ticket = StaffTicketSerializer()
    ticket_type = TicketTypeSerializer(allow_null=True)


class AttendeeSerializer(serializers.Serializer):
    user = PublicUserSerializer()
    tickets = AttendeeTicketSerializer(many=True)
    ticket_count = serializers.IntegerField()
    total_paid = serializers.IntegerField()


class OrderSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    status = serializers.CharField()
    total_amount = serializers.IntegerField(source="total.amount")
    currency = serializers.CharField(source="total.currency")
    created_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField(allow_null=True)
    completed_at = serializers.DateTimeField(allow_null=True)


class OrderConfirmationSerializer(serializers.Serializer):
    event = EventSerializer()
    order = OrderSerializer()
    tickets = TicketSerializer(many=True)


class WaitlistEntrySerializer(serializers.Serializer):
    event_id = serializers.UUIDField(source="event_id.value")
    status = serializers.CharField()
    ticket_type_ids = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField()

    def get_ticket_type_ids(self, entry) -> list[str]:
        return [str(ttid) for ttid in entry.ticket_type_ids]


# Request serializers


class TicketTypeInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    price = serializers.IntegerField(min_value=0)
    currency = serializers.RegexField(r"^[A-Za-z]{3}$", required=False)
    total_quantity = serializers.IntegerField(min_value=0)
    sale_start = serializers.DateTimeField(required=False, allow_null=True)
    sale_end = serializers.DateTimeField(required=False, allow_null=True)
    is_visible = serializers.BooleanField(default=True)
    min_per_order = serializers.IntegerField(min_value=1, default=1)
    max_per_order = serializers.IntegerField(min_value=1, default=10)

    @staticmethod
    def to_draft(data: dict) -> TicketTypeDraft:
        currency = data.get("currency") or settings.TICKETING_DEFAULT_CURRENCY
        return TicketTypeDraft(
            name=data["name"],
            description=data.get("description") or None,
            price=Money(amount=data["price"], currency=currency),
            total_quantity=Capacity(data["total_quantity"]),
            sale_start=data.get("sale_start"),
            sale_end=data.get("sale_end"),
            is_visible=data["is_visible"],
            min_per_order=data["min_per_order"],
            max_per_order=data["max_per_order"],
        )


class EventCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    short_description = serializers.CharField(
        max_length=500, required=False, allow_null=True, allow_blank=True
    )
    description = serializers.CharField()
    category_id = serializers.UUIDField()
    cover_image_url = serializers.URLField(max_length=500)
    location_name = serializers.CharField(max_length=255)
    address = serializers.CharField(max_length=500)
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)
    timezone = serializers.CharField(max_length=64)
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    total_capacity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    min_order = serializers.IntegerField(min_value=1, default=1)
    max_order = serializers.IntegerField(min_value=1, default=10)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), default=list)
    ticket_types = TicketTypeInputSerializer(many=True, required=False)

    @staticmethod
    def to_draft(data: dict) -> EventDraft:
        return EventDraft(
            title=data["title"],
            short_description=data.get("short_description") or None,
            description=data["description"],
            category_id=CategoryId(data["category_id"]),
            cover_image_url=data["cover_image_url"],
            location_name=data["location_name"],
            address=data["address"],
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            timezone=data["timezone"],
            starts_at=data["starts_at"],
            ends_at=data["ends_at"],
            total_capacity=data.get("total_capacity"),
            min_order=data["min_order"],
            max_order=data["max_order"],
            tags=tuple(data["tags"]),
            ticket_types=tuple(
                TicketTypeInputSerializer.to_draft(tt) for tt in data.get("ticket_types", [])
            ),
        )


class FreeOrderSerializer(serializers.Serializer):
    ticket_type_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)


class LineItemSerializer(serializers.Serializer):
    ticket_type_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)


class PaidOrderSerializer(serializers.Serializer):
    items = LineItemSerializer(many=True, allow_empty=False)


class PaymentSerializer(serializers.Serializer):
    payment_reference = serializers.CharField(max_length=255)
    payment_provider = serializers.CharField(max_length=50, required=False, allow_null=True)
    items = LineItemSerializer(many=True, required=False)


class ReviewSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[d.value for d in ReviewDecision])
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class EventFilterSerializer(serializers.Serializer):
    category_id = serializers.CharField(required=False, allow_blank=True)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    limit = serializers.IntegerField(min_value=1, max_value=100, default=LISTING_LIMIT)

    @staticmethod
    def is_default(data: dict) -> bool:
        return (
            not data.get("category_id")
            and not data.get("search")
            and data["limit"] == LISTING_LIMIT
        )


class LimitSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=50, required=False)


class ReviewFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[s.value for s in ApprovalStatus], required=False
    )


class CheckInSerializer(serializers.Serializer):
    qr_code_secret = serializers.CharField(max_length=64)


class WaitlistSerializer(serializers.Serializer):
    ticket_type_ids = serializers.ListField(child=serializers.CharField(), default=list)


def lines(items: list[dict]) -> list[tuple[str, int]]:
    return [(item["ticket_type_id"], item["quantity"]) for item in items]


def profile_from_webhook(data: dict) -> IdentityProfile | None:
    """Build a profile from an identity-provider user payload.

    Returns None when the payload has no user id or no primary email address.
    """
    external_id = data.get("id")
    primary_id = data.get("primary_email_address_id")
    if not external_id or not primary_id:
        return None
    email = next(
        (
            entry.get("email_address")
            for entry in data.get("email_addresses") or []
            if entry.get("id") == primary_id
        ),
        None,
    )
    if not email:
        return None
    phones = data.get("phone_numbers") or []
    return IdentityProfile(
        external_id=external_id,
        email=email,
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        image_url=data.get("image_url"),
        username=data.get("username"),
        phone=phones[0].get("phone_number") if phones else None,
    )
