"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models

from ticketing.domain.models import (
    ApprovalStatus,
    OrderStatus,
    Role,
    TicketStatus,
    UserStatus,
    WaitlistStatus,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value.replace("_", " ").title()) for member in enum_cls]


class User(models.Model):
    """Persistence model for users synced from the identity provider."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    external_id = models.CharField(max_length=255, unique=True)
    email = models.EmailField(max_length=255)
    first_name = models.CharField(max_length=150, blank=True, null=True)
    last_name = models.CharField(max_length=150, blank=True, null=True)
    image_url = models.URLField(max_length=500, blank=True, null=True)
    username = models.CharField(max_length=150, blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    role = models.CharField(
        max_length=16, choices=_choices(Role), default=Role.ATTENDEE.value
    )
    status = models.CharField(
        max_length=16, choices=_choices(UserStatus), default=UserStatus.ACTIVE.value
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["email"]),
            models.Index(fields=["role"]),
        ]

    def __str__(self) -> str:
        return self.email


class Category(models.Model):
    """Persistence model for event categories."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=100, unique=True)
    icon = models.CharField(max_length=16, blank=True, null=True)
    color = models.CharField(max_length=7, blank=True, null=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=280, unique=True)
    description = models.TextField()
    short_description = models.CharField(max_length=500, blank=True, null=True)
    organizer = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name="organized_events"
    )
    category = models.ForeignKey(
        Category, on_delete=models.PROTECT, related_name="events"
    )
    location_name = models.CharField(max_length=255)
    address = models.CharField(max_length=500)
    latitude = models.FloatField(blank=True, null=True)
    longitude = models.FloatField(blank=True, null=True)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    timezone = models.CharField(max_length=64)
    cover_image_url = models.URLField(max_length=500)
    gallery_images = models.JSONField(default=list, blank=True)
    is_published = models.BooleanField(default=False)
    total_capacity = models.PositiveIntegerField(blank=True, null=True)
    min_order = models.PositiveIntegerField(default=1)
    max_order = models.PositiveIntegerField(default=10)
    approval_status = models.CharField(
        max_length=16,
        choices=_choices(ApprovalStatus),
        default=ApprovalStatus.PENDING.value,
    )
    approval_notes = models.TextField(blank=True, null=True)
    reviewed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        related_name="reviewed_events",
        blank=True,
        null=True,
    )
    reviewed_at = models.DateTimeField(blank=True, null=True)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"]),
            models.Index(fields=["organizer"]),
            models.Index(fields=["starts_at"]),
            models.Index(fields=["approval_status", "is_published"]),
        ]

    def __str__(self) -> str:
        return self.title


class TicketType(models.Model):
    """Persistence model for ticket types."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="ticket_types"
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)
    price = models.PositiveIntegerField(help_text="Minor currency units")
    currency = models.CharField(max_length=3)
    total_quantity = models.PositiveIntegerField()
    sold_quantity = models.PositiveIntegerField(default=0)
    sale_start = models.DateTimeField(blank=True, null=True)
    sale_end = models.DateTimeField(blank=True, null=True)
    is_visible = models.BooleanField(default=True)
    min_per_order = models.PositiveIntegerField(default=1)
    max_per_order = models.PositiveIntegerField(default=10)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["price", "created_at"]
        indexes = [
            models.Index(fields=["event"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(sold_quantity__lte=models.F("total_quantity")),
                name="ticket_type_sold_within_total",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.price} {self.currency}"


class Order(models.Model):
    """Persistence model for orders."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="orders")
    buyer = models.ForeignKey(User, on_delete=models.PROTECT, related_name="orders")
    total_amount = models.PositiveIntegerField()
    currency = models.CharField(max_length=3)
    payment_provider = models.CharField(max_length=50, blank=True, null=True)
    payment_reference = models.CharField(max_length=255, blank=True, null=True)
    status = models.CharField(max_length=16, choices=_choices(OrderStatus))
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer"]),
            models.Index(fields=["event", "status"]),
            models.Index(fields=["status", "expires_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["buyer", "event"],
                condition=models.Q(status=OrderStatus.COMPLETED.value),
                name="one_completed_order_per_buyer_event",
            ),
        ]

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status})"


class OrderItem(models.Model):
    """Persistence model for the ticket types reserved by an order."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.PROTECT, related_name="order_items"
    )
    quantity = models.PositiveIntegerField()
    unit_price = models.PositiveIntegerField()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["order", "ticket_type"], name="one_line_per_ticket_type"
            ),
        ]


class Ticket(models.Model):
    """Persistence model for issued tickets."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="tickets")
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="tickets")
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.PROTECT, related_name="tickets"
    )
    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="tickets")
    ticket_number = models.CharField(max_length=32, unique=True)
    qr_code_secret = models.CharField(max_length=64, unique=True)
    status = models.CharField(
        max_length=16, choices=_choices(TicketStatus), default=TicketStatus.VALID.value
    )
    checked_in_at = models.DateTimeField(blank=True, null=True)
    checked_in_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        related_name="checked_in_tickets",
        blank=True,
        null=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order"]),
            models.Index(fields=["user"]),
            models.Index(fields=["event", "status"]),
        ]

    def __str__(self) -> str:
        return self.ticket_number


class WaitlistEntry(models.Model):
    """Persistence model for users waiting on sold-out events."""

    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="waitlist_entries"
    )
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="waitlist_entries"
    )
    ticket_types = models.ManyToManyField(
        TicketType, blank=True, related_name="waitlist_entries"
    )
    status = models.CharField(
        max_length=16,
        choices=_choices(WaitlistStatus),
        default=WaitlistStatus.WAITING.value,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "waitlist entries"
        constraints = [
            models.UniqueConstraint(fields=["event", "user"], name="one_waitlist_entry"),
        ]


class Activity(models.Model):
    """Append-only audit trail."""

    action = models.CharField(max_length=64)
    actor = models.ForeignKey(
        User, on_delete=models.SET_NULL, related_name="activities", blank=True, null=True
    )
    event = models.ForeignKey(
        Event, on_delete=models.SET_NULL, related_name="activities", blank=True, null=True
    )
    order = models.ForeignKey(
        Order, on_delete=models.SET_NULL, related_name="activities", blank=True, null=True
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "activities"
        indexes = [
            models.Index(fields=["event"]),
            models.Index(fields=["actor"]),
            models.Index(fields=["created_at"]),
        ]

    def __str__(self) -> str:
        return self.action
