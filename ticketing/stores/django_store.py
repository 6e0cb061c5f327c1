"""Django ORM implementation of the store interfaces.

Rows are converted to domain models at the boundary; nothing outside this
module sees a Django model instance.
"""

from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import datetime

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Sum, Value
from django.db.models.functions import Greatest

from ticketing import models as orm
from ticketing.domain import (
    Activity,
    ApprovalStatus,
    Capacity,
    Category,
    CategoryId,
    Event,
    EventDraft,
    EventId,
    IdentityProfile,
    Money,
    NewTicket,
    Order,
    OrderId,
    OrderItem,
    OrderStatus,
    Role,
    Ticket,
    TicketId,
    TicketStatus,
    TicketType,
    TicketTypeDraft,
    TicketTypeId,
    User,
    UserId,
    UserStatus,
    WaitlistEntry,
    WaitlistStatus,
)
from ticketing.domain.errors import AlreadyRegisteredError
from ticketing.stores.interfaces import (
    ActivityStore,
    CatalogStore,
    DuplicateTicketError,
    OrderStore,
    UserStore,
    WaitlistStore,
)


def _user_to_domain(row: orm.User) -> User:
    return User(
        id=UserId(row.id),
        external_id=row.external_id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        role=Role(row.role),
        status=UserStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        image_url=row.image_url,
        username=row.username,
        phone=row.phone,
    )


def _category_to_domain(row: orm.Category) -> Category:
    return Category(
        id=CategoryId(row.id),
        name=row.name,
        slug=row.slug,
        icon=row.icon,
        color=row.color,
    )


def _event_to_domain(row: orm.Event) -> Event:
    return Event(
        id=EventId(row.id),
        title=row.title,
        slug=row.slug,
        description=row.description,
        organizer_id=UserId(row.organizer_id),
        category_id=CategoryId(row.category_id),
        location_name=row.location_name,
        address=row.address,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        timezone=row.timezone,
        cover_image_url=row.cover_image_url,
        is_published=row.is_published,
        approval_status=ApprovalStatus(row.approval_status),
        min_order=row.min_order,
        max_order=row.max_order,
        created_at=row.created_at,
        updated_at=row.updated_at,
        short_description=row.short_description,
        latitude=row.latitude,
        longitude=row.longitude,
        total_capacity=row.total_capacity,
        tags=tuple(row.tags or ()),
        approval_notes=row.approval_notes,
        reviewed_by=UserId(row.reviewed_by_id) if row.reviewed_by_id else None,
        reviewed_at=row.reviewed_at,
    )


def _ticket_type_to_domain(row: orm.TicketType) -> TicketType:
    return TicketType(
        id=TicketTypeId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(amount=row.price, currency=row.currency),
        total_quantity=Capacity(row.total_quantity),
        sold_quantity=Capacity(row.sold_quantity),
        is_visible=row.is_visible,
        min_per_order=row.min_per_order,
        max_per_order=row.max_per_order,
        description=row.description,
        sale_start=row.sale_start,
        sale_end=row.sale_end,
    )


def _order_to_domain(row: orm.Order) -> Order:
    items = tuple(
        OrderItem(
            ticket_type_id=TicketTypeId(item.ticket_type_id),
            quantity=item.quantity,
            unit_price=Money(amount=item.unit_price, currency=row.currency),
        )
        for item in row.items.all()
    )
    return Order(
        id=OrderId(row.id),
        event_id=EventId(row.event_id),
        buyer_id=UserId(row.buyer_id),
        total=Money(amount=row.total_amount, currency=row.currency),
        status=OrderStatus(row.status),
        created_at=row.created_at,
        expires_at=row.expires_at,
        completed_at=row.completed_at,
        payment_provider=row.payment_provider,
        payment_reference=row.payment_reference,
        items=items,
    )


def _ticket_to_domain(row: orm.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        order_id=OrderId(row.order_id),
        event_id=EventId(row.event_id),
        ticket_type_id=TicketTypeId(row.ticket_type_id),
        user_id=UserId(row.user_id),
        ticket_number=row.ticket_number,
        qr_code_secret=row.qr_code_secret,
        status=TicketStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        checked_in_at=row.checked_in_at,
        checked_in_by=UserId(row.checked_in_by_id) if row.checked_in_by_id else None,
    )


def _waitlist_to_domain(row: orm.WaitlistEntry) -> WaitlistEntry:
    return WaitlistEntry(
        event_id=EventId(row.event_id),
        user_id=UserId(row.user_id),
        status=WaitlistStatus(row.status),
        created_at=row.created_at,
        ticket_type_ids=tuple(
            TicketTypeId(pk) for pk in row.ticket_types.values_list("pk", flat=True)
        ),
    )


def _activity_to_domain(row: orm.Activity) -> Activity:
    return Activity(
        action=row.action,
        created_at=row.created_at,
        actor_id=UserId(row.actor_id) if row.actor_id else None,
        event_id=EventId(row.event_id) if row.event_id else None,
        order_id=OrderId(row.order_id) if row.order_id else None,
        metadata=dict(row.metadata or {}),
    )


class DjangoTransactionalStore:
    def atomic(self) -> AbstractContextManager:
        return transaction.atomic()


class DjangoUserStore(DjangoTransactionalStore, UserStore):
    """PostgreSQL-backed user directory using Django ORM."""

    def get_by_external_id(self, external_id: str) -> User | None:
        row = orm.User.objects.filter(external_id=external_id).first()
        return _user_to_domain(row) if row else None

    def get_user(self, user_id: UserId) -> User | None:
        row = orm.User.objects.filter(pk=user_id.value).first()
        return _user_to_domain(row) if row else None

    def get_users(self, user_ids: Iterable[UserId]) -> dict[UserId, User]:
        rows = orm.User.objects.filter(pk__in=[uid.value for uid in user_ids])
        return {UserId(row.id): _user_to_domain(row) for row in rows}

    def create_user(self, profile: IdentityProfile, role: Role) -> User:
        row = orm.User.objects.create(
            external_id=profile.external_id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            image_url=profile.image_url,
            username=profile.username,
            phone=profile.phone,
            role=role.value,
            status=UserStatus.ACTIVE.value,
        )
        return _user_to_domain(row)

    def update_profile(self, user_id: UserId, profile: IdentityProfile) -> User:
        row = orm.User.objects.get(pk=user_id.value)
        row.email = profile.email
        row.first_name = profile.first_name
        row.last_name = profile.last_name
        row.image_url = profile.image_url
        row.username = profile.username
        row.phone = profile.phone
        row.save(
            update_fields=[
                "email",
                "first_name",
                "last_name",
                "image_url",
                "username",
                "phone",
                "updated_at",
            ]
        )
        return _user_to_domain(row)

    def set_status(self, user_id: UserId, status: UserStatus) -> None:
        row = orm.User.objects.get(pk=user_id.value)
        row.status = status.value
        row.save(update_fields=["status", "updated_at"])

    def has_records(self, user_id: UserId) -> bool:
        return (
            orm.Event.objects.filter(organizer_id=user_id.value).exists()
            or orm.Order.objects.filter(buyer_id=user_id.value).exists()
            or orm.Ticket.objects.filter(user_id=user_id.value).exists()
        )

    def delete_user(self, user_id: UserId) -> None:
        orm.User.objects.filter(pk=user_id.value).delete()

    def count_by_role(self) -> dict[Role, int]:
        counts = {role: 0 for role in Role}
        for row in orm.User.objects.values("role").annotate(total=Count("id")):
            counts[Role(row["role"])] = row["total"]
        return counts


class DjangoCatalogStore(DjangoTransactionalStore, CatalogStore):
    """PostgreSQL-backed catalog store using Django ORM."""

    def list_categories(self) -> list[Category]:
        return [_category_to_domain(row) for row in orm.Category.objects.order_by("name")]

    def get_category(self, category_id: CategoryId) -> Category | None:
        row = orm.Category.objects.filter(pk=category_id.value).first()
        return _category_to_domain(row) if row else None

    def get_category_by_slug(self, slug: str) -> Category | None:
        row = orm.Category.objects.filter(slug=slug).first()
        return _category_to_domain(row) if row else None

    def create_category(
        self, name: str, slug: str, icon: str | None, color: str | None
    ) -> Category:
        row = orm.Category.objects.create(name=name, slug=slug, icon=icon, color=color)
        return _category_to_domain(row)

    def slug_exists(self, slug: str) -> bool:
        return orm.Event.objects.filter(slug=slug).exists()

    def create_event(
        self, draft: EventDraft, slug: str, organizer_id: UserId
    ) -> Event:
        row = orm.Event.objects.create(
            title=draft.title,
            slug=slug,
            description=draft.description,
            short_description=draft.short_description,
            organizer_id=organizer_id.value,
            category_id=draft.category_id.value,
            location_name=draft.location_name,
            address=draft.address,
            latitude=draft.latitude,
            longitude=draft.longitude,
            starts_at=draft.starts_at,
            ends_at=draft.ends_at,
            timezone=draft.timezone,
            cover_image_url=draft.cover_image_url,
            is_published=False,
            total_capacity=draft.total_capacity,
            min_order=draft.min_order,
            max_order=draft.max_order,
            approval_status=ApprovalStatus.PENDING.value,
            tags=list(draft.tags),
        )
        return _event_to_domain(row)

    def create_ticket_type(
        self, event_id: EventId, draft: TicketTypeDraft
    ) -> TicketType:
        row = orm.TicketType.objects.create(
            event_id=event_id.value,
            name=draft.name,
            description=draft.description,
            price=draft.price.amount,
            currency=draft.price.currency,
            total_quantity=draft.total_quantity.value,
            sold_quantity=0,
            sale_start=draft.sale_start,
            sale_end=draft.sale_end,
            is_visible=draft.is_visible,
            min_per_order=draft.min_per_order,
            max_per_order=draft.max_per_order,
        )
        return _ticket_type_to_domain(row)

    def get_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.filter(pk=event_id.value).first()
        return _event_to_domain(row) if row else None

    def get_event_for_update(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.select_for_update().filter(pk=event_id.value).first()
        return _event_to_domain(row) if row else None

    def get_events(self, event_ids: Iterable[EventId]) -> dict[EventId, Event]:
        rows = orm.Event.objects.filter(pk__in=[eid.value for eid in event_ids])
        return {EventId(row.id): _event_to_domain(row) for row in rows}

    def get_event_by_slug(self, slug: str) -> Event | None:
        row = orm.Event.objects.filter(slug=slug).first()
        return _event_to_domain(row) if row else None

    def list_published_events(
        self, category_id: CategoryId | None = None
    ) -> list[Event]:
        rows = orm.Event.objects.filter(
            is_published=True, approval_status=ApprovalStatus.APPROVED.value
        ).order_by("starts_at")
        if category_id is not None:
            rows = rows.filter(category_id=category_id.value)
        return [_event_to_domain(row) for row in rows]

    def list_events(self, approval_status: ApprovalStatus | None = None) -> list[Event]:
        rows = orm.Event.objects.order_by("-created_at")
        if approval_status is not None:
            rows = rows.filter(approval_status=approval_status.value)
        return [_event_to_domain(row) for row in rows]

    def list_events_by_organizer(self, organizer_id: UserId) -> list[Event]:
        rows = orm.Event.objects.filter(organizer_id=organizer_id.value)
        return [_event_to_domain(row) for row in rows]

    def record_review(
        self,
        event_id: EventId,
        approval_status: ApprovalStatus,
        is_published: bool,
        notes: str | None,
        reviewed_by: UserId,
        reviewed_at: datetime,
    ) -> Event:
        row = orm.Event.objects.get(pk=event_id.value)
        row.approval_status = approval_status.value
        row.is_published = is_published
        row.approval_notes = notes
        row.reviewed_by_id = reviewed_by.value
        row.reviewed_at = reviewed_at
        row.save(
            update_fields=[
                "approval_status",
                "is_published",
                "approval_notes",
                "reviewed_by",
                "reviewed_at",
                "updated_at",
            ]
        )
        return _event_to_domain(row)

    def get_ticket_types(
        self, event_id: EventId, visible_only: bool = False
    ) -> list[TicketType]:
        rows = orm.TicketType.objects.filter(event_id=event_id.value)
        if visible_only:
            rows = rows.filter(is_visible=True)
        return [_ticket_type_to_domain(row) for row in rows]

    def get_ticket_types_by_id(
        self, ticket_type_ids: Iterable[TicketTypeId]
    ) -> dict[TicketTypeId, TicketType]:
        rows = orm.TicketType.objects.filter(pk__in=[tid.value for tid in ticket_type_ids])
        return {TicketTypeId(row.id): _ticket_type_to_domain(row) for row in rows}

    def lock_ticket_types(
        self, ticket_type_ids: Iterable[TicketTypeId]
    ) -> dict[TicketTypeId, TicketType]:
        # Consistent lock order keeps concurrent multi-line checkouts deadlock free.
        rows = (
            orm.TicketType.objects.select_for_update()
            .filter(pk__in=[tid.value for tid in ticket_type_ids])
            .order_by("pk")
        )
        return {TicketTypeId(row.id): _ticket_type_to_domain(row) for row in rows}

    def reserve_inventory(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        updated = orm.TicketType.objects.filter(
            pk=ticket_type_id.value,
            sold_quantity__lte=F("total_quantity") - quantity,
        ).update(sold_quantity=F("sold_quantity") + quantity)
        return updated == 1

    def release_inventory(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        orm.TicketType.objects.filter(pk=ticket_type_id.value).update(
            sold_quantity=Greatest(F("sold_quantity") - quantity, Value(0))
        )


class DjangoOrderStore(DjangoTransactionalStore, OrderStore):
    """PostgreSQL-backed order ledger using Django ORM."""

    def _orders(self):
        return orm.Order.objects.prefetch_related("items")

    def find_completed_order(self, buyer_id: UserId, event_id: EventId) -> Order | None:
        row = (
            self._orders()
            .filter(
                buyer_id=buyer_id.value,
                event_id=event_id.value,
                status=OrderStatus.COMPLETED.value,
            )
            .first()
        )
        return _order_to_domain(row) if row else None

    def latest_completed_order(
        self, buyer_id: UserId, event_id: EventId
    ) -> Order | None:
        row = (
            self._orders()
            .filter(
                buyer_id=buyer_id.value,
                event_id=event_id.value,
                status=OrderStatus.COMPLETED.value,
            )
            .order_by("-created_at")
            .first()
        )
        return _order_to_domain(row) if row else None

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
        items = list(items)
        try:
            with transaction.atomic():
                row = orm.Order.objects.create(
                    event_id=event_id.value,
                    buyer_id=buyer_id.value,
                    total_amount=sum(item.subtotal.amount for item in items),
                    currency=currency,
                    status=status.value,
                    expires_at=expires_at,
                    completed_at=completed_at,
                )
        except IntegrityError as exc:
            raise AlreadyRegisteredError(str(event_id)) from exc
        orm.OrderItem.objects.bulk_create(
            orm.OrderItem(
                order=row,
                ticket_type_id=item.ticket_type_id.value,
                quantity=item.quantity,
                unit_price=item.unit_price.amount,
            )
            for item in items
        )
        return _order_to_domain(self._orders().get(pk=row.pk))

    def get_order_for_update(self, order_id: OrderId) -> Order | None:
        row = self._orders().select_for_update().filter(pk=order_id.value).first()
        return _order_to_domain(row) if row else None

    def mark_completed(
        self,
        order_id: OrderId,
        payment_reference: str,
        payment_provider: str | None,
        completed_at: datetime,
    ) -> Order:
        row = orm.Order.objects.get(pk=order_id.value)
        row.status = OrderStatus.COMPLETED.value
        row.payment_reference = payment_reference
        row.payment_provider = payment_provider
        row.completed_at = completed_at
        try:
            with transaction.atomic():
                row.save(
                    update_fields=[
                        "status",
                        "payment_reference",
                        "payment_provider",
                        "completed_at",
                    ]
                )
        except IntegrityError as exc:
            raise AlreadyRegisteredError(str(row.event_id)) from exc
        return _order_to_domain(self._orders().get(pk=row.pk))

    def mark_cancelled(self, order_id: OrderId) -> Order:
        orm.Order.objects.filter(pk=order_id.value).update(
            status=OrderStatus.CANCELLED.value
        )
        return _order_to_domain(self._orders().get(pk=order_id.value))

    def expired_pending_orders(self, now: datetime) -> list[OrderId]:
        ids = orm.Order.objects.filter(
            status=OrderStatus.PENDING.value, expires_at__lte=now
        ).values_list("pk", flat=True)
        return [OrderId(pk) for pk in ids]

    def issue_tickets(
        self, order: Order, user_id: UserId, tickets: Iterable[NewTicket]
    ) -> list[Ticket]:
        try:
            # Savepoint: a unique violation must not poison the caller's transaction.
            with transaction.atomic():
                rows = orm.Ticket.objects.bulk_create(
                    orm.Ticket(
                        order_id=order.id.value,
                        event_id=order.event_id.value,
                        ticket_type_id=ticket.ticket_type_id.value,
                        user_id=user_id.value,
                        ticket_number=ticket.ticket_number,
                        qr_code_secret=ticket.qr_code_secret,
                        status=TicketStatus.VALID.value,
                    )
                    for ticket in tickets
                )
        except IntegrityError as exc:
            raise DuplicateTicketError(str(order.id)) from exc
        return [_ticket_to_domain(row) for row in rows]

    def tickets_for_order(self, order_id: OrderId) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(order_id=order_id.value).order_by("created_at")
        return [_ticket_to_domain(row) for row in rows]

    def tickets_for_user(self, user_id: UserId) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(user_id=user_id.value).order_by("-created_at")
        return [_ticket_to_domain(row) for row in rows]

    def tickets_for_event(self, event_id: EventId) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(event_id=event_id.value).order_by("created_at")
        return [_ticket_to_domain(row) for row in rows]

    def tickets_for_events(self, event_ids: Iterable[EventId]) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(event_id__in=[eid.value for eid in event_ids])
        return [_ticket_to_domain(row) for row in rows]

    def get_ticket_by_secret_for_update(self, qr_code_secret: str) -> Ticket | None:
        row = (
            orm.Ticket.objects.select_for_update()
            .filter(qr_code_secret=qr_code_secret)
            .first()
        )
        return _ticket_to_domain(row) if row else None

    def mark_checked_in(
        self, ticket: Ticket, checked_in_by: UserId, checked_in_at: datetime
    ) -> Ticket:
        row = orm.Ticket.objects.get(pk=ticket.id.value)
        row.status = TicketStatus.CHECKED_IN.value
        row.checked_in_by_id = checked_in_by.value
        row.checked_in_at = checked_in_at
        row.save(update_fields=["status", "checked_in_by", "checked_in_at", "updated_at"])
        return _ticket_to_domain(row)

    def count_tickets_sold(self) -> tuple[int, int]:
        totals = orm.Ticket.objects.exclude(status=TicketStatus.VOIDED.value).aggregate(
            count=Count("id"), revenue=Sum("ticket_type__price")
        )
        return totals["count"], totals["revenue"] or 0


class DjangoWaitlistStore(DjangoTransactionalStore, WaitlistStore):
    def get_entry(self, event_id: EventId, user_id: UserId) -> WaitlistEntry | None:
        row = orm.WaitlistEntry.objects.filter(
            event_id=event_id.value, user_id=user_id.value
        ).first()
        return _waitlist_to_domain(row) if row else None

    def add_entry(
        self,
        event_id: EventId,
        user_id: UserId,
        ticket_type_ids: Iterable[TicketTypeId],
    ) -> WaitlistEntry:
        row = orm.WaitlistEntry.objects.create(
            event_id=event_id.value,
            user_id=user_id.value,
            status=WaitlistStatus.WAITING.value,
        )
        row.ticket_types.set([tid.value for tid in ticket_type_ids])
        return _waitlist_to_domain(row)


class DjangoActivityStore(ActivityStore):
    def record(self, activity: Activity) -> None:
        orm.Activity.objects.create(
            action=activity.action,
            actor_id=activity.actor_id.value if activity.actor_id else None,
            event_id=activity.event_id.value if activity.event_id else None,
            order_id=activity.order_id.value if activity.order_id else None,
            metadata=activity.metadata,
        )

    def list_for_event(self, event_id: EventId, limit: int) -> list[Activity]:
        rows = orm.Activity.objects.filter(event_id=event_id.value).order_by("-created_at")
        return [_activity_to_domain(row) for row in rows[:limit]]
