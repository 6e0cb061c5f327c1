from django.contrib import admin

from ticketing.models import (
    Activity,
    Category,
    Event,
    Order,
    OrderItem,
    Ticket,
    TicketType,
    User,
    WaitlistEntry,
)


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 1
    readonly_fields = ["sold_quantity"]


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ["ticket_type", "quantity", "unit_price"]


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ["email", "first_name", "last_name", "role", "status", "created_at"]
    list_filter = ["role", "status"]
    search_fields = ["email", "external_id", "username"]


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "icon", "color"]
    prepopulated_fields = {"slug": ["name"]}


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "organizer", "starts_at", "approval_status", "is_published"]
    list_filter = ["approval_status", "is_published", "category"]
    search_fields = ["title", "slug", "location_name"]
    inlines = [TicketTypeInline]


@admin.register(TicketType)
class TicketTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price", "currency", "total_quantity", "sold_quantity"]
    list_filter = ["event"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "event", "buyer", "status", "total_amount", "currency", "created_at"]
    list_filter = ["status"]
    inlines = [OrderItemInline]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["ticket_number", "event", "user", "status", "checked_in_at"]
    list_filter = ["status", "event"]
    search_fields = ["ticket_number"]


@admin.register(WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin):
    list_display = ["event", "user", "status", "created_at"]
    list_filter = ["status"]


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ["action", "actor", "event", "created_at"]
    list_filter = ["action"]
