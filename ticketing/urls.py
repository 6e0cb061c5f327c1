from django.urls import path

from ticketing.handlers import (
    AdminEventListView,
    AdminStatsView,
    CategoryListView,
    CheckInView,
    CurrentUserView,
    EventActivityView,
    EventAttendeesView,
    EventDetailView,
    EventListView,
    EventReviewView,
    FeaturedEventsView,
    FreeOrderView,
    IdentityWebhookView,
    ManagedEventView,
    MyTicketsView,
    OrderConfirmationView,
    OrderPaymentView,
    OrganizerEventListView,
    OrganizerStatsView,
    PaidOrderView,
    RecommendedEventsView,
    RegistrationStatusView,
    TicketTypeCreateView,
    WaitlistView,
)

urlpatterns = [
    path("categories", CategoryListView.as_view(), name="category-list"),
    path("events", EventListView.as_view(), name="event-list"),
    path("events/<str:slug>", EventDetailView.as_view(), name="event-detail"),
    path("featured-events", FeaturedEventsView.as_view(), name="featured-events"),
    path(
        "recommended-events",
        RecommendedEventsView.as_view(),
        name="recommended-events",
    ),
    path(
        "events/<str:slug>/confirmation",
        OrderConfirmationView.as_view(),
        name="order-confirmation",
    ),
    path(
        "events/<str:event_id>/registration",
        RegistrationStatusView.as_view(),
        name="registration-status",
    ),
    path("events/<str:event_id>/free-orders", FreeOrderView.as_view(), name="free-order"),
    path("events/<str:event_id>/orders", PaidOrderView.as_view(), name="paid-order"),
    path("events/<str:event_id>/waitlist", WaitlistView.as_view(), name="waitlist"),
    path("orders/<str:order_id>/payment", OrderPaymentView.as_view(), name="order-payment"),
    path("me", CurrentUserView.as_view(), name="current-user"),
    path("me/tickets", MyTicketsView.as_view(), name="my-tickets"),
    path("organizer/events", OrganizerEventListView.as_view(), name="organizer-events"),
    path("organizer/stats", OrganizerStatsView.as_view(), name="organizer-stats"),
    path("manage/events/<str:event_id>", ManagedEventView.as_view(), name="managed-event"),
    path(
        "manage/events/<str:event_id>/ticket-types",
        TicketTypeCreateView.as_view(),
        name="ticket-type-create",
    ),
    path(
        "manage/events/<str:event_id>/attendees",
        EventAttendeesView.as_view(),
        name="event-attendees",
    ),
    path(
        "manage/events/<str:event_id>/activity",
        EventActivityView.as_view(),
        name="event-activity",
    ),
    path("manage/check-ins", CheckInView.as_view(), name="check-in"),
    path("admin/events", AdminEventListView.as_view(), name="admin-events"),
    path(
        "admin/events/<str:event_id>/review",
        EventReviewView.as_view(),
        name="event-review",
    ),
    path("admin/stats", AdminStatsView.as_view(), name="admin-stats"),
    path("identity/webhook", IdentityWebhookView.as_view(), name="identity-webhook"),
]
