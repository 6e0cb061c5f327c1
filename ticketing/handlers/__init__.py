from ticketing.handlers.views import (
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

__all__ = [
    "AdminEventListView",
    "AdminStatsView",
    "CategoryListView",
    "CheckInView",
    "CurrentUserView",
    "EventActivityView",
    "EventAttendeesView",
    "EventDetailView",
    "EventListView",
    "EventReviewView",
    "FeaturedEventsView",
    "FreeOrderView",
    "IdentityWebhookView",
    "ManagedEventView",
    "MyTicketsView",
    "OrderConfirmationView",
    "OrderPaymentView",
    "OrganizerEventListView",
    "OrganizerStatsView",
    "PaidOrderView",
    "RecommendedEventsView",
    "RegistrationStatusView",
    "TicketTypeCreateView",
    "WaitlistView",
]
