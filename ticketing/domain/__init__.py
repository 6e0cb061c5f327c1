from ticketing.domain.models import (
    Activity,
    AdminStats,
    ApprovalStatus,
    Attendee,
    AttendeeTicket,
    Category,
    Event,
    EventDetail,
    EventDraft,
    EventSalesStats,
    EventTickets,
    IdentityProfile,
    NewTicket,
    Order,
    OrderConfirmation,
    OrderItem,
    OrderStatus,
    OrganizerEvent,
    OrganizerStats,
    PaidOrderHold,
    ReviewDecision,
    Role,
    Ticket,
    TicketStatus,
    TicketType,
    TicketTypeDraft,
    User,
    UserStatus,
    WaitlistEntry,
    WaitlistStatus,
)
from ticketing.domain.value_objects import (
    Capacity,
    CategoryId,
    EventId,
    Identity,
    Money,
    OrderId,
    TicketId,
    TicketTypeId,
    UserId,
)

__all__ = [
    "Activity",
    "AdminStats",
    "ApprovalStatus",
    "Attendee",
    "AttendeeTicket",
    "Category",
    "Event",
    "EventDetail",
    "EventDraft",
    "EventSalesStats",
    "EventTickets",
    "IdentityProfile",
    "NewTicket",
    "Order",
    "OrderConfirmation",
    "OrderItem",
    "OrderStatus",
    "OrganizerEvent",
    "OrganizerStats",
    "PaidOrderHold",
    "ReviewDecision",
    "Role",
    "Ticket",
    "TicketStatus",
    "TicketType",
    "TicketTypeDraft",
    "User",
    "UserStatus",
    "WaitlistEntry",
    "WaitlistStatus",
    "CategoryId",
    "EventId",
    "OrderId",
    "TicketId",
    "TicketTypeId",
    "UserId",
    "Identity",
    "Money",
    "Capacity",
]
