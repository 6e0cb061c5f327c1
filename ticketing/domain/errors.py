"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    # authorization
    UNAUTHENTICATED = "UNAUTHENTICATED"
    UNAUTHORIZED = "UNAUTHORIZED"
    USER_SUSPENDED = "USER_SUSPENDED"

    # inventory
    INVALID_FREE_TICKET = "INVALID_FREE_TICKET"
    INVALID_TICKET_TYPE = "INVALID_TICKET_TYPE"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    ZERO_AMOUNT_REJECTED = "ZERO_AMOUNT_REJECTED"
    QUANTITY_OUT_OF_RANGE = "QUANTITY_OUT_OF_RANGE"
    TICKET_SALES_CLOSED = "TICKET_SALES_CLOSED"
    MIXED_CURRENCY = "MIXED_CURRENCY"

    # state
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    ORDER_NOT_PENDING = "ORDER_NOT_PENDING"
    ORDER_EXPIRED = "ORDER_EXPIRED"
    ORDER_ITEMS_MISMATCH = "ORDER_ITEMS_MISMATCH"
    EVENT_ALREADY_REVIEWED = "EVENT_ALREADY_REVIEWED"
    TICKET_NOT_VALID = "TICKET_NOT_VALID"

    # not found
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"

    # input
    INVALID_ID = "INVALID_ID"
    INVALID_EVENT_DATA = "INVALID_EVENT_DATA"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class UnauthenticatedError(DomainError):
    """Raised when an operation needs a known identity and has none."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.UNAUTHENTICATED,
            message="Authentication required",
        )


class UnauthorizedError(DomainError):
    """Raised when the caller lacks the required role or ownership."""

    def __init__(self, message: str = "Not allowed to perform this action") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class UserSuspendedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.USER_SUSPENDED,
            message="Account is suspended",
        )


class InvalidFreeTicketError(DomainError):
    """Raised when a free order targets a missing or priced ticket type."""

    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_FREE_TICKET,
            message="Invalid free ticket",
        )
        self.ticket_type_id = ticket_type_id


class InvalidTicketTypeError(DomainError):
    """Raised when a ticket type is missing, foreign to the event or off sale."""

    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TICKET_TYPE,
            message="Invalid ticket type",
        )
        self.ticket_type_id = ticket_type_id


class InsufficientInventoryError(DomainError):
    """Raised when fewer tickets remain than were requested."""

    def __init__(self, ticket_type_id: str, requested: int, remaining: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            message="Not enough tickets",
        )
        self.ticket_type_id = ticket_type_id
        self.requested = requested
        self.remaining = remaining


class ZeroAmountRejectedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ZERO_AMOUNT_REJECTED,
            message="Paid checkout requires a non-zero total",
        )


class QuantityOutOfRangeError(DomainError):
    """Raised when a quantity is outside the ticket type's per-order limits."""

    def __init__(self, ticket_type_id: str, minimum: int, maximum: int) -> None:
        super().__init__(
            code=ErrorCode.QUANTITY_OUT_OF_RANGE,
            message=f"Quantity must be between {minimum} and {maximum}",
        )
        self.ticket_type_id = ticket_type_id


class TicketSalesClosedError(DomainError):
    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_SALES_CLOSED,
            message="Tickets are not on sale",
        )
        self.ticket_type_id = ticket_type_id


class MixedCurrencyError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.MIXED_CURRENCY,
            message="All tickets in an order must share one currency",
        )


class AlreadyRegisteredError(DomainError):
    """Raised when the buyer already holds a completed order for the event."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="Already registered for this event",
        )
        self.event_id = event_id


class OrderNotPendingError(DomainError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            code=ErrorCode.ORDER_NOT_PENDING,
            message="Order is not awaiting payment",
        )
        self.order_id = order_id


class OrderExpiredError(DomainError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            code=ErrorCode.ORDER_EXPIRED,
            message="Order payment hold has expired",
        )
        self.order_id = order_id


class OrderItemsMismatchError(DomainError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            code=ErrorCode.ORDER_ITEMS_MISMATCH,
            message="Items do not match the reserved order",
        )
        self.order_id = order_id


class EventAlreadyReviewedError(DomainError):
    """Raised when reviewing an event that has left the pending state."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_ALREADY_REVIEWED,
            message="Event has already been reviewed",
        )
        self.event_id = event_id


class TicketNotValidError(DomainError):
    def __init__(self, status: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_VALID,
            message=f"Ticket cannot be checked in ({status})",
        )
        self.status = status


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class CategoryNotFoundError(DomainError):
    def __init__(self, category_id: str) -> None:
        super().__init__(
            code=ErrorCode.CATEGORY_NOT_FOUND,
            message="Category not found",
        )
        self.category_id = category_id


class OrderNotFoundError(DomainError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            code=ErrorCode.ORDER_NOT_FOUND,
            message="Order not found",
        )
        self.order_id = order_id


class TicketNotFoundError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Ticket not found",
        )


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str = "resource") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {kind} ID format",
        )


class InvalidEventDataError(DomainError):
    """Raised when event or ticket type input breaks a domain rule."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_EVENT_DATA, message=message)
