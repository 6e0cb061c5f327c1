"""Map domain errors to HTTP responses.

Installed as the REST framework exception handler, so views let domain
errors propagate and every failure leaves the API with the same body:
``{"error": {"code": ..., "message": ...}}``.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from ticketing.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.USER_SUSPENDED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_FREE_TICKET: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_TICKET_TYPE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INSUFFICIENT_INVENTORY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.ZERO_AMOUNT_REJECTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.QUANTITY_OUT_OF_RANGE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.TICKET_SALES_CLOSED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.MIXED_CURRENCY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorCode.ORDER_NOT_PENDING: status.HTTP_409_CONFLICT,
    ErrorCode.ORDER_EXPIRED: status.HTTP_410_GONE,
    ErrorCode.ORDER_ITEMS_MISMATCH: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_ALREADY_REVIEWED: status.HTTP_409_CONFLICT,
    ErrorCode.TICKET_NOT_VALID: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CATEGORY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_EVENT_DATA: status.HTTP_400_BAD_REQUEST,
}


def error_body(code: str, message: str, **extra) -> dict:
    return {"error": {"code": code, "message": message, **extra}}


def domain_error_response(exc: DomainError) -> Response:
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    logger.info("Request rejected with %s (%d)", exc.code.value, status_code)
    return Response(error_body(exc.code.value, exc.message), status=status_code)


def ticketing_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        return domain_error_response(exc)
    response = exception_handler(exc, context)
    if response is None:
        return None
    code = getattr(exc, "default_code", "error").upper()
    message = getattr(exc, "default_detail", "Request failed")
    response.data = error_body(code, str(message), details=response.data)
    return response
