"""Domain error to HTTP response mapping.

Responses carry the error code and user-safe message only.
"""

from typing import Any

from rest_framework import status
from rest_framework.response import Response

from ticketing.domain.errors import (
    CancellationNotAllowedError,
    CheckoutNotFoundError,
    DomainError,
    EventNotFoundError,
    InvalidOrderRefError,
    InvalidTransitionError,
    InventoryError,
    IssuanceError,
    PaymentError,
    SessionNotFoundError,
    TicketAlreadyUsedError,
    TicketNotFoundError,
    TicketNotValidError,
)

# First match wins, so subclasses come before their bases.
ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (CheckoutNotFoundError, status.HTTP_404_NOT_FOUND),
    (EventNotFoundError, status.HTTP_404_NOT_FOUND),
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (TicketNotFoundError, status.HTTP_404_NOT_FOUND),
    (InventoryError, status.HTTP_409_CONFLICT),
    (PaymentError, status.HTTP_402_PAYMENT_REQUIRED),
    (IssuanceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (CancellationNotAllowedError, status.HTTP_409_CONFLICT),
    (TicketAlreadyUsedError, status.HTTP_409_CONFLICT),
    (TicketNotValidError, status.HTTP_409_CONFLICT),
    (InvalidOrderRefError, status.HTTP_400_BAD_REQUEST),
]


def status_for(error: DomainError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(error, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def error_body(code: str, message: str, **details: Any) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, **details}}


def error_response(error: DomainError, **extra: Any) -> Response:
    return Response(
        {**error_body(error.code.value, error.message), **extra},
        status=status_for(error),
    )


def validation_error_response(errors: Any) -> Response:
    return Response(
        error_body("VALIDATION_ERROR", "Invalid request", fields=errors),
        status=status.HTTP_400_BAD_REQUEST,
    )
