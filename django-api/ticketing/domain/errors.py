"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    # Inventory
    SOLD_OUT = "SOLD_OUT"
    SEAT_UNAVAILABLE = "SEAT_UNAVAILABLE"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    HOLD_EXPIRED = "HOLD_EXPIRED"
    UNIT_NOT_FOUND = "UNIT_NOT_FOUND"
    QUANTITY_LIMIT_EXCEEDED = "QUANTITY_LIMIT_EXCEEDED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    HOLD_FINALIZED = "HOLD_FINALIZED"

    # Payment
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"
    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"
    INVALID_PAYMENT_REQUEST = "INVALID_PAYMENT_REQUEST"

    # Issuance
    INVENTORY_INCONSISTENT = "INVENTORY_INCONSISTENT"
    TICKET_MINTING_FAILED = "TICKET_MINTING_FAILED"

    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"

    # Checkout
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    CHECKOUT_NOT_FOUND = "CHECKOUT_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CANCELLATION_NOT_ALLOWED = "CANCELLATION_NOT_ALLOWED"
    INVALID_ORDER_REF = "INVALID_ORDER_REF"
    CHECKOUT_CANCELLED = "CHECKOUT_CANCELLED"
    CHECKOUT_SUPERSEDED = "CHECKOUT_SUPERSEDED"

    # Tickets
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    TICKET_ALREADY_USED = "TICKET_ALREADY_USED"
    TICKET_NOT_VALID = "TICKET_NOT_VALID"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InventoryError(DomainError):
    """Units could not be held or finalized. Never retried automatically."""


class SoldOutError(InventoryError):
    """Raised when a ticket type does not have enough remaining capacity."""

    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.SOLD_OUT,
            message=f"Not enough tickets remaining for {unit}",
        )


class SeatUnavailableError(InventoryError):
    """Raised when a seat is already held or sold."""

    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.SEAT_UNAVAILABLE,
            message=f"Seat {unit} is no longer available",
        )


class SessionNotFoundError(InventoryError):
    """Raised when a hold session does not exist or its token is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.SESSION_NOT_FOUND,
            message="Hold session not found",
        )


class HoldExpiredError(InventoryError):
    """Raised when a hold session is no longer active."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.HOLD_EXPIRED,
            message="Hold session has expired or was released",
        )


class UnitNotFoundError(InventoryError):
    """Raised when a requested unit does not belong to the event."""

    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.UNIT_NOT_FOUND,
            message=f"Unit {unit} not found for event",
        )


class QuantityLimitExceededError(InventoryError):
    """Raised when a request exceeds a ticket type's per-person limit."""

    def __init__(self, unit: str, limit: int) -> None:
        super().__init__(
            code=ErrorCode.QUANTITY_LIMIT_EXCEEDED,
            message=f"At most {limit} tickets per person for {unit}",
        )


class InvalidQuantityError(InventoryError):
    """Raised for non-positive quantities or seat quantities other than one."""

    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message=f"Invalid quantity requested for {unit}",
        )


class HoldFinalizedError(InventoryError):
    """Raised when a hold was already sold to another order."""

    def __init__(self, order_ref: str) -> None:
        super().__init__(
            code=ErrorCode.HOLD_FINALIZED,
            message=f"Hold was already finalized for order {order_ref}",
        )


@dataclass(frozen=True)
class PaymentError(DomainError):
    """Raised by payment gateways; the adapter turns it into a Failed result."""

    retryable: bool = False


class PaymentDeclinedError(PaymentError):
    def __init__(self, message: str = "Payment was declined") -> None:
        super().__init__(code=ErrorCode.PAYMENT_DECLINED, message=message, retryable=True)


class GatewayTimeoutError(PaymentError):
    def __init__(self, message: str = "Payment gateway did not respond") -> None:
        super().__init__(code=ErrorCode.GATEWAY_TIMEOUT, message=message, retryable=True)


class ConfigurationInvalidError(PaymentError):
    """Operator-facing setup error. Not retryable by the buyer."""

    def __init__(self, message: str = "Payment gateway is not configured") -> None:
        super().__init__(code=ErrorCode.CONFIGURATION_INVALID, message=message, retryable=False)


class InvalidPaymentRequestError(PaymentError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_PAYMENT_REQUEST, message=message, retryable=False)


class IssuanceError(DomainError):
    """Payment was captured but the sale could not be finalized."""


class InventoryInconsistentError(IssuanceError):
    """Raised when a paid hold cannot be committed. A refund must be signaled."""

    def __init__(self, message: str = "Paid inventory could not be finalized") -> None:
        super().__init__(code=ErrorCode.INVENTORY_INCONSISTENT, message=message)


class TicketMintingFailedError(IssuanceError):
    def __init__(self, message: str = "Tickets could not be issued") -> None:
        super().__init__(code=ErrorCode.TICKET_MINTING_FAILED, message=message)


class NotificationFailedError(DomainError):
    def __init__(self, message: str = "Confirmation email could not be sent") -> None:
        super().__init__(code=ErrorCode.NOTIFICATION_FAILED, message=message)


class CheckoutError(DomainError):
    """Checkout state machine errors."""


class EventNotFoundError(CheckoutError):
    """Raised when an event is not found."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )


class CheckoutNotFoundError(CheckoutError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CHECKOUT_NOT_FOUND,
            message="Checkout not found",
        )


class InvalidTransitionError(CheckoutError):
    def __init__(self, current: str, operation: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot {operation} a checkout in state {current}",
        )


class CancellationNotAllowedError(CheckoutError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CANCELLATION_NOT_ALLOWED,
            message="Checkout cannot be cancelled after payment was confirmed",
        )


class InvalidOrderRefError(CheckoutError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ORDER_REF,
            message="Invalid order reference format",
        )


class TicketNotFoundError(DomainError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found")


class TicketAlreadyUsedError(DomainError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_ALREADY_USED, message="Ticket already checked in")


class TicketNotValidError(DomainError):
    def __init__(self, status: str) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_VALID, message=f"Ticket is {status}")
