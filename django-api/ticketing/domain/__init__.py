from ticketing.domain.models import (
    Availability,
    Checkout,
    CheckoutState,
    Event,
    FailureStage,
    Gateway,
    HoldLine,
    HoldReceipt,
    HoldSession,
    HoldState,
    IssuanceResult,
    Order,
    OrderStatus,
    PaymentAttempt,
    PaymentState,
    Seat,
    SeatCategorySummary,
    SeatStatus,
    Ticket,
    TicketStatus,
    TicketType,
    TicketTypeAvailability,
)
from ticketing.domain.payments import (
    Confirmed,
    ConfirmedPayment,
    Failed,
    PaymentLine,
    PaymentRequest,
    PaymentResult,
    RequiresAction,
)
from ticketing.domain.value_objects import (
    Capacity,
    EventId,
    HoldSessionId,
    Money,
    OrderId,
    OrderRef,
    UnitKind,
    UnitRef,
)

__all__ = [
    "Availability",
    "Checkout",
    "CheckoutState",
    "Event",
    "FailureStage",
    "Gateway",
    "HoldLine",
    "HoldReceipt",
    "HoldSession",
    "HoldState",
    "IssuanceResult",
    "Order",
    "OrderStatus",
    "PaymentAttempt",
    "PaymentState",
    "Seat",
    "SeatCategorySummary",
    "SeatStatus",
    "Ticket",
    "TicketStatus",
    "TicketType",
    "TicketTypeAvailability",
    "Confirmed",
    "ConfirmedPayment",
    "Failed",
    "PaymentLine",
    "PaymentRequest",
    "PaymentResult",
    "RequiresAction",
    "Capacity",
    "EventId",
    "HoldSessionId",
    "Money",
    "OrderId",
    "OrderRef",
    "UnitKind",
    "UnitRef",
]
