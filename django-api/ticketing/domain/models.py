"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from ticketing.domain.value_objects import (
    Capacity,
    EventId,
    HoldSessionId,
    Money,
    OrderId,
    OrderRef,
    UnitRef,
)


class SeatStatus(Enum):
    AVAILABLE = "available"
    HELD = "held"
    SOLD = "sold"


class HoldState(Enum):
    ACTIVE = "active"
    FINALIZED = "finalized"
    RELEASED = "released"
    EXPIRED = "expired"


class Gateway(Enum):
    PAYPAL = "paypal"
    SQUARE = "square"
    CASHAPP = "cashapp"


class PaymentState(Enum):
    INITIATED = "initiated"
    REQUIRES_ACTION = "requires_action"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class OrderStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TicketStatus(Enum):
    ACTIVE = "active"
    USED = "used"
    CANCELLED = "cancelled"


class CheckoutState(Enum):
    CART = "cart"
    HOLD_ACQUIRED = "hold_acquired"
    AWAITING_PAYMENT = "awaiting_payment"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ISSUING = "issuing"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureStage(Enum):
    HOLD = "hold"
    PAYMENT = "payment"
    ISSUANCE = "issuance"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


# States in which no money has moved yet; the hold may still time out.
PRE_PAYMENT_STATES = frozenset(
    {
        CheckoutState.CART,
        CheckoutState.HOLD_ACQUIRED,
        CheckoutState.AWAITING_PAYMENT,
        CheckoutState.PAYMENT_PENDING,
    }
)


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    name: str
    venue: str
    starts_at: datetime


@dataclass(frozen=True)
class TicketType:
    """Fungible sellable unit with a shared capacity."""

    id: UnitRef
    event_id: EventId
    name: str
    price: Money
    capacity: Capacity
    sold_count: int = 0
    held_count: int = 0
    max_per_person: int | None = None
    early_bird_price: Money | None = None
    early_bird_until: datetime | None = None

    @property
    def remaining(self) -> int:
        return self.capacity.value - self.sold_count - self.held_count

    def price_at(self, now: datetime) -> Money:
        """Effective unit price, honouring the early-bird window."""
        if self.early_bird_price is not None and self.early_bird_until is not None:
            if now < self.early_bird_until:
                return self.early_bird_price
        return self.price


@dataclass(frozen=True)
class Seat:
    """Unique sellable unit."""

    id: UnitRef
    event_id: EventId
    label: str
    category: str
    price: Money
    status: SeatStatus
    table_id: str | None = None


@dataclass(frozen=True)
class TicketTypeAvailability:
    unit_ref: UnitRef
    name: str
    price: Money
    capacity: int
    remaining: int
    max_per_person: int | None = None


@dataclass(frozen=True)
class SeatCategorySummary:
    category: str
    total: int
    available: int
    held: int
    sold: int


@dataclass(frozen=True)
class Availability:
    """What is left to sell for one event at ``as_of``."""

    event_id: EventId
    as_of: datetime
    ticket_types: tuple[TicketTypeAvailability, ...]
    seats: tuple[Seat, ...]

    @property
    def seat_summary(self) -> tuple[SeatCategorySummary, ...]:
        by_category: dict[str, list[Seat]] = {}
        for seat in self.seats:
            by_category.setdefault(seat.category, []).append(seat)
        return tuple(
            SeatCategorySummary(
                category=category,
                total=len(seats),
                available=sum(seat.status is SeatStatus.AVAILABLE for seat in seats),
                held=sum(seat.status is SeatStatus.HELD for seat in seats),
                sold=sum(seat.status is SeatStatus.SOLD for seat in seats),
            )
            for category, seats in sorted(by_category.items())
        )


@dataclass(frozen=True)
class HoldLine:
    unit_ref: UnitRef
    quantity: int
    unit_price: Money

    @property
    def subtotal(self) -> Money:
        return self.unit_price.times(self.quantity)


@dataclass(frozen=True)
class HoldSession:
    """Time-boxed reservation of units for one checkout."""

    id: HoldSessionId
    event_id: EventId
    lines: tuple[HoldLine, ...]
    created_at: datetime
    expires_at: datetime
    state: HoldState
    finalized_by: OrderRef | None = None

    @property
    def is_active(self) -> bool:
        return self.state is HoldState.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return self.is_active and self.expires_at <= now

    @property
    def unit_set(self) -> frozenset[tuple[UnitRef, int]]:
        return frozenset((line.unit_ref, line.quantity) for line in self.lines)

    @property
    def quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total(self) -> Money:
        if not self.lines:
            return Money.zero()
        total = Money.zero(self.lines[0].unit_price.currency)
        for line in self.lines:
            total = total + line.subtotal
        return total


@dataclass(frozen=True)
class HoldReceipt:
    """What the ledger hands back after a successful reserve."""

    session_id: HoldSessionId
    lines: tuple[HoldLine, ...]
    expires_at: datetime


@dataclass(frozen=True)
class PaymentAttempt:
    order_ref: OrderRef
    gateway: Gateway
    amount: Money
    customer_email: str
    state: PaymentState
    external_transaction_id: str | None = None
    gateway_reference: str | None = None
    redirect_url: str | None = None
    action: str | None = None
    action_data: dict = field(default_factory=dict)
    failure_code: str | None = None
    failure_reason: str | None = None
    retryable: bool = False
    retry_count: int = 0

    @property
    def idempotency_key(self) -> str:
        """Key handed to providers; changes only after a decline."""
        if self.retry_count == 0:
            return self.order_ref.value
        return f"{self.order_ref.value}-{self.retry_count}"


@dataclass(frozen=True)
class Order:
    id: OrderId
    order_ref: OrderRef
    event_id: EventId
    customer_email: str
    customer_name: str | None
    total: Money
    payment_method: Gateway
    external_transaction_id: str | None
    status: OrderStatus
    created_at: datetime


@dataclass(frozen=True)
class Ticket:
    id: UUID
    order_id: OrderId
    unit_ref: UnitRef
    sequence: int
    holder_name: str | None
    qr_code: str
    status: TicketStatus
    checked_in_at: datetime | None = None


@dataclass(frozen=True)
class Checkout:
    """Persisted state of one checkout; the redirect flow resumes from it."""

    order_ref: OrderRef
    event_id: EventId
    hold_session_id: HoldSessionId | None
    customer_email: str
    customer_name: str | None
    gateway: Gateway
    amount: Money
    state: CheckoutState
    created_at: datetime
    updated_at: datetime
    failure_stage: FailureStage | None = None
    failure_code: str | None = None
    failure_reason: str | None = None
    last_payment_error: str | None = None
    pending_action: str | None = None
    redirect_url: str | None = None
    action_data: dict = field(default_factory=dict)
    external_transaction_id: str | None = None

    @property
    def is_pre_payment(self) -> bool:
        return self.state in PRE_PAYMENT_STATES


@dataclass(frozen=True)
class IssuanceResult:
    order: Order
    tickets: tuple[Ticket, ...]
