"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every state change that
must happen exactly once is expressed as a conditional write returning
``True`` only for the caller whose write took effect.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from ticketing.domain import (
    Checkout,
    CheckoutState,
    ConfirmedPayment,
    Event,
    EventId,
    HoldLine,
    HoldSession,
    HoldSessionId,
    HoldState,
    Order,
    OrderId,
    OrderRef,
    OrderStatus,
    PaymentAttempt,
    PaymentState,
    Seat,
    Ticket,
    TicketType,
    UnitRef,
)


class StoreError(Exception):
    """Raised when the underlying datastore fails."""


class CatalogStore(ABC):
    """Read-only lookups against the event catalog."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def get_ticket_type(self, unit_ref: UnitRef) -> TicketType | None:
        ...

    @abstractmethod
    def get_seat(self, unit_ref: UnitRef) -> Seat | None:
        ...

    @abstractmethod
    def list_ticket_types(self, event_id: EventId) -> list[TicketType]:
        ...

    @abstractmethod
    def list_seats(self, event_id: EventId) -> list[Seat]:
        ...


class InventoryStore(ABC):
    """Row-level inventory operations used by the ledger."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[Any]:
        """Return a context manager wrapping a single transaction."""
        ...

    @abstractmethod
    def create_hold(
        self,
        session_id: HoldSessionId,
        event_id: EventId,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        ...

    @abstractmethod
    def add_hold_line(self, session_id: HoldSessionId, line: HoldLine) -> None:
        ...

    @abstractmethod
    def get_hold(self, session_id: HoldSessionId) -> HoldSession | None:
        ...

    @abstractmethod
    def hold_ticket_type(self, unit_ref: UnitRef, event_id: EventId, quantity: int) -> bool:
        """Increment held_count only if sold + held + quantity stays within capacity."""
        ...

    @abstractmethod
    def hold_seat(self, unit_ref: UnitRef, event_id: EventId, session_id: HoldSessionId) -> bool:
        """Move a seat from available to held for the session."""
        ...

    @abstractmethod
    def sell_ticket_type(self, unit_ref: UnitRef, quantity: int) -> None:
        ...

    @abstractmethod
    def sell_seat(self, unit_ref: UnitRef, session_id: HoldSessionId) -> None:
        ...

    @abstractmethod
    def release_ticket_type(self, unit_ref: UnitRef, quantity: int) -> None:
        ...

    @abstractmethod
    def release_seat(self, unit_ref: UnitRef, session_id: HoldSessionId) -> None:
        ...

    @abstractmethod
    def transition_hold(
        self,
        session_id: HoldSessionId,
        to_state: HoldState,
        expired_at: datetime | None = None,
        finalized_by: OrderRef | None = None,
    ) -> bool:
        """Move an active hold to ``to_state``.

        With ``expired_at`` set, only holds whose expiry is at or before
        that instant are moved. ``finalized_by`` records the order a
        finalized hold was sold to.
        """
        ...

    @abstractmethod
    def extend_hold(self, session_id: HoldSessionId, expires_at: datetime, now: datetime) -> bool:
        """Set a new expiry on an active, unexpired hold."""
        ...

    @abstractmethod
    def list_expired_holds(self, now: datetime, event_id: EventId | None = None) -> list[HoldSessionId]:
        ...


class PaymentAttemptStore(ABC):
    """Persistence for payment attempts, keyed by order reference."""

    @abstractmethod
    def get(self, order_ref: OrderRef) -> PaymentAttempt | None:
        ...

    @abstractmethod
    def get_or_create(self, attempt: PaymentAttempt) -> tuple[PaymentAttempt, bool]:
        ...

    @abstractmethod
    def save(
        self,
        attempt: PaymentAttempt,
        only_if_state_in: Iterable[PaymentState] | None = None,
    ) -> bool:
        """Persist the mutable fields of ``attempt``, optionally guarded by state."""
        ...


class OrderStore(ABC):
    """Persistence for orders and tickets."""

    @abstractmethod
    def get_or_create_order(
        self,
        payment: ConfirmedPayment,
        event_id: EventId,
    ) -> tuple[Order, bool]:
        """Insert the order for ``payment.order_ref`` or return the existing one."""
        ...

    @abstractmethod
    def get_order_by_ref(self, order_ref: OrderRef) -> Order | None:
        ...

    @abstractmethod
    def set_order_status(self, order_id: OrderId, status: OrderStatus) -> Order:
        ...

    @abstractmethod
    def list_tickets(self, order_id: OrderId) -> list[Ticket]:
        """Return tickets for an order ordered by unit_ref then sequence."""
        ...

    @abstractmethod
    def create_ticket(self, ticket: Ticket) -> Ticket:
        ...

    @abstractmethod
    def get_ticket_by_code(self, qr_code: str) -> Ticket | None:
        ...

    @abstractmethod
    def check_in_ticket(self, qr_code: str, at: datetime) -> bool:
        """Move an active ticket to used."""
        ...


class CheckoutStore(ABC):
    """Persistence for the checkout state machine."""

    @abstractmethod
    def create(self, checkout: Checkout) -> tuple[Checkout, bool]:
        ...

    @abstractmethod
    def get(self, order_ref: OrderRef) -> Checkout | None:
        ...

    @abstractmethod
    def find_by_hold(self, session_id: HoldSessionId) -> Checkout | None:
        """The most recent checkout bound to a hold session."""
        ...

    @abstractmethod
    def transition(
        self,
        order_ref: OrderRef,
        from_states: Iterable[CheckoutState],
        to_state: CheckoutState,
        **changes: Any,
    ) -> bool:
        """Move a checkout whose state is in ``from_states`` to ``to_state``.

        ``changes`` are Checkout field names with domain values.
        """
        ...

    @abstractmethod
    def list_stale(self, now: datetime) -> list[OrderRef]:
        """Order refs of pre-payment checkouts whose hold has expired."""
        ...
