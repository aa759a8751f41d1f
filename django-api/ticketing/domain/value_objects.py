"""Domain primitives that enforce validity at creation time."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Self
from uuid import UUID

ORDER_REF_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,40}$")


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class HoldSessionId:
    """Unique identifier for a HoldSession."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OrderId:
    """Unique identifier for an Order."""

    value: UUID

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OrderRef:
    """Client-generated idempotency key for one checkout attempt.

    Provider idempotency keys are derived from it with a retry suffix, and
    Square caps those at 45 characters, hence the 40 character limit.
    """

    value: str

    def __post_init__(self) -> None:
        if not ORDER_REF_PATTERN.match(self.value):
            raise ValueError("Order reference must be 1-40 characters of [A-Za-z0-9_-]")

    def __str__(self) -> str:
        return self.value


class UnitKind(Enum):
    """Kinds of sellable unit."""

    TICKET_TYPE = "ticket_type"
    SEAT = "seat"


@dataclass(frozen=True)
class UnitRef:
    """Reference to a sellable unit: a fungible ticket type or a unique seat."""

    kind: UnitKind
    id: UUID

    @classmethod
    def ticket_type(cls, value: UUID | str) -> Self:
        return cls(kind=UnitKind.TICKET_TYPE, id=UUID(str(value)))

    @classmethod
    def seat(cls, value: UUID | str) -> Self:
        return cls(kind=UnitKind.SEAT, id=UUID(str(value)))

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Parse the ``"<kind>:<uuid>"`` form produced by ``str()``."""
        kind, sep, raw_id = value.partition(":")
        if not sep:
            raise ValueError(f"Malformed unit reference: {value!r}")
        return cls(kind=UnitKind(kind), id=UUID(raw_id))

    @property
    def is_seat(self) -> bool:
        return self.kind is UnitKind.SEAT

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"

    def __lt__(self, other: "UnitRef") -> bool:
        return (self.kind.value, str(self.id)) < (other.kind.value, str(other.id))


@dataclass(frozen=True)
class Money:
    """Price in minor currency units (cents)."""

    amount: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __add__(self, other: "Money") -> "Money":
        if other.currency != self.currency:
            raise ValueError("Cannot add amounts in different currencies")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def times(self, quantity: int) -> "Money":
        return Money(amount=self.amount * quantity, currency=self.currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(amount=0, currency=currency)

    def __str__(self) -> str:
        return f"{self.amount // 100}.{self.amount % 100:02d}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")
