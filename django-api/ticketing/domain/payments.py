"""Payment requests and the tagged result union returned by gateways."""

from dataclasses import dataclass, field

from ticketing.domain.errors import ErrorCode
from ticketing.domain.models import Gateway
from ticketing.domain.value_objects import Money, OrderRef, UnitRef


@dataclass(frozen=True)
class PaymentLine:
    unit_ref: UnitRef
    quantity: int
    unit_price: Money


@dataclass(frozen=True)
class PaymentRequest:
    order_ref: OrderRef
    gateway: Gateway
    amount: Money
    customer_email: str
    units: tuple[PaymentLine, ...] = ()
    gateway_token: str | None = None
    idempotency_key: str | None = None

    @property
    def key(self) -> str:
        return self.idempotency_key or self.order_ref.value


@dataclass(frozen=True)
class Confirmed:
    """Funds captured."""

    external_transaction_id: str


@dataclass(frozen=True)
class RequiresAction:
    """The buyer must complete an out-of-band step before funds move."""

    action: str
    action_data: dict = field(default_factory=dict)
    redirect_url: str | None = None
    gateway_reference: str | None = None


@dataclass(frozen=True)
class Failed:
    code: ErrorCode
    reason: str
    retryable: bool = False


PaymentResult = Confirmed | RequiresAction | Failed


@dataclass(frozen=True)
class ConfirmedPayment:
    """A confirmed payment plus what issuance needs to record it."""

    order_ref: OrderRef
    gateway: Gateway
    amount: Money
    customer_email: str
    customer_name: str | None
    external_transaction_id: str
