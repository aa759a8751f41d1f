"""Checkout orchestrator - the persisted state machine for one purchase.

    cart -> hold_acquired -> awaiting_payment -> payment_pending
         -> payment_confirmed -> issuing -> completed
    (any step) -> failed{hold | payment | issuance | timeout | cancelled}

Every transition is a conditional update on the current state, so two
requests for the same order reference cannot both advance it. Each entry
point first applies any pending hold timeout.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, assert_never

from django.utils import timezone

from ticketing.domain import (
    Checkout,
    CheckoutState,
    Confirmed,
    ConfirmedPayment,
    EventId,
    Failed,
    FailureStage,
    Gateway,
    HoldSession,
    HoldState,
    IssuanceResult,
    Money,
    OrderRef,
    PaymentLine,
    PaymentRequest,
    PaymentResult,
    RequiresAction,
    UnitRef,
)
from ticketing.domain.errors import (
    CancellationNotAllowedError,
    CheckoutNotFoundError,
    DomainError,
    ErrorCode,
    EventNotFoundError,
    InventoryError,
    InventoryInconsistentError,
    InvalidTransitionError,
    IssuanceError,
)
from ticketing.domain.models import PRE_PAYMENT_STATES
from ticketing.services.hold_manager import HoldManager
from ticketing.services.issuance_service import IssuanceService
from ticketing.services.payment_service import PaymentGatewayAdapter
from ticketing.signals import order_issued
from ticketing.stores.interfaces import CatalogStore, CheckoutStore, OrderStore

logger = logging.getLogger(__name__)

HOLD_TIMEOUT_REASON = "Hold expired before payment was confirmed"
CANCEL_REASON = "Cancelled by buyer"
SUPERSEDED_REASON = "Superseded by a newer checkout"


@dataclass(frozen=True)
class StartCheckout:
    order_ref: OrderRef
    event_id: EventId
    gateway: Gateway
    customer_email: str
    items: tuple[tuple[UnitRef, int], ...]
    customer_name: str | None = None
    hold_token: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    """Checkout state plus whatever the caller needs to take the next step."""

    checkout: Checkout
    hold: HoldSession | None = None
    hold_token: str | None = None
    action: RequiresAction | None = None
    payment_error: Failed | None = None
    error: DomainError | None = None
    issuance: IssuanceResult | None = None


class CheckoutOrchestrator:
    def __init__(
        self,
        checkouts: CheckoutStore,
        holds: HoldManager,
        payments: PaymentGatewayAdapter,
        issuance: IssuanceService,
        catalog: CatalogStore,
        orders: OrderStore,
        clock: Callable[[], datetime] = timezone.now,
        currency: str = "USD",
    ) -> None:
        self._checkouts = checkouts
        self._holds = holds
        self._payments = payments
        self._issuance = issuance
        self._catalog = catalog
        self._orders = orders
        self._clock = clock
        self._currency = currency

    def start(self, command: StartCheckout) -> CheckoutResult:
        """Create the checkout and hold its units.

        Repeating a start with the same order reference returns the existing
        checkout. Inventory errors end the checkout in ``failed{hold}``.

        Raises:
            EventNotFoundError: If the event does not exist.
        """
        if self._catalog.get_event(command.event_id) is None:
            raise EventNotFoundError()

        now = self._clock()
        _, created = self._checkouts.create(
            Checkout(
                order_ref=command.order_ref,
                event_id=command.event_id,
                hold_session_id=None,
                customer_email=command.customer_email,
                customer_name=command.customer_name,
                gateway=command.gateway,
                amount=Money.zero(self._currency),
                state=CheckoutState.CART,
                created_at=now,
                updated_at=now,
            )
        )
        if not created:
            logger.info("Checkout %s already exists; returning its current state", command.order_ref)
            return self._result(self._load(command.order_ref))

        try:
            token = self._claim_hold_token(command)
            held = self._holds.reserve(command.event_id, command.items, token=token)
        except InventoryError as exc:
            self._fail(command.order_ref, [CheckoutState.CART], FailureStage.HOLD, exc.code.value, exc.message)
            logger.info("Checkout %s could not hold inventory: %s", command.order_ref, exc.code.value)
            return self._result(self._get(command.order_ref), error=exc)

        self._checkouts.transition(
            command.order_ref,
            [CheckoutState.CART],
            CheckoutState.HOLD_ACQUIRED,
            hold_session_id=held.hold.id,
            amount=held.hold.total,
        )
        logger.info("Checkout %s holds %d unit(s) as %s", command.order_ref, held.hold.quantity, held.hold.id)
        return self._result(self._get(command.order_ref))

    def _claim_hold_token(self, command: StartCheckout) -> str | None:
        """Take over a hold token from an earlier unpaid checkout of the same buyer.

        A hold backs at most one live checkout. The earlier checkout is closed
        as superseded while its hold stays in place for the new one. A token
        whose checkout was charged is ignored, including one that failed at
        issuance and still keeps its hold for an operator retry.
        """
        if not command.hold_token:
            return None
        owner = self._checkouts.find_by_hold(self._holds.session_id_from_token(command.hold_token))
        if owner is None or owner.order_ref == command.order_ref:
            return command.hold_token
        if owner.external_transaction_id or owner.failure_stage is FailureStage.ISSUANCE:
            return None
        if owner.state is CheckoutState.FAILED:
            return command.hold_token
        if not owner.is_pre_payment:
            return None
        if not self._payments.invalidate(owner.order_ref, ErrorCode.CHECKOUT_SUPERSEDED, SUPERSEDED_REASON):
            return None
        if not self._fail(owner.order_ref, PRE_PAYMENT_STATES, FailureStage.CANCELLED, None, SUPERSEDED_REASON):
            return None
        logger.info("Checkout %s superseded by %s", owner.order_ref, command.order_ref)
        return command.hold_token

    def submit_payment(self, order_ref: OrderRef, gateway_token: str | None = None) -> CheckoutResult:
        """Charge the held amount through the checkout's gateway.

        Raises:
            CheckoutNotFoundError: If the checkout does not exist.
            InvalidTransitionError: If no hold was acquired yet.
        """
        checkout = self._load(order_ref)
        match checkout.state:
            case CheckoutState.HOLD_ACQUIRED | CheckoutState.AWAITING_PAYMENT:
                pass
            case CheckoutState.PAYMENT_CONFIRMED | CheckoutState.ISSUING:
                return self._issue(checkout, [CheckoutState.PAYMENT_CONFIRMED, CheckoutState.ISSUING])
            case CheckoutState.CART:
                raise InvalidTransitionError(checkout.state.value, "submit payment for")
            case _:
                return self._result(checkout)

        if checkout.state is CheckoutState.HOLD_ACQUIRED and not self._checkouts.transition(
            order_ref,
            [CheckoutState.HOLD_ACQUIRED],
            CheckoutState.AWAITING_PAYMENT,
            last_payment_error=None,
        ):
            return self._result(self._get(order_ref))

        hold = self._holds.peek(checkout.hold_session_id)
        result = self._payments.process_payment(
            PaymentRequest(
                order_ref=order_ref,
                gateway=checkout.gateway,
                amount=checkout.amount,
                customer_email=checkout.customer_email,
                units=tuple(PaymentLine(line.unit_ref, line.quantity, line.unit_price) for line in hold.lines),
                gateway_token=gateway_token,
            )
        )
        return self._apply_payment_result(order_ref, [CheckoutState.AWAITING_PAYMENT], result)

    def resume_after_redirect(self, order_ref: OrderRef, payload: Mapping[str, Any]) -> CheckoutResult:
        """Continue a checkout when the buyer returns from the provider."""
        checkout = self._load(order_ref)
        match checkout.state:
            case CheckoutState.PAYMENT_PENDING:
                pass
            case CheckoutState.PAYMENT_CONFIRMED | CheckoutState.ISSUING:
                return self._issue(checkout, [CheckoutState.PAYMENT_CONFIRMED, CheckoutState.ISSUING])
            case _:
                return self._result(checkout)

        result = self._payments.resume_after_redirect(order_ref, payload)
        return self._apply_payment_result(order_ref, [CheckoutState.PAYMENT_PENDING], result)

    def cancel(self, order_ref: OrderRef) -> CheckoutResult:
        """Abandon a checkout before its payment is confirmed.

        Raises:
            CancellationNotAllowedError: If payment was already confirmed.
        """
        checkout = self._load(order_ref)
        if checkout.state is CheckoutState.FAILED:
            return self._result(checkout)
        if not checkout.is_pre_payment:
            raise CancellationNotAllowedError()
        if not self._payments.invalidate(order_ref, ErrorCode.CHECKOUT_CANCELLED, CANCEL_REASON):
            raise CancellationNotAllowedError()

        if not self._fail(order_ref, PRE_PAYMENT_STATES, FailureStage.CANCELLED, None, CANCEL_REASON):
            checkout = self._get(order_ref)
            if checkout.state is CheckoutState.FAILED:
                return self._result(checkout)
            raise CancellationNotAllowedError()

        if checkout.hold_session_id is not None:
            self._holds.cancel(checkout.hold_session_id)
        logger.info("Checkout %s cancelled", order_ref)
        return self._result(self._get(order_ref))

    def retry_issuance(self, order_ref: OrderRef) -> CheckoutResult:
        """Re-run issuance for a paid checkout. Never charges again.

        Raises:
            InvalidTransitionError: If the checkout has no confirmed payment to issue.
        """
        checkout = self._get(order_ref)
        match checkout.state:
            case CheckoutState.COMPLETED:
                return self._result(checkout)
            case CheckoutState.PAYMENT_CONFIRMED | CheckoutState.ISSUING:
                return self._issue(checkout, [CheckoutState.PAYMENT_CONFIRMED, CheckoutState.ISSUING])
            case CheckoutState.FAILED if (
                checkout.failure_stage is FailureStage.ISSUANCE and checkout.external_transaction_id
            ):
                logger.info("Retrying issuance for checkout %s", order_ref)
                return self._issue(checkout, [CheckoutState.FAILED])
            case _:
                raise InvalidTransitionError(checkout.state.value, "retry issuance for")

    def get(self, order_ref: OrderRef) -> CheckoutResult:
        return self._result(self._load(order_ref))

    def expire_stale(self, now: datetime | None = None) -> int:
        """Time out every pre-payment checkout whose hold has expired."""
        now = now or self._clock()
        expired = 0
        for order_ref in self._checkouts.list_stale(now):
            checkout = self._get(order_ref)
            if checkout.is_pre_payment and self._time_out(checkout).state is CheckoutState.FAILED:
                expired += 1
        if expired:
            logger.info("Timed out %d stale checkout(s)", expired)
        return expired

    def _get(self, order_ref: OrderRef) -> Checkout:
        checkout = self._checkouts.get(order_ref)
        if checkout is None:
            raise CheckoutNotFoundError()
        return checkout

    def _load(self, order_ref: OrderRef) -> Checkout:
        checkout = self._get(order_ref)
        if checkout.is_pre_payment and checkout.hold_session_id is not None:
            hold = self._holds.peek(checkout.hold_session_id)
            if hold.state in (HoldState.EXPIRED, HoldState.RELEASED) or hold.is_expired(self._clock()):
                return self._time_out(checkout)
        return checkout

    def _time_out(self, checkout: Checkout) -> Checkout:
        order_ref = checkout.order_ref
        if not self._payments.invalidate(order_ref, ErrorCode.HOLD_EXPIRED, HOLD_TIMEOUT_REASON):
            # The payment landed first; let issuance run.
            logger.info("Checkout %s hold lapsed after payment was confirmed", order_ref)
            return checkout
        if self._fail(order_ref, PRE_PAYMENT_STATES, FailureStage.TIMEOUT, ErrorCode.HOLD_EXPIRED.value, HOLD_TIMEOUT_REASON):
            if checkout.hold_session_id is not None:
                self._holds.expire(checkout.hold_session_id)
            logger.info("Checkout %s timed out in state %s", order_ref, checkout.state.value)
        return self._get(order_ref)

    def _fail(
        self,
        order_ref: OrderRef,
        from_states: Iterable[CheckoutState],
        stage: FailureStage,
        code: str | None,
        reason: str,
    ) -> bool:
        return self._checkouts.transition(
            order_ref,
            from_states,
            CheckoutState.FAILED,
            failure_stage=stage,
            failure_code=code,
            failure_reason=reason,
            pending_action=None,
        )

    def _apply_payment_result(
        self,
        order_ref: OrderRef,
        from_states: list[CheckoutState],
        result: PaymentResult,
    ) -> CheckoutResult:
        match result:
            case Confirmed():
                if not self._checkouts.transition(
                    order_ref,
                    from_states,
                    CheckoutState.PAYMENT_CONFIRMED,
                    external_transaction_id=result.external_transaction_id,
                    pending_action=None,
                    last_payment_error=None,
                ):
                    return self._confirmed_after_exit(order_ref, result)
                logger.info("Checkout %s paid (%s)", order_ref, result.external_transaction_id)
                return self._issue(self._get(order_ref), [CheckoutState.PAYMENT_CONFIRMED])
            case RequiresAction():
                self._checkouts.transition(
                    order_ref,
                    from_states,
                    CheckoutState.PAYMENT_PENDING,
                    pending_action=result.action,
                    redirect_url=result.redirect_url,
                    action_data=result.action_data,
                )
                return self._result(self._get(order_ref))
            case Failed(retryable=True):
                self._checkouts.transition(
                    order_ref,
                    from_states,
                    CheckoutState.HOLD_ACQUIRED,
                    last_payment_error=result.reason,
                    pending_action=None,
                    redirect_url=None,
                    action_data={},
                )
                return self._result(self._get(order_ref), payment_error=result)
            case Failed():
                checkout = self._get(order_ref)
                if self._fail(order_ref, from_states, FailureStage.PAYMENT, result.code.value, result.reason):
                    if checkout.hold_session_id is not None:
                        self._holds.cancel(checkout.hold_session_id)
                    logger.info("Checkout %s failed at payment: %s", order_ref, result.code.value)
                return self._result(self._get(order_ref), payment_error=result)
            case _:
                assert_never(result)

    def _confirmed_after_exit(self, order_ref: OrderRef, result: Confirmed) -> CheckoutResult:
        """A payment confirmed for a checkout that already moved on."""
        checkout = self._get(order_ref)
        if checkout.state is CheckoutState.FAILED and checkout.failure_stage in (
            FailureStage.TIMEOUT,
            FailureStage.CANCELLED,
        ):
            error = InventoryInconsistentError(
                f"Payment {result.external_transaction_id} confirmed after the checkout was abandoned"
            )
            self._checkouts.transition(
                order_ref,
                [CheckoutState.FAILED],
                CheckoutState.FAILED,
                failure_stage=FailureStage.ISSUANCE,
                failure_code=error.code.value,
                failure_reason=error.message,
                external_transaction_id=result.external_transaction_id,
            )
            logger.critical(
                "Payment %s confirmed for checkout %s after %s; refund required",
                result.external_transaction_id,
                order_ref,
                checkout.failure_stage.value,
            )
            return self._result(self._get(order_ref), error=error)
        return self._result(checkout)

    def _issue(self, checkout: Checkout, from_states: list[CheckoutState]) -> CheckoutResult:
        order_ref = checkout.order_ref
        if not self._checkouts.transition(
            order_ref,
            from_states,
            CheckoutState.ISSUING,
            failure_stage=None,
            failure_code=None,
            failure_reason=None,
        ):
            return self._result(self._get(order_ref))

        payment = ConfirmedPayment(
            order_ref=order_ref,
            gateway=checkout.gateway,
            amount=checkout.amount,
            customer_email=checkout.customer_email,
            customer_name=checkout.customer_name,
            external_transaction_id=checkout.external_transaction_id or "",
        )
        try:
            issuance = self._issuance.issue(payment, self._holds.peek(checkout.hold_session_id))
        except IssuanceError as exc:
            logger.critical(
                "Issuance failed for paid checkout %s (%s): %s",
                order_ref,
                exc.code.value,
                exc.message,
            )
            self._fail(order_ref, [CheckoutState.ISSUING], FailureStage.ISSUANCE, exc.code.value, exc.message)
            return self._result(self._get(order_ref), error=exc)

        self._checkouts.transition(order_ref, [CheckoutState.ISSUING], CheckoutState.COMPLETED)
        logger.info("Checkout %s completed with order %s", order_ref, issuance.order.id)
        self._announce(issuance)
        return CheckoutResult(checkout=self._get(order_ref), issuance=issuance)

    def _announce(self, issuance: IssuanceResult) -> None:
        responses = order_issued.send_robust(
            sender=self.__class__,
            order=issuance.order,
            tickets=issuance.tickets,
        )
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.warning(
                    "order_issued receiver %s failed for order %s: %s",
                    getattr(receiver, "__name__", receiver),
                    issuance.order.order_ref,
                    response,
                )

    def _result(
        self,
        checkout: Checkout,
        payment_error: Failed | None = None,
        error: DomainError | None = None,
    ) -> CheckoutResult:
        hold = None
        hold_token = None
        if checkout.hold_session_id is not None and checkout.is_pre_payment:
            hold = self._holds.peek(checkout.hold_session_id)
            hold_token = self._holds.issue_token(checkout.hold_session_id)

        action = None
        if checkout.state is CheckoutState.PAYMENT_PENDING and checkout.pending_action:
            action = RequiresAction(
                action=checkout.pending_action,
                action_data=checkout.action_data,
                redirect_url=checkout.redirect_url,
            )

        issuance = None
        if checkout.state is CheckoutState.COMPLETED:
            order = self._orders.get_order_by_ref(checkout.order_ref)
            if order is not None:
                issuance = IssuanceResult(order=order, tickets=tuple(self._orders.list_tickets(order.id)))

        return CheckoutResult(
            checkout=checkout,
            hold=hold,
            hold_token=hold_token,
            action=action,
            payment_error=payment_error,
            error=error,
            issuance=issuance,
        )
