"""Payment gateway adapter.

One PaymentAttempt row per order reference makes every call idempotent:
confirmed, pending and terminally failed attempts are replayed from the row,
and only retryable failures reach the provider again.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, assert_never

from ticketing.domain import (
    Confirmed,
    Failed,
    Gateway,
    OrderRef,
    PaymentAttempt,
    PaymentRequest,
    PaymentResult,
    PaymentState,
    RequiresAction,
)
from ticketing.domain.errors import ErrorCode, PaymentError
from ticketing.gateways import PaymentGateway
from ticketing.stores.interfaces import PaymentAttemptStore

logger = logging.getLogger(__name__)

UNCONFIRMED_STATES = (PaymentState.INITIATED, PaymentState.REQUIRES_ACTION, PaymentState.FAILED)


class PaymentGatewayAdapter:
    """Single entry point over token-based and redirect-based providers."""

    def __init__(self, attempts: PaymentAttemptStore, gateways: Mapping[Gateway, PaymentGateway]) -> None:
        self._attempts = attempts
        self._gateways = gateways

    def process_payment(self, request: PaymentRequest) -> PaymentResult:
        attempt, created = self._attempts.get_or_create(
            PaymentAttempt(
                order_ref=request.order_ref,
                gateway=request.gateway,
                amount=request.amount,
                customer_email=request.customer_email,
                state=PaymentState.INITIATED,
            )
        )

        if not created:
            if attempt.gateway != request.gateway or attempt.amount != request.amount:
                logger.warning("Order ref %s reused for a different payment", request.order_ref)
                return Failed(
                    code=ErrorCode.INVALID_PAYMENT_REQUEST,
                    reason="Order reference was already used for a different payment",
                )
            previous = self._replay(attempt)
            if previous is not None:
                return previous
            if attempt.state is PaymentState.FAILED:
                attempt = self._reopen(attempt)
                if attempt is None:
                    return self._replay(self._attempts.get(request.order_ref)) or Failed(
                        code=ErrorCode.GATEWAY_TIMEOUT,
                        reason="Another payment for this order is in progress",
                        retryable=True,
                    )

        gateway = self._gateways.get(request.gateway)
        if gateway is None:
            return self._record(attempt, Failed(ErrorCode.CONFIGURATION_INVALID, f"{request.gateway.value} is not enabled"))

        logger.info(
            "Charging %s %s for %s via %s (attempt %d)",
            request.amount,
            request.amount.currency,
            request.order_ref,
            request.gateway.value,
            attempt.retry_count,
        )
        try:
            result = gateway.charge(replace(request, idempotency_key=attempt.idempotency_key))
        except PaymentError as exc:
            result = Failed(code=exc.code, reason=exc.message, retryable=exc.retryable)
        return self._record(attempt, result)

    def resume_after_redirect(self, order_ref: OrderRef, payload: Mapping[str, Any]) -> PaymentResult:
        """Finish an attempt waiting on the buyer's out-of-band step."""
        attempt = self._attempts.get(order_ref)
        if attempt is None:
            return Failed(code=ErrorCode.INVALID_PAYMENT_REQUEST, reason="No payment exists for this order")

        if attempt.state is not PaymentState.REQUIRES_ACTION:
            previous = self._replay(attempt)
            if previous is not None:
                return previous
            return Failed(
                code=ErrorCode.INVALID_PAYMENT_REQUEST,
                reason="Payment is not waiting for a redirect",
            )

        gateway = self._gateways.get(attempt.gateway)
        if gateway is None:
            return self._record(attempt, Failed(ErrorCode.CONFIGURATION_INVALID, f"{attempt.gateway.value} is not enabled"))
        try:
            result = gateway.resume(attempt, payload)
        except PaymentError as exc:
            result = Failed(code=exc.code, reason=exc.message, retryable=exc.retryable)
        return self._record(attempt, result)

    def invalidate(self, order_ref: OrderRef, code: ErrorCode, reason: str) -> bool:
        """Mark an unconfirmed attempt as terminally failed with ``code``.

        Returns False if the attempt is already confirmed, in which case money
        has moved and the caller must not abandon the checkout.
        """
        attempt = self._attempts.get(order_ref)
        if attempt is None:
            return True
        if attempt.state is PaymentState.CONFIRMED:
            return False

        invalidated = replace(
            attempt,
            state=PaymentState.FAILED,
            failure_code=code.value,
            failure_reason=reason,
            retryable=False,
        )
        if self._attempts.save(invalidated, only_if_state_in=UNCONFIRMED_STATES):
            logger.info("Invalidated payment attempt %s: %s", order_ref, reason)
            return True
        current = self._attempts.get(order_ref)
        return current is None or current.state is not PaymentState.CONFIRMED

    def get_attempt(self, order_ref: OrderRef) -> PaymentAttempt | None:
        return self._attempts.get(order_ref)

    def _replay(self, attempt: PaymentAttempt | None) -> PaymentResult | None:
        """The stored outcome, or None when the provider must be called."""
        if attempt is None:
            return None
        match attempt.state:
            case PaymentState.CONFIRMED:
                return Confirmed(external_transaction_id=attempt.external_transaction_id or "")
            case PaymentState.REQUIRES_ACTION:
                return RequiresAction(
                    action=attempt.action or "",
                    action_data=attempt.action_data,
                    redirect_url=attempt.redirect_url,
                    gateway_reference=attempt.gateway_reference,
                )
            case PaymentState.FAILED if not attempt.retryable:
                return Failed(
                    code=ErrorCode(attempt.failure_code or ErrorCode.INVALID_PAYMENT_REQUEST.value),
                    reason=attempt.failure_reason or "Payment failed",
                )
            case _:
                return None

    def _reopen(self, attempt: PaymentAttempt) -> PaymentAttempt | None:
        """Move a retryable failure back to initiated; None if someone else did first."""
        retry_count = attempt.retry_count
        if attempt.failure_code == ErrorCode.PAYMENT_DECLINED.value:
            # A declined key is burnt at the provider, so retries need a fresh one.
            retry_count += 1
        reopened = replace(
            attempt,
            state=PaymentState.INITIATED,
            failure_code=None,
            failure_reason=None,
            retryable=False,
            retry_count=retry_count,
        )
        if not self._attempts.save(reopened, only_if_state_in=[PaymentState.FAILED]):
            return None
        return reopened

    def _record(self, attempt: PaymentAttempt, result: PaymentResult) -> PaymentResult:
        match result:
            case Confirmed():
                # Money moved; the provider's answer wins over any local state.
                self._attempts.save(
                    replace(
                        attempt,
                        state=PaymentState.CONFIRMED,
                        external_transaction_id=result.external_transaction_id,
                        failure_code=None,
                        failure_reason=None,
                        retryable=False,
                    )
                )
                logger.info("Payment for %s confirmed as %s", attempt.order_ref, result.external_transaction_id)
                return result
            case RequiresAction():
                saved = self._attempts.save(
                    replace(
                        attempt,
                        state=PaymentState.REQUIRES_ACTION,
                        action=result.action,
                        action_data=result.action_data,
                        redirect_url=result.redirect_url,
                        gateway_reference=result.gateway_reference,
                    ),
                    only_if_state_in=[PaymentState.INITIATED, PaymentState.REQUIRES_ACTION],
                )
            case Failed():
                saved = self._attempts.save(
                    replace(
                        attempt,
                        state=PaymentState.FAILED,
                        failure_code=result.code.value,
                        failure_reason=result.reason,
                        retryable=result.retryable,
                    ),
                    only_if_state_in=[PaymentState.INITIATED, PaymentState.REQUIRES_ACTION],
                )
                logger.info(
                    "Payment for %s failed (%s, retryable=%s): %s",
                    attempt.order_ref,
                    result.code.value,
                    result.retryable,
                    result.reason,
                )
            case _:
                assert_never(result)

        if saved:
            return result
        # Invalidated while the provider was working.
        return self._replay(self._attempts.get(attempt.order_ref)) or result
