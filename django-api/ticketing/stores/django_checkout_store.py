"""Django ORM implementations of the checkout and payment attempt stores."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from django.db import DatabaseError, transaction
from django.utils import timezone

from ticketing import models
from ticketing.domain import (
    Checkout,
    CheckoutState,
    EventId,
    FailureStage,
    Gateway,
    HoldSessionId,
    Money,
    OrderRef,
    PaymentAttempt,
    PaymentState,
)
from ticketing.domain.models import PRE_PAYMENT_STATES
from ticketing.stores.interfaces import CheckoutStore, PaymentAttemptStore, StoreError


def _attempt_to_domain(row: models.PaymentAttempt) -> PaymentAttempt:
    return PaymentAttempt(
        order_ref=OrderRef(row.order_ref),
        gateway=Gateway(row.gateway),
        amount=Money(row.amount_minor, row.currency),
        customer_email=row.customer_email,
        state=PaymentState(row.state),
        external_transaction_id=row.external_transaction_id,
        gateway_reference=row.gateway_reference,
        redirect_url=row.redirect_url,
        action=row.action,
        action_data=row.action_data or {},
        failure_code=row.failure_code,
        failure_reason=row.failure_reason,
        retryable=row.retryable,
        retry_count=row.retry_count,
    )


def _checkout_to_domain(row: models.Checkout) -> Checkout:
    return Checkout(
        order_ref=OrderRef(row.order_ref),
        event_id=EventId(row.event_id),
        hold_session_id=HoldSessionId(row.hold_session_id) if row.hold_session_id else None,
        customer_email=row.customer_email,
        customer_name=row.customer_name,
        gateway=Gateway(row.gateway),
        amount=Money(row.amount_minor, row.currency),
        state=CheckoutState(row.state),
        created_at=row.created_at,
        updated_at=row.updated_at,
        failure_stage=FailureStage(row.failure_stage) if row.failure_stage else None,
        failure_code=row.failure_code,
        failure_reason=row.failure_reason,
        last_payment_error=row.last_payment_error,
        pending_action=row.pending_action,
        redirect_url=row.redirect_url,
        action_data=row.action_data or {},
        external_transaction_id=row.external_transaction_id,
    )


def _checkout_columns(changes: dict[str, Any]) -> dict[str, Any]:
    columns: dict[str, Any] = {}
    for name, value in changes.items():
        if name == "hold_session_id":
            columns["hold_session_id"] = value.value if value is not None else None
        elif name == "amount":
            columns["amount_minor"] = value.amount
            columns["currency"] = value.currency
        elif name == "failure_stage":
            columns["failure_stage"] = value.value if value is not None else None
        else:
            columns[name] = value
    return columns


class DjangoPaymentAttemptStore(PaymentAttemptStore):
    """PostgreSQL-backed payment attempts using Django ORM."""

    def get(self, order_ref: OrderRef) -> PaymentAttempt | None:
        row = models.PaymentAttempt.objects.filter(order_ref=order_ref.value).first()
        return _attempt_to_domain(row) if row else None

    def get_or_create(self, attempt: PaymentAttempt) -> tuple[PaymentAttempt, bool]:
        try:
            with transaction.atomic():
                row, created = models.PaymentAttempt.objects.get_or_create(
                    order_ref=attempt.order_ref.value,
                    defaults={
                        "gateway": attempt.gateway.value,
                        "amount_minor": attempt.amount.amount,
                        "currency": attempt.amount.currency,
                        "customer_email": attempt.customer_email,
                        "state": attempt.state.value,
                    },
                )
        except DatabaseError as exc:
            raise StoreError("Could not record payment attempt") from exc
        return _attempt_to_domain(row), created

    def save(
        self,
        attempt: PaymentAttempt,
        only_if_state_in: Iterable[PaymentState] | None = None,
    ) -> bool:
        queryset = models.PaymentAttempt.objects.filter(order_ref=attempt.order_ref.value)
        if only_if_state_in is not None:
            queryset = queryset.filter(state__in=[state.value for state in only_if_state_in])
        updated = queryset.update(
            state=attempt.state.value,
            external_transaction_id=attempt.external_transaction_id,
            gateway_reference=attempt.gateway_reference,
            redirect_url=attempt.redirect_url,
            action=attempt.action,
            action_data=attempt.action_data,
            failure_code=attempt.failure_code,
            failure_reason=attempt.failure_reason,
            retryable=attempt.retryable,
            retry_count=attempt.retry_count,
            updated_at=timezone.now(),
        )
        return updated == 1


class DjangoCheckoutStore(CheckoutStore):
    """PostgreSQL-backed checkout state using Django ORM."""

    def create(self, checkout: Checkout) -> tuple[Checkout, bool]:
        try:
            with transaction.atomic():
                row, created = models.Checkout.objects.get_or_create(
                    order_ref=checkout.order_ref.value,
                    defaults={
                        "event_id": checkout.event_id.value,
                        "customer_email": checkout.customer_email,
                        "customer_name": checkout.customer_name,
                        "gateway": checkout.gateway.value,
                        "amount_minor": checkout.amount.amount,
                        "currency": checkout.amount.currency,
                        "state": checkout.state.value,
                    },
                )
        except DatabaseError as exc:
            raise StoreError("Could not create checkout") from exc
        return _checkout_to_domain(row), created

    def get(self, order_ref: OrderRef) -> Checkout | None:
        row = models.Checkout.objects.filter(order_ref=order_ref.value).first()
        return _checkout_to_domain(row) if row else None

    def find_by_hold(self, session_id: HoldSessionId) -> Checkout | None:
        row = models.Checkout.objects.filter(hold_session_id=session_id.value).order_by("-created_at").first()
        return _checkout_to_domain(row) if row else None

    def transition(
        self,
        order_ref: OrderRef,
        from_states: Iterable[CheckoutState],
        to_state: CheckoutState,
        **changes: Any,
    ) -> bool:
        updated = models.Checkout.objects.filter(
            order_ref=order_ref.value,
            state__in=[state.value for state in from_states],
        ).update(state=to_state.value, updated_at=timezone.now(), **_checkout_columns(changes))
        return updated == 1

    def list_stale(self, now: datetime) -> list[OrderRef]:
        refs = models.Checkout.objects.filter(
            state__in=[state.value for state in PRE_PAYMENT_STATES],
            hold_session__state__in=[models.HoldSession.STATE_ACTIVE, models.HoldSession.STATE_EXPIRED],
            hold_session__expires_at__lte=now,
        ).values_list("order_ref", flat=True)
        return [OrderRef(ref) for ref in refs]
