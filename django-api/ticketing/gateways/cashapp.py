"""Cash App Pay, processed through Square.

Without a token the buyer still has to approve in Cash App, so the gateway
hands back the parameters the Square Web Payments SDK needs and waits for
the redirect with the resulting source id.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import requests

from ticketing.domain import Confirmed, Gateway, PaymentAttempt, PaymentRequest, RequiresAction
from ticketing.domain.errors import InvalidPaymentRequestError, PaymentDeclinedError
from ticketing.gateways.base import DEFAULT_TIMEOUT_SECONDS
from ticketing.gateways.square import SquareGateway

CASHAPP_ACTION = "cashapp_pay"
CANCELLED_STATUSES = frozenset({"cancelled", "canceled", "declined"})


class CashAppGateway(SquareGateway):
    gateway = Gateway.CASHAPP

    def __init__(
        self,
        access_token: str,
        location_id: str,
        application_id: str = "",
        environment: str = "sandbox",
        redirect_url: str = "",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(
            access_token=access_token,
            location_id=location_id,
            application_id=application_id,
            environment=environment,
            session=session,
            timeout=timeout,
        )
        self.redirect_url = redirect_url

    def charge(self, request: PaymentRequest) -> Confirmed | RequiresAction:
        if request.gateway_token:
            return super().charge(request)

        self._require_config()
        redirect_url = None
        if self.redirect_url:
            redirect_url = f"{self.redirect_url}?{urlencode({'order_ref': request.order_ref.value})}"
        return RequiresAction(
            action=CASHAPP_ACTION,
            action_data={
                "application_id": self.application_id,
                "location_id": self.location_id,
                "environment": self.environment,
                "amount": request.amount.amount,
                "currency": request.amount.currency,
                "reference_id": request.order_ref.value,
                "redirect_url": redirect_url,
            },
            redirect_url=redirect_url,
        )

    def resume(self, attempt: PaymentAttempt, payload: Mapping[str, Any]) -> Confirmed | RequiresAction:
        status = str(payload.get("status") or "").lower()
        if payload.get("cancelled") or status in CANCELLED_STATUSES:
            raise PaymentDeclinedError("Cash App Pay was not approved")

        source_id = payload.get("source_id") or payload.get("token")
        if not source_id:
            raise InvalidPaymentRequestError("Cash App Pay callback is missing a source id")
        return self.create_payment(
            source_id=source_id,
            idempotency_key=attempt.idempotency_key,
            amount=attempt.amount,
            reference_id=attempt.order_ref.value,
            customer_email=attempt.customer_email,
        )
