"""Square card payments (token based, synchronous)."""

import logging
from collections.abc import Mapping
from typing import Any

import requests

from ticketing.domain import Confirmed, Gateway, Money, PaymentAttempt, PaymentRequest, RequiresAction
from ticketing.domain.errors import (
    ConfigurationInvalidError,
    GatewayTimeoutError,
    InvalidPaymentRequestError,
    PaymentDeclinedError,
)
from ticketing.gateways.base import DEFAULT_TIMEOUT_SECONDS, ErrorMap, HttpGateway

logger = logging.getLogger(__name__)

SQUARE_BASE_URLS = {
    "sandbox": "https://connect.squareupsandbox.com",
    "production": "https://connect.squareup.com",
}
SQUARE_API_VERSION = "2024-10-17"

SQUARE_ERROR_MAP: ErrorMap = {
    "INSUFFICIENT_FUNDS": PaymentDeclinedError,
    "CARD_DECLINED": PaymentDeclinedError,
    "GENERIC_DECLINE": PaymentDeclinedError,
    "CVV_FAILURE": PaymentDeclinedError,
    "ADDRESS_VERIFICATION_FAILURE": PaymentDeclinedError,
    "INVALID_EXPIRATION": PaymentDeclinedError,
    "CARD_EXPIRED": PaymentDeclinedError,
    "INVALID_CARD": PaymentDeclinedError,
    "TIMEOUT": GatewayTimeoutError,
    "RATE_LIMITED": GatewayTimeoutError,
    "INTERNAL_SERVER_ERROR": GatewayTimeoutError,
    "SERVICE_UNAVAILABLE": GatewayTimeoutError,
    "UNAUTHORIZED": ConfigurationInvalidError,
    "ACCESS_TOKEN_EXPIRED": ConfigurationInvalidError,
    "ACCESS_TOKEN_REVOKED": ConfigurationInvalidError,
    "NOT_FOUND": ConfigurationInvalidError,
    "IDEMPOTENCY_KEY_REUSED": InvalidPaymentRequestError,
    "INVALID_VALUE": InvalidPaymentRequestError,
    "BAD_REQUEST": InvalidPaymentRequestError,
}


class SquareGateway(HttpGateway):
    """Charges a Web Payments SDK card token with ``POST /v2/payments``."""

    gateway = Gateway.SQUARE

    def __init__(
        self,
        access_token: str,
        location_id: str,
        application_id: str = "",
        environment: str = "sandbox",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.access_token = access_token
        self.location_id = location_id
        self.application_id = application_id
        self.environment = environment
        self.base_url = SQUARE_BASE_URLS.get(environment, SQUARE_BASE_URLS["sandbox"])

    def _require_config(self) -> None:
        if not self.access_token or not self.location_id:
            raise ConfigurationInvalidError(f"{self.name} credentials are not configured")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": SQUARE_API_VERSION,
            "Content-Type": "application/json",
        }

    def charge(self, request: PaymentRequest) -> Confirmed | RequiresAction:
        if not request.gateway_token:
            raise InvalidPaymentRequestError("A card token is required for Square payments")
        return self.create_payment(
            source_id=request.gateway_token,
            idempotency_key=request.key,
            amount=request.amount,
            reference_id=request.order_ref.value,
            customer_email=request.customer_email,
        )

    def resume(self, attempt: PaymentAttempt, payload: Mapping[str, Any]) -> Confirmed | RequiresAction:
        raise InvalidPaymentRequestError("Square card payments complete without a redirect")

    def create_payment(
        self,
        source_id: str,
        idempotency_key: str,
        amount: Money,
        reference_id: str,
        customer_email: str,
    ) -> Confirmed:
        """Create and complete a payment.

        Square deduplicates on ``idempotency_key``, so replaying a request
        whose response was lost returns the original payment.
        """
        self._require_config()
        body = {
            "source_id": source_id,
            "idempotency_key": idempotency_key,
            "amount_money": {"amount": amount.amount, "currency": amount.currency},
            "location_id": self.location_id,
            "reference_id": reference_id,
            "buyer_email_address": customer_email,
            "autocomplete": True,
        }
        response = self._send("POST", "/v2/payments", json=body, headers=self._headers())
        data = self._payload(response)

        if response.status_code >= 400:
            errors = data.get("errors") or [{}]
            first = errors[0]
            self._raise_mapped(first.get("code"), first.get("detail"), SQUARE_ERROR_MAP)

        payment = data.get("payment") or {}
        status = payment.get("status")
        if status == "COMPLETED":
            logger.info("Square payment %s completed for %s", payment.get("id"), reference_id)
            return Confirmed(external_transaction_id=payment["id"])
        if status in ("FAILED", "CANCELED"):
            raise PaymentDeclinedError(f"Square payment {status.lower()}")
        raise GatewayTimeoutError(f"Square payment is {status or 'in an unknown state'}")
