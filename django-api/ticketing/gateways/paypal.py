"""PayPal Orders v2 (redirect based).

``charge`` creates an order and returns the approval link; the buyer comes
back through the resume endpoint, which captures the order.
"""

import logging
from collections.abc import Mapping
from typing import Any

import requests
from django.core.cache import cache

from ticketing.domain import Confirmed, Gateway, PaymentAttempt, PaymentRequest, RequiresAction
from ticketing.domain.errors import (
    ConfigurationInvalidError,
    GatewayTimeoutError,
    InvalidPaymentRequestError,
    PaymentDeclinedError,
)
from ticketing.gateways.base import DEFAULT_TIMEOUT_SECONDS, ErrorMap, HttpGateway

logger = logging.getLogger(__name__)

PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "production": "https://api-m.paypal.com",
}
PAYPAL_REDIRECT_ACTION = "redirect"
TOKEN_REFRESH_MARGIN_SECONDS = 60

PAYPAL_ERROR_MAP: ErrorMap = {
    "INSUFFICIENT_FUNDS": PaymentDeclinedError,
    "INSTRUMENT_DECLINED": PaymentDeclinedError,
    "PAYER_CANNOT_PAY": PaymentDeclinedError,
    "PAYER_ACCOUNT_RESTRICTED": PaymentDeclinedError,
    "ORDER_NOT_APPROVED": PaymentDeclinedError,
    "PAYEE_ACCOUNT_RESTRICTED": ConfigurationInvalidError,
    "PERMISSION_DENIED": ConfigurationInvalidError,
    "AUTHENTICATION_FAILURE": ConfigurationInvalidError,
    "INVALID_REQUEST": InvalidPaymentRequestError,
    "DUPLICATE_INVOICE_ID": InvalidPaymentRequestError,
    "UNPROCESSABLE_ENTITY": InvalidPaymentRequestError,
    "RESOURCE_NOT_FOUND": InvalidPaymentRequestError,
    "TIMEOUT": GatewayTimeoutError,
    "INTERNAL_SERVICE_ERROR": GatewayTimeoutError,
}


class PayPalGateway(HttpGateway):
    gateway = Gateway.PAYPAL

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        environment: str = "sandbox",
        return_url: str = "",
        cancel_url: str = "",
        brand_name: str = "Box Office",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.client_id = client_id
        self.client_secret = client_secret
        self.return_url = return_url
        self.cancel_url = cancel_url
        self.brand_name = brand_name
        self.base_url = PAYPAL_BASE_URLS.get(environment, PAYPAL_BASE_URLS["sandbox"])

    def _require_config(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigurationInvalidError("paypal credentials are not configured")

    def _token(self) -> str:
        """Client-credentials token, cached until a minute before it expires."""
        cache_key = f"paypal:access-token:{self.client_id}"
        cached = cache.get(cache_key)
        if cached:
            return cached

        response = self._send(
            "POST",
            "/v1/oauth2/token",
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
        )
        data = self._payload(response)
        if response.status_code >= 400 or "access_token" not in data:
            raise ConfigurationInvalidError("paypal did not issue an access token")

        access_token = data["access_token"]
        lifetime = int(data.get("expires_in", 0)) - TOKEN_REFRESH_MARGIN_SECONDS
        if lifetime > 0:
            cache.set(cache_key, access_token, timeout=lifetime)
        return access_token

    def _headers(self, request_id: str | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token()}",
            "Content-Type": "application/json",
        }
        if request_id:
            headers["PayPal-Request-Id"] = request_id
        return headers

    def _raise_for_error(self, data: dict[str, Any]) -> None:
        details = data.get("details") or [{}]
        issue = details[0].get("issue") or data.get("name")
        self._raise_mapped(issue, details[0].get("description") or data.get("message"), PAYPAL_ERROR_MAP)

    def charge(self, request: PaymentRequest) -> Confirmed | RequiresAction:
        self._require_config()
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": request.order_ref.value,
                    "custom_id": request.order_ref.value,
                    "amount": {
                        "currency_code": request.amount.currency,
                        "value": str(request.amount),
                    },
                }
            ],
            "application_context": {
                "brand_name": self.brand_name,
                "shipping_preference": "NO_SHIPPING",
                "user_action": "PAY_NOW",
                "return_url": self.return_url,
                "cancel_url": self.cancel_url,
            },
        }
        response = self._send("POST", "/v2/checkout/orders", json=body, headers=self._headers(request.key))
        data = self._payload(response)
        if response.status_code >= 400:
            self._raise_for_error(data)

        approve_url = next(
            (link.get("href") for link in data.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        if not data.get("id") or not approve_url:
            raise GatewayTimeoutError("paypal did not return an approval link")

        logger.info("Created PayPal order %s for %s", data["id"], request.order_ref)
        return RequiresAction(
            action=PAYPAL_REDIRECT_ACTION,
            action_data={"paypal_order_id": data["id"]},
            redirect_url=approve_url,
            gateway_reference=data["id"],
        )

    def resume(self, attempt: PaymentAttempt, payload: Mapping[str, Any]) -> Confirmed | RequiresAction:
        if payload.get("cancelled"):
            raise PaymentDeclinedError("PayPal approval was cancelled by the buyer")
        paypal_order_id = attempt.gateway_reference
        if not paypal_order_id:
            raise InvalidPaymentRequestError("No PayPal order is pending for this checkout")
        token = payload.get("token")
        if token and token != paypal_order_id:
            raise PaymentDeclinedError("PayPal approval does not match this checkout")

        self._require_config()
        response = self._send(
            "POST",
            f"/v2/checkout/orders/{paypal_order_id}/capture",
            headers=self._headers(f"{attempt.idempotency_key}-capture"),
        )
        data = self._payload(response)
        if response.status_code >= 400:
            details = data.get("details") or [{}]
            if details[0].get("issue") != "ORDER_ALREADY_CAPTURED":
                self._raise_for_error(data)
            data = self._get_order(paypal_order_id)
        return self._confirmed_capture(data)

    def _get_order(self, paypal_order_id: str) -> dict[str, Any]:
        response = self._send("GET", f"/v2/checkout/orders/{paypal_order_id}", headers=self._headers())
        data = self._payload(response)
        if response.status_code >= 400:
            self._raise_for_error(data)
        return data

    def _confirmed_capture(self, order: dict[str, Any]) -> Confirmed:
        captures = [
            capture
            for unit in order.get("purchase_units", [])
            for capture in unit.get("payments", {}).get("captures", [])
        ]
        if not captures:
            raise GatewayTimeoutError("paypal order has no capture yet")
        capture = captures[0]
        status = capture.get("status")
        if status == "COMPLETED":
            logger.info("Captured PayPal order %s as %s", order.get("id"), capture["id"])
            return Confirmed(external_transaction_id=capture["id"])
        if status in ("DECLINED", "FAILED"):
            raise PaymentDeclinedError("PayPal capture was declined")
        raise GatewayTimeoutError(f"paypal capture is {status or 'pending'}")
