"""Common interface and HTTP plumbing for payment providers.

Gateways raise PaymentError subclasses; the payment service turns those into
Failed results. Request logs carry method, path and status only, never
tokens or credentials.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

import requests

from ticketing.domain import Confirmed, Gateway, PaymentAttempt, PaymentRequest, RequiresAction
from ticketing.domain.errors import (
    ConfigurationInvalidError,
    GatewayTimeoutError,
    InvalidPaymentRequestError,
    PaymentError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10

ErrorMap = Mapping[str, type[PaymentError]]


class PaymentGateway(ABC):
    """One payment provider, token based or redirect based."""

    gateway: Gateway

    @abstractmethod
    def charge(self, request: PaymentRequest) -> Confirmed | RequiresAction:
        """Start a payment.

        Raises:
            PaymentError: If the provider rejects or cannot be reached.
        """
        ...

    @abstractmethod
    def resume(self, attempt: PaymentAttempt, payload: Mapping[str, Any]) -> Confirmed | RequiresAction:
        """Complete a payment after the buyer returns from the provider."""
        ...


class HttpGateway(PaymentGateway):
    """Gateway talking JSON over HTTPS with ``requests``."""

    base_url: str = ""

    def __init__(self, session: requests.Session | None = None, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self.gateway.value

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request, mapping transport and auth failures to payment errors."""
        try:
            response = self._session.request(method, f"{self.base_url}{path}", timeout=self._timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("%s %s %s timed out", self.name, method, path)
            raise GatewayTimeoutError(f"{self.name} did not respond in time") from exc
        except requests.RequestException as exc:
            logger.warning("%s %s %s failed: %s", self.name, method, path, exc.__class__.__name__)
            raise GatewayTimeoutError(f"{self.name} could not be reached") from exc

        logger.info("%s %s %s -> %s", self.name, method, path, response.status_code)
        if response.status_code in (401, 403):
            raise ConfigurationInvalidError(f"{self.name} rejected the configured credentials")
        if response.status_code == 429 or response.status_code >= 500:
            raise GatewayTimeoutError(f"{self.name} is temporarily unavailable")
        return response

    @staticmethod
    def _payload(response: requests.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _raise_mapped(self, provider_code: str | None, detail: str | None, error_map: ErrorMap) -> None:
        """Raise the payment error a provider error code maps to."""
        message = detail or f"{self.name} rejected the payment"
        error_class = error_map.get(provider_code or "")
        if error_class is None:
            logger.warning("Unmapped %s error code %s", self.name, provider_code)
            raise InvalidPaymentRequestError(message)
        raise error_class(message)
