from collections.abc import Mapping
from typing import Any

import requests

from ticketing.domain import Gateway
from ticketing.gateways.base import DEFAULT_TIMEOUT_SECONDS, HttpGateway, PaymentGateway
from ticketing.gateways.cashapp import CashAppGateway
from ticketing.gateways.paypal import PayPalGateway
from ticketing.gateways.square import SquareGateway


def build_gateways(
    config: Mapping[str, Mapping[str, Any]],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    session: requests.Session | None = None,
) -> dict[Gateway, PaymentGateway]:
    """Build every provider from the ``PAYMENT_GATEWAYS`` setting.

    Missing credentials are reported per charge as ConfigurationInvalid, so an
    unconfigured provider does not stop the others from working.
    """
    square = config.get("square", {})
    cashapp = config.get("cashapp", {})
    paypal = config.get("paypal", {})
    return {
        Gateway.SQUARE: SquareGateway(
            access_token=square.get("access_token", ""),
            location_id=square.get("location_id", ""),
            application_id=square.get("application_id", ""),
            environment=square.get("environment", "sandbox"),
            session=session,
            timeout=timeout,
        ),
        Gateway.CASHAPP: CashAppGateway(
            access_token=cashapp.get("access_token", ""),
            location_id=cashapp.get("location_id", ""),
            application_id=cashapp.get("application_id", ""),
            environment=cashapp.get("environment", "sandbox"),
            redirect_url=cashapp.get("redirect_url", ""),
            session=session,
            timeout=timeout,
        ),
        Gateway.PAYPAL: PayPalGateway(
            client_id=paypal.get("client_id", ""),
            client_secret=paypal.get("client_secret", ""),
            environment=paypal.get("environment", "sandbox"),
            return_url=paypal.get("return_url", ""),
            cancel_url=paypal.get("cancel_url", ""),
            brand_name=paypal.get("brand_name", "Box Office"),
            session=session,
            timeout=timeout,
        ),
    }


__all__ = [
    "CashAppGateway",
    "HttpGateway",
    "PayPalGateway",
    "PaymentGateway",
    "SquareGateway",
    "build_gateways",
]
