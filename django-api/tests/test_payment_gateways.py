"""Tests for the provider gateways with a mocked requests session.

Run with: pytest tests/test_payment_gateways.py -v
"""

from unittest.mock import Mock

import pytest
import requests
from django.conf import settings

from ticketing.domain import (
    Confirmed,
    Gateway,
    Money,
    OrderRef,
    PaymentAttempt,
    PaymentRequest,
    PaymentState,
    RequiresAction,
)
from ticketing.domain.errors import (
    ConfigurationInvalidError,
    GatewayTimeoutError,
    InvalidPaymentRequestError,
    PaymentDeclinedError,
)
from ticketing.gateways import CashAppGateway, PayPalGateway, SquareGateway, build_gateways


def response(status_code=200, payload=None):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    return resp


def session_returning(*responses):
    session = Mock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return session


def payment_request(gateway=Gateway.SQUARE, token="cnon:card-nonce-ok", key=None):
    return PaymentRequest(
        order_ref=OrderRef("order-1"),
        gateway=gateway,
        amount=Money(12500),
        customer_email="buyer@example.com",
        gateway_token=token,
        idempotency_key=key,
    )


def attempt(gateway, **overrides):
    fields = {
        "order_ref": OrderRef("order-1"),
        "gateway": gateway,
        "amount": Money(12500),
        "customer_email": "buyer@example.com",
        "state": PaymentState.REQUIRES_ACTION,
    }
    fields.update(overrides)
    return PaymentAttempt(**fields)


SQUARE_COMPLETED = {"payment": {"id": "sq-pay-1", "status": "COMPLETED"}}


class TestSquareGateway:
    """Square charges a card token synchronously."""

    def gateway(self, session):
        return SquareGateway(access_token="sq-token", location_id="LOC1", session=session)

    def test_charge_posts_payment(self):
        session = session_returning(response(200, SQUARE_COMPLETED))

        result = self.gateway(session).charge(payment_request(key="order-1-2"))

        assert result == Confirmed(external_transaction_id="sq-pay-1")
        method, url = session.request.call_args.args
        body = session.request.call_args.kwargs["json"]
        headers = session.request.call_args.kwargs["headers"]
        assert (method, url) == ("POST", "https://connect.squareupsandbox.com/v2/payments")
        assert body["idempotency_key"] == "order-1-2"
        assert body["amount_money"] == {"amount": 12500, "currency": "USD"}
        assert body["source_id"] == "cnon:card-nonce-ok"
        assert body["location_id"] == "LOC1"
        assert headers["Authorization"] == "Bearer sq-token"
        assert session.request.call_args.kwargs["timeout"] == 10

    @pytest.mark.parametrize(
        ("code", "error_class"),
        [
            ("CARD_DECLINED", PaymentDeclinedError),
            ("INSUFFICIENT_FUNDS", PaymentDeclinedError),
            ("IDEMPOTENCY_KEY_REUSED", InvalidPaymentRequestError),
            ("SOMETHING_NEW", InvalidPaymentRequestError),
        ],
    )
    def test_error_codes_are_mapped(self, code, error_class):
        session = session_returning(response(402, {"errors": [{"code": code, "detail": "nope"}]}))

        with pytest.raises(error_class):
            self.gateway(session).charge(payment_request())

    def test_unauthorized_is_a_configuration_error(self):
        session = session_returning(response(401, {"errors": [{"code": "UNAUTHORIZED"}]}))

        with pytest.raises(ConfigurationInvalidError) as exc_info:
            self.gateway(session).charge(payment_request())
        assert exc_info.value.retryable is False

    def test_server_error_is_retryable(self):
        session = session_returning(response(503))

        with pytest.raises(GatewayTimeoutError) as exc_info:
            self.gateway(session).charge(payment_request())
        assert exc_info.value.retryable is True

    def test_network_timeout(self):
        session = Mock(spec=requests.Session)
        session.request.side_effect = requests.Timeout()

        with pytest.raises(GatewayTimeoutError):
            self.gateway(session).charge(payment_request())

    def test_failed_payment_is_declined(self):
        session = session_returning(response(200, {"payment": {"id": "sq-pay-1", "status": "FAILED"}}))

        with pytest.raises(PaymentDeclinedError):
            self.gateway(session).charge(payment_request())

    def test_missing_token(self):
        session = session_returning()

        with pytest.raises(InvalidPaymentRequestError):
            self.gateway(session).charge(payment_request(token=None))
        session.request.assert_not_called()

    def test_missing_credentials(self):
        session = session_returning()
        gateway = SquareGateway(access_token="", location_id="", session=session)

        with pytest.raises(ConfigurationInvalidError):
            gateway.charge(payment_request())
        session.request.assert_not_called()


class TestCashAppGateway:
    """Cash App Pay needs the buyer's approval before Square can charge."""

    def gateway(self, session):
        return CashAppGateway(
            access_token="sq-token",
            location_id="LOC1",
            application_id="sq-app",
            redirect_url="https://shop.example.com/resume",
            session=session,
        )

    def test_charge_without_token_requires_approval(self):
        session = session_returning()

        result = self.gateway(session).charge(payment_request(Gateway.CASHAPP, token=None))

        assert isinstance(result, RequiresAction)
        assert result.action == "cashapp_pay"
        assert result.redirect_url == "https://shop.example.com/resume?order_ref=order-1"
        assert result.action_data["application_id"] == "sq-app"
        assert result.action_data["amount"] == 12500
        session.request.assert_not_called()

    def test_resume_charges_the_approved_source(self):
        session = session_returning(response(200, SQUARE_COMPLETED))

        result = self.gateway(session).resume(attempt(Gateway.CASHAPP, retry_count=1), {"source_id": "wltt:abc"})

        assert result == Confirmed(external_transaction_id="sq-pay-1")
        body = session.request.call_args.kwargs["json"]
        assert body["source_id"] == "wltt:abc"
        assert body["idempotency_key"] == "order-1-1"

    @pytest.mark.parametrize("payload", [{"cancelled": True}, {"status": "DECLINED"}])
    def test_resume_after_buyer_declines(self, payload):
        with pytest.raises(PaymentDeclinedError):
            self.gateway(session_returning()).resume(attempt(Gateway.CASHAPP), payload)

    def test_resume_without_source(self):
        with pytest.raises(InvalidPaymentRequestError):
            self.gateway(session_returning()).resume(attempt(Gateway.CASHAPP), {})


PAYPAL_TOKEN = {"access_token": "A21AA-token", "expires_in": 32400}
PAYPAL_ORDER = {
    "id": "5O190127TN364715T",
    "status": "CREATED",
    "links": [
        {"rel": "self", "href": "https://api-m.sandbox.paypal.com/v2/checkout/orders/5O190127TN364715T"},
        {"rel": "approve", "href": "https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T"},
    ],
}
PAYPAL_CAPTURED = {
    "id": "5O190127TN364715T",
    "status": "COMPLETED",
    "purchase_units": [{"payments": {"captures": [{"id": "3C679366HH908993F", "status": "COMPLETED"}]}}],
}


class TestPayPalGateway:
    """PayPal creates an order, redirects the buyer, then captures on return."""

    def gateway(self, session):
        return PayPalGateway(
            client_id="pp-client",
            client_secret="pp-secret",
            return_url="https://shop.example.com/resume",
            cancel_url="https://shop.example.com/cancel",
            session=session,
        )

    def test_charge_returns_approval_redirect(self):
        session = session_returning(response(200, PAYPAL_TOKEN), response(201, PAYPAL_ORDER))

        result = self.gateway(session).charge(payment_request(Gateway.PAYPAL, token=None))

        assert result == RequiresAction(
            action="redirect",
            action_data={"paypal_order_id": "5O190127TN364715T"},
            redirect_url="https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T",
            gateway_reference="5O190127TN364715T",
        )
        token_call, order_call = session.request.call_args_list
        assert token_call.kwargs["auth"] == ("pp-client", "pp-secret")
        body = order_call.kwargs["json"]
        assert body["intent"] == "CAPTURE"
        assert body["purchase_units"][0]["amount"] == {"currency_code": "USD", "value": "125.00"}
        assert body["application_context"]["return_url"] == "https://shop.example.com/resume"
        assert order_call.kwargs["headers"]["PayPal-Request-Id"] == "order-1"
        assert order_call.kwargs["headers"]["Authorization"] == "Bearer A21AA-token"

    def test_access_token_is_cached(self):
        session = session_returning(
            response(200, PAYPAL_TOKEN),
            response(201, PAYPAL_ORDER),
            response(201, PAYPAL_ORDER),
        )

        self.gateway(session).charge(payment_request(Gateway.PAYPAL, token=None))
        self.gateway(session).charge(payment_request(Gateway.PAYPAL, token=None))

        urls = [call.args[1] for call in session.request.call_args_list]
        assert sum(url.endswith("/v1/oauth2/token") for url in urls) == 1

    def test_rejected_credentials(self):
        session = session_returning(response(401, {"error": "invalid_client"}))

        with pytest.raises(ConfigurationInvalidError):
            self.gateway(session).charge(payment_request(Gateway.PAYPAL, token=None))

    def test_resume_captures_the_order(self):
        session = session_returning(response(200, PAYPAL_TOKEN), response(201, PAYPAL_CAPTURED))
        pending = attempt(Gateway.PAYPAL, gateway_reference="5O190127TN364715T")

        result = self.gateway(session).resume(pending, {"token": "5O190127TN364715T", "PayerID": "FSMVU44LF3YUS"})

        assert result == Confirmed(external_transaction_id="3C679366HH908993F")
        capture_call = session.request.call_args_list[-1]
        assert capture_call.args[1].endswith("/v2/checkout/orders/5O190127TN364715T/capture")
        assert capture_call.kwargs["headers"]["PayPal-Request-Id"] == "order-1-capture"

    def test_resume_when_already_captured(self):
        already = {"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_ALREADY_CAPTURED"}]}
        session = session_returning(
            response(200, PAYPAL_TOKEN),
            response(422, already),
            response(200, PAYPAL_CAPTURED),
        )
        pending = attempt(Gateway.PAYPAL, gateway_reference="5O190127TN364715T")

        result = self.gateway(session).resume(pending, {})

        assert result == Confirmed(external_transaction_id="3C679366HH908993F")
        assert session.request.call_args_list[-1].args[0] == "GET"

    def test_declined_instrument(self):
        declined = {"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "INSTRUMENT_DECLINED"}]}
        session = session_returning(response(200, PAYPAL_TOKEN), response(422, declined))
        pending = attempt(Gateway.PAYPAL, gateway_reference="5O190127TN364715T")

        with pytest.raises(PaymentDeclinedError):
            self.gateway(session).resume(pending, {})

    def test_resume_with_mismatched_token(self):
        pending = attempt(Gateway.PAYPAL, gateway_reference="5O190127TN364715T")

        with pytest.raises(PaymentDeclinedError):
            self.gateway(session_returning()).resume(pending, {"token": "SOMEONE-ELSE"})

    def test_resume_after_cancel(self):
        pending = attempt(Gateway.PAYPAL, gateway_reference="5O190127TN364715T")

        with pytest.raises(PaymentDeclinedError):
            self.gateway(session_returning()).resume(pending, {"cancelled": True})

    def test_pending_capture_is_retryable(self):
        pending_capture = {
            "id": "5O190127TN364715T",
            "purchase_units": [{"payments": {"captures": [{"id": "3C6", "status": "PENDING"}]}}],
        }
        session = session_returning(response(200, PAYPAL_TOKEN), response(201, pending_capture))
        pending = attempt(Gateway.PAYPAL, gateway_reference="5O190127TN364715T")

        with pytest.raises(GatewayTimeoutError):
            self.gateway(session).resume(pending, {})


class TestBuildGateways:
    def test_builds_every_provider_from_settings(self):
        gateways = build_gateways(settings.PAYMENT_GATEWAYS)

        assert isinstance(gateways[Gateway.SQUARE], SquareGateway)
        assert isinstance(gateways[Gateway.CASHAPP], CashAppGateway)
        assert isinstance(gateways[Gateway.PAYPAL], PayPalGateway)
        assert gateways[Gateway.CASHAPP].redirect_url == "https://shop.example.com/resume"
