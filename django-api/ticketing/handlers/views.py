"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing import container
from ticketing.domain import CheckoutState, EventId, OrderRef
from ticketing.domain.errors import DomainError, InvalidOrderRefError
from ticketing.handlers.errors import error_body, error_response, validation_error_response
from ticketing.handlers.serializers import (
    AvailabilitySerializer,
    CheckInSerializer,
    HoldSerializer,
    ResumeCheckoutSerializer,
    StartCheckoutSerializer,
    SubmitPaymentSerializer,
    TicketSerializer,
    checkout_payload,
)
from ticketing.services.checkout_service import CheckoutResult


def parse_order_ref(value: str) -> OrderRef:
    try:
        return OrderRef(value)
    except ValueError:
        raise InvalidOrderRefError()


def checkout_response(result: CheckoutResult, success_status: int = status.HTTP_200_OK) -> Response:
    payload = checkout_payload(result)
    if result.error is not None:
        return error_response(result.error, **payload)
    if result.payment_error is not None:
        failed = result.payment_error
        return Response(
            {**error_body(failed.code.value, failed.reason, retryable=failed.retryable), **payload},
            status=status.HTTP_402_PAYMENT_REQUIRED,
        )
    if result.checkout.state is CheckoutState.PAYMENT_PENDING:
        return Response(payload, status=status.HTTP_202_ACCEPTED)
    return Response(payload, status=success_status)


class CheckoutListView(APIView):
    """Handler for POST /api/checkouts"""

    def post(self, request: Request) -> Response:
        serializer = StartCheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = container.checkout_orchestrator().start(serializer.to_command())
        except DomainError as exc:
            return error_response(exc)
        return checkout_response(result, success_status=status.HTTP_201_CREATED)


class CheckoutDetailView(APIView):
    """Handler for GET /api/checkouts/{order_ref}"""

    def get(self, request: Request, order_ref: str) -> Response:
        try:
            result = container.checkout_orchestrator().get(parse_order_ref(order_ref))
        except DomainError as exc:
            return error_response(exc)
        return Response(checkout_payload(result))


class CheckoutPaymentView(APIView):
    """Handler for POST /api/checkouts/{order_ref}/payment"""

    def post(self, request: Request, order_ref: str) -> Response:
        serializer = SubmitPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = container.checkout_orchestrator().submit_payment(
                parse_order_ref(order_ref),
                gateway_token=serializer.validated_data.get("gateway_token") or None,
            )
        except DomainError as exc:
            return error_response(exc)
        return checkout_response(result)


class CheckoutResumeView(APIView):
    """Handler for POST /api/checkouts/{order_ref}/resume (provider redirect callback)"""

    def post(self, request: Request, order_ref: str) -> Response:
        serializer = ResumeCheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = container.checkout_orchestrator().resume_after_redirect(
                parse_order_ref(order_ref),
                serializer.validated_data["gateway_payload"],
            )
        except DomainError as exc:
            return error_response(exc)
        return checkout_response(result)


class CheckoutCancelView(APIView):
    """Handler for POST /api/checkouts/{order_ref}/cancel"""

    def post(self, request: Request, order_ref: str) -> Response:
        try:
            result = container.checkout_orchestrator().cancel(parse_order_ref(order_ref))
        except DomainError as exc:
            return error_response(exc)
        return Response(checkout_payload(result))


class CheckoutIssuanceView(APIView):
    """Handler for POST /api/checkouts/{order_ref}/issuance (operator retry)"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, order_ref: str) -> Response:
        try:
            result = container.checkout_orchestrator().retry_issuance(parse_order_ref(order_ref))
        except DomainError as exc:
            return error_response(exc)
        return checkout_response(result)


class EventAvailabilityView(APIView):
    """Handler for GET /api/events/{event_id}/availability"""

    def get(self, request: Request, event_id) -> Response:
        try:
            availability = container.inventory_ledger().availability(EventId(event_id), timezone.now())
        except DomainError as exc:
            return error_response(exc)
        return Response({"availability": AvailabilitySerializer(availability).data})


class HoldDetailView(APIView):
    """Handler for GET /api/holds/{token}"""

    def get(self, request: Request, token: str) -> Response:
        try:
            hold = container.hold_manager().resolve(token)
        except DomainError as exc:
            return error_response(exc)
        return Response({"hold": HoldSerializer(hold).data, "hold_token": token})


class HoldExtendView(APIView):
    """Handler for POST /api/holds/{token}/extend"""

    def post(self, request: Request, token: str) -> Response:
        holds = container.hold_manager()
        try:
            hold = holds.extend(holds.session_id_from_token(token))
        except DomainError as exc:
            return error_response(exc)
        return Response({"hold": HoldSerializer(hold).data, "hold_token": token})


class TicketCheckInView(APIView):
    """Handler for POST /api/tickets/check-in"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request) -> Response:
        serializer = CheckInSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            ticket = container.ticket_validation_service().check_in(serializer.validated_data["qr_code"])
        except DomainError as exc:
            return error_response(exc)
        return Response({"ticket": TicketSerializer(ticket).data})
