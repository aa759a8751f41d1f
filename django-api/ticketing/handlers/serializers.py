"""Serializers for request input and for domain models in API responses."""

from typing import Any

from rest_framework import serializers

from ticketing.domain import EventId, Gateway, OrderRef, UnitRef
from ticketing.domain.value_objects import ORDER_REF_PATTERN
from ticketing.services.checkout_service import CheckoutResult, StartCheckout


class EnumValueField(serializers.Field):
    """Read-only field rendering an Enum member as its value."""

    def __init__(self, **kwargs: Any) -> None:
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        return value.value


class MoneySerializer(serializers.Serializer):
    amount = serializers.IntegerField()
    currency = serializers.CharField()
    display = serializers.SerializerMethodField()

    def get_display(self, obj) -> str:
        return str(obj)


# Input


class CartItemSerializer(serializers.Serializer):
    unit_ref = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1, default=1)

    def validate_unit_ref(self, value: str) -> UnitRef:
        try:
            return UnitRef.from_string(value)
        except ValueError:
            raise serializers.ValidationError("Expected ticket_type:<uuid> or seat:<uuid>")


class StartCheckoutSerializer(serializers.Serializer):
    order_ref = serializers.RegexField(ORDER_REF_PATTERN)
    event_id = serializers.UUIDField()
    gateway = serializers.ChoiceField(choices=[gateway.value for gateway in Gateway])
    customer_email = serializers.EmailField()
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    items = CartItemSerializer(many=True, allow_empty=False)
    hold_token = serializers.CharField(required=False, allow_blank=True)

    def to_command(self) -> StartCheckout:
        data = self.validated_data
        return StartCheckout(
            order_ref=OrderRef(data["order_ref"]),
            event_id=EventId(data["event_id"]),
            gateway=Gateway(data["gateway"]),
            customer_email=data["customer_email"],
            items=tuple((item["unit_ref"], item["quantity"]) for item in data["items"]),
            customer_name=data.get("customer_name") or None,
            hold_token=data.get("hold_token") or None,
        )


class SubmitPaymentSerializer(serializers.Serializer):
    gateway_token = serializers.CharField(required=False, allow_blank=True)


class ResumeCheckoutSerializer(serializers.Serializer):
    gateway_payload = serializers.DictField(required=False, default=dict)


class CheckInSerializer(serializers.Serializer):
    qr_code = serializers.CharField(max_length=64)


# Output


class HoldLineSerializer(serializers.Serializer):
    unit_ref = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = MoneySerializer()
    subtotal = MoneySerializer()


class HoldSerializer(serializers.Serializer):
    id = serializers.CharField()
    event_id = serializers.CharField()
    state = EnumValueField()
    lines = HoldLineSerializer(many=True)
    total = MoneySerializer()
    created_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()


class TicketSerializer(serializers.Serializer):
    id = serializers.CharField()
    unit_ref = serializers.CharField()
    sequence = serializers.IntegerField()
    holder_name = serializers.CharField(allow_null=True)
    qr_code = serializers.CharField()
    status = EnumValueField()
    checked_in_at = serializers.DateTimeField(allow_null=True)


class OrderSerializer(serializers.Serializer):
    id = serializers.CharField()
    order_ref = serializers.CharField()
    event_id = serializers.CharField()
    customer_email = serializers.EmailField()
    customer_name = serializers.CharField(allow_null=True)
    total = MoneySerializer()
    payment_method = EnumValueField()
    external_transaction_id = serializers.CharField(allow_null=True)
    status = EnumValueField()
    created_at = serializers.DateTimeField()


class TicketTypeAvailabilitySerializer(serializers.Serializer):
    unit_ref = serializers.CharField()
    name = serializers.CharField()
    price = MoneySerializer()
    capacity = serializers.IntegerField()
    remaining = serializers.IntegerField()
    max_per_person = serializers.IntegerField(allow_null=True)


class SeatAvailabilitySerializer(serializers.Serializer):
    unit_ref = serializers.CharField(source="id")
    label = serializers.CharField()
    category = serializers.CharField()
    price = MoneySerializer()
    status = EnumValueField()
    table_id = serializers.CharField(allow_null=True)


class SeatCategorySummarySerializer(serializers.Serializer):
    category = serializers.CharField()
    total = serializers.IntegerField()
    available = serializers.IntegerField()
    held = serializers.IntegerField()
    sold = serializers.IntegerField()


class AvailabilitySerializer(serializers.Serializer):
    event_id = serializers.CharField()
    as_of = serializers.DateTimeField()
    ticket_types = TicketTypeAvailabilitySerializer(many=True)
    seats = SeatAvailabilitySerializer(many=True)
    seat_summary = SeatCategorySummarySerializer(many=True)


class ActionSerializer(serializers.Serializer):
    action = serializers.CharField()
    redirect_url = serializers.CharField(allow_null=True)
    action_data = serializers.DictField()


class CheckoutSerializer(serializers.Serializer):
    order_ref = serializers.CharField()
    event_id = serializers.CharField()
    state = EnumValueField()
    gateway = EnumValueField()
    amount = MoneySerializer()
    customer_email = serializers.EmailField()
    customer_name = serializers.CharField(allow_null=True)
    failure_stage = EnumValueField(allow_null=True)
    failure_code = serializers.CharField(allow_null=True)
    failure_reason = serializers.CharField(allow_null=True)
    last_payment_error = serializers.CharField(allow_null=True)
    external_transaction_id = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


def checkout_payload(result: CheckoutResult) -> dict[str, Any]:
    """Response body for any checkout operation."""
    payload: dict[str, Any] = {"checkout": CheckoutSerializer(result.checkout).data}
    if result.hold is not None:
        payload["hold"] = HoldSerializer(result.hold).data
        payload["hold_token"] = result.hold_token
    if result.action is not None:
        payload["action"] = ActionSerializer(result.action).data
    if result.issuance is not None:
        payload["order"] = OrderSerializer(result.issuance.order).data
        payload["tickets"] = TicketSerializer(result.issuance.tickets, many=True).data
    return payload
