from django.contrib import admin

from ticketing.models import (
    Checkout,
    Event,
    HoldLine,
    HoldSession,
    Order,
    PaymentAttempt,
    Seat,
    Ticket,
    TicketType,
)


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 1
    readonly_fields = ["sold_count", "held_count"]


class SeatInline(admin.TabularInline):
    model = Seat
    extra = 0
    readonly_fields = ["status", "hold_session"]


class HoldLineInline(admin.TabularInline):
    model = HoldLine
    extra = 0
    readonly_fields = ["ticket_type", "seat", "quantity", "unit_price_minor", "currency"]
    can_delete = False


class TicketInline(admin.TabularInline):
    model = Ticket
    extra = 0
    readonly_fields = ["unit_ref", "sequence", "qr_code", "status", "checked_in_at"]
    can_delete = False


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "venue", "starts_at", "created_at"]
    search_fields = ["name", "venue"]
    inlines = [TicketTypeInline, SeatInline]


@admin.register(TicketType)
class TicketTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price_minor", "capacity", "sold_count", "held_count"]
    list_filter = ["event"]
    # Counters only move through holds and sales.
    readonly_fields = ["sold_count", "held_count"]


@admin.register(Seat)
class SeatAdmin(admin.ModelAdmin):
    list_display = ["label", "event", "category", "price_minor", "status"]
    list_filter = ["event", "status", "category"]
    search_fields = ["label"]
    readonly_fields = ["status", "hold_session"]


@admin.register(HoldSession)
class HoldSessionAdmin(admin.ModelAdmin):
    list_display = ["id", "event", "state", "finalized_by", "created_at", "expires_at"]
    list_filter = ["state"]
    readonly_fields = ["state", "created_at", "expires_at"]
    inlines = [HoldLineInline]


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = ["order_ref", "gateway", "amount_minor", "state", "failure_code", "retry_count", "updated_at"]
    list_filter = ["gateway", "state"]
    search_fields = ["order_ref", "external_transaction_id", "customer_email"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["order_ref", "event", "customer_email", "total_minor", "payment_method", "status", "created_at"]
    list_filter = ["status", "payment_method"]
    search_fields = ["order_ref", "customer_email", "external_transaction_id"]
    inlines = [TicketInline]


@admin.register(Checkout)
class CheckoutAdmin(admin.ModelAdmin):
    list_display = ["order_ref", "event", "gateway", "state", "failure_stage", "failure_code", "updated_at"]
    list_filter = ["state", "failure_stage", "gateway"]
    search_fields = ["order_ref", "customer_email", "external_transaction_id"]
