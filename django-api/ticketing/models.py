"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import F, Q


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    venue = models.CharField(max_length=255)
    starts_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="ticketing_e_created_3c3b0d_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class TicketType(models.Model):
    """Persistence model for general-admission ticket types."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    name = models.CharField(max_length=100)
    price_minor = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    capacity = models.PositiveIntegerField()
    sold_count = models.PositiveIntegerField(default=0)
    held_count = models.PositiveIntegerField(default=0)
    max_per_person = models.PositiveIntegerField(blank=True, null=True)
    early_bird_price_minor = models.PositiveIntegerField(blank=True, null=True)
    early_bird_until = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["event"], name="ticketing_t_event_i_5d1e27_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(sold_count__lte=F("capacity") - F("held_count")),
                name="ticket_type_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.sold_count + self.held_count}/{self.capacity})"


class Seat(models.Model):
    """Persistence model for assigned seats."""

    STATUS_AVAILABLE = "available"
    STATUS_HELD = "held"
    STATUS_SOLD = "sold"
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_HELD, "Held"),
        (STATUS_SOLD, "Sold"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="seats")
    label = models.CharField(max_length=32)
    category = models.CharField(max_length=64)
    price_minor = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
    table_id = models.CharField(max_length=32, blank=True, null=True)
    hold_session = models.ForeignKey(
        "HoldSession",
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="seats",
    )

    class Meta:
        ordering = ["label"]
        constraints = [
            models.UniqueConstraint(fields=["event", "label"], name="unique_seat_label_per_event"),
        ]
        indexes = [
            models.Index(fields=["event", "status"], name="ticketing_s_event_i_a47c90_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.label} ({self.status})"


class HoldSession(models.Model):
    """Persistence model for time-boxed holds."""

    STATE_ACTIVE = "active"
    STATE_FINALIZED = "finalized"
    STATE_RELEASED = "released"
    STATE_EXPIRED = "expired"
    STATE_CHOICES = [
        (STATE_ACTIVE, "Active"),
        (STATE_FINALIZED, "Finalized"),
        (STATE_RELEASED, "Released"),
        (STATE_EXPIRED, "Expired"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="hold_sessions")
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=STATE_ACTIVE)
    created_at = models.DateTimeField()
    expires_at = models.DateTimeField()
    finalized_by = models.CharField(max_length=40, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["state", "expires_at"], name="ticketing_h_state_8f2a41_idx"),
        ]

    def __str__(self) -> str:
        return f"Hold {self.id} ({self.state})"


class HoldLine(models.Model):
    """One unit (and quantity) held by a session, priced at reserve time."""

    hold_session = models.ForeignKey(HoldSession, on_delete=models.CASCADE, related_name="lines")
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.PROTECT, blank=True, null=True, related_name="hold_lines"
    )
    seat = models.ForeignKey(Seat, on_delete=models.PROTECT, blank=True, null=True, related_name="hold_lines")
    quantity = models.PositiveIntegerField()
    unit_price_minor = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(ticket_type__isnull=False, seat__isnull=True)
                    | Q(ticket_type__isnull=True, seat__isnull=False)
                ),
                name="hold_line_single_unit",
            ),
        ]


class PaymentAttempt(models.Model):
    """One payment attempt per order reference."""

    STATE_INITIATED = "initiated"
    STATE_REQUIRES_ACTION = "requires_action"
    STATE_CONFIRMED = "confirmed"
    STATE_FAILED = "failed"
    STATE_CHOICES = [
        (STATE_INITIATED, "Initiated"),
        (STATE_REQUIRES_ACTION, "Requires action"),
        (STATE_CONFIRMED, "Confirmed"),
        (STATE_FAILED, "Failed"),
    ]

    order_ref = models.CharField(max_length=40, unique=True)
    gateway = models.CharField(max_length=16)
    amount_minor = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    customer_email = models.EmailField()
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=STATE_INITIATED)
    external_transaction_id = models.CharField(max_length=255, blank=True, null=True)
    gateway_reference = models.CharField(max_length=255, blank=True, null=True)
    redirect_url = models.URLField(max_length=1000, blank=True, null=True)
    action = models.CharField(max_length=32, blank=True, null=True)
    action_data = models.JSONField(default=dict, blank=True)
    failure_code = models.CharField(max_length=64, blank=True, null=True)
    failure_reason = models.CharField(max_length=500, blank=True, null=True)
    retryable = models.BooleanField(default=False)
    retry_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.gateway} {self.order_ref} ({self.state})"


class Order(models.Model):
    """Persistence model for orders, created once per confirmed payment."""

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_ref = models.CharField(max_length=40, unique=True)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="orders")
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=255, blank=True, null=True)
    total_minor = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    payment_method = models.CharField(max_length=16)
    external_transaction_id = models.CharField(max_length=255, blank=True, null=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer_email"], name="ticketing_o_custome_0b6f58_idx"),
        ]

    def __str__(self) -> str:
        return f"Order {self.order_ref} ({self.status})"


class Ticket(models.Model):
    """Persistence model for tickets, one per purchased unit."""

    STATUS_ACTIVE = "active"
    STATUS_USED = "used"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_USED, "Used"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="tickets")
    unit_ref = models.CharField(max_length=64)
    sequence = models.PositiveIntegerField()
    holder_name = models.CharField(max_length=255, blank=True, null=True)
    qr_code = models.CharField(max_length=64, unique=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    checked_in_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["unit_ref", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "unit_ref", "sequence"],
                name="unique_ticket_per_unit_sequence",
            ),
        ]

    def __str__(self) -> str:
        return self.qr_code


class Checkout(models.Model):
    """Persisted checkout state machine, keyed by order reference."""

    STATE_CHOICES = [
        ("cart", "Cart"),
        ("hold_acquired", "Hold acquired"),
        ("awaiting_payment", "Awaiting payment"),
        ("payment_pending", "Payment pending"),
        ("payment_confirmed", "Payment confirmed"),
        ("issuing", "Issuing"),
        ("completed", "Completed"),
        ("failed", "Failed"),
    ]

    order_ref = models.CharField(max_length=40, unique=True)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="checkouts")
    hold_session = models.ForeignKey(
        HoldSession, on_delete=models.SET_NULL, blank=True, null=True, related_name="checkouts"
    )
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=255, blank=True, null=True)
    gateway = models.CharField(max_length=16)
    amount_minor = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="USD")
    state = models.CharField(max_length=24, choices=STATE_CHOICES, default="cart")
    failure_stage = models.CharField(max_length=16, blank=True, null=True)
    failure_code = models.CharField(max_length=64, blank=True, null=True)
    failure_reason = models.CharField(max_length=500, blank=True, null=True)
    last_payment_error = models.CharField(max_length=500, blank=True, null=True)
    pending_action = models.CharField(max_length=32, blank=True, null=True)
    redirect_url = models.URLField(max_length=1000, blank=True, null=True)
    action_data = models.JSONField(default=dict, blank=True)
    external_transaction_id = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["state"], name="ticketing_c_state_6e9d13_idx"),
        ]

    def __str__(self) -> str:
        return f"Checkout {self.order_ref} ({self.state})"
