import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("venue", models.CharField(max_length=255)),
                ("starts_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["-created_at"], name="ticketing_e_created_3c3b0d_idx")],
            },
        ),
        migrations.CreateModel(
            name="HoldSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("finalized", "Finalized"),
                            ("released", "Released"),
                            ("expired", "Expired"),
                        ],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField()),
                ("expires_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="hold_sessions",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["state", "expires_at"], name="ticketing_h_state_8f2a41_idx")],
            },
        ),
        migrations.CreateModel(
            name="TicketType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("price_minor", models.PositiveIntegerField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("capacity", models.PositiveIntegerField()),
                ("sold_count", models.PositiveIntegerField(default=0)),
                ("held_count", models.PositiveIntegerField(default=0)),
                ("max_per_person", models.PositiveIntegerField(blank=True, null=True)),
                ("early_bird_price_minor", models.PositiveIntegerField(blank=True, null=True)),
                ("early_bird_until", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ticket_types",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["event"], name="ticketing_t_event_i_5d1e27_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(sold_count__lte=models.F("capacity") - models.F("held_count")),
                        name="ticket_type_within_capacity",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Seat",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("label", models.CharField(max_length=32)),
                ("category", models.CharField(max_length=64)),
                ("price_minor", models.PositiveIntegerField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[("available", "Available"), ("held", "Held"), ("sold", "Sold")],
                        default="available",
                        max_length=16,
                    ),
                ),
                ("table_id", models.CharField(blank=True, max_length=32, null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="seats",
                        to="ticketing.event",
                    ),
                ),
                (
                    "hold_session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="seats",
                        to="ticketing.holdsession",
                    ),
                ),
            ],
            options={
                "ordering": ["label"],
                "indexes": [models.Index(fields=["event", "status"], name="ticketing_s_event_i_a47c90_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("event", "label"), name="unique_seat_label_per_event")
                ],
            },
        ),
        migrations.CreateModel(
            name="HoldLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price_minor", models.PositiveIntegerField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "hold_session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="ticketing.holdsession",
                    ),
                ),
                (
                    "seat",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="hold_lines",
                        to="ticketing.seat",
                    ),
                ),
                (
                    "ticket_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="hold_lines",
                        to="ticketing.tickettype",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("seat__isnull", True), ("ticket_type__isnull", False)),
                            models.Q(("seat__isnull", False), ("ticket_type__isnull", True)),
                            _connector="OR",
                        ),
                        name="hold_line_single_unit",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentAttempt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_ref", models.CharField(max_length=40, unique=True)),
                ("gateway", models.CharField(max_length=16)),
                ("amount_minor", models.PositiveIntegerField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("customer_email", models.EmailField(max_length=254)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("initiated", "Initiated"),
                            ("requires_action", "Requires action"),
                            ("confirmed", "Confirmed"),
                            ("failed", "Failed"),
                        ],
                        default="initiated",
                        max_length=16,
                    ),
                ),
                ("external_transaction_id", models.CharField(blank=True, max_length=255, null=True)),
                ("gateway_reference", models.CharField(blank=True, max_length=255, null=True)),
                ("redirect_url", models.URLField(blank=True, max_length=1000, null=True)),
                ("action", models.CharField(blank=True, max_length=32, null=True)),
                ("action_data", models.JSONField(blank=True, default=dict)),
                ("failure_code", models.CharField(blank=True, max_length=64, null=True)),
                ("failure_reason", models.CharField(blank=True, max_length=500, null=True)),
                ("retryable", models.BooleanField(default=False)),
                ("retry_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_ref", models.CharField(max_length=40, unique=True)),
                ("customer_email", models.EmailField(max_length=254)),
                ("customer_name", models.CharField(blank=True, max_length=255, null=True)),
                ("total_minor", models.PositiveIntegerField()),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("payment_method", models.CharField(max_length=16)),
                ("external_transaction_id", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed")],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["customer_email"], name="ticketing_o_custome_0b6f58_idx")],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("unit_ref", models.CharField(max_length=64)),
                ("sequence", models.PositiveIntegerField()),
                ("holder_name", models.CharField(blank=True, max_length=255, null=True)),
                ("qr_code", models.CharField(max_length=64, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("used", "Used"), ("cancelled", "Cancelled")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to="ticketing.order",
                    ),
                ),
            ],
            options={
                "ordering": ["unit_ref", "sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "unit_ref", "sequence"),
                        name="unique_ticket_per_unit_sequence",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Checkout",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_ref", models.CharField(max_length=40, unique=True)),
                ("customer_email", models.EmailField(max_length=254)),
                ("customer_name", models.CharField(blank=True, max_length=255, null=True)),
                ("gateway", models.CharField(max_length=16)),
                ("amount_minor", models.PositiveIntegerField(default=0)),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("cart", "Cart"),
                            ("hold_acquired", "Hold acquired"),
                            ("awaiting_payment", "Awaiting payment"),
                            ("payment_pending", "Payment pending"),
                            ("payment_confirmed", "Payment confirmed"),
                            ("issuing", "Issuing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="cart",
                        max_length=24,
                    ),
                ),
                ("failure_stage", models.CharField(blank=True, max_length=16, null=True)),
                ("failure_code", models.CharField(blank=True, max_length=64, null=True)),
                ("failure_reason", models.CharField(blank=True, max_length=500, null=True)),
                ("last_payment_error", models.CharField(blank=True, max_length=500, null=True)),
                ("pending_action", models.CharField(blank=True, max_length=32, null=True)),
                ("redirect_url", models.URLField(blank=True, max_length=1000, null=True)),
                ("action_data", models.JSONField(blank=True, default=dict)),
                ("external_transaction_id", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="checkouts",
                        to="ticketing.event",
                    ),
                ),
                (
                    "hold_session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="checkouts",
                        to="ticketing.holdsession",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["state"], name="ticketing_c_state_6e9d13_idx")],
            },
        ),
    ]
