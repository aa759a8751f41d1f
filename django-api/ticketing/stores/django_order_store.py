"""Django ORM implementation of the OrderStore."""

from datetime import datetime

from django.db import DatabaseError, IntegrityError, transaction

from ticketing import models
from ticketing.domain import (
    ConfirmedPayment,
    EventId,
    Gateway,
    Money,
    Order,
    OrderId,
    OrderRef,
    OrderStatus,
    Ticket,
    TicketStatus,
    UnitRef,
)
from ticketing.stores.interfaces import OrderStore, StoreError


def _order_to_domain(row: models.Order) -> Order:
    return Order(
        id=OrderId(row.id),
        order_ref=OrderRef(row.order_ref),
        event_id=EventId(row.event_id),
        customer_email=row.customer_email,
        customer_name=row.customer_name,
        total=Money(row.total_minor, row.currency),
        payment_method=Gateway(row.payment_method),
        external_transaction_id=row.external_transaction_id,
        status=OrderStatus(row.status),
        created_at=row.created_at,
    )


def _ticket_to_domain(row: models.Ticket) -> Ticket:
    return Ticket(
        id=row.id,
        order_id=OrderId(row.order_id),
        unit_ref=UnitRef.from_string(row.unit_ref),
        sequence=row.sequence,
        holder_name=row.holder_name,
        qr_code=row.qr_code,
        status=TicketStatus(row.status),
        checked_in_at=row.checked_in_at,
    )


class DjangoOrderStore(OrderStore):
    """PostgreSQL-backed orders and tickets using Django ORM."""

    def get_or_create_order(
        self,
        payment: ConfirmedPayment,
        event_id: EventId,
    ) -> tuple[Order, bool]:
        try:
            with transaction.atomic():
                row, created = models.Order.objects.get_or_create(
                    order_ref=payment.order_ref.value,
                    defaults={
                        "event_id": event_id.value,
                        "customer_email": payment.customer_email,
                        "customer_name": payment.customer_name,
                        "total_minor": payment.amount.amount,
                        "currency": payment.amount.currency,
                        "payment_method": payment.gateway.value,
                        "external_transaction_id": payment.external_transaction_id,
                        "status": models.Order.STATUS_PENDING,
                    },
                )
        except DatabaseError as exc:
            raise StoreError("Could not create order") from exc
        return _order_to_domain(row), created

    def get_order_by_ref(self, order_ref: OrderRef) -> Order | None:
        row = models.Order.objects.filter(order_ref=order_ref.value).first()
        return _order_to_domain(row) if row else None

    def set_order_status(self, order_id: OrderId, status: OrderStatus) -> Order:
        try:
            models.Order.objects.filter(pk=order_id.value).update(status=status.value)
        except DatabaseError as exc:
            raise StoreError("Could not update order status") from exc
        return _order_to_domain(models.Order.objects.get(pk=order_id.value))

    def list_tickets(self, order_id: OrderId) -> list[Ticket]:
        rows = models.Ticket.objects.filter(order_id=order_id.value).order_by("unit_ref", "sequence")
        return [_ticket_to_domain(row) for row in rows]

    def create_ticket(self, ticket: Ticket) -> Ticket:
        try:
            with transaction.atomic():
                row = models.Ticket.objects.create(
                    id=ticket.id,
                    order_id=ticket.order_id.value,
                    unit_ref=str(ticket.unit_ref),
                    sequence=ticket.sequence,
                    holder_name=ticket.holder_name,
                    qr_code=ticket.qr_code,
                    status=ticket.status.value,
                )
        except IntegrityError:
            # A concurrent retry minted the same (order, unit, sequence) first.
            existing = models.Ticket.objects.filter(
                order_id=ticket.order_id.value,
                unit_ref=str(ticket.unit_ref),
                sequence=ticket.sequence,
            ).first()
            if existing is None:
                raise StoreError(f"Could not mint ticket {ticket.qr_code}")
            return _ticket_to_domain(existing)
        except DatabaseError as exc:
            raise StoreError(f"Could not mint ticket {ticket.qr_code}") from exc
        return _ticket_to_domain(row)

    def get_ticket_by_code(self, qr_code: str) -> Ticket | None:
        row = models.Ticket.objects.filter(qr_code=qr_code).first()
        return _ticket_to_domain(row) if row else None

    def check_in_ticket(self, qr_code: str, at: datetime) -> bool:
        updated = models.Ticket.objects.filter(
            qr_code=qr_code,
            status=models.Ticket.STATUS_ACTIVE,
        ).update(status=models.Ticket.STATUS_USED, checked_in_at=at)
        return updated == 1
