"""Django ORM implementations of the catalog and inventory stores.

Inventory writes are single conditional UPDATE statements, so concurrent
reservations contend on one row (one seat or one ticket type) at a time.
"""

from datetime import datetime

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from ticketing import models
from ticketing.domain import (
    Capacity,
    Event,
    EventId,
    HoldLine,
    HoldSession,
    HoldSessionId,
    HoldState,
    Money,
    OrderRef,
    Seat,
    SeatStatus,
    TicketType,
    UnitRef,
)
from ticketing.stores.interfaces import CatalogStore, InventoryStore, StoreError


def _event_to_domain(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        name=row.name,
        venue=row.venue,
        starts_at=row.starts_at,
    )


def _ticket_type_to_domain(row: models.TicketType) -> TicketType:
    early_bird = None
    if row.early_bird_price_minor is not None:
        early_bird = Money(row.early_bird_price_minor, row.currency)
    return TicketType(
        id=UnitRef.ticket_type(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(row.price_minor, row.currency),
        capacity=Capacity(row.capacity),
        sold_count=row.sold_count,
        held_count=row.held_count,
        max_per_person=row.max_per_person,
        early_bird_price=early_bird,
        early_bird_until=row.early_bird_until,
    )


def _seat_to_domain(row: models.Seat) -> Seat:
    return Seat(
        id=UnitRef.seat(row.id),
        event_id=EventId(row.event_id),
        label=row.label,
        category=row.category,
        price=Money(row.price_minor, row.currency),
        status=SeatStatus(row.status),
        table_id=row.table_id,
    )


def _hold_line_to_domain(row: models.HoldLine) -> HoldLine:
    if row.seat_id is not None:
        unit_ref = UnitRef.seat(row.seat_id)
    else:
        unit_ref = UnitRef.ticket_type(row.ticket_type_id)
    return HoldLine(
        unit_ref=unit_ref,
        quantity=row.quantity,
        unit_price=Money(row.unit_price_minor, row.currency),
    )


def hold_to_domain(row: models.HoldSession) -> HoldSession:
    return HoldSession(
        id=HoldSessionId(row.id),
        event_id=EventId(row.event_id),
        lines=tuple(_hold_line_to_domain(line) for line in row.lines.all()),
        created_at=row.created_at,
        expires_at=row.expires_at,
        state=HoldState(row.state),
        finalized_by=OrderRef(row.finalized_by) if row.finalized_by else None,
    )


class DjangoCatalogStore(CatalogStore):
    """PostgreSQL-backed catalog lookups using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        return _event_to_domain(row) if row else None

    def get_ticket_type(self, unit_ref: UnitRef) -> TicketType | None:
        row = models.TicketType.objects.filter(pk=unit_ref.id).first()
        return _ticket_type_to_domain(row) if row else None

    def get_seat(self, unit_ref: UnitRef) -> Seat | None:
        row = models.Seat.objects.filter(pk=unit_ref.id).first()
        return _seat_to_domain(row) if row else None

    def list_ticket_types(self, event_id: EventId) -> list[TicketType]:
        rows = models.TicketType.objects.filter(event_id=event_id.value).order_by("created_at", "name")
        return [_ticket_type_to_domain(row) for row in rows]

    def list_seats(self, event_id: EventId) -> list[Seat]:
        return [_seat_to_domain(row) for row in models.Seat.objects.filter(event_id=event_id.value)]


class DjangoInventoryStore(InventoryStore):
    """PostgreSQL-backed inventory using conditional row updates."""

    def atomic(self):
        return transaction.atomic()

    def create_hold(
        self,
        session_id: HoldSessionId,
        event_id: EventId,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        models.HoldSession.objects.create(
            id=session_id.value,
            event_id=event_id.value,
            state=models.HoldSession.STATE_ACTIVE,
            created_at=created_at,
            expires_at=expires_at,
        )

    def add_hold_line(self, session_id: HoldSessionId, line: HoldLine) -> None:
        unit = {"seat_id": line.unit_ref.id} if line.unit_ref.is_seat else {"ticket_type_id": line.unit_ref.id}
        models.HoldLine.objects.create(
            hold_session_id=session_id.value,
            quantity=line.quantity,
            unit_price_minor=line.unit_price.amount,
            currency=line.unit_price.currency,
            **unit,
        )

    def get_hold(self, session_id: HoldSessionId) -> HoldSession | None:
        row = models.HoldSession.objects.prefetch_related("lines").filter(pk=session_id.value).first()
        return hold_to_domain(row) if row else None

    def hold_ticket_type(self, unit_ref: UnitRef, event_id: EventId, quantity: int) -> bool:
        updated = models.TicketType.objects.filter(
            pk=unit_ref.id,
            event_id=event_id.value,
            held_count__lte=F("capacity") - F("sold_count") - quantity,
        ).update(held_count=F("held_count") + quantity)
        return updated == 1

    def hold_seat(self, unit_ref: UnitRef, event_id: EventId, session_id: HoldSessionId) -> bool:
        updated = models.Seat.objects.filter(
            pk=unit_ref.id,
            event_id=event_id.value,
            status=models.Seat.STATUS_AVAILABLE,
        ).update(status=models.Seat.STATUS_HELD, hold_session_id=session_id.value)
        return updated == 1

    def sell_ticket_type(self, unit_ref: UnitRef, quantity: int) -> None:
        updated = models.TicketType.objects.filter(
            pk=unit_ref.id,
            held_count__gte=quantity,
        ).update(
            held_count=F("held_count") - quantity,
            sold_count=F("sold_count") + quantity,
        )
        if updated != 1:
            raise StoreError(f"Held count for {unit_ref} is lower than {quantity}")

    def sell_seat(self, unit_ref: UnitRef, session_id: HoldSessionId) -> None:
        updated = models.Seat.objects.filter(
            pk=unit_ref.id,
            status=models.Seat.STATUS_HELD,
            hold_session_id=session_id.value,
        ).update(status=models.Seat.STATUS_SOLD)
        if updated != 1:
            raise StoreError(f"Seat {unit_ref} is not held by session {session_id}")

    def release_ticket_type(self, unit_ref: UnitRef, quantity: int) -> None:
        updated = models.TicketType.objects.filter(
            pk=unit_ref.id,
            held_count__gte=quantity,
        ).update(held_count=F("held_count") - quantity)
        if updated != 1:
            raise StoreError(f"Held count for {unit_ref} is lower than {quantity}")

    def release_seat(self, unit_ref: UnitRef, session_id: HoldSessionId) -> None:
        updated = models.Seat.objects.filter(
            pk=unit_ref.id,
            status=models.Seat.STATUS_HELD,
            hold_session_id=session_id.value,
        ).update(status=models.Seat.STATUS_AVAILABLE, hold_session=None)
        if updated != 1:
            raise StoreError(f"Seat {unit_ref} is not held by session {session_id}")

    def transition_hold(
        self,
        session_id: HoldSessionId,
        to_state: HoldState,
        expired_at: datetime | None = None,
        finalized_by: OrderRef | None = None,
    ) -> bool:
        queryset = models.HoldSession.objects.filter(
            pk=session_id.value,
            state=models.HoldSession.STATE_ACTIVE,
        )
        if expired_at is not None:
            queryset = queryset.filter(expires_at__lte=expired_at)
        try:
            updated = queryset.update(
                state=to_state.value,
                finalized_by=finalized_by.value if finalized_by else None,
                updated_at=timezone.now(),
            )
        except DatabaseError as exc:
            raise StoreError("Could not update hold session") from exc
        return updated == 1

    def extend_hold(self, session_id: HoldSessionId, expires_at: datetime, now: datetime) -> bool:
        updated = models.HoldSession.objects.filter(
            pk=session_id.value,
            state=models.HoldSession.STATE_ACTIVE,
            expires_at__gt=now,
        ).update(expires_at=expires_at, updated_at=timezone.now())
        return updated == 1

    def list_expired_holds(self, now: datetime, event_id: EventId | None = None) -> list[HoldSessionId]:
        queryset = models.HoldSession.objects.filter(
            state=models.HoldSession.STATE_ACTIVE,
            expires_at__lte=now,
        )
        if event_id is not None:
            queryset = queryset.filter(event_id=event_id.value)
        ids = queryset.values_list("id", flat=True)
        return [HoldSessionId(value) for value in ids]
