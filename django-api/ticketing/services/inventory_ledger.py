"""Inventory ledger - the single source of truth for capacity.

Every hold transition goes through one conditional write on the hold
session (``active`` -> something else). Only the caller whose write lands
moves the units, which makes commit, release and expiry mutually exclusive
and each of them happen at most once.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from ticketing.domain import (
    Availability,
    EventId,
    HoldLine,
    HoldReceipt,
    HoldSession,
    HoldSessionId,
    HoldState,
    OrderRef,
    TicketTypeAvailability,
    UnitRef,
)
from ticketing.domain.errors import (
    EventNotFoundError,
    HoldExpiredError,
    HoldFinalizedError,
    InvalidQuantityError,
    QuantityLimitExceededError,
    SeatUnavailableError,
    SessionNotFoundError,
    SoldOutError,
    UnitNotFoundError,
)
from ticketing.stores.interfaces import CatalogStore, InventoryStore

logger = logging.getLogger(__name__)


def merge_units(units: Iterable[tuple[UnitRef, int]]) -> dict[UnitRef, int]:
    """Collapse repeated unit refs into one quantity per unit."""
    merged: dict[UnitRef, int] = {}
    for unit_ref, quantity in units:
        merged[unit_ref] = merged.get(unit_ref, 0) + quantity
    return merged


class InventoryLedger:
    """Tracks capacity, active holds and sold counts per sellable unit."""

    def __init__(self, catalog: CatalogStore, store: InventoryStore) -> None:
        self._catalog = catalog
        self._store = store

    def reserve(
        self,
        event_id: EventId,
        units: Iterable[tuple[UnitRef, int]],
        session_id: HoldSessionId,
        now: datetime,
        expires_at: datetime,
    ) -> HoldReceipt:
        """Hold every requested unit for the session, or none of them.

        Raises:
            InvalidQuantityError: If nothing was requested or a quantity is invalid.
            UnitNotFoundError: If a unit does not belong to the event.
            QuantityLimitExceededError: If a ticket type's per-person limit is exceeded.
            SoldOutError: If a ticket type lacks capacity.
            SeatUnavailableError: If a seat is already held or sold.
        """
        requested = merge_units(units)
        if not requested:
            raise InvalidQuantityError("empty selection")

        with self._store.atomic():
            self._store.create_hold(session_id, event_id, now, expires_at)
            lines = []
            # Fixed claim order keeps two overlapping carts from deadlocking.
            for unit_ref in sorted(requested):
                line = self._claim(event_id, unit_ref, requested[unit_ref], session_id, now)
                self._store.add_hold_line(session_id, line)
                lines.append(line)

        logger.info(
            "Reserved %d unit(s) for hold %s until %s",
            sum(line.quantity for line in lines),
            session_id,
            expires_at.isoformat(),
        )
        return HoldReceipt(session_id=session_id, lines=tuple(lines), expires_at=expires_at)

    def _claim(
        self,
        event_id: EventId,
        unit_ref: UnitRef,
        quantity: int,
        session_id: HoldSessionId,
        now: datetime,
    ) -> HoldLine:
        if unit_ref.is_seat:
            if quantity != 1:
                raise InvalidQuantityError(str(unit_ref))
            seat = self._catalog.get_seat(unit_ref)
            if seat is None or seat.event_id != event_id:
                raise UnitNotFoundError(str(unit_ref))
            if not self._store.hold_seat(unit_ref, event_id, session_id):
                raise SeatUnavailableError(seat.label)
            return HoldLine(unit_ref=unit_ref, quantity=1, unit_price=seat.price)

        if quantity < 1:
            raise InvalidQuantityError(str(unit_ref))
        ticket_type = self._catalog.get_ticket_type(unit_ref)
        if ticket_type is None or ticket_type.event_id != event_id:
            raise UnitNotFoundError(str(unit_ref))
        if ticket_type.max_per_person is not None and quantity > ticket_type.max_per_person:
            raise QuantityLimitExceededError(ticket_type.name, ticket_type.max_per_person)
        if not self._store.hold_ticket_type(unit_ref, event_id, quantity):
            raise SoldOutError(ticket_type.name)
        return HoldLine(unit_ref=unit_ref, quantity=quantity, unit_price=ticket_type.price_at(now))

    def get_hold(self, session_id: HoldSessionId) -> HoldSession:
        """Return a hold session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        hold = self._store.get_hold(session_id)
        if hold is None:
            raise SessionNotFoundError()
        return hold

    def commit(self, session_id: HoldSessionId, order_ref: OrderRef) -> None:
        """Turn held units into units sold to ``order_ref``.

        Committing again for the same order is a no-op so issuance can be
        resumed.

        Raises:
            SessionNotFoundError: If the session does not exist.
            HoldExpiredError: If the session was released or expired first.
            HoldFinalizedError: If the session was sold to another order.
        """
        with self._store.atomic():
            if not self._store.transition_hold(session_id, HoldState.FINALIZED, finalized_by=order_ref):
                hold = self.get_hold(session_id)
                if hold.state is not HoldState.FINALIZED:
                    raise HoldExpiredError()
                if hold.finalized_by != order_ref:
                    raise HoldFinalizedError(str(hold.finalized_by))
                return
            hold = self.get_hold(session_id)
            for line in hold.lines:
                if line.unit_ref.is_seat:
                    self._store.sell_seat(line.unit_ref, session_id)
                else:
                    self._store.sell_ticket_type(line.unit_ref, line.quantity)
        logger.info("Committed hold %s (%d unit(s) sold)", session_id, hold.quantity)

    def release(self, session_id: HoldSessionId, to_state: HoldState = HoldState.RELEASED) -> bool:
        """Return held units to availability.

        Returns False without touching inventory if the session was already
        committed, released or expired.
        """
        return self._release(session_id, to_state, expired_at=None)

    def expire(self, session_id: HoldSessionId, now: datetime) -> bool:
        """Release a session whose expiry has passed, at most once."""
        return self._release(session_id, HoldState.EXPIRED, expired_at=now)

    def _release(
        self,
        session_id: HoldSessionId,
        to_state: HoldState,
        expired_at: datetime | None,
    ) -> bool:
        with self._store.atomic():
            if not self._store.transition_hold(session_id, to_state, expired_at=expired_at):
                return False
            hold = self.get_hold(session_id)
            for line in hold.lines:
                if line.unit_ref.is_seat:
                    self._store.release_seat(line.unit_ref, session_id)
                else:
                    self._store.release_ticket_type(line.unit_ref, line.quantity)
        logger.info("Hold %s %s; %d unit(s) available again", session_id, to_state.value, hold.quantity)
        return True

    def extend(self, session_id: HoldSessionId, expires_at: datetime, now: datetime) -> bool:
        return self._store.extend_hold(session_id, expires_at, now)

    def sweep_expired(self, now: datetime) -> int:
        """Expire every active hold past its expiry. Returns how many were released."""
        released = 0
        for session_id in self._store.list_expired_holds(now):
            if self.expire(session_id, now):
                released += 1
        if released:
            logger.info("Swept %d expired hold(s)", released)
        return released

    def availability(self, event_id: EventId, now: datetime) -> Availability:
        """What is left to sell for an event.

        Lapsed holds for the event are expired first, so their units read as
        available again without waiting for the sweeper.

        Raises:
            EventNotFoundError: If the event does not exist.
        """
        if self._catalog.get_event(event_id) is None:
            raise EventNotFoundError()
        for session_id in self._store.list_expired_holds(now, event_id=event_id):
            self.expire(session_id, now)

        ticket_types = tuple(
            TicketTypeAvailability(
                unit_ref=ticket_type.id,
                name=ticket_type.name,
                price=ticket_type.price_at(now),
                capacity=ticket_type.capacity.value,
                remaining=ticket_type.remaining,
                max_per_person=ticket_type.max_per_person,
            )
            for ticket_type in self._catalog.list_ticket_types(event_id)
        )
        seats = tuple(sorted(self._catalog.list_seats(event_id), key=lambda seat: (seat.category, seat.label)))
        return Availability(event_id=event_id, as_of=now, ticket_types=ticket_types, seats=seats)
