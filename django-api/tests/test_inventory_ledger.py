"""Tests for the inventory ledger against the Django stores.

Run with: pytest tests/test_inventory_ledger.py -v
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from django.utils import timezone

from ticketing import models
from ticketing.domain import (
    EventId,
    HoldSessionId,
    HoldState,
    Money,
    OrderRef,
    SeatCategorySummary,
    SeatStatus,
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
from ticketing.services.inventory_ledger import merge_units
from ticketing.stores.django_store import DjangoInventoryStore

ORDER_REF = OrderRef("order-1")


def reserve(ledger, event_id, units, now=None, ttl=timedelta(minutes=15)):
    now = now or timezone.now()
    return ledger.reserve(event_id, units, HoldSessionId(uuid4()), now, now + ttl)


class TestMergeUnits:
    def test_repeated_units_are_summed(self):
        unit = UnitRef.ticket_type(uuid4())
        assert merge_units([(unit, 2), (unit, 3)]) == {unit: 5}


@pytest.mark.django_db
class TestReserve:
    """Tests for all-or-nothing reservations."""

    def test_reserve_holds_ticket_type_capacity(self, ledger, event_id, make_ticket_type):
        ticket_type = make_ticket_type(capacity=10)
        receipt = reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 3)])

        ticket_type.refresh_from_db()
        assert ticket_type.held_count == 3
        assert receipt.lines[0].quantity == 3
        assert receipt.lines[0].unit_price == Money(5000)
        assert ledger.get_hold(receipt.session_id).state is HoldState.ACTIVE

    def test_last_seat_goes_to_one_buyer(self, ledger, event_id, make_seat):
        """Two buyers racing for the last seat: exactly one wins."""
        seat = UnitRef.seat(make_seat("A1").id)
        first = reserve(ledger, event_id, [(seat, 1)])

        with pytest.raises(SeatUnavailableError):
            reserve(ledger, event_id, [(seat, 1)])

        row = models.Seat.objects.get(pk=seat.id)
        assert row.status == models.Seat.STATUS_HELD
        assert row.hold_session_id == first.session_id.value

    def test_second_buyer_cannot_oversell(self, ledger, event_id, make_ticket_type):
        """Capacity 10: 7 then 5 leaves the second request sold out."""
        ticket_type = make_ticket_type(capacity=10)
        unit = UnitRef.ticket_type(ticket_type.id)
        reserve(ledger, event_id, [(unit, 7)])

        with pytest.raises(SoldOutError):
            reserve(ledger, event_id, [(unit, 5)])

        ticket_type.refresh_from_db()
        assert ticket_type.held_count == 7
        assert models.HoldSession.objects.count() == 1

    def test_failure_rolls_back_every_unit(self, ledger, event_id, make_seat, make_ticket_type):
        seat = make_seat("B7")
        ticket_type = make_ticket_type(capacity=1)
        units = [(UnitRef.seat(seat.id), 1), (UnitRef.ticket_type(ticket_type.id), 2)]

        with pytest.raises(SoldOutError):
            reserve(ledger, event_id, units)

        seat.refresh_from_db()
        ticket_type.refresh_from_db()
        assert seat.status == models.Seat.STATUS_AVAILABLE
        assert seat.hold_session_id is None
        assert ticket_type.held_count == 0
        assert not models.HoldSession.objects.exists()

    def test_empty_selection_is_rejected(self, ledger, event_id):
        with pytest.raises(InvalidQuantityError):
            reserve(ledger, event_id, [])

    def test_seat_quantity_must_be_one(self, ledger, event_id, make_seat):
        with pytest.raises(InvalidQuantityError):
            reserve(ledger, event_id, [(UnitRef.seat(make_seat().id), 2)])

    def test_zero_quantity_is_rejected(self, ledger, event_id, ga_unit):
        with pytest.raises(InvalidQuantityError):
            reserve(ledger, event_id, [(ga_unit, 0)])

    def test_unit_from_another_event_is_not_found(self, ledger, event_id):
        other = models.Event.objects.create(name="Other", venue="Annex", starts_at=timezone.now())
        foreign = models.TicketType.objects.create(event=other, name="GA", price_minor=1000, capacity=5)

        with pytest.raises(UnitNotFoundError):
            reserve(ledger, event_id, [(UnitRef.ticket_type(foreign.id), 1)])

    def test_per_person_limit(self, ledger, event_id, make_ticket_type):
        ticket_type = make_ticket_type(max_per_person=4)
        with pytest.raises(QuantityLimitExceededError):
            reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 5)])

    def test_early_bird_price_is_locked_at_reserve(self, ledger, event_id, make_ticket_type):
        now = timezone.now()
        ticket_type = make_ticket_type(early_bird_price_minor=3500, early_bird_until=now + timedelta(hours=1))
        receipt = reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 2)], now=now)

        assert receipt.lines[0].unit_price == Money(3500)
        assert ledger.get_hold(receipt.session_id).total == Money(7000)


@pytest.mark.django_db
class TestConditionalClaims:
    """The claim is a single guarded UPDATE; a loser sees zero rows changed."""

    def test_held_seat_cannot_be_claimed_again(self, ledger, event_id, make_seat):
        seat = UnitRef.seat(make_seat("A1").id)
        first = reserve(ledger, event_id, [(seat, 1)])

        assert DjangoInventoryStore().hold_seat(seat, event_id, HoldSessionId(uuid4())) is False

        assert models.Seat.objects.get(pk=seat.id).hold_session_id == first.session_id.value

    def test_ticket_type_claim_stops_at_capacity(self, event_id, make_ticket_type):
        ticket_type = make_ticket_type(capacity=3)
        unit = UnitRef.ticket_type(ticket_type.id)
        store = DjangoInventoryStore()

        assert store.hold_ticket_type(unit, event_id, 3) is True
        assert store.hold_ticket_type(unit, event_id, 1) is False

        ticket_type.refresh_from_db()
        assert ticket_type.held_count == 3


@pytest.mark.django_db
class TestCommitAndRelease:
    """Commit, release and expiry each happen at most once."""

    def test_commit_moves_held_to_sold(self, ledger, event_id, make_ticket_type, make_seat):
        ticket_type = make_ticket_type()
        seat = make_seat()
        receipt = reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 2), (UnitRef.seat(seat.id), 1)])

        ledger.commit(receipt.session_id, ORDER_REF)

        ticket_type.refresh_from_db()
        seat.refresh_from_db()
        assert (ticket_type.held_count, ticket_type.sold_count) == (0, 2)
        assert seat.status == models.Seat.STATUS_SOLD
        assert ledger.get_hold(receipt.session_id).state is HoldState.FINALIZED

    def test_commit_twice_is_a_no_op(self, ledger, event_id, make_ticket_type):
        ticket_type = make_ticket_type()
        receipt = reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 2)])

        ledger.commit(receipt.session_id, ORDER_REF)
        ledger.commit(receipt.session_id, ORDER_REF)

        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 2
        assert ledger.get_hold(receipt.session_id).finalized_by == ORDER_REF

    def test_commit_for_another_order_is_refused(self, ledger, event_id, make_ticket_type):
        """A finalized hold belongs to the order that bought it."""
        ticket_type = make_ticket_type()
        receipt = reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 2)])
        ledger.commit(receipt.session_id, ORDER_REF)

        with pytest.raises(HoldFinalizedError):
            ledger.commit(receipt.session_id, OrderRef("order-2"))

        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 2

    def test_commit_after_release_fails(self, ledger, event_id, ga_unit):
        receipt = reserve(ledger, event_id, [(ga_unit, 1)])
        ledger.release(receipt.session_id)

        with pytest.raises(HoldExpiredError):
            ledger.commit(receipt.session_id, ORDER_REF)

    def test_commit_unknown_session(self, ledger):
        with pytest.raises(SessionNotFoundError):
            ledger.commit(HoldSessionId(uuid4()), ORDER_REF)

    def test_release_is_idempotent(self, ledger, event_id, make_ticket_type):
        ticket_type = make_ticket_type()
        receipt = reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 4)])

        assert ledger.release(receipt.session_id) is True
        assert ledger.release(receipt.session_id) is False

        ticket_type.refresh_from_db()
        assert ticket_type.held_count == 0

    def test_release_after_commit_keeps_units_sold(self, ledger, event_id, make_seat):
        seat = make_seat()
        receipt = reserve(ledger, event_id, [(UnitRef.seat(seat.id), 1)])
        ledger.commit(receipt.session_id, ORDER_REF)

        assert ledger.release(receipt.session_id) is False
        seat.refresh_from_db()
        assert seat.status == models.Seat.STATUS_SOLD

    def test_expire_waits_for_expiry(self, ledger, event_id, ga_unit):
        now = timezone.now()
        receipt = reserve(ledger, event_id, [(ga_unit, 1)], now=now)

        assert ledger.expire(receipt.session_id, now) is False
        assert ledger.expire(receipt.session_id, now + timedelta(minutes=15)) is True
        assert ledger.get_hold(receipt.session_id).state is HoldState.EXPIRED

    def test_released_seat_can_be_held_again(self, ledger, event_id, make_seat):
        seat = UnitRef.seat(make_seat().id)
        first = reserve(ledger, event_id, [(seat, 1)])
        ledger.release(first.session_id)

        second = reserve(ledger, event_id, [(seat, 1)])
        assert models.Seat.objects.get(pk=seat.id).hold_session_id == second.session_id.value


@pytest.mark.django_db
class TestSweep:
    def test_sweep_releases_only_expired_holds(self, ledger, event_id, make_ticket_type):
        now = timezone.now()
        ticket_type = make_ticket_type()
        unit = UnitRef.ticket_type(ticket_type.id)
        stale = reserve(ledger, event_id, [(unit, 2)], now=now - timedelta(minutes=20))
        fresh = reserve(ledger, event_id, [(unit, 3)], now=now)

        assert ledger.sweep_expired(now) == 1
        assert ledger.sweep_expired(now) == 0

        ticket_type.refresh_from_db()
        assert ticket_type.held_count == 3
        assert ledger.get_hold(stale.session_id).state is HoldState.EXPIRED
        assert ledger.get_hold(fresh.session_id).state is HoldState.ACTIVE

    def test_extend_refuses_expired_hold(self, ledger, event_id, ga_unit):
        now = timezone.now()
        receipt = reserve(ledger, event_id, [(ga_unit, 1)], now=now - timedelta(minutes=20))

        assert ledger.extend(receipt.session_id, now + timedelta(minutes=15), now) is False


@pytest.mark.django_db
class TestAvailability:
    """Remaining capacity and seat statuses as buyers would see them."""

    def test_remaining_counts_active_holds(self, ledger, event_id, make_ticket_type):
        ticket_type = make_ticket_type(capacity=10, max_per_person=6)
        reserve(ledger, event_id, [(UnitRef.ticket_type(ticket_type.id), 4)])

        availability = ledger.availability(event_id, timezone.now())

        [line] = availability.ticket_types
        assert line.unit_ref == UnitRef.ticket_type(ticket_type.id)
        assert (line.capacity, line.remaining) == (10, 6)
        assert line.price == Money(5000)
        assert line.max_per_person == 6

    def test_lapsed_hold_is_released_on_read(self, ledger, event_id, make_ticket_type, make_seat):
        now = timezone.now()
        ticket_type = make_ticket_type(capacity=10)
        seat = make_seat("C3")
        stale = reserve(
            ledger,
            event_id,
            [(UnitRef.ticket_type(ticket_type.id), 3), (UnitRef.seat(seat.id), 1)],
            now=now - timedelta(minutes=20),
        )

        availability = ledger.availability(event_id, now)

        assert availability.ticket_types[0].remaining == 10
        assert availability.seats[0].status is SeatStatus.AVAILABLE
        assert ledger.get_hold(stale.session_id).state is HoldState.EXPIRED

    def test_seat_statuses_and_summary(self, ledger, event_id, make_seat):
        sold = make_seat("A1")
        held = make_seat("A2")
        make_seat("A3")
        make_seat("T1", category="Table", price_minor=20000, table_id="T-1")
        receipt = reserve(ledger, event_id, [(UnitRef.seat(sold.id), 1)])
        ledger.commit(receipt.session_id, ORDER_REF)
        reserve(ledger, event_id, [(UnitRef.seat(held.id), 1)])

        availability = ledger.availability(event_id, timezone.now())

        assert [(seat.label, seat.status) for seat in availability.seats] == [
            ("A1", SeatStatus.SOLD),
            ("A2", SeatStatus.HELD),
            ("A3", SeatStatus.AVAILABLE),
            ("T1", SeatStatus.AVAILABLE),
        ]
        assert availability.seat_summary == (
            SeatCategorySummary(category="Orchestra", total=3, available=1, held=1, sold=1),
            SeatCategorySummary(category="Table", total=1, available=1, held=0, sold=0),
        )

    def test_other_events_are_left_alone(self, ledger, event_id, make_ticket_type):
        other = models.Event.objects.create(name="Other", venue="Annex", starts_at=timezone.now())
        foreign = models.TicketType.objects.create(event=other, name="GA", price_minor=1000, capacity=5)
        make_ticket_type()
        now = timezone.now()
        stale = reserve(
            ledger,
            EventId(other.id),
            [(UnitRef.ticket_type(foreign.id), 2)],
            now=now - timedelta(minutes=20),
        )

        availability = ledger.availability(event_id, now)

        assert [line.name for line in availability.ticket_types] == ["General Admission"]
        assert ledger.get_hold(stale.session_id).state is HoldState.ACTIVE

    def test_unknown_event(self, ledger):
        with pytest.raises(EventNotFoundError):
            ledger.availability(EventId(uuid4()), timezone.now())
