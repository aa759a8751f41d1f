"""Tests for IssuanceService: commit, order creation and resumable minting.

Run with: pytest tests/test_issuance.py -v
"""

from uuid import uuid4

import pytest

from ticketing import models
from ticketing.domain import ConfirmedPayment, Gateway, OrderId, OrderRef, OrderStatus, TicketStatus, UnitRef
from ticketing.domain.errors import InventoryInconsistentError, TicketMintingFailedError
from ticketing.services.issuance_service import IssuanceService, ticket_code
from ticketing.stores.django_order_store import DjangoOrderStore
from ticketing.stores.interfaces import StoreError


class FlakyOrderStore(DjangoOrderStore):
    """Fails the n-th ticket insert, like a connection dropped mid-issuance."""

    def __init__(self, fail_on: int) -> None:
        self.fail_on = fail_on
        self.calls = 0

    def create_ticket(self, ticket):
        self.calls += 1
        if self.calls == self.fail_on:
            raise StoreError("connection lost")
        return super().create_ticket(ticket)


def confirmed_payment(hold, order_ref="order-1"):
    return ConfirmedPayment(
        order_ref=OrderRef(order_ref),
        gateway=Gateway.SQUARE,
        amount=hold.total,
        customer_email="buyer@example.com",
        customer_name="Ada Lovelace",
        external_transaction_id="sq-pay-1",
    )


@pytest.fixture
def ga_hold(holds, event_id, make_ticket_type):
    ticket_type = make_ticket_type(capacity=10)
    held = holds.reserve(event_id, [(UnitRef.ticket_type(ticket_type.id), 3)])
    return ticket_type, held.hold


class TestTicketCode:
    def test_code_is_deterministic_and_distinct(self):
        order_id = OrderId(uuid4())
        unit = UnitRef.ticket_type(uuid4())

        assert ticket_code(order_id, unit, 1) == ticket_code(order_id, unit, 1)
        assert ticket_code(order_id, unit, 1) != ticket_code(order_id, unit, 2)
        assert ticket_code(order_id, unit, 1).startswith("TKT-")


@pytest.mark.django_db
class TestIssue:
    def test_issue_commits_and_mints_one_ticket_per_unit(self, issuance, ga_hold):
        ticket_type, hold = ga_hold

        result = issuance.issue(confirmed_payment(hold), hold)

        assert result.order.status is OrderStatus.COMPLETED
        assert result.order.total == hold.total
        assert [ticket.sequence for ticket in result.tickets] == [1, 2, 3]
        assert all(ticket.status is TicketStatus.ACTIVE for ticket in result.tickets)
        assert all(ticket.holder_name == "Ada Lovelace" for ticket in result.tickets)
        ticket_type.refresh_from_db()
        assert (ticket_type.held_count, ticket_type.sold_count) == (0, 3)

    def test_issue_twice_returns_same_tickets(self, issuance, ga_hold):
        ticket_type, hold = ga_hold

        first = issuance.issue(confirmed_payment(hold), hold)
        second = issuance.issue(confirmed_payment(hold), hold)

        assert second.order.id == first.order.id
        assert [t.qr_code for t in second.tickets] == [t.qr_code for t in first.tickets]
        assert models.Ticket.objects.count() == 3
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 3

    def test_partial_minting_resumes_without_duplicates(self, ledger, ga_hold):
        """The second ticket fails; a retry mints only what is missing."""
        ticket_type, hold = ga_hold
        flaky = IssuanceService(ledger, FlakyOrderStore(fail_on=2))

        with pytest.raises(TicketMintingFailedError):
            flaky.issue(confirmed_payment(hold), hold)

        order = models.Order.objects.get(order_ref="order-1")
        assert order.status == models.Order.STATUS_PENDING
        assert order.tickets.count() == 1

        result = IssuanceService(ledger, DjangoOrderStore()).issue(confirmed_payment(hold), hold)

        assert len(result.tickets) == 3
        assert models.Ticket.objects.count() == 3
        assert result.order.status is OrderStatus.COMPLETED
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 3

    def test_seat_tickets(self, issuance, holds, event_id, make_seat):
        seats = [make_seat("A1"), make_seat("A2")]
        held = holds.reserve(event_id, [(UnitRef.seat(seat.id), 1) for seat in seats])

        result = issuance.issue(confirmed_payment(held.hold), held.hold)

        assert {ticket.unit_ref for ticket in result.tickets} == {UnitRef.seat(seat.id) for seat in seats}
        assert set(models.Seat.objects.values_list("status", flat=True)) == {models.Seat.STATUS_SOLD}

    def test_hold_sold_to_another_order_is_inconsistent(self, issuance, ga_hold):
        ticket_type, hold = ga_hold
        issuance.issue(confirmed_payment(hold, "order-1"), hold)

        with pytest.raises(InventoryInconsistentError):
            issuance.issue(confirmed_payment(hold, "order-2"), hold)

        assert models.Ticket.objects.count() == 3
        assert not models.Order.objects.filter(order_ref="order-2").exists()
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 3

    def test_released_hold_is_inconsistent(self, issuance, holds, ga_hold):
        """Payment captured but the hold lapsed first: refund, never oversell."""
        ticket_type, hold = ga_hold
        holds.expire(hold.id)

        with pytest.raises(InventoryInconsistentError):
            issuance.issue(confirmed_payment(hold), hold)

        assert not models.Order.objects.exists()
        ticket_type.refresh_from_db()
        assert (ticket_type.held_count, ticket_type.sold_count) == (0, 0)
