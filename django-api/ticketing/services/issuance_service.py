"""Turns a confirmed payment into an order and its tickets.

Every step is safe to repeat: the hold commit is a no-op once finalized,
the order is looked up by order reference, and only missing tickets are
minted.
"""

import logging
from uuid import uuid4

from django.utils.crypto import salted_hmac

from ticketing.domain import (
    ConfirmedPayment,
    HoldSession,
    IssuanceResult,
    Order,
    OrderId,
    OrderStatus,
    Ticket,
    TicketStatus,
    UnitRef,
)
from ticketing.domain.errors import (
    InventoryError,
    InventoryInconsistentError,
    TicketMintingFailedError,
)
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.stores.interfaces import OrderStore, StoreError

logger = logging.getLogger(__name__)

TICKET_CODE_SALT = "ticketing.ticket-code"


def ticket_code(order_id: OrderId, unit_ref: UnitRef, sequence: int) -> str:
    """Unguessable, deterministic code printed in the ticket's QR."""
    digest = salted_hmac(TICKET_CODE_SALT, f"{order_id}:{unit_ref}:{sequence}").hexdigest()
    return f"TKT-{digest[:24].upper()}"


class IssuanceService:
    def __init__(self, ledger: InventoryLedger, orders: OrderStore) -> None:
        self._ledger = ledger
        self._orders = orders

    def issue(self, payment: ConfirmedPayment, hold: HoldSession) -> IssuanceResult:
        """Finalize a paid hold into an order with one ticket per unit.

        Raises:
            InventoryInconsistentError: If the hold could not be committed.
                The payment must be refunded.
            TicketMintingFailedError: If the order or a ticket could not be
                stored. Calling again resumes where this call stopped.
        """
        try:
            self._ledger.commit(hold.id, payment.order_ref)
        except (InventoryError, StoreError) as exc:
            logger.critical(
                "Paid order %s (%s) could not finalize hold %s: %s",
                payment.order_ref,
                payment.external_transaction_id,
                hold.id,
                exc,
            )
            raise InventoryInconsistentError(
                f"Payment {payment.external_transaction_id} captured but inventory could not be finalized"
            ) from exc

        try:
            order, created = self._orders.get_or_create_order(payment, hold.event_id)
        except StoreError as exc:
            raise TicketMintingFailedError("Order could not be recorded") from exc
        if created:
            logger.info("Created order %s for %s", order.id, payment.order_ref)
        else:
            logger.info("Resuming issuance for order %s", order.id)

        tickets = self._mint_missing(order, hold, payment.customer_name)

        if order.status is not OrderStatus.COMPLETED:
            try:
                order = self._orders.set_order_status(order.id, OrderStatus.COMPLETED)
            except StoreError as exc:
                raise TicketMintingFailedError("Order could not be completed") from exc

        logger.info("Issued %d ticket(s) for order %s", len(tickets), order.id)
        return IssuanceResult(order=order, tickets=tuple(tickets))

    def _mint_missing(self, order: Order, hold: HoldSession, holder_name: str | None) -> list[Ticket]:
        try:
            existing = {(ticket.unit_ref, ticket.sequence): ticket for ticket in self._orders.list_tickets(order.id)}
        except StoreError as exc:
            raise TicketMintingFailedError("Existing tickets could not be read") from exc

        tickets = []
        for line in hold.lines:
            for sequence in range(1, line.quantity + 1):
                ticket = existing.get((line.unit_ref, sequence))
                if ticket is None:
                    ticket = self._mint(order, line.unit_ref, sequence, holder_name)
                tickets.append(ticket)
        return tickets

    def _mint(self, order: Order, unit_ref: UnitRef, sequence: int, holder_name: str | None) -> Ticket:
        draft = Ticket(
            id=uuid4(),
            order_id=order.id,
            unit_ref=unit_ref,
            sequence=sequence,
            holder_name=holder_name,
            qr_code=ticket_code(order.id, unit_ref, sequence),
            status=TicketStatus.ACTIVE,
        )
        try:
            return self._orders.create_ticket(draft)
        except StoreError as exc:
            logger.error("Could not mint ticket %d of %s for order %s", sequence, unit_ref, order.id)
            raise TicketMintingFailedError(f"Ticket {sequence} of {unit_ref} could not be issued") from exc
