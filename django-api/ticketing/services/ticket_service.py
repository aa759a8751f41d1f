"""Door check-in for issued tickets."""

import logging
from collections.abc import Callable
from datetime import datetime

from django.utils import timezone

from ticketing.domain import Ticket, TicketStatus
from ticketing.domain.errors import TicketAlreadyUsedError, TicketNotFoundError, TicketNotValidError
from ticketing.stores.interfaces import OrderStore

logger = logging.getLogger(__name__)


class TicketValidationService:
    def __init__(self, orders: OrderStore, clock: Callable[[], datetime] = timezone.now) -> None:
        self._orders = orders
        self._clock = clock

    def validate(self, code: str) -> Ticket:
        """Resolve a scanned code to its ticket.

        Raises:
            TicketNotFoundError: If no ticket carries the code.
        """
        ticket = self._orders.get_ticket_by_code(code.strip())
        if ticket is None:
            raise TicketNotFoundError()
        return ticket

    def check_in(self, code: str) -> Ticket:
        """Admit a ticket once.

        Raises:
            TicketNotFoundError: If no ticket carries the code.
            TicketAlreadyUsedError: If the ticket was already checked in.
            TicketNotValidError: If the ticket was cancelled.
        """
        ticket = self.validate(code)
        if ticket.status is TicketStatus.USED:
            raise TicketAlreadyUsedError()
        if ticket.status is TicketStatus.CANCELLED:
            raise TicketNotValidError(ticket.status.value)

        if not self._orders.check_in_ticket(ticket.qr_code, self._clock()):
            raise TicketAlreadyUsedError()
        logger.info("Checked in ticket %s for order %s", ticket.id, ticket.order_id)
        return self.validate(ticket.qr_code)
