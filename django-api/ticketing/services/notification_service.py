"""Order confirmation emails."""

import logging
from collections.abc import Sequence
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from ticketing.domain import Order, Ticket
from ticketing.domain.errors import NotificationFailedError
from ticketing.stores.interfaces import CatalogStore

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Sends the buyer their ticket codes. Best effort; never blocks a sale."""

    def __init__(self, catalog: CatalogStore, from_email: str | None = None) -> None:
        self._catalog = catalog
        self._from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def notify(self, order: Order, tickets: Sequence[Ticket]) -> None:
        """Email the confirmation for an issued order.

        Raises:
            NotificationFailedError: If the mail backend rejects the message.
        """
        event = self._catalog.get_event(order.event_id)
        event_name = event.name if event else "your event"
        ctx = {
            "customer_name": order.customer_name,
            "event_name": event_name,
            "venue": event.venue if event else "",
            "starts_at": event.starts_at if event else None,
            "order_ref": order.order_ref.value,
            "total": str(order.total),
            "currency": order.total.currency,
            "tickets": tickets,
            "support_email": getattr(settings, "SUPPORT_EMAIL", self._from_email),
        }
        text_body = render_to_string("ticketing/emails/order_confirmation.txt", ctx)
        html_body = render_to_string("ticketing/emails/order_confirmation.html", ctx)

        try:
            send_mail(
                subject=f"Your tickets for {event_name} are ready!",
                message=text_body,
                from_email=self._from_email,
                recipient_list=[order.customer_email],
                html_message=html_body,
                fail_silently=False,
            )
        except (SMTPException, OSError) as exc:
            logger.error("Failed to send confirmation for order %s: %s", order.order_ref, exc)
            raise NotificationFailedError() from exc
        logger.info("Confirmation for order %s sent with %d ticket(s)", order.order_ref, len(tickets))
