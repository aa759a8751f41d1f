"""Django signals for post-sale side effects.

``order_issued`` is sent with ``send_robust`` once a checkout completes, so
a failing receiver never changes checkout or order state.
"""

from django.dispatch import Signal, receiver

from ticketing.services.notification_service import NotificationDispatcher
from ticketing.stores.django_store import DjangoCatalogStore

# Sent with order=Order, tickets=tuple[Ticket, ...]
order_issued = Signal()


@receiver(order_issued)
def send_order_confirmation(sender, order, tickets, **kwargs):
    """Email the buyer their ticket codes."""
    NotificationDispatcher(DjangoCatalogStore()).notify(order, tickets)
