from ticketing.handlers.views import (
    CheckoutCancelView,
    CheckoutDetailView,
    CheckoutIssuanceView,
    CheckoutListView,
    CheckoutPaymentView,
    CheckoutResumeView,
    EventAvailabilityView,
    HoldDetailView,
    HoldExtendView,
    TicketCheckInView,
)

__all__ = [
    "CheckoutCancelView",
    "CheckoutDetailView",
    "CheckoutIssuanceView",
    "CheckoutListView",
    "CheckoutPaymentView",
    "CheckoutResumeView",
    "EventAvailabilityView",
    "HoldDetailView",
    "HoldExtendView",
    "TicketCheckInView",
]
