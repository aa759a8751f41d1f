from django.urls import path

from ticketing.handlers import (
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

urlpatterns = [
    path("checkouts", CheckoutListView.as_view(), name="checkout-list"),
    path("checkouts/<str:order_ref>", CheckoutDetailView.as_view(), name="checkout-detail"),
    path("checkouts/<str:order_ref>/payment", CheckoutPaymentView.as_view(), name="checkout-payment"),
    path("checkouts/<str:order_ref>/resume", CheckoutResumeView.as_view(), name="checkout-resume"),
    path("checkouts/<str:order_ref>/cancel", CheckoutCancelView.as_view(), name="checkout-cancel"),
    path("checkouts/<str:order_ref>/issuance", CheckoutIssuanceView.as_view(), name="checkout-issuance"),
    path("events/<uuid:event_id>/availability", EventAvailabilityView.as_view(), name="event-availability"),
    path("holds/<str:token>", HoldDetailView.as_view(), name="hold-detail"),
    path("holds/<str:token>/extend", HoldExtendView.as_view(), name="hold-extend"),
    path("tickets/check-in", TicketCheckInView.as_view(), name="ticket-check-in"),
]
