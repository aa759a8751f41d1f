"""Builds services with their Django-backed stores and configured gateways."""

from datetime import timedelta

from django.conf import settings

from ticketing.domain import Gateway
from ticketing.gateways import PaymentGateway, build_gateways
from ticketing.services.checkout_service import CheckoutOrchestrator
from ticketing.services.hold_manager import HoldManager
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.services.issuance_service import IssuanceService
from ticketing.services.payment_service import PaymentGatewayAdapter
from ticketing.services.ticket_service import TicketValidationService
from ticketing.stores.django_checkout_store import DjangoCheckoutStore, DjangoPaymentAttemptStore
from ticketing.stores.django_order_store import DjangoOrderStore
from ticketing.stores.django_store import DjangoCatalogStore, DjangoInventoryStore


def payment_gateways() -> dict[Gateway, PaymentGateway]:
    return build_gateways(settings.PAYMENT_GATEWAYS, timeout=settings.PAYMENT_HTTP_TIMEOUT_SECONDS)


def inventory_ledger() -> InventoryLedger:
    return InventoryLedger(DjangoCatalogStore(), DjangoInventoryStore())


def hold_manager() -> HoldManager:
    return HoldManager(
        inventory_ledger(),
        ttl=timedelta(minutes=settings.HOLD_TTL_MINUTES),
        max_lifetime=timedelta(minutes=settings.HOLD_MAX_LIFETIME_MINUTES),
    )


def checkout_orchestrator() -> CheckoutOrchestrator:
    ledger = inventory_ledger()
    orders = DjangoOrderStore()
    return CheckoutOrchestrator(
        checkouts=DjangoCheckoutStore(),
        holds=hold_manager(),
        payments=PaymentGatewayAdapter(DjangoPaymentAttemptStore(), payment_gateways()),
        issuance=IssuanceService(ledger, orders),
        catalog=DjangoCatalogStore(),
        orders=orders,
        currency=settings.TICKETING_CURRENCY,
    )


def ticket_validation_service() -> TicketValidationService:
    return TicketValidationService(DjangoOrderStore())
