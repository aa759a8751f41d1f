"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest
from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework.test import APIClient

from ticketing import models
from ticketing.domain import Confirmed, EventId, Gateway, UnitRef
from ticketing.gateways import PaymentGateway
from ticketing.services.checkout_service import CheckoutOrchestrator
from ticketing.services.hold_manager import HoldManager
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.services.issuance_service import IssuanceService
from ticketing.services.payment_service import PaymentGatewayAdapter
from ticketing.stores.django_checkout_store import DjangoCheckoutStore, DjangoPaymentAttemptStore
from ticketing.stores.django_order_store import DjangoOrderStore
from ticketing.stores.django_store import DjangoCatalogStore, DjangoInventoryStore


class FrozenClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGateway(PaymentGateway):
    """Scripted provider. Each call pops the next outcome; exceptions are raised."""

    def __init__(self, gateway: Gateway) -> None:
        self.gateway = gateway
        self.charges = []
        self.resumes = []
        self.charge_outcomes = []
        self.resume_outcomes = []

    def charge(self, request):
        self.charges.append(request)
        return self._next(self.charge_outcomes, len(self.charges))

    def resume(self, attempt, payload):
        self.resumes.append((attempt, dict(payload)))
        return self._next(self.resume_outcomes, len(self.resumes))

    def _next(self, outcomes, count):
        outcome = outcomes.pop(0) if outcomes else Confirmed(external_transaction_id=f"{self.gateway.value}-txn-{count}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def staff_client(db) -> APIClient:
    user = User.objects.create_user(username="boxoffice", password="pass12345", is_staff=True)
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(timezone.now())


@pytest.fixture
def event(db) -> models.Event:
    return models.Event.objects.create(
        name="Spring Gala",
        venue="Main Hall",
        starts_at=timezone.now() + timedelta(days=30),
    )


@pytest.fixture
def event_id(event) -> EventId:
    return EventId(event.id)


@pytest.fixture
def make_ticket_type(event):
    def make(**overrides) -> models.TicketType:
        fields = {"event": event, "name": "General Admission", "price_minor": 5000, "capacity": 10}
        fields.update(overrides)
        return models.TicketType.objects.create(**fields)

    return make


@pytest.fixture
def make_seat(event):
    def make(label: str = "A1", **overrides) -> models.Seat:
        fields = {"event": event, "label": label, "category": "Orchestra", "price_minor": 12000}
        fields.update(overrides)
        return models.Seat.objects.create(**fields)

    return make


@pytest.fixture
def ga_unit(make_ticket_type) -> UnitRef:
    return UnitRef.ticket_type(make_ticket_type().id)


@pytest.fixture
def ledger(db) -> InventoryLedger:
    return InventoryLedger(DjangoCatalogStore(), DjangoInventoryStore())


@pytest.fixture
def holds(ledger, clock) -> HoldManager:
    return HoldManager(ledger, ttl=timedelta(minutes=15), max_lifetime=timedelta(minutes=45), clock=clock)


@pytest.fixture
def gateways() -> dict[Gateway, FakeGateway]:
    return {gateway: FakeGateway(gateway) for gateway in Gateway}


@pytest.fixture
def payments(db, gateways) -> PaymentGatewayAdapter:
    return PaymentGatewayAdapter(DjangoPaymentAttemptStore(), gateways)


@pytest.fixture
def orders(db) -> DjangoOrderStore:
    return DjangoOrderStore()


@pytest.fixture
def issuance(ledger, orders) -> IssuanceService:
    return IssuanceService(ledger, orders)


@pytest.fixture
def orchestrator(holds, payments, issuance, orders, clock) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        checkouts=DjangoCheckoutStore(),
        holds=holds,
        payments=payments,
        issuance=issuance,
        catalog=DjangoCatalogStore(),
        orders=orders,
        clock=clock,
    )
