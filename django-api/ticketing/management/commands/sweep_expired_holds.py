from django.core.management.base import BaseCommand
from django.utils import timezone

from ticketing import container


class Command(BaseCommand):
    help = "Time out stale checkouts and release every expired hold"

    def handle(self, *args, **opts):
        now = timezone.now()
        # Checkouts first, so their payment attempts are invalidated before the units go back.
        timed_out = container.checkout_orchestrator().expire_stale(now)
        released = container.inventory_ledger().sweep_expired(now)
        self.stdout.write(
            self.style.SUCCESS(f"Timed out {timed_out} checkout(s), released {released} hold(s)")
        )
