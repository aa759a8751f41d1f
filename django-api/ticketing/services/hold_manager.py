"""Hold sessions on behalf of buyers.

A hold is identified to the buyer by an opaque signed token, so a hold id
cannot be guessed or tampered with. Expiry is enforced lazily on every read
and eagerly by the sweep command.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from django.core import signing
from django.utils import timezone

from ticketing.domain import EventId, HoldSession, HoldSessionId, HoldState, UnitRef
from ticketing.domain.errors import HoldExpiredError, SessionNotFoundError
from ticketing.services.inventory_ledger import InventoryLedger, merge_units

logger = logging.getLogger(__name__)

TOKEN_SALT = "ticketing.hold-session"


@dataclass(frozen=True)
class HeldSession:
    """An active hold plus the token the buyer presents for it."""

    hold: HoldSession
    token: str


class HoldManager:
    """Creates, extends and releases holds with a bounded lifetime."""

    def __init__(
        self,
        ledger: InventoryLedger,
        ttl: timedelta,
        max_lifetime: timedelta,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._ledger = ledger
        self._ttl = ttl
        self._max_lifetime = max_lifetime
        self._clock = clock

    def issue_token(self, session_id: HoldSessionId) -> str:
        return signing.dumps(str(session_id), salt=TOKEN_SALT)

    def session_id_from_token(self, token: str) -> HoldSessionId:
        """Decode a hold token.

        Raises:
            SessionNotFoundError: If the token is forged, truncated or malformed.
        """
        try:
            return HoldSessionId.from_string(signing.loads(token, salt=TOKEN_SALT))
        except (signing.BadSignature, TypeError, ValueError) as exc:
            raise SessionNotFoundError() from exc

    def reserve(
        self,
        event_id: EventId,
        units: Iterable[tuple[UnitRef, int]],
        token: str | None = None,
    ) -> HeldSession:
        """Reserve units, reusing the buyer's hold when nothing changed.

        Presenting a token for an active hold with the same units returns that
        hold untouched. Any other selection releases the old hold first.
        """
        requested = merge_units(units)
        if token:
            session_id = self.session_id_from_token(token)
            existing = self.get_hold(session_id)
            if existing.is_active:
                if existing.event_id == event_id and existing.unit_set == frozenset(requested.items()):
                    return HeldSession(hold=existing, token=token)
                self._ledger.release(session_id)
                logger.info("Released hold %s to replace its selection", session_id)

        now = self._clock()
        session_id = HoldSessionId(uuid4())
        self._ledger.reserve(event_id, requested.items(), session_id, now, now + self._ttl)
        return HeldSession(hold=self._ledger.get_hold(session_id), token=self.issue_token(session_id))

    def get_hold(self, session_id: HoldSessionId) -> HoldSession:
        """Return the hold, expiring it first if its time has passed."""
        now = self._clock()
        hold = self._ledger.get_hold(session_id)
        if hold.is_expired(now):
            self._ledger.expire(session_id, now)
            hold = self._ledger.get_hold(session_id)
        return hold

    def resolve(self, token: str) -> HoldSession:
        return self.get_hold(self.session_id_from_token(token))

    def extend(self, session_id: HoldSessionId) -> HoldSession:
        """Push expiry out by one TTL, never past the maximum lifetime.

        Raises:
            HoldExpiredError: If the hold is no longer active.
        """
        now = self._clock()
        hold = self.get_hold(session_id)
        if not hold.is_active:
            raise HoldExpiredError()

        expires_at = min(now + self._ttl, hold.created_at + self._max_lifetime)
        if expires_at <= hold.expires_at:
            return hold
        if not self._ledger.extend(session_id, expires_at, now):
            raise HoldExpiredError()
        logger.info("Extended hold %s until %s", session_id, expires_at.isoformat())
        return self._ledger.get_hold(session_id)

    def cancel(self, session_id: HoldSessionId) -> bool:
        return self._ledger.release(session_id)

    def expire(self, session_id: HoldSessionId) -> bool:
        """Expire a hold regardless of its remaining time."""
        return self._ledger.release(session_id, to_state=HoldState.EXPIRED)

    def peek(self, session_id: HoldSessionId) -> HoldSession:
        """Return the hold as stored, without lazy expiry."""
        return self._ledger.get_hold(session_id)
