"""
In-memory activation session registry.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from shared.logging import get_logger
from ..tokens.codec import Invalid, InvalidReason, format_expiry, utc_now, verify_token


@dataclass(frozen=True)
class Session:
    """Active session for an identifier. Replaced wholesale, never mutated."""
    identifier: str
    plan: str
    expiry: datetime
    activated_at: datetime


@dataclass(frozen=True)
class Accepted:
    """Activation succeeded and a session was stored."""
    identifier: str
    plan: str
    expiry: datetime

    accepted = True

    def to_response(self) -> Dict[str, Any]:
        return {
            "accepted": True,
            "identifier": self.identifier,
            "plan": self.plan,
            "expiry": format_expiry(self.expiry),
        }


@dataclass(frozen=True)
class Rejected:
    """Activation failed; the token's verification reason is carried unchanged."""
    reason: InvalidReason

    accepted = False

    def to_response(self) -> Dict[str, Any]:
        return {"accepted": False, "reason": self.reason.value}


ActivationOutcome = Union[Accepted, Rejected]


class SessionRegistry:
    """Tracks which identifiers hold a live activation session.

    Every operation runs under a single lock, so concurrent activations and
    liveness checks are serialized. Expired sessions are removed lazily by
    ``is_active`` and in bulk by ``sweep_expired``.
    """

    def __init__(self, secret: Union[str, bytes], clock: Callable[[], datetime] = utc_now):
        self._secret = secret
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("activation.sessions.registry")

    def activate(self, token: str) -> ActivationOutcome:
        """Verify ``token`` and upsert the session for its identifier."""
        now = self._clock()
        result = verify_token(token, self._secret, now=now)

        if isinstance(result, Invalid):
            self.logger.info("Activation rejected", reason=result.reason.value)
            return Rejected(result.reason)

        session = Session(
            identifier=result.identifier,
            plan=result.plan,
            expiry=result.expiry,
            activated_at=now
        )
        with self._lock:
            replaced = session.identifier in self._sessions
            self._sessions[session.identifier] = session

        self.logger.info(
            "Activation accepted",
            identifier=session.identifier,
            plan=session.plan,
            expiry=format_expiry(session.expiry),
            replaced=replaced
        )
        return Accepted(identifier=session.identifier, plan=session.plan, expiry=session.expiry)

    def is_active(self, identifier: str) -> bool:
        """Return True if ``identifier`` has an unexpired session.

        An expired session is removed as a side effect.
        """
        with self._lock:
            session = self._sessions.get(identifier)
            if session is None:
                return False
            if session.expiry <= self._clock():
                del self._sessions[identifier]
                expired = True
            else:
                expired = False

        if expired:
            self.logger.info("Session expired", identifier=identifier)
            return False
        return True

    def get_session(self, identifier: str) -> Optional[Session]:
        """Look up a session without applying expiry. Diagnostics only."""
        with self._lock:
            return self._sessions.get(identifier)

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Remove every session whose expiry is at or before ``now``."""
        cutoff = now or self._clock()
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)
        with self._lock:
            expired = [
                identifier for identifier, session in self._sessions.items()
                if session.expiry <= cutoff
            ]
            for identifier in expired:
                del self._sessions[identifier]
            remaining = len(self._sessions)

        if expired:
            self.logger.info("Expired sessions swept", removed=len(expired), remaining=remaining)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
