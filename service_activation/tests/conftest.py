"""
Shared fixtures for Activation service tests.
"""

import pytest
from datetime import datetime, timedelta, timezone

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_activation.app.sessions.registry import SessionRegistry
from service_activation.app.tokens.codec import encode_token

TEST_SECRET = "test-activation-secret"


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock frozen at a known instant."""
    return FakeClock(datetime(2026, 3, 1, 9, 30, 0, tzinfo=timezone.utc))


@pytest.fixture
def registry(clock):
    """Session registry driven by the fake clock."""
    return SessionRegistry(TEST_SECRET, clock=clock)


@pytest.fixture
def make_token(clock):
    """Factory for tokens relative to the fake clock."""
    def _make(identifier="u1", plan="basic", nonce="n1", secret=TEST_SECRET, **delta):
        if not delta:
            delta = {"days": 30}
        return encode_token(identifier, clock.now + timedelta(**delta), plan, nonce, secret)
    return _make
