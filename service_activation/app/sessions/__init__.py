"""
Activation session tracking.

The registry is constructed once per process and handed to every consumer;
nothing here is a module-level singleton.
"""

from .registry import Accepted, ActivationOutcome, Rejected, Session, SessionRegistry
from .sweeper import SessionSweeper

__all__ = [
    "Accepted",
    "ActivationOutcome",
    "Rejected",
    "Session",
    "SessionRegistry",
    "SessionSweeper",
]
