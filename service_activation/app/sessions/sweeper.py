"""
Periodic sweep of expired activation sessions.
"""

import asyncio
from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .registry import SessionRegistry


class SessionSweeper:
    """Runs ``SessionRegistry.sweep_expired`` on a fixed cadence."""

    def __init__(
        self,
        registry: SessionRegistry,
        interval_seconds: float = 3600.0,
        metrics: Optional[MetricsCollector] = None
    ):
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.metrics = metrics
        self.logger = get_logger("activation.sessions.sweeper")

        self._task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self):
        """Start the sweep loop."""
        if self.running:
            return
        self.running = True
        self._task = asyncio.create_task(self._sweep_loop())
        self.logger.info("Session sweeper started", interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop the sweep loop."""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.logger.info("Session sweeper stopped")

    def sweep_once(self) -> int:
        """Run a single sweep and publish the result."""
        removed = self.registry.sweep_expired()
        if self.metrics:
            self.metrics.increment_counter("sessions_swept_total", removed)
            self.metrics.set_gauge("active_sessions", len(self.registry))
        return removed

    async def _sweep_loop(self):
        """Sweep loop."""
        while self.running:
            try:
                await asyncio.sleep(self.interval_seconds)
                self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error("Session sweep failed", error=str(e), exc_info=True)
