"""
Background cleanup worker for expired messages and old receipts.
"""
import asyncio
import logging
from typing import Optional

import config
from relay_service import RelayService

logger = logging.getLogger(__name__)


class CleanupWorker:
    """
    Periodic sweep across all rooms so that rooms nobody reads still get
    reclaimed. Owns its task and stop event; stop() is safe to call twice.
    """

    def __init__(self, relay: RelayService, interval: Optional[float] = None):
        self.relay = relay
        self.interval = interval if interval is not None else config.SWEEP_INTERVAL_SECONDS
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> dict:
        return self.relay.run_maintenance()

    async def cleanup_loop(self):
        """Run cleanup every `interval` seconds until stopped."""
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Cleanup error")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    def start(self):
        """Start background cleanup task."""
        if not self.running:
            self._stop.clear()
            self._task = asyncio.create_task(self.cleanup_loop())
            logger.info(f"Cleanup worker started (every {self.interval}s)")

    async def stop(self):
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        logger.info("Cleanup worker stopped")
