"""Background task that times out unanswered call offers."""
from __future__ import annotations

import asyncio
import logging

from relay_service.infrastructure.ws.hub import RelayHub

logger = logging.getLogger(__name__)


class OfferTimeoutReaper:
    def __init__(self, hub: RelayHub, interval: float) -> None:
        self._hub = hub
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="call-offer-reaper")
        logger.info("Offer reaper started (interval=%.1fs)", self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Offer reaper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._hub.expire_offers()
            except Exception:
                logger.exception("Offer reaper loop error")
