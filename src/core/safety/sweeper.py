"""
Background cleanup of caches and limiters.
"""

import asyncio
import logging
from typing import Callable

from src.config import settings

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Runs every registered sweep function once per interval."""

    def __init__(self, sweeps: list[Callable[[], object]], interval: float | None = None):
        self.sweeps = list(sweeps)
        self.interval = interval or settings.sweep_interval
        self._task: asyncio.Task | None = None

    def run_once(self) -> None:
        for sweep in self.sweeps:
            try:
                sweep()
            except Exception as e:
                logger.error(f"Sweep {getattr(sweep, '__qualname__', sweep)} failed: {e}", exc_info=True)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.run_once()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop())
            logger.info(f"Sweeper started (every {self.interval:.0f}s, {len(self.sweeps)} targets)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
