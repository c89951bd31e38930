"""Periodic auto-exit sweep run alongside the API process."""

import asyncio
import logging
from typing import Optional

from unilibrary.core import database
from unilibrary.core.config import settings
from unilibrary.services.presence import PresenceService

logger = logging.getLogger(__name__)


def run_auto_exit_sweep() -> int:
    db = database.SessionLocal()
    try:
        return PresenceService(db).auto_exit_if_library_closed()
    finally:
        db.close()


class AutoExitScheduler:
    """Runs the sweep every ``interval`` seconds until stopped.

    Runs are separated by a fixed delay; a slow sweep only pushes the next one back.
    """

    def __init__(self, interval: Optional[int] = None) -> None:
        self.interval = settings.auto_exit_interval_seconds if interval is None else interval
        self._task: Optional[asyncio.Task] = None

    async def _loop(self) -> None:
        while True:
            try:
                closed = await asyncio.to_thread(run_auto_exit_sweep)
                if closed:
                    logger.info(f"[AutoExit] Sweep closed {closed} open entr{'y' if closed == 1 else 'ies'}")
            except Exception:
                logger.exception("[AutoExit] Sweep failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())
            logger.info(f"[AutoExit] Scheduler started, interval={self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("[AutoExit] Scheduler stopped")
