# Relay_app/core/sweeper.py
import asyncio
import logging
from typing import Optional

from Relay_app.core.hub import RelayHub

log = logging.getLogger(__name__)

SWEEP_INTERVAL_SEC = 30.0


class Sweeper:
    """Periodically asks the hub to drop dead registry entries.

    Safety net only: the close/error path is the primary reclamation.
    """

    def __init__(self, hub: RelayHub, interval_sec: float = SWEEP_INTERVAL_SEC):
        self.hub = hub
        self.interval_sec = interval_sec
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        log.info("[SWEEP] started, every %.1fs", self.interval_sec)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("[SWEEP] stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            try:
                await self.hub.sweep()
            except Exception:
                log.exception("[SWEEP] sweep failed")
