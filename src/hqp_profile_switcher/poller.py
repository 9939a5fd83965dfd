"""
Status poller for the profile switcher.

Periodically refreshes the synchronizer so the control endpoints follow
profile changes made on the appliance itself.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger
from .enums import LogLevel
from .models import StatusReport
from .synchronizer import ControlSurfaceSynchronizer


class StatusPoller:
    """
    Fixed-interval status polling loop.

    Each tick runs a status check; failures are already recorded in the
    synchronizer's status, so the loop keeps running.
    """

    def __init__(
        self,
        synchronizer: ControlSurfaceSynchronizer,
        interval_seconds: float = 15.0,
        on_status: Optional[Callable[[StatusReport], Awaitable[None]]] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval_seconds}")
        self._synchronizer = synchronizer
        self._interval_seconds = interval_seconds
        self._on_status = on_status
        self._logger = logger
        self._running = False
        self._ticks = 0

    @property
    def ticks(self) -> int:
        """Number of completed status checks."""
        return self._ticks

    async def tick(self) -> StatusReport:
        """Run one status check and hand the result to the callback."""
        status = await self._synchronizer.check_status()
        self._ticks += 1
        if self._logger:
            self._logger.log(LogLevel.DEBUG, "StatusPoller", "Status check", status.to_dict())
        if self._on_status is not None:
            await self._on_status(status)
        return status

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        max_ticks: Optional[int] = None,
    ) -> None:
        """
        Run the polling loop.

        Args:
            stop_event: Optional event to signal the poller to stop
            max_ticks: Optional number of checks after which the loop ends
        """
        self._running = True

        while self._running:
            await self.tick()

            if stop_event is not None and stop_event.is_set():
                break
            if max_ticks is not None and self._ticks >= max_ticks:
                break

            if stop_event is None:
                await asyncio.sleep(self._interval_seconds)
            else:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self._interval_seconds)
                    break
                except asyncio.TimeoutError:
                    pass

        self._running = False

    def stop(self) -> None:
        """Signal the poller to stop after the current tick."""
        self._running = False

    def is_running(self) -> bool:
        return self._running
