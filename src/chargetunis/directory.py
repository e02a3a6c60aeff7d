"""Station directory with periodic availability polling."""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Callable, Optional

from .exceptions import TransportFailure
from .gateway import NetworkGateway
from .logging_utils import log_error
from .models import Station, StationListSnapshot
from .plugins.base import ChargePlugin, PluginHook, PluginHost

logger = logging.getLogger(__name__)

DirectoryListener = Callable[["StationDirectory"], None]


class StationDirectory(PluginHost):
    """
    Owns the list of known stations and keeps it fresh.

    ``start()`` refreshes immediately and then issues a new refresh every
    ``interval`` seconds without waiting for the previous one to finish.
    Responses may therefore land out of order; whichever completes last
    overwrites the snapshot. A failed refresh keeps the previous snapshot and
    only records the error message. The interval itself is the retry policy.
    """

    def __init__(
        self,
        gateway: NetworkGateway,
        interval: float = 5.0,
        plugins: list[ChargePlugin] | None = None,
    ):
        self.gateway = gateway
        self.interval = interval
        self._snapshot = StationListSnapshot()
        self._error: Optional[str] = None
        self._in_flight = 0
        self._schedule_task: Optional[asyncio.Task] = None
        self._refresh_tasks: set[asyncio.Task] = set()
        self._listeners: list[DirectoryListener] = []
        self._register_plugins(plugins)

    @property
    def snapshot(self) -> StationListSnapshot:
        return self._snapshot

    @property
    def stations(self) -> tuple[Station, ...]:
        return self._snapshot.stations

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def running(self) -> bool:
        return self._schedule_task is not None and not self._schedule_task.done()

    def subscribe(self, listener: DirectoryListener) -> Callable[[], None]:
        """
        Call ``listener`` after every refresh settles.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> StationListSnapshot:
        """Perform one round trip to the backend and apply its outcome."""
        call_id = self._next_call_id()
        await self._execute_plugin_hooks(
            PluginHook.BEFORE_REFRESH, {"call_id": call_id, "interval": self.interval}
        )

        failure: Optional[TransportFailure] = None
        stations: list[Station] = []
        self._in_flight += 1
        try:
            stations = await self.gateway.list_stations()
        except TransportFailure as e:
            failure = e
        finally:
            self._in_flight -= 1

        if failure is not None:
            self._error = failure.message
            log_error(logger, "poll_error", f"Station refresh failed: {failure.message}")
            await self._execute_plugin_hooks(
                PluginHook.REFRESH_FAILED,
                {"call_id": call_id, "error": failure.message},
                result=failure,
            )
        else:
            self._snapshot = StationListSnapshot(
                stations=tuple(stations),
                fresh=True,
                fetched_at=datetime.now(UTC),
            )
            self._error = None
            logger.debug(f"Station snapshot replaced ({len(stations)} stations)")
            await self._execute_plugin_hooks(
                PluginHook.AFTER_REFRESH,
                {"call_id": call_id, "station_count": len(stations)},
                result=self._snapshot,
            )

        self._notify_listeners()
        return self._snapshot

    def start(self):
        """Refresh now and schedule a refresh every ``interval`` seconds."""
        if self.running:
            logger.debug("Station polling already running")
            return
        logger.info(f"Starting station polling every {self.interval}s")
        self._schedule_task = asyncio.create_task(self._run_schedule())

    async def stop(self):
        """
        Cancel the schedule.

        Refreshes already issued are not cancelled; they run to completion
        and their outcome is still applied.
        """
        if self._schedule_task is not None:
            self._schedule_task.cancel()
            try:
                await self._schedule_task
            except asyncio.CancelledError:
                pass
            self._schedule_task = None
            logger.info("Stopped station polling")

        if self._refresh_tasks:
            await asyncio.gather(*self._refresh_tasks, return_exceptions=True)

    async def _run_schedule(self):
        while True:
            task = asyncio.create_task(self._guarded_refresh())
            self._refresh_tasks.add(task)
            task.add_done_callback(self._refresh_tasks.discard)
            await asyncio.sleep(self.interval)

    async def _guarded_refresh(self):
        try:
            await self.refresh()
        except Exception as e:
            # Nothing short of cancellation may stop the schedule
            self._error = str(e) or e.__class__.__name__
            log_error(logger, "poll_error", f"Unexpected refresh error: {e}", exc_info=e)

    def _notify_listeners(self):
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                log_error(
                    logger,
                    "listener_error",
                    f"Directory listener failed: {e}",
                    exc_info=e,
                )
