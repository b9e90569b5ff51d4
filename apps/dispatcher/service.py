"""Lifecycle of dispatch runs.

:class:`DispatcherService` owns at most one running dispatch loop.  It starts
the generator as a detached task, runs the loop as a second task and only
lets the report read the statistics once that task has been joined.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Set
import asyncio
import time

import httpx

from lib.config.dispatcher_loader import DispatcherConfig
from lib.telemetry.logger import get_logger

from . import Dispatcher
from .clients import BufferClient, CleanerClient, GeneratorClient
from .errors import DispatchInProgress, ReportError, ServiceError
from .report import write_report
from .stats import DispatcherState, TeamRecord

logger = get_logger(__name__)


class DispatcherService:
    def __init__(
        self,
        dispatcher: Dispatcher,
        generator: Any,
        report_path: str = "statistics.txt",
        clock=time.monotonic,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.generator = generator
        self.report_path = report_path
        self.clock = clock
        self.state: Optional[DispatcherState] = None
        self._http_client = http_client
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, cfg: DispatcherConfig) -> "DispatcherService":
        """Wire real HTTP clients from ``cfg``."""

        http_client = httpx.AsyncClient(timeout=cfg.request_timeout)
        dispatcher = Dispatcher(
            cleaner=CleanerClient(http_client, cfg.cleaner_host),
            buffer=BufferClient(http_client, cfg.buffer_host),
            startup_delay=cfg.timing.startup_delay,
            poll_interval=cfg.timing.poll_interval,
            idle_backoff=cfg.timing.idle_backoff,
            error_backoff=cfg.timing.error_backoff,
        )
        return cls(
            dispatcher,
            GeneratorClient(http_client, cfg.generator_host),
            report_path=cfg.report_path,
            http_client=http_client,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def launch(self) -> asyncio.Task:
        """Start a new run with fresh statistics.

        Must be called from inside the event loop.  Raises
        :class:`DispatchInProgress` when a run is still active.
        """

        if self.running:
            raise DispatchInProgress("dispatcher is already running")

        self.state = DispatcherState(clock=self.clock)
        self._stop = asyncio.Event()
        self._start_generator()
        self._task = asyncio.create_task(self.dispatcher.run(self.state, self._stop))
        logger.info("Dispatcher launched")
        return self._task

    def _start_generator(self) -> None:
        logger.debug("Starting request generator...")
        task = asyncio.create_task(self.generator.start_generator())
        self._background.add(task)
        task.add_done_callback(self._generator_done)

    def _generator_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.warning("Generator start was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to start generator: %s", exc)
        else:
            logger.info("Generator started")

    async def wait(self) -> None:
        """Join the current run, if any.

        Cancelling the waiter leaves the run itself alone.
        """

        if self._task is not None:
            await asyncio.shield(self._task)

    def stop(self) -> bool:
        """Ask the running loop to stop at its next check.  Returns whether one was running."""

        if not self.running or self._stop is None:
            return False
        self._stop.set()
        return True

    def status(self) -> Dict[str, Any]:
        state = self.state
        return {
            "running": self.running,
            "elapsed": state.elapsed() if state else 0.0,
            "assigned": len(state.requests) if state else 0,
            "dropped": len(state.dropped) if state else 0,
        }

    async def create_statistics_report(self, path: Optional[str] = None) -> str:
        """Snapshot team figures and write the report for the last finished run."""

        if self.running:
            raise DispatchInProgress("dispatcher is still running")
        if self.state is None or self._task is None:
            raise ReportError("no dispatch run to report on")
        # A cancelled run still froze its elapsed time, so it can be reported.
        if not self._task.cancelled() and self._task.exception() is not None:
            exc = self._task.exception()
            raise ReportError(f"dispatch run failed: {exc}") from exc

        try:
            teams = await self.dispatcher.cleaner.get_teams_stats()
        except ServiceError as exc:
            logger.error("Failed to fetch team statistics: %s", exc)
            raise ReportError(f"failed to fetch team statistics: {exc}") from exc

        self.state.set_team_snapshot(
            TeamRecord(
                id=t.id,
                speed=t.speed,
                processed_requests=t.processed_requests,
                total_busy_time=t.total_busy_time,
            )
            for t in teams
        )

        target = path or self.report_path
        try:
            written = write_report(self.state, target)
        except OSError as exc:
            logger.error("Failed to save report %s: %s", target, exc)
            raise ReportError(f"failed to save report: {exc}") from exc

        logger.info("Report generated successfully: %s", written)
        return str(written)

    async def aclose(self) -> None:
        self.stop()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        if self._http_client is not None:
            await self._http_client.aclose()
