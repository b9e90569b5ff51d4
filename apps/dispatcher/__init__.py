"""Dispatch loop.

:class:`Dispatcher` pairs idle cleaning teams with pending requests from the
buffer.  Each iteration asks the cleaner which teams are idle, pops exactly
one request from the buffer only when at least one team is idle, and offers
that request to the idle teams in the order the cleaner listed them until one
accepts.  Results are appended to a :class:`~apps.dispatcher.stats.DispatcherState`.

The loop ends either when the stop event is set or when the buffer reports
that it has nothing left to give.  Transport failures never end it; they are
absorbed with a fixed backoff.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional
import asyncio

from lib.contracts.cleaning import BufferedRequest
from lib.telemetry.logger import get_logger

from .errors import ServiceError
from .stats import DispatcherState, DroppedRecord, RequestRecord

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class Dispatcher:
    """Greedy matcher between idle teams and buffered requests.

    Parameters
    ----------
    cleaner:
        Object exposing ``get_available_teams()`` and
        ``proceed_cleaning(req, team_id)`` coroutines.
    buffer:
        Object exposing a ``pop_top()`` coroutine that returns ``None`` when
        no request is pending.
    startup_delay:
        One-off pause after the clock starts so the generator can fill the
        buffer.
    poll_interval:
        Pause at the end of every completed iteration.
    idle_backoff:
        Pause when no team is idle.
    error_backoff:
        Pause after a failed team query or buffer pop.
    """

    cleaner: Any
    buffer: Any
    startup_delay: float = 3.0
    poll_interval: float = 1.0
    idle_backoff: float = 1.0
    error_backoff: float = 3.0
    sleep: Sleep = field(default=asyncio.sleep, repr=False)

    async def run(self, state: DispatcherState, stop: Optional[asyncio.Event] = None) -> None:
        """Dispatch until ``stop`` is set or the buffer runs dry.

        ``state`` must be fresh; its elapsed time is frozen exactly once when
        the loop ends, including when the task itself is cancelled.
        """

        if stop is None:
            stop = asyncio.Event()
        state.start()
        logger.debug("Dispatcher loop starting")
        try:
            if self.startup_delay:
                await self.sleep(self.startup_delay)
            while True:
                if stop.is_set():
                    logger.info("Dispatcher loop stopped on request")
                    return

                try:
                    teams = await self.cleaner.get_available_teams()
                except ServiceError as exc:
                    logger.error("Failed to get available teams: %s", exc)
                    await self.sleep(self.error_backoff)
                    continue

                if not teams:
                    logger.debug("No available teams, waiting...")
                    await self.sleep(self.idle_backoff)
                    continue

                # A request popped now could not be placed any more.
                if stop.is_set():
                    logger.info("Dispatcher loop stopped on request")
                    return

                try:
                    req = await self.buffer.pop_top()
                except ServiceError as exc:
                    logger.error("Failed to pop request from buffer: %s", exc)
                    await self.sleep(self.error_backoff)
                    continue

                if req is None:
                    logger.info("Buffer is empty, stopping dispatcher loop")
                    return

                await self._assign(state, req, teams)

                if self.poll_interval:
                    await self.sleep(self.poll_interval)
        finally:
            state.finish()
            logger.info(
                "Dispatcher loop finished after %.2fs: %d assigned, %d dropped",
                state.elapsed(),
                len(state.requests),
                len(state.dropped),
            )

    async def _assign(self, state: DispatcherState, req: BufferedRequest, teams: List[int]) -> bool:
        for team_id in teams:
            try:
                confirmed = await self.cleaner.proceed_cleaning(req, team_id)
            except ServiceError as exc:
                logger.error("Team %s refused request %s: %s", team_id, req.id, exc)
                continue

            logger.info("Request %s assigned to team %s", req.id, confirmed.team_id)
            state.record_assignment(
                RequestRecord(
                    id=confirmed.id,
                    generator_id=req.generator_id,
                    team_id=confirmed.team_id,
                    priority=confirmed.priority,
                    time_in_cleaner=confirmed.time_in_cleaner,
                    time_in_buffer=req.time_in_buffer,
                )
            )
            return True

        logger.warning(
            "Request %s dropped: refused by all %d available teams", req.id, len(teams)
        )
        state.record_drop(
            DroppedRecord(
                id=req.id,
                generator_id=req.generator_id,
                priority=req.priority,
                tried_teams=tuple(teams),
            )
        )
        return False


__all__ = ["Dispatcher"]
