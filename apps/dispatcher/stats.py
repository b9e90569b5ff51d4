"""In-memory statistics collected during a dispatch run.

:class:`DispatcherState` is written by exactly one coroutine, the dispatch
loop.  Readers (the report) only look at it after that coroutine has
finished, so no locking is involved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple
import time


@dataclass(frozen=True)
class RequestRecord:
    """One request that a team accepted."""

    id: int
    generator_id: int
    team_id: int
    priority: int
    time_in_cleaner: float
    time_in_buffer: float


@dataclass(frozen=True)
class DroppedRecord:
    """A request that every available team refused in its iteration."""

    id: int
    generator_id: int
    priority: int
    tried_teams: Tuple[int, ...]


@dataclass(frozen=True)
class TeamRecord:
    """Aggregate figures for one team as reported by the cleaner."""

    id: int
    speed: int
    processed_requests: int
    total_busy_time: float

    def load(self, elapsed: float) -> float:
        """Share of ``elapsed`` the team spent busy, in percent."""

        if elapsed <= 0:
            return 0.0
        return self.total_busy_time / elapsed * 100


@dataclass
class DispatcherState:
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    requests: List[RequestRecord] = field(default_factory=list)
    dropped: List[DroppedRecord] = field(default_factory=list)
    teams: List[TeamRecord] = field(default_factory=list)
    started_at: Optional[float] = None
    _elapsed: Optional[float] = field(default=None, init=False, repr=False)

    def start(self) -> None:
        if self.started_at is None:
            self.started_at = self.clock()

    def finish(self) -> bool:
        """Freeze the elapsed time.  Returns ``False`` if it was already frozen."""

        if self._elapsed is not None:
            return False
        self.start()
        self._elapsed = self.clock() - self.started_at
        return True

    @property
    def finished(self) -> bool:
        return self._elapsed is not None

    def elapsed(self) -> float:
        if self._elapsed is not None:
            return self._elapsed
        if self.started_at is None:
            return 0.0
        return self.clock() - self.started_at

    def record_assignment(self, record: RequestRecord) -> None:
        self.requests.append(record)

    def record_drop(self, record: DroppedRecord) -> None:
        self.dropped.append(record)

    def set_team_snapshot(self, teams: Iterable[TeamRecord]) -> None:
        # A fresh snapshot replaces the previous one.
        self.teams = list(teams)


__all__ = ["DispatcherState", "DroppedRecord", "RequestRecord", "TeamRecord"]
