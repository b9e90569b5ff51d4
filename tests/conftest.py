"""Shared fakes for the dispatcher tests."""

import asyncio
from typing import Any, Iterable, List, Optional

import pytest

from apps.dispatcher.errors import ServiceError
from lib.contracts.cleaning import BufferedRequest, CleanedRequest, TeamStats


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that advances a fake clock."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        if self.clock is not None:
            self.clock.now += delay


class FakeCleaner:
    """Scripted cleaner service.

    ``teams`` is consumed one entry per query; the last entry repeats.  An
    entry that is an exception is raised instead of returned.
    """

    def __init__(self, teams: Iterable[Any], refuse: Iterable[int] = (), log=None, stats=None) -> None:
        self.teams = list(teams)
        self.refuse = set(refuse)
        self.log = log if log is not None else []
        self.stats = stats or []
        self.on_teams = None

    async def get_available_teams(self) -> List[int]:
        self.log.append(("teams",))
        entry = self.teams.pop(0) if len(self.teams) > 1 else self.teams[0]
        if self.on_teams is not None:
            self.on_teams()
        if isinstance(entry, Exception):
            raise entry
        return list(entry)

    async def proceed_cleaning(self, req: BufferedRequest, team_id: int) -> CleanedRequest:
        self.log.append(("assign", req.id, team_id))
        if team_id in self.refuse:
            raise ServiceError("cleaner", "ProceedCleaning", f"team {team_id} is busy")
        return CleanedRequest(
            id=req.id,
            client_id=req.client_id,
            team_id=team_id,
            priority=req.priority,
            cleaning_type=req.cleaning_type,
            time_in_cleaner=2.5,
        )

    async def get_teams_stats(self) -> List[TeamStats]:
        self.log.append(("stats",))
        if isinstance(self.stats, Exception):
            raise self.stats
        return list(self.stats)


class FakeBuffer:
    """Pops scripted entries; ``None`` means empty, exceptions are raised."""

    def __init__(self, entries: Iterable[Any], log=None) -> None:
        self.entries = list(entries)
        self.log = log if log is not None else []

    async def pop_top(self) -> Optional[BufferedRequest]:
        self.log.append(("pop",))
        entry = self.entries.pop(0) if self.entries else None
        if isinstance(entry, Exception):
            raise entry
        return entry


class FakeGenerator:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls = 0

    async def start_generator(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


def make_request(id: int, priority: int = 1, generator_id: int = 3, time_in_buffer: float = 0.75) -> BufferedRequest:
    return BufferedRequest(
        id=id,
        client_id=100 + id,
        generator_id=generator_id,
        priority=priority,
        cleaning_type=1,
        time_in_buffer=time_in_buffer,
    )


@pytest.fixture
def call_log() -> list:
    return []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock) -> RecordingSleep:
    return RecordingSleep(clock)


class HangingGenerator:
    """Generator whose start call never returns until cancelled."""

    def __init__(self) -> None:
        self.started = False
        self.cancelled = False

    async def start_generator(self) -> None:
        self.started = True
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
