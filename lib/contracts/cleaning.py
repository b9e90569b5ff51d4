"""Payloads exchanged with the buffer, cleaner and generator services."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    # Services may add fields we do not consume.
    model_config = ConfigDict(extra="ignore")


class BufferedRequest(_Payload):
    """A request as the buffer hands it out."""

    id: int
    client_id: int = 0
    generator_id: int = 0
    priority: int = 0
    cleaning_type: int = 0
    time_in_buffer: float = 0.0


class PopTopOut(_Payload):
    req: Optional[BufferedRequest] = None


class CleaningRequest(_Payload):
    """The subset of a buffered request the cleaner needs."""

    id: int
    client_id: int = 0
    priority: int = 0
    cleaning_type: int = 0


class ProceedCleaningIn(_Payload):
    req: CleaningRequest
    team_id: int


class CleanedRequest(_Payload):
    """Confirmation returned once a team accepted a request."""

    id: int
    client_id: int = 0
    team_id: int
    priority: int = 0
    cleaning_type: int = 0
    time_in_cleaner: float = 0.0


class ProceedCleaningOut(_Payload):
    req: CleanedRequest


class AvailableTeamsOut(_Payload):
    teams_ids: List[int] = Field(default_factory=list)


class TeamStats(_Payload):
    id: int
    speed: int = 0
    processed_requests: int = 0
    total_busy_time: float = 0.0


class TeamsStatsOut(_Payload):
    teams: List[TeamStats] = Field(default_factory=list)
