"""HTTP clients for the buffer, cleaner and generator services.

Every failure (connection problems, timeouts, non-2xx answers, bodies that do
not parse into the expected contract) is reported as
:class:`~apps.dispatcher.errors.ServiceError` so callers only deal with one
exception type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from lib.contracts.cleaning import (
    AvailableTeamsOut,
    BufferedRequest,
    CleanedRequest,
    CleaningRequest,
    PopTopOut,
    ProceedCleaningIn,
    ProceedCleaningOut,
    TeamStats,
    TeamsStatsOut,
)

from .errors import ServiceError

M = TypeVar("M", bound=BaseModel)


@dataclass
class _ServiceClient:
    http_client: httpx.AsyncClient
    base_url: str
    service: str = "service"

    async def _request(
        self, method: str, operation: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            response = await self.http_client.request(method, url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ServiceError(self.service, operation, str(exc) or type(exc).__name__) from exc
        return response

    def _parse(self, operation: str, response: httpx.Response, model: Type[M]) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ServiceError(self.service, operation, f"malformed response: {exc}") from exc


class CleanerClient(_ServiceClient):
    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        super().__init__(http_client, base_url, "cleaner")

    async def get_available_teams(self) -> List[int]:
        response = await self._request("POST", "GetAvailableTeams", "/teams/available")
        return self._parse("GetAvailableTeams", response, AvailableTeamsOut).teams_ids

    async def proceed_cleaning(self, req: BufferedRequest, team_id: int) -> CleanedRequest:
        """Hand ``req`` to ``team_id``.  Raises :class:`ServiceError` on refusal."""

        body = ProceedCleaningIn(
            req=CleaningRequest(
                id=req.id,
                client_id=req.client_id,
                priority=req.priority,
                cleaning_type=req.cleaning_type,
            ),
            team_id=team_id,
        )
        response = await self._request(
            "POST", "ProceedCleaning", "/cleaning", body.model_dump()
        )
        return self._parse("ProceedCleaning", response, ProceedCleaningOut).req

    async def get_teams_stats(self) -> List[TeamStats]:
        response = await self._request("GET", "GetTeamsStats", "/teams/stats")
        return self._parse("GetTeamsStats", response, TeamsStatsOut).teams


class BufferClient(_ServiceClient):
    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        super().__init__(http_client, base_url, "buffer")

    async def pop_top(self) -> Optional[BufferedRequest]:
        """Return the highest priority request, or ``None`` when the buffer is empty."""

        response = await self._request("POST", "PopTop", "/pop")
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        return self._parse("PopTop", response, PopTopOut).req


class GeneratorClient(_ServiceClient):
    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        super().__init__(http_client, base_url, "generator")

    async def start_generator(self) -> None:
        await self._request("POST", "StartGenerator", "/start")


__all__ = ["BufferClient", "CleanerClient", "GeneratorClient"]
