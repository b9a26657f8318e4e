"""Client for the stats server.

Small HTTP wrapper used by the main service to record hits and read view
counts. Transport and HTTP errors are raised to the caller; deciding what a
failure means (it is never fatal for the main service) is up to
ewm.services.stats_service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import httpx

from ewm.core.config import get_settings
from ewm.core.dates import format_datetime
from ewm.stats.schemas import EndpointHitDto, ViewStatsDto


@dataclass(frozen=True)
class StatsClientConfig:
    base_url: str = "http://localhost:9090"
    timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls) -> "StatsClientConfig":
        settings = get_settings()
        return cls(
            base_url=settings.STATS_SERVER_URL.rstrip("/"),
            timeout_seconds=settings.STATS_CLIENT_TIMEOUT,
        )


class StatsClient:
    def __init__(self, config: Optional[StatsClientConfig] = None) -> None:
        self.config = config or StatsClientConfig.from_settings()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
        )

    async def hit(self, hit: EndpointHitDto) -> None:
        async with self._client() as client:
            resp = await client.post("/hit", json=hit.model_dump(mode="json", exclude_none=True))
            resp.raise_for_status()

    async def get_stats(
        self,
        start: datetime,
        end: datetime,
        uris: Optional[Sequence[str]] = None,
        unique: Optional[bool] = None,
    ) -> List[ViewStatsDto]:
        params = {
            "start": format_datetime(start),
            "end": format_datetime(end),
        }
        if uris:
            params["uris"] = ",".join(uris)
        if unique is not None:
            params["unique"] = "true" if unique else "false"

        async with self._client() as client:
            resp = await client.get("/stats", params=params)
            resp.raise_for_status()
            return [ViewStatsDto.model_validate(item) for item in resp.json()]
