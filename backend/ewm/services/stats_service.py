"""
Main-service side of view statistics.

View counts are a non-critical enrichment: a failing or unreachable stats
server must never fail the request that asked for them. Both operations here
log and swallow every error; get_views falls back to zero views.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from ewm.core.config import get_settings
from ewm.core.logging import get_logger
from ewm.core.metrics import record_stats_client_error
from ewm.infrastructure.stats_client import StatsClient
from ewm.stats.schemas import EndpointHitDto

logger = get_logger(__name__)

EVENT_URI_PREFIX = "/events/"


def event_uri(event_id: int) -> str:
    return f"{EVENT_URI_PREFIX}{event_id}"


class StatsService:
    def __init__(self, client: StatsClient, app_name: Optional[str] = None) -> None:
        settings = get_settings()
        self.client = client
        self.app_name = app_name or settings.STATS_APP_NAME
        self.lookback = timedelta(days=settings.STATS_VIEWS_LOOKBACK_DAYS)

    async def save_hit(self, uri: str, ip: str) -> None:
        hit = EndpointHitDto(app=self.app_name, uri=uri, ip=ip, timestamp=datetime.now())
        try:
            await self.client.hit(hit)
            logger.debug("hit_saved", uri=uri)
        except Exception as e:
            record_stats_client_error("hit")
            logger.error("hit_save_failed", uri=uri, error=str(e))

    async def get_views(self, event_ids: Iterable[int]) -> dict[int, int]:
        """
        Unique-IP view count per event over [now - lookback, now + 1 day],
        counting only hits recorded under this service's app name.
        Every requested id is present in the result; missing stats mean 0.
        """
        ids = list(dict.fromkeys(event_ids))
        views = {event_id: 0 for event_id in ids}
        if not ids:
            return views

        now = datetime.now()
        try:
            stats = await self.client.get_stats(
                start=now - self.lookback,
                end=now + timedelta(days=1),
                uris=[event_uri(event_id) for event_id in ids],
                unique=True,
            )
        except Exception as e:
            record_stats_client_error("stats")
            logger.error("views_fetch_failed", event_count=len(ids), error=str(e))
            return views

        for stat in stats:
            # Only this service's hits are views; one value per uri
            if stat.app != self.app_name or not stat.uri.startswith(EVENT_URI_PREFIX):
                continue
            try:
                event_id = int(stat.uri[len(EVENT_URI_PREFIX):])
            except ValueError:
                logger.debug("views_uri_skipped", uri=stat.uri)
                continue
            if event_id in views:
                views[event_id] = stat.hits
        return views

    async def get_event_views(self, event_id: int) -> int:
        return (await self.get_views([event_id])).get(event_id, 0)


def get_stats_service() -> StatsService:
    """FastAPI dependency; overridden in tests with a fake client."""
    return StatsService(StatsClient())
