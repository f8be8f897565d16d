"""
Thin FastAPI control layer for the episode monitor.

Build the app around live components::

    app = create_app(monitor, scraper, gateway)

or run everything from the CLI::

    python3 scripts/monitor.py --serve
"""

from __future__ import annotations

from typing import List, Optional

import logging

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from utils.errors import (
    CodeParseFailure,
    FetchExhausted,
    MonitorError,
    PersistenceFailure,
    UnresolvableSeries,
)
from utils.episode_scraper import EpisodeScraper
from utils.monitor_scheduler import EpisodeMonitor
from utils.persistence_gateway import PersistenceGateway
from utils.series_sync import get_series_stats

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response schemas (Pydantic models for FastAPI validation)
# ---------------------------------------------------------------------------

class ScrapeRequest(BaseModel):
    """POST body for a single-episode scrape."""
    url: str
    force: bool = False


class HealthResponse(BaseModel):
    status: str = 'ok'
    monitor_state: str = 'idle'
    storage_backend: str = ''


class ServerEmbedModel(BaseModel):
    option: Optional[int] = None
    url: str


class EpisodeResponse(BaseModel):
    series_slug: str
    season: int
    episode: int
    title: str = ''
    thumbnail: Optional[str] = None
    servers: List[ServerEmbedModel] = []


class LatestEntryModel(BaseModel):
    series_slug: str
    series_title: str = ''
    season: int
    episode: int
    episode_title: str = ''
    thumbnail: Optional[str] = None
    added_at: str = ''


class MissingEpisodeModel(BaseModel):
    season: int
    episode: int


class SeriesStatsResponse(BaseModel):
    slug: str
    title: str = ''
    total_episodes: int = 0
    total_seasons: int = 0
    seasons: List[int] = []
    missing_count: int = 0
    missing: List[MissingEpisodeModel] = []


# Errors raised by a scrape -> HTTP status
SCRAPE_ERROR_STATUS = (
    (CodeParseFailure, 400),
    (UnresolvableSeries, 422),
    (FetchExhausted, 502),
    (PersistenceFailure, 503),
)


def _status_for(error: MonitorError) -> int:
    for error_type, status in SCRAPE_ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def create_app(monitor: EpisodeMonitor, scraper: EpisodeScraper, gateway: PersistenceGateway) -> FastAPI:
    """Create the control API bound to the given monitor, scraper and gateway."""
    app = FastAPI(
        title='Episode Monitor API',
        version='0.1.0',
        description='Control surface for the homepage episode monitor.',
    )

    @app.get('/api/health', response_model=HealthResponse)
    async def health_check():
        """Simple liveness probe."""
        return HealthResponse(monitor_state=monitor.state.value, storage_backend=gateway.backend_name)

    @app.get('/api/monitoring/status')
    async def monitoring_status():
        return monitor.get_status()

    @app.post('/api/monitoring/start')
    def monitoring_start():
        started = monitor.start()
        return {'started': started, 'status': monitor.get_status()}

    @app.post('/api/monitoring/stop')
    def monitoring_stop():
        """Request a stop without waiting; a following start waits for the loop to wind down."""
        stopped = monitor.stop(wait=False)
        return {'stopped': stopped, 'status': monitor.get_status()}

    @app.get('/api/episodes/latest', response_model=List[LatestEntryModel])
    def latest_episodes(limit: int = Query(9, ge=1, le=100)):
        """Most recently added episodes, newest first."""
        try:
            return [entry.to_dict() for entry in gateway.get_latest(limit)]
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    @app.post('/api/scrape', response_model=EpisodeResponse)
    def scrape(payload: ScrapeRequest):
        """Scrape one episode URL on demand."""
        try:
            episode = scraper.scrape_episode(payload.url, force=payload.force)
        except MonitorError as exc:
            logger.warning(f"On-demand scrape failed for {payload.url}: {exc}")
            raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc
        return episode.to_dict()

    @app.get('/api/series/{slug}/stats', response_model=SeriesStatsResponse)
    def series_stats(slug: str):
        """Episode counts and per-season gaps for one series."""
        try:
            series = gateway.get_series_by_slug(slug)
            if series is None:
                raise HTTPException(status_code=404, detail=f"Series not found: {slug}")
            stats = get_series_stats(gateway, slug)
        except PersistenceFailure as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        stats['title'] = series.title
        return stats

    return app
