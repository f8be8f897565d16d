"""
Episode scraper: turns one episode URL into persisted records.

Steps for a single episode:
1. Parse the ``<season>x<episode>`` code from the URL
2. Fetch the episode page and resolve its series identity
3. On first sight of the series: fetch the series page, extract descriptive
   fields, enrich via TMDB (optional) and create the series record
4. Upsert the episode record and push it into the latest window

Errors propagate to the caller (the monitor catches them per card).
"""

import logging
from typing import Optional

from api.models import EpisodeCard, EpisodeRecord, SeriesIdentity, SeriesRecord
from api.parsers.common import extract_common_fields, parse_episode_code
from api.parsers.episode_parser import parse_episode_page
from utils.errors import CodeParseFailure
from utils.latest_window import LatestWindowMaintainer
from utils.persistence_gateway import PersistenceGateway
from utils.request_handler import RequestHandler
from utils.tmdb_client import TmdbClient

logger = logging.getLogger(__name__)


class EpisodeScraper:
    """Fetch, resolve and persist individual episodes"""

    def __init__(self, request_handler: RequestHandler, gateway: PersistenceGateway,
                 latest_window: Optional[LatestWindowMaintainer] = None,
                 enricher: Optional[TmdbClient] = None, base_url: Optional[str] = None):
        self.request_handler = request_handler
        self.gateway = gateway
        self.latest_window = latest_window or LatestWindowMaintainer(gateway)
        self.enricher = enricher
        self.base_url = base_url or request_handler.config.base_url

    def get_or_create_series(self, identity: SeriesIdentity) -> SeriesRecord:
        """
        Return the stored series for *identity*, creating it on first sight.

        Creation fetches the series landing page and runs enrichment exactly
        once; later calls for the same slug touch neither.
        """
        existing = self.gateway.get_series_by_slug(identity.slug)
        if existing is not None:
            return existing

        logger.info(f"New series '{identity.title}' ({identity.slug}), fetching series page")
        series_url = identity.series_url or f"{self.base_url.rstrip('/')}/series/{identity.slug}/"
        metadata = extract_common_fields(self.request_handler.fetch_html(series_url), self.base_url)

        series = SeriesRecord(
            slug=identity.slug,
            title=identity.title,
            description=metadata.description,
            poster=metadata.thumbnail,
            year=metadata.year,
            genres=list(metadata.genres),
        )

        if self.enricher is not None:
            try:
                series = self.enricher.enrich_series(series)
            except Exception as e:
                # enrichment never blocks ingestion
                logger.warning(f"Enrichment failed for '{series.title}': {e}")

        stored = self.gateway.upsert_series(series)
        logger.info(f"Series created: {stored.title}")
        return stored

    def scrape_episode(self, url: str, force: bool = False, card: Optional[EpisodeCard] = None) -> EpisodeRecord:
        """
        Scrape and persist one episode.

        Args:
            url: Episode page URL
            force: Rewrite the episode (and refresh the latest window) even if it is already stored
            card: Homepage card the URL came from; its thumbnail is the last fallback

        Returns:
            The stored EpisodeRecord (the existing one when present and not forced)

        Raises:
            CodeParseFailure, FetchExhausted, UnresolvableSeries, PersistenceFailure
        """
        code = parse_episode_code(url)
        if code is None:
            raise CodeParseFailure(url)
        logger.info(f"Scraping episode: {url} (S{code.season}E{code.episode})")

        page = parse_episode_page(self.request_handler.fetch_html(url), url, self.base_url)
        logger.debug(f"Series: {page.series.title} via {page.series.source}")

        series = self.get_or_create_series(page.series)

        existing = self.gateway.get_episode(series.slug, code.season, code.episode)
        if existing is not None and not force:
            logger.info(f"Episode already exists: {series.slug} S{code.season}E{code.episode}")
            return existing

        episode = EpisodeRecord(
            series_slug=series.slug,
            season=code.season,
            episode=code.episode,
            title=page.title or f"Episode {code.episode}",
            thumbnail=page.thumbnail or (card.thumbnail if card else None),
            servers=list(page.servers),
        )
        # the episode row goes last: its presence ends retries of this card
        self.latest_window.record(episode, series.title)

        stored = self.gateway.upsert_episode(episode)
        logger.info(f"Episode saved: {series.title} S{code.season}E{code.episode} "
                    f"({len(episode.servers)} server(s))")
        return stored
