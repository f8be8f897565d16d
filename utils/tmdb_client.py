"""
TMDB enrichment client.

Looks a series up on The Movie Database by title and returns optional
descriptive fields (rating, genres, studios, images...). Enrichment is best
effort: every failure is logged and reported as ``None``, never raised.

Usage:
    from utils.tmdb_client import TmdbClient

    client = TmdbClient(api_key='...')
    series = client.enrich_series(series)
"""

import time
import logging
from dataclasses import replace
from typing import Optional

import requests

from api.models import EnrichmentFields, SeriesRecord
from api.parsers.common import sanitize_title

logger = logging.getLogger(__name__)


TMDB_BASE_URL = 'https://api.themoviedb.org/3'
TMDB_IMAGE_BASE = 'https://image.tmdb.org/t/p/original'
MAX_EXTRA_IMAGES = 5


class TmdbClient:
    """Thin TMDB v3 client with a fixed delay before every call"""

    def __init__(self, api_key: str = '', delay: float = 0.25, session: Optional[requests.Session] = None,
                 base_url: str = TMDB_BASE_URL, image_base: str = TMDB_IMAGE_BASE, timeout: float = 30.0):
        self.api_key = api_key or ''
        self.delay = delay
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip('/')
        self.image_base = image_base
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get(self, path: str, **params) -> dict:
        if self.delay > 0:
            time.sleep(self.delay)
        params.update({'api_key': self.api_key, 'language': 'en-US'})
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def search(self, title: str, content_type: str = 'tv') -> Optional[int]:
        """Return the id of the first search hit, or None"""
        if not self.enabled:
            logger.warning("TMDB API key not configured. Skipping TMDB search.")
            return None

        query = sanitize_title(title)
        if query != title:
            logger.debug(f"Sanitized title for TMDB: '{title}' -> '{query}'")
        try:
            data = self._get(f"/search/{content_type}", query=query)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"TMDB search error for '{title}': {e}")
            return None

        results = data.get('results') or []
        return results[0].get('id') if results else None

    def _image_urls(self, primary: Optional[str], extra: list) -> list:
        urls = []
        if primary:
            urls.append(f"{self.image_base}{primary}")
        for img in extra[:MAX_EXTRA_IMAGES]:
            url = f"{self.image_base}{img.get('file_path')}"
            if img.get('file_path') and url not in urls:
                urls.append(url)
        return urls

    def fetch_details(self, tmdb_id: int, content_type: str = 'tv') -> Optional[EnrichmentFields]:
        """Fetch details (with images and credits) for a TMDB id"""
        if not self.enabled or not tmdb_id:
            return None
        try:
            data = self._get(f"/{content_type}/{tmdb_id}", append_to_response='images,credits')
        except (requests.RequestException, ValueError) as e:
            logger.error(f"TMDB details error for ID {tmdb_id}: {e}")
            return None

        images = data.get('images') or {}
        posters = self._image_urls(data.get('poster_path'), images.get('posters') or [])
        backdrops = self._image_urls(data.get('backdrop_path'), images.get('backdrops') or [])

        return EnrichmentFields(
            tmdb_id=data.get('id'),
            title=data.get('name') or data.get('title') or None,
            description=data.get('overview') or None,
            rating=round(float(data['vote_average']), 2) if data.get('vote_average') else None,
            popularity=round(float(data['popularity']), 3) if data.get('popularity') else None,
            status=data.get('status') or None,
            genres=[g.get('name') for g in data.get('genres') or [] if g.get('name')],
            studios=[c.get('name') for c in data.get('production_companies') or [] if c.get('name')],
            release_date=data.get('first_air_date') or data.get('release_date') or None,
            total_seasons=data.get('number_of_seasons') or None,
            total_episodes=data.get('number_of_episodes') or None,
            posters=posters,
            backdrops=backdrops,
            poster=posters[0] if posters else None,
            banner_image=backdrops[0] if backdrops else None,
        )

    def lookup(self, title: str, content_type: str = 'tv') -> Optional[EnrichmentFields]:
        """Search by title and fetch details; None when disabled, not found or on any error"""
        if not self.enabled or not title:
            return None

        logger.info(f"Fetching TMDB data for: {title}")
        tmdb_id = self.search(title, content_type)
        if not tmdb_id:
            logger.info(f"No TMDB results found for '{title}'")
            return None

        details = self.fetch_details(tmdb_id, content_type)
        if details:
            logger.info(f"TMDB data fetched (ID: {tmdb_id}) - rating: {details.rating or 'N/A'}, "
                        f"popularity: {details.popularity or 'N/A'}")
        return details

    def enrich_series(self, series: SeriesRecord) -> SeriesRecord:
        """Return *series* merged with TMDB fields; unchanged when nothing was found"""
        fields = self.lookup(series.title)
        if fields is None:
            return series
        return merge_enrichment(series, fields)


def merge_enrichment(series: SeriesRecord, fields: EnrichmentFields) -> SeriesRecord:
    """
    Merge enrichment fields into a series record.

    Scraped description, poster, banner and year are kept unless TMDB provides
    a value; year falls back to the TMDB release year.
    """
    year = series.year
    if not year and fields.release_date:
        try:
            year = int(fields.release_date.split('-')[0])
        except ValueError:
            year = None

    return replace(
        series,
        tmdb_id=fields.tmdb_id,
        description=fields.description or series.description,
        rating=fields.rating,
        popularity=fields.popularity,
        status=fields.status,
        genres=list(fields.genres) or list(series.genres),
        studios=list(fields.studios),
        release_date=fields.release_date,
        total_seasons=fields.total_seasons or series.total_seasons,
        total_episodes=fields.total_episodes,
        posters=list(fields.posters),
        backdrops=list(fields.backdrops),
        poster=fields.poster or series.poster,
        banner_image=fields.banner_image or series.banner_image,
        year=year,
    )


def create_tmdb_client_from_config(api_key: str = '', delay_ms: int = 250) -> Optional[TmdbClient]:
    """Return a TmdbClient, or None when no API key is configured"""
    if not api_key:
        logger.info("TMDB_API_KEY not set. Series enrichment disabled.")
        return None
    return TmdbClient(api_key=api_key, delay=max(0, delay_ms) / 1000.0)
