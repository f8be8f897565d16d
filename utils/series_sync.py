"""
Maintenance helpers over stored series and episodes.

- gap detection (episodes missing between 1 and the highest stored episode
  of each season)
- per-series statistics
- finding series without TMDB enrichment and back-filling it
"""

import time
import logging
from typing import Dict, List, Optional

from api.models import SeriesRecord
from utils.errors import MonitorError
from utils.persistence_gateway import PersistenceGateway
from utils.tmdb_client import TmdbClient

logger = logging.getLogger(__name__)


def get_missing_episodes(gateway: PersistenceGateway, series_slug: str) -> List[Dict[str, int]]:
    """Return ``[{'season': s, 'episode': e}, ...]`` for every gap in each stored season"""
    seasons: Dict[int, set] = {}
    for ep in gateway.list_episodes(series_slug):
        seasons.setdefault(ep.season, set()).add(ep.episode)

    missing = []
    for season in sorted(seasons):
        present = seasons[season]
        for number in range(1, max(present) + 1):
            if number not in present:
                missing.append({'season': season, 'episode': number})
    return missing


def get_series_stats(gateway: PersistenceGateway, series_slug: str) -> dict:
    episodes = gateway.list_episodes(series_slug)
    missing = get_missing_episodes(gateway, series_slug)
    seasons = sorted({ep.season for ep in episodes})
    return {
        'slug': series_slug,
        'total_episodes': len(episodes),
        'total_seasons': len(seasons),
        'seasons': seasons,
        'missing_count': len(missing),
        'missing': missing,
    }


def analyze_all_series(gateway: PersistenceGateway) -> List[dict]:
    """Stats for every stored series, logged as a short report"""
    all_series = gateway.list_series()
    logger.info(f"Found {len(all_series)} series in database")

    results = []
    for series in all_series:
        stats = get_series_stats(gateway, series.slug)
        stats['title'] = series.title
        results.append(stats)

        logger.info(f"{series.title} ({series.slug}) - seasons: {stats['total_seasons']}, "
                    f"episodes: {stats['total_episodes']}")
        if stats['missing_count']:
            preview = ', '.join(f"S{m['season']}E{m['episode']}" for m in stats['missing'][:5])
            more = f" ... and {stats['missing_count'] - 5} more" if stats['missing_count'] > 5 else ''
            logger.info(f"  Missing {stats['missing_count']} episode(s): {preview}{more}")
    return results


def missing_enrichment_fields(series: SeriesRecord) -> List[str]:
    missing = []
    if not series.tmdb_id:
        missing.append('tmdb_id')
    if not series.rating:
        missing.append('rating')
    if not series.genres:
        missing.append('genres')
    if not series.banner_image:
        missing.append('banner_image')
    return missing


def find_series_missing_enrichment(gateway: PersistenceGateway) -> List[SeriesRecord]:
    """Series lacking a TMDB id, a rating or genres"""
    missing = [s for s in gateway.list_series() if not s.tmdb_id or not s.rating or not s.genres]
    logger.info(f"Found {len(missing)} series missing TMDB data")
    for series in missing:
        logger.debug(f"{series.title} ({series.slug}) missing: {', '.join(missing_enrichment_fields(series))}")
    return missing


def enrich_series_data(gateway: PersistenceGateway, client: TmdbClient, series_slug: str) -> Optional[SeriesRecord]:
    """Re-run TMDB enrichment for one stored series; returns the updated record or None"""
    series = gateway.get_series_by_slug(series_slug)
    if series is None:
        logger.error(f"Series not found: {series_slug}")
        return None

    enriched = client.enrich_series(series)
    if not enriched.tmdb_id:
        logger.warning(f"No TMDB data found for '{series.title}'")
        return None

    updated = gateway.upsert_series(enriched)
    logger.info(f"Successfully enriched: {updated.title}")
    return updated


def enrich_all_series(gateway: PersistenceGateway, client: TmdbClient, delay: float = 0.3) -> dict:
    """Enrich every series missing TMDB data; returns success / failed / total counts"""
    missing = find_series_missing_enrichment(gateway)
    if not missing:
        logger.info("All series already have TMDB data")
        return {'success': 0, 'failed': 0, 'total': 0}

    success = failed = 0
    for index, series in enumerate(missing, 1):
        logger.info(f"[{index}/{len(missing)}] Processing: {series.title}")
        try:
            result = enrich_series_data(gateway, client, series.slug)
        except MonitorError as e:
            logger.error(f"Error enriching {series.slug}: {e}")
            result = None

        if result is not None and result.tmdb_id:
            success += 1
        else:
            failed += 1

        if delay > 0 and index < len(missing):
            time.sleep(delay)

    logger.info("=" * 50)
    logger.info(f"Enrichment complete - enriched: {success}, failed: {failed}, total: {len(missing)}")
    logger.info("=" * 50)
    return {'success': success, 'failed': failed, 'total': len(missing)}
