"""
Episode Monitor API layer.

This package provides structured parsing of the source site's homepage and
episode pages, plus a thin FastAPI control interface for the monitor.

Quick start (Python)::

    from api.parsers import extract_homepage_cards, parse_episode_page
    from api.models import EpisodeCard, EpisodeRecord

Quick start (REST)::

    python3 scripts/monitor.py --serve
"""

from api.models import (
    EpisodeCard,
    EpisodeCode,
    SeriesIdentity,
    ServerEmbed,
    EpisodeRecord,
    SeriesRecord,
    LatestEntry,
    PageMetadata,
    EpisodePageResult,
    EnrichmentFields,
)
from api.parsers import (
    extract_homepage_cards,
    filter_relevant_cards,
    parse_episode_code,
    parse_episode_page,
    extract_common_fields,
)

__all__ = [
    # Models
    'EpisodeCard',
    'EpisodeCode',
    'SeriesIdentity',
    'ServerEmbed',
    'EpisodeRecord',
    'SeriesRecord',
    'LatestEntry',
    'PageMetadata',
    'EpisodePageResult',
    'EnrichmentFields',
    # Parsers
    'extract_homepage_cards',
    'filter_relevant_cards',
    'parse_episode_code',
    'parse_episode_page',
    'extract_common_fields',
]
