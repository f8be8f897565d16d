"""
Source-site HTML parsers: public API.

Usage::

    from api.parsers import extract_homepage_cards, filter_relevant_cards
    from api.parsers import parse_episode_page, extract_common_fields
"""

from api.parsers.common import (
    clean_slug,
    episode_key,
    episode_key_from_url,
    extract_common_fields,
    parse_episode_code,
    sanitize_title,
)
from api.parsers.homepage_parser import extract_homepage_cards, filter_relevant_cards
from api.parsers.episode_parser import (
    extract_server_embeds,
    extract_thumbnail,
    parse_episode_page,
    resolve_series_identity,
)

__all__ = [
    'clean_slug',
    'episode_key',
    'episode_key_from_url',
    'extract_common_fields',
    'parse_episode_code',
    'sanitize_title',
    'extract_homepage_cards',
    'filter_relevant_cards',
    'extract_server_embeds',
    'extract_thumbnail',
    'parse_episode_page',
    'resolve_series_identity',
]
