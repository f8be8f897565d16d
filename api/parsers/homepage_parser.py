"""
Homepage card parser.

Scans every ``<a href>`` on the homepage and turns the ones that look like
episode / watch / anime / series links into ``EpisodeCard`` objects with a
best-effort title, thumbnail and section context.

No network access and no ``time.sleep`` calls; the caller controls fetching.
"""

from __future__ import annotations

import re
import logging
from typing import List, Optional, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from api.models import EpisodeCard
from api.parsers.common import (
    collapse_whitespace,
    ensure_soup,
    get_image_src,
    is_same_origin,
    normalize_url,
)

logger = logging.getLogger(__name__)


CONTENT_LINK_RE = re.compile(r'/(episode|watch|anime|series)/', re.IGNORECASE)
EPISODE_LINK_RE = re.compile(r'/episode/', re.IGNORECASE)

CARD_CLASSES = ('post-item', 'film-item')
CONTEXT_HEADING_SELECTOR = 'header h1, header h2, header h3, h2.widget-title, h3.widget-title'
UNTITLED = 'Untitled'


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _has_class(tag: Tag, names) -> bool:
    classes = tag.get('class') or []
    return any(c in classes for c in names)


def _closest_card(anchor: Tag) -> Optional[Tag]:
    """Nearest ancestor that looks like a listing card."""
    for parent in anchor.parents:
        if not isinstance(parent, Tag):
            continue
        if parent.name in ('article', 'li') or _has_class(parent, CARD_CLASSES):
            return parent
    return None


def _closest_section(anchor: Tag) -> Optional[Tag]:
    """Nearest structural ancestor (section / article / div)."""
    for parent in anchor.parents:
        if isinstance(parent, Tag) and parent.name in ('section', 'article', 'div'):
            return parent
    return None


def _extract_context(anchor: Tag) -> tuple:
    """Return ``(heading, context)`` for the section holding *anchor*.

    *heading* is the section's header text (may be empty); *context* falls
    back to the section's id / class and finally ``'page'``.
    """
    section = _closest_section(anchor)
    if section is None:
        return '', 'page'

    heading_node = section.select_one(CONTEXT_HEADING_SELECTOR)
    heading = collapse_whitespace(heading_node.get_text()) if heading_node else ''
    if heading:
        return heading, heading

    if section.get('id'):
        return '', section.get('id')
    classes = section.get('class')
    if classes:
        return '', ' '.join(classes)
    return '', 'page'


def _extract_thumbnail(anchor: Tag, base_url: str) -> Optional[str]:
    thumb = normalize_url(get_image_src(anchor.find('img')), base_url)
    if thumb:
        return thumb

    card = _closest_card(anchor)
    if card is not None:
        return normalize_url(get_image_src(card.find('img')), base_url)
    return None


def _build_card(anchor: Tag, url: str, base_url: str) -> EpisodeCard:
    heading, context = _extract_context(anchor)

    title = collapse_whitespace(anchor.get('title') or '') or collapse_whitespace(anchor.get_text(' '))
    if not title:
        title = heading or UNTITLED

    return EpisodeCard(
        title=title,
        url=url,
        thumbnail=_extract_thumbnail(anchor, base_url),
        context=context,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_homepage_cards(html_or_soup: Union[str, BeautifulSoup], base_url: str) -> List[EpisodeCard]:
    """Parse the homepage into candidate content cards.

    Keeps same-origin links whose path contains ``/episode/``, ``/watch/``,
    ``/anime/`` or ``/series/``; the first occurrence of each normalized URL
    wins.
    """
    soup = ensure_soup(html_or_soup)
    cards = []
    seen = set()

    for anchor in soup.find_all('a', href=True):
        url = normalize_url(anchor.get('href'), base_url)
        if not url or not CONTENT_LINK_RE.search(urlparse(url).path):
            continue
        if not is_same_origin(url, base_url):
            logger.debug("Skipping off-site link: %s", url)
            continue
        if url in seen:
            continue
        seen.add(url)
        cards.append(_build_card(anchor, url, base_url))

    logger.debug("Extracted %d candidate card(s) from homepage", len(cards))
    return cards


def filter_relevant_cards(cards: List[EpisodeCard]) -> List[EpisodeCard]:
    """Keep only cards pointing at an ``/episode/`` page."""
    return [card for card in cards if card.url and EPISODE_LINK_RE.search(urlparse(card.url).path)]
