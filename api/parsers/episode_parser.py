"""
Episode detail-page parser.

Resolves the series an episode belongs to, a representative thumbnail and
the embedded video sources. Series identity is resolved by an ordered list
of strategies, most trusted first:

1. ``nav.breadcrumb`` link to a ``/series/`` page
2. ``div.breadcrumb`` link to a ``/series/`` page
3. slug derived from the episode URL (``foo-bar-1x5`` -> ``foo-bar``)
4. ``og:title`` text before its first separator

Each strategy is a pure function ``(soup, url, base_url) -> SeriesIdentity | None``
so it can be tested on its own.
"""

from __future__ import annotations

import re
import logging
from typing import Callable, List, Optional, Tuple, Union

from bs4 import BeautifulSoup

from api.models import EpisodePageResult, SeriesIdentity, ServerEmbed
from api.parsers.common import (
    clean_slug,
    collapse_whitespace,
    derive_series_slug_from_url,
    ensure_soup,
    extract_common_fields,
    get_image_src,
    get_meta_content,
    last_path_segment,
    normalize_url,
    sanitize_title,
    title_from_slug,
)
from utils.errors import UnresolvableSeries

logger = logging.getLogger(__name__)


OPTION_SLOTS = range(1, 21)
OG_TITLE_SEPARATOR_RE = re.compile(r'\s+[-|–—]\s+|\s*\|\s*')

SeriesResolver = Callable[[BeautifulSoup, str, str], Optional[SeriesIdentity]]


# ---------------------------------------------------------------------------
# Series identity strategies
# ---------------------------------------------------------------------------

def _from_breadcrumb(soup: BeautifulSoup, base_url: str, container: str, source: str) -> Optional[SeriesIdentity]:
    links = soup.select(f'{container} a[href*="/series/"]')
    if not links:
        return None
    link = links[-1]
    title = link.get_text(strip=True)
    series_url = normalize_url(link.get('href'), base_url)
    if not title or not series_url or not last_path_segment(series_url):
        return None
    return SeriesIdentity(title=title, slug=clean_slug(sanitize_title(title)),
                          series_url=series_url, source=source)


def resolve_from_nav_breadcrumb(soup: BeautifulSoup, url: str, base_url: str) -> Optional[SeriesIdentity]:
    return _from_breadcrumb(soup, base_url, 'nav.breadcrumb', 'nav-breadcrumb')


def resolve_from_div_breadcrumb(soup: BeautifulSoup, url: str, base_url: str) -> Optional[SeriesIdentity]:
    return _from_breadcrumb(soup, base_url, 'div.breadcrumb', 'div-breadcrumb')


def resolve_from_url(soup: BeautifulSoup, url: str, base_url: str) -> Optional[SeriesIdentity]:
    slug = derive_series_slug_from_url(url).lower()
    if not slug:
        return None
    return SeriesIdentity(title=title_from_slug(slug), slug=slug,
                          series_url=normalize_url(f'/series/{slug}/', base_url), source='url')


def resolve_from_og_title(soup: BeautifulSoup, url: str, base_url: str) -> Optional[SeriesIdentity]:
    og_title = get_meta_content(soup, 'og:title')
    if not og_title:
        return None
    title = OG_TITLE_SEPARATOR_RE.split(og_title, maxsplit=1)[0].strip()
    slug = clean_slug(sanitize_title(title))
    if not title or not slug:
        return None
    return SeriesIdentity(title=title, slug=slug,
                          series_url=normalize_url(f'/series/{slug}/', base_url), source='og-title')


SERIES_RESOLVERS: List[Tuple[str, SeriesResolver]] = [
    ('nav-breadcrumb', resolve_from_nav_breadcrumb),
    ('div-breadcrumb', resolve_from_div_breadcrumb),
    ('url', resolve_from_url),
    ('og-title', resolve_from_og_title),
]


def resolve_series_identity(html_or_soup: Union[str, BeautifulSoup], url: str,
                            base_url: str) -> Optional[SeriesIdentity]:
    """Try each strategy in order; return the first complete identity with a sanitized title."""
    soup = ensure_soup(html_or_soup)
    for name, resolver in SERIES_RESOLVERS:
        identity = resolver(soup, url, base_url)
        if identity is None or not identity.title or not identity.slug:
            logger.debug("Series strategy '%s' gave no result for %s", name, url)
            continue
        identity.title = sanitize_title(identity.title) or identity.title
        logger.debug("Series resolved via '%s': %s (%s)", name, identity.title, identity.slug)
        return identity
    return None


# ---------------------------------------------------------------------------
# Thumbnail / servers
# ---------------------------------------------------------------------------

def extract_thumbnail(html_or_soup: Union[str, BeautifulSoup], base_url: str) -> Optional[str]:
    """Video-options image, then post thumbnail, then ``og:image``."""
    soup = ensure_soup(html_or_soup)
    candidates = (
        get_image_src(soup.select_one('.video-options img')),
        get_image_src(soup.select_one('.post-thumbnail img')),
        get_meta_content(soup, 'og:image'),
    )
    for candidate in candidates:
        thumb = normalize_url(candidate, base_url)
        if thumb:
            return thumb
    return None


def _iframe_src(iframe) -> Optional[str]:
    return iframe.get('src') or iframe.get('data-src') or None


def extract_server_embeds(html_or_soup: Union[str, BeautifulSoup], base_url: str) -> List[ServerEmbed]:
    """Collect iframe sources from ``div#options-N`` slots, then any remaining iframes.

    Iframes from the numbered slots carry their option index; leftovers are
    tagged ``option=None`` and skipped when their URL was already collected.
    """
    soup = ensure_soup(html_or_soup)
    servers: List[ServerEmbed] = []

    for option in OPTION_SLOTS:
        container = soup.find('div', id=f'options-{option}')
        if container is None:
            continue
        for iframe in container.find_all('iframe'):
            url = normalize_url(_iframe_src(iframe), base_url)
            if url:
                servers.append(ServerEmbed(url=url, option=option))

    collected = {s.url for s in servers}
    for iframe in soup.find_all('iframe'):
        url = normalize_url(_iframe_src(iframe), base_url)
        if url and url not in collected:
            servers.append(ServerEmbed(url=url, option=None))
            collected.add(url)

    return servers


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_episode_page(html_content: str, url: str, base_url: str) -> EpisodePageResult:
    """Parse one episode page.

    Raises:
        UnresolvableSeries: when no strategy yields a series identity
    """
    soup = ensure_soup(html_content)

    identity = resolve_series_identity(soup, url, base_url)
    if identity is None:
        raise UnresolvableSeries(url)

    metadata = extract_common_fields(soup, base_url)

    return EpisodePageResult(
        url=url,
        series=identity,
        title=collapse_whitespace(metadata.title),
        thumbnail=extract_thumbnail(soup, base_url),
        servers=extract_server_embeds(soup, base_url),
    )
