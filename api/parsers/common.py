"""
Shared parsing utilities used by both the homepage and episode parsers.
"""

from __future__ import annotations

import re
import logging
from typing import Optional, Union
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from api.models import EpisodeCode, PageMetadata

logger = logging.getLogger(__name__)


EPISODE_CODE_RE = re.compile(r'(\d+)x(\d+)', re.IGNORECASE)
EPISODE_SUFFIX_RE = re.compile(r'-\d+x\d+/?$', re.IGNORECASE)
PARENTHETICAL_RE = re.compile(r'\s*\([^)]*\)\s*')
WHITESPACE_RE = re.compile(r'\s+')
YEAR_RE = re.compile(r'\d{4}')


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

def normalize_url(raw_url: Optional[str], base_url: str) -> Optional[str]:
    """Resolve *raw_url* against *base_url*.

    Returns *None* for empty values, ``javascript:`` pseudo-URLs and anything
    that does not resolve to an absolute http(s) URL.
    """
    if not raw_url:
        return None
    raw_url = raw_url.strip()
    if not raw_url or raw_url.lower().startswith('javascript:'):
        return None
    try:
        resolved = urljoin(base_url, raw_url)
        parsed = urlparse(resolved)
        # .port raises ValueError on an invalid port
        _ = parsed.port
    except ValueError:
        logger.debug("Dropping malformed URL: %s", raw_url)
        return None
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    return resolved


def is_same_origin(url: str, reference_url: str) -> bool:
    """True when *url* has the same scheme and host as *reference_url*."""
    a = urlparse(url)
    b = urlparse(reference_url)
    return a.scheme.lower() == b.scheme.lower() and a.netloc.lower() == b.netloc.lower()


def last_path_segment(url: str) -> str:
    """Return the last non-empty path segment of *url* (``''`` if none)."""
    try:
        parts = [p for p in urlparse(url).path.split('/') if p]
    except ValueError:
        return ''
    return parts[-1] if parts else ''


# ---------------------------------------------------------------------------
# Episode code / slugs / titles
# ---------------------------------------------------------------------------

def parse_episode_code(url: Optional[str]) -> Optional[EpisodeCode]:
    """Extract the first ``<digits>x<digits>`` pair from *url*.

    ``.../episode/foo-3x07/`` -> ``EpisodeCode(season=3, episode=7)``.
    Returns *None* when absent or when either number is zero.
    """
    if not url:
        return None
    match = EPISODE_CODE_RE.search(url)
    if not match:
        return None
    season, episode = int(match.group(1)), int(match.group(2))
    if season < 1 or episode < 1:
        return None
    return EpisodeCode(season=season, episode=episode)


def derive_series_slug_from_url(url: str) -> str:
    """``https://site/episode/demon-slayer-2x5/`` -> ``demon-slayer``."""
    segment = last_path_segment(url)
    return EPISODE_SUFFIX_RE.sub('', segment)


def title_from_slug(slug: str) -> str:
    """``demon-slayer`` -> ``Demon Slayer``."""
    return ' '.join(word[:1].upper() + word[1:] for word in slug.split('-') if word)


def clean_slug(name: str) -> str:
    """Lowercase, hyphenated, punctuation-stripped slug for a title."""
    slug = re.sub(r"['’]", '', name or '')
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-').lower()


def collapse_whitespace(text: Optional[str]) -> str:
    return WHITESPACE_RE.sub(' ', text or '').strip()


def sanitize_title(title: Optional[str]) -> str:
    """Strip parenthetical annotations and collapse whitespace.

    ``Naruto Shippuden (Hindi Dub)`` -> ``Naruto Shippuden``
    """
    if not title:
        return ''
    return collapse_whitespace(PARENTHETICAL_RE.sub(' ', title))


def episode_key(series_slug: str, code: EpisodeCode) -> str:
    """Stable dedup key for one episode."""
    return f"{series_slug}_{code.season}_{code.episode}"


def episode_key_from_url(url: str) -> Optional[str]:
    """Dedup key built from the URL-derived slug, or *None* without an episode code."""
    code = parse_episode_code(url)
    if code is None:
        return None
    slug = derive_series_slug_from_url(url)
    if not slug:
        return None
    return episode_key(slug, code)


# ---------------------------------------------------------------------------
# Tag helpers
# ---------------------------------------------------------------------------

def ensure_soup(html_or_soup: Union[str, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(html_or_soup, BeautifulSoup):
        return html_or_soup
    return BeautifulSoup(html_or_soup or '', 'html.parser')


def get_image_src(img: Optional[Tag]) -> Optional[str]:
    """Lazy-loaded images keep the real URL in ``data-src``."""
    if not img or not isinstance(img, Tag):
        return None
    return img.get('data-src') or img.get('src') or None


def get_meta_content(soup: BeautifulSoup, prop: str) -> str:
    """Content of ``<meta property="...">`` (or ``name=``), stripped."""
    meta = soup.find('meta', attrs={'property': prop}) or soup.find('meta', attrs={'name': prop})
    if not meta:
        return ''
    return (meta.get('content') or '').strip()


def first_text(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    return node.get_text(strip=True) if node else ''


# ---------------------------------------------------------------------------
# Common page fields
# ---------------------------------------------------------------------------

def extract_common_fields(html_or_soup: Union[str, BeautifulSoup], base_url: str) -> PageMetadata:
    """Extract title, description, year, genres and thumbnail from a series or episode page.

    Every field is best effort; missing fields stay empty.
    """
    soup = ensure_soup(html_or_soup)

    title = (first_text(soup, 'h1.entry-title')
             or get_meta_content(soup, 'og:title')
             or first_text(soup, 'title'))

    description = get_meta_content(soup, 'og:description') or first_text(soup, 'div.entry-content p')

    year = None
    year_node = soup.select_one('span.year, .year, [class*="year"]')
    if year_node:
        year_match = YEAR_RE.search(year_node.get_text())
        if year_match:
            year = int(year_match.group(0))

    genres = []
    for a in soup.select('a[rel="tag"], .genres a, [class*="genre"] a'):
        genre = a.get_text(strip=True)
        if genre and genre not in genres:
            genres.append(genre)

    thumbnail = normalize_url(
        get_image_src(soup.select_one('div.post-thumbnail img')) or get_meta_content(soup, 'og:image'),
        base_url,
    )

    return PageMetadata(
        title=collapse_whitespace(title),
        description=collapse_whitespace(description),
        year=year,
        genres=genres,
        thumbnail=thumbnail,
    )
