"""
Data models for the episode monitor.

All models use dataclasses for lightweight internal usage and easy
serialisation to dicts / JSON (for the persistence adapters and the FastAPI
control layer).
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from typing import List, Optional


# ---------------------------------------------------------------------------
# Homepage card
# ---------------------------------------------------------------------------

@dataclass
class EpisodeCard:
    """A candidate episode link discovered on the homepage (never stored)."""
    title: str
    url: str
    thumbnail: Optional[str] = None
    context: str = 'page'

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Episode code / series identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EpisodeCode:
    """``<season>x<episode>`` pair parsed from a URL."""
    season: int
    episode: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SeriesIdentity:
    """Canonical series title + slug resolved from an episode page.

    ``series_url`` is the series landing page used for first-sight
    metadata extraction.
    """
    title: str
    slug: str
    series_url: Optional[str] = None
    source: str = ''

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------

@dataclass
class ServerEmbed:
    """One embedded video source; ``option`` is None for iframes found outside option slots."""
    url: str
    option: Optional[int] = None

    def to_dict(self) -> dict:
        return {'option': self.option, 'url': self.url}


@dataclass
class EpisodeRecord:
    """A stored episode. Natural key: (series_slug, season, episode)."""
    series_slug: str
    season: int
    episode: int
    title: str = ''
    thumbnail: Optional[str] = None
    servers: List[ServerEmbed] = field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.series_slug, self.season, self.episode)

    def to_dict(self) -> dict:
        return {
            'series_slug': self.series_slug,
            'season': self.season,
            'episode': self.episode,
            'title': self.title,
            'thumbnail': self.thumbnail,
            'servers': [s.to_dict() for s in self.servers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EpisodeRecord':
        servers = [
            ServerEmbed(url=s.get('url', ''), option=s.get('option'))
            for s in (data.get('servers') or [])
            if isinstance(s, dict) and s.get('url')
        ]
        return cls(
            series_slug=data['series_slug'],
            season=int(data['season']),
            episode=int(data['episode']),
            title=data.get('title') or '',
            thumbnail=data.get('thumbnail') or None,
            servers=servers,
        )


@dataclass
class SeriesRecord:
    """A stored series. Unique key: slug.

    The optional enrichment fields are filled once, when the series is first
    seen, if an enrichment collaborator is configured.
    """
    slug: str
    title: str
    description: str = ''
    poster: Optional[str] = None
    year: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    # enrichment
    tmdb_id: Optional[int] = None
    rating: Optional[float] = None
    popularity: Optional[float] = None
    status: Optional[str] = None
    studios: List[str] = field(default_factory=list)
    release_date: Optional[str] = None
    total_seasons: Optional[int] = None
    total_episodes: Optional[int] = None
    posters: List[str] = field(default_factory=list)
    backdrops: List[str] = field(default_factory=list)
    banner_image: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'SeriesRecord':
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for list_field in ('genres', 'studios', 'posters', 'backdrops'):
            if values.get(list_field) is None:
                values[list_field] = []
        return cls(**values)


@dataclass
class LatestEntry:
    """One row of the bounded "latest episodes" window. Natural key: (series_slug, season, episode)."""
    series_slug: str
    series_title: str
    season: int
    episode: int
    episode_title: str = ''
    thumbnail: Optional[str] = None
    added_at: str = ''

    @property
    def key(self) -> tuple:
        return (self.series_slug, self.season, self.episode)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'LatestEntry':
        return cls(
            series_slug=data['series_slug'],
            series_title=data.get('series_title') or '',
            season=int(data['season']),
            episode=int(data['episode']),
            episode_title=data.get('episode_title') or '',
            thumbnail=data.get('thumbnail') or None,
            added_at=data.get('added_at') or '',
        )


# ---------------------------------------------------------------------------
# Parse results
# ---------------------------------------------------------------------------

@dataclass
class PageMetadata:
    """Descriptive fields shared by series and episode pages."""
    title: str = ''
    description: str = ''
    year: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    thumbnail: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EpisodePageResult:
    """Everything the detail resolver extracts from one episode page."""
    url: str
    series: SeriesIdentity
    title: str = ''
    thumbnail: Optional[str] = None
    servers: List[ServerEmbed] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'url': self.url,
            'series': self.series.to_dict(),
            'title': self.title,
            'thumbnail': self.thumbnail,
            'servers': [s.to_dict() for s in self.servers],
        }


@dataclass
class EnrichmentFields:
    """Optional descriptive fields returned by the enrichment collaborator."""
    tmdb_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    popularity: Optional[float] = None
    status: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    studios: List[str] = field(default_factory=list)
    release_date: Optional[str] = None
    total_seasons: Optional[int] = None
    total_episodes: Optional[int] = None
    posters: List[str] = field(default_factory=list)
    backdrops: List[str] = field(default_factory=list)
    poster: Optional[str] = None
    banner_image: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
