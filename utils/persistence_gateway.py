"""
Persistence gateway for series, episodes and the latest-episodes window.

Three interchangeable backends implement the same interface:

- ``SupabaseGateway``  - PostgREST over HTTP (``requests``), the production store
- ``SqliteGateway``    - local ``sqlite3`` file, for running without Supabase
- ``InMemoryGateway``  - dict-backed store used by tests and dry runs

Natural keys:
    series           slug
    episodes         (series_slug, season, episode)
    latest_episodes  (series_slug, season, episode)

Every backend error is wrapped in ``PersistenceFailure`` so callers only
have to handle one exception type.
"""

import os
import json
import sqlite3
import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, List, Optional, Tuple

import requests

from api.models import EpisodeRecord, LatestEntry, SeriesRecord
from utils.errors import ConfigError, PersistenceFailure

logger = logging.getLogger(__name__)


SERIES_LIST_FIELDS = ('genres', 'studios', 'posters', 'backdrops')


class PersistenceGateway(ABC):
    """Storage interface used by the scraper, the latest window and the sync tools"""

    backend_name = 'abstract'

    # --- series ---
    @abstractmethod
    def upsert_series(self, series: SeriesRecord) -> SeriesRecord:
        """Insert or update a series by slug"""

    @abstractmethod
    def get_series_by_slug(self, slug: str) -> Optional[SeriesRecord]:
        """Return the series with *slug*, or None"""

    @abstractmethod
    def list_series(self) -> List[SeriesRecord]:
        """All series ordered by title"""

    # --- episodes ---
    @abstractmethod
    def upsert_episode(self, episode: EpisodeRecord) -> EpisodeRecord:
        """Insert or update an episode by (series_slug, season, episode)"""

    @abstractmethod
    def get_episode(self, series_slug: str, season: int, episode: int) -> Optional[EpisodeRecord]:
        """Return one episode, or None"""

    @abstractmethod
    def list_episodes(self, series_slug: str) -> List[EpisodeRecord]:
        """Episodes of one series ordered by season then episode"""

    # --- latest window ---
    @abstractmethod
    def add_latest(self, entry: LatestEntry) -> None:
        """Insert or update a latest-window entry by (series_slug, season, episode)"""

    @abstractmethod
    def prune_latest(self, max_count: int) -> int:
        """Delete all but the *max_count* newest entries; returns the number removed"""

    @abstractmethod
    def get_latest(self, limit: int = 9) -> List[LatestEntry]:
        """Newest entries first"""


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class InMemoryGateway(PersistenceGateway):
    """Dict-backed gateway; state is lost when the process exits"""

    backend_name = 'memory'

    def __init__(self):
        self.series: Dict[str, SeriesRecord] = {}
        self.episodes: Dict[Tuple[str, int, int], EpisodeRecord] = {}
        self.latest: Dict[Tuple[str, int, int], Tuple[int, LatestEntry]] = {}
        self._seq = 0
        self.lock = Lock()

    def upsert_series(self, series: SeriesRecord) -> SeriesRecord:
        with self.lock:
            self.series[series.slug] = SeriesRecord.from_dict(series.to_dict())
            return SeriesRecord.from_dict(series.to_dict())

    def get_series_by_slug(self, slug: str) -> Optional[SeriesRecord]:
        with self.lock:
            record = self.series.get(slug)
            return SeriesRecord.from_dict(record.to_dict()) if record else None

    def list_series(self) -> List[SeriesRecord]:
        with self.lock:
            return sorted((SeriesRecord.from_dict(s.to_dict()) for s in self.series.values()),
                          key=lambda s: s.title)

    def upsert_episode(self, episode: EpisodeRecord) -> EpisodeRecord:
        with self.lock:
            self.episodes[episode.key] = EpisodeRecord.from_dict(episode.to_dict())
            return EpisodeRecord.from_dict(episode.to_dict())

    def get_episode(self, series_slug: str, season: int, episode: int) -> Optional[EpisodeRecord]:
        with self.lock:
            record = self.episodes.get((series_slug, season, episode))
            return EpisodeRecord.from_dict(record.to_dict()) if record else None

    def list_episodes(self, series_slug: str) -> List[EpisodeRecord]:
        with self.lock:
            found = [EpisodeRecord.from_dict(e.to_dict())
                     for key, e in self.episodes.items() if key[0] == series_slug]
        return sorted(found, key=lambda e: (e.season, e.episode))

    def add_latest(self, entry: LatestEntry) -> None:
        with self.lock:
            self._seq += 1
            self.latest[entry.key] = (self._seq, LatestEntry.from_dict(entry.to_dict()))

    def _ordered_latest(self) -> List[LatestEntry]:
        ordered = sorted(self.latest.values(), key=lambda item: (item[1].added_at, item[0]), reverse=True)
        return [entry for _, entry in ordered]

    def prune_latest(self, max_count: int) -> int:
        with self.lock:
            stale = self._ordered_latest()[max(0, max_count):]
            for entry in stale:
                del self.latest[entry.key]
            return len(stale)

    def get_latest(self, limit: int = 9) -> List[LatestEntry]:
        with self.lock:
            return [LatestEntry.from_dict(e.to_dict()) for e in self._ordered_latest()[:max(0, limit)]]


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS series (
    slug TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT DEFAULT '',
    poster TEXT,
    year INTEGER,
    genres TEXT DEFAULT '[]',
    tmdb_id INTEGER,
    rating REAL,
    popularity REAL,
    status TEXT,
    studios TEXT DEFAULT '[]',
    release_date TEXT,
    total_seasons INTEGER,
    total_episodes INTEGER,
    posters TEXT DEFAULT '[]',
    backdrops TEXT DEFAULT '[]',
    banner_image TEXT
);

CREATE TABLE IF NOT EXISTS episodes (
    series_slug TEXT NOT NULL,
    season INTEGER NOT NULL,
    episode INTEGER NOT NULL,
    title TEXT DEFAULT '',
    thumbnail TEXT,
    servers TEXT DEFAULT '[]',
    PRIMARY KEY (series_slug, season, episode)
);

CREATE TABLE IF NOT EXISTS latest_episodes (
    series_slug TEXT NOT NULL,
    series_title TEXT DEFAULT '',
    season INTEGER NOT NULL,
    episode INTEGER NOT NULL,
    episode_title TEXT DEFAULT '',
    thumbnail TEXT,
    added_at TEXT NOT NULL,
    PRIMARY KEY (series_slug, season, episode)
);

CREATE INDEX IF NOT EXISTS idx_latest_added ON latest_episodes(added_at DESC);
"""

SERIES_COLUMNS = ('slug', 'title', 'description', 'poster', 'year', 'genres', 'tmdb_id', 'rating',
                  'popularity', 'status', 'studios', 'release_date', 'total_seasons',
                  'total_episodes', 'posters', 'backdrops', 'banner_image')


def _build_upsert_sql(table: str, columns: tuple, conflict: tuple) -> str:
    placeholders = ', '.join('?' for _ in columns)
    updates = ', '.join(f"{c} = excluded.{c}" for c in columns if c not in conflict)
    return (f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(conflict)}) DO UPDATE SET {updates}")


class SqliteGateway(PersistenceGateway):
    """
    SQLite-backed gateway.

    One connection is shared between the monitor thread and the API thread,
    guarded by a lock. List columns are stored as JSON text.
    """

    backend_name = 'sqlite'

    EPISODE_COLUMNS = ('series_slug', 'season', 'episode', 'title', 'thumbnail', 'servers')
    LATEST_COLUMNS = ('series_slug', 'series_title', 'season', 'episode', 'episode_title',
                      'thumbnail', 'added_at')

    def __init__(self, db_path: str = 'data/episodes.db'):
        self.db_path = db_path
        self.lock = Lock()
        if db_path != ':memory:':
            db_dir = os.path.dirname(db_path)
            if db_dir and not os.path.exists(db_dir):
                os.makedirs(db_dir)
        try:
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.executescript(SQLITE_SCHEMA)
            self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure('init', e) from e
        logger.debug(f"SQLite gateway ready at {db_path}")

    def close(self) -> None:
        with self.lock:
            self.conn.close()

    def _execute(self, operation: str, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self.lock:
            try:
                cursor = self.conn.execute(sql, params)
                rows = cursor.fetchall()
                self.conn.commit()
                return rows
            except sqlite3.Error as e:
                self.conn.rollback()
                raise PersistenceFailure(operation, e) from e

    @staticmethod
    def _series_from_row(row: sqlite3.Row) -> SeriesRecord:
        data = dict(row)
        for name in SERIES_LIST_FIELDS:
            data[name] = json.loads(data.get(name) or '[]')
        return SeriesRecord.from_dict(data)

    @staticmethod
    def _episode_from_row(row: sqlite3.Row) -> EpisodeRecord:
        data = dict(row)
        data['servers'] = json.loads(data.get('servers') or '[]')
        return EpisodeRecord.from_dict(data)

    def upsert_series(self, series: SeriesRecord) -> SeriesRecord:
        data = series.to_dict()
        params = tuple(json.dumps(data[c]) if c in SERIES_LIST_FIELDS else data[c] for c in SERIES_COLUMNS)
        self._execute('upsert_series', _build_upsert_sql('series', SERIES_COLUMNS, ('slug',)), params)
        return series

    def get_series_by_slug(self, slug: str) -> Optional[SeriesRecord]:
        rows = self._execute('get_series_by_slug', "SELECT * FROM series WHERE slug = ?", (slug,))
        return self._series_from_row(rows[0]) if rows else None

    def list_series(self) -> List[SeriesRecord]:
        rows = self._execute('list_series', "SELECT * FROM series ORDER BY title")
        return [self._series_from_row(r) for r in rows]

    def upsert_episode(self, episode: EpisodeRecord) -> EpisodeRecord:
        data = episode.to_dict()
        data['servers'] = json.dumps(data['servers'])
        params = tuple(data[c] for c in self.EPISODE_COLUMNS)
        sql = _build_upsert_sql('episodes', self.EPISODE_COLUMNS, ('series_slug', 'season', 'episode'))
        self._execute('upsert_episode', sql, params)
        return episode

    def get_episode(self, series_slug: str, season: int, episode: int) -> Optional[EpisodeRecord]:
        rows = self._execute(
            'get_episode',
            "SELECT * FROM episodes WHERE series_slug = ? AND season = ? AND episode = ?",
            (series_slug, season, episode),
        )
        return self._episode_from_row(rows[0]) if rows else None

    def list_episodes(self, series_slug: str) -> List[EpisodeRecord]:
        rows = self._execute(
            'list_episodes',
            "SELECT * FROM episodes WHERE series_slug = ? ORDER BY season, episode",
            (series_slug,),
        )
        return [self._episode_from_row(r) for r in rows]

    def add_latest(self, entry: LatestEntry) -> None:
        data = entry.to_dict()
        params = tuple(data[c] for c in self.LATEST_COLUMNS)
        sql = _build_upsert_sql('latest_episodes', self.LATEST_COLUMNS, ('series_slug', 'season', 'episode'))
        self._execute('add_latest', sql, params)

    def prune_latest(self, max_count: int) -> int:
        with self.lock:
            try:
                cursor = self.conn.execute(
                    "DELETE FROM latest_episodes WHERE rowid NOT IN ("
                    "SELECT rowid FROM latest_episodes ORDER BY added_at DESC, rowid DESC LIMIT ?)",
                    (max(0, max_count),),
                )
                self.conn.commit()
                return cursor.rowcount
            except sqlite3.Error as e:
                self.conn.rollback()
                raise PersistenceFailure('prune_latest', e) from e

    def get_latest(self, limit: int = 9) -> List[LatestEntry]:
        rows = self._execute(
            'get_latest',
            "SELECT * FROM latest_episodes ORDER BY added_at DESC, rowid DESC LIMIT ?",
            (max(0, limit),),
        )
        return [LatestEntry.from_dict(dict(r)) for r in rows]


# ---------------------------------------------------------------------------
# Supabase (PostgREST)
# ---------------------------------------------------------------------------

class SupabaseGateway(PersistenceGateway):
    """
    Supabase gateway talking to the PostgREST endpoint with ``requests``.

    Upserts use ``on_conflict`` with ``Prefer: resolution=merge-duplicates``.
    """

    backend_name = 'supabase'

    def __init__(self, url: str, service_role_key: str, session: Optional[requests.Session] = None,
                 timeout: float = 30.0):
        if not url or not service_role_key:
            raise ConfigError('SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required')
        self.rest_url = url.rstrip('/') + '/rest/v1'
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'apikey': service_role_key,
            'Authorization': f'Bearer {service_role_key}',
            'Content-Type': 'application/json',
        })

    def _request(self, operation: str, method: str, table: str, params: Optional[dict] = None,
                 payload=None, prefer: Optional[str] = None) -> list:
        headers = {'Prefer': prefer} if prefer else None
        try:
            response = self.session.request(method, f"{self.rest_url}/{table}", params=params,
                                            json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise PersistenceFailure(operation, e) from e
        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise PersistenceFailure(operation, e) from e
        return data if isinstance(data, list) else [data]

    def _upsert(self, operation: str, table: str, record: dict, conflict: str) -> list:
        return self._request(operation, 'POST', table, params={'on_conflict': conflict}, payload=[record],
                             prefer='resolution=merge-duplicates,return=representation')

    def upsert_series(self, series: SeriesRecord) -> SeriesRecord:
        rows = self._upsert('upsert_series', 'series', series.to_dict(), 'slug')
        return SeriesRecord.from_dict(rows[0]) if rows else series

    def get_series_by_slug(self, slug: str) -> Optional[SeriesRecord]:
        rows = self._request('get_series_by_slug', 'GET', 'series',
                             params={'select': '*', 'slug': f'eq.{slug}', 'limit': 1})
        return SeriesRecord.from_dict(rows[0]) if rows else None

    def list_series(self) -> List[SeriesRecord]:
        rows = self._request('list_series', 'GET', 'series', params={'select': '*', 'order': 'title'})
        return [SeriesRecord.from_dict(r) for r in rows]

    def upsert_episode(self, episode: EpisodeRecord) -> EpisodeRecord:
        rows = self._upsert('upsert_episode', 'episodes', episode.to_dict(), 'series_slug,season,episode')
        return EpisodeRecord.from_dict(rows[0]) if rows else episode

    def get_episode(self, series_slug: str, season: int, episode: int) -> Optional[EpisodeRecord]:
        rows = self._request('get_episode', 'GET', 'episodes', params={
            'select': '*',
            'series_slug': f'eq.{series_slug}',
            'season': f'eq.{season}',
            'episode': f'eq.{episode}',
            'limit': 1,
        })
        return EpisodeRecord.from_dict(rows[0]) if rows else None

    def list_episodes(self, series_slug: str) -> List[EpisodeRecord]:
        rows = self._request('list_episodes', 'GET', 'episodes', params={
            'select': '*',
            'series_slug': f'eq.{series_slug}',
            'order': 'season.asc,episode.asc',
        })
        return [EpisodeRecord.from_dict(r) for r in rows]

    def add_latest(self, entry: LatestEntry) -> None:
        self._upsert('add_latest', 'latest_episodes', entry.to_dict(), 'series_slug,season,episode')

    def prune_latest(self, max_count: int) -> int:
        rows = self._request('prune_latest', 'GET', 'latest_episodes', params={
            'select': 'series_slug,season,episode,added_at',
            'order': 'added_at.desc',
        })
        removed = 0
        for row in rows[max(0, max_count):]:
            try:
                self._request('prune_latest', 'DELETE', 'latest_episodes', params={
                    'series_slug': f"eq.{row['series_slug']}",
                    'season': f"eq.{row['season']}",
                    'episode': f"eq.{row['episode']}",
                })
                removed += 1
            except PersistenceFailure as e:
                # the next prune picks the row up again
                logger.warning(f"Failed to delete old latest entry {row['series_slug']} "
                               f"S{row['season']}E{row['episode']}: {e}")
        return removed

    def get_latest(self, limit: int = 9) -> List[LatestEntry]:
        rows = self._request('get_latest', 'GET', 'latest_episodes', params={
            'select': '*',
            'order': 'added_at.desc',
            'limit': max(0, limit),
        })
        return [LatestEntry.from_dict(r) for r in rows]


def create_gateway_from_config(backend: str = '', supabase_url: str = '', supabase_key: str = '',
                               sqlite_path: str = 'data/episodes.db',
                               session: Optional[requests.Session] = None) -> PersistenceGateway:
    """
    Create a persistence gateway from configuration.

    Args:
        backend: 'supabase', 'sqlite' or 'memory'. Empty picks supabase when
                 credentials are present, otherwise sqlite.
    """
    backend = (backend or '').strip().lower()
    if not backend:
        backend = 'supabase' if supabase_url and supabase_key else 'sqlite'

    if backend == 'supabase':
        gateway = SupabaseGateway(supabase_url, supabase_key, session=session)
    elif backend == 'sqlite':
        gateway = SqliteGateway(sqlite_path)
    elif backend == 'memory':
        gateway = InMemoryGateway()
    else:
        raise ConfigError(f"Unknown storage backend: {backend}")

    logger.info(f"Using {gateway.backend_name} persistence backend")
    return gateway
