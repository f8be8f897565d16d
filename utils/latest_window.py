"""
Latest-episodes window.

Keeps the ``latest_episodes`` table bounded: every newly recorded episode is
upserted with a fresh ``added_at`` timestamp, then everything beyond the
``max_count`` most recent entries is pruned.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from api.models import EpisodeRecord, LatestEntry
from utils.persistence_gateway import PersistenceGateway

logger = logging.getLogger(__name__)


DEFAULT_MAX_LATEST = 9


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp; sorts lexicographically in time order"""
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


class LatestWindowMaintainer:
    """Insert-then-prune maintenance of the bounded latest window"""

    def __init__(self, gateway: PersistenceGateway, max_count: int = DEFAULT_MAX_LATEST):
        self.gateway = gateway
        self.max_count = max(1, int(max_count))

    def record(self, episode: EpisodeRecord, series_title: str, added_at: Optional[str] = None,
               thumbnail: Optional[str] = None) -> LatestEntry:
        """
        Add *episode* to the window and prune it back to ``max_count`` entries.

        Re-recording an episode already in the window refreshes its timestamp
        instead of duplicating it.
        """
        entry = LatestEntry(
            series_slug=episode.series_slug,
            series_title=series_title,
            season=episode.season,
            episode=episode.episode,
            episode_title=episode.title,
            thumbnail=episode.thumbnail or thumbnail,
            added_at=added_at or utc_timestamp(),
        )
        self.gateway.add_latest(entry)
        removed = self.gateway.prune_latest(self.max_count)
        if removed:
            logger.debug(f"Pruned {removed} old entr{'y' if removed == 1 else 'ies'} from latest window")
        logger.info(f"Added to latest: {series_title} S{episode.season}E{episode.episode}")
        return entry

    def get_latest(self, limit: Optional[int] = None) -> List[LatestEntry]:
        return self.gateway.get_latest(self.max_count if limit is None else limit)
