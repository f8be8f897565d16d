"""
Homepage poll scheduler.

Runs the discovery loop on one background thread:

    fetch homepage -> extract cards -> keep /episode/ links
    -> for each card not in the dedup cache: scrape + persist, then mark seen
    -> short delay between cards
    -> wait the poll interval (measured from cycle end) -> repeat

State machine: IDLE -> RUNNING -> STOPPING -> IDLE. ``stop()`` cancels any
pending wait immediately and lets the card being processed finish.

Usage:
    monitor = EpisodeMonitor(request_handler, scraper, homepage_url=...)
    monitor.start()
    ...
    monitor.stop()
"""

import logging
import threading
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from api.parsers.common import episode_key_from_url
from api.parsers.homepage_parser import extract_homepage_cards, filter_relevant_cards
from utils.dedup_cache import DedupCache
from utils.episode_scraper import EpisodeScraper
from utils.errors import (
    CodeParseFailure,
    FetchExhausted,
    MonitorError,
    PersistenceFailure,
    UnresolvableSeries,
)
from utils.request_handler import RequestHandler

logger = logging.getLogger(__name__)


FAILURE_STAGES = (
    (CodeParseFailure, 'episode-code'),
    (FetchExhausted, 'fetch'),
    (UnresolvableSeries, 'detail'),
    (PersistenceFailure, 'persist'),
)


def failure_stage(error: Exception) -> str:
    """Pipeline stage a per-card error belongs to, for log context"""
    for error_type, stage in FAILURE_STAGES:
        if isinstance(error, error_type):
            return stage
    return 'scrape'


class MonitorState(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    STOPPING = 'stopping'


@dataclass
class CycleResult:
    """Counters for one poll cycle"""
    cards_found: int = 0
    new_episodes: int = 0
    already_seen: int = 0
    failed: int = 0
    homepage_failed: bool = False
    interrupted: bool = False
    finished_at: str = ''

    def to_dict(self) -> dict:
        return asdict(self)


class EpisodeMonitor:
    """Fixed-delay polling loop with graceful start/stop"""

    def __init__(self, request_handler: RequestHandler, scraper: EpisodeScraper,
                 dedup_cache: Optional[DedupCache] = None, homepage_url: Optional[str] = None,
                 poll_interval: float = 3.0, card_delay: float = 0.5, max_latest_episodes: int = 9):
        self.request_handler = request_handler
        self.scraper = scraper
        self.dedup_cache = dedup_cache if dedup_cache is not None else DedupCache()
        self.homepage_url = homepage_url or request_handler.config.base_url
        self.poll_interval = poll_interval
        self.card_delay = card_delay
        self.max_latest_episodes = max_latest_episodes

        self.state = MonitorState.IDLE
        self.cycles_completed = 0
        self.last_cycle: Optional[CycleResult] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.state == MonitorState.RUNNING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, stop_timeout: float = 5.0) -> bool:
        """
        Start polling in a background thread; returns False if already started.

        A loop that is still stopping gets up to *stop_timeout* seconds to
        finish its current card before the new one starts.
        """
        thread = self._thread
        if self.state == MonitorState.STOPPING and thread is not None and thread is not threading.current_thread():
            thread.join(stop_timeout)

        with self._lock:
            if self.state != MonitorState.IDLE:
                logger.warning(f"Monitoring is already {self.state.value}")
                return False
            self.state = MonitorState.RUNNING
            self._stop_event.clear()
            self._thread = threading.Thread(target=self.run_forever, name='episode-monitor', daemon=True)

        logger.info("=" * 60)
        logger.info("Starting episode monitoring")
        logger.info(f"Target: {self.homepage_url}")
        logger.info(f"Poll interval: {self.poll_interval}s, card delay: {self.card_delay}s")
        logger.info(f"Max latest episodes: {self.max_latest_episodes}")
        logger.info("=" * 60)
        self._thread.start()
        return True

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> bool:
        """
        Request a stop; returns False if the monitor was not running.

        With *wait* the call blocks until the current card is finished and
        the loop has exited.
        """
        with self._lock:
            if self.state != MonitorState.RUNNING:
                logger.warning("Monitoring is not running")
                return False
            self.state = MonitorState.STOPPING
            self._stop_event.set()
            thread = self._thread

        logger.info("Stopping episode monitoring...")
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the background thread (if any) to exit"""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def run_forever(self) -> None:
        """Poll until stopped. Normally the body of the background thread."""
        try:
            while not self._stop_event.is_set():
                try:
                    self.run_cycle()
                except Exception as e:
                    # the next cycle is still scheduled
                    logger.exception(f"Poll cycle failed: {e}")
                if self._stop_event.is_set():
                    break
                logger.debug(f"Next poll in {self.poll_interval}s")
                self._stop_event.wait(self.poll_interval)
        finally:
            with self._lock:
                self.state = MonitorState.IDLE
                self._thread = None
            logger.info("Monitoring service stopped")

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    def run_cycle(self) -> CycleResult:
        """Run a single poll cycle. Never raises."""
        result = CycleResult()
        logger.info("Polling homepage for new episodes...")

        try:
            html_content = self.request_handler.fetch_html(self.homepage_url)
            cards = filter_relevant_cards(extract_homepage_cards(html_content, self.homepage_url))
        except MonitorError as e:
            logger.error(f"Error polling homepage: {e}")
            result.homepage_failed = True
            return self._finish_cycle(result)
        except Exception as e:
            logger.exception(f"Could not read homepage cards: {e}")
            result.homepage_failed = True
            return self._finish_cycle(result)

        result.cards_found = len(cards)
        logger.info(f"Found {len(cards)} episode card(s) on homepage")

        for card in cards:
            if self._stop_event.is_set():
                result.interrupted = True
                logger.info("Stop requested, ending cycle early")
                break

            key = episode_key_from_url(card.url)
            if key is None:
                logger.warning(f"[episode-code] Could not parse episode code from: {card.url}")
                result.failed += 1
                continue
            if key in self.dedup_cache:
                result.already_seen += 1
                continue

            logger.info(f"New episode detected: {card.title} ({card.url})")
            if self._process_card(card, key):
                result.new_episodes += 1
            else:
                result.failed += 1

            self._stop_event.wait(self.card_delay)

        if result.new_episodes:
            logger.info(f"Processed {result.new_episodes} new episode(s) this cycle")
        else:
            logger.info("No new episodes detected")
        return self._finish_cycle(result)

    def _process_card(self, card, key: str) -> bool:
        """Scrape one card; mark it seen only after it was persisted"""
        try:
            self.scraper.scrape_episode(card.url, force=False, card=card)
        except MonitorError as e:
            logger.error(f"[{failure_stage(e)}] Failed to process {card.url}: {e}")
            return False
        except Exception as e:
            # keep the loop alive; the card is retried next cycle
            logger.exception(f"Unexpected error processing {card.url}: {e}")
            return False

        self.dedup_cache.add(key)
        logger.info(f"Successfully processed: {key}")
        return True

    def _finish_cycle(self, result: CycleResult) -> CycleResult:
        result.finished_at = datetime.now(timezone.utc).isoformat()
        with self._lock:
            self.cycles_completed += 1
            self.last_cycle = result
        return result

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict:
        with self._lock:
            last_cycle = self.last_cycle.to_dict() if self.last_cycle else None
            return {
                'running': self.state == MonitorState.RUNNING,
                'state': self.state.value,
                'processed_count': len(self.dedup_cache),
                'cycles_completed': self.cycles_completed,
                'poll_interval_ms': int(self.poll_interval * 1000),
                'card_delay_ms': int(self.card_delay * 1000),
                'max_latest_episodes': self.max_latest_episodes,
                'homepage_url': self.homepage_url,
                'last_cycle': last_cycle,
            }
