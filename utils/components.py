"""
Wires the monitor's collaborators together from a MonitorConfig.

Shared by the command line scripts and the control API.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from utils.dedup_cache import DedupCache
from utils.episode_scraper import EpisodeScraper
from utils.latest_window import LatestWindowMaintainer
from utils.monitor_config import MonitorConfig
from utils.monitor_scheduler import EpisodeMonitor
from utils.persistence_gateway import PersistenceGateway, create_gateway_from_config
from utils.proxy_pool import create_proxy_pool_from_config
from utils.request_handler import RequestHandler, create_request_handler_from_config
from utils.tmdb_client import TmdbClient, create_tmdb_client_from_config

logger = logging.getLogger(__name__)


@dataclass
class MonitorComponents:
    request_handler: RequestHandler
    gateway: PersistenceGateway
    latest_window: LatestWindowMaintainer
    enricher: Optional[TmdbClient]
    scraper: EpisodeScraper
    monitor: EpisodeMonitor


def build_components(cfg: MonitorConfig, gateway: Optional[PersistenceGateway] = None) -> MonitorComponents:
    """Create every collaborator for *cfg*; pass *gateway* to reuse an existing store"""
    proxy_pool = create_proxy_pool_from_config(cfg.proxy_list)
    request_handler = create_request_handler_from_config(
        proxy_pool=proxy_pool,
        base_url=cfg.scrape_url,
        timeout=cfg.timeout_ms / 1000.0,
        max_retries=cfg.max_retries,
        retry_delay=cfg.scrape_delay_ms / 1000.0,
    )

    if gateway is None:
        gateway = create_gateway_from_config(
            backend=cfg.resolved_backend,
            supabase_url=cfg.supabase_url,
            supabase_key=cfg.supabase_service_role_key,
            sqlite_path=cfg.sqlite_path,
        )

    latest_window = LatestWindowMaintainer(gateway, cfg.max_latest_episodes)
    enricher = create_tmdb_client_from_config(cfg.tmdb_api_key, cfg.tmdb_delay_ms)
    scraper = EpisodeScraper(request_handler, gateway, latest_window=latest_window,
                             enricher=enricher, base_url=cfg.scrape_url)
    monitor = EpisodeMonitor(
        request_handler,
        scraper,
        dedup_cache=DedupCache(),
        homepage_url=cfg.scrape_url,
        poll_interval=cfg.poll_interval_ms / 1000.0,
        card_delay=cfg.card_delay_ms / 1000.0,
        max_latest_episodes=cfg.max_latest_episodes,
    )

    return MonitorComponents(
        request_handler=request_handler,
        gateway=gateway,
        latest_window=latest_window,
        enricher=enricher,
        scraper=scraper,
        monitor=monitor,
    )
