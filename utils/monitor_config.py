"""
Runtime configuration for the episode monitor.

Sources, highest precedence first:
1. ``config.py`` in the project root (see ``config.example.py``)
2. environment variables (``VAR_<NAME>`` or ``<NAME>``)
3. built-in defaults

Usage:
    from utils.monitor_config import load_monitor_config, validate_config

    cfg = load_monitor_config()
    validate_config(cfg)
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from utils.config_generator import read_env_values
from utils.errors import ConfigError
from utils.masking import mask_full, mask_proxy_string

logger = logging.getLogger(__name__)


STORAGE_BACKENDS = ('supabase', 'sqlite', 'memory')


@dataclass
class MonitorConfig:
    """Resolved monitor settings; durations in milliseconds as configured"""
    scrape_url: str = 'https://toonstream.love/'
    timeout_ms: int = 30000
    max_retries: int = 3
    scrape_delay_ms: int = 1000
    poll_interval_ms: int = 3000
    card_delay_ms: int = 500
    max_latest_episodes: int = 9
    proxy_list: List[str] = field(default_factory=list)
    tmdb_api_key: str = ''
    tmdb_delay_ms: int = 250
    storage_backend: str = ''
    supabase_url: str = ''
    supabase_service_role_key: str = ''
    sqlite_path: str = 'data/episodes.db'
    log_level: str = 'INFO'
    monitor_log_file: str = 'logs/monitor.log'
    api_host: str = '0.0.0.0'
    api_port: int = 3000

    @property
    def resolved_backend(self) -> str:
        backend = (self.storage_backend or '').strip().lower()
        if backend:
            return backend
        return 'supabase' if self.supabase_url and self.supabase_service_role_key else 'sqlite'

    def to_dict(self) -> dict:
        return asdict(self)

    def to_safe_dict(self) -> dict:
        """Like to_dict, with keys and proxy credentials masked for logging"""
        data = self.to_dict()
        data['tmdb_api_key'] = mask_full(self.tmdb_api_key)
        data['supabase_service_role_key'] = mask_full(self.supabase_service_role_key)
        data['proxy_list'] = [mask_proxy_string(p) for p in self.proxy_list]
        return data


def _normalize_proxy_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [str(p).strip() for p in value if str(p).strip()]


def _load_user_config() -> Dict[str, Any]:
    """UPPER_CASE names defined in config.py, or {} when it does not exist"""
    try:
        import config as user_config
    except ImportError:
        return {}
    return {name: getattr(user_config, name) for name in dir(user_config) if name.isupper()}


def load_monitor_config(overrides: Optional[Dict[str, Any]] = None) -> MonitorConfig:
    """
    Build a MonitorConfig from config.py, the environment and defaults.

    Args:
        overrides: UPPER_CASE keys applied last (used by the CLI and tests)
    """
    values = read_env_values()
    values.update({k: v for k, v in _load_user_config().items() if k in values})
    if overrides:
        values.update({k: v for k, v in overrides.items() if k in values})

    return MonitorConfig(
        scrape_url=values['SCRAPE_URL'],
        timeout_ms=int(values['TIMEOUT_MS']),
        max_retries=int(values['MAX_RETRIES']),
        scrape_delay_ms=int(values['SCRAPE_DELAY_MS']),
        poll_interval_ms=int(values['POLL_INTERVAL_MS']),
        card_delay_ms=int(values['CARD_DELAY_MS']),
        max_latest_episodes=int(values['MAX_LATEST_EPISODES']),
        proxy_list=_normalize_proxy_list(values['PROXY_LIST']),
        tmdb_api_key=values['TMDB_API_KEY'] or '',
        tmdb_delay_ms=int(values['TMDB_DELAY_MS']),
        storage_backend=values['STORAGE_BACKEND'] or '',
        supabase_url=values['SUPABASE_URL'] or '',
        supabase_service_role_key=values['SUPABASE_SERVICE_ROLE_KEY'] or '',
        sqlite_path=values['SQLITE_PATH'],
        log_level=values['LOG_LEVEL'] or 'INFO',
        monitor_log_file=values['MONITOR_LOG_FILE'],
        api_host=values['API_HOST'],
        api_port=int(values['API_PORT']),
    )


def validate_config(cfg: MonitorConfig) -> None:
    """
    Check required settings.

    Raises:
        ConfigError: listing every problem found
    """
    problems = []

    parsed = urlparse(cfg.scrape_url or '')
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        problems.append(f"SCRAPE_URL must be an absolute http(s) URL (got {cfg.scrape_url!r})")

    backend = cfg.resolved_backend
    if backend not in STORAGE_BACKENDS:
        problems.append(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)} (got {backend!r})")
    elif backend == 'supabase':
        if not cfg.supabase_url:
            problems.append('SUPABASE_URL is required for the supabase backend')
        if not cfg.supabase_service_role_key:
            problems.append('SUPABASE_SERVICE_ROLE_KEY is required for the supabase backend')

    if cfg.max_retries < 1:
        problems.append('MAX_RETRIES must be at least 1')
    if cfg.max_latest_episodes < 1:
        problems.append('MAX_LATEST_EPISODES must be at least 1')
    for name in ('timeout_ms', 'scrape_delay_ms', 'poll_interval_ms', 'card_delay_ms', 'tmdb_delay_ms'):
        if getattr(cfg, name) < 0:
            problems.append(f"{name.upper()} must not be negative")

    if problems:
        raise ConfigError('Invalid configuration: ' + '; '.join(problems))

    if not cfg.tmdb_api_key:
        logger.warning("TMDB_API_KEY not configured. Series will not be enriched.")
