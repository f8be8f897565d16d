"""
Request Handler for the episode monitor

This module provides the HTTP fetch layer used by every other component:
- Randomized browser User-Agent per attempt from a fixed pool
- Fixed Referer (the configured homepage) and bounded timeout
- Round-robin proxy rotation with quarantine of failing proxies
- Retry across an attempt budget of ``max_retries x max(1, proxy_count)``

Usage:
    from utils.request_handler import RequestHandler, RequestConfig

    handler = RequestHandler(proxy_pool=my_proxy_pool, config=RequestConfig())
    html = handler.fetch_html(url)
"""

import random
import time
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Tuple

import requests

from utils.errors import FetchExhausted, ProxyCreationFailure
from utils.masking import mask_proxy_string
from utils.proxy_pool import ProxyPool, parse_proxy_string

logger = logging.getLogger(__name__)


USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
]


@dataclass
class RequestConfig:
    """Configuration for request handler"""
    base_url: str = 'https://toonstream.love/'
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0


class RequestHandler:
    """
    HTTP GET client with proxy rotation and retry.

    This is the only component that performs network I/O against the source
    site. A failed attempt quarantines the proxy it used; the first successful
    attempt wins and no further attempts are made.
    """

    BASE_HEADERS = {
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
        'Connection': 'keep-alive',
    }

    def __init__(self, proxy_pool: Optional[ProxyPool] = None, config: Optional[RequestConfig] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize request handler.

        Args:
            proxy_pool: ProxyPool instance owned by this handler (None = direct)
            config: RequestConfig instance with configuration settings
            session: Optional requests.Session for connection reuse
        """
        self.proxy_pool = proxy_pool if proxy_pool is not None else ProxyPool()
        self.config = config or RequestConfig()
        self.session = session or requests.Session()

    def build_headers(self) -> Dict[str, str]:
        """Build request headers with a randomly chosen User-Agent"""
        headers = self.BASE_HEADERS.copy()
        headers['User-Agent'] = random.choice(USER_AGENTS)
        headers['Referer'] = self.config.base_url
        return headers

    def get_attempt_budget(self, max_retries: int) -> int:
        """Total attempts = retries per proxy x number of proxies (at least 1)"""
        return max(1, max_retries) * max(1, len(self.proxy_pool))

    def _resolve_proxies(self, proxy: Optional[str], context_msg: str) -> Optional[Dict[str, str]]:
        """Turn a proxy string into a requests proxies dict, or None for a direct attempt"""
        if not proxy:
            return None
        try:
            return parse_proxy_string(proxy)
        except ProxyCreationFailure as e:
            logger.error(f"[{context_msg}] Failed to create proxy for {mask_proxy_string(proxy)}: {e}")
            return None

    def _do_request(self, url: str, proxies: Optional[Dict[str, str]],
                    context_msg: str) -> Tuple[Optional[str], Optional[Exception]]:
        """Execute a single HTTP GET."""
        try:
            logger.debug(f"[{context_msg}] Requesting: {url}")
            response = self.session.get(url, headers=self.build_headers(), proxies=proxies,
                                        timeout=self.config.timeout)
            response.raise_for_status()
            logger.debug(f"[{context_msg}] Response: HTTP {response.status_code}, "
                         f"Text-Length: {len(response.text)} chars")
            return response.text or '', None
        except requests.RequestException as e:
            return None, e

    def fetch_html(self, url: str, max_retries: Optional[int] = None) -> str:
        """
        Fetch a page and return its body as text.

        Args:
            url: URL to fetch
            max_retries: Retries per proxy (defaults to config.max_retries)

        Returns:
            Response body as text

        Raises:
            FetchExhausted: when every attempt in the budget failed
        """
        retries = self.config.max_retries if max_retries is None else max_retries
        total_attempts = self.get_attempt_budget(retries)
        last_error: Optional[Exception] = None

        for attempt in range(1, total_attempts + 1):
            context_msg = f"Attempt {attempt}/{total_attempts}"
            proxy = self.proxy_pool.get_next_proxy()
            proxies = self._resolve_proxies(proxy, context_msg)
            used_proxy = proxy if proxies else None

            html_content, error = self._do_request(url, proxies, context_msg)
            if error is None:
                if used_proxy:
                    self.proxy_pool.mark_success(used_proxy)
                    logger.debug(f"[{context_msg}] Success with proxy {mask_proxy_string(used_proxy)}")
                return html_content

            last_error = error
            if used_proxy:
                self.proxy_pool.mark_failed(used_proxy)

            logger.warning(f"Fetch failed ({context_msg}) for {url}: {error}")

            if attempt < total_attempts and self.config.retry_delay > 0:
                time.sleep(self.config.retry_delay)

        logger.error(f"Giving up on {url} after {total_attempts} attempts")
        raise FetchExhausted(url, total_attempts, last_error)


def create_request_handler_from_config(proxy_pool: Optional[ProxyPool] = None, **config_kwargs) -> RequestHandler:
    """
    Create a RequestHandler instance from configuration.

    Args:
        proxy_pool: Optional ProxyPool instance
        **config_kwargs: Configuration parameters for RequestConfig

    Returns:
        Configured RequestHandler instance
    """
    config = RequestConfig(**config_kwargs)
    return RequestHandler(proxy_pool=proxy_pool, config=config)
