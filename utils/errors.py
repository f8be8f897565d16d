"""
Error taxonomy for the episode monitor.

Per-card errors are raised by the fetch / parse / persist layers and caught
at the card-processing boundary in ``utils.monitor_scheduler``.
"""

from typing import Optional


class MonitorError(Exception):
    """Base class for all monitor errors"""


class ConfigError(MonitorError):
    """Required configuration is missing or invalid"""


class FetchExhausted(MonitorError):
    """All fetch attempts for a URL failed"""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error else 'unknown error'
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {reason}")


class CodeParseFailure(MonitorError):
    """URL does not contain a <season>x<episode> code"""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Could not parse episode code from URL: {url}")


class UnresolvableSeries(MonitorError):
    """No series identity could be resolved from an episode page"""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Could not find or derive series information for: {url}")


class PersistenceFailure(MonitorError):
    """A persistence gateway operation failed"""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ''
        super().__init__(f"Persistence operation '{operation}' failed{detail}")


class ProxyCreationFailure(MonitorError):
    """A configured proxy string is malformed"""

    def __init__(self, proxy_string: str, reason: str = 'malformed proxy string'):
        self.proxy_string = proxy_string
        super().__init__(reason)
