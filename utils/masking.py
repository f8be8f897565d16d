"""
Helpers that hide secrets and proxy endpoints before they reach a log line.

Keys are hidden completely; hostnames, IPs and proxy definitions keep just
enough of their shape to tell entries apart in the logs.
"""

import re
from typing import Optional

FULL_MASK = '********'
IPV4_RE = re.compile(r'^(\d{1,3})\.\d{1,3}\.\d{1,3}\.(\d{1,3})$')


def mask_full(value: Optional[str]) -> str:
    """'********' for any non-empty value (API keys, service-role keys)."""
    return FULL_MASK if value else 'None'


def mask_partial(value: Optional[str], show_start: int = 2, show_end: int = 2,
                 min_masked: int = 2) -> str:
    """
    Keep a few characters at each end of *value* and star out the middle.

    Short values give up visible characters (never below one per side)
    until at least *min_masked* characters are hidden:
        'username' -> 'us****me', 'test' -> 't**t', 'abc' -> 'a*c'
    """
    if not value:
        return 'None'

    text = str(value)
    if len(text) <= 2:
        return '*' * len(text)

    start, end = show_start, show_end
    while start + end > len(text) - min_masked and (start > 1 or end > 1):
        if start >= end:
            start -= 1
        else:
            end -= 1

    return text[:start] + '*' * (len(text) - start - end) + text[-end:]


def mask_ip_address(host: Optional[str]) -> str:
    """192.168.1.100 -> 192.xxx.xxx.100; hostnames are partially masked."""
    if not host:
        return 'None'

    match = IPV4_RE.match(str(host))
    if match:
        return f"{match.group(1)}.xxx.xxx.{match.group(2)}"
    return mask_partial(host, show_start=2, show_end=3)


def mask_proxy_string(proxy_string: Optional[str]) -> str:
    """
    Mask a ``host:port[:user:pass]`` proxy definition.

    '203.0.113.7:8080:bob:secret' -> '203.xxx.xxx.7:8080:***:***'
    """
    if not proxy_string:
        return 'None'

    host, *rest = str(proxy_string).split(':')
    masked = mask_ip_address(host)
    if rest:
        masked += f":{rest[0]}"
    if len(rest) > 1:
        masked += ':***:***'
    return masked
