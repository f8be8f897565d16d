#!/usr/bin/env python3
"""
Renders config.py for the episode monitor from environment variables.

Meant for containers and CI runners where settings arrive as environment
variables (``VAR_<NAME>`` wins over ``<NAME>``). The same environment
readers back ``utils.monitor_config`` when no config.py exists.

Usage:
    python3 utils/config_generator.py                   # writes ./config.py
    python3 utils/config_generator.py -o /etc/monitor/config.py
    python3 utils/config_generator.py --dry-run         # print only
"""

import os
import re
import sys
import json
import argparse
from typing import Any, Callable, Dict, List, NamedTuple


# =============================================================================
# Environment readers
# =============================================================================

# CI systems cannot always store an empty variable; these read as "unset"
EMPTY_PLACEHOLDERS = ('__EMPTY__', '__NULL__', 'null', 'none', 'NULL', 'NONE')


def get_env(name: str, default: str = '') -> str:
    """Raw string setting; placeholders and blanks give *default* (or '')."""
    raw = os.environ.get(f'VAR_{name}')
    if raw is None:
        raw = os.environ.get(name)
    if raw is None:
        return default
    if raw in EMPTY_PLACEHOLDERS:
        return ''
    return raw or default


def get_env_int(name: str, default: int) -> int:
    """Integer setting; anything unparsable gives *default*."""
    raw = get_env(name).strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def get_env_list(name: str, default: List[str]) -> List[str]:
    """List setting from a comma separated string or a JSON array."""
    raw = get_env(name).strip()
    if not raw:
        return list(default)
    if raw.startswith('['):
        try:
            return [str(v).strip() for v in json.loads(raw) if str(v).strip()]
        except json.JSONDecodeError:
            pass
    return [part.strip() for part in raw.split(',') if part.strip()]


def format_python_value(value: Any) -> str:
    """Python literal for *value* as it should appear in config.py."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return repr(value)
    return json.dumps(value, ensure_ascii=False)


# =============================================================================
# Settings table
# =============================================================================

class Setting(NamedTuple):
    name: str
    reader: Callable
    default: Any
    section: str


SETTINGS = [
    Setting('SCRAPE_URL', get_env, 'https://toonstream.love/', 'SOURCE SITE'),
    Setting('TIMEOUT_MS', get_env_int, 30000, 'SOURCE SITE'),
    Setting('MAX_RETRIES', get_env_int, 3, 'SOURCE SITE'),
    Setting('SCRAPE_DELAY_MS', get_env_int, 1000, 'SOURCE SITE'),
    Setting('POLL_INTERVAL_MS', get_env_int, 3000, 'POLLING'),
    Setting('CARD_DELAY_MS', get_env_int, 500, 'POLLING'),
    Setting('MAX_LATEST_EPISODES', get_env_int, 9, 'POLLING'),
    Setting('PROXY_LIST', get_env_list, [], 'PROXIES'),
    Setting('TMDB_API_KEY', get_env, '', 'TMDB ENRICHMENT'),
    Setting('TMDB_DELAY_MS', get_env_int, 250, 'TMDB ENRICHMENT'),
    Setting('STORAGE_BACKEND', get_env, '', 'STORAGE'),
    Setting('SUPABASE_URL', get_env, '', 'STORAGE'),
    Setting('SUPABASE_SERVICE_ROLE_KEY', get_env, '', 'STORAGE'),
    Setting('SQLITE_PATH', get_env, 'data/episodes.db', 'STORAGE'),
    Setting('LOG_LEVEL', get_env, 'INFO', 'LOGGING'),
    Setting('MONITOR_LOG_FILE', get_env, 'logs/monitor.log', 'LOGGING'),
    Setting('API_HOST', get_env, '0.0.0.0', 'CONTROL API'),
    Setting('API_PORT', get_env_int, 3000, 'CONTROL API'),
]


def read_env_values() -> Dict[str, Any]:
    """Resolve every setting from the environment (or its default)."""
    return {s.name: s.reader(s.name, s.default) for s in SETTINGS}


# =============================================================================
# Rendering
# =============================================================================

SECTION_RULE = '# ' + '-' * 70

SECRET_PATTERNS = (
    re.compile(r"(_KEY\s*=\s*')[^']+(')"),
    re.compile(r'(_KEY\s*=\s*")[^"]+(")'),
    re.compile(r'(PROXY_LIST\s*=\s*\[)[^\]]+(\])'),
)


def generate_config_content() -> str:
    """config.py source for the current environment."""
    values = read_env_values()
    lines = ['# Episode Monitor - Configuration File',
             '# Generated by utils/config_generator.py; edit the environment, not this file']

    section = None
    for setting in SETTINGS:
        if setting.section != section:
            section = setting.section
            lines += ['', SECTION_RULE, f'# {section}', SECTION_RULE]
        lines.append(f'{setting.name} = {format_python_value(values[setting.name])}')

    return '\n'.join(lines) + '\n'


def mask_sensitive_values(content: str) -> str:
    """Hide API keys and proxy definitions in rendered config.py text."""
    for pattern in SECRET_PATTERNS:
        content = pattern.sub(r'\1***MASKED***\2', content)
    return content


def write_config(output_path: str = 'config.py', dry_run: bool = False, show_masked: bool = True) -> bool:
    """Render and (unless *dry_run*) write config.py; False when the file cannot be written."""
    content = generate_config_content()

    if dry_run:
        print(f"Dry run: {output_path} not written")
    else:
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            print(f"✗ Could not write {output_path}: {e}", file=sys.stderr)
            return False
        print(f"✓ Wrote {output_path}")

    if show_masked:
        print(mask_sensitive_values(content))
    return True


# =============================================================================
# Command line
# =============================================================================

def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description='Render config.py for the episode monitor from the environment')
    parser.add_argument('-o', '--output', default='config.py',
                        help='Where to write config.py (default: ./config.py)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Render without writing')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Do not echo the (masked) result')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_arguments(argv)
    ok = write_config(args.output, dry_run=args.dry_run, show_masked=not args.quiet)
    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
