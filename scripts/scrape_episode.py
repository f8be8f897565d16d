#!/usr/bin/env python3
"""
Scrape a single episode page into storage.

Usage:
    python3 scripts/scrape_episode.py https://toonstream.love/episode/naruto-1x5/
    python3 scripts/scrape_episode.py <url> --force     # rewrite if already stored
"""

import os
import sys
import json
import argparse

# Change to project root directory (parent of scripts folder)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
os.chdir(project_root)
sys.path.insert(0, project_root)

from utils.components import build_components
from utils.errors import MonitorError
from utils.logging_config import setup_logging, get_logger
from utils.monitor_config import load_monitor_config, validate_config

logger = get_logger(__name__)


def parse_arguments():
    parser = argparse.ArgumentParser(description='Scrape one episode page and store it')
    parser.add_argument('url', type=str, help='Episode page URL')
    parser.add_argument('--force', action='store_true',
                        help='Rewrite the episode even if it is already stored')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Override LOG_LEVEL')
    return parser.parse_args()


def main():
    args = parse_arguments()

    overrides = {'LOG_LEVEL': args.log_level} if args.log_level else None
    cfg = load_monitor_config(overrides)
    setup_logging(log_level=cfg.log_level)

    try:
        validate_config(cfg)
        components = build_components(cfg)
    except MonitorError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    try:
        episode = components.scraper.scrape_episode(args.url, force=args.force)
    except MonitorError as e:
        logger.error(f"Scrape failed: {e}")
        return 1

    print(json.dumps(episode.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == '__main__':
    sys.exit(main())
