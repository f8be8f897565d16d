#!/usr/bin/env python3
"""
Series maintenance tool.

Usage:
    python3 scripts/series_sync.py analyze          # per-series stats and missing episodes
    python3 scripts/series_sync.py missing-tmdb     # series without TMDB data
    python3 scripts/series_sync.py enrich <slug>    # enrich one series with TMDB data
    python3 scripts/series_sync.py enrich-all       # enrich every series missing TMDB data
"""

import os
import sys
import argparse

# Change to project root directory (parent of scripts folder)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
os.chdir(project_root)
sys.path.insert(0, project_root)

from utils.errors import MonitorError
from utils.logging_config import setup_logging, get_logger
from utils.monitor_config import load_monitor_config, validate_config
from utils.persistence_gateway import create_gateway_from_config
from utils.series_sync import (
    analyze_all_series,
    enrich_all_series,
    enrich_series_data,
    find_series_missing_enrichment,
    missing_enrichment_fields,
)
from utils.tmdb_client import create_tmdb_client_from_config

logger = get_logger(__name__)


def parse_arguments():
    parser = argparse.ArgumentParser(description='Series maintenance: gap analysis and TMDB back-fill')
    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('analyze', help='Analyze all series and find missing episodes')
    subparsers.add_parser('missing-tmdb', help='List series missing TMDB data')
    enrich = subparsers.add_parser('enrich', help='Enrich one series with TMDB data')
    enrich.add_argument('slug', type=str, help='Series slug')
    enrich_all = subparsers.add_parser('enrich-all', help='Enrich all series missing TMDB data')
    enrich_all.add_argument('--delay', type=float, default=0.3,
                            help='Seconds to wait between series (default: 0.3)')
    return parser.parse_args()


def main():
    args = parse_arguments()

    cfg = load_monitor_config()
    setup_logging(log_level=cfg.log_level)

    try:
        validate_config(cfg)
        gateway = create_gateway_from_config(
            backend=cfg.resolved_backend,
            supabase_url=cfg.supabase_url,
            supabase_key=cfg.supabase_service_role_key,
            sqlite_path=cfg.sqlite_path,
        )
    except MonitorError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    try:
        if args.command == 'analyze':
            analyze_all_series(gateway)
            return 0

        if args.command == 'missing-tmdb':
            for series in find_series_missing_enrichment(gateway):
                print(f"{series.title} ({series.slug}) - missing: {', '.join(missing_enrichment_fields(series))}")
            return 0

        client = create_tmdb_client_from_config(cfg.tmdb_api_key, cfg.tmdb_delay_ms)
        if client is None:
            logger.error("TMDB_API_KEY is required for enrichment")
            return 1

        if args.command == 'enrich':
            return 0 if enrich_series_data(gateway, client, args.slug) else 1

        summary = enrich_all_series(gateway, client, delay=args.delay)
        return 0 if summary['failed'] == 0 else 1
    except MonitorError as e:
        logger.error(f"Series sync failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
