#!/usr/bin/env python3
"""
Episode monitor entry point.

Polls the source homepage for new episodes and ingests them into storage.

Usage:
    python3 scripts/monitor.py                 # poll until Ctrl+C / SIGTERM
    python3 scripts/monitor.py --once          # run a single cycle and exit
    python3 scripts/monitor.py --serve         # poll + control API (uvicorn)
    python3 scripts/monitor.py --serve --no-autostart
"""

import os
import sys
import signal
import argparse

# Change to project root directory (parent of scripts folder)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
os.chdir(project_root)
sys.path.insert(0, project_root)

from utils.components import build_components
from utils.errors import ConfigError, PersistenceFailure
from utils.logging_config import setup_logging, get_logger
from utils.monitor_config import load_monitor_config, validate_config
from utils.monitor_scheduler import MonitorState

logger = get_logger(__name__)


def parse_arguments():
    parser = argparse.ArgumentParser(description='Episode Monitor - poll the homepage and ingest new episodes')
    parser.add_argument('--once', action='store_true',
                        help='Run a single poll cycle and exit')
    parser.add_argument('--serve', action='store_true',
                        help='Also serve the control API with uvicorn')
    parser.add_argument('--no-autostart', action='store_true',
                        help='With --serve: wait for POST /api/monitoring/start instead of polling immediately')
    parser.add_argument('--host', type=str, default=None,
                        help='Control API host (default: API_HOST)')
    parser.add_argument('--port', type=int, default=None,
                        help='Control API port (default: API_PORT)')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)')
    return parser.parse_args()


def run_until_signalled(monitor):
    """Start the monitor and block until SIGINT / SIGTERM stops it"""

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        monitor.stop(wait=False)

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    monitor.start()
    while monitor.state != MonitorState.IDLE:
        monitor.join(0.5)


def serve(components, host, port, autostart):
    import uvicorn
    from api.server import create_app

    app = create_app(components.monitor, components.scraper, components.gateway)
    if autostart:
        components.monitor.start()
    try:
        uvicorn.run(app, host=host, port=port, log_level='info')
    finally:
        if components.monitor.state == MonitorState.RUNNING:
            components.monitor.stop(wait=True, timeout=30)


def main():
    args = parse_arguments()

    overrides = {'LOG_LEVEL': args.log_level} if args.log_level else None
    cfg = load_monitor_config(overrides)
    setup_logging(log_file=cfg.monitor_log_file, log_level=cfg.log_level)

    try:
        validate_config(cfg)
        components = build_components(cfg)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except PersistenceFailure as e:
        logger.error(f"Could not open storage: {e}")
        return 1

    logger.debug(f"Effective configuration: {cfg.to_safe_dict()}")
    components.request_handler.proxy_pool.log_statistics()

    if args.once:
        result = components.monitor.run_cycle()
        logger.info(f"Cycle finished: {result.to_dict()}")
        return 1 if result.homepage_failed else 0

    if args.serve:
        serve(components, args.host or cfg.api_host, args.port or cfg.api_port, not args.no_autostart)
    else:
        run_until_signalled(components.monitor)

    logger.info(f"Processed {len(components.monitor.dedup_cache)} episode(s) this session")
    return 0


if __name__ == '__main__':
    sys.exit(main())
