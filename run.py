#!/usr/bin/env python
"""
Backburner Screener - Single Command Startup

Runs the terminal screener by default, or serves the HTTP API with the
scanner running in the background (--serve).
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace

import uvicorn

from backburner.app import create_app
from backburner.config import load_config
from backburner.detector import BackburnerDetector
from backburner.display import (
    clear_screen,
    create_header,
    create_progress_bar,
    create_setup_notification,
    create_setups_table,
    create_summary,
)
from backburner.mexc_client import MEXCClient
from backburner.models import Timeframe
from backburner.scanner import Scanner

logger = logging.getLogger(__name__)


def print_startup_banner(config):
    """Print startup information"""
    print("\n" + "=" * 70)
    print("  🔥 Backburner Screener")
    print("=" * 70)
    print(f"  MEXC API: {config.api.base_url}")
    print(f"  Timeframes: {', '.join(tf.value for tf in config.scanner.timeframes)}")
    print(f"  Scan interval: {config.scanner.scan_interval_seconds}s")
    print("=" * 70)


def build_scanner(config):
    detector = BackburnerDetector(config.detector)
    client = MEXCClient(config.api)
    return Scanner(client, detector, config.scanner)


async def run_terminal(config, once: bool = False, clear: bool = True):
    """Terminal screener loop"""
    scanner = build_scanner(config)
    detector = scanner.detector
    notifications = []

    def render():
        if clear:
            clear_screen()
        print(create_header())
        print(create_summary(
            detector.get_active_setups(),
            len(scanner.eligible_symbols),
            scanner.is_scanning,
            scanner.status_message,
            config.scanner.timeframes,
        ))
        print(create_setups_table(detector.get_active_setups()))
        for note in notifications[-10:]:
            print(note, end='')

    def on_progress(done, total, phase):
        if clear and (done == total or done % 25 == 0):
            render()
            print(create_progress_bar(done, total, phase))

    def on_events(events):
        for event in events:
            notifications.append(create_setup_notification(event.setup, event.type))
        render()

    async with scanner.client:
        if once:
            on_events(await scanner.scan_once(on_progress))
            return

        await scanner.run(on_events=on_events, on_progress=on_progress)


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='Scan MEXC spot pairs for Backburner setups'
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Path to config.yaml (default: repo root)'
    )
    parser.add_argument(
        '--serve',
        action='store_true',
        help='Serve the HTTP API with the scanner running in the background'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single scan cycle and exit (terminal mode)'
    )
    parser.add_argument(
        '--no-clear',
        action='store_true',
        help='Do not clear the terminal between renders'
    )
    parser.add_argument(
        '--timeframes',
        type=str,
        help='Comma-separated timeframes to scan, e.g. 5m,15m,1h'
    )
    parser.add_argument(
        '--host',
        type=str,
        help='Override API host from config'
    )
    parser.add_argument(
        '--port',
        type=int,
        help='Override API port from config'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        help='Override log level from config'
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}")
        sys.exit(1)

    if args.timeframes:
        try:
            timeframes = [Timeframe(tf.strip()) for tf in args.timeframes.split(',')]
        except ValueError as e:
            print(f"Invalid timeframe: {e}")
            sys.exit(1)
        config = replace(config, scanner=replace(config.scanner, timeframes=timeframes))

    log_level = (args.log_level or config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print_startup_banner(config)

    if args.serve:
        scanner = build_scanner(config)
        app = create_app(scanner.detector, scanner, run_scanner=True)
        try:
            uvicorn.run(
                app,
                host=args.host or config.server['host'],
                port=args.port or config.server['port'],
                log_level=(args.log_level or config.server['log_level']).lower()
            )
        except KeyboardInterrupt:
            print("\n\n👋 Shutting down gracefully...")
        return

    try:
        asyncio.run(run_terminal(config, once=args.once, clear=not args.no_clear))
    except KeyboardInterrupt:
        print("\n\n👋 Shutting down gracefully...")
    except Exception as e:
        print(f"\n❌ Error running screener: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
