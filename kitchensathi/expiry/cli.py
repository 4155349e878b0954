"""CLI entry point for the expiry notification service."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from .app import ExpiryApp
from .config import load_config

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="kitchensathi-expiry",
        description="Grocery expiry scanner and notifier",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (overrides the config file)",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Run the daily and urgent scans on schedule")
    sub.add_parser("scan", help="Run one daily expiry scan now")
    sub.add_parser("urgent", help="Run one urgent (expiring today) scan now")
    stats_parser = sub.add_parser("stats", help="Show items expiring soon")
    stats_parser.add_argument("--days", type=int, default=7)
    sub.add_parser("jobs", help="Show scheduled jobs and their next run time")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    config = load_config(args.config)

    logging.basicConfig(
        level=getattr(logging, args.log_level or config.logging.level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    match args.command:
        case "run":
            _cmd_run(config)
        case "scan" | "urgent":
            asyncio.run(_cmd_scan(config, urgent=args.command == "urgent"))
        case "stats":
            _cmd_stats(config, args.days)
        case "jobs":
            _cmd_jobs(config)


def _cmd_run(config) -> None:
    app = ExpiryApp(config)
    logger.info("Starting expiry scheduler... Press Ctrl+C to stop")
    try:
        asyncio.run(app.run_forever())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Expiry scheduler stopped")


async def _cmd_scan(config, urgent: bool) -> None:
    app = ExpiryApp(config)
    try:
        if urgent:
            result = await app.scheduler.trigger_urgent_scan()
        else:
            result = await app.scheduler.trigger_manual_scan()
    finally:
        app.close()

    if result is None:
        print("A scan of this kind is already running.")
        return
    print(
        f"{result.kind} scan: {result.candidates} candidates, "
        f"{result.notified} notified, {result.emails_sent} emails, "
        f"{result.skipped} skipped, {result.failed} failed"
    )


def _cmd_stats(config, days: int) -> None:
    app = ExpiryApp(config, transport=None)
    try:
        stats = app.expiry_stats(days)
    finally:
        app.close()
    print(json.dumps(stats, ensure_ascii=False, indent=2))


def _cmd_jobs(config) -> None:
    app = ExpiryApp(config, transport=None)
    try:
        app.scheduler.setup_jobs()
        jobs = app.scheduler.get_jobs()
    finally:
        app.close()
    for job in jobs:
        print(f"{job['id']}: {job['name']} (next run: {job['next_run']})")


if __name__ == "__main__":
    main()
