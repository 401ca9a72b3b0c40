"""Command-line interface for the vault sentinel."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .app import Application
from .config import load_config
from .logging_setup import configure_logging
from .server import create_app, start_server

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="vault-sentinel",
        description="Automated risk control and transaction preparation for a yield vault",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Scheduler and HTTP server until interrupted")
    sub.add_parser("check", help="Single comprehensive cycle")
    sub.add_parser("yield", help="Single yield cycle")
    sub.add_parser("serve", help="HTTP server only")

    return parser


async def _serve_forever(application: Application, with_scheduler: bool) -> None:
    cfg = application.config.server
    runner = await start_server(
        create_app(application.chat, application.scheduler), cfg.host, cfg.port
    )
    if with_scheduler:
        application.scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command; returns the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    application = Application(config)

    try:
        if args.command == "check":
            report = await application.monitor.run_comprehensive_cycle()
            return 0 if report.ok else 1
        if args.command == "yield":
            report = await application.monitor.run_yield_cycle()
            return 0 if report.ok else 1
        if args.command == "serve":
            await _serve_forever(application, with_scheduler=False)
        elif args.command == "run":
            await _serve_forever(application, with_scheduler=True)
        return 0
    finally:
        await application.close()


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
