"""
Command line entry point.

    python -m bazaar serve --host 0.0.0.0 --port 8000
    python -m bazaar sweep          # expire pending orders once
    python -m bazaar init-db        # create tables
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence

import uvicorn
from kungfu import Error, Ok

from bazaar.api import SweepPendingOrders, build_runner, create_app, gateway_from_settings, wire_services
from bazaar.config import Settings, configure_logging
from bazaar.db import create_database
from bazaar.notify import LoggingNotifier

logger = logging.getLogger("bazaar")


async def _sweep(settings: Settings) -> int:
    sessions, engine = await create_database(settings.database_url)
    runner = wire_services(
        build_runner(),
        sessions,
        settings,
        gateway=gateway_from_settings(settings),
        notifier=LoggingNotifier(),
    )
    try:
        match await runner.run(SweepPendingOrders()):
            case Ok(swept):
                return swept
            case Error(err):
                raise err
            case other:
                raise TypeError(f"unexpected sweep result {other!r}")
    finally:
        await engine.dispose()


async def _init_db(settings: Settings) -> None:
    _, engine = await create_database(settings.database_url)
    await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bazaar", description="bazaar e-commerce backend")
    parser.add_argument("--database-url", help="override BAZAAR_DATABASE_URL")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("sweep", help="expire overdue pending orders once")
    sub.add_parser("init-db", help="create database tables")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    if args.database_url:
        settings = settings.model_copy(update={"database_url": args.database_url})
    configure_logging(settings.log_level)

    match args.command:
        case "serve":
            uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
        case "sweep":
            swept = asyncio.run(_sweep(settings))
            logger.info("Sweep done, %d pending order(s) expired", swept)
        case "init-db":
            asyncio.run(_init_db(settings))
            logger.info("Database ready at %s", settings.database_url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
