#!/usr/bin/env python3
"""
Command-line interface for the shared shopping list service.

Usage:
    python cli.py [command] [options]

Commands:
    serve       Run the chat bot and the HTTP API against one list
    test        Run the test suite

Environment:
    BOT_TOKEN, ALLOWED_CHAT_IDS, NOTIFY_CHAT_IDS, API_TOKEN, API_HOST,
    API_PORT, DB_PATH, LOG_LEVEL (see shared/config.py)

Examples:
    BOT_TOKEN=... API_TOKEN=secret python cli.py serve
    python cli.py serve --port 9000 --log-level debug
    python cli.py test -v
"""

import argparse
import asyncio
import logging
import subprocess
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Optional

import uvicorn

from api.main import create_app
from bot.commands import CommandProcessor
from bot.poller import run_polling
from shared.auth import AuthGuard
from shared.channels import ChatNotifier, LoggingChannel, TelegramChannel
from shared.config import Settings, parse_log_level
from shared.data_store import ShoppingListStore
from shared.errors import ConfigError

logger = logging.getLogger("service")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )


async def serve(settings: Settings) -> None:
    """
    Run every enabled front-end until one of them stops.

    Raises:
        ConfigError: If neither BOT_TOKEN nor API_TOKEN is set
        StoreUnavailableError: If the database cannot be opened
    """
    if not settings.bot_enabled and not settings.api_enabled:
        raise ConfigError("Set BOT_TOKEN, API_TOKEN or both")

    store = ShoppingListStore(settings.db_path)
    store.open()
    try:
        async with AsyncExitStack() as stack:
            services = []
            bot_username: Optional[str] = None

            if settings.bot_enabled:
                telegram = await stack.enter_async_context(TelegramChannel(settings.bot_token))
                me = await telegram.get_me()
                bot_username = me.get("username")
                logger.info(f"Bot starting as @{bot_username}")
                channel = telegram
                processor = CommandProcessor(store, settings.is_chat_allowed, bot_username)
                services.append(run_polling(telegram, processor))
            else:
                logger.warning("BOT_TOKEN is not set; chat bot disabled, broadcasts are only logged")
                channel = LoggingChannel()

            if settings.api_enabled:
                app = create_app(
                    store=store,
                    auth_guard=AuthGuard(settings.api_token),
                    notifier=ChatNotifier(channel),
                    broadcast_chat_ids=settings.notify_chat_ids,
                )
                server = uvicorn.Server(uvicorn.Config(
                    app,
                    host=settings.api_host,
                    port=settings.api_port,
                    log_level=settings.log_level,
                ))
                logger.info(f"API listening on http://{settings.api_host}:{settings.api_port}")
                services.append(server.serve())
            else:
                logger.warning("API_TOKEN is not set; HTTP API disabled")

            tasks = [asyncio.ensure_future(service) for service in services]
            try:
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    task.result()
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
    finally:
        store.close()


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = [sys.executable, "-m", "pytest"] + args
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Shared shopping list service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve
  %(prog)s serve --host 127.0.0.1 --port 9000
  %(prog)s test -v
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the chat bot and the HTTP API")
    serve_parser.add_argument("--host", help="Host to bind the API to (default: API_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port to bind the API to (default: API_PORT)")
    serve_parser.add_argument("--db", help="SQLite database file (default: DB_PATH)")
    serve_parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL)")

    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    args = parser.parse_args()

    if args.command == "serve":
        try:
            settings = Settings.from_env()
            if args.log_level:
                settings.log_level = parse_log_level(args.log_level)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
        if args.host:
            settings.api_host = args.host
        if args.port:
            settings.api_port = args.port
        if args.db:
            settings.db_path = Path(args.db)

        configure_logging(settings.log_level)
        try:
            asyncio.run(serve(settings))
        except ConfigError as e:
            logger.error(str(e))
            sys.exit(2)
        except KeyboardInterrupt:
            logger.info("Stopped")
    elif args.command == "test":
        run_tests(args.pytest_args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
