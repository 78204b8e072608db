"""CLI para publicar estrés, body battery y pulso de Garmin en Slack."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import functools
import logging
import os

from dotenv import load_dotenv

from garmin_status.config import Settings, load_settings
from garmin_status.errors import ConfigError
from garmin_status.logger_config import setup_logging
from garmin_status.publisher import SlackStatusPublisher
from garmin_status.sources.garmin import GarminSession
from garmin_status.sources.playwright_page import launch_page
from garmin_status.supervisor import PollingSupervisor

logger = logging.getLogger(__name__)

DEBUG_SLOW_MO_MS = 250


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Publica estrés, body battery y pulso de Garmin Connect en Slack."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Una sola actualización y salir (equivale a ONE_SHOT=1).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Navegador visible y logs DEBUG (equivale a DEBUG=1).",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Archivo .env a cargar (default: busca .env desde el cwd).",
    )
    return parser.parse_args()


def build_supervisor(settings: Settings) -> PollingSupervisor:
    """Wire the Playwright page, Garmin session and Slack publisher."""
    page_factory = functools.partial(
        launch_page,
        headless=not settings.debug,
        slow_mo=DEBUG_SLOW_MO_MS if settings.debug else 0,
    )

    def session_factory() -> GarminSession:
        return GarminSession(settings.username, settings.password, page_factory)

    publisher = SlackStatusPublisher(settings.slack_token)
    return PollingSupervisor(settings, session_factory, publisher)


def main() -> int:
    """Run the status updater.

    Returns:
        0 on success or normal shutdown, 1 on missing configuration or a
        failed one-shot run.
    """
    ns = parse_args()
    load_dotenv(ns.env_file)

    try:
        settings = load_settings(os.environ)
    except ConfigError as exc:
        setup_logging()
        logger.error("%s", exc)
        return 1

    settings = dataclasses.replace(
        settings,
        one_shot=settings.one_shot or ns.once,
        debug=settings.debug or ns.debug,
    )
    setup_logging(settings.debug)
    supervisor = build_supervisor(settings)

    if settings.one_shot:
        return asyncio.run(supervisor.run_once())

    logger.info("Polling Garmin Connect every %.0f s", supervisor.interval)
    try:
        asyncio.run(supervisor.run_forever())
    except KeyboardInterrupt:
        logger.info("Stopped")
    return 0
