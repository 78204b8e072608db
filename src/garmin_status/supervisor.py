"""Bucle de sondeo: login, lectura, formateo y publicación del estado."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from garmin_status.config import Settings
from garmin_status.errors import GarminStatusError, PublishError
from garmin_status.extract import build_status, daily_summary
from garmin_status.publisher import SlackStatusPublisher
from garmin_status.sources.garmin import GarminSession

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 600.0

SessionFactory = Callable[[], GarminSession]
Sleep = Callable[[float], Awaitable[None]]


class PollingSupervisor:
    """Owns the current GarminSession and replaces it after failures."""

    def __init__(
        self,
        settings: Settings,
        session_factory: SessionFactory,
        publisher: SlackStatusPublisher,
        interval: float = POLL_INTERVAL_S,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Create a supervisor.

        Args:
            settings: Loaded settings (bands are read from here).
            session_factory: Returns a new session in the FRESH state.
            publisher: Slack publisher.
            interval: Seconds between daemon iterations.
            sleep: Awaitable sleep, replaceable in tests.
        """
        self._settings = settings
        self._session_factory = session_factory
        self._publisher = publisher
        self._interval = interval
        self._sleep = sleep
        self._session = session_factory()

    @property
    def session(self) -> GarminSession:
        return self._session

    @property
    def interval(self) -> float:
        return self._interval

    async def run_cycle(self) -> str:
        """Run one tick and return the published status text."""
        session = self._session
        await session.ensure_logged_in()
        metrics = await session.fetch_latest_metrics()

        emoji, text = build_status(metrics, self._settings.bands)
        await self._publisher.publish(emoji, text)

        # El resumen es solo informativo.
        try:
            _log_summary(daily_summary(metrics))
        except Exception:
            logger.warning("Could not compute daily summary", exc_info=True)
        return text

    async def run_once(self) -> int:
        """Run a single tick.

        Returns:
            0 on success, 1 if login, fetch or publish failed.
        """
        try:
            await self.run_cycle()
        except GarminStatusError as exc:
            logger.error("Status update failed: %s", exc)
            return 1
        finally:
            await self._session.close()
        return 0

    async def run_forever(self) -> None:
        """Poll until the task is cancelled; a failed tick never stops the loop."""
        iteration = 0
        try:
            while True:
                iteration += 1
                try:
                    await self.run_cycle()
                except PublishError as exc:
                    # La sesión de Garmin sigue siendo válida.
                    logger.error("Iteration %d: publish failed: %s", iteration, exc)
                except Exception:
                    logger.exception(
                        "Iteration %d failed, discarding Garmin session", iteration
                    )
                    await self._replace_session()
                logger.debug("Sleeping %.0f s", self._interval)
                await self._sleep(self._interval)
        finally:
            await self._session.close()

    async def _replace_session(self) -> None:
        """Close the current session before the new one becomes visible."""
        old = self._session
        await old.close()
        self._session = self._session_factory()


def _log_summary(summary: dict[str, object]) -> None:
    logger.info(
        "Summary %s: stress avg=%s max=%s, body battery %s-%s, "
        "heart rate %s-%s (resting %s)",
        summary["date"],
        summary["stress_avg"],
        summary["stress_max"],
        summary["body_battery_min"],
        summary["body_battery_max"],
        summary["heart_rate_min"],
        summary["heart_rate_max"],
        summary["heart_rate_resting"],
    )
