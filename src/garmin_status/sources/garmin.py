"""Sesión autenticada contra Garmin Connect y lectura de métricas diarias."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from enum import Enum
from types import TracebackType
from typing import Any

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

from garmin_status.errors import FetchError, LoginError
from garmin_status.model import (
    BodyBatteryRecord,
    HeartRateReading,
    HeartRateSample,
    Metrics,
    StressReading,
    StressSample,
)
from garmin_status.sources.base import (
    BrowserError,
    ElementNotFound,
    NavigationTimeout,
    PortalPage,
)

logger = logging.getLogger(__name__)

_LOCAL_TZ = tz.tzlocal()

PORTAL_URL = "https://connect.garmin.com"
SIGNIN_URL = f"{PORTAL_URL}/signin/"
STRESS_URL = PORTAL_URL + "/modern/proxy/wellness-service/wellness/dailyStress/{day}"
HEART_RATE_URL = (
    PORTAL_URL + "/modern/proxy/wellness-service/wellness/dailyHeartRate/?date={day}"
)
REFERER_URL = PORTAL_URL + "/modern/daily-summary/{day}"

LOGIN_FRAME = "iframe#gauth-widget-frame-gauth-widget"
USERNAME_FIELD = "#username"
PASSWORD_FIELD = "#password"
SUBMIT_BUTTON = "#login-btn-signin"

LOGIN_TIMEOUT_MS = 30_000
CLOSE_TIMEOUT_S = 10.0

PageFactory = Callable[[], Awaitable[PortalPage]]


class SessionState(Enum):
    """Lifecycle of a GarminSession."""

    FRESH = "fresh"
    LOGGED_IN = "logged_in"
    CLOSED = "closed"


class GarminSession:
    """One authenticated browsing session against Garmin Connect.

    A session is single use: once closed (explicitly or after a failed fetch)
    it cannot log in again and a new instance must be created.
    """

    def __init__(self, username: str, password: str, page_factory: PageFactory) -> None:
        """Create a session; the browser page is opened on the first login.

        Args:
            username: Garmin Connect account.
            password: Garmin Connect password.
            page_factory: Coroutine function returning a fresh PortalPage.
        """
        self._username = username
        self._password = password
        self._page_factory = page_factory
        self._page: PortalPage | None = None
        self.state = SessionState.FRESH

    @property
    def logged_in(self) -> bool:
        return self.state is SessionState.LOGGED_IN

    async def __aenter__(self) -> GarminSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def login(self) -> None:
        """Sign in through the embedded SSO frame.

        Raises:
            LoginError: If the session is closed, the form is missing, the
                navigation timed out or the browser failed. Never retried here.
        """
        if self.state is SessionState.CLOSED:
            raise LoginError("session is closed")

        try:
            if self._page is None:
                self._page = await self._page_factory()
            page = self._page
            await page.navigate(SIGNIN_URL, timeout_ms=LOGIN_TIMEOUT_MS)
            element = await page.wait_for_element(LOGIN_FRAME, LOGIN_TIMEOUT_MS)
            frame = await element.content_frame()
            if frame is None:
                raise ElementNotFound(LOGIN_FRAME)
            await frame.fill(USERNAME_FIELD, self._username)
            await frame.fill(PASSWORD_FIELD, self._password)
            await page.submit(frame, SUBMIT_BUTTON, LOGIN_TIMEOUT_MS)
        except ElementNotFound as exc:
            raise LoginError("form not found") from exc
        except NavigationTimeout as exc:
            raise LoginError("navigation timeout") from exc
        except BrowserError as exc:
            raise LoginError(str(exc)) from exc

        self.state = SessionState.LOGGED_IN
        logger.info("Logged in to Garmin Connect as %s", self._username)

    async def ensure_logged_in(self) -> None:
        """Log in unless the session already is."""
        if not self.logged_in:
            await self.login()

    async def fetch_latest_metrics(self) -> Metrics:
        """Fetch today's stress and heart rate, or yesterday's if today is empty.

        Returns:
            Metrics for the date that had data.

        Raises:
            FetchError: On any transport, HTTP or parse failure. The session is
                closed before the error propagates.
        """
        if not self.logged_in or self._page is None:
            raise FetchError("session is not logged in")

        today = datetime.now(tz=_LOCAL_TZ).date()
        try:
            metrics = await self._fetch_metrics(today, allow_fallback=True)
        except FetchError:
            await self.close()
            raise

        if not self.logged_in:
            raise FetchError("session closed while fetching")
        return metrics

    async def close(self) -> None:
        """Release the browser. Idempotent and never raises."""
        page, self._page = self._page, None
        self.state = SessionState.CLOSED
        if page is None:
            return
        try:
            await asyncio.wait_for(page.close(), timeout=CLOSE_TIMEOUT_S)
        except (BrowserError, asyncio.TimeoutError) as exc:
            logger.warning("Could not close browser cleanly: %s", exc)

    async def _fetch_metrics(self, day: date, allow_fallback: bool) -> Metrics:
        stress_doc = await self._get_json(STRESS_URL.format(day=day.isoformat()), day)
        if stress_doc.get("startTimestampLocal") is None:
            if not allow_fallback:
                raise FetchError(f"No stress data for {day.isoformat()}")
            yesterday = day - relativedelta(days=1)
            logger.info("No stress data for %s yet, using %s", day, yesterday)
            return await self._fetch_metrics(yesterday, allow_fallback=False)

        hr_doc = await self._get_json(HEART_RATE_URL.format(day=day.isoformat()), day)
        return Metrics(
            day=day,
            stress=parse_stress(stress_doc, day),
            heart_rate=parse_heart_rate(hr_doc, day),
        )

    async def _get_json(self, url: str, day: date) -> dict[str, Any]:
        page = self._page
        if page is None:
            raise FetchError("session is not logged in")

        headers = {
            "NK": "NT",
            "Referer": REFERER_URL.format(day=day.isoformat()),
            "Accept": "application/json",
        }
        try:
            await page.set_headers(headers)
            state = await page.navigate(url)
            if not state.ok:
                raise FetchError(f"GET {url} returned HTTP {state.status}")
            body = await page.read_body()
        except BrowserError as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc

        try:
            doc: Any = json.loads(body)
        except json.JSONDecodeError as exc:
            raise FetchError(f"Invalid JSON from {url}: {exc}") from exc
        if not isinstance(doc, dict):
            raise FetchError(f"Expected a JSON object from {url}")
        logger.debug("GET %s -> %d bytes", url, len(body))
        return doc


def parse_stress(doc: dict[str, Any], day: date) -> StressSample:
    """Parse a dailyStress document into a StressSample.

    Raises:
        FetchError: If ``startTimestampLocal`` is present but not a timestamp.
    """
    readings = (_stress_row(row) for row in _rows(doc, "stressValuesArray"))
    battery = (_battery_row(row) for row in _rows(doc, "bodyBatteryValuesArray"))
    return StressSample(
        day=day,
        start=_parse_local(doc.get("startTimestampLocal")),
        readings=tuple(r for r in readings if r),
        body_battery=tuple(b for b in battery if b),
    )


def parse_heart_rate(doc: dict[str, Any], day: date) -> HeartRateSample:
    """Parse a dailyHeartRate document into a HeartRateSample."""
    readings = (_heart_rate_row(row) for row in _rows(doc, "heartRateValues"))
    resting = doc.get("restingHeartRate")
    return HeartRateSample(
        day=day,
        readings=tuple(r for r in readings if r),
        resting=int(resting) if _is_number(resting) else None,
    )


def _rows(doc: dict[str, Any], key: str) -> list[Any]:
    """Devuelve la lista de filas; None o tipos inesperados -> lista vacía."""
    rows = doc.get(key)
    return rows if isinstance(rows, list) else []


def _is_number(value: Any) -> bool:
    """Número finito; json.loads acepta NaN e Infinity."""
    if not isinstance(value, int | float) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _epoch_ms(value: Any) -> datetime | None:
    if not _is_number(value):
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=_LOCAL_TZ)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_local(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise FetchError(f"Unexpected startTimestampLocal: {value!r}")
    try:
        return date_parser.isoparse(value).replace(tzinfo=_LOCAL_TZ)
    except (ValueError, OverflowError) as exc:
        raise FetchError(f"Unexpected startTimestampLocal: {value!r}") from exc


def _stress_row(row: Any) -> StressReading | None:
    """[timestamp_ms, stress]; None si la fila está incompleta."""
    if not isinstance(row, list) or len(row) < 2:
        return None
    ts = _epoch_ms(row[0])
    if ts is None or not _is_number(row[1]):
        return None
    return StressReading(timestamp=ts, value=int(row[1]))


def _battery_row(row: Any) -> BodyBatteryRecord | None:
    """[timestamp_ms, status, level, version]."""
    if not isinstance(row, list) or len(row) < 3:
        return None
    ts = _epoch_ms(row[0])
    if ts is None:
        return None
    status = row[1] if isinstance(row[1], str) else None
    level = int(row[2]) if _is_number(row[2]) else None
    version = float(row[3]) if len(row) > 3 and _is_number(row[3]) else None
    return BodyBatteryRecord(timestamp=ts, status=status, level=level, version=version)


def _heart_rate_row(row: Any) -> HeartRateReading | None:
    """[timestamp_ms, bpm]; bpm nulo cuando el reloj no midió."""
    if not isinstance(row, list) or len(row) < 2:
        return None
    ts = _epoch_ms(row[0])
    if ts is None:
        return None
    bpm = int(row[1]) if _is_number(row[1]) else None
    return HeartRateReading(timestamp=ts, bpm=bpm)
