"""Implementación de PortalPage sobre Playwright (API asíncrona)."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from playwright.async_api import (
    Browser,
    ElementHandle,
    Frame,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from garmin_status.sources.base import (
    DEFAULT_TIMEOUT_MS,
    BrowserError,
    ElementNotFound,
    FrameHandle,
    NavigationTimeout,
    PageState,
    PortalPage,
)

logger = logging.getLogger(__name__)


class PlaywrightFrame:
    """FrameHandle backed by a Playwright frame."""

    def __init__(self, frame: Frame) -> None:
        self.frame = frame

    async def fill(self, selector: str, value: str) -> None:
        try:
            await self.frame.fill(selector, value)
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector) from exc
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc

    async def click(self, selector: str) -> None:
        try:
            await self.frame.click(selector)
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector) from exc
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc


class PlaywrightElement:
    """ElementHandle backed by a Playwright element."""

    def __init__(self, handle: ElementHandle) -> None:
        self._handle = handle

    async def content_frame(self) -> FrameHandle | None:
        try:
            frame = await self._handle.content_frame()
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc
        return PlaywrightFrame(frame) if frame is not None else None


class PlaywrightPage(PortalPage):
    """Chromium page driven by Playwright."""

    def __init__(self, playwright: Playwright, browser: Browser, page: Page) -> None:
        self._playwright = playwright
        self._browser = browser
        self._page = page

    async def navigate(
        self, url: str, wait_until: str = "load", timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> PageState:
        logger.debug("Navigating to %s", url)
        try:
            response = await self._page.goto(
                url,
                wait_until=wait_until,  # type: ignore[arg-type]
                timeout=timeout_ms,
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(url) from exc
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc
        return PageState(
            url=self._page.url, status=response.status if response else None
        )

    async def wait_for_element(
        self, selector: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> PlaywrightElement:
        try:
            handle = await self._page.wait_for_selector(
                selector, state="attached", timeout=timeout_ms
            )
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector) from exc
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc
        if handle is None:
            raise ElementNotFound(selector)
        return PlaywrightElement(handle)

    async def submit(
        self, frame: FrameHandle, selector: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> PageState:
        try:
            async with self._page.expect_navigation(timeout=timeout_ms) as nav:
                await frame.click(selector)
            response = await nav.value
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(self._page.url) from exc
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc
        return PageState(
            url=self._page.url, status=response.status if response else None
        )

    async def read_body(self) -> str:
        try:
            return await self._page.inner_text("body")
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc

    async def set_headers(self, headers: Mapping[str, str]) -> None:
        try:
            await self._page.set_extra_http_headers(dict(headers))
        except PlaywrightError as exc:
            raise BrowserError(str(exc)) from exc

    async def close(self) -> None:
        errors: list[str] = []
        for step in (self._browser.close, self._playwright.stop):
            try:
                await step()
            except PlaywrightError as exc:
                errors.append(str(exc))
        if errors:
            raise BrowserError("; ".join(errors))


async def launch_page(headless: bool = True, slow_mo: float = 0) -> PlaywrightPage:
    """Start Playwright, launch Chromium and open one page.

    Args:
        headless: False opens a visible window (debug runs).
        slow_mo: Delay in ms between Playwright operations.

    Raises:
        BrowserError: If Chromium could not be started.
    """
    try:
        playwright = await async_playwright().start()
    except PlaywrightError as exc:
        raise BrowserError(f"Could not start Playwright: {exc}") from exc
    try:
        browser = await playwright.chromium.launch(headless=headless, slow_mo=slow_mo)
        page = await browser.new_page()
    except PlaywrightError as exc:
        await playwright.stop()
        raise BrowserError(f"Could not launch Chromium: {exc}") from exc
    return PlaywrightPage(playwright, browser, page)
