"""Interfaz mínima de automatización del navegador usada por la sesión."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

DEFAULT_TIMEOUT_MS = 30_000


class BrowserError(Exception):
    """Transport level failure reported by the browser."""


class ElementNotFound(BrowserError):
    """A selector did not appear within its timeout."""


class NavigationTimeout(BrowserError):
    """A navigation did not complete within its timeout."""


@dataclass(frozen=True)
class PageState:
    """Result of a navigation."""

    url: str
    status: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is not None and 200 <= self.status < 300


class FrameHandle(Protocol):
    """Document inside an iframe."""

    async def fill(self, selector: str, value: str) -> None: ...

    async def click(self, selector: str) -> None: ...


class ElementHandle(Protocol):
    """Element located on the page."""

    async def content_frame(self) -> FrameHandle | None: ...


class PortalPage(ABC):
    """Abstract browser page."""

    @abstractmethod
    async def navigate(
        self, url: str, wait_until: str = "load", timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> PageState:
        """Load ``url``.

        Raises:
            NavigationTimeout: If the page did not load in time.
            BrowserError: On any other transport failure.
        """

    @abstractmethod
    async def wait_for_element(
        self, selector: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> ElementHandle:
        """Wait for ``selector`` to be attached.

        Raises:
            ElementNotFound: If it did not appear in time.
        """

    @abstractmethod
    async def submit(
        self, frame: FrameHandle, selector: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> PageState:
        """Click ``selector`` inside ``frame`` and wait for the page navigation.

        Raises:
            ElementNotFound: If the button is missing.
            NavigationTimeout: If no navigation happened in time.
        """

    @abstractmethod
    async def read_body(self) -> str:
        """Return the text content of the current document."""

    @abstractmethod
    async def set_headers(self, headers: Mapping[str, str]) -> None:
        """Send ``headers`` with every following request."""

    @abstractmethod
    async def close(self) -> None:
        """Release the page and its browser."""
