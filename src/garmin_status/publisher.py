"""Publicación del estado en el perfil de Slack."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from garmin_status.errors import PublishError

logger = logging.getLogger(__name__)

PROFILE_SET_URL = "https://slack.com/api/users.profile.set"
REQUEST_TIMEOUT_S = 15.0


class SlackStatusPublisher:
    """Sets ``status_emoji`` / ``status_text`` through users.profile.set."""

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient | None = None,
        url: str = PROFILE_SET_URL,
    ) -> None:
        """Create a publisher.

        Args:
            token: Slack user token (``xoxp-...``).
            client: Shared client; a short-lived one is opened per call if None.
            url: Endpoint override.
        """
        self._token = token
        self._client = client
        self._url = url

    async def publish(self, emoji: str, text: str) -> None:
        """Replace the Slack status. Publishing the same payload twice is harmless.

        Raises:
            PublishError: On transport failure, HTTP error or ``"ok": false``.
        """
        profile = {"status_emoji": emoji, "status_text": text, "status_expiration": 0}
        if self._client is not None:
            payload = await self._post(self._client, profile)
        else:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_S) as client:
                payload = await self._post(client, profile)

        if payload.get("ok") is not True:
            raise PublishError(f"Slack rejected status: {payload.get('error', 'unknown')}")
        logger.info("Published Slack status %s %s", emoji, text)

    async def _post(
        self, client: httpx.AsyncClient, profile: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            resp = await client.post(
                self._url,
                headers={"Authorization": f"Bearer {self._token}"},
                data={"profile": json.dumps(profile)},
            )
            resp.raise_for_status()
            payload: Any = resp.json()
        except httpx.HTTPError as exc:
            raise PublishError(f"Slack request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise PublishError("Slack returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise PublishError("Slack returned an unexpected body")
        return payload
