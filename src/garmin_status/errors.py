"""Jerarquía de errores de la aplicación."""

from __future__ import annotations


class GarminStatusError(Exception):
    """Base class for every error raised by garmin_status."""


class ConfigError(GarminStatusError):
    """Required configuration is missing or invalid."""


class LoginError(GarminStatusError):
    """The portal sign-in flow could not be completed."""


class FetchError(GarminStatusError):
    """A metrics document could not be fetched or parsed."""


class PublishError(GarminStatusError):
    """Slack rejected the status or could not be reached."""
