"""Configuración inmutable cargada una sola vez desde el entorno."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from garmin_status.errors import ConfigError
from garmin_status.extract import DEFAULT_BANDS, parse_bands

REQUIRED_KEYS: tuple[str, ...] = ("GARMIN_USERNAME", "GARMIN_PASSWORD", "SLACK_TOKEN")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Credentials and run options shared by every component."""

    username: str
    password: str = field(repr=False)
    slack_token: str = field(repr=False)
    bands: tuple[str, ...] = DEFAULT_BANDS
    one_shot: bool = False
    debug: bool = False


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def load_settings(environ: Mapping[str, str]) -> Settings:
    """Build Settings from an environment mapping.

    Args:
        environ: Usually ``os.environ`` after ``load_dotenv``.

    Returns:
        Frozen settings.

    Raises:
        ConfigError: If any required key is missing or blank.
    """
    missing = [k for k in REQUIRED_KEYS if not environ.get(k, "").strip()]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    return Settings(
        username=environ["GARMIN_USERNAME"].strip(),
        password=environ["GARMIN_PASSWORD"],
        slack_token=environ["SLACK_TOKEN"].strip(),
        bands=parse_bands(environ.get("EMOJI_BANDS")),
        one_shot=_flag(environ.get("ONE_SHOT")),
        debug=_flag(environ.get("DEBUG")),
    )
