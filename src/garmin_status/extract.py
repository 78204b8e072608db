"""Formateo del estado de Slack a partir de las métricas del día."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence

import pandas as pd

from garmin_status.model import Metrics

UNKNOWN_BAND = ":grey_question:"
MISSING_VALUE = "-1"

# De peor a mejor estado.
DEFAULT_BANDS: tuple[str, ...] = (
    ":skull:",
    ":dizzy_face:",
    ":tired_face:",
    ":weary:",
    ":confused:",
    ":neutral_face:",
    ":slightly_smiling_face:",
    ":smiley:",
    ":grin:",
    ":star-struck:",
)

_BAND_DELIMITERS = re.compile(r"[:\s]+")


def parse_bands(raw: str | None) -> tuple[str, ...]:
    """Split a user supplied band list into Slack emoji codes.

    Accepts ``":a: :b:"``, ``"a b"`` or ``"a:b"``. Empty input falls back to
    DEFAULT_BANDS.
    """
    if not raw:
        return DEFAULT_BANDS
    names = [n for n in _BAND_DELIMITERS.split(raw) if n]
    if not names:
        return DEFAULT_BANDS
    return tuple(f":{n}:" for n in names)


def select_band(level: float | None, bands: Sequence[str]) -> str:
    """Map a body battery level (0-100) onto one of ``bands``.

    Args:
        level: Body battery level, or None when there is no record.
        bands: Ordered band names, least to most favourable.

    Returns:
        ``bands[floor(level / 100 * len(bands))]`` clamped to a valid index,
        or UNKNOWN_BAND when there is nothing to map.
    """
    if level is None or not bands:
        return UNKNOWN_BAND
    idx = math.floor((level / 100) * len(bands))
    idx = min(max(idx, 0), len(bands) - 1)
    return bands[idx]


def _display(value: int | None) -> str:
    return MISSING_VALUE if value is None else str(value)


def format_status(metrics: Metrics) -> str:
    """Render ``battery, stress, heart rate`` using the latest reading of each.

    A missing stream renders as MISSING_VALUE instead of failing.
    """
    stress = metrics.stress.latest_stress
    battery = metrics.stress.latest_body_battery
    heart = metrics.heart_rate.latest

    return " ".join(
        [
            f":battery: {_display(battery.level if battery else None)}",
            f":brain: {_display(stress.value if stress else None)}",
            f":heart: {_display(heart.bpm if heart else None)}",
        ]
    )


def build_status(metrics: Metrics, bands: Sequence[str]) -> tuple[str, str]:
    """Return the ``(status_emoji, status_text)`` pair for Slack."""
    battery = metrics.stress.latest_body_battery
    emoji = select_band(battery.level if battery else None, bands)
    return emoji, format_status(metrics)


def readings_to_frame(metrics: Metrics) -> pd.DataFrame:
    """Long-format frame with one row per reading: timestamp, metric, value."""
    rows: list[dict[str, object]] = []
    for r in metrics.stress.readings:
        # Valores negativos: sin medición (actividad, reposo insuficiente).
        if r.value >= 0:
            rows.append({"timestamp": r.timestamp, "metric": "stress", "value": r.value})
    for b in metrics.stress.body_battery:
        if b.level is not None:
            rows.append(
                {"timestamp": b.timestamp, "metric": "body_battery", "value": b.level}
            )
    for h in metrics.heart_rate.readings:
        if h.bpm is not None:
            rows.append(
                {"timestamp": h.timestamp, "metric": "heart_rate", "value": h.bpm}
            )

    df = pd.DataFrame(rows, columns=["timestamp", "metric", "value"])
    if df.empty:
        return df
    return df.sort_values("timestamp").reset_index(drop=True)


def daily_summary(metrics: Metrics) -> dict[str, object]:
    """Aggregate the day (stress avg/max, body battery and heart rate range).

    Missing streams yield None values.
    """
    df = readings_to_frame(metrics)

    def stat(metric: str, how: str) -> float | int | None:
        if df.empty:
            return None
        series = pd.to_numeric(df.loc[df["metric"] == metric, "value"])
        if series.empty:
            return None
        result = series.agg(how)
        if pd.isna(result):
            return None
        if how == "mean":
            return round(float(result), 1)
        return int(result)

    return {
        "date": metrics.day,
        "stress_count": int((df["metric"] == "stress").sum()) if not df.empty else 0,
        "stress_avg": stat("stress", "mean"),
        "stress_max": stat("stress", "max"),
        "body_battery_min": stat("body_battery", "min"),
        "body_battery_max": stat("body_battery", "max"),
        "heart_rate_min": stat("heart_rate", "min"),
        "heart_rate_max": stat("heart_rate", "max"),
        "heart_rate_resting": metrics.heart_rate.resting,
    }
