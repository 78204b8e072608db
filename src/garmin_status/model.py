"""Modelos tipados para las muestras diarias de Garmin Connect."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class StressReading:
    """One stress measurement (timestamped)."""

    timestamp: datetime
    value: int


@dataclass(frozen=True)
class BodyBatteryRecord:
    """One body battery point: timestamp, status, level and version."""

    timestamp: datetime
    status: str | None
    level: int | None
    version: float | None = None


@dataclass(frozen=True)
class StressSample:
    """Daily stress document.

    ``start`` is None when the portal has not produced data for ``day`` yet.
    """

    day: date
    start: datetime | None
    readings: tuple[StressReading, ...] = ()
    body_battery: tuple[BodyBatteryRecord, ...] = ()

    @property
    def latest_stress(self) -> StressReading | None:
        return self.readings[-1] if self.readings else None

    @property
    def latest_body_battery(self) -> BodyBatteryRecord | None:
        return self.body_battery[-1] if self.body_battery else None


@dataclass(frozen=True)
class HeartRateReading:
    """One heart rate measurement (timestamped)."""

    timestamp: datetime
    bpm: int | None


@dataclass(frozen=True)
class HeartRateSample:
    """Daily heart rate document."""

    day: date
    readings: tuple[HeartRateReading, ...] = ()
    resting: int | None = None

    @property
    def latest(self) -> HeartRateReading | None:
        return self.readings[-1] if self.readings else None


@dataclass(frozen=True)
class Metrics:
    """Stress + heart rate for the date that was actually queried."""

    day: date
    stress: StressSample
    heart_rate: HeartRateSample
