"""
Telemetry samples and the time-ordered index they are queried through.

A Sample is one reading of one metric at one instant. Trackpoints that carry
several metrics become several samples sharing a timestamp.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Metric(str, Enum):
    """Metric tag; the value is the name written into caption payloads."""

    HEART_RATE = "heartRate"
    DISTANCE = "distance"
    CADENCE = "cadence"
    POWER = "power"
    LOCATION = "location"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float
    altitude: float | None = None


@dataclass(frozen=True)
class Sample:
    """
    One telemetry reading.

    The shape of `value` follows `metric`:
      - Metric.LOCATION -> Coordinates
      - everything else -> int | float
    """

    time: datetime
    metric: Metric
    value: float | int | Coordinates

    def __post_init__(self) -> None:
        if self.metric is Metric.LOCATION:
            if not isinstance(self.value, Coordinates):
                raise TypeError(f"{self.metric.value} sample needs Coordinates, got {self.value!r}")
        elif isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"{self.metric.value} sample needs a number, got {self.value!r}")


class SampleIndex:
    """
    Chronologically sorted sample store with half-open range queries.

    Samples sharing a timestamp keep the order they were added in.
    """

    def __init__(self) -> None:
        self._samples: list[Sample] = []
        self._times: list[datetime] = []

    def __len__(self) -> int:
        return len(self._samples)

    def add_samples(self, samples: list[Sample]) -> None:
        self._samples.extend(samples)
        # list.sort is stable, so equal timestamps stay in insertion order.
        self._samples.sort(key=lambda s: s.time)
        self._times = [s.time for s in self._samples]

    def get_samples_in_range(self, start: datetime, end: datetime) -> list[Sample]:
        """Samples with start <= time < end, ascending."""
        i0 = bisect_left(self._times, start)
        i1 = bisect_left(self._times, end)
        return self._samples[i0:i1]

    def get_all_samples(self) -> list[Sample]:
        return list(self._samples)
