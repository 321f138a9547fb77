"""
Telemetry file readers.

Both readers flatten a workout into per-metric Samples:
  - TCX (TrainingCenterDatabase XML): Activity -> Lap -> Track -> Trackpoint
  - FIT (via fitparse): `record` messages

Missing or non-numeric fields only drop that metric's sample for that instant.
"""

from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from pathlib import Path

from fitparse import FitFile

from .samples import Coordinates, Metric, Sample

SEMICIRCLES_TO_DEG = 180.0 / (2**31)


# -----------------------------
# Helpers: time parsing
# -----------------------------


def parse_iso8601(s: str) -> datetime:
    """
    Parse an ISO-8601-ish timestamp into an aware datetime in UTC.

    Handles:
      - 2025-01-01T10:00:00.000Z
      - 2025-01-01T10:00:00+00:00 / +0000
      - 2025-04-20 13:53:11 -0700 (FCPXML metadataContentCreated)
      - more than 6 fractional digits (trimmed to microseconds)
      - naive datetimes (assumed UTC)
    """
    s = s.strip()
    if not s:
        raise ValueError("empty datetime string")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    # Convert timezone offset like " -0700" to "-07:00" (Python expects a colon).
    m = re.match(r"^(.*\d)\s*([+-]\d{2}):?(\d{2})$", s)
    if m and re.search(r"\d{2}:\d{2}", m.group(1)):
        s = f"{m.group(1)}{m.group(2)}:{m.group(3)}"

    s = s.replace(" ", "T", 1)
    s = re.sub(r"(\.\d{6})\d+", r"\1", s)

    dt = datetime.fromisoformat(s)
    return to_utc(dt)


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _to_float(text: str | None) -> float | None:
    text = (text or "").strip()
    if not text:
        return None
    try:
        v = float(text)
    except ValueError:
        return None
    return v if math.isfinite(v) else None


def _to_int(text: str | None) -> int | None:
    v = _to_float(text)
    return int(v) if v is not None else None


# -----------------------------
# TCX parsing
# -----------------------------


def _local_name(tag: str) -> str:
    return tag.split("}")[-1]


def parse_trackpoint(tp: ET.Element, t: datetime) -> list[Sample]:
    samples: list[Sample] = []

    distance_m = _to_float(tp.findtext("./{*}DistanceMeters"))
    if distance_m is not None:
        samples.append(Sample(t, Metric.DISTANCE, distance_m))

    cadence = _to_int(tp.findtext("./{*}Cadence"))
    if cadence is not None:
        samples.append(Sample(t, Metric.CADENCE, cadence))

    hr = _to_int(tp.findtext("./{*}HeartRateBpm/{*}Value"))
    if hr is not None:
        samples.append(Sample(t, Metric.HEART_RATE, hr))

    watts = _to_int(tp.findtext("./{*}Extensions/{*}TPX/{*}Watts"))
    if watts is not None:
        samples.append(Sample(t, Metric.POWER, watts))

    lat = _to_float(tp.findtext("./{*}Position/{*}LatitudeDegrees"))
    lon = _to_float(tp.findtext("./{*}Position/{*}LongitudeDegrees"))
    if lat is not None and lon is not None:
        alt = _to_float(tp.findtext("./{*}AltitudeMeters"))
        samples.append(Sample(t, Metric.LOCATION, Coordinates(lat, lon, alt)))

    return samples


def parse_tcx_root(root: ET.Element) -> list[Sample]:
    """
    Read every Trackpoint reachable through Activities/Activity/Lap/Track.

    Documents that are not TrainingCenterDatabase XML, or that have no
    activities, laps or tracks, yield no samples.
    """
    if _local_name(root.tag) != "TrainingCenterDatabase":
        return []

    samples: list[Sample] = []
    for activity in root.findall("./{*}Activities/{*}Activity"):
        for lap in activity.findall("./{*}Lap"):
            for tp in lap.findall("./{*}Track/{*}Trackpoint"):
                time_text = (tp.findtext("./{*}Time") or "").strip()
                if not time_text:
                    continue
                try:
                    t = parse_iso8601(time_text)
                except ValueError:
                    continue
                samples.extend(parse_trackpoint(tp, t))

    return samples


def parse_tcx_text(text: str) -> list[Sample]:
    return parse_tcx_root(ET.fromstring(text))


def parse_tcx(tcx_path: str | Path) -> list[Sample]:
    return parse_tcx_root(ET.parse(tcx_path).getroot())


# -----------------------------
# FIT parsing
# -----------------------------


def _number(v: object) -> float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v) if math.isfinite(v) else None


def parse_fit_messages(fit: FitFile) -> list[Sample]:
    samples: list[Sample] = []
    for msg in fit.get_messages("record"):
        fields = {f.name: f.value for f in msg}
        ts = fields.get("timestamp")
        if not isinstance(ts, datetime):
            continue
        t = to_utc(ts)

        distance_m = _number(fields.get("distance"))
        if distance_m is not None:
            samples.append(Sample(t, Metric.DISTANCE, distance_m))

        cadence = _number(fields.get("cadence"))
        if cadence is not None:
            samples.append(Sample(t, Metric.CADENCE, int(cadence)))

        hr = _number(fields.get("heart_rate"))
        if hr is not None:
            samples.append(Sample(t, Metric.HEART_RATE, int(hr)))

        watts = _number(fields.get("power"))
        if watts is not None:
            samples.append(Sample(t, Metric.POWER, int(watts)))

        lat = _number(fields.get("position_lat"))
        lon = _number(fields.get("position_long"))
        if lat is not None and lon is not None:
            alt = _number(fields.get("enhanced_altitude", fields.get("altitude")))
            coords = Coordinates(lat * SEMICIRCLES_TO_DEG, lon * SEMICIRCLES_TO_DEG, alt)
            samples.append(Sample(t, Metric.LOCATION, coords))

    return samples


def parse_fit(fit_path: str | Path) -> list[Sample]:
    return parse_fit_messages(FitFile(str(fit_path)))


def parse_data_file(path: str | Path) -> list[Sample]:
    """Dispatch on extension: .fit goes through fitparse, anything else is read as TCX."""
    if Path(path).suffix.lower() == ".fit":
        return parse_fit(path)
    return parse_tcx(path)
