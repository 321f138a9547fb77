"""
Final Cut Pro project (FCPXML) reader.

Rebuilds the list of timeline Clips, each carrying the real-world capture
interval it shows. For a placement of asset A:

  capture_start = A.created + (placement.start - A.start)
  capture_end   = capture_start + placement.duration

where A.created is the recording creation timestamp stored in the asset's
metadata, and all start/duration/offset values are FCPXML rational time codes
such as "233/15s" or "0s".

Resolution rules:
  - placement referencing an unknown asset, or an asset with no creation
    timestamp: skipped (no clip)
  - resolved placement (or its asset) missing or mangling a time code: FCPXMLError
  - no spine in the project: no clips
"""

from __future__ import annotations

import math
import re
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction
from pathlib import Path

from .readers import parse_iso8601
from .timeline import Clip

CONTENT_CREATED_KEY = "com.apple.proapps.studio.metadataContentCreated"
SPINE_PATH = "library/event/project/sequence/spine"

_TIME_CODE_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(?:/(\d+))?s$")


class FCPXMLError(ValueError):
    pass


# -----------------------------
# Rational time codes
# -----------------------------


def parse_time_code(s: str | None, *, what: str = "time") -> Fraction:
    """Parse "N/Ds" or "Ns" into exact seconds."""
    if s is None:
        raise FCPXMLError(f"missing {what} attribute")
    m = _TIME_CODE_RE.match(s.strip())
    if not m:
        raise FCPXMLError(f"invalid {what} value: {s!r}")
    num, den = m.group(1), m.group(2)
    if den is None:
        return Fraction(num)
    if int(den) == 0:
        raise FCPXMLError(f"invalid {what} value (zero denominator): {s!r}")
    return Fraction(num) / int(den)


def to_ms(seconds: Fraction) -> int:
    """Seconds -> integer milliseconds, rounding halves up."""
    return math.floor(seconds * 1000 + Fraction(1, 2))


# -----------------------------
# Intermediate document schema
# -----------------------------


@dataclass(frozen=True)
class FCPAsset:
    id: str
    name: str | None
    # Raw attribute values; validated only when a placement resolves to this asset.
    start: str | None
    created: str | None


@dataclass(frozen=True)
class FCPPlacement:
    kind: str  # "asset-clip" | "clip"
    ref: str | None
    name: str | None
    start: str | None
    duration: str | None
    offset: str | None


@dataclass(frozen=True)
class FCPDocument:
    assets: dict[str, FCPAsset]
    placements: list[FCPPlacement]
    has_spine: bool


def _content_created(asset_el: ET.Element) -> str | None:
    for md in asset_el.findall("./metadata/md"):
        if md.get("key") == CONTENT_CREATED_KEY:
            return (md.get("value") or "").strip() or None
    return None


def read_document(root: ET.Element) -> FCPDocument:
    assets: dict[str, FCPAsset] = {}
    for asset_el in root.findall("./resources/asset"):
        asset_id = asset_el.get("id")
        if not asset_id:
            continue
        assets[asset_id] = FCPAsset(
            id=asset_id,
            name=asset_el.get("name"),
            start=asset_el.get("start"),
            created=_content_created(asset_el),
        )

    spine = root.find(SPINE_PATH)
    if spine is None:
        return FCPDocument(assets=assets, placements=[], has_spine=False)

    placements: list[FCPPlacement] = []
    for el in spine:
        if el.tag == "asset-clip":
            ref = el.get("ref")
        elif el.tag == "clip":
            video = el.find("./video")
            ref = video.get("ref") if video is not None else None
        else:
            continue
        placements.append(
            FCPPlacement(
                kind=el.tag,
                ref=ref,
                name=el.get("name"),
                start=el.get("start"),
                duration=el.get("duration"),
                offset=el.get("offset"),
            )
        )

    return FCPDocument(assets=assets, placements=placements, has_spine=True)


# -----------------------------
# Clip resolution
# -----------------------------


def resolve_clip(placement: FCPPlacement, assets: dict[str, FCPAsset]) -> Clip | None:
    asset = assets.get(placement.ref) if placement.ref else None
    if asset is None:
        print(
            f"WARNING: skipping {placement.kind} {placement.name or '?'}: unknown asset {placement.ref!r}",
            file=sys.stderr,
        )
        return None
    if asset.created is None:
        print(
            f"WARNING: skipping {placement.kind} {placement.name or asset.id}: "
            f"asset {asset.id} has no {CONTENT_CREATED_KEY}",
            file=sys.stderr,
        )
        return None

    label = f"{placement.kind} {placement.name or asset.id}"
    try:
        clip_start = parse_time_code(placement.start, what="start")
        duration = parse_time_code(placement.duration, what="duration")
        offset = parse_time_code(placement.offset, what="offset")
        asset_start = parse_time_code(asset.start, what=f"asset {asset.id} start")
    except FCPXMLError as e:
        raise FCPXMLError(f"{label}: {e}") from e
    try:
        created = parse_iso8601(asset.created)
    except ValueError as e:
        raise FCPXMLError(f"{label}: invalid creation date {asset.created!r}") from e

    duration_ms = to_ms(duration)
    capture_start = created + timedelta(milliseconds=to_ms(clip_start - asset_start))
    return Clip(
        id=placement.name or asset.name or "unnamed",
        capture_start=capture_start,
        capture_end=capture_start + timedelta(milliseconds=duration_ms),
        duration=duration_ms,
        offset=to_ms(offset),
    )


def resolve_clips(doc: FCPDocument) -> list[Clip]:
    clips: list[Clip] = []
    for placement in doc.placements:
        clip = resolve_clip(placement, doc.assets)
        if clip is not None:
            clips.append(clip)
    clips.sort(key=lambda c: c.offset)
    return clips


class FCPReader:
    """
    Reads clips from an .fcpxmld bundle (directory holding Info.fcpxml) or
    from a bare .fcpxml file.
    """

    def __init__(self, project_path: str | Path) -> None:
        self.project_path = Path(project_path)

    @property
    def document_path(self) -> Path:
        if self.project_path.is_dir():
            return self.project_path / "Info.fcpxml"
        return self.project_path

    def read_document(self) -> FCPDocument:
        try:
            root = ET.parse(self.document_path).getroot()
        except ET.ParseError as e:
            raise FCPXMLError(f"malformed FCPXML document {self.document_path}: {e}") from e
        return read_document(root)

    def get_clips(self) -> list[Clip]:
        return resolve_clips(self.read_document())
