"""
WebVTT caption output, as a single track or as HLS subtitle segments.

Each cue's payload is a compact JSON array of {"metric", "value"} objects, in
the cue's sample order.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from pathlib import Path

from .samples import Coordinates, Sample
from .timeline import Cue

WEBVTT_HEADER = "WEBVTT"
# Anchors segment cue times to the MPEG-TS clock of the video renditions.
TIMESTAMP_MAP = "X-TIMESTAMP-MAP=MPEGTS:900000,LOCAL:00:00:00.000"
DEFAULT_SEGMENT_DURATION_MS = 60000
PLAYLIST_NAME = "index.m3u8"


# -----------------------------
# WebVTT
# -----------------------------


def vtt_time(ms: int) -> str:
    """WebVTT timestamps: HH:MM:SS.mmm (hours grow past two digits as needed)."""
    ms = max(0, int(ms))
    h = ms // 3_600_000
    m = (ms % 3_600_000) // 60_000
    s = (ms % 60_000) // 1000
    frac = ms % 1000
    return f"{h:02d}:{m:02d}:{s:02d}.{frac:03d}"


def _json_number(v: float | int | None) -> float | int | None:
    # 100.0 -> 100, to keep payloads identical whether a value came in as int or float
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return v


def sample_payload(sample: Sample) -> dict:
    if isinstance(sample.value, Coordinates):
        value = {k: _json_number(v) for k, v in asdict(sample.value).items() if v is not None}
    else:
        value = _json_number(sample.value)
    return {"metric": sample.metric.value, "value": value}


def cue_block(cue: Cue) -> str:
    payload = json.dumps([sample_payload(s) for s in cue.samples], separators=(",", ":"))
    return f"{vtt_time(cue.start_time)} --> {vtt_time(cue.end_time)}\n{payload}"


def generate_webvtt(cues: list[Cue]) -> str:
    """Full caption track; with no cues this is just the header line."""
    lines = [WEBVTT_HEADER]
    for i, cue in enumerate(cues):
        # blank line between blocks only, none after the header
        if i:
            lines.append("")
        lines.append(cue_block(cue))
    return "\n".join(lines)


# -----------------------------
# HLS segmented output
# -----------------------------


@dataclass(frozen=True)
class HLSSegment:
    filename: str
    duration: float  # seconds
    content: str


class HLSSegmenter:
    """
    Splits cues into fixed-length WebVTT segments plus an M3U8 playlist.

    Cue times stay absolute; a cue crossing a segment boundary is repeated
    verbatim in every segment it overlaps.
    """

    def __init__(self, segment_duration_ms: int = DEFAULT_SEGMENT_DURATION_MS) -> None:
        self.segment_duration_ms = segment_duration_ms

    def segment_cues(self, cues: list[Cue]) -> list[HLSSegment]:
        if not cues:
            # Players still need one (empty) segment to attach the track to.
            return [self.create_segment(0, [], 0, self.segment_duration_ms)]

        total_ms = max(c.end_time for c in cues)
        count = math.ceil(total_ms / self.segment_duration_ms)

        segments: list[HLSSegment] = []
        for i in range(count):
            seg_start = i * self.segment_duration_ms
            seg_end = min((i + 1) * self.segment_duration_ms, total_ms)
            seg_cues = [c for c in cues if c.overlaps(seg_start, seg_end)]
            segments.append(self.create_segment(i, seg_cues, seg_start, seg_end))
        return segments

    def create_segment(self, index: int, cues: list[Cue], seg_start: int, seg_end: int) -> HLSSegment:
        content = f"{WEBVTT_HEADER}\n{TIMESTAMP_MAP}\n"
        content += "\n".join(f"\n{cue_block(c)}" for c in cues)
        return HLSSegment(
            filename=f"fileSequence{index}.webvtt",
            duration=(seg_end - seg_start) / 1000.0,
            content=content,
        )

    def generate_playlist(self, segments: list[HLSSegment]) -> str:
        target = math.ceil(max((s.duration for s in segments), default=0.0))
        lines = [
            "#EXTM3U",
            "#EXT-X-VERSION:6",
            f"#EXT-X-TARGETDURATION:{target}",
            "#EXT-X-MEDIA-SEQUENCE:0",
            "#EXT-X-PLAYLIST-TYPE:VOD",
        ]
        for seg in segments:
            lines.append(f"#EXTINF:{seg.duration:.5f},\t")
            lines.append(seg.filename)
        lines.append("#EXT-X-ENDLIST")
        return "\n".join(lines) + "\n"

    def generate_master_playlist(self, playlist_uri: str) -> str:
        """Master playlist declaring the caption playlist as a subtitles rendition."""
        lines = [
            "#EXTM3U",
            "#EXT-X-VERSION:6",
            '#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="subs",NAME="Metadata",DEFAULT=YES,'
            f'AUTOSELECT=YES,FORCED=NO,LANGUAGE="en",URI="{playlist_uri}"',
            '#EXT-X-STREAM-INF:BANDWIDTH=1000,SUBTITLES="subs"',
            # Variant placeholder; only the subtitle rendition is ever loaded.
            "dummy.m3u8",
        ]
        return "\n".join(lines) + "\n"

    def write(self, cues: list[Cue], out_dir: str | Path) -> list[Path]:
        """Write index.m3u8 and every segment into out_dir (created if missing)."""
        out = Path(out_dir)
        out.mkdir(parents=True, exist_ok=True)

        segments = self.segment_cues(cues)
        written: list[Path] = []
        for seg in segments:
            p = out / seg.filename
            p.write_text(seg.content, encoding="utf-8")
            written.append(p)

        playlist = out / PLAYLIST_NAME
        playlist.write_text(self.generate_playlist(segments), encoding="utf-8")
        written.append(playlist)
        return written
