"""
tcx2webvtt

Convert TCX/FIT workout telemetry into WebVTT captions with a JSON payload per cue.

What it does
- Reads samples from one or more workout files and merges them by timestamp.
- Without --fcp: one cue per sample, back to back at a fixed cadence.
- With --fcp: re-times samples onto a Final Cut Pro edit, using each clip's
  recording time; windows with no telemetry are left empty.
- Writes a single track to stdout, or HLS segments + playlist with --hls.

Example
  tcx2webvtt --fcp project.fcpxmld --clip-offset GX010163,2.5 workout.tcx > workout.vtt
"""

from __future__ import annotations

import argparse
import math
import sys
from importlib.metadata import PackageNotFoundError, version as dist_version
from pathlib import Path
from typing import NoReturn

from .fcpxml import FCPReader
from .readers import parse_data_file
from .samples import SampleIndex
from .timeline import (
    DEFAULT_CUE_DURATION_MS,
    TimelineMapper,
    TimelineMapperOptions,
    generate_sequential_cues,
)
from .webvtt import HLSSegmenter, generate_webvtt

DIST_NAME = "tcx2webvtt"


class ArgumentError(ValueError):
    pass


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors share the ERROR: line and exit status of every other failure."""

    def error(self, message: str) -> NoReturn:
        self.exit(1, f"ERROR: {message}\n")


def parse_clip_offsets(values: list[str]) -> dict[str, float]:
    """
    Parse repeated "<clip-id>,<seconds>" arguments into clip id -> ms.

    "*" is the default for clips without their own entry. Later duplicates win.
    """
    offsets: dict[str, float] = {}
    for raw in values:
        parts = [p.strip() for p in raw.split(",")]
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ArgumentError(f"Invalid clip-offset format: {raw!r}. Expected: <clip-id>,<seconds>")
        clip_id, seconds_text = parts
        try:
            seconds = float(seconds_text)
        except ValueError:
            seconds = math.nan
        if not math.isfinite(seconds):
            raise ArgumentError(f"Invalid clip-offset format: {raw!r}. Offset must be a number")
        offsets[clip_id] = seconds * 1000.0
    return offsets


def package_version() -> str:
    try:
        return dist_version(DIST_NAME)
    except PackageNotFoundError:
        return "0+unknown"


def build_parser(version: str) -> ArgumentParser:
    ap = ArgumentParser(
        prog="tcx2webvtt",
        description="Convert TCX workout files to WebVTT format with embedded JSON metadata.",
    )
    ap.add_argument("inputs", nargs="*", metavar="input-file", help="Workout data files (.tcx or .fit)")
    ap.add_argument("-v", "--version", action="version", version=version)
    ap.add_argument(
        "--fcp",
        metavar="PROJECT",
        default=None,
        help="Final Cut Pro project export (.fcpxmld bundle or .fcpxml) to align cues with the edit.",
    )
    ap.add_argument(
        "--hls",
        metavar="DIRECTORY",
        default=None,
        help="Generate HLS-compatible segmented output (index.m3u8 + WebVTT segments) in DIRECTORY.",
    )
    ap.add_argument(
        "--segment-duration",
        type=float,
        default=60.0,
        help="HLS segment length in seconds (default: 60)",
    )
    ap.add_argument(
        "--cue-duration",
        type=int,
        default=DEFAULT_CUE_DURATION_MS,
        help="Cue length in milliseconds (default: 1000)",
    )
    ap.add_argument(
        "--clip-offset",
        metavar="ID,SECONDS",
        action="append",
        default=None,
        help="Offset a clip from real-world time; repeatable. Use '*' as ID for all other clips. "
        "Positive reads telemetry later.",
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Print a summary of inputs, clips and cues to stderr.",
    )
    return ap


def segment_duration_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def validate_args(args: argparse.Namespace) -> dict[str, float]:
    if not args.inputs:
        raise ArgumentError("Input file is required")
    if args.fcp is not None and not Path(args.fcp).exists():
        raise ArgumentError(f"Input file does not exist: {args.fcp}")
    if args.hls is not None and not args.hls.strip():
        raise ArgumentError("HLS directory path cannot be empty")
    if not math.isfinite(args.segment_duration) or segment_duration_ms(args.segment_duration) < 1:
        raise ArgumentError("--segment-duration must be at least 0.001 seconds")
    if args.cue_duration == 0:
        raise ArgumentError("--cue-duration must be non-zero")

    clip_offsets: dict[str, float] = {}
    if args.clip_offset:
        if args.fcp is None:
            raise ArgumentError("--clip-offset can only be used with --fcp")
        clip_offsets = parse_clip_offsets(args.clip_offset)

    for path in args.inputs:
        if not Path(path).exists():
            raise ArgumentError(f"Input file does not exist: {path}")
    return clip_offsets


def report(*lines: str) -> None:
    for line in lines:
        print(line, file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    ap = build_parser(package_version())
    args = ap.parse_args(argv)

    try:
        clip_offsets = validate_args(args)
    except ArgumentError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    index = SampleIndex()
    for path in args.inputs:
        try:
            index.add_samples(parse_data_file(path))
        except Exception as e:
            print(f"ERROR: Could not parse data file: {path}\n{e}", file=sys.stderr)
            return 1

    if args.verbose:
        report("== Telemetry ==", f"Files: {len(args.inputs)}", f"Samples: {len(index)}")
        all_samples = index.get_all_samples()
        if all_samples:
            report(
                f"First sample (UTC): {all_samples[0].time.isoformat()}",
                f"Last sample (UTC):  {all_samples[-1].time.isoformat()}",
            )

    if args.fcp is not None:
        try:
            clips = FCPReader(args.fcp).get_clips()
        except Exception as e:
            print(f"ERROR: Could not read FCP project: {args.fcp}\n{e}", file=sys.stderr)
            return 1

        mapper = TimelineMapper(
            index,
            clips,
            TimelineMapperOptions(
                default_cue_duration_ms=abs(args.cue_duration),
                clip_offsets=clip_offsets,
            ),
        )
        if args.verbose:
            report("== Timeline ==")
            for clip in clips:
                correction = mapper.correction_for(clip)
                report(
                    f"{clip.id}: timeline {clip.offset / 1000:.3f}-{clip.end / 1000:.3f} s, "
                    f"capture {clip.capture_start.isoformat()}"
                    + (f", correction {correction / 1000:+.3f} s" if correction else "")
                )
        cues = mapper.get_cues()
    else:
        cues = generate_sequential_cues(index.get_all_samples(), args.cue_duration)

    if args.verbose:
        report(f"Cues: {len(cues)}")

    try:
        if args.hls is not None:
            segmenter = HLSSegmenter(segment_duration_ms(args.segment_duration))
            written = segmenter.write(cues, args.hls)
            if args.verbose:
                report(f"Wrote {len(written)} file(s) to {args.hls}")
        else:
            sys.stdout.write(generate_webvtt(cues))
    except Exception as e:
        print(f"ERROR: Could not write output\n{e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
