"""
tcx2webvtt: workout telemetry -> WebVTT captions, optionally aligned to a
Final Cut Pro edit and split into HLS segments.
"""

from __future__ import annotations

from .fcpxml import FCPReader, FCPXMLError, parse_time_code
from .readers import parse_data_file, parse_fit, parse_iso8601, parse_tcx, parse_tcx_text
from .samples import Coordinates, Metric, Sample, SampleIndex
from .timeline import Clip, Cue, TimelineMapper, TimelineMapperOptions, generate_sequential_cues
from .webvtt import HLSSegment, HLSSegmenter, generate_webvtt, vtt_time

__all__ = [
    "Clip",
    "Coordinates",
    "Cue",
    "FCPReader",
    "FCPXMLError",
    "HLSSegment",
    "HLSSegmenter",
    "Metric",
    "Sample",
    "SampleIndex",
    "TimelineMapper",
    "TimelineMapperOptions",
    "generate_sequential_cues",
    "generate_webvtt",
    "parse_data_file",
    "parse_fit",
    "parse_iso8601",
    "parse_tcx",
    "parse_tcx_text",
    "parse_time_code",
    "vtt_time",
]
