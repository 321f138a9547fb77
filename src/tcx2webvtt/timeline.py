"""
Map telemetry onto an output clock as caption cues.

Three clocks are involved:
  - capture time: absolute wall-clock time the telemetry/video was recorded
  - asset time: position inside a source media file (resolved by the FCPXML reader)
  - timeline time: milliseconds from the start of the edited video

TimelineMapper walks each clip's span on the timeline in fixed windows and
looks up the matching capture-time window in the SampleIndex:

  capture = clip.capture_start + (timeline - clip.offset) + correction
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .samples import Sample, SampleIndex

DEFAULT_CUE_DURATION_MS = 1000
WILDCARD_CLIP_ID = "*"


@dataclass(frozen=True)
class Clip:
    id: str
    capture_start: datetime
    capture_end: datetime
    duration: int  # ms on the timeline
    offset: int  # ms, start position on the timeline

    @property
    def end(self) -> int:
        return self.offset + self.duration


@dataclass(frozen=True)
class Cue:
    start_time: int  # ms on the output clock
    end_time: int
    samples: tuple[Sample, ...]

    def overlaps(self, start: int, end: int) -> bool:
        return self.start_time < end and self.end_time > start


@dataclass(frozen=True)
class TimelineMapperOptions:
    default_cue_duration_ms: int = DEFAULT_CUE_DURATION_MS
    # clip id (or "*") -> correction in ms; positive looks later in capture time
    clip_offsets: dict[str, float] = field(default_factory=dict)


class TimelineMapper:
    def __init__(
        self,
        sample_index: SampleIndex,
        clips: list[Clip],
        options: TimelineMapperOptions | None = None,
    ) -> None:
        options = options or TimelineMapperOptions()
        self.sample_index = sample_index
        self.clips = list(clips)
        self.default_cue_duration_ms = options.default_cue_duration_ms
        self.clip_offsets = dict(options.clip_offsets)

    def correction_for(self, clip: Clip) -> float:
        if clip.id in self.clip_offsets:
            return self.clip_offsets[clip.id]
        return self.clip_offsets.get(WILDCARD_CLIP_ID, 0)

    def get_cues(self) -> list[Cue]:
        """
        Cues on the timeline clock, in clip order and ascending within a clip.

        Windows without samples produce no cue. Clips that overlap on the
        timeline are handled independently, so their cues may interleave.
        """
        step = self.default_cue_duration_ms
        cues: list[Cue] = []

        for clip in self.clips:
            correction = timedelta(milliseconds=self.correction_for(clip))
            clip_end = clip.end

            win_start = clip.offset
            while win_start < clip_end:
                win_end = min(win_start + step, clip_end)

                capture_start = (
                    clip.capture_start
                    + timedelta(milliseconds=win_start - clip.offset)
                    + correction
                )
                capture_end = capture_start + timedelta(milliseconds=win_end - win_start)

                samples = self.sample_index.get_samples_in_range(capture_start, capture_end)
                if samples:
                    cues.append(Cue(win_start, win_end, tuple(samples)))

                # Unclamped step: the loop ends once the cursor passes the clip end.
                win_start += step

        return cues


def generate_sequential_cues(
    samples: list[Sample], cue_duration_ms: int = DEFAULT_CUE_DURATION_MS
) -> list[Cue]:
    """
    One cue per sample at a fixed cadence, for output without a video timeline.

    The n-th sample is shown during [n*d, (n+1)*d). Negative durations are
    treated as their absolute value.
    """
    d = abs(cue_duration_ms)
    return [Cue(i * d, (i + 1) * d, (s,)) for i, s in enumerate(samples)]
