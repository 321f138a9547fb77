import json
import unittest
from datetime import UTC, datetime
from pathlib import Path

from tcx2webvtt import Coordinates, Cue, HLSSegmenter, Metric, Sample, generate_webvtt, vtt_time

T = datetime(2025, 1, 1, tzinfo=UTC)
SEGMENT_HEADER = "WEBVTT\nX-TIMESTAMP-MAP=MPEGTS:900000,LOCAL:00:00:00.000\n"


def hr_cue(start: int, end: int, value: int) -> Cue:
    return Cue(start, end, (Sample(T, Metric.HEART_RATE, value),))


class TestWebVTT(unittest.TestCase):
    def test_vtt_time(self) -> None:
        self.assertEqual(vtt_time(0), "00:00:00.000")
        self.assertEqual(vtt_time(1500), "00:00:01.500")
        self.assertEqual(vtt_time(3661500), "01:01:01.500")
        self.assertEqual(vtt_time(100 * 3600 * 1000 + 7), "100:00:00.007")

    def test_no_cues_is_header_only(self) -> None:
        self.assertEqual(generate_webvtt([]), "WEBVTT")

    def test_cue_blocks(self) -> None:
        out = generate_webvtt([hr_cue(0, 1000, 120), hr_cue(2000, 3000, 130)])
        self.assertEqual(
            out,
            "WEBVTT\n"
            "00:00:00.000 --> 00:00:01.000\n"
            '[{"metric":"heartRate","value":120}]\n'
            "\n"
            "00:00:02.000 --> 00:00:03.000\n"
            '[{"metric":"heartRate","value":130}]',
        )

    def test_single_cue_follows_header_directly(self) -> None:
        self.assertEqual(
            generate_webvtt([hr_cue(0, 1000, 120)]),
            'WEBVTT\n00:00:00.000 --> 00:00:01.000\n[{"metric":"heartRate","value":120}]',
        )

    def test_payload_keeps_sample_order_and_shapes(self) -> None:
        cue = Cue(
            0,
            1000,
            (
                Sample(T, Metric.DISTANCE, 2.7),
                Sample(T, Metric.DISTANCE, 100.0),
                Sample(T, Metric.POWER, 250),
                Sample(T, Metric.LOCATION, Coordinates(32.5, -111.0, 714.25)),
                Sample(T, Metric.LOCATION, Coordinates(32.5, -111.0)),
            ),
        )
        payload = json.loads(generate_webvtt([cue]).splitlines()[-1])
        self.assertEqual(
            payload,
            [
                {"metric": "distance", "value": 2.7},
                {"metric": "distance", "value": 100},
                {"metric": "power", "value": 250},
                {"metric": "location", "value": {"latitude": 32.5, "longitude": -111, "altitude": 714.25}},
                {"metric": "location", "value": {"latitude": 32.5, "longitude": -111}},
            ],
        )
        self.assertIn('"value":100}', generate_webvtt([cue]))


# -----------------------------
# HLS
# -----------------------------


def test_empty_cues_write_one_empty_segment(tmp_path: Path) -> None:
    HLSSegmenter().write([], tmp_path / "hls")

    playlist = (tmp_path / "hls" / "index.m3u8").read_text()
    assert "fileSequence0.webvtt" in playlist
    assert "#EXT-X-TARGETDURATION:60" in playlist
    assert (tmp_path / "hls" / "fileSequence0.webvtt").read_text() == SEGMENT_HEADER


def test_short_cues_fit_one_segment() -> None:
    segments = HLSSegmenter().segment_cues([hr_cue(0, 30000, 120), hr_cue(30000, 45000, 125)])

    assert [s.filename for s in segments] == ["fileSequence0.webvtt"]
    assert segments[0].duration == 45.0
    assert segments[0].content == (
        SEGMENT_HEADER
        + "\n00:00:00.000 --> 00:00:30.000\n"
        + '[{"metric":"heartRate","value":120}]\n'
        + "\n00:00:30.000 --> 00:00:45.000\n"
        + '[{"metric":"heartRate","value":125}]'
    )


def test_cues_land_in_their_segments() -> None:
    cues = [hr_cue(0, 30000, 120), hr_cue(70000, 90000, 125), hr_cue(130000, 150000, 130)]
    segments = HLSSegmenter(60000).segment_cues(cues)

    assert [s.duration for s in segments] == [60.0, 60.0, 30.0]
    assert '"value":120' in segments[0].content and '"value":125' not in segments[0].content
    assert "00:01:10.000 --> 00:01:30.000" in segments[1].content
    assert "00:02:10.000 --> 00:02:30.000" in segments[2].content


def test_boundary_cue_repeats_in_each_segment() -> None:
    segments = HLSSegmenter(60000).segment_cues([hr_cue(50000, 70000, 120)])

    assert len(segments) == 2
    for seg in segments:
        assert "00:00:50.000 --> 00:01:10.000" in seg.content


def test_touching_cue_is_not_repeated() -> None:
    segments = HLSSegmenter(60000).segment_cues([hr_cue(0, 60000, 1), hr_cue(60000, 61000, 2)])

    assert '"value":2' not in segments[0].content
    assert '"value":1' not in segments[1].content


def test_late_cue_segment_index() -> None:
    segments = HLSSegmenter().segment_cues([hr_cue(3661500, 3721800, 120)])

    assert len(segments) == 63
    assert segments[0].content == SEGMENT_HEADER
    assert "01:01:01.500 --> 01:02:01.800" in segments[61].content


def test_playlist() -> None:
    segmenter = HLSSegmenter(60000)
    segments = segmenter.segment_cues([hr_cue(0, 45000, 120), hr_cue(60000, 150000, 125)])
    playlist = segmenter.generate_playlist(segments)

    assert playlist.splitlines()[:5] == [
        "#EXTM3U",
        "#EXT-X-VERSION:6",
        "#EXT-X-TARGETDURATION:60",
        "#EXT-X-MEDIA-SEQUENCE:0",
        "#EXT-X-PLAYLIST-TYPE:VOD",
    ]
    assert "#EXTINF:60.00000,\t\nfileSequence0.webvtt\n" in playlist
    assert "#EXTINF:30.00000,\t\nfileSequence2.webvtt\n" in playlist
    assert playlist.endswith("#EXT-X-ENDLIST\n")


def test_custom_segment_duration_rounds_target_up() -> None:
    segmenter = HLSSegmenter(30000)
    segments = segmenter.segment_cues([hr_cue(0, 45500, 120)])

    assert [s.filename for s in segments] == ["fileSequence0.webvtt", "fileSequence1.webvtt"]
    assert "#EXT-X-TARGETDURATION:30" in segmenter.generate_playlist(segments)

    short = HLSSegmenter(2500)
    assert "#EXT-X-TARGETDURATION:3\n" in short.generate_playlist(short.segment_cues([hr_cue(0, 2500, 1)]))


def test_master_playlist() -> None:
    master = HLSSegmenter().generate_master_playlist("subs/index.m3u8")
    assert 'TYPE=SUBTITLES,GROUP-ID="subs"' in master
    assert 'URI="subs/index.m3u8"' in master
    assert '#EXT-X-STREAM-INF:BANDWIDTH=1000,SUBTITLES="subs"' in master


def test_write_creates_directory_and_files(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "hls"
    written = HLSSegmenter().write([hr_cue(0, 30000, 120)], out)

    assert {p.name for p in written} == {"fileSequence0.webvtt", "index.m3u8"}
    assert (out / "fileSequence0.webvtt").read_text().startswith("WEBVTT\n")
    assert "#EXTINF:30.00000,\t" in (out / "index.m3u8").read_text()


if __name__ == "__main__":
    unittest.main()
