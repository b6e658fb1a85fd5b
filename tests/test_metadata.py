from pathlib import Path

import pytest

from conftest import SAMPLE_PROBE, FakeEngine
from videos.metadata import TechnicalMetadata, extract_metadata, metadata_from_probe, parse_frame_rate


@pytest.mark.parametrize("raw, expected", [
    ("30000/1001", 29.97),
    ("25/1", 25.0),
    ("24", 24.0),
    (" 60/2 ", 30.0),
])
def test_parse_frame_rate(raw, expected):
    assert parse_frame_rate(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "0/0", "1/0", "abc", "__import__('os')", "-30/1", "0/1"])
def test_parse_frame_rate_rejects_garbage(raw):
    assert parse_frame_rate(raw) is None


def test_metadata_from_probe():
    meta, warnings = metadata_from_probe(SAMPLE_PROBE)
    assert warnings == []
    assert meta == TechnicalMetadata(
        duration=12.48,
        size=1048576,
        width=1920,
        height=1080,
        codec="h264",
        bitrate=672164,
        fps=29.97,
        audio_codec="aac",
    )


def test_metadata_without_audio_or_format():
    probe = {"streams": [{"codec_type": "video", "codec_name": "vp9", "width": 640, "height": 360}]}
    meta, warnings = metadata_from_probe(probe)
    assert meta.audio_codec is None
    assert meta.duration is None and meta.size is None and meta.bitrate is None
    assert meta.fps is None
    assert warnings == []


def test_bad_frame_rate_is_reported():
    probe = {"streams": [{"codec_type": "video", "r_frame_rate": "0/0"}]}
    meta, warnings = metadata_from_probe(probe)
    assert meta.fps is None
    assert warnings and "0/0" in warnings[0]


def test_extract_metadata_probes_once():
    engine = FakeEngine()
    outcome = extract_metadata(engine, Path("/tmp/in.mp4"))
    assert outcome.is_ok
    assert outcome.value.width == 1920
    assert [c[0] for c in engine.calls] == ["probe"]


def test_probe_failure_is_a_warning_without_value():
    outcome = extract_metadata(FakeEngine(probe_error=True), Path("/tmp/in.mp4"))
    assert not outcome.is_ok and not outcome.is_fatal
    assert outcome.value is None
    assert "metadata unavailable" in outcome.reason


def test_partial_metadata_keeps_value():
    probe = {"format": {"duration": "3.0"}, "streams": [{"codec_type": "video", "r_frame_rate": "x/y"}]}
    outcome = extract_metadata(FakeEngine(probe_data=probe), Path("/tmp/in.mp4"))
    assert outcome.kind == "warning"
    assert outcome.value.duration == 3.0
    assert "frame rate" in outcome.reason
