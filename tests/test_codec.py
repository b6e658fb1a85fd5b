import json
import subprocess
from pathlib import Path

import pytest

from videos.codec import FFmpegEngine
from videos.errors import EncodeError, FrameExtractError, ProbeError
from videos.ladder import DEFAULT_TIERS

TIER_720 = DEFAULT_TIERS[2]


class FakeRun:
    def __init__(self, stdout=b"", side_effect=None, writes=None):
        self.stdout = stdout
        self.side_effect = side_effect
        self.writes = writes
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.side_effect is not None:
            raise self.side_effect
        if self.writes is not None:
            self.writes(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr=b"")


def test_transcode_command_matches_tier():
    engine = FFmpegEngine(segment_seconds=10, audio_sample_rate=48000)
    cmd = engine.transcode_command(Path("in.mp4"), TIER_720, Path("/out/720p"))

    def opt(name):
        return cmd[cmd.index(name) + 1]

    assert cmd[0] == "ffmpeg"
    assert opt("-profile:v") == "baseline"
    assert opt("-b:v") == "2500k"
    assert opt("-maxrate") == "2500k"
    assert opt("-bufsize") == "5000k"
    assert opt("-s") == "1280x720"
    assert opt("-ar") == "48000"
    assert opt("-hls_time") == "10"
    assert opt("-hls_list_size") == "0"
    assert opt("-f") == "hls"
    assert opt("-hls_segment_filename") == "/out/720p/720p_%05d.ts"
    assert cmd[-1] == "/out/720p/720p.m3u8"


def test_transcode_returns_playlist(tmp_path, monkeypatch):
    def writes(cmd):
        Path(cmd[-1]).write_text("#EXTM3U\n")

    run = FakeRun(writes=writes)
    monkeypatch.setattr("videos.codec.subprocess.run", run)
    engine = FFmpegEngine(encode_timeout=5)

    playlist = engine.transcode(Path("in.mp4"), TIER_720, tmp_path / "720p")
    assert playlist == tmp_path / "720p" / "720p.m3u8"
    assert run.calls[0][1]["timeout"] == 5
    assert run.calls[0][1]["check"] is True


def test_transcode_without_playlist_fails(tmp_path, monkeypatch):
    monkeypatch.setattr("videos.codec.subprocess.run", FakeRun())
    with pytest.raises(EncodeError, match="no playlist"):
        FFmpegEngine().transcode(Path("in.mp4"), TIER_720, tmp_path / "720p")


def test_encoder_exit_code_becomes_encode_error(tmp_path, monkeypatch):
    err = subprocess.CalledProcessError(1, ["ffmpeg"], stderr=b"Invalid data found when processing input")
    monkeypatch.setattr("videos.codec.subprocess.run", FakeRun(side_effect=err))
    with pytest.raises(EncodeError, match="Invalid data found"):
        FFmpegEngine().transcode(Path("in.mp4"), TIER_720, tmp_path / "720p")


def test_encoder_timeout_becomes_encode_error(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "videos.codec.subprocess.run", FakeRun(side_effect=subprocess.TimeoutExpired(["ffmpeg"], 3))
    )
    with pytest.raises(EncodeError, match="timed out"):
        FFmpegEngine(encode_timeout=3).transcode(Path("in.mp4"), TIER_720, tmp_path / "720p")


def test_missing_binary_becomes_typed_error(monkeypatch):
    monkeypatch.setattr("videos.codec.subprocess.run", FakeRun(side_effect=FileNotFoundError("ffprobe")))
    with pytest.raises(ProbeError, match="could not run"):
        FFmpegEngine().probe(Path("in.mp4"))


def test_probe_parses_json(monkeypatch):
    payload = {"format": {"duration": "1.0"}, "streams": [{"codec_type": "video"}]}
    run = FakeRun(stdout=json.dumps(payload).encode())
    monkeypatch.setattr("videos.codec.subprocess.run", run)
    assert FFmpegEngine(ffprobe_bin="/usr/bin/ffprobe").probe(Path("in.mp4")) == payload
    cmd = run.calls[0][0]
    assert cmd[0] == "/usr/bin/ffprobe" and "-show_streams" in cmd


@pytest.mark.parametrize("stdout", [b"not json", b"{}", b'{"streams": []}'])
def test_probe_rejects_unusable_output(monkeypatch, stdout):
    monkeypatch.setattr("videos.codec.subprocess.run", FakeRun(stdout=stdout))
    with pytest.raises(ProbeError):
        FFmpegEngine().probe(Path("in.mp4"))


def test_extract_frame_requires_output(tmp_path, monkeypatch):
    monkeypatch.setattr("videos.codec.subprocess.run", FakeRun())
    with pytest.raises(FrameExtractError, match="no frame"):
        FFmpegEngine().extract_frame(Path("in.mp4"), 1.0, tmp_path / "f.png")


def test_extract_frame_seeks(tmp_path, monkeypatch):
    run = FakeRun(writes=lambda cmd: Path(cmd[-1]).write_bytes(b"png"))
    monkeypatch.setattr("videos.codec.subprocess.run", run)
    out = FFmpegEngine().extract_frame(Path("in.mp4"), 1.0, tmp_path / "f.png")
    assert out.read_bytes() == b"png"
    cmd = run.calls[0][0]
    assert cmd[cmd.index("-ss") + 1] == "1.000"
    assert cmd[cmd.index("-frames:v") + 1] == "1"
