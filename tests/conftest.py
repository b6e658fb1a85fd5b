import threading
import time
from pathlib import Path

import pytest
from PIL import Image

from videos.errors import EncodeError, FrameExtractError, PersistenceError, ProbeError, StorageError
from videos.pipeline import Orchestrator

SAMPLE_PROBE = {
    "format": {"duration": "12.480000", "size": "1048576", "bit_rate": "672164"},
    "streams": [
        {"codec_type": "video", "codec_name": "h264", "width": 1920, "height": 1080,
         "r_frame_rate": "30000/1001"},
        {"codec_type": "audio", "codec_name": "aac", "sample_rate": "48000"},
    ],
}


class FakeEngine:
    """Stands in for ffmpeg: writes tiny playlists/segments/frames."""

    def __init__(self, fail_tiers=(), probe_error=False, probe_data=None, frame_fail_at=()):
        self.fail_tiers = set(fail_tiers)
        self.probe_error = probe_error
        self.probe_data = probe_data if probe_data is not None else SAMPLE_PROBE
        self.frame_fail_at = set(frame_fail_at)
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def probe(self, path):
        self._record("probe", Path(path))
        if self.probe_error:
            raise ProbeError("Invalid data found when processing input")
        return self.probe_data

    def transcode(self, path, tier, output_dir):
        self._record("transcode", tier.label)
        if tier.label in self.fail_tiers:
            raise EncodeError(f"ffmpeg exited with 1 for {tier.label}")
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        segments = []
        for i in range(2):
            seg = output_dir / f"{tier.label}_{i:05d}.ts"
            seg.write_bytes(b"\x47" * 188)
            segments.append(seg.name)
        playlist = output_dir / f"{tier.label}.m3u8"
        body = "".join(f"#EXTINF:10.0,\n{name}\n" for name in segments)
        playlist.write_text(f"#EXTM3U\n#EXT-X-TARGETDURATION:10\n{body}#EXT-X-ENDLIST\n")
        return playlist

    def extract_frame(self, path, timestamp, output_path):
        self._record("extract_frame", timestamp)
        if "all" in self.frame_fail_at or timestamp in self.frame_fail_at:
            raise FrameExtractError(f"no frame at {timestamp}s")
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (1280, 720), (200, 30, 30)).save(output_path, format="PNG")
        return output_path


class FakeBlobStore:
    def __init__(self, fail=None, delete_fails=False, delay=None):
        self.fail = fail or (lambda key: False)
        self.delete_fails = delete_fails
        # seconds each put of `key` takes
        self.delay = delay or (lambda key: 0)
        self.started = []
        self.objects = {}
        self.put_order = []
        self.deleted = []
        self._lock = threading.Lock()

    def put(self, data, key, content_type=None):
        with self._lock:
            self.started.append(key)
        seconds = self.delay(key)
        if seconds:
            time.sleep(seconds)
        if self.fail(key):
            raise StorageError(f"put {key} failed: AccessDenied")
        with self._lock:
            self.objects[key] = (bytes(data), content_type)
            self.put_order.append(key)
        return key

    def put_file(self, local_path, key, content_type=None):
        return self.put(Path(local_path).read_bytes(), key, content_type)

    def delete(self, key):
        with self._lock:
            self.deleted.append(key)
        if self.delete_fails:
            raise StorageError(f"delete {key} failed")
        with self._lock:
            self.objects.pop(key, None)

    def list_keys(self, prefix):
        with self._lock:
            return sorted(k for k in self.objects if k.startswith(prefix))


class FakeCatalog:
    def __init__(self, fail=False):
        self.fail = fail
        self.records = []

    def save(self, record):
        if self.fail:
            raise PersistenceError("connection refused")
        self.records.append(record)
        return f"video-{len(self.records)}"


@pytest.fixture
def source_file(tmp_path):
    uploads = tmp_path / "uploads"
    uploads.mkdir()
    path = uploads / "1700000000-sample.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def work_root(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def make_orchestrator(work_root):
    def _make(engine=None, store=None, catalog=None, **kwargs):
        return Orchestrator(
            engine or FakeEngine(),
            store if store is not None else FakeBlobStore(),
            catalog if catalog is not None else FakeCatalog(),
            work_root,
            upload_timeout=30,
            **kwargs,
        )
    return _make
