import json
import logging
import subprocess
from pathlib import Path

from .errors import EncodeError, FrameExtractError, ProbeError
from .ladder import QualityTier

logger = logging.getLogger(__name__)

_STDERR_TAIL = 4000


def _stderr_tail(err) -> str:
    raw = getattr(err, "stderr", None)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    return (raw or str(err))[-_STDERR_TAIL:]


class FFmpegEngine:
    """
    Request/response adapter over the ffmpeg and ffprobe binaries.
    Each operation either returns its result or raises the matching
    typed error; subprocess failures and timeouts never leak out.
    """

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        ffprobe_bin: str = "ffprobe",
        *,
        encode_timeout: float = 60 * 60,
        probe_timeout: float = 60,
        frame_timeout: float = 120,
        segment_seconds: int = 10,
        audio_sample_rate: int = 48000,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin
        self.encode_timeout = encode_timeout
        self.probe_timeout = probe_timeout
        self.frame_timeout = frame_timeout
        self.segment_seconds = segment_seconds
        self.audio_sample_rate = audio_sample_rate

    def _run(self, cmd: list, timeout: float, error_cls):
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, timeout=timeout
            )
        except subprocess.CalledProcessError as e:
            raise error_cls(f"{Path(cmd[0]).name} exited with {e.returncode}: {_stderr_tail(e)}") from e
        except subprocess.TimeoutExpired as e:
            raise error_cls(f"{Path(cmd[0]).name} timed out after {timeout}s") from e
        except OSError as e:
            raise error_cls(f"could not run {cmd[0]}: {e}") from e

    # -----------------------------------------------------
    # probe
    # -----------------------------------------------------
    def probe(self, path: Path) -> dict:
        cmd = [
            self.ffprobe_bin,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]
        proc = self._run(cmd, self.probe_timeout, ProbeError)
        try:
            data = json.loads(proc.stdout.decode("utf-8", errors="ignore") or "{}")
        except ValueError as e:
            raise ProbeError(f"ffprobe returned invalid JSON: {e}") from e
        if not isinstance(data, dict) or not data.get("streams"):
            raise ProbeError(f"no streams found in {Path(path).name}")
        return data

    # -----------------------------------------------------
    # transcode one tier to HLS
    # -----------------------------------------------------
    def transcode_command(self, path: Path, tier: QualityTier, output_dir: Path) -> list:
        playlist = Path(output_dir) / f"{tier.label}.m3u8"
        return [
            self.ffmpeg_bin,
            "-y",
            "-i", str(path),
            "-c:v", "libx264",
            "-profile:v", "baseline",
            "-level", "3.0",
            "-preset", "fast",
            "-b:v", tier.bitrate,
            "-maxrate", tier.bitrate,
            "-bufsize", f"{tier.bitrate_kbps * 2}k",
            "-s", tier.size,
            "-g", "48",
            "-sc_threshold", "0",
            "-c:a", "aac",
            "-ar", str(self.audio_sample_rate),
            "-f", "hls",
            "-start_number", "0",
            "-hls_time", str(self.segment_seconds),
            "-hls_list_size", "0",
            "-hls_playlist_type", "vod",
            "-hls_segment_filename", str(Path(output_dir) / f"{tier.label}_%05d.ts"),
            str(playlist),
        ]

    def transcode(self, path: Path, tier: QualityTier, output_dir: Path) -> Path:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.transcode_command(path, tier, output_dir)
        self._run(cmd, self.encode_timeout, EncodeError)

        playlist = output_dir / f"{tier.label}.m3u8"
        if not playlist.is_file():
            raise EncodeError(f"ffmpeg produced no playlist for {tier.label}")
        return playlist

    # -----------------------------------------------------
    # still frame
    # -----------------------------------------------------
    def extract_frame(self, path: Path, timestamp: float, output_path: Path) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.ffmpeg_bin,
            "-y",
            "-ss", f"{timestamp:.3f}",
            "-i", str(path),
            "-frames:v", "1",
            str(output_path),
        ]
        self._run(cmd, self.frame_timeout, FrameExtractError)

        # ffmpeg exits 0 without writing a frame when -ss is past the end
        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise FrameExtractError(f"no frame at {timestamp}s in {Path(path).name}")
        return output_path
