import logging
from dataclasses import asdict, dataclass
from fractions import Fraction
from pathlib import Path
from typing import Optional

from .errors import ProbeError
from .outcome import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TechnicalMetadata:
    duration: Optional[float] = None
    size: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    codec: Optional[str] = None
    bitrate: Optional[int] = None
    fps: Optional[float] = None
    audio_codec: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


def parse_frame_rate(value) -> Optional[float]:
    """
    Parse an ffprobe rate such as "30000/1001" or "25" into a decimal.
    Returns None for anything that is not a finite, positive rational.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        rate = Fraction(text)
    except (ValueError, ZeroDivisionError):
        return None
    if rate <= 0:
        return None
    return round(float(rate), 3)


def _as_int(value) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _first_stream(streams: list, codec_type: str) -> dict:
    return next((s for s in streams if s.get("codec_type") == codec_type), {})


def metadata_from_probe(probe: dict) -> tuple[TechnicalMetadata, list[str]]:
    """Map ffprobe JSON to TechnicalMetadata; returns (metadata, warnings)."""
    fmt = probe.get("format") or {}
    streams = probe.get("streams") or []
    video = _first_stream(streams, "video")
    audio = _first_stream(streams, "audio")

    warnings = []
    raw_rate = video.get("r_frame_rate") or video.get("avg_frame_rate")
    fps = parse_frame_rate(raw_rate)
    if raw_rate is not None and fps is None:
        warnings.append(f"unparseable frame rate {raw_rate!r}")

    meta = TechnicalMetadata(
        duration=_as_float(fmt.get("duration")),
        size=_as_int(fmt.get("size")),
        width=_as_int(video.get("width")),
        height=_as_int(video.get("height")),
        codec=video.get("codec_name") or None,
        bitrate=_as_int(fmt.get("bit_rate")),
        fps=fps,
        audio_codec=audio.get("codec_name") or None,
    )
    return meta, warnings


def extract_metadata(engine, source: Path) -> Outcome:
    """
    Probe `source` once. Never raises for probe problems: a failed probe
    is a warning with no value, a partial parse a warning with a value.
    """
    try:
        probe = engine.probe(source)
    except ProbeError as e:
        logger.warning("Metadata extraction failed for %s: %s", source, e)
        return Outcome.warning(f"metadata unavailable: {e}")

    meta, problems = metadata_from_probe(probe)
    if problems:
        logger.warning("Partial metadata for %s: %s", source, "; ".join(problems))
        return Outcome.warning("metadata partial: " + "; ".join(problems), value=meta)
    return Outcome.ok(meta)
