import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import FrameExtractError
from .outcome import Outcome

logger = logging.getLogger(__name__)


def _fit_to_box(frame_path: Path, out_path: Path, box: tuple[int, int]) -> Path:
    """Shrink frame into `box` keeping aspect ratio, save as JPEG."""
    try:
        with Image.open(frame_path) as src:
            img = src.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise FrameExtractError(f"unreadable frame: {e}") from e
    img.thumbnail(box)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    img.save(out_path, format="JPEG", quality=90)
    return out_path


def generate_thumbnail(
    engine,
    source: Path,
    out_path: Path,
    *,
    timestamp: float = 1.0,
    box: tuple[int, int] = (320, 240),
) -> Outcome:
    """
    Grab a frame at `timestamp` (falling back to the first frame for short
    sources) and fit it into `box`. Failure yields a warning with no value.
    """
    out_path = Path(out_path)
    frame_path = out_path.with_name(out_path.stem + "_frame.png")
    try:
        try:
            engine.extract_frame(source, timestamp, frame_path)
        except FrameExtractError as e:
            if timestamp <= 0:
                raise
            logger.info("No frame at %.1fs (%s); using first frame", timestamp, e)
            engine.extract_frame(source, 0.0, frame_path)
        thumb = _fit_to_box(frame_path, out_path, box)
    except FrameExtractError as e:
        logger.warning("Thumbnail generation failed for %s: %s", source, e)
        return Outcome.warning(f"thumbnail unavailable: {e}")
    finally:
        frame_path.unlink(missing_ok=True)

    return Outcome.ok(thumb)
