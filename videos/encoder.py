import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path

from .errors import EncodeError
from .ladder import QualityTier
from .outcome import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rendition:
    label: str
    bandwidth: int
    size: str           # "<width>x<height>"
    bitrate: str
    output_dir: Path
    playlist: Path

    @classmethod
    def for_tier(cls, tier: QualityTier, playlist: Path) -> "Rendition":
        return cls(
            label=tier.label,
            bandwidth=tier.bandwidth,
            size=tier.size,
            bitrate=tier.bitrate,
            output_dir=Path(playlist).parent,
            playlist=Path(playlist),
        )

    def segments(self) -> list[Path]:
        return sorted(self.output_dir.glob(f"{self.label}_*.ts"))

    def as_record(self) -> dict:
        return {"resolution": self.label, "bandwidth": self.bandwidth, "size": self.size}


def encode_rendition(engine, source: Path, tier: QualityTier, output_dir: Path) -> Outcome:
    """Encode one tier; an encoder failure becomes a warning naming the tier."""
    start = time.time()
    try:
        playlist = engine.transcode(source, tier, output_dir)
    except EncodeError as e:
        logger.error("Encoding %s failed: %s", tier.label, e)
        return Outcome.warning(f"{tier.label}: encode failed: {e}")

    logger.info("Encoded %s in %.2f seconds", tier.label, time.time() - start)
    return Outcome.ok(Rendition.for_tier(tier, playlist))


def submit_renditions(pool: Executor, engine, source: Path, tiers, hls_root: Path) -> dict:
    """
    Schedule one encode per tier, each into its own directory under hls_root.
    Returns {tier: future}; futures resolve to Outcomes.
    """
    return {
        tier: pool.submit(encode_rendition, engine, source, tier, Path(hls_root) / tier.label)
        for tier in tiers
    }


def collect_renditions(futures: dict) -> tuple[list[Rendition], list[str]]:
    """Join every tier future, successful or not, in tier order."""
    renditions, warnings = [], []
    for tier, future in futures.items():
        try:
            outcome = future.result()
        except Exception as e:
            logger.exception("Encoding %s crashed", tier.label)
            outcome = Outcome.warning(f"{tier.label}: encode failed: {e}")
        if outcome.is_ok:
            renditions.append(outcome.value)
        else:
            warnings.append(outcome.reason)
    return renditions, warnings
