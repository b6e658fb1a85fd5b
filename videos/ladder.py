from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class QualityTier:
    label: str        # e.g. "720p"; also names the rendition playlist
    width: int
    height: int
    bitrate: str      # ffmpeg notation, e.g. "2500k"
    bandwidth: int    # bits/s advertised in the master playlist

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def bitrate_kbps(self) -> int:
        return int(self.bitrate.rstrip("kK"))


# Ordered lowest to highest; the master playlist follows this order.
DEFAULT_TIERS = (
    QualityTier("240p", 426, 240, "400k", 400_000),
    QualityTier("480p", 854, 480, "800k", 800_000),
    QualityTier("720p", 1280, 720, "2500k", 2_500_000),
    QualityTier("1080p", 1920, 1080, "5000k", 5_000_000),
)


def select_tiers(labels: Optional[Iterable[str]] = None, tiers=DEFAULT_TIERS) -> tuple:
    """
    Restrict `tiers` to the given labels, keeping definition order.
    An empty/None selection means every tier.
    """
    wanted = [l.strip() for l in (labels or []) if l and l.strip()]
    if not wanted:
        return tuple(tiers)
    known = {t.label for t in tiers}
    unknown = [l for l in wanted if l not in known]
    if unknown:
        raise ValueError(f"Unknown quality tiers: {unknown}. Known: {sorted(known)}")
    return tuple(t for t in tiers if t.label in wanted)


def tier_order(tiers=DEFAULT_TIERS) -> dict[str, int]:
    return {t.label: i for i, t in enumerate(tiers)}
