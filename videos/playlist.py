"""
Master (multivariant) HLS playlist composition.

Output is bit-exact:

    #EXTM3U
    #EXT-X-VERSION:3
    <blank>
    #EXT-X-STREAM-INF:BANDWIDTH=<bandwidth>,RESOLUTION=<w>x<h>
    <label>.m3u8

one STREAM-INF/URI pair per rendition, ordered by the tier ladder.
"""
import logging
from pathlib import Path

from .errors import PlaylistError
from .ladder import DEFAULT_TIERS, tier_order

logger = logging.getLogger(__name__)

MASTER_PLAYLIST_NAME = "master.m3u8"
HEADER = "#EXTM3U\n#EXT-X-VERSION:3\n\n"


def _is_complete(rendition) -> bool:
    label = getattr(rendition, "label", None)
    bandwidth = getattr(rendition, "bandwidth", None)
    size = getattr(rendition, "size", None)
    return bool(label) and bool(bandwidth) and bool(size)


def compose_master_playlist(renditions, tiers=DEFAULT_TIERS, warnings: list | None = None) -> str:
    """
    Build the master playlist text. Incomplete renditions are skipped
    (and noted in `warnings` when given); nothing usable left raises
    PlaylistError.
    """
    order = tier_order(tiers)
    indexed = list(enumerate(renditions))
    indexed.sort(key=lambda pair: (order.get(getattr(pair[1], "label", None), len(order)), pair[0]))

    lines = []
    for _, rendition in indexed:
        if not _is_complete(rendition):
            msg = f"skipping incomplete rendition {rendition!r}"
            logger.warning(msg)
            if warnings is not None:
                warnings.append(msg)
            continue
        lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={rendition.bandwidth},RESOLUTION={rendition.size}\n")
        lines.append(f"{rendition.label}.m3u8\n")

    if not lines:
        raise PlaylistError("no valid renditions for master playlist")
    return HEADER + "".join(lines)


def write_master_playlist(content: str, hls_root: Path) -> Path:
    if not content or content == HEADER:
        raise PlaylistError("refusing to write an empty master playlist")
    path = Path(hls_root) / MASTER_PLAYLIST_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
