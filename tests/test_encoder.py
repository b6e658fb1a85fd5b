from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from conftest import FakeEngine
from videos.encoder import Rendition, collect_renditions, encode_rendition, submit_renditions
from videos.ladder import DEFAULT_TIERS


def test_encode_rendition_success(tmp_path):
    tier = DEFAULT_TIERS[0]
    outcome = encode_rendition(FakeEngine(), Path("in.mp4"), tier, tmp_path / tier.label)
    assert outcome.is_ok
    r = outcome.value
    assert isinstance(r, Rendition)
    assert (r.label, r.bandwidth, r.size) == ("240p", 400000, "426x240")
    assert r.playlist == tmp_path / "240p" / "240p.m3u8"
    assert [p.name for p in r.segments()] == ["240p_00000.ts", "240p_00001.ts"]
    assert r.as_record() == {"resolution": "240p", "bandwidth": 400000, "size": "426x240"}


def test_encode_failure_is_warning_naming_tier(tmp_path):
    tier = DEFAULT_TIERS[1]
    outcome = encode_rendition(FakeEngine(fail_tiers={"480p"}), Path("in.mp4"), tier, tmp_path / "480p")
    assert outcome.kind == "warning"
    assert outcome.reason.startswith("480p:")


def test_one_failed_tier_does_not_cancel_others(tmp_path):
    engine = FakeEngine(fail_tiers={"480p"})
    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = submit_renditions(pool, engine, Path("in.mp4"), DEFAULT_TIERS, tmp_path)
        renditions, warnings = collect_renditions(futures)

    assert [r.label for r in renditions] == ["240p", "720p", "1080p"]
    assert len(warnings) == 1 and "480p" in warnings[0]
    # each tier encodes into its own directory
    assert {r.output_dir for r in renditions} == {tmp_path / "240p", tmp_path / "720p", tmp_path / "1080p"}


def test_crashing_future_is_collected_as_warning(tmp_path):
    class Exploding(FakeEngine):
        def transcode(self, path, tier, output_dir):
            if tier.label == "720p":
                raise RuntimeError("segfault")
            return super().transcode(path, tier, output_dir)

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = {
            tier: pool.submit(Exploding().transcode, Path("in.mp4"), tier, tmp_path / tier.label)
            for tier in DEFAULT_TIERS[2:3]
        }
        renditions, warnings = collect_renditions(futures)
    assert renditions == []
    assert "720p" in warnings[0] and "segfault" in warnings[0]
