from videos.outcome import Outcome


def test_outcome_kinds():
    ok = Outcome.ok(3)
    assert ok.is_ok and not ok.is_fatal and ok.value == 3 and ok.reason is None

    partial = Outcome.warning("frame rate missing", value={"duration": 1.0})
    assert not partial.is_ok and not partial.is_fatal
    assert partial.value == {"duration": 1.0}

    fatal = Outcome.fatal("nothing encoded")
    assert fatal.is_fatal and fatal.value is None and fatal.reason == "nothing encoded"
