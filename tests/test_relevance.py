from __future__ import annotations

import numpy as np
import pytest

from sightguide.detect.types import Detection
from sightguide.speech.relevance import (
    RelevanceConfig,
    RelevancePolicy,
    distance_bucket,
    relevance_score,
)


class _FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


def _det(label: str, cx: float = 0.5, dist: float = 1.5, score: float = 0.8, position: str = "center") -> Detection:
    return Detection(label, score, cx - 0.05, 0.3, cx + 0.05, 0.6, dist, position)


def test_relevance_score_weights() -> None:
    d = _det("cup", cx=0.5, dist=2.0, score=0.8)
    assert relevance_score(d) == pytest.approx(0.8 * 0.65 + 1.0 * 0.15 + 0.5 * 0.20)
    close = _det("cup", cx=0.5, dist=0.1, score=0.8)
    assert relevance_score(close) == pytest.approx(0.8 * 0.65 + 0.15 + (1 / 0.3) * 0.20)


def test_manual_pick_returns_top_four_by_relevance() -> None:
    policy = RelevancePolicy(clock=_FakeClock())
    dets = [
        _det("far", dist=10.0),
        _det("near", dist=0.5),
        _det("edge", cx=0.05, dist=1.5),
        _det("mid", dist=1.5),
        _det("weak", dist=1.5, score=0.3),
    ]
    picked = policy.pick_for_manual_speech(dets)
    assert [d.label for d in picked] == ["near", "mid", "far", "edge"]
    # no cooldown on the manual path
    assert policy.pick_for_manual_speech(dets) == picked
    assert policy.pick_for_manual_speech([]) == []


def test_auto_pick_twice_in_a_row_speaks_once() -> None:
    clock = _FakeClock()
    policy = RelevancePolicy(clock=clock)
    dets = [_det("person"), _det("chair", cx=0.2, position="left")]

    first = policy.pick_for_auto_speech(dets)
    second = policy.pick_for_auto_speech(dets)

    assert [d.label for d in first] == ["person", "chair"]
    assert second == []


def test_unchanged_signature_is_suppressed_after_global_interval() -> None:
    clock = _FakeClock()
    policy = RelevancePolicy(clock=clock)
    dets = [_det("person")]

    assert policy.pick_for_auto_speech(dets)
    clock.advance(20.0)
    assert policy.pick_for_auto_speech(dets) == []
    # coarse bucket change counts as a new view
    assert [d.label for d in policy.pick_for_auto_speech([_det("person", dist=5.0)])] == ["person"]


def test_label_cooldown_filters_recently_announced_labels() -> None:
    clock = _FakeClock()
    policy = RelevancePolicy(clock=clock)

    assert [d.label for d in policy.pick_for_auto_speech([_det("person")])] == ["person"]
    clock.advance(3.0)
    picked = policy.pick_for_auto_speech([_det("person", cx=0.1, position="left"), _det("chair", dist=3.0)])
    assert [d.label for d in picked] == ["chair"]
    clock.advance(3.0)
    assert policy.pick_for_auto_speech([_det("person", cx=0.9, position="right")]) == []
    clock.advance(3.0)
    assert [d.label for d in policy.pick_for_auto_speech([_det("person", cx=0.9, position="right")])] == ["person"]


def test_reset_clears_suppression() -> None:
    clock = _FakeClock()
    policy = RelevancePolicy(clock=clock)
    dets = [_det("person")]

    assert policy.pick_for_auto_speech(dets)
    policy.reset_auto_state()
    assert policy.pick_for_auto_speech(dets)


def test_empty_view_says_nothing() -> None:
    assert RelevancePolicy(clock=_FakeClock()).pick_for_auto_speech([]) == []


def test_no_label_repeats_within_cooldown_over_a_random_stream() -> None:
    rng = np.random.default_rng(42)
    clock = _FakeClock()
    cfg = RelevanceConfig()
    policy = RelevancePolicy(cfg, clock=clock)
    labels = ["person", "chair", "cup", "bottle"]
    positions = [("left", 0.1), ("center", 0.5), ("right", 0.9)]
    last_said: dict[str, float] = {}

    for _ in range(2000):
        clock.advance(float(rng.uniform(0.05, 1.0)))
        dets = []
        for label in rng.choice(labels, size=int(rng.integers(0, 4)), replace=False):
            pos, cx = positions[int(rng.integers(0, 3))]
            dets.append(_det(str(label), cx=cx, dist=float(rng.uniform(0.2, 6.0)), position=pos))
        for d in policy.pick_for_auto_speech(dets):
            if d.label in last_said:
                assert clock.now - last_said[d.label] >= cfg.label_cooldown_s
            last_said[d.label] = clock.now


def test_distance_buckets() -> None:
    assert distance_bucket(0.99) == "near"
    assert distance_bucket(1.0) == "mid"
    assert distance_bucket(2.49) == "mid"
    assert distance_bucket(2.5) == "far"


def test_format_for_speech() -> None:
    dets = [
        _det("person", dist=1.46, position="center"),
        _det("chair", dist=3.4, position="left"),
    ]
    assert RelevancePolicy.format_for_speech(dets) == (
        "person in the middle, about 1.5 meters. chair on the left, about 3 meters"
    )
    assert RelevancePolicy.format_for_speech(dets[:1], with_positions=False) == "person, about 1.5 meters"
    assert RelevancePolicy.format_for_speech([]) == ""
