from __future__ import annotations

import numpy as np
import pytest

from sightguide.detect.decoder import (
    LAYOUT_ANCHORS_LAST,
    LAYOUT_CHANNELS_FIRST,
    DecoderConfig,
    TensorDecoder,
    detect_layout,
)


def _channels_first(n: int = 8400) -> np.ndarray:
    return np.zeros((1, 84, n), dtype=np.float32)


def _anchors_last(n: int = 100) -> np.ndarray:
    return np.zeros((1, n, 84), dtype=np.float32)


def test_layout_is_detected_from_either_axis() -> None:
    assert detect_layout((1, 84, 8400), 80) == LAYOUT_CHANNELS_FIRST
    assert detect_layout((1, 8400, 84), 80) == LAYOUT_ANCHORS_LAST
    assert detect_layout((1, 85, 8400), 80) is None
    assert detect_layout((84, 8400), 80) is None


def test_channels_first_normalized_box_is_scaled_to_input_pixels() -> None:
    out = _channels_first()
    out[0, 0:4, 7] = [0.5, 0.5, 0.2, 0.3]
    out[0, 4 + 0, 7] = 0.9

    cands = TensorDecoder().decode(out)

    assert len(cands) == 1
    c = cands[0]
    assert c.cls_id == 0
    assert c.score == pytest.approx(0.9)
    assert (c.cx, c.cy) == pytest.approx((320.0, 320.0), abs=1e-3)
    assert (c.w, c.h) == pytest.approx((128.0, 192.0), abs=1e-3)


def test_anchors_last_pixel_box_is_kept_as_is() -> None:
    out = _anchors_last()
    out[0, 3, 0:4] = [100.0, 200.0, 50.0, 60.0]
    out[0, 3, 4 + 5] = 0.8

    cands = TensorDecoder().decode(out)

    assert len(cands) == 1
    assert cands[0].cls_id == 5
    assert (cands[0].cx, cands[0].cy, cands[0].w, cands[0].h) == pytest.approx((100.0, 200.0, 50.0, 60.0))


def test_coordinate_scale_is_decided_per_anchor() -> None:
    out = _anchors_last(4)
    out[0, 0, 0:4] = [0.25, 0.25, 0.1, 0.1]
    out[0, 0, 4] = 0.7
    out[0, 1, 0:4] = [300.0, 310.0, 40.0, 40.0]
    out[0, 1, 4 + 2] = 0.6

    cands = TensorDecoder().decode(out)

    by_cls = {c.cls_id: c for c in cands}
    assert by_cls[0].cx == pytest.approx(160.0)
    assert by_cls[0].w == pytest.approx(64.0)
    assert by_cls[2].cx == pytest.approx(300.0)
    assert by_cls[2].w == pytest.approx(40.0)


def test_best_class_wins_and_threshold_applies() -> None:
    out = _anchors_last(3)
    out[0, 0, 0:4] = [100, 100, 20, 20]
    out[0, 0, 4 + 1] = 0.3
    out[0, 0, 4 + 9] = 0.5
    out[0, 1, 0:4] = [200, 200, 20, 20]
    out[0, 1, 4 + 3] = 0.2  # below default 0.25

    cands = TensorDecoder().decode(out)

    assert [(c.cls_id, round(c.score, 2)) for c in cands] == [(9, 0.5)]


def test_flat_buffer_with_explicit_shape() -> None:
    out = _channels_first(10)
    out[0, 0:4, 2] = [320, 320, 64, 64]
    out[0, 4 + 7, 2] = 0.95

    cands = TensorDecoder().decode(out.reshape(-1).tolist(), shape=[1, 84, 10])

    assert len(cands) == 1
    assert cands[0].cls_id == 7


def test_custom_class_count() -> None:
    decoder = TensorDecoder(DecoderConfig(num_classes=2, input_size=320))
    out = np.zeros((1, 6, 5), dtype=np.float32)
    out[0, 0:4, 0] = [0.5, 0.5, 0.5, 0.5]
    out[0, 5, 0] = 0.9

    cands = decoder.decode(out)

    assert len(cands) == 1
    assert cands[0].cls_id == 1
    assert cands[0].cx == pytest.approx(160.0)


@pytest.mark.parametrize(
    "garbage",
    [
        np.zeros((84, 8400), dtype=np.float32),
        np.zeros((1, 50, 50), dtype=np.float32),
        np.zeros((0,), dtype=np.float32),
        np.zeros((1, 1, 84, 10), dtype=np.float32),
        "not a tensor",
    ],
)
def test_malformed_output_yields_no_candidates(garbage) -> None:
    assert TensorDecoder().decode(garbage) == []


def test_buffer_shorter_than_shape_yields_no_candidates() -> None:
    assert TensorDecoder().decode([0.0] * 10, shape=(1, 84, 8400)) == []


def test_boxes_without_positive_extent_are_dropped() -> None:
    out = _channels_first(4)
    out[0, 0:4, 0] = [300, 300, -40, -60]
    out[0, 0:4, 1] = [300, 300, 40, 0]
    out[0, 0:4, 2] = [300, 300, np.nan, 50]
    out[0, 0:4, 3] = [300, 300, 40, 60]
    out[0, 4, :] = 0.9

    cands = TensorDecoder().decode(out)

    assert [(c.w, c.h) for c in cands] == [(40.0, 60.0)]
