from __future__ import annotations

import numpy as np

from sightguide.detect.types import Detection
from sightguide.vis import LastDetections, draw_detections


def test_draw_detections_marks_the_box() -> None:
    image = np.zeros((200, 400, 3), dtype=np.uint8)
    det = Detection("cup", 0.9, 0.25, 0.5, 0.75, 0.9, 1.0, "center")

    draw_detections(image, [det, None])

    assert image[100:180, 100].any()  # left edge at x = 0.25 * 400
    assert not image[190:, 350:].any()


def test_degenerate_box_is_skipped() -> None:
    image = np.zeros((50, 50, 3), dtype=np.uint8)
    draw_detections(image, [Detection("cup", 0.9, 0.5, 0.5, 0.5, 0.5, 1.0, "center")])
    assert not image.any()


def test_last_detections_replaces_whole_list() -> None:
    cache = LastDetections()
    first = [Detection("cup", 0.9, 0.1, 0.1, 0.2, 0.2, 1.0, "left")]
    cache.update(first, 640, 480)
    cache.update([], 320, 240)

    assert cache.get() == []
    assert cache.frame_size == (320, 240)
    assert first  # caller's list is untouched
