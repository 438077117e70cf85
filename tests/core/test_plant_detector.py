"""Tests for the end-to-end plant detection pipeline."""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from laserweed.config import EdgeMaskParams
from laserweed.core.plant import Species
from laserweed.core.plant_detector import (
    PlantDetection,
    PlantDetector,
    build_edge_mask,
    is_valid_frame,
)

GROUND_BGR = (0, 0, 0)
LEAF_BGR = (0, 200, 0)
WEED_BGR = (100, 70, 80)
LASER_BGR = (255, 255, 0)


def _field_frame() -> np.ndarray:
    """Black ground with one centred crop leaf and one small weed in a corner."""
    frame = np.zeros((400, 400, 3), dtype=np.uint8)
    frame[:, :] = GROUND_BGR
    cv2.rectangle(frame, (150, 150), (249, 249), LEAF_BGR, thickness=-1)
    cv2.rectangle(frame, (30, 30), (41, 41), WEED_BGR, thickness=-1)
    return frame


@pytest.mark.parametrize(
    "frame",
    [
        None,
        np.zeros((0, 0, 3), dtype=np.uint8),
        np.zeros((20, 20), dtype=np.uint8),
        np.zeros((20, 20, 4), dtype=np.uint8),
        np.full((20, 20, 3), 0.5, dtype=np.float32),
    ],
)
def test_invalid_frame_gives_no_plants(frame) -> None:
    assert not is_valid_frame(frame)
    assert PlantDetector().detect_plants(frame) == []
    detection = PlantDetector().detect(frame)
    assert isinstance(detection, PlantDetection)
    assert detection.plants == []


def test_detects_crop_and_weed() -> None:
    frame = _field_frame()
    original = frame.copy()

    plants = PlantDetector().detect_plants(frame)

    np.testing.assert_array_equal(frame, original)
    assert sorted(plant.species.value for plant in plants) == ["crop", "weed"]
    crop = next(plant for plant in plants if plant.species == Species.CROP)
    weed = next(plant for plant in plants if plant.species == Species.WEED)
    assert crop.center == pytest.approx((199.5, 199.5), abs=2.0)
    assert crop.bounding_box.contains(200, 200)
    assert weed.bounding_box.contains(35, 35)
    assert not weed.bounding_box.overlaps(crop.bounding_box)


def test_detection_keeps_intermediate_masks() -> None:
    detection = PlantDetector().detect(_field_frame())

    for mask in (
        detection.weed_mask,
        detection.crop_mask,
        detection.combined_mask,
        detection.edge_mask,
    ):
        assert mask.shape == (400, 400)
    assert detection.cleaned_frame.shape == (400, 400, 3)
    assert detection.weed_mask[35, 35] == 255
    assert detection.weed_mask[200, 200] == 0
    assert detection.crop_mask[200, 200] == 255
    assert detection.crop_mask[35, 35] == 0
    assert detection.combined_mask[35, 35] == 255


def test_laser_stripe_is_removed_before_segmentation() -> None:
    frame = _field_frame()
    cv2.line(frame, (20, 350), (380, 350), LASER_BGR, thickness=3)

    detection = PlantDetector().detect(frame)

    hsv = cv2.cvtColor(detection.cleaned_frame, cv2.COLOR_BGR2HSV)
    laser = cv2.inRange(hsv, np.array((80, 80, 80)), np.array((100, 255, 255)))
    assert not laser.any()
    assert sorted(plant.species.value for plant in detection.plants) == ["crop", "weed"]


def test_uniform_ground_gives_no_plants() -> None:
    frame = np.zeros((100, 100, 3), dtype=np.uint8)
    frame[:, :] = GROUND_BGR
    assert PlantDetector().detect_plants(frame) == []


def test_build_edge_mask() -> None:
    frame = _field_frame()
    edges = build_edge_mask(frame, EdgeMaskParams())

    assert edges.shape == (400, 400)
    assert edges[150, 200] > 0 or edges[149, 200] > 0
    assert edges[200, 200] == 0
    assert edges[380, 380] == 0
