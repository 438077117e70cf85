"""Tests for contour grouping and filtering helpers."""

from __future__ import annotations

import numpy as np
import pytest

from laserweed.utils.contour_grouping import (
    bounding_rect,
    fill_contours,
    filter_contours_by_area,
    filter_contours_by_aspect_ratio,
    group_contour_indices,
    group_contours,
)


def _square(x: int, y: int, size: int) -> np.ndarray:
    """Build a square contour with corners ``size`` pixels apart."""
    points = [[x, y], [x + size, y], [x + size, y + size], [x, y + size]]
    return np.asarray(points, dtype=np.int32).reshape(-1, 1, 2)


def _box(x: int, y: int, width: int, height: int) -> np.ndarray:
    points = [[x, y], [x + width, y], [x + width, y + height], [x, y + height]]
    return np.asarray(points, dtype=np.int32).reshape(-1, 1, 2)


def test_bounding_rect_counts_inclusive_pixels() -> None:
    assert bounding_rect(_square(3, 4, 10)) == (3, 4, 11, 11)


def test_bounding_rect_rejects_empty_contour() -> None:
    with pytest.raises(ValueError):
        bounding_rect(np.zeros((0, 1, 2), dtype=np.int32))


def test_grouping_empty_input() -> None:
    assert group_contour_indices([], max_distance=30.0) == []
    assert group_contours([], max_distance=30.0) == []


def test_overlapping_rectangles_are_merged() -> None:
    groups = group_contour_indices([_square(0, 0, 10), _square(5, 5, 10)], max_distance=0.0)
    assert groups == [[0, 1]]


def test_touching_rectangles_are_not_overlap() -> None:
    # rects (0, 0, 11, 11) and (11, 0, 11, 11) share an edge only
    groups = group_contour_indices([_square(0, 0, 10), _square(11, 0, 10)], max_distance=0.0)
    assert groups == [[0], [1]]


@pytest.mark.parametrize(
    ("max_distance", "expected"),
    [
        (25.0, [[0, 1]]),
        (20.0, [[0], [1]]),
        (15.0, [[0], [1]]),
    ],
)
def test_centre_distance_threshold_is_strict(max_distance, expected) -> None:
    # centres are exactly 20 px apart
    contours = [_square(0, 0, 10), _square(20, 0, 10)]
    assert group_contour_indices(contours, max_distance) == expected


def test_grouping_is_a_single_pass_against_the_seed() -> None:
    # B is close to both A and C, but C is only compared with seed A
    contours = [_square(0, 0, 10), _square(40, 0, 10), _square(80, 0, 10)]
    assert group_contour_indices(contours, max_distance=50.0) == [[0, 1], [2]]


def test_later_seed_absorbs_remaining_contours() -> None:
    contours = [_square(0, 0, 10), _square(200, 0, 10), _square(220, 0, 10)]
    assert group_contour_indices(contours, max_distance=30.0) == [[0], [1, 2]]


def test_group_contours_keeps_every_point_once() -> None:
    rng = np.random.default_rng(7)
    contours = [
        _square(int(x), int(y), int(size))
        for x, y, size in zip(
            rng.integers(0, 300, 25), rng.integers(0, 300, 25), rng.integers(2, 20, 25)
        )
    ]
    groups = group_contours(contours, max_distance=40.0)

    assert 0 < len(groups) <= len(contours)
    merged = np.concatenate(groups, axis=0).reshape(-1, 2)
    original = np.concatenate(contours, axis=0).reshape(-1, 2)
    assert merged.shape == original.shape
    assert sorted(map(tuple, merged.tolist())) == sorted(map(tuple, original.tolist()))
    for group in groups:
        assert group.ndim == 3 and group.shape[1:] == (1, 2)


def test_filter_by_area() -> None:
    big = _square(0, 0, 10)
    small = _square(50, 50, 3)
    assert len(filter_contours_by_area([big, small], 50.0)) == 1
    assert filter_contours_by_area([big, small], 50.0)[0] is big


def test_filter_by_area_non_positive_keeps_all() -> None:
    contours = [_square(0, 0, 10), _square(50, 50, 1)]
    assert len(filter_contours_by_area(contours, 0.0)) == 2


def test_filter_by_aspect_ratio() -> None:
    wide = _box(0, 0, 40, 5)
    square = _square(100, 100, 20)
    kept = filter_contours_by_aspect_ratio([wide, square], 0.2, 5.0)
    assert len(kept) == 1
    assert kept[0] is square


def test_fill_contours() -> None:
    mask = fill_contours((30, 40), [_square(5, 5, 9)])
    assert mask.shape == (30, 40)
    assert mask.dtype == np.uint8
    assert mask[10, 10] == 255
    assert mask[0, 0] == 0
    assert int(np.count_nonzero(mask)) == 100


def test_fill_contours_without_input() -> None:
    mask = fill_contours((4, 4), [])
    assert not mask.any()
