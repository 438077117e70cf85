"""Contour grouping and filtering helpers.

Contours follow the OpenCV layout returned by ``cv2.findContours``: integer
arrays with shape ``(N, 1, 2)`` holding ``(x, y)`` points.
"""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np


def _as_contour(contour: np.ndarray) -> np.ndarray:
    """Validate one contour and return it as ``int32`` ``(N, 1, 2)``."""
    points = np.asarray(contour)
    if points.size == 0 or points.shape[-1] != 2:
        raise ValueError("contour must hold at least one (x, y) point")
    return points.reshape(-1, 1, 2).astype(np.int32, copy=False)


def bounding_rect(contour: np.ndarray) -> tuple[int, int, int, int]:
    """Return ``(x, y, width, height)`` of one contour."""
    x, y, width, height = cv2.boundingRect(_as_contour(contour))
    return int(x), int(y), int(width), int(height)


def _rect_center(rect: tuple[int, int, int, int]) -> np.ndarray:
    x, y, width, height = rect
    return np.asarray([x + width * 0.5, y + height * 0.5], dtype=np.float64)


def _rects_overlap(
    rect_a: tuple[int, int, int, int],
    rect_b: tuple[int, int, int, int],
) -> bool:
    """Return whether two rectangles share a positive area."""
    ax, ay, aw, ah = rect_a
    bx, by, bw, bh = rect_b
    inter_w = min(ax + aw, bx + bw) - max(ax, bx)
    inter_h = min(ay + ah, by + bh) - max(ay, by)
    return inter_w > 0 and inter_h > 0


def group_contour_indices(
    contours: Sequence[np.ndarray],
    max_distance: float,
) -> list[list[int]]:
    """Group contours whose rectangles overlap or whose centres are close.

    One greedy forward pass: each contour not merged yet seeds a group and
    absorbs every later unmerged contour whose bounding rectangle overlaps the
    seed rectangle, or whose rectangle centre lies closer than
    ``max_distance`` to the seed centre. Absorbed contours are not used as
    seeds for further merging.

    Parameters
    ----------
    contours : Sequence[numpy.ndarray]
        Input contours.
    max_distance : float
        Centre distance below which two contours are merged.

    Returns
    -------
    list[list[int]]
        Member indices per group, seeds first, in input order.

    Examples
    --------
    >>> square = np.asarray([[[0, 0]], [[4, 0]], [[4, 4]], [[0, 4]]])
    >>> group_contour_indices([square, square + 100], max_distance=10.0)
    [[0], [1]]
    """
    rects = [bounding_rect(contour) for contour in contours]
    centers = [_rect_center(rect) for rect in rects]
    merged = [False] * len(rects)
    groups: list[list[int]] = []
    for seed_idx in range(len(rects)):
        if merged[seed_idx]:
            continue
        merged[seed_idx] = True
        members = [seed_idx]
        for other_idx in range(seed_idx + 1, len(rects)):
            if merged[other_idx]:
                continue
            distance = float(np.linalg.norm(centers[seed_idx] - centers[other_idx]))
            if _rects_overlap(rects[seed_idx], rects[other_idx]) or distance < max_distance:
                members.append(other_idx)
                merged[other_idx] = True
        groups.append(members)
    return groups


def group_contours(
    contours: Sequence[np.ndarray],
    max_distance: float,
) -> list[np.ndarray]:
    """Merge related contours into one point set per group.

    Parameters
    ----------
    contours : Sequence[numpy.ndarray]
        Input contours with shape ``(N, 1, 2)``.
    max_distance : float
        Centre distance below which two contours are merged.

    Returns
    -------
    list[numpy.ndarray]
        Concatenated points per group, shape ``(M, 1, 2)``. Every input point
        appears in exactly one group.
    """
    groups = group_contour_indices(contours, max_distance)
    return [
        np.concatenate([_as_contour(contours[idx]) for idx in members], axis=0)
        for members in groups
    ]


def filter_contours_by_area(
    contours: Sequence[np.ndarray],
    min_area: float,
) -> list[np.ndarray]:
    """Keep contours whose area is at least ``min_area``."""
    if min_area <= 0:
        return list(contours)
    return [contour for contour in contours if cv2.contourArea(contour) >= min_area]


def filter_contours_by_aspect_ratio(
    contours: Sequence[np.ndarray],
    ratio_min: float,
    ratio_max: float,
) -> list[np.ndarray]:
    """Keep contours whose box ``width / height`` lies in ``[ratio_min, ratio_max]``."""
    kept: list[np.ndarray] = []
    for contour in contours:
        _, _, width, height = bounding_rect(contour)
        if height == 0:
            continue
        ratio = width / height
        if ratio_min <= ratio <= ratio_max:
            kept.append(contour)
    return kept


def fill_contours(shape: tuple[int, int], contours: Sequence[np.ndarray]) -> np.ndarray:
    """Rasterise filled contours into a new ``uint8`` mask of ``shape``."""
    mask = np.zeros(shape, dtype=np.uint8)
    if contours:
        cv2.drawContours(
            mask,
            [_as_contour(contour) for contour in contours],
            -1,
            255,
            thickness=cv2.FILLED,
        )
    return mask
