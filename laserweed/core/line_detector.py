"""Laser line detection and aim point estimation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import combinations

import cv2
import numpy as np
from loguru import logger

from laserweed.config import LineDetectionParams


class NoIntersectionError(RuntimeError):
    """Raised when the aim point is requested but no lines intersect."""


@dataclass(frozen=True)
class LineSegment:
    """Segment between ``(x0, y0)`` and ``(x1, y1)`` in pixel space."""

    x0: int
    y0: int
    x1: int
    y1: int

    def coefficients(self) -> tuple[float, float, float]:
        """Implicit line ``a * x + b * y + c = 0`` through both endpoints.

        Examples
        --------
        >>> LineSegment(0, 0, 10, 0).coefficients()
        (0.0, -10.0, 0.0)
        """
        a = float(self.y1 - self.y0)
        b = float(self.x0 - self.x1)
        c = float(self.y0 * (self.x1 - self.x0) - (self.y1 - self.y0) * self.x0)
        return a, b, c

    def direction_angle(self) -> float:
        """Angle of the direction vector in radians."""
        return math.atan2(self.y1 - self.y0, self.x1 - self.x0)


def angle_between(first: LineSegment, second: LineSegment) -> float:
    """Undirected angle between two segments, in ``[0, pi / 2]``."""
    diff = abs(first.direction_angle() - second.direction_angle()) % math.pi
    return min(diff, math.pi - diff)


def intersect_segments(
    first: LineSegment,
    second: LineSegment,
) -> tuple[float, float] | None:
    """Intersect the infinite lines through two segments.

    Returns
    -------
    tuple[float, float] | None
        ``(x, y)`` solution, ``None`` when the system is singular.
    """
    a1, b1, c1 = first.coefficients()
    a2, b2, c2 = second.coefficients()
    system = np.asarray([[a1, b1], [a2, b2]], dtype=np.float64)
    rhs = np.asarray([-c1, -c2], dtype=np.float64)
    try:
        solution = np.linalg.solve(system, rhs)
    except np.linalg.LinAlgError:
        return None
    if not np.all(np.isfinite(solution)):
        return None
    return float(solution[0]), float(solution[1])


def filter_line_color(
    frame: np.ndarray,
    target_lab: tuple[int, int, int],
    threshold: float,
) -> np.ndarray:
    """Mask pixels whose Lab colour is close to the laser colour.

    Parameters
    ----------
    frame : numpy.ndarray
        BGR frame with shape ``(H, W, 3)``.
    target_lab : tuple[int, int, int]
        Laser colour in 8-bit Lab.
    threshold : float
        Pixels with an L1 distance below this value are kept.

    Returns
    -------
    numpy.ndarray
        ``uint8`` mask with shape ``(H, W)`` holding 0 or 255.
    """
    lab = cv2.cvtColor(frame, cv2.COLOR_BGR2Lab).astype(np.int32)
    target = np.asarray(target_lab, dtype=np.int32)
    distance = np.abs(lab - target).sum(axis=2)
    return np.where(distance < threshold, 255, 0).astype(np.uint8)


class LineDetector:
    """Find laser line segments of one frame and their mean intersection.

    The detector keeps a private copy of the frame and computes every result
    at construction.

    Parameters
    ----------
    frame : numpy.ndarray | None
        BGR frame with shape ``(H, W, 3)`` or grayscale ``(H, W)``. ``None``
        or an empty frame yields no lines.
    params : LineDetectionParams, optional
        Edge, Hough and intersection settings.
    """

    def __init__(
        self,
        frame: np.ndarray | None,
        params: LineDetectionParams | None = None,
    ) -> None:
        self.params = params or LineDetectionParams()
        if frame is None:
            frame = np.zeros((0, 0), dtype=np.uint8)
        self._frame = np.array(frame, copy=True)
        if self._frame.ndim not in (2, 3) or (
            self._frame.ndim == 3 and self._frame.shape[2] != 3
        ):
            raise ValueError("frame must have shape (H, W) or (H, W, 3)")
        if self._frame.size > 0 and self._frame.dtype != np.uint8:
            raise ValueError(f"frame must be uint8, got {self._frame.dtype}")
        self._height, self._width = self._frame.shape[:2]
        if self._frame.size == 0:
            logger.warning("Empty input frame, no laser line detected")
            self._lines: list[LineSegment] = []
            self._intersections: list[tuple[float, float]] = []
            return
        self._lines = self._detect_lines()
        self._intersections = self._compute_intersections()
        logger.debug(
            f"Line detection lines={len(self._lines)} "
            f"intersections={len(self._intersections)}"
        )

    @property
    def frame(self) -> np.ndarray:
        """Copy of the bound frame."""
        return self._frame.copy()

    def _edge_input(self) -> np.ndarray:
        if self._frame.ndim == 2:
            return self._frame
        if self.params.color_filter:
            return filter_line_color(
                self._frame, self.params.target_lab, self.params.color_threshold
            )
        return cv2.cvtColor(self._frame, cv2.COLOR_BGR2GRAY)

    def _detect_lines(self) -> list[LineSegment]:
        edges = cv2.Canny(self._edge_input(), self.params.canny_low, self.params.canny_high)
        raw_lines = cv2.HoughLinesP(
            edges,
            self.params.rho,
            self.params.theta,
            self.params.threshold,
            minLineLength=self.params.min_line_length,
            maxLineGap=self.params.max_line_gap,
        )
        if raw_lines is None:
            return []
        return [
            LineSegment(int(x0), int(y0), int(x1), int(y1))
            for x0, y0, x1, y1 in np.asarray(raw_lines).reshape(-1, 4)
        ]

    def _compute_intersections(self) -> list[tuple[float, float]]:
        points: list[tuple[float, float]] = []
        for first, second in combinations(self._lines, 2):
            if angle_between(first, second) <= self.params.min_angle:
                continue
            point = intersect_segments(first, second)
            if point is None:
                continue
            x, y = point
            if 0 <= x < self._width and 0 <= y < self._height:
                points.append(point)
        return points

    def get_lines(self) -> list[LineSegment]:
        return list(self._lines)

    def get_intersections(self) -> list[tuple[float, float]]:
        return list(self._intersections)

    def has_intersection(self) -> bool:
        return len(self._intersections) > 0

    def get_intersection(self) -> tuple[int, int]:
        """Mean of all kept intersections, rounded into the frame.

        Returns
        -------
        tuple[int, int]
            Aim point ``(x, y)`` within ``[0, W) x [0, H)``.

        Raises
        ------
        NoIntersectionError
            Raised when no pair of lines intersects inside the frame.
        """
        if not self._intersections:
            raise NoIntersectionError("no laser line intersection in frame")
        mean_x, mean_y = np.mean(np.asarray(self._intersections), axis=0)
        x = min(max(int(round(mean_x)), 0), self._width - 1)
        y = min(max(int(round(mean_y)), 0), self._height - 1)
        return x, y

    def copy(self) -> "LineDetector":
        """Rebuild a detector bound to a deep copy of the frame."""
        return LineDetector(self._frame, self.params)

    def __deepcopy__(self, memo: dict) -> "LineDetector":
        return self.copy()
