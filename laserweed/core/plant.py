"""Plant records, rectangles and laser behaviour states."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

import numpy as np


@dataclass(frozen=True)
class Rect:
    """Integer axis-aligned rectangle in pixel space.

    Parameters
    ----------
    x, y : int
        Top-left corner.
    width, height : int
        Size in pixels. Points inside satisfy ``x <= px < x + width`` and
        ``y <= py < y + height``.
    """

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_xywh(cls, xywh: tuple[int, int, int, int]) -> "Rect":
        """Build a rectangle from a ``cv2.boundingRect`` tuple."""
        x, y, width, height = xywh
        return cls(int(x), int(y), int(width), int(height))

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    @property
    def slices(self) -> tuple[slice, slice]:
        """Row and column slices for indexing ``(H, W)`` arrays."""
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height

    def intersection(self, other: "Rect") -> "Rect":
        """Return the overlap rectangle, empty (zero size) when disjoint."""
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.x + self.width, other.x + other.width)
        y1 = min(self.y + self.height, other.y + other.height)
        if x1 <= x0 or y1 <= y0:
            return Rect(x0, y0, 0, 0)
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def overlaps(self, other: "Rect") -> bool:
        return self.intersection(other).area > 0

    def clip(self, frame_width: int, frame_height: int) -> "Rect":
        """Clip to ``[0, frame_width) x [0, frame_height)``."""
        return self.intersection(Rect(0, 0, int(frame_width), int(frame_height)))

    def grown(self, margin: int) -> "Rect":
        """Shift the origin by ``-margin`` and grow each side by ``2 * margin``."""
        return Rect(
            self.x - margin,
            self.y - margin,
            self.width + 2 * margin,
            self.height + 2 * margin,
        )


class Species(str, Enum):
    """Plant classes produced by the classifier."""

    CROP = "crop"
    WEED = "weed"


class LaserBehavior(str, Enum):
    """Where the laser aim point currently lands."""

    NOT_DETECTED = "not_detected"
    ON_WEED = "on_weed"
    ON_CROP = "on_crop"
    ON_NOTHING = "on_nothing"

    @property
    def label(self) -> str:
        """Human readable state used in reports and overlays."""
        return _BEHAVIOR_LABELS[self]


_BEHAVIOR_LABELS = {
    LaserBehavior.NOT_DETECTED: "not detected",
    LaserBehavior.ON_WEED: "on weed",
    LaserBehavior.ON_CROP: "on crop",
    LaserBehavior.ON_NOTHING: "on ground",
}

_BEHAVIOR_BY_SPECIES = {
    Species.CROP: LaserBehavior.ON_CROP,
    Species.WEED: LaserBehavior.ON_WEED,
}


def behavior_for_species(species: Species) -> LaserBehavior:
    """Map a hit plant species to the matching laser behaviour.

    Raises
    ------
    ValueError
        Raised for values outside the ``Species`` enum.
    """
    try:
        return _BEHAVIOR_BY_SPECIES[Species(species)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"no laser behaviour for species: {species!r}") from exc


@dataclass
class Plant:
    """One classified plant blob of a frame.

    Parameters
    ----------
    bounding_box : Rect
        Box of the blob, clipped to the frame.
    center : tuple[float, float]
        Centroid ``(x, y)`` in frame coordinates.
    mask : numpy.ndarray
        ``uint8`` mask with shape ``(bounding_box.height, bounding_box.width)``;
        non-zero pixels belong to the plant.
    species : Species
        Assigned class.
    area : float
        Contour area in square pixels.
    score : float
        Classifier score.
    """

    bounding_box: Rect
    center: tuple[float, float]
    mask: np.ndarray
    species: Species
    area: float = 0.0
    score: float = 0.0

    def __post_init__(self) -> None:
        expected_shape = (self.bounding_box.height, self.bounding_box.width)
        if self.mask.shape != expected_shape:
            raise ValueError(
                f"plant mask shape {self.mask.shape} does not match box {expected_shape}"
            )

    @property
    def position(self) -> tuple[int, int]:
        """Top-left corner of the bounding box."""
        return self.bounding_box.x, self.bounding_box.y

    def with_species(self, species: Species) -> "Plant":
        """Return a copy carrying another species label."""
        return replace(self, species=species)
