"""Hit testing of the laser aim point against classified plants."""

from __future__ import annotations

from typing import Protocol, Sequence

import numpy as np

from laserweed.config import JetCheckParams
from laserweed.core.plant import LaserBehavior, Plant, Species, behavior_for_species


class AimPointSource(Protocol):
    """Anything exposing an optional aim point, e.g. ``LineDetector``."""

    def has_intersection(self) -> bool:
        ...

    def get_intersection(self) -> tuple[int, int]:
        ...


def _disk_offsets(radius: int) -> np.ndarray:
    """Integer ``(dx, dy)`` offsets with ``dx**2 + dy**2 <= radius**2``."""
    span = np.arange(-radius, radius + 1)
    dx, dy = np.meshgrid(span, span)
    inside = dx * dx + dy * dy <= radius * radius
    return np.stack([dx[inside], dy[inside]], axis=1)


def _mask_hit(mask: np.ndarray, local_x: int, local_y: int) -> bool:
    """Return whether the mask is set at a local point, ``False`` outside."""
    height, width = mask.shape[:2]
    if not (0 <= local_x < width and 0 <= local_y < height):
        return False
    return bool(mask[local_y, local_x])


def _mask_hit_within(mask: np.ndarray, local_x: int, local_y: int, radius: int) -> bool:
    """Return whether any mask pixel lies within ``radius`` of a local point."""
    if radius <= 0:
        return _mask_hit(mask, local_x, local_y)
    height, width = mask.shape[:2]
    offsets = _disk_offsets(radius)
    xs = offsets[:, 0] + local_x
    ys = offsets[:, 1] + local_y
    valid = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
    if not np.any(valid):
        return False
    return bool(np.any(mask[ys[valid], xs[valid]]))


class JetPositionChecker:
    """Classify where the laser aim point lands.

    The checker holds no frame state: plants and the aim point source are
    passed to every call.

    Parameters
    ----------
    params : JetCheckParams, optional
        Weed box margin and hit tolerance.
    """

    def __init__(self, params: JetCheckParams | None = None) -> None:
        self.params = params or JetCheckParams()

    def is_on_plant(self, plant: Plant, point: tuple[int, int]) -> LaserBehavior:
        """Test one aim point against one plant.

        Weed masks have coarse borders, so weed boxes are grown by
        ``weed_margin`` and a missed weed pixel is retried within a disk of
        ``weed_tolerance`` pixels.

        Parameters
        ----------
        plant : Plant
            Plant to test.
        point : tuple[int, int]
            Aim point ``(x, y)`` in frame coordinates.

        Returns
        -------
        LaserBehavior
            ``ON_CROP`` or ``ON_WEED`` on a hit, ``ON_NOTHING`` otherwise.
        """
        px, py = int(point[0]), int(point[1])
        is_weed = plant.species == Species.WEED
        box = plant.bounding_box
        if is_weed:
            box = box.grown(self.params.weed_margin)
        if not box.contains(px, py):
            return LaserBehavior.ON_NOTHING
        origin_x, origin_y = plant.position
        local_x, local_y = px - origin_x, py - origin_y
        hit = _mask_hit(plant.mask, local_x, local_y)
        if not hit and is_weed:
            hit = _mask_hit_within(plant.mask, local_x, local_y, self.params.weed_tolerance)
        if not hit:
            return LaserBehavior.ON_NOTHING
        return behavior_for_species(plant.species)

    def compute_state(
        self,
        plants: Sequence[Plant],
        line_detector: AimPointSource,
    ) -> LaserBehavior:
        """Classify the aim point against every plant.

        Parameters
        ----------
        plants : Sequence[Plant]
            Plants of the frame, tested in order.
        line_detector : AimPointSource
            Source of the aim point.

        Returns
        -------
        LaserBehavior
            ``NOT_DETECTED`` without an aim point, the first plant hit, or
            ``ON_NOTHING``.
        """
        if not line_detector.has_intersection():
            return LaserBehavior.NOT_DETECTED
        aim_point = line_detector.get_intersection()
        for plant in plants:
            state = self.is_on_plant(plant, aim_point)
            if state in (LaserBehavior.ON_CROP, LaserBehavior.ON_WEED):
                return state
        return LaserBehavior.ON_NOTHING
