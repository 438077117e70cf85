"""Per-frame processing record."""

from __future__ import annotations

from typing import Any

import numpy as np
from loguru import logger

from laserweed.config import PipelineConfig
from laserweed.core.jet_position_checker import JetPositionChecker
from laserweed.core.line_detector import LineDetector
from laserweed.core.plant import LaserBehavior, Plant
from laserweed.core.plant_detector import PlantDetection, PlantDetector
from laserweed.utils.report import format_aim_point, format_plant_centers


class FrameAnalysis:
    """Plants, laser line and laser behaviour of one frame.

    The record owns a private copy of the frame and every object derived from
    it. Copies rebuild the detectors from a copy of the frame instead of
    sharing them.

    Parameters
    ----------
    frame : numpy.ndarray
        BGR frame with shape ``(H, W, 3)``.
    image_name : str, optional
        Name reported by ``summary``.
    config : PipelineConfig, optional
        Pipeline parameters.

    Examples
    --------
    >>> analysis = FrameAnalysis(np.zeros((0, 0, 3), dtype=np.uint8), "empty.png")
    >>> analysis.laser_behavior
    <LaserBehavior.NOT_DETECTED: 'not_detected'>
    """

    def __init__(
        self,
        frame: np.ndarray | None,
        image_name: str = "",
        config: PipelineConfig | None = None,
    ) -> None:
        self.image_name = image_name
        self.config = config or PipelineConfig()
        if frame is None:
            frame = np.zeros((0, 0, 3), dtype=np.uint8)
        self._frame = np.array(frame, copy=True)
        self._detection = PlantDetector(self.config).detect(self._frame)
        self._line_detector = LineDetector(self._frame, self.config.lines)
        self._laser_behavior = JetPositionChecker(self.config.jet).compute_state(
            self._detection.plants, self._line_detector
        )
        logger.debug(
            f"Frame {image_name or '<unnamed>'}: plants={len(self._detection.plants)} "
            f"laser={self._laser_behavior.label}"
        )

    @property
    def frame(self) -> np.ndarray:
        """Copy of the analysed frame."""
        return self._frame.copy()

    @property
    def plants(self) -> list[Plant]:
        return list(self._detection.plants)

    @property
    def detection(self) -> PlantDetection:
        return self._detection

    @property
    def line_detector(self) -> LineDetector:
        return self._line_detector

    @property
    def laser_behavior(self) -> LaserBehavior:
        return self._laser_behavior

    @property
    def aim_point(self) -> tuple[int, int] | None:
        """Aim point, ``None`` when no laser intersection was found."""
        if not self._line_detector.has_intersection():
            return None
        return self._line_detector.get_intersection()

    def summary(self) -> dict[str, Any]:
        """Return the values a per-frame report row needs."""
        return {
            "image_name": self.image_name,
            "aim_point": format_aim_point(self.aim_point),
            "laser_state": self._laser_behavior.label,
            "plant_centers": format_plant_centers(self._detection.plants),
        }

    def copy(self) -> "FrameAnalysis":
        """Re-run the analysis on a deep copy of the frame."""
        return FrameAnalysis(self._frame, self.image_name, self.config)

    def __deepcopy__(self, memo: dict) -> "FrameAnalysis":
        return self.copy()
