"""Pipeline configuration for laserweed.

Every tunable value of the per-frame pipeline lives in one of the parameter
dataclasses below. ``PipelineConfig`` groups them and can be loaded from a
partial JSON document, so a tuning tool only has to write the values it
changes.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from loguru import logger

Triple = tuple[int, int, int]


def _as_triple(value: Any, name: str) -> Triple:
    """Convert a 3-element sequence into an integer triple."""
    items = tuple(value)
    if len(items) != 3:
        raise ValueError(f"{name} must have exactly 3 values")
    return int(items[0]), int(items[1]), int(items[2])


def _check_range(low: Triple, high: Triple, name: str) -> None:
    """Reject channel ranges whose lower bound exceeds the upper bound."""
    for channel, (lo, hi) in enumerate(zip(low, high)):
        if lo > hi:
            raise ValueError(f"{name} channel {channel} has low {lo} > high {hi}")


def _check_positive(value: float, name: str) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be > 0")


def _check_non_negative(value: float, name: str) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0")


@dataclass
class LaserRemovalParams:
    """HSV range and kernels used to erase the laser streak before segmentation.

    Parameters
    ----------
    hsv_low, hsv_high : tuple[int, int, int]
        Inclusive HSV bounds of the laser colour.
    morph_size : int
        Side of the rectangular kernel used to thicken the laser mask.
    inpaint_radius : int
        Neighbourhood radius for ``cv2.inpaint``.
    """

    hsv_low: Triple = (80, 80, 80)
    hsv_high: Triple = (100, 255, 255)
    morph_size: int = 5
    inpaint_radius: int = 5

    def validate(self) -> None:
        _check_range(self.hsv_low, self.hsv_high, "laser hsv range")
        _check_positive(self.morph_size, "laser morph_size")
        _check_positive(self.inpaint_radius, "laser inpaint_radius")


@dataclass
class WeedSegmentationParams:
    """HSV segmentation of weed candidates.

    Parameters
    ----------
    hsv_low, hsv_high : tuple[int, int, int]
        Inclusive HSV bounds of weed foliage.
    morph_open_size : int
        Side of the rectangular kernel used for opening and dilation.
    dilate_iterations : int
        Number of dilations applied to grow the blobs.
    area_threshold : float
        Contours smaller than this are dropped. ``0`` keeps everything.
    group_max_distance : float
        Merge radius used when regrouping the cleaned contours.
    """

    hsv_low: Triple = (95, 0, 0)
    hsv_high: Triple = (179, 117, 105)
    morph_open_size: int = 2
    dilate_iterations: int = 2
    area_threshold: float = 50.0
    group_max_distance: float = 30.0

    def validate(self) -> None:
        _check_range(self.hsv_low, self.hsv_high, "weed hsv range")
        _check_positive(self.morph_open_size, "weed morph_open_size")
        _check_non_negative(self.dilate_iterations, "weed dilate_iterations")
        _check_non_negative(self.area_threshold, "weed area_threshold")
        _check_non_negative(self.group_max_distance, "weed group_max_distance")


@dataclass
class CropSegmentationParams:
    """Lab segmentation of crop candidates.

    The range describes the background band; pixels outside it are foliage.
    """

    lab_low: Triple = (0, 82, 123)
    lab_high: Triple = (240, 131, 134)
    morph_kernel_size: int = 3
    morph_iterations: int = 2
    area_threshold: float = 500.0
    aspect_ratio_min: float = 0.2
    aspect_ratio_max: float = 5.0
    group_max_distance: float = 50.0

    def validate(self) -> None:
        _check_range(self.lab_low, self.lab_high, "crop lab range")
        _check_non_negative(self.morph_iterations, "crop morph_iterations")
        _check_non_negative(self.area_threshold, "crop area_threshold")
        _check_non_negative(self.group_max_distance, "crop group_max_distance")
        if self.aspect_ratio_min > self.aspect_ratio_max:
            raise ValueError("crop aspect_ratio_min must be <= aspect_ratio_max")


@dataclass
class EdgeMaskParams:
    """Canny thresholds and kernels for the edge-overlap mask."""

    canny_low: float = 50.0
    canny_high: float = 150.0
    dilate_size: int = 5
    erode_size: int = 3

    def validate(self) -> None:
        _check_non_negative(self.canny_low, "edge canny_low")
        if self.canny_low > self.canny_high:
            raise ValueError("edge canny_low must be <= canny_high")
        _check_positive(self.dilate_size, "edge dilate_size")
        _check_positive(self.erode_size, "edge erode_size")


@dataclass
class ClassifierParams:
    """Scoring weights and corrective-pass constants of the species classifier.

    Parameters
    ----------
    score_threshold : float
        Blobs scoring at least this value are crop, the rest weed.
    area_divisor : float
        Size feature is ``area / area_divisor``.
    solidity_min : float
        Solidity above this value is added to the score.
    extent_min : float
        Extent above this value adds ``extent_bonus``.
    extent_bonus : float
        Score added for well-filled boxes.
    center_band_ratio : float
        Fraction of the frame width around the centerline granting the
        proximity bonus.
    decluster_max_area : float
        Crop blobs below this area may be reclassified by declustering.
    decluster_score_margin : float
        Crop blobs scoring below ``score_threshold + margin`` may be
        reclassified by declustering.
    decluster_distance_ratio : float
        Declustering radius as a fraction of the frame diagonal.
    crop_group_distance, weed_group_distance : float
        Merge radius of the species-aware regrouping.
    suppression_radius_divisor : float
        Weed suppression radius is ``crop bbox width / divisor``.
    max_plant_area : float
        Plants at least this large are treated as full-frame artefacts.
    """

    score_threshold: float = 4.0
    area_divisor: float = 400.0
    solidity_min: float = 0.8
    extent_min: float = 0.5
    extent_bonus: float = 1.0
    center_band_ratio: float = 0.3
    decluster_max_area: float = 3000.0
    decluster_score_margin: float = 1.0
    decluster_distance_ratio: float = 0.04
    crop_group_distance: float = 50.0
    weed_group_distance: float = 30.0
    suppression_radius_divisor: float = 6.0
    max_plant_area: float = 100_000.0

    def validate(self) -> None:
        _check_positive(self.area_divisor, "classifier area_divisor")
        _check_positive(self.suppression_radius_divisor, "classifier suppression_radius_divisor")
        _check_non_negative(self.crop_group_distance, "classifier crop_group_distance")
        _check_non_negative(self.weed_group_distance, "classifier weed_group_distance")
        _check_non_negative(self.decluster_distance_ratio, "classifier decluster_distance_ratio")
        _check_positive(self.max_plant_area, "classifier max_plant_area")


@dataclass
class LineDetectionParams:
    """Edge, Hough and intersection settings of the laser line detector.

    Parameters
    ----------
    canny_low, canny_high : float
        Hysteresis thresholds of ``cv2.Canny``.
    rho : float
        Distance resolution of the Hough accumulator in pixels.
    theta : float
        Angle resolution of the Hough accumulator in radians.
    threshold : int
        Minimum accumulator votes.
    min_line_length : float
        Shortest segment kept.
    max_line_gap : float
        Largest gap bridged inside one segment.
    min_angle : float
        Pairs of segments closer than this angle (radians) are not intersected.
    color_filter : bool
        Run edge detection on a Lab colour-distance mask instead of grayscale.
    target_lab : tuple[int, int, int]
        Laser colour in 8-bit Lab.
    color_threshold : float
        Maximum L1 Lab distance counted as laser.
    """

    canny_low: float = 50.0
    canny_high: float = 150.0
    rho: float = 1.0
    theta: float = math.pi / 180.0
    threshold: int = 50
    min_line_length: float = 50.0
    max_line_gap: float = 10.0
    min_angle: float = 0.1
    color_filter: bool = False
    target_lab: Triple = (163, 101, 139)
    color_threshold: float = 30.0

    def validate(self) -> None:
        _check_non_negative(self.canny_low, "line canny_low")
        if self.canny_low > self.canny_high:
            raise ValueError("line canny_low must be <= canny_high")
        _check_positive(self.rho, "line rho")
        _check_positive(self.theta, "line theta")
        _check_positive(self.threshold, "line threshold")
        _check_non_negative(self.min_line_length, "line min_line_length")
        _check_non_negative(self.max_line_gap, "line max_line_gap")
        _check_non_negative(self.min_angle, "line min_angle")
        _check_non_negative(self.color_threshold, "line color_threshold")


@dataclass
class JetCheckParams:
    """Hit-test tolerance applied to weed plants.

    Parameters
    ----------
    weed_margin : int
        Weed boxes are shifted by ``-margin`` and grown by ``2 * margin``.
    weed_tolerance : int
        Radius in pixels of the disk searched around a missed weed hit.
    """

    weed_margin: int = 5
    weed_tolerance: int = 5

    def validate(self) -> None:
        _check_non_negative(self.weed_margin, "jet weed_margin")
        _check_non_negative(self.weed_tolerance, "jet weed_tolerance")


_TRIPLE_FIELDS = {"hsv_low", "hsv_high", "lab_low", "lab_high", "target_lab"}


@dataclass
class PipelineConfig:
    """All parameters of the per-frame pipeline."""

    laser_removal: LaserRemovalParams = field(default_factory=LaserRemovalParams)
    weed: WeedSegmentationParams = field(default_factory=WeedSegmentationParams)
    crop: CropSegmentationParams = field(default_factory=CropSegmentationParams)
    edges: EdgeMaskParams = field(default_factory=EdgeMaskParams)
    classifier: ClassifierParams = field(default_factory=ClassifierParams)
    lines: LineDetectionParams = field(default_factory=LineDetectionParams)
    jet: JetCheckParams = field(default_factory=JetCheckParams)

    def validate(self) -> "PipelineConfig":
        """Validate every section and return ``self``.

        Raises
        ------
        ValueError
            Raised when any section holds an inconsistent value.
        """
        for section in fields(self):
            getattr(self, section.name).validate()
        return self

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Return a JSON-friendly nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        """Build a configuration from a partial nested mapping.

        Parameters
        ----------
        data : Mapping[str, Any]
            Section name to ``{field: value}`` mapping. Missing sections and
            fields keep their defaults.

        Returns
        -------
        PipelineConfig
            Validated configuration.

        Raises
        ------
        ValueError
            Raised for unknown sections, unknown fields or invalid values.

        Examples
        --------
        >>> config = PipelineConfig.from_dict({"classifier": {"score_threshold": 5.0}})
        >>> config.classifier.score_threshold
        5.0
        """
        config = cls()
        section_names = {section.name for section in fields(config)}
        for section_name, values in data.items():
            if section_name not in section_names:
                raise ValueError(f"unknown config section: {section_name}")
            section = getattr(config, section_name)
            _apply_section(section, section_name, values)
        return config.validate()


def _apply_section(section: Any, section_name: str, values: Mapping[str, Any]) -> None:
    """Overwrite dataclass fields of one section from a mapping."""
    if not isinstance(values, Mapping):
        raise ValueError(f"config section {section_name} must be a mapping")
    field_types = {item.name: item for item in fields(section)}
    for key, value in values.items():
        if key not in field_types:
            raise ValueError(f"unknown config key: {section_name}.{key}")
        if key in _TRIPLE_FIELDS:
            value = _as_triple(value, f"{section_name}.{key}")
        else:
            default_value = getattr(section, key)
            if isinstance(default_value, bool):
                value = bool(value)
            elif isinstance(default_value, int):
                value = int(value)
            elif isinstance(default_value, float):
                value = float(value)
        setattr(section, key, value)


def load_config(file_path: str | Path | None = None) -> PipelineConfig:
    """Load pipeline configuration from a JSON file.

    Parameters
    ----------
    file_path : str | Path | None, optional
        JSON document holding a partial configuration. ``None`` returns the
        defaults.

    Returns
    -------
    PipelineConfig
        Validated configuration.
    """
    if file_path is None:
        logger.debug("Using default pipeline configuration")
        return PipelineConfig().validate()
    config_path = Path(file_path)
    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"config file must hold a JSON object: {config_path}")
    config = PipelineConfig.from_dict(data)
    logger.info(f"Loaded pipeline configuration from {config_path}")
    return config


def save_config(config: PipelineConfig, file_path: str | Path) -> None:
    """Write configuration as indented JSON."""
    target_path = Path(file_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    with open(target_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)


__all__ = [
    "ClassifierParams",
    "CropSegmentationParams",
    "EdgeMaskParams",
    "JetCheckParams",
    "LaserRemovalParams",
    "LineDetectionParams",
    "PipelineConfig",
    "WeedSegmentationParams",
    "load_config",
    "save_config",
]
