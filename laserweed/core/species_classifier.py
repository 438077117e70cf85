"""Feature scoring and crop / weed classification of plant blobs."""

from __future__ import annotations

import math
from dataclasses import dataclass

import cv2
import numpy as np
from loguru import logger
from scipy.spatial.distance import cdist

from laserweed.config import ClassifierParams
from laserweed.core.plant import Plant, Rect, Species
from laserweed.utils.contour_grouping import group_contour_indices


@dataclass
class BlobFeatures:
    """Shape features of one contour.

    Parameters
    ----------
    area : float
        Contour area.
    center : tuple[float, float]
        Centroid from contour moments, bounding-box centre when the zeroth
        moment is zero.
    bounding_box : Rect
        Contour box clipped to the frame.
    solidity : float
        ``area / hull_area``, ``0`` when the hull is degenerate.
    extent : float
        ``area / box_area``, ``0`` when the box is degenerate.
    distance_from_center : float
        Horizontal distance from the frame's vertical centerline.
    """

    area: float
    center: tuple[float, float]
    bounding_box: Rect
    solidity: float
    extent: float
    distance_from_center: float


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return float(numerator) / float(denominator)


def _moments_center(moments: dict[str, float], fallback: Rect) -> tuple[float, float]:
    """Centroid from image moments, box centre when ``m00`` is zero."""
    if moments["m00"] == 0:
        return fallback.center
    return moments["m10"] / moments["m00"], moments["m01"] / moments["m00"]


def compute_blob_features(
    contour: np.ndarray,
    frame_width: int,
    frame_height: int,
) -> BlobFeatures:
    """Compute the scoring features of one contour.

    Parameters
    ----------
    contour : numpy.ndarray
        OpenCV contour with shape ``(N, 1, 2)``.
    frame_width, frame_height : int
        Frame size used to clip the box and locate the centerline.

    Returns
    -------
    BlobFeatures
        Features with every ratio guarded against zero denominators.
    """
    area = float(cv2.contourArea(contour))
    box = Rect.from_xywh(cv2.boundingRect(contour)).clip(frame_width, frame_height)
    center = _moments_center(cv2.moments(contour), box)
    hull_area = float(cv2.contourArea(cv2.convexHull(contour)))
    return BlobFeatures(
        area=area,
        center=(float(center[0]), float(center[1])),
        bounding_box=box,
        solidity=_safe_ratio(area, hull_area),
        extent=_safe_ratio(area, box.area),
        distance_from_center=abs(center[0] - frame_width / 2.0),
    )


def score_blob(
    features: BlobFeatures,
    frame_width: int,
    params: ClassifierParams,
) -> float:
    """Score a blob; higher values look more like crop.

    ``area / area_divisor``, plus the solidity when it exceeds
    ``solidity_min``, plus ``extent_bonus`` when the extent exceeds
    ``extent_min``, plus ``1 / max(distance, 1)`` when the centroid lies
    within ``center_band_ratio * frame_width`` of the centerline.

    Examples
    --------
    >>> features = BlobFeatures(400.0, (50.0, 5.0), Rect(40, 0, 20, 20), 1.0, 1.0, 0.0)
    >>> score_blob(features, 100, ClassifierParams())
    4.0
    """
    score = features.area / params.area_divisor
    if features.solidity > params.solidity_min:
        score += features.solidity
    if features.extent > params.extent_min:
        score += params.extent_bonus
    distance = features.distance_from_center
    if distance < params.center_band_ratio * frame_width:
        score += 1.0 / max(distance, 1.0)
    return float(score) if math.isfinite(score) else 0.0


@dataclass
class _Blob:
    """Per-contour classification state."""

    contour: np.ndarray
    features: BlobFeatures
    score: float
    species: Species


class SpeciesClassifier:
    """Classify combined-mask blobs into crop and weed plants.

    Parameters
    ----------
    params : ClassifierParams, optional
        Scoring weights and corrective-pass constants.
    """

    def __init__(self, params: ClassifierParams | None = None) -> None:
        self.params = params or ClassifierParams()

    def classify(
        self,
        combined_mask: np.ndarray,
        frame: np.ndarray,
        edge_mask: np.ndarray | None,
        score_threshold: float | None = None,
    ) -> list[Plant]:
        """Extract, score, classify and clean up plant blobs.

        Parameters
        ----------
        combined_mask : numpy.ndarray
            ``uint8`` mask with shape ``(H, W)`` of every plant candidate.
        frame : numpy.ndarray
            Source frame, only its size is used.
        edge_mask : numpy.ndarray | None
            Edge mask with shape ``(H, W)``. Plants whose box holds no edge
            pixel are discarded. ``None`` skips this test.
        score_threshold : float | None, optional
            Crop score cutoff, ``params.score_threshold`` when omitted.

        Returns
        -------
        list[Plant]
            Surviving plants, in no particular order.
        """
        mask = np.asarray(combined_mask)
        if mask.ndim != 2:
            raise ValueError("combined_mask must have shape (H, W)")
        frame_height, frame_width = np.asarray(frame).shape[:2]
        if mask.shape != (frame_height, frame_width):
            raise ValueError("combined_mask and frame sizes differ")
        threshold = (
            self.params.score_threshold if score_threshold is None else float(score_threshold)
        )
        binary = np.where(mask > 0, 255, 0).astype(np.uint8)
        contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        if len(contours) == 0:
            return []

        blobs = self._score_contours(list(contours), frame_width, frame_height, threshold)
        self._decluster(blobs, frame_width, frame_height, threshold)
        plants = self._regroup(blobs, frame_width, frame_height)
        plants = self._suppress_weeds_near_crops(plants)
        plants = self._prune(plants, edge_mask)
        logger.debug(
            f"Classified contours={len(blobs)} plants={len(plants)} "
            f"crop={sum(p.species == Species.CROP for p in plants)} "
            f"weed={sum(p.species == Species.WEED for p in plants)}"
        )
        return plants

    def _score_contours(
        self,
        contours: list[np.ndarray],
        frame_width: int,
        frame_height: int,
        threshold: float,
    ) -> list[_Blob]:
        blobs: list[_Blob] = []
        for contour in contours:
            features = compute_blob_features(contour, frame_width, frame_height)
            score = score_blob(features, frame_width, self.params)
            species = Species.CROP if score >= threshold else Species.WEED
            blobs.append(_Blob(contour, features, score, species))
        return blobs

    def _decluster(
        self,
        blobs: list[_Blob],
        frame_width: int,
        frame_height: int,
        threshold: float,
    ) -> None:
        """Relabel small, borderline crop blobs lying next to a weed."""
        weed_centers = np.asarray(
            [blob.features.center for blob in blobs if blob.species == Species.WEED],
            dtype=np.float64,
        )
        if weed_centers.size == 0:
            return
        radius = self.params.decluster_distance_ratio * math.hypot(frame_width, frame_height)
        for blob in blobs:
            if blob.species != Species.CROP:
                continue
            if blob.features.area >= self.params.decluster_max_area:
                continue
            if blob.score >= threshold + self.params.decluster_score_margin:
                continue
            distances = cdist(np.asarray([blob.features.center]), weed_centers)
            if np.any(distances < radius):
                blob.species = Species.WEED

    def _regroup(
        self,
        blobs: list[_Blob],
        frame_width: int,
        frame_height: int,
    ) -> list[Plant]:
        """Group contours per species and rebuild plant records."""
        plants: list[Plant] = []
        for species, max_distance in (
            (Species.CROP, self.params.crop_group_distance),
            (Species.WEED, self.params.weed_group_distance),
        ):
            members = [blob for blob in blobs if blob.species == species]
            groups = group_contour_indices([blob.contour for blob in members], max_distance)
            for group in groups:
                plant = _build_plant(
                    [members[idx] for idx in group], species, frame_width, frame_height
                )
                if plant is not None:
                    plants.append(plant)
        return plants

    def _suppress_weeds_near_crops(self, plants: list[Plant]) -> list[Plant]:
        """Drop weeds whose centre falls inside a circle around a crop centre."""
        crops = [plant for plant in plants if plant.species == Species.CROP]
        weeds = [plant for plant in plants if plant.species == Species.WEED]
        if not crops or not weeds:
            return plants
        crop_centers = np.asarray([plant.center for plant in crops], dtype=np.float64)
        divisor = self.params.suppression_radius_divisor
        radii = np.asarray(
            [plant.bounding_box.width / divisor for plant in crops], dtype=np.float64
        )
        weed_centers = np.asarray([plant.center for plant in weeds], dtype=np.float64)
        distances = cdist(weed_centers, crop_centers)
        inside = np.any(distances < radii[np.newaxis, :], axis=1)
        kept_weeds = [weed for weed, drop in zip(weeds, inside) if not drop]
        if len(kept_weeds) != len(weeds):
            logger.debug(f"Suppressed {len(weeds) - len(kept_weeds)} weeds near crops")
        return crops + kept_weeds

    def _prune(self, plants: list[Plant], edge_mask: np.ndarray | None) -> list[Plant]:
        """Drop oversized plants and plants without any edge pixel in their box."""
        kept: list[Plant] = []
        for plant in plants:
            if plant.area >= self.params.max_plant_area:
                continue
            if edge_mask is not None:
                rows, cols = plant.bounding_box.slices
                if not np.any(edge_mask[rows, cols]):
                    continue
            kept.append(plant)
        return kept


def _build_plant(
    members: list[_Blob],
    species: Species,
    frame_width: int,
    frame_height: int,
) -> Plant | None:
    """Rasterise one contour group into a plant record."""
    points = np.concatenate([blob.contour for blob in members], axis=0)
    box = Rect.from_xywh(cv2.boundingRect(points)).clip(frame_width, frame_height)
    if box.is_empty():
        return None
    local_mask = np.zeros((box.height, box.width), dtype=np.uint8)
    cv2.drawContours(
        local_mask,
        [blob.contour for blob in members],
        -1,
        255,
        thickness=cv2.FILLED,
        offset=(-box.x, -box.y),
    )
    local_center = _moments_center(
        cv2.moments(local_mask, binaryImage=True), Rect(0, 0, box.width, box.height)
    )
    return Plant(
        bounding_box=box,
        center=(box.x + float(local_center[0]), box.y + float(local_center[1])),
        mask=local_mask,
        species=species,
        area=float(sum(blob.features.area for blob in members)),
        score=float(max(blob.score for blob in members)),
    )
