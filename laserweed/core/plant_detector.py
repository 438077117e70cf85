"""Plant detection pipeline: laser removal, segmentation and classification."""

from __future__ import annotations

from dataclasses import dataclass, field

import cv2
import numpy as np
from loguru import logger

from laserweed.config import EdgeMaskParams, PipelineConfig
from laserweed.core.plant import Plant
from laserweed.core.species_classifier import SpeciesClassifier
from laserweed.utils.color_segmentation import ColorSegmenter, remove_color_cast


def _empty_mask() -> np.ndarray:
    return np.zeros((0, 0), dtype=np.uint8)


@dataclass
class PlantDetection:
    """Plants of one frame together with the intermediate masks.

    The masks are kept for overlay tools; all of them share the frame size
    except in the empty-input case where they are ``(0, 0)``.
    """

    plants: list[Plant] = field(default_factory=list)
    cleaned_frame: np.ndarray = field(
        default_factory=lambda: np.zeros((0, 0, 3), dtype=np.uint8)
    )
    weed_mask: np.ndarray = field(default_factory=_empty_mask)
    crop_mask: np.ndarray = field(default_factory=_empty_mask)
    combined_mask: np.ndarray = field(default_factory=_empty_mask)
    edge_mask: np.ndarray = field(default_factory=_empty_mask)


def is_valid_frame(frame: np.ndarray | None) -> bool:
    """Return whether ``frame`` is a non-empty ``(H, W, 3)`` ``uint8`` image."""
    if frame is None:
        return False
    frame_array = np.asarray(frame)
    return (
        frame_array.ndim == 3
        and frame_array.shape[2] == 3
        and frame_array.size > 0
        and frame_array.dtype == np.uint8
    )


def build_edge_mask(frame: np.ndarray, params: EdgeMaskParams) -> np.ndarray:
    """Detect edges and thicken them into the overlap-pruning mask.

    Parameters
    ----------
    frame : numpy.ndarray
        BGR frame with shape ``(H, W, 3)``.
    params : EdgeMaskParams
        Canny thresholds and morphology kernel sizes.

    Returns
    -------
    numpy.ndarray
        ``uint8`` mask with shape ``(H, W)``.
    """
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    edges = cv2.Canny(gray, params.canny_low, params.canny_high)
    dilate_kernel = cv2.getStructuringElement(
        cv2.MORPH_RECT, (params.dilate_size, params.dilate_size)
    )
    erode_kernel = cv2.getStructuringElement(
        cv2.MORPH_RECT, (params.erode_size, params.erode_size)
    )
    edges = cv2.dilate(edges, dilate_kernel)
    return cv2.erode(edges, erode_kernel)


class PlantDetector:
    """Detect and classify the plants of a frame.

    Parameters
    ----------
    config : PipelineConfig, optional
        Pipeline parameters, defaults when omitted.

    Examples
    --------
    >>> PlantDetector().detect_plants(np.zeros((0, 0, 3), dtype=np.uint8))
    []
    """

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self.config = config or PipelineConfig()
        self.segmenter = ColorSegmenter(self.config.weed, self.config.crop)
        self.classifier = SpeciesClassifier(self.config.classifier)

    def detect(self, frame: np.ndarray | None) -> PlantDetection:
        """Run the full detection pipeline and keep intermediate masks.

        Parameters
        ----------
        frame : numpy.ndarray | None
            BGR frame with shape ``(H, W, 3)``. The array is not modified.

        Returns
        -------
        PlantDetection
            Plants and masks. Empty or invalid frames give an empty result.
        """
        if not is_valid_frame(frame):
            logger.warning("Empty or invalid input frame, no plants detected")
            return PlantDetection()
        image = np.asarray(frame)
        cleaned = remove_color_cast(image, self.config.laser_removal)
        weed_mask = self.segmenter.segment_weed(cleaned)
        crop_mask = self.segmenter.segment_crop(cleaned)
        combined_mask = cv2.bitwise_or(weed_mask, crop_mask)
        edge_mask = build_edge_mask(cleaned, self.config.edges)
        plants = self.classifier.classify(combined_mask, cleaned, edge_mask)
        logger.debug(f"Detected {len(plants)} plants")
        return PlantDetection(
            plants=plants,
            cleaned_frame=cleaned,
            weed_mask=weed_mask,
            crop_mask=crop_mask,
            combined_mask=combined_mask,
            edge_mask=edge_mask,
        )

    def detect_plants(self, frame: np.ndarray | None) -> list[Plant]:
        """Return the classified plants of ``frame``."""
        return self.detect(frame).plants
