"""Colour segmentation of weed and crop candidates."""

from __future__ import annotations

import cv2
import numpy as np
from loguru import logger

from laserweed.config import (
    CropSegmentationParams,
    LaserRemovalParams,
    WeedSegmentationParams,
)
from laserweed.utils.contour_grouping import (
    filter_contours_by_area,
    filter_contours_by_aspect_ratio,
    group_contour_indices,
)


def _validate_frame(frame: np.ndarray) -> np.ndarray:
    """Check that ``frame`` is a non-empty 3-channel ``uint8`` image."""
    frame_array = np.asarray(frame)
    if frame_array.ndim != 3 or frame_array.shape[2] != 3 or frame_array.size == 0:
        raise ValueError("frame must have shape (H, W, 3)")
    if frame_array.dtype != np.uint8:
        raise ValueError(f"frame must be uint8, got {frame_array.dtype}")
    return frame_array


def _odd_kernel_size(size: int) -> int:
    """Force an odd kernel side of at least 1."""
    size = max(1, int(size))
    if size % 2 == 0:
        size += 1
    return size


def _external_contours(mask: np.ndarray) -> list[np.ndarray]:
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    return list(contours)


def _fill_groups(
    shape: tuple[int, int],
    contours: list[np.ndarray],
    groups: list[list[int]],
) -> np.ndarray:
    """Rasterise contour groups.

    Merged groups are drawn as the polygon through their concatenated points,
    then every member contour is filled with its own outline on top.
    """
    cleaned = np.zeros(shape, dtype=np.uint8)
    for members in groups:
        if len(members) > 1:
            bridge = np.concatenate([contours[idx] for idx in members], axis=0)
            cv2.drawContours(cleaned, [bridge], -1, 255, thickness=cv2.FILLED)
        for idx in members:
            cv2.drawContours(cleaned, [contours[idx]], -1, 255, thickness=cv2.FILLED)
    return cleaned


def remove_color_cast(frame: np.ndarray, params: LaserRemovalParams) -> np.ndarray:
    """Erase one colour band from a frame and inpaint the hole.

    Parameters
    ----------
    frame : numpy.ndarray
        BGR frame with shape ``(H, W, 3)``.
    params : LaserRemovalParams
        HSV range of the colour to remove and kernel sizes.

    Returns
    -------
    numpy.ndarray
        New BGR frame where the matched pixels are reconstructed from their
        surroundings.
    """
    image = _validate_frame(frame)
    hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
    removed = cv2.inRange(hsv, np.array(params.hsv_low), np.array(params.hsv_high))
    kernel = cv2.getStructuringElement(
        cv2.MORPH_RECT, (params.morph_size, params.morph_size)
    )
    removed = cv2.dilate(removed, kernel)
    keep = cv2.bitwise_not(removed)
    masked = cv2.bitwise_and(image, image, mask=keep)
    if not np.any(removed):
        return masked
    return cv2.inpaint(masked, removed, params.inpaint_radius, cv2.INPAINT_TELEA)


class ColorSegmenter:
    """Turn a BGR frame into weed and crop candidate masks.

    Parameters
    ----------
    weed_params : WeedSegmentationParams, optional
        HSV range and morphology for weeds.
    crop_params : CropSegmentationParams, optional
        Lab range and morphology for crops.

    Examples
    --------
    >>> segmenter = ColorSegmenter()
    >>> segmenter.segment_weed(np.zeros((8, 8, 3), dtype=np.uint8)).shape
    (8, 8)
    """

    def __init__(
        self,
        weed_params: WeedSegmentationParams | None = None,
        crop_params: CropSegmentationParams | None = None,
    ) -> None:
        self.weed_params = weed_params or WeedSegmentationParams()
        self.crop_params = crop_params or CropSegmentationParams()

    def segment_weed(self, frame: np.ndarray) -> np.ndarray:
        """Build the weed candidate mask.

        HSV range threshold, opening to remove speckle, then dilation to grow
        the blobs. Small contours are dropped and nearby ones are merged.

        Parameters
        ----------
        frame : numpy.ndarray
            BGR frame with shape ``(H, W, 3)``.

        Returns
        -------
        numpy.ndarray
            ``uint8`` mask with shape ``(H, W)`` holding 0 or 255.
        """
        params = self.weed_params
        image = _validate_frame(frame)
        hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
        ranged = cv2.inRange(hsv, np.array(params.hsv_low), np.array(params.hsv_high))
        _, binary = cv2.threshold(ranged, 0, 255, cv2.THRESH_BINARY)
        kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (params.morph_open_size, params.morph_open_size)
        )
        binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel)
        if params.dilate_iterations > 0:
            binary = cv2.dilate(binary, kernel, iterations=params.dilate_iterations)
        contours = filter_contours_by_area(
            _external_contours(binary), params.area_threshold
        )
        groups = group_contour_indices(contours, params.group_max_distance)
        logger.debug(
            f"Weed segmentation contours={len(contours)} groups={len(groups)}"
        )
        return _fill_groups(binary.shape, contours, groups)

    def segment_crop(self, frame: np.ndarray) -> np.ndarray:
        """Build the crop candidate mask.

        The luminance channel is equalised before thresholding. The Lab range
        matches the background, so the thresholded mask is inverted, then
        opened and closed to remove noise and fill small holes.

        Parameters
        ----------
        frame : numpy.ndarray
            BGR frame with shape ``(H, W, 3)``.

        Returns
        -------
        numpy.ndarray
            ``uint8`` mask with shape ``(H, W)`` holding 0 or 255.
        """
        params = self.crop_params
        image = _validate_frame(frame)
        lab = cv2.cvtColor(image, cv2.COLOR_BGR2Lab)
        l_channel, a_channel, b_channel = cv2.split(lab)
        l_channel = cv2.equalizeHist(l_channel)
        lab = cv2.merge([l_channel, a_channel, b_channel])
        ranged = cv2.inRange(lab, np.array(params.lab_low), np.array(params.lab_high))
        foliage = cv2.bitwise_not(ranged)
        kernel_size = _odd_kernel_size(params.morph_kernel_size)
        kernel = cv2.getStructuringElement(
            cv2.MORPH_ELLIPSE, (kernel_size, kernel_size)
        )
        if params.morph_iterations > 0:
            foliage = cv2.morphologyEx(
                foliage, cv2.MORPH_OPEN, kernel, iterations=params.morph_iterations
            )
            foliage = cv2.morphologyEx(
                foliage, cv2.MORPH_CLOSE, kernel, iterations=params.morph_iterations
            )
        contours = filter_contours_by_area(
            _external_contours(foliage), params.area_threshold
        )
        contours = filter_contours_by_aspect_ratio(
            contours, params.aspect_ratio_min, params.aspect_ratio_max
        )
        groups = group_contour_indices(contours, params.group_max_distance)
        logger.debug(
            f"Crop segmentation contours={len(contours)} groups={len(groups)}"
        )
        return _fill_groups(foliage.shape, contours, groups)
