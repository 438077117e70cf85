"""Utility package exports for laserweed."""

from laserweed.utils.color_segmentation import ColorSegmenter, remove_color_cast
from laserweed.utils.contour_grouping import (
    bounding_rect,
    filter_contours_by_area,
    filter_contours_by_aspect_ratio,
    group_contour_indices,
    group_contours,
)
from laserweed.utils.report import (
    format_aim_point,
    format_plant_centers,
    plants_to_dataframe,
)

__all__ = [
    "ColorSegmenter",
    "bounding_rect",
    "filter_contours_by_area",
    "filter_contours_by_aspect_ratio",
    "format_aim_point",
    "format_plant_centers",
    "group_contour_indices",
    "group_contours",
    "plants_to_dataframe",
    "remove_color_cast",
]
