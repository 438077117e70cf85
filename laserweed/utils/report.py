"""Tabular and text views of frame results for reporting tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import pandas as pd

if TYPE_CHECKING:
    from laserweed.core.plant import Plant

PLANT_COLUMNS = [
    "species",
    "x",
    "y",
    "width",
    "height",
    "center_x",
    "center_y",
    "area",
    "score",
]


def plants_to_dataframe(plants: Sequence[Plant]) -> pd.DataFrame:
    """Export plant records as one row per plant.

    Parameters
    ----------
    plants : Sequence[Plant]
        Plants of one frame.

    Returns
    -------
    pandas.DataFrame
        Columns ``species, x, y, width, height, center_x, center_y, area,
        score``. Masks are not exported.
    """
    rows = [
        {
            "species": plant.species.value,
            "x": plant.bounding_box.x,
            "y": plant.bounding_box.y,
            "width": plant.bounding_box.width,
            "height": plant.bounding_box.height,
            "center_x": float(plant.center[0]),
            "center_y": float(plant.center[1]),
            "area": float(plant.area),
            "score": float(plant.score),
        }
        for plant in plants
    ]
    return pd.DataFrame(rows, columns=PLANT_COLUMNS)


def format_aim_point(point: tuple[int, int] | None) -> str:
    """Format an aim point as ``(x;y)``, empty when missing."""
    if point is None:
        return ""
    return f"({int(point[0])};{int(point[1])})"


def format_plant_centers(plants: Sequence[Plant]) -> str:
    """Format plant centres as ``(cx;cy)/(cx;cy)/...``.

    Examples
    --------
    >>> format_plant_centers([])
    ''
    """
    return "/".join(
        f"({int(round(plant.center[0]))};{int(round(plant.center[1]))})"
        for plant in plants
    )
