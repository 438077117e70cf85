"""Tests for plant table export and report formatting."""

from __future__ import annotations

import numpy as np

from laserweed.core.plant import Plant, Rect, Species
from laserweed.utils.report import (
    PLANT_COLUMNS,
    format_aim_point,
    format_plant_centers,
    plants_to_dataframe,
)


def _plant(x, y, width, height, species, center=None) -> Plant:
    if center is None:
        center = (x + width / 2.0, y + height / 2.0)
    return Plant(
        bounding_box=Rect(x, y, width, height),
        center=center,
        mask=np.full((height, width), 255, dtype=np.uint8),
        species=species,
        area=float(width * height),
        score=1.5,
    )


def test_plants_to_dataframe() -> None:
    plants = [
        _plant(0, 0, 10, 20, Species.CROP),
        _plant(50, 60, 4, 4, Species.WEED),
    ]
    df = plants_to_dataframe(plants)

    assert list(df.columns) == PLANT_COLUMNS
    assert len(df) == 2
    assert df["species"].tolist() == ["crop", "weed"]
    assert df.loc[0, "height"] == 20
    assert df.loc[1, "center_x"] == 52.0
    assert df.loc[1, "area"] == 16.0


def test_plants_to_dataframe_empty() -> None:
    df = plants_to_dataframe([])
    assert df.empty
    assert list(df.columns) == PLANT_COLUMNS


def test_format_aim_point() -> None:
    assert format_aim_point((12, 7)) == "(12;7)"
    assert format_aim_point(None) == ""


def test_format_plant_centers_rounds() -> None:
    plants = [
        _plant(0, 0, 10, 10, Species.CROP, center=(4.6, 5.2)),
        _plant(20, 20, 10, 10, Species.WEED, center=(25.0, 24.0)),
    ]
    assert format_plant_centers(plants) == "(5;5)/(25;24)"
