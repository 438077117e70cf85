"""Dependency contract tests for the runtime vision stack.

This module locks expected runtime dependency behavior.
"""

from pathlib import Path
import tomllib

PYPROJECT = Path(__file__).resolve().parents[1] / "pyproject.toml"


def _dependencies() -> list[str]:
    data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
    return data["project"]["dependencies"]


def test_runtime_dependencies_contract() -> None:
    """Ensure runtime dependencies include OpenCV, NumPy and Loguru.

    Returns
    -------
    None
    """
    deps = _dependencies()
    for name in ("opencv-python", "numpy", "loguru", "scipy", "pandas"):
        assert any(dep.startswith(name) for dep in deps), name


def test_no_gui_or_gis_dependencies() -> None:
    """Ensure the desktop and GIS stack is not pulled in at runtime.

    Returns
    -------
    None
    """
    deps = _dependencies()
    for name in ("pyside6", "geopandas", "rasterio", "torch", "ultralytics"):
        assert not any(dep.lower().startswith(name) for dep in deps), name


def test_pytest_is_a_test_extra() -> None:
    data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
    extras = data["project"]["optional-dependencies"]
    assert any(dep.startswith("pytest") for dep in extras["test"])
