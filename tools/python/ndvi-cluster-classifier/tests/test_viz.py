"""
Tests — PNG Rendering
=======================
Every renderer writes a PNG file; matplotlib runs on the Agg backend.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pytest

from ndvi_cluster import viz
from ndvi_cluster.bands import select_bands
from ndvi_cluster.clustering import classify
from ndvi_cluster.indices import ndvi
from ndvi_cluster.loader import load_raster
from ndvi_cluster.raster import Band
from shared.python.exceptions import InvalidParameterError, OutputWriteError

PNG_MAGIC = b"\x89PNG"


def _is_png(path: Path) -> bool:
    return path.exists() and path.read_bytes()[:4] == PNG_MAGIC


def test_plot_band(scene_path: Path, tmp_path: Path) -> None:
    scene = load_raster(scene_path)
    layer = ndvi(scene.band(4), scene.band(3))
    assert _is_png(viz.plot_band(layer, tmp_path / "ndvi.png", cmap="RdYlGn"))


def test_plot_composite(scene_path: Path, tmp_path: Path) -> None:
    stack = select_bands(load_raster(scene_path), [4, 3, 2])
    assert _is_png(viz.plot_composite(stack, tmp_path / "false_colour.png"))


def test_plot_composite_needs_three_channels(scene_path: Path, tmp_path: Path) -> None:
    stack = select_bands(load_raster(scene_path), [4, 3])
    with pytest.raises(InvalidParameterError):
        viz.plot_composite(stack, tmp_path / "bad.png")


def test_plot_histogram(tmp_path: Path) -> None:
    layer = Band.from_array(np.linspace(-1, 1, 100).reshape(10, 10), name="NDVI")
    assert _is_png(viz.plot_histogram(layer, tmp_path / "hist.png", bins=20))


def test_plot_classes(tmp_path: Path) -> None:
    values = np.repeat([0.1, 0.5, 0.9], 4).reshape(3, 4)
    values[0, 0] = np.nan
    result = classify(Band.from_array(values), k=3, n_start=10, seed=0)
    out = viz.plot_classes(result.labels, tmp_path / "nested" / "classes.png", k=3)
    assert _is_png(out)


def test_plot_all_nodata_band(tmp_path: Path) -> None:
    layer = Band.from_array(np.full((4, 4), np.nan), name="empty")
    assert _is_png(viz.plot_histogram(layer, tmp_path / "empty.png"))


def test_unwritable_png_path(tmp_path: Path) -> None:
    layer = Band.from_array(np.linspace(-1, 1, 16).reshape(4, 4), name="NDVI")
    target = tmp_path / "out.png"
    target.mkdir()
    open_before = plt.get_fignums()
    with pytest.raises(OutputWriteError):
        viz.plot_band(layer, target)
    assert plt.get_fignums() == open_before
