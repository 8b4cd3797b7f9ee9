"""
Tests — Band Selection and Stacking
=====================================
Grid comparison, stack ordering and compatibility errors.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from rasterio.transform import from_origin

from ndvi_cluster.bands import BandStack, compare_rasters, select_bands, stack_bands
from ndvi_cluster.loader import load_raster
from ndvi_cluster.raster import Band, RasterMeta
from shared.python.exceptions import (
    BandIndexError,
    IncompatibleBandsError,
    InvalidParameterError,
)


def _band(values, name: str = "", **grid) -> Band:
    arr = np.asarray(values, dtype=np.float64)
    meta = RasterMeta.for_grid(arr.shape[0], arr.shape[1], **grid)
    return Band.from_array(arr, meta=meta, name=name)


class TestCompareRasters:
    def test_reflexive(self) -> None:
        a = _band(np.ones((3, 4)))
        assert compare_rasters(a, a)

    def test_identical_grids_are_compatible(self) -> None:
        a = _band(np.ones((3, 4)), crs="EPSG:4326")
        b = _band(np.zeros((3, 4)), crs="EPSG:4326")
        comparison = compare_rasters(a, b)
        assert comparison
        assert comparison.mismatches == ()

    def test_crs_mismatch_is_explained(self) -> None:
        a = _band(np.ones((2, 2)), crs="EPSG:4326")
        b = _band(np.ones((2, 2)), crs="EPSG:32633")
        comparison = compare_rasters(a, b)
        assert not comparison
        assert len(comparison.mismatches) == 1
        assert comparison.mismatches[0].startswith("crs:")

    def test_symmetric(self) -> None:
        a = _band(np.ones((2, 2)), crs="EPSG:4326")
        b = _band(np.ones((2, 2)), crs="EPSG:32633")
        c = _band(np.ones((2, 2)), crs="EPSG:4326")
        assert bool(compare_rasters(a, b)) == bool(compare_rasters(b, a))
        assert bool(compare_rasters(a, c)) == bool(compare_rasters(c, a))

    def test_dimension_mismatch(self) -> None:
        comparison = compare_rasters(_band(np.ones((2, 2))), _band(np.ones((2, 3))))
        assert any(m.startswith("dimensions:") for m in comparison.mismatches)

    def test_resolution_mismatch(self) -> None:
        a = _band(np.ones((2, 2)), transform=from_origin(0, 2, 1, 1))
        b = _band(np.ones((2, 2)), transform=from_origin(0, 2, 0.5, 0.5))
        labels = [m.split(":")[0] for m in compare_rasters(a, b).mismatches]
        assert "resolution" in labels
        assert "extent" in labels

    def test_extent_mismatch_only(self) -> None:
        a = _band(np.ones((2, 2)), transform=from_origin(0, 2, 1, 1))
        b = _band(np.ones((2, 2)), transform=from_origin(10, 2, 1, 1))
        comparison = compare_rasters(a, b)
        assert [m.split(":")[0] for m in comparison.mismatches] == ["extent"]

    def test_accepts_raster_and_meta(self, scene_path: Path) -> None:
        scene = load_raster(scene_path)
        assert compare_rasters(scene, scene.band(1))
        assert compare_rasters(scene.meta, scene.band(2))

    def test_rejects_non_raster(self) -> None:
        with pytest.raises(TypeError):
            compare_rasters(np.ones((2, 2)), _band(np.ones((2, 2))))


class TestStackBands:
    def test_preserves_channel_order(self) -> None:
        b2, b3, b4 = (_band(np.full((2, 2), v), name) for v, name in
                      [(0.2, "b2"), (0.3, "b3"), (0.4, "b4")])
        stack = stack_bands([b4, b3, b2])
        assert stack.channel(0) is b4
        assert stack.channel(0) == b4
        assert stack.channel(2) is b2
        assert stack.names == ("b4", "b3", "b2")

    def test_data_is_channel_first(self) -> None:
        stack = stack_bands([_band(np.full((2, 3), v)) for v in (1.0, 2.0)])
        assert stack.data.shape == (2, 2, 3)
        assert stack.meta.count == 2
        assert len(stack) == 2
        assert stack.data[1, 0, 0] == 2.0

    def test_nodata_mask_is_union(self) -> None:
        a = _band([[np.nan, 1.0], [1.0, 1.0]])
        b = _band([[1.0, 1.0], [np.nan, 1.0]])
        assert stack_bands([a, b]).nodata_mask.tolist() == [[True, False], [True, False]]

    def test_incompatible_bands_raise(self) -> None:
        a = _band(np.ones((2, 2)), "nir", crs="EPSG:4326")
        b = _band(np.ones((2, 2)), "red", crs="EPSG:32633")
        with pytest.raises(IncompatibleBandsError, match="crs") as info:
            stack_bands([a, b])
        assert info.value.label_a == "nir"
        assert info.value.label_b == "red"

    def test_third_band_incompatible(self) -> None:
        a, b = _band(np.ones((2, 2))), _band(np.ones((2, 2)))
        c = _band(np.ones((3, 2)))
        with pytest.raises(IncompatibleBandsError, match="dimensions"):
            stack_bands([a, b, c])

    def test_empty_raises(self) -> None:
        with pytest.raises(InvalidParameterError):
            stack_bands([])

    def test_channel_out_of_range(self) -> None:
        stack = stack_bands([_band(np.ones((2, 2)))])
        with pytest.raises(BandIndexError):
            stack.channel(1)

    def test_direct_construction_is_validated(self) -> None:
        with pytest.raises(IncompatibleBandsError):
            BandStack((_band(np.ones((2, 2))), _band(np.ones((4, 4)))))


class TestSelectBands:
    def test_false_colour_order(self, scene_path: Path) -> None:
        scene = load_raster(scene_path)
        stack = select_bands(scene, [4, 3, 2])
        assert [b.index for b in stack] == [4, 3, 2]
        assert stack.names == ("nir", "red", "green")

    def test_out_of_range(self, scene_path: Path) -> None:
        scene = load_raster(scene_path)
        with pytest.raises(BandIndexError):
            select_bands(scene, [1, 9])
