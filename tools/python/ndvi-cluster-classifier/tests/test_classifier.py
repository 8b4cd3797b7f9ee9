"""
Tests — NDVI Cluster Classifier
=================================
End-to-end runs of :class:`ndvi_cluster.classifier.NdviClusterClassifier`
on a synthetic vegetation / soil / water scene.
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest
import rasterio

from ndvi_cluster.classifier import ClassificationResult, ClassifierConfig, NdviClusterClassifier
from shared.python.exceptions import (
    BandIndexError,
    FormatError,
    InvalidParameterError,
    RasterNotFoundError,
)


def _config(**overrides) -> ClassifierConfig:
    defaults = {"k": 3, "n_start": 30, "max_iterations": 100, "seed": 42}
    defaults.update(overrides)
    return ClassifierConfig(**defaults)


def _run(scene_path: Path, output_dir: Path, **overrides) -> NdviClusterClassifier:
    tool = NdviClusterClassifier(scene_path, output_dir, _config(**overrides))
    tool.run()
    return tool


class TestOutputs:
    def test_files_written(self, scene_path: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        tool = _run(scene_path, out)
        assert isinstance(tool.result, ClassificationResult)
        assert (out / "NDVI.tif").exists()
        assert (out / "clusters.tif").exists()
        assert (out / "summary.json").exists()
        assert not (out / "ndvi.png").exists()
        assert set(tool.result.outputs) == {"ndvi", "clusters", "summary"}

    def test_run_returns_result(self, scene_path: Path, tmp_path: Path) -> None:
        tool = NdviClusterClassifier(scene_path, tmp_path, _config())
        result = tool.run()
        assert result is tool.result
        assert tool.elapsed is not None and tool.elapsed >= 0

    def test_ndvi_raster(self, scene_path: Path, tmp_path: Path) -> None:
        _run(scene_path, tmp_path)
        with rasterio.open(tmp_path / "NDVI.tif") as src:
            assert src.dtypes[0] == "int16"
            assert src.crs.to_string() == "EPSG:32633"
            assert src.scales[0] == pytest.approx(1e-4)
            vegetation = src.read(1)[:, :15]
        assert vegetation.mean() == pytest.approx(8000, abs=200)

    def test_float_ndvi(self, scene_path: Path, tmp_path: Path) -> None:
        _run(scene_path, tmp_path, datatype="float32")
        with rasterio.open(tmp_path / "NDVI.tif") as src:
            assert src.dtypes[0] == "float32"
            assert src.read(1)[0, 0] == pytest.approx(0.8, abs=0.02)

    def test_clusters_raster(self, scene_path: Path, tmp_path: Path) -> None:
        _run(scene_path, tmp_path)
        with rasterio.open(tmp_path / "clusters.tif") as src:
            assert src.dtypes[0] == "uint8"
            assert src.nodata == 0
            labels = src.read(1)
        assert set(np.unique(labels)) == {1, 2, 3}

    def test_clusters_follow_land_cover(self, scene_path: Path, tmp_path: Path) -> None:
        tool = _run(scene_path, tmp_path)
        grid = tool.result.labels.data
        regions = [grid[:, :15], grid[:, 15:25], grid[:, 25:]]
        assert all(np.unique(region.compressed()).size == 1 for region in regions)
        assert len({int(region[0, 0]) for region in regions}) == 3

    def test_summary(self, scene_path: Path, tmp_path: Path) -> None:
        _run(scene_path, tmp_path, seed=7)
        summary = json.loads((tmp_path / "summary.json").read_text(encoding="utf-8"))
        assert summary["kmeans"]["seed"] == 7
        assert summary["kmeans"]["k"] == 3
        assert summary["config"]["nir_band"] == 4
        assert summary["width"] == 30
        assert summary["height"] == 20
        assert summary["crs"] == "EPSG:32633"
        assert summary["ndvi"]["valid_pixels"] == 600
        assert sum(summary["kmeans"]["sizes"]) == 600

    def test_png_outputs(self, scene_path: Path, tmp_path: Path) -> None:
        tool = _run(scene_path, tmp_path, render_png=True)
        for name in ("ndvi.png", "ndvi_histogram.png", "clusters.png"):
            assert (tmp_path / name).read_bytes()[:4] == b"\x89PNG"
        assert "clusters_png" in tool.result.outputs

    def test_input_not_modified(self, scene_path: Path, tmp_path: Path) -> None:
        before = scene_path.read_bytes()
        _run(scene_path, tmp_path / "out")
        assert scene_path.read_bytes() == before


class TestOptions:
    def test_threshold_masks_low_ndvi(self, scene_path: Path, tmp_path: Path) -> None:
        tool = _run(scene_path, tmp_path, threshold=0.4, k=2)
        labels = tool.result.labels
        assert labels.nodata_mask[:, 15:].all()
        assert not labels.nodata_mask[:, :15].any()
        assert tool.result.ndvi.valid_count == 600

    def test_band_features(self, scene_path: Path, tmp_path: Path) -> None:
        tool = _run(scene_path, tmp_path, features="bands", cluster_bands=[2, 3, 4])
        assert tool.result.model.centroids.shape == (3, 3)

    def test_all_band_features(self, scene_path: Path, tmp_path: Path) -> None:
        tool = _run(scene_path, tmp_path, features="bands")
        assert tool.result.model.centroids.shape == (3, 4)

    def test_band_features_with_threshold(self, scene_path: Path, tmp_path: Path) -> None:
        tool = _run(scene_path, tmp_path, features="bands", threshold=0.4, k=2)
        assert tool.result.labels.valid_count == 20 * 15

    def test_reproducible(self, scene_path: Path, tmp_path: Path) -> None:
        first = _run(scene_path, tmp_path / "a", k=4, seed=3).result
        second = _run(scene_path, tmp_path / "b", k=4, seed=3).result
        np.testing.assert_array_equal(first.labels.data, second.labels.data)
        assert first.model.inertia == pytest.approx(second.model.inertia)
        assert (tmp_path / "a" / "clusters.tif").read_bytes() == (
            tmp_path / "b" / "clusters.tif"
        ).read_bytes()


class TestValidation:
    def test_result_none_before_run(self, scene_path: Path, tmp_path: Path) -> None:
        tool = NdviClusterClassifier(scene_path, tmp_path, _config())
        assert tool.result is None

    def test_missing_input(self, tmp_path: Path) -> None:
        tool = NdviClusterClassifier(tmp_path / "ghost.tif", tmp_path / "out", _config())
        with pytest.raises(RasterNotFoundError):
            tool.run()
        assert not (tmp_path / "out").exists()

    def test_corrupt_input(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.tif"
        bad.write_bytes(b"\x00" * 64)
        with pytest.raises(FormatError):
            NdviClusterClassifier(bad, tmp_path / "out", _config()).run()

    def test_band_out_of_range(self, scene_path: Path, tmp_path: Path) -> None:
        with pytest.raises(BandIndexError):
            _run(scene_path, tmp_path, nir_band=8)

    def test_cluster_band_out_of_range(self, scene_path: Path, tmp_path: Path) -> None:
        with pytest.raises(BandIndexError):
            _run(scene_path, tmp_path, features="bands", cluster_bands=[1, 5])

    @pytest.mark.parametrize(
        "overrides",
        [
            {"k": 1},
            {"nir_band": 3, "red_band": 3},
            {"threshold": float("nan")},
            {"features": "pca"},
            {"datatype": "float64"},
            {"scale_factor": 0.0},
            {"seed": -5},
            {"n_start": 0},
        ],
    )
    def test_invalid_config(self, scene_path: Path, tmp_path: Path, overrides) -> None:
        with pytest.raises(InvalidParameterError):
            _run(scene_path, tmp_path / "out", **overrides)
        assert not (tmp_path / "out" / "summary.json").exists()

    def test_threshold_leaves_too_few_pixels(self, scene_path: Path, tmp_path: Path) -> None:
        with pytest.raises(InvalidParameterError, match="valid pixel"):
            _run(scene_path, tmp_path, threshold=0.99)
