"""
Shared fixtures for the NDVI Cluster Classifier tests.

All raster I/O uses temporary GeoTIFFs written with rasterio so no real
satellite imagery is required.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import numpy as np
import numpy.typing as npt
import pytest
import rasterio
from rasterio.transform import from_origin

# 30 m UTM grid, Landsat-like.
SCENE_CRS = "EPSG:32633"
SCENE_TRANSFORM = from_origin(500000.0, 4200000.0, 30.0, 30.0)


@pytest.fixture
def write_geotiff(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a 2-D or 3-D array to a GeoTIFF in ``tmp_path``."""

    def _write(
        data: npt.ArrayLike,
        name: str = "scene.tif",
        *,
        dtype: str = "float32",
        crs: str | None = SCENE_CRS,
        nodata: float | None = None,
        descriptions: Sequence[str] | None = None,
    ) -> Path:
        arr = np.asarray(data, dtype=dtype)
        if arr.ndim == 2:
            arr = arr[np.newaxis, ...]
        count, height, width = arr.shape
        path = tmp_path / name
        with rasterio.open(
            path, "w",
            driver="GTiff",
            height=height,
            width=width,
            count=count,
            dtype=dtype,
            crs=crs,
            transform=SCENE_TRANSFORM,
            nodata=nodata,
        ) as dst:
            dst.write(arr)
            for i, description in enumerate(descriptions or [], start=1):
                dst.set_band_description(i, description)
        return path

    return _write


@pytest.fixture
def scene_array() -> npt.NDArray[np.float32]:
    """Synthetic 4-band reflectance scene (blue, green, red, nir), 20×30.

    Left half is dense vegetation (NDVI ≈ 0.8), the middle third of the
    right half is bare soil (NDVI ≈ 0.1), the rest is water (NDVI < 0).
    """
    rng = np.random.default_rng(0)
    rows, cols = 20, 30
    blue = np.full((rows, cols), 0.05)
    green = np.full((rows, cols), 0.08)
    red = np.full((rows, cols), 0.05)
    nir = np.full((rows, cols), 0.45)

    red[:, 15:] = 0.25
    nir[:, 15:] = 0.30
    red[:, 25:] = 0.06
    nir[:, 25:] = 0.03
    green[:, 25:] = 0.10

    cube = np.stack([blue, green, red, nir])
    cube += rng.normal(0.0, 0.002, size=cube.shape)
    return np.clip(cube, 0.001, None).astype(np.float32)


@pytest.fixture
def scene_path(write_geotiff: Callable[..., Path], scene_array: npt.NDArray[np.float32]) -> Path:
    """The :func:`scene_array` written as ``scene.tif``."""
    return write_geotiff(scene_array, descriptions=["blue", "green", "red", "nir"])
