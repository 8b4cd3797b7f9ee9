"""
NDVI Cluster Classifier — Raster Loader
=========================================
Reads georeferenced rasters (GeoTIFF or anything rasterio opens) into
:class:`~ndvi_cluster.raster.Raster` / :class:`~ndvi_cluster.raster.Band`
objects.  Files are only ever opened read-only.

Usage::

    from ndvi_cluster.loader import load_raster

    scene = load_raster("data/landsat.tif")       # every band
    nir = load_raster("data/landsat.tif", band=4)  # one band
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError

from ndvi_cluster.raster import Band, Raster, RasterMeta
from shared.python.exceptions import FormatError
from shared.python.validators import Validators

logger = logging.getLogger("vegmapkit.ndvi_cluster.loader")


def describe_raster(path: str | Path) -> RasterMeta:
    """Read only the metadata of a raster (no pixel data).

    Raises:
        RasterNotFoundError: If *path* does not exist.
        FormatError: If rasterio cannot open the file.
    """
    path = Path(path)
    Validators.assert_file_exists(path)
    try:
        with rasterio.open(path) as src:
            return RasterMeta.from_dataset(src)
    except RasterioIOError as exc:
        raise FormatError(str(path), str(exc)) from exc


def load_raster(path: str | Path, band: int | None = None) -> Raster | Band:
    """Load a whole raster or one of its bands.

    Cells equal to the file's nodata value, and NaN/inf cells, are masked.
    Per-band ``scales``/``offsets`` stored in the file are applied, so a
    layer exported as scaled integers reads back in its original units.

    Args:
        path: Raster file to read.
        band: 1-based band number.  ``None`` loads every band.

    Returns:
        A :class:`Band` when *band* is given, else a :class:`Raster`.

    Raises:
        RasterNotFoundError: If *path* does not exist.
        FormatError: If the file is a directory or cannot be decoded.
        BandIndexError: If *band* exceeds the file's band count.
    """
    path = Path(path)
    Validators.assert_file_exists(path)

    try:
        with rasterio.open(path) as src:
            meta = RasterMeta.from_dataset(src)
            if band is not None:
                Validators.assert_band_index_valid(band, src.count, str(path))
                indexes = [int(band)]
            else:
                indexes = list(range(1, src.count + 1))

            data = src.read(indexes, masked=True)
            scales = np.array([src.scales[i - 1] for i in indexes], dtype=np.float64)
            offsets = np.array([src.offsets[i - 1] for i in indexes], dtype=np.float64)
            names = tuple(src.descriptions[i - 1] or f"band{i}" for i in indexes)
    except RasterioIOError as exc:
        raise FormatError(str(path), str(exc)) from exc

    if np.any(scales != 1.0) or np.any(offsets != 0.0):
        data = (
            data.astype(np.float32) * scales[:, np.newaxis, np.newaxis].astype(np.float32)
            + offsets[:, np.newaxis, np.newaxis].astype(np.float32)
        )
    if np.issubdtype(data.dtype, np.floating):
        data = np.ma.masked_invalid(data)
    data = np.ma.MaskedArray(np.ma.getdata(data), mask=np.ma.getmaskarray(data))
    meta = meta.with_dtype(str(data.dtype), meta.nodata)

    logger.debug(
        "Loaded %s: %d band(s), %dx%d, crs=%s",
        path.name, len(indexes), meta.height, meta.width, meta.crs,
    )

    if band is not None:
        return Band(data=data[0], meta=meta.with_count(1), index=int(band), name=names[0])
    return Raster(data=data, meta=meta, path=path, band_names=names)
