"""
NDVI Cluster Classifier — GeoTIFF Export
==========================================
Writes single-band layers to LZW-compressed GeoTIFFs with an explicit
datatype.

Integer datatypes store ``round(value * scale_factor)`` and record
``1 / scale_factor`` in the band's ``scales`` so
:func:`~ndvi_cluster.loader.load_raster` (and GDAL-aware readers)
recover the original values.  An NDVI layer written as ``int16`` with
``scale_factor=10000`` is half the size of the float32 version.

No-data cells are written as the datatype's sentinel:

    float32   -9999.0
    int16     -32768
    int32     -2147483648
    uint8     0

A valid pixel equal to its sentinel is rejected rather than written,
since it would read back as no-data.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError

from ndvi_cluster.raster import Band
from shared.python.exceptions import InvalidParameterError, OutputWriteError
from shared.python.validators import Validators

logger = logging.getLogger("vegmapkit.ndvi_cluster.export")

DATATYPES: dict[str, float] = {
    "float32": -9999.0,
    "int16": -32768,
    "int32": -2147483648,
    "uint8": 0,
}


def is_integer_datatype(datatype: str) -> bool:
    return np.issubdtype(np.dtype(datatype), np.integer)


def _storable_range(datatype: str) -> tuple[int, int]:
    """Integer range of *datatype* minus its no-data sentinel."""
    info = np.iinfo(datatype)
    low, high = int(info.min), int(info.max)
    sentinel = DATATYPES[datatype]
    if sentinel == low:
        low += 1
    elif sentinel == high:
        high -= 1
    return low, high


def write_layer(
    layer: Band,
    path: str | Path,
    datatype: str = "float32",
    scale_factor: float | None = None,
) -> Path:
    """Write *layer* as a single-band GeoTIFF.

    Args:
        layer: The layer to write; masked cells become the sentinel.
        path: Destination file.  Parent directories are created.
        datatype: One of :data:`DATATYPES`.
        scale_factor: Multiplier applied before rounding for integer
                      datatypes (default 1).  Not allowed for float32.

    Returns:
        The written path.

    Raises:
        InvalidParameterError: For an unknown datatype, a bad
            *scale_factor*, scaled values outside the datatype range, or
            a valid float32 pixel equal to -9999.0.
        OutputWriteError: If the file cannot be written.
    """
    path = Path(path)
    Validators.assert_choice("datatype", datatype, list(DATATYPES))
    nodata = DATATYPES[datatype]
    mask = layer.nodata_mask
    values = np.ma.getdata(layer.data).astype(np.float64)

    scale = 1.0
    if is_integer_datatype(datatype):
        if scale_factor is not None:
            scale = Validators.assert_positive("scale_factor", scale_factor)
        with np.errstate(invalid="ignore"):
            values = np.rint(values * scale)
        low, high = _storable_range(datatype)
        valid = values[~mask]
        if valid.size and (valid.min() < low or valid.max() > high):
            raise InvalidParameterError(
                "scale_factor", scale_factor,
                f"scaled values span [{valid.min():.0f}, {valid.max():.0f}], "
                f"outside the {datatype} range [{low}, {high}]",
            )
    else:
        if scale_factor is not None:
            raise InvalidParameterError(
                "scale_factor", scale_factor, "only applies to integer datatypes"
            )
        if np.any(values[~mask].astype(datatype) == nodata):
            raise InvalidParameterError(
                "layer", layer.name,
                f"valid pixels hold the {datatype} no-data value {nodata}",
            )

    out = np.where(mask, nodata, values).astype(datatype)
    profile = layer.meta.with_count(1).with_dtype(datatype, nodata).to_profile()
    profile.update(compress="lzw")

    Validators.assert_output_dir_writable(path)
    try:
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(out, 1)
            if scale != 1.0:
                dst.scales = (1.0 / scale,)
            if layer.name:
                dst.set_band_description(1, layer.name)
    except (OSError, RasterioIOError) as exc:
        raise OutputWriteError(str(path), str(exc)) from exc

    logger.debug("Wrote %s (%s, scale=%g)", path, datatype, scale)
    return path
