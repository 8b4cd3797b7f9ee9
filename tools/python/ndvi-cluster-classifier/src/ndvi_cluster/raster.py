"""
NDVI Cluster Classifier — Raster Data Model
=============================================
In-memory representation of georeferenced raster grids.

No-data convention:
    Every grid is held as a :class:`numpy.ma.MaskedArray`.  A masked cell
    is no-data, whatever the reason (file nodata value, NaN, zero
    denominator in a ratio, below a threshold).  Histograms, statistics,
    clustering and export all read the mask; no-data is never treated as
    zero.

Classes:
    RasterMeta   Immutable grid metadata (size, transform, CRS, dtype).
    Band         One single-channel layer on a grid.
    Raster       A multi-band grid loaded from one file.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterator

import numpy as np
import numpy.typing as npt
from rasterio.transform import Affine, array_bounds, from_origin

from shared.python.exceptions import ShapeMismatchError
from shared.python.validators import Validators


def as_masked(array: npt.ArrayLike) -> np.ma.MaskedArray:
    """Return *array* as a masked array with a full boolean mask.

    Floating-point NaN and infinite values are masked in addition to any
    mask the input already carries.
    """
    masked = np.ma.asarray(array)
    if np.issubdtype(masked.dtype, np.floating):
        masked = np.ma.masked_invalid(masked)
    return np.ma.MaskedArray(np.ma.getdata(masked), mask=np.ma.getmaskarray(masked))


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RasterMeta:
    """Immutable description of a raster grid.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        count: Number of bands.
        transform: Affine pixel → map coordinate transform.
        crs: CRS as a string (e.g. ``"EPSG:32633"``), or ``None``.
        dtype: numpy dtype name of the pixel values.
        nodata: Sentinel declared by the source file, or ``None``.
    """

    width: int
    height: int
    count: int
    transform: Affine
    crs: str | None = None
    dtype: str = "float32"
    nodata: float | None = None

    @classmethod
    def from_dataset(cls, src: Any) -> RasterMeta:
        """Build metadata from an open rasterio dataset."""
        return cls(
            width=src.width,
            height=src.height,
            count=src.count,
            transform=src.transform,
            crs=src.crs.to_string() if src.crs else None,
            dtype=str(src.dtypes[0]),
            nodata=src.nodata,
        )

    @classmethod
    def for_grid(
        cls,
        rows: int,
        cols: int,
        *,
        transform: Affine | None = None,
        crs: str | None = None,
        count: int = 1,
        dtype: str = "float32",
    ) -> RasterMeta:
        """Metadata for an in-memory grid.

        Without a *transform* the grid gets unit pixels with its top-left
        corner at ``(0, rows)``.
        """
        return cls(
            width=cols,
            height=rows,
            count=count,
            transform=transform if transform is not None else from_origin(0, rows, 1, 1),
            crs=crs,
            dtype=dtype,
        )

    @property
    def shape(self) -> tuple[int, int]:
        """``(rows, cols)``."""
        return (self.height, self.width)

    @property
    def res(self) -> tuple[float, float]:
        """Cell size ``(x, y)`` in CRS units."""
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Extent as ``(left, bottom, right, top)``."""
        return tuple(float(v) for v in array_bounds(self.height, self.width, self.transform))  # type: ignore[return-value]

    def with_count(self, count: int) -> RasterMeta:
        return replace(self, count=count)

    def with_dtype(self, dtype: str, nodata: float | None = None) -> RasterMeta:
        return replace(self, dtype=str(np.dtype(dtype)), nodata=nodata)

    def to_profile(self) -> dict[str, Any]:
        """rasterio write profile for a GeoTIFF on this grid."""
        return {
            "driver": "GTiff",
            "width": self.width,
            "height": self.height,
            "count": self.count,
            "dtype": self.dtype,
            "crs": self.crs,
            "transform": self.transform,
            "nodata": self.nodata,
        }


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Band:
    """A single-channel raster layer.

    Bands compare by identity.  Operations never modify ``data``; they
    return a new :class:`Band` built with :meth:`derive`.

    Attributes:
        data: 2-D masked array; masked cells are no-data.
        meta: Grid metadata with ``count == 1``.
        index: 1-based band number in the source file, ``0`` for derived
               layers.
        name: Human-readable label (e.g. ``"nir"`` or ``"NDVI"``).
    """

    data: np.ma.MaskedArray
    meta: RasterMeta
    index: int = 0
    name: str = ""

    def __post_init__(self) -> None:
        if self.data.shape != self.meta.shape:
            raise ShapeMismatchError(
                self.meta.height * self.meta.width,
                int(self.data.size),
                f"Array shape {self.data.shape} does not match grid {self.meta.shape}.",
            )

    @classmethod
    def from_array(
        cls,
        array: npt.ArrayLike,
        meta: RasterMeta | None = None,
        name: str = "",
    ) -> Band:
        """Wrap a 2-D array (plain or masked) as a band.

        Args:
            array: Pixel values; NaN/inf become no-data.
            meta: Grid metadata.  Defaults to a unit grid without CRS.
            name: Label for the band.
        """
        data = as_masked(array)
        if meta is None:
            rows, cols = data.shape
            meta = RasterMeta.for_grid(rows, cols, dtype=str(data.dtype))
        return cls(data=data, meta=meta.with_count(1), name=name)

    def derive(self, data: npt.ArrayLike, name: str) -> Band:
        """Return a new layer on this band's grid."""
        masked = as_masked(data)
        return Band(
            data=masked,
            meta=self.meta.with_dtype(str(masked.dtype)).with_count(1),
            index=0,
            name=name,
        )

    @property
    def shape(self) -> tuple[int, int]:
        return self.meta.shape

    @property
    def nodata_mask(self) -> npt.NDArray[np.bool_]:
        """Boolean grid, ``True`` where the cell is no-data."""
        return np.ma.getmaskarray(self.data)

    @property
    def valid_count(self) -> int:
        return int((~self.nodata_mask).sum())

    def __repr__(self) -> str:
        return (
            f"Band(name={self.name!r}, index={self.index}, "
            f"shape={self.shape}, valid={self.valid_count})"
        )


@dataclass(frozen=True, eq=False)
class Raster:
    """A multi-band raster loaded from one file.

    Attributes:
        data: 3-D masked array shaped ``(count, rows, cols)``.
        meta: Grid metadata shared by every band.
        path: Source file, if any.
        band_names: One label per band.
    """

    data: np.ma.MaskedArray
    meta: RasterMeta
    path: Path | None = None
    band_names: tuple[str, ...] = ()

    def band(self, index: int) -> Band:
        """Return band *index* (1-based).

        Raises:
            BandIndexError: If *index* is outside ``1..count``.
        """
        Validators.assert_band_index_valid(
            index, self.meta.count, str(self.path) if self.path else None
        )
        name = self.band_names[index - 1] if self.band_names else f"band{index}"
        return Band(
            data=self.data[index - 1],
            meta=self.meta.with_count(1),
            index=index,
            name=name,
        )

    def bands(self) -> Iterator[Band]:
        """Yield every band in file order."""
        for index in range(1, self.meta.count + 1):
            yield self.band(index)

    @property
    def shape(self) -> tuple[int, int]:
        return self.meta.shape

    def __repr__(self) -> str:
        return (
            f"Raster(path={self.path!r}, count={self.meta.count}, "
            f"shape={self.shape}, crs={self.meta.crs!r})"
        )
