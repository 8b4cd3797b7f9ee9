"""
NDVI Cluster Classifier — Band Selection and Stacking
=======================================================
Grid compatibility checks and ordered multi-band stacks.

Two layers are compatible only when their dimensions, resolution,
extent and CRS are identical.  Every pixel-wise combination checks this
first.

Classes:
    RasterComparison   Result of :func:`compare_rasters`, truthy when equal.
    BandStack          Ordered channels sharing one grid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

import numpy as np
import numpy.typing as npt

from ndvi_cluster.raster import Band, Raster, RasterMeta
from shared.python.exceptions import (
    BandIndexError,
    IncompatibleBandsError,
    InvalidParameterError,
)

logger = logging.getLogger("vegmapkit.ndvi_cluster.bands")

# Attribute on RasterMeta → label used in mismatch messages.
_COMPARED_ATTRIBUTES = (
    ("shape", "dimensions"),
    ("res", "resolution"),
    ("bounds", "extent"),
    ("crs", "crs"),
)


@dataclass(frozen=True)
class RasterComparison:
    """Outcome of comparing two grids.

    Attributes:
        mismatches: One ``"<attribute>: <a> != <b>"`` line per difference.
    """

    mismatches: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return not self.mismatches

    def __str__(self) -> str:
        return "compatible" if not self.mismatches else "; ".join(self.mismatches)


def _meta_of(obj: object) -> RasterMeta:
    if isinstance(obj, RasterMeta):
        return obj
    meta = getattr(obj, "meta", None)
    if not isinstance(meta, RasterMeta):
        raise TypeError(f"Expected a raster layer or RasterMeta, got {type(obj).__name__}")
    return meta


def compare_rasters(a: object, b: object) -> RasterComparison:
    """Compare the grids of two layers.

    Accepts :class:`Band`, :class:`Raster`, :class:`BandStack` or bare
    :class:`RasterMeta`.  Band counts are not compared.
    """
    meta_a, meta_b = _meta_of(a), _meta_of(b)
    mismatches = []
    for attribute, label in _COMPARED_ATTRIBUTES:
        value_a = getattr(meta_a, attribute)
        value_b = getattr(meta_b, attribute)
        if value_a != value_b:
            mismatches.append(f"{label}: {value_a} != {value_b}")
    return RasterComparison(tuple(mismatches))


def assert_compatible(a: object, b: object, label_a: str = "A", label_b: str = "B") -> None:
    """Raise :class:`IncompatibleBandsError` unless *a* and *b* share a grid."""
    comparison = compare_rasters(a, b)
    if not comparison:
        raise IncompatibleBandsError(label_a, label_b, comparison.mismatches)


def _label(band: Band, position: int) -> str:
    return band.name or f"channel {position}"


# ---------------------------------------------------------------------------
# Stack
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class BandStack:
    """Ordered collection of compatible bands.

    Channel order is the construction order: for an RGB composite
    channel 0 is red.  Build one with :func:`stack_bands`.

    Attributes:
        channels: The stacked bands.
    """

    channels: tuple[Band, ...]

    def __post_init__(self) -> None:
        if not self.channels:
            raise InvalidParameterError("bands", [], "at least one band is required")
        first = self.channels[0]
        for position, band in enumerate(self.channels[1:], start=1):
            comparison = compare_rasters(first, band)
            if not comparison:
                raise IncompatibleBandsError(
                    _label(first, 0), _label(band, position), comparison.mismatches
                )

    def channel(self, index: int) -> Band:
        """Return the band at 0-based position *index*."""
        if not 0 <= index < len(self.channels):
            raise BandIndexError(index + 1, len(self.channels))
        return self.channels[index]

    def __len__(self) -> int:
        return len(self.channels)

    def __iter__(self) -> Iterator[Band]:
        return iter(self.channels)

    @property
    def meta(self) -> RasterMeta:
        return self.channels[0].meta.with_count(len(self.channels))

    @property
    def shape(self) -> tuple[int, int]:
        return self.meta.shape

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(b.name for b in self.channels)

    @property
    def data(self) -> np.ma.MaskedArray:
        """Channel-first 3-D masked array ``(channels, rows, cols)``."""
        return np.ma.stack([b.data for b in self.channels])

    @property
    def nodata_mask(self) -> npt.NDArray[np.bool_]:
        """``True`` where any channel is no-data."""
        return np.logical_or.reduce([b.nodata_mask for b in self.channels])

    def __repr__(self) -> str:
        return f"BandStack(names={self.names!r}, shape={self.shape})"


def stack_bands(bands: Iterable[Band]) -> BandStack:
    """Stack *bands* in the given order.

    Raises:
        InvalidParameterError: If *bands* is empty.
        IncompatibleBandsError: If any band's grid differs from the first.
    """
    stack = BandStack(tuple(bands))
    logger.debug("Stacked %d band(s): %s", len(stack), ", ".join(stack.names))
    return stack


def select_bands(raster: Raster, indices: Sequence[int]) -> BandStack:
    """Extract 1-based *indices* from *raster* and stack them in that order.

    Example::

        false_colour = select_bands(scene, [4, 3, 2])
    """
    return stack_bands(raster.band(i) for i in indices)
