"""
NDVI Cluster Classifier — Vegetation Indices
==============================================
Pixel-wise normalized ratios between two bands, thresholding and
reclassification of index layers.

Each registered index is an :class:`IndexStrategy`; both shipped
indices are normalized differences:

    - NDVI   (NIR - Red) / (NIR + Red)
    - NDWI   (Green - NIR) / (Green + NIR)

Zero-denominator pixels become no-data and are reported with a
:class:`~shared.python.exceptions.DivisionSingularity` warning.

Usage::

    from ndvi_cluster.indices import mask_below, ndvi

    layer = ndvi(scene.band(4), scene.band(3))
    vegetation = mask_below(layer, 0.4)
"""

from __future__ import annotations

import logging
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from ndvi_cluster.bands import assert_compatible
from ndvi_cluster.raster import Band
from shared.python.exceptions import (
    DivisionSingularity,
    InvalidParameterError,
    SpectralIndexError,
)
from shared.python.validators import Validators

logger = logging.getLogger("vegmapkit.ndvi_cluster.indices")


def normalized_ratio(band_k: Band, band_i: Band, name: str = "NDR") -> Band:
    """Compute ``(k - i) / (k + i)`` per pixel.

    Arithmetic runs in float64; the result is stored as float32.  A pixel
    is no-data in the output if it is no-data in either input or if
    ``k + i == 0``.

    Args:
        band_k: Band subtracted from (e.g. NIR for NDVI).
        band_i: Band subtracted (e.g. Red for NDVI).
        name: Label for the derived layer.

    Raises:
        IncompatibleBandsError: If the two bands do not share a grid.
    """
    assert_compatible(band_k, band_i, band_k.name or "k", band_i.name or "i")

    k = np.ma.getdata(band_k.data).astype(np.float64)
    i = np.ma.getdata(band_i.data).astype(np.float64)
    nodata = band_k.nodata_mask | band_i.nodata_mask

    denominator = k + i
    singular = (denominator == 0) & ~nodata
    singular_count = int(singular.sum())
    if singular_count:
        warnings.warn(
            f"{name}: {singular_count} pixel(s) have a zero denominator "
            "and were set to no-data.",
            DivisionSingularity,
            stacklevel=2,
        )

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = (k - i) / np.where(singular, 1.0, denominator)

    mask = nodata | singular | ~np.isfinite(ratio)
    values = np.where(mask, np.nan, ratio).astype(np.float32)
    logger.debug(
        "%s computed: %d valid, %d no-data pixel(s)",
        name, int((~mask).sum()), int(mask.sum()),
    )
    return band_k.derive(np.ma.MaskedArray(values, mask=mask), name)


def ndvi(nir: Band, red: Band) -> Band:
    """Normalized Difference Vegetation Index, ``(NIR - Red) / (NIR + Red)``."""
    return normalized_ratio(nir, red, name="NDVI")


def mask_below(layer: Band, threshold: float) -> Band:
    """Mark every value below *threshold* as no-data.

    Values at or above the threshold are returned unchanged and existing
    no-data stays no-data, so applying the same threshold twice gives the
    same layer.

    Raises:
        InvalidParameterError: If *threshold* is not a finite number.
    """
    limit = Validators.assert_finite("threshold", threshold)

    values = np.ma.getdata(layer.data)
    nodata = layer.nodata_mask
    with np.errstate(invalid="ignore"):
        below = (values < limit) & ~nodata
    logger.debug("Threshold %.4f masked %d pixel(s) of %s", limit, int(below.sum()), layer.name)
    return layer.derive(np.ma.MaskedArray(values.copy(), mask=nodata | below), layer.name)


def reclassify(layer: Band, breaks: Sequence[float]) -> Band:
    """Bin valid values into integer classes ``1..len(breaks) + 1``.

    Class ``n`` holds values in ``[breaks[n-2], breaks[n-1])``; values
    below the first break are class 1.

    Example::

        reclassify(ndvi_layer, [0.0, 0.2, 0.4])  # water / soil / sparse / dense

    Raises:
        InvalidParameterError: If *breaks* is empty or not strictly ascending.
    """
    edges = np.asarray(breaks, dtype=np.float64)
    if edges.ndim != 1 or edges.size == 0 or np.any(np.diff(edges) <= 0):
        raise InvalidParameterError(
            "breaks", list(breaks), "must be a non-empty, strictly ascending sequence"
        )
    classes = np.digitize(np.ma.getdata(layer.data), edges) + 1
    return layer.derive(
        np.ma.MaskedArray(classes.astype(np.int32), mask=layer.nodata_mask.copy()),
        f"{layer.name}_classes" if layer.name else "classes",
    )


# ---------------------------------------------------------------------------
# Index strategies
# ---------------------------------------------------------------------------


class IndexStrategy(ABC):
    """Abstract base for a single spectral index computation.

    Subclasses declare their inputs in :attr:`required_bands` and compute
    the index from a mapping of band role (``"nir"``, ``"red"`` …) to
    :class:`Band`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short name of the index (e.g. ``"NDVI"``)."""

    @property
    @abstractmethod
    def required_bands(self) -> list[str]:
        """Band roles this index needs, e.g. ``["nir", "red"]``."""

    @abstractmethod
    def compute(self, bands: Mapping[str, Band]) -> Band:
        """Compute the index layer."""

    def _check_bands(self, bands: Mapping[str, Band]) -> None:
        missing = [role for role in self.required_bands if role not in bands]
        if missing:
            raise SpectralIndexError(
                self.name, f"Required band(s) not provided: {', '.join(missing)}"
            )


@dataclass(frozen=True)
class NormalizedDifference(IndexStrategy):
    """``(positive - negative) / (positive + negative)`` over two band roles."""

    index_name: str
    positive: str
    negative: str

    @property
    def name(self) -> str:
        return self.index_name

    @property
    def required_bands(self) -> list[str]:
        return [self.positive, self.negative]

    def compute(self, bands: Mapping[str, Band]) -> Band:
        self._check_bands(bands)
        return normalized_ratio(bands[self.positive], bands[self.negative], name=self.name)


INDEX_REGISTRY: dict[str, IndexStrategy] = {
    "NDVI": NormalizedDifference("NDVI", "nir", "red"),
    "NDWI": NormalizedDifference("NDWI", "green", "nir"),
}


def compute_index(name: str, bands: Mapping[str, Band]) -> Band:
    """Compute a registered index by name (case-insensitive).

    Raises:
        SpectralIndexError: For an unknown index or a missing band role.
    """
    strategy = INDEX_REGISTRY.get(name.strip().upper())
    if strategy is None:
        raise SpectralIndexError(
            name, f"Unsupported index. Valid options: {', '.join(INDEX_REGISTRY)}"
        )
    return strategy.compute(bands)
