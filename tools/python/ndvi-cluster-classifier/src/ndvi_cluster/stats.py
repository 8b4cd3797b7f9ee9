"""
NDVI Cluster Classifier — Layer Statistics
============================================
Summary statistics, histograms and band correlations computed over
valid pixels only.  No-data cells never contribute.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from ndvi_cluster.bands import BandStack
from ndvi_cluster.raster import Band
from shared.python.exceptions import InvalidParameterError
from shared.python.validators import Validators


@dataclass(frozen=True)
class LayerStats:
    """Immutable statistics for one layer.

    Attributes:
        name: Layer label.
        min: Minimum valid value.
        max: Maximum valid value.
        mean: Arithmetic mean of valid values.
        std_dev: Standard deviation of valid values.
        valid_pixels: Count of cells used in the statistics.
        nodata_pixels: Count of no-data cells.
    """

    name: str
    min: float
    max: float
    mean: float
    std_dev: float
    valid_pixels: int
    nodata_pixels: int

    def __str__(self) -> str:
        return (
            f"{self.name or 'layer'}: "
            f"min={self.min:.4f} max={self.max:.4f} "
            f"mean={self.mean:.4f} std={self.std_dev:.4f} "
            f"valid_px={self.valid_pixels:,}"
        )


def summarize(layer: Band) -> LayerStats:
    """Compute min/max/mean/std over the valid pixels of *layer*.

    All four values are NaN when the layer has no valid pixel.
    """
    valid = layer.data.compressed().astype(np.float64)
    nodata_count = int(layer.nodata_mask.sum())

    if valid.size == 0:
        nan = float("nan")
        return LayerStats(layer.name, nan, nan, nan, nan, 0, nodata_count)

    return LayerStats(
        name=layer.name,
        min=float(np.min(valid)),
        max=float(np.max(valid)),
        mean=float(np.mean(valid)),
        std_dev=float(np.std(valid)),
        valid_pixels=int(valid.size),
        nodata_pixels=nodata_count,
    )


def histogram(
    layer: Band,
    bins: int = 50,
    value_range: tuple[float, float] | None = None,
) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.float64]]:
    """Histogram of the valid pixels of *layer*.

    Returns:
        ``(counts, edges)`` as returned by :func:`numpy.histogram`.
    """
    Validators.assert_int_at_least("bins", bins, 1)
    valid = layer.data.compressed().astype(np.float64)
    return np.histogram(valid, bins=bins, range=value_range)


def band_correlation(stack: BandStack) -> npt.NDArray[np.float64]:
    """Pearson correlation matrix between the channels of *stack*.

    Only pixels valid in every channel are used.  A constant channel
    yields NaN in its row and column.

    Raises:
        InvalidParameterError: If fewer than two pixels are valid.
    """
    valid = ~stack.nodata_mask
    samples = np.ma.getdata(stack.data)[:, valid].astype(np.float64)
    if samples.shape[1] < 2:
        raise InvalidParameterError(
            "stack", stack.names, "at least two pixels must be valid in every channel"
        )
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.atleast_2d(np.corrcoef(samples))
