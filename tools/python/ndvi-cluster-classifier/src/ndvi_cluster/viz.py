"""
NDVI Cluster Classifier — PNG Rendering
=========================================
Static PNG renderings of bands, composites, histograms and class maps.

Every function writes one figure, closes it, and returns the path.
No-data cells are drawn transparent.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use("Agg")  # non-interactive backend safe for headless execution
import matplotlib.pyplot as plt
from matplotlib.colors import BoundaryNorm, ListedColormap
from matplotlib.patches import Patch

from ndvi_cluster.bands import BandStack
from ndvi_cluster.raster import Band
from ndvi_cluster.stats import histogram
from shared.python.exceptions import InvalidParameterError, OutputWriteError
from shared.python.validators import Validators


def _save(fig: plt.Figure, path: str | Path) -> Path:
    path = Path(path)
    try:
        Validators.assert_output_dir_writable(path)
        fig.savefig(str(path), dpi=150, bbox_inches="tight")
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc
    finally:
        plt.close(fig)
    return path


def plot_band(
    band: Band,
    path: str | Path,
    cmap: str = "viridis",
    title: str | None = None,
) -> Path:
    """Render one layer with a colourbar."""
    fig, ax = plt.subplots(figsize=(8, 6))
    im = ax.imshow(band.data, cmap=cmap, interpolation="nearest")
    plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)
    ax.set_title(title or band.name)
    ax.set_axis_off()
    return _save(fig, path)


def _stretch(band: Band, low_pct: float, high_pct: float) -> np.ndarray:
    """Linear percentile stretch of the valid pixels to [0, 1]."""
    values = np.ma.getdata(band.data).astype(np.float64)
    valid = band.data.compressed()
    if valid.size == 0:
        return np.zeros_like(values)
    low, high = np.percentile(valid, [low_pct, high_pct])
    if high <= low:
        return np.zeros_like(values)
    return np.clip((values - low) / (high - low), 0.0, 1.0)


def plot_composite(
    stack: BandStack,
    path: str | Path,
    stretch: tuple[float, float] = (2.0, 98.0),
    title: str | None = None,
) -> Path:
    """Render a 3-channel true- or false-colour composite.

    Channel 0 is drawn as red, 1 as green, 2 as blue.

    Raises:
        InvalidParameterError: If *stack* does not have exactly 3 channels.
    """
    if len(stack) != 3:
        raise InvalidParameterError("stack", stack.names, "a composite needs exactly 3 channels")
    rgb = np.dstack([_stretch(band, *stretch) for band in stack])
    alpha = (~stack.nodata_mask).astype(np.float64)
    rgba = np.dstack([rgb, alpha])

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.imshow(rgba, interpolation="nearest")
    ax.set_title(title or " / ".join(stack.names))
    ax.set_axis_off()
    return _save(fig, path)


def plot_histogram(
    layer: Band,
    path: str | Path,
    bins: int = 50,
    title: str | None = None,
) -> Path:
    """Render the histogram of the valid pixels of *layer*."""
    counts, edges = histogram(layer, bins=bins)
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.bar(edges[:-1], counts, width=np.diff(edges), align="edge",
           color="#4c9a2a", edgecolor="white", linewidth=0.3)
    ax.set_xlabel(layer.name or "value")
    ax.set_ylabel("Frequency")
    ax.set_title(title or f"{layer.name} histogram")
    return _save(fig, path)


def plot_classes(
    labels: Band,
    path: str | Path,
    k: int | None = None,
    title: str | None = None,
) -> Path:
    """Render a class map with one qualitative colour per label ``1..k``."""
    if k is None:
        k = int(labels.data.max()) if labels.valid_count else 1
    palette = plt.get_cmap("tab20")
    colours = [palette(i % palette.N) for i in range(k)]
    cmap = ListedColormap(colours)
    norm = BoundaryNorm(np.arange(0.5, k + 1.5), k)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.imshow(labels.data, cmap=cmap, norm=norm, interpolation="nearest")
    handles = [Patch(color=colours[i], label=f"Class {i + 1}") for i in range(k)]
    ax.legend(handles=handles, loc="center left", bbox_to_anchor=(1.01, 0.5), fontsize=8)
    ax.set_title(title or labels.name or "classes")
    ax.set_axis_off()
    return _save(fig, path)
