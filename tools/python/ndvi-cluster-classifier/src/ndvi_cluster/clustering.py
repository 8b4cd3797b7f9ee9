"""
NDVI Cluster Classifier — Unsupervised Spectral Clustering
============================================================
Lloyd's k-means over the valid pixels of a layer or band stack, and
reconstruction of the flat label vector onto the source grid.

Reproducibility is a caller contract: the seed is a required argument
and every random draw comes from ``numpy.random.default_rng(seed)``.
Each start runs :class:`sklearn.cluster.KMeans` from centroids drawn out
of the distinct pixel values; :meth:`KMeansModel.predict` assigns new
pixels with :func:`scipy.cluster.vq.vq`.

Labels are integers ``1..k``.  They name groups only; cluster 3 is not
"between" clusters 2 and 4.

Usage::

    from ndvi_cluster.clustering import classify

    result = classify(ndvi_layer, k=10, max_iterations=500, n_start=5, seed=42)
    result.labels      # Band of cluster ids, no-data where the input was
    result.model.inertia
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

import numpy as np
import numpy.typing as npt
from scipy.cluster.vq import vq
from sklearn.cluster import KMeans

from ndvi_cluster.bands import BandStack
from ndvi_cluster.raster import Band
from shared.python.exceptions import InvalidParameterError, ShapeMismatchError
from shared.python.validators import Validators

logger = logging.getLogger("vegmapkit.ndvi_cluster.clustering")

Clusterable = Union[Band, BandStack]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class KMeansModel:
    """Fitted k-means model (the best of ``n_start`` runs).

    Attributes:
        k: Number of clusters.
        centroids: ``(k, n_features)`` array; row ``j`` is cluster ``j + 1``.
        inertia: Total within-cluster sum of squared distances.
        n_iter: Iterations taken by the kept run.
        converged: Whether the kept run stopped because assignments
                   stabilised rather than hitting ``max_iterations``.
        seed: Seed the generator was created with.
        n_start: Number of random starts tried.
        best_start: 0-based index of the kept start.
        max_iterations: Iteration cap per start.
        sizes: Pixel count per cluster, in label order.
    """

    k: int
    centroids: npt.NDArray[np.float64]
    inertia: float
    n_iter: int
    converged: bool
    seed: int
    n_start: int
    best_start: int
    max_iterations: int
    sizes: tuple[int, ...]

    def predict(self, layer: Clusterable) -> npt.NDArray[np.int32]:
        """Assign the valid pixels of *layer* to the nearest centroid."""
        features, _ = pixel_features(layer)
        if features.shape[1] != self.centroids.shape[1]:
            raise InvalidParameterError(
                "layer", f"{features.shape[1]} feature(s)",
                f"model was fitted on {self.centroids.shape[1]}",
            )
        codes, _ = vq(features, self.centroids)
        return (codes + 1).astype(np.int32)

    def to_dict(self) -> dict[str, Any]:
        return {
            "k": self.k,
            "centroids": self.centroids.tolist(),
            "inertia": self.inertia,
            "n_iter": self.n_iter,
            "converged": self.converged,
            "seed": self.seed,
            "n_start": self.n_start,
            "best_start": self.best_start,
            "max_iterations": self.max_iterations,
            "sizes": list(self.sizes),
        }


@dataclass(frozen=True, eq=False)
class ClusterResult:
    """Labels on the source grid plus the model that produced them."""

    labels: Band
    labels_flat: npt.NDArray[np.int32]
    model: KMeansModel


@dataclass
class _Run:
    labels: npt.NDArray[np.int32]
    centroids: npt.NDArray[np.float64]
    inertia: float
    n_iter: int
    converged: bool


# ---------------------------------------------------------------------------
# Feature extraction / reconstruction
# ---------------------------------------------------------------------------


def pixel_features(
    layer: Clusterable,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.bool_]]:
    """Flatten *layer* into a feature matrix of its valid pixels.

    Pixels are taken in row-major order.  A pixel of a stack is dropped
    when any channel is no-data.

    Returns:
        ``(features, nodata_mask)`` where ``features`` is
        ``(n_valid, n_channels)`` float64 and ``nodata_mask`` is the
        ``(rows, cols)`` boolean grid of dropped pixels.
    """
    if isinstance(layer, BandStack):
        cube = np.ma.getdata(layer.data)
    elif isinstance(layer, Band):
        cube = np.ma.getdata(layer.data)[np.newaxis, ...]
    else:
        raise TypeError(f"Expected a Band or BandStack, got {type(layer).__name__}")

    nodata_mask = layer.nodata_mask
    valid = ~nodata_mask.ravel()
    features = cube.reshape(cube.shape[0], -1).T[valid].astype(np.float64)
    return features, nodata_mask


def labels_to_raster(
    labels_flat: npt.ArrayLike,
    shape: tuple[int, int],
    nodata_mask: npt.ArrayLike,
) -> np.ma.MaskedArray:
    """Scatter a flat label vector back onto a grid.

    Labels fill the cells where *nodata_mask* is ``False`` in row-major
    order; masked cells stay no-data.

    Raises:
        ShapeMismatchError: If the mask shape differs from *shape*, or if
            ``len(labels_flat)`` plus the no-data count is not
            ``rows * cols``.
    """
    rows, cols = shape
    mask = np.asarray(nodata_mask, dtype=bool)
    if mask.shape != (rows, cols):
        raise ShapeMismatchError(
            rows * cols, int(mask.size),
            f"No-data mask shape {mask.shape} differs from grid {(rows, cols)}.",
        )
    labels = np.asarray(labels_flat).ravel()
    actual = int(labels.size) + int(mask.sum())
    if actual != rows * cols:
        raise ShapeMismatchError(
            rows * cols, actual,
            f"{labels.size} label(s) + {int(mask.sum())} no-data cell(s).",
        )

    grid = np.zeros(rows * cols, dtype=np.int32)
    grid[~mask.ravel()] = labels
    return np.ma.MaskedArray(grid.reshape(rows, cols), mask=mask.copy())


# ---------------------------------------------------------------------------
# k-means
# ---------------------------------------------------------------------------


def _single_run(
    features: npt.NDArray[np.float64],
    init: npt.NDArray[np.float64],
    max_iterations: int,
    seed: int,
) -> _Run:
    """One Lloyd run of :class:`~sklearn.cluster.KMeans` from fixed centroids.

    ``tol=0`` makes the run stop only once assignments no longer change,
    so stopping before *max_iterations* means it converged.  KMeans moves
    a centroid that loses all its pixels onto the farthest pixel, so
    every cluster of the returned run has members.
    """
    km = KMeans(
        n_clusters=len(init),
        init=init,
        n_init=1,
        max_iter=max_iterations,
        tol=0.0,
        algorithm="lloyd",
        random_state=seed,
    ).fit(features)
    return _Run(
        labels=km.labels_.astype(np.int32),
        centroids=np.asarray(km.cluster_centers_, dtype=np.float64),
        inertia=float(km.inertia_),
        n_iter=int(km.n_iter_),
        converged=int(km.n_iter_) < max_iterations,
    )


def _fit(
    features: npt.NDArray[np.float64],
    k: int,
    max_iterations: int,
    n_start: int,
    seed: int,
) -> tuple[npt.NDArray[np.int32], KMeansModel]:
    Validators.assert_int_at_least("k", k, 2)
    Validators.assert_int_at_least("max_iterations", max_iterations, 1)
    Validators.assert_int_at_least("n_start", n_start, 1)
    Validators.assert_int_at_least("seed", seed, 0)
    if len(features) < k:
        raise InvalidParameterError(
            "k", k, f"only {len(features)} valid pixel(s) available"
        )
    # starting centroids are drawn from distinct values so no two coincide
    distinct = np.unique(features, axis=0)
    if len(distinct) < k:
        raise InvalidParameterError(
            "k", k, f"only {len(distinct)} distinct pixel value(s) available"
        )

    rng = np.random.default_rng(seed)
    best: _Run | None = None
    best_start = 0
    for start in range(n_start):
        init = distinct[rng.choice(len(distinct), size=k, replace=False)]
        run = _single_run(features, init, max_iterations, seed)
        logger.debug(
            "k-means start %d/%d: inertia=%.6g after %d iteration(s)%s",
            start + 1, n_start, run.inertia, run.n_iter,
            "" if run.converged else " (not converged)",
        )
        if best is None or run.inertia < best.inertia:
            best, best_start = run, start

    assert best is not None
    if not best.converged:
        logger.warning(
            "k-means did not converge within %d iteration(s); "
            "consider raising max_iterations.",
            max_iterations,
        )

    model = KMeansModel(
        k=k,
        centroids=best.centroids,
        inertia=best.inertia,
        n_iter=best.n_iter,
        converged=best.converged,
        seed=int(seed),
        n_start=n_start,
        best_start=best_start,
        max_iterations=max_iterations,
        sizes=tuple(int(c) for c in np.bincount(best.labels, minlength=k)),
    )
    return (best.labels + 1).astype(np.int32), model


def cluster(
    layer: Clusterable,
    k: int,
    max_iterations: int = 100,
    n_start: int = 1,
    *,
    seed: int,
) -> tuple[npt.NDArray[np.int32], KMeansModel]:
    """Cluster the valid pixels of *layer* into *k* groups.

    Each of the *n_start* runs draws ``k`` distinct pixel values as
    initial centroids, then alternates assignment (nearest centroid by
    Euclidean distance) and update (mean of members) until assignments
    stop changing or *max_iterations* is reached.  A centroid left with
    no members is moved onto the pixel farthest from its assigned centroid.
    The run with the lowest total within-cluster sum of squares is kept.

    Args:
        layer: A :class:`Band` (one feature) or :class:`BandStack` (one
               feature per channel).
        k: Number of clusters, at least 2.
        max_iterations: Iteration cap per run, at least 1.
        n_start: Number of random starts, at least 1.
        seed: Non-negative integer seed; same inputs and seed give the
              same labels.

    Returns:
        ``(labels_flat, model)`` where ``labels_flat`` holds one label in
        ``1..k`` per valid pixel, in row-major order.

    Raises:
        InvalidParameterError: For out-of-range parameters, or when the
            layer has fewer valid pixels or distinct pixel values than *k*.
    """
    features, _ = pixel_features(layer)
    return _fit(features, k, max_iterations, n_start, seed)


def classify(
    layer: Clusterable,
    k: int,
    max_iterations: int = 100,
    n_start: int = 1,
    *,
    seed: int,
) -> ClusterResult:
    """Run :func:`cluster` and place the labels back on the source grid."""
    features, nodata_mask = pixel_features(layer)
    labels_flat, model = _fit(features, k, max_iterations, n_start, seed)
    grid = labels_to_raster(labels_flat, layer.shape, nodata_mask)
    labels = Band(
        data=grid,
        meta=layer.meta.with_count(1).with_dtype("int32"),
        index=0,
        name="clusters",
    )
    logger.info(
        "Clustered %d pixel(s) into %d classes (inertia=%.6g, seed=%d)",
        len(labels_flat), k, model.inertia, model.seed,
    )
    return ClusterResult(labels=labels, labels_flat=labels_flat, model=model)
