"""
NDVI Cluster Classifier — Core Module
=======================================
Unsupervised land-cover mapping of a multi-band satellite scene:

    load → NDVI → optional threshold → k-means → GeoTIFF / JSON / PNG

Classes:
    ClassifierConfig        Explicit run configuration.
    ClassificationResult    Immutable outputs of one run.
    NdviClusterClassifier   Primary tool class (inherits GeoTool).

Usage::

    from pathlib import Path
    from ndvi_cluster.classifier import ClassifierConfig, NdviClusterClassifier

    tool = NdviClusterClassifier(
        input_path=Path("data/landsat.tif"),
        output_dir=Path("output/clusters"),
        config=ClassifierConfig(nir_band=4, red_band=3, k=10, seed=42),
    )
    result = tool.run()
    print(result.ndvi_stats)
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Literal

import numpy as np

from ndvi_cluster.bands import select_bands, stack_bands
from ndvi_cluster.clustering import KMeansModel, classify
from ndvi_cluster.export import DATATYPES, is_integer_datatype, write_layer
from ndvi_cluster.indices import mask_below, ndvi
from ndvi_cluster.loader import describe_raster, load_raster
from ndvi_cluster.raster import Band, Raster
from ndvi_cluster.stats import LayerStats, summarize
from shared.python.base_tool import GeoTool
from shared.python.exceptions import InvalidParameterError, OutputWriteError
from shared.python.validators import Validators

logger = logging.getLogger("vegmapkit.ndvi_cluster")


# ---------------------------------------------------------------------------
# Configuration and results
# ---------------------------------------------------------------------------


@dataclass
class ClassifierConfig:
    """Configuration for :class:`NdviClusterClassifier`.

    Attributes:
        nir_band: 1-based index of the near-infrared band.
        red_band: 1-based index of the red band.
        threshold: Mask NDVI values below this before clustering.  ``None``
                   keeps every valid pixel.
        features: ``"ndvi"`` clusters the NDVI layer; ``"bands"`` clusters
                  the reflectance stack given by ``cluster_bands``.
        cluster_bands: Bands stacked when ``features="bands"``.  ``None``
                       means every band.
        k: Number of clusters.
        max_iterations: k-means iteration cap per start.
        n_start: Number of random k-means starts.
        seed: Seed for centroid initialisation.
        datatype: Storage type of ``NDVI.tif``.
        scale_factor: Multiplier for integer NDVI storage.
        render_png: Also write PNG maps and a histogram.
    """

    nir_band: int = 4
    red_band: int = 3
    threshold: float | None = None
    features: Literal["ndvi", "bands"] = "ndvi"
    cluster_bands: list[int] | None = None
    k: int = 10
    max_iterations: int = 500
    n_start: int = 5
    seed: int = 42
    datatype: str = "int16"
    scale_factor: float = 10000.0
    render_png: bool = False

    def validate(self) -> None:
        """Check every field.

        Raises:
            InvalidParameterError: On the first invalid field.
        """
        Validators.assert_int_at_least("nir_band", self.nir_band, 1)
        Validators.assert_int_at_least("red_band", self.red_band, 1)
        if self.nir_band == self.red_band:
            raise InvalidParameterError(
                "red_band", self.red_band, "must differ from nir_band"
            )
        if self.threshold is not None:
            Validators.assert_finite("threshold", self.threshold)
        Validators.assert_choice("features", self.features, ["ndvi", "bands"])
        for band in self.cluster_bands or []:
            Validators.assert_int_at_least("cluster_bands", band, 1)
        Validators.assert_int_at_least("k", self.k, 2)
        Validators.assert_int_at_least("max_iterations", self.max_iterations, 1)
        Validators.assert_int_at_least("n_start", self.n_start, 1)
        Validators.assert_int_at_least("seed", self.seed, 0)
        Validators.assert_choice("datatype", self.datatype, list(DATATYPES))
        Validators.assert_positive("scale_factor", self.scale_factor)


@dataclass(frozen=True, eq=False)
class ClassificationResult:
    """Immutable outputs of one classifier run.

    Attributes:
        ndvi: The NDVI layer (before thresholding).
        labels: Cluster labels on the scene grid.
        model: The fitted k-means model.
        ndvi_stats: Statistics of the NDVI layer.
        outputs: Output name → written file path.
    """

    ndvi: Band
    labels: Band
    model: KMeansModel
    ndvi_stats: LayerStats
    outputs: dict[str, Path] = field(default_factory=dict)

    def __str__(self) -> str:
        return (
            f"{self.ndvi_stats} | k={self.model.k} "
            f"inertia={self.model.inertia:.4g} seed={self.model.seed}"
        )


# ---------------------------------------------------------------------------
# Main tool class
# ---------------------------------------------------------------------------


class NdviClusterClassifier(GeoTool):
    """Compute NDVI from a multi-band raster and cluster its pixels.

    Inherits the Template Method pipeline from :class:`~shared.python.GeoTool`.

    Writes to ``output_dir``:

    - ``NDVI.tif``      NDVI in ``config.datatype``
    - ``clusters.tif``  uint8 labels ``1..k`` (0 = no-data)
    - ``summary.json``  NDVI statistics and k-means parameters
    - ``ndvi.png``, ``ndvi_histogram.png``, ``clusters.png`` when
      ``config.render_png`` is set

    Args:
        input_path: Multi-band raster (GeoTIFF recommended).
        output_dir: Directory for the outputs.  Created if missing.
        config: A :class:`ClassifierConfig`.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        input_path: Path,
        output_dir: Path,
        config: ClassifierConfig | None = None,
        *,
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_dir, verbose=verbose)
        self.output_dir: Path = Path(output_dir)
        self.config = config or ClassifierConfig()

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Validate the raster, the band indices and the output directory.

        Raises:
            RasterNotFoundError: If the input file is missing.
            FormatError: If the input cannot be read as a raster.
            BandIndexError: If a configured band is outside the file.
            InvalidParameterError: If the configuration is invalid.
            OutputWriteError: If the output directory cannot be created.
        """
        self.config.validate()
        meta = describe_raster(self.input_path)

        source = str(self.input_path)
        Validators.assert_band_index_valid(self.config.nir_band, meta.count, source)
        Validators.assert_band_index_valid(self.config.red_band, meta.count, source)
        for band in self.config.cluster_bands or []:
            Validators.assert_band_index_valid(band, meta.count, source)

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(self.output_dir), str(exc)) from exc

        logger.debug(
            "Inputs validated: %d band(s), %dx%d, crs=%s",
            meta.count, meta.height, meta.width, meta.crs,
        )

    def process(self) -> None:
        """Load the scene, compute NDVI, cluster, and write all outputs."""
        cfg = self.config
        scene = load_raster(self.input_path)
        assert isinstance(scene, Raster)

        logger.info("Computing NDVI (nir=band %d, red=band %d)...", cfg.nir_band, cfg.red_band)
        ndvi_layer = ndvi(scene.band(cfg.nir_band), scene.band(cfg.red_band))
        ndvi_stats = summarize(ndvi_layer)
        logger.info("  %s", ndvi_stats)

        candidates = ndvi_layer
        if cfg.threshold is not None:
            candidates = mask_below(ndvi_layer, cfg.threshold)
            logger.info(
                "Threshold %.3f keeps %d of %d pixel(s)",
                cfg.threshold, candidates.valid_count, ndvi_layer.valid_count,
            )

        if cfg.features == "bands":
            indices = cfg.cluster_bands or list(range(1, scene.meta.count + 1))
            target = stack_bands(
                _restrict(band, candidates.nodata_mask)
                for band in select_bands(scene, indices)
            )
        else:
            target = candidates

        logger.info(
            "Clustering into k=%d (max_iterations=%d, n_start=%d, seed=%d)...",
            cfg.k, cfg.max_iterations, cfg.n_start, cfg.seed,
        )
        clusters = classify(
            target,
            k=cfg.k,
            max_iterations=cfg.max_iterations,
            n_start=cfg.n_start,
            seed=cfg.seed,
        )

        outputs = self._write_outputs(ndvi_layer, clusters.labels, clusters.model, ndvi_stats)
        self._result = ClassificationResult(
            ndvi=ndvi_layer,
            labels=clusters.labels,
            model=clusters.model,
            ndvi_stats=ndvi_stats,
            outputs=outputs,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _write_outputs(
        self,
        ndvi_layer: Band,
        labels: Band,
        model: KMeansModel,
        ndvi_stats: LayerStats,
    ) -> dict[str, Path]:
        cfg = self.config
        outputs: dict[str, Path] = {}

        outputs["ndvi"] = write_layer(
            ndvi_layer,
            self.output_dir / "NDVI.tif",
            datatype=cfg.datatype,
            scale_factor=cfg.scale_factor if is_integer_datatype(cfg.datatype) else None,
        )
        label_type = "uint8" if model.k <= 255 else "int32"
        outputs["clusters"] = write_layer(labels, self.output_dir / "clusters.tif", datatype=label_type)

        summary_path = self.output_dir / "summary.json"
        summary = {
            "source_file": str(self.input_path),
            "crs": ndvi_layer.meta.crs,
            "width": ndvi_layer.meta.width,
            "height": ndvi_layer.meta.height,
            "config": asdict(cfg),
            "ndvi": asdict(ndvi_stats),
            "kmeans": model.to_dict(),
        }
        try:
            with open(summary_path, "w", encoding="utf-8") as fh:
                json.dump(summary, fh, indent=2, default=str)
        except OSError as exc:
            raise OutputWriteError(str(summary_path), str(exc)) from exc
        outputs["summary"] = summary_path

        if cfg.render_png:
            from ndvi_cluster import viz  # noqa: PLC0415

            outputs["ndvi_png"] = viz.plot_band(
                ndvi_layer, self.output_dir / "ndvi.png", cmap="RdYlGn", title="NDVI"
            )
            outputs["ndvi_histogram_png"] = viz.plot_histogram(
                ndvi_layer, self.output_dir / "ndvi_histogram.png", title="NDVI distribution"
            )
            outputs["clusters_png"] = viz.plot_classes(
                labels, self.output_dir / "clusters.png", k=model.k,
                title=f"k-means classes (k={model.k})",
            )

        for name, path in outputs.items():
            logger.debug("  %s → %s", name, path)
        return outputs


def _restrict(band: Band, mask: np.ndarray) -> Band:
    """Copy of *band* with *mask* added to its no-data."""
    return band.derive(
        np.ma.MaskedArray(np.ma.getdata(band.data), mask=band.nodata_mask | mask),
        band.name,
    )
