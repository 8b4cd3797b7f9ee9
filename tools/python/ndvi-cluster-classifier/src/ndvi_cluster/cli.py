"""
NDVI Cluster Classifier — CLI Entry Point
===========================================
Exposes :class:`~ndvi_cluster.classifier.NdviClusterClassifier` as the
``geo-ndvi-cluster`` command.

Usage::

    geo-ndvi-cluster --input data/landsat.tif --output-dir output/clusters
    geo-ndvi-cluster -i scene.tif -o out --nir 8 --red 4 --threshold 0.4 -k 5 --png
    geo-ndvi-cluster -i scene.tif -o out --features bands --bands 2,3,4,5 --seed 7

Run ``geo-ndvi-cluster --help`` for the full option list.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from ndvi_cluster.classifier import ClassifierConfig, NdviClusterClassifier
from ndvi_cluster.export import DATATYPES
from shared.python.exceptions import VegMapKitError

logger = logging.getLogger("vegmapkit.ndvi_cluster.cli")


def _parse_band_list(raw: str) -> list[int] | None:
    """Parse ``"4,3,2"`` into ``[4, 3, 2]``; an empty string gives ``None``."""
    tokens = [s.strip() for s in raw.split(",") if s.strip()]
    if not tokens:
        return None
    try:
        return [int(t) for t in tokens]
    except ValueError as exc:
        raise click.BadParameter(f"expected comma-separated integers, got {raw!r}") from exc


@click.command("geo-ndvi-cluster")
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    help="Multi-band raster (GeoTIFF, .img, ...).",
)
@click.option(
    "--output-dir", "-o", "output_dir",
    default="output",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for NDVI.tif, clusters.tif and summary.json.",
)
@click.option("--nir", "nir_band", default=4, show_default=True, type=int,
              help="1-based near-infrared band index (Landsat 5/7: 4, Landsat 8/9: 5, Sentinel-2: 8).")
@click.option("--red", "red_band", default=3, show_default=True, type=int,
              help="1-based red band index (Landsat 5/7: 3, Landsat 8/9: 4, Sentinel-2: 4).")
@click.option("--threshold", type=float, default=None,
              help="Mask NDVI values below this before clustering (e.g. 0.4 for vegetation).")
@click.option(
    "--features",
    type=click.Choice(["ndvi", "bands"], case_sensitive=False),
    default="ndvi",
    show_default=True,
    help="Cluster the NDVI layer or the reflectance bands.",
)
@click.option("--bands", default="",
              help="Comma-separated bands to cluster with --features bands. Omit for all bands.")
@click.option("-k", "--clusters", "k", default=10, show_default=True, type=int,
              help="Number of k-means clusters.")
@click.option("--max-iter", "max_iterations", default=500, show_default=True, type=int,
              help="Iteration cap per k-means start.")
@click.option("--n-start", default=5, show_default=True, type=int,
              help="Number of random k-means starts; the best is kept.")
@click.option("--seed", default=42, show_default=True, type=int,
              help="Seed for centroid initialisation.")
@click.option(
    "--datatype",
    type=click.Choice(list(DATATYPES), case_sensitive=False),
    default="int16",
    show_default=True,
    help="Storage type of NDVI.tif.",
)
@click.option("--scale-factor", default=10000.0, show_default=True, type=float,
              help="Multiplier for integer NDVI storage.")
@click.option("--png", "render_png", is_flag=True, default=False,
              help="Also render NDVI, histogram and class-map PNGs.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def cli(
    input_path: Path,
    output_dir: Path,
    nir_band: int,
    red_band: int,
    threshold: float | None,
    features: str,
    bands: str,
    k: int,
    max_iterations: int,
    n_start: int,
    seed: int,
    datatype: str,
    scale_factor: float,
    render_png: bool,
    verbose: bool,
) -> None:
    """Compute NDVI from a satellite scene and classify its pixels with k-means.

    \b
    Examples:
        # Landsat 5 scene, 10 classes, reproducible seed
        geo-ndvi-cluster -i landsat5.tif -o out --seed 42

        # Vegetation only (NDVI >= 0.4), 5 classes, with PNG maps
        geo-ndvi-cluster -i landsat5.tif -o out --threshold 0.4 -k 5 --png
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    config = ClassifierConfig(
        nir_band=nir_band,
        red_band=red_band,
        threshold=threshold,
        features=features.lower(),  # type: ignore[arg-type]
        cluster_bands=_parse_band_list(bands),
        k=k,
        max_iterations=max_iterations,
        n_start=n_start,
        seed=seed,
        datatype=datatype.lower(),
        scale_factor=scale_factor,
        render_png=render_png,
    )

    tool = NdviClusterClassifier(input_path, output_dir, config, verbose=verbose)
    try:
        result = tool.run()
    except VegMapKitError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    click.echo(f"\nOutputs written to: {output_dir} ({tool.elapsed:.1f}s)")
    click.echo(f"  {result}")
    for name, path in result.outputs.items():
        click.echo(f"  {name}: {path.name}")


if __name__ == "__main__":
    cli()
