"""
NDVI Cluster Classifier
========================
NDVI computation and unsupervised k-means classification of multi-band
satellite rasters.

Submodules
----------
raster      -- Band / Raster / RasterMeta data model (masked no-data)
loader      -- Read rasters and single bands with rasterio
bands       -- Grid compatibility checks and ordered band stacks
indices     -- Normalized ratios (NDVI, NDWI), thresholding, reclassification
clustering  -- Seeded k-means over pixels and label-grid reconstruction
stats       -- Layer statistics, histograms, band correlation
export      -- GeoTIFF writer with float or scaled-integer storage
viz         -- Static PNG renderings (imported on demand)
classifier  -- End-to-end NdviClusterClassifier tool
"""

from ndvi_cluster.bands import BandStack, RasterComparison, compare_rasters, select_bands, stack_bands
from ndvi_cluster.classifier import ClassificationResult, ClassifierConfig, NdviClusterClassifier
from ndvi_cluster.clustering import ClusterResult, KMeansModel, classify, cluster, labels_to_raster
from ndvi_cluster.export import write_layer
from ndvi_cluster.indices import mask_below, ndvi, normalized_ratio, reclassify
from ndvi_cluster.loader import describe_raster, load_raster
from ndvi_cluster.raster import Band, Raster, RasterMeta
from ndvi_cluster.stats import LayerStats, band_correlation, histogram, summarize

__version__ = "1.0.0"
__all__ = [
    "Band",
    "Raster",
    "RasterMeta",
    "load_raster",
    "describe_raster",
    "BandStack",
    "RasterComparison",
    "compare_rasters",
    "stack_bands",
    "select_bands",
    "normalized_ratio",
    "ndvi",
    "mask_below",
    "reclassify",
    "cluster",
    "classify",
    "labels_to_raster",
    "KMeansModel",
    "ClusterResult",
    "LayerStats",
    "summarize",
    "histogram",
    "band_correlation",
    "write_layer",
    "ClassifierConfig",
    "ClassificationResult",
    "NdviClusterClassifier",
]
