"""
VegMapKit — Custom Exception Hierarchy
=======================================
All VegMapKit tools raise exceptions from this module so callers can
catch them at the right level of granularity.

Hierarchy::

    VegMapKitError                       ← catch-all base
    ├── InputValidationError             ← bad files, bad parameters
    │   ├── RasterNotFoundError          ← also a built-in FileNotFoundError
    │   └── InvalidParameterError        ← also a built-in ValueError
    ├── RasterError                      ← rasterio / numpy raster issues
    │   ├── FormatError                  ← unreadable or corrupt raster
    │   ├── BandIndexError               ← requested band does not exist
    │   ├── IncompatibleBandsError       ← grid / CRS mismatch between bands
    │   └── ShapeMismatchError           ← labels do not fit the target grid
    ├── SpectralIndexError               ← unsupported index or bad bands
    └── OutputWriteError                 ← cannot write to output path

    DivisionSingularity                  ← RuntimeWarning, never raised

Usage::

    from shared.python.exceptions import BandIndexError

    raise BandIndexError(band_index=7, total_bands=4, path="scene.tif")
"""

from __future__ import annotations

from collections.abc import Sequence


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class VegMapKitError(Exception):
    """Root of every error a VegMapKit tool raises on purpose.

    The CLI catches this one class, prints :attr:`message` and exits 1.

    Args:
        message: Text shown to the user.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(VegMapKitError):
    """A file or parameter was rejected before any raster work started."""


class RasterNotFoundError(InputValidationError, FileNotFoundError):
    """Raised when an input raster path does not exist.

    Also a :class:`FileNotFoundError` so plain ``except FileNotFoundError``
    handlers keep working.

    Args:
        path: The missing path.
    """

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Input file not found: '{path}'. "
            "Check that the path is correct and the file exists."
        )
        self.path: str = path


class InvalidParameterError(InputValidationError, ValueError):
    """Raised when a numeric or enumerated parameter is out of range.

    Args:
        name: Parameter name (e.g. ``"k"``).
        value: The rejected value.
        reason: What the value must satisfy.

    Example::

        raise InvalidParameterError("k", 1, "must be >= 2")
    """

    def __init__(self, name: str, value: object, reason: str) -> None:
        super().__init__(f"Invalid value for '{name}': {value!r} ({reason}).")
        self.name: str = name
        self.value: object = value
        self.reason: str = reason


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(VegMapKitError):
    """A raster could not be read, indexed, combined or rebuilt."""


class FormatError(RasterError):
    """Raised when a file exists but cannot be read as a raster.

    Args:
        path: The offending file.
        reason: Underlying library error message.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read '{path}' as a raster: {reason}")
        self.path: str = path
        self.reason: str = reason


class BandIndexError(RasterError):
    """Raised when a requested raster band index does not exist.

    Args:
        band_index: The 1-based band number that was requested.
        total_bands: Total number of bands in the raster file.
        path: Optional source file, included in the message.

    Example::

        raise BandIndexError(band_index=5, total_bands=4)
    """

    def __init__(self, band_index: int, total_bands: int, path: str | None = None) -> None:
        source = f" in '{path}'" if path else ""
        super().__init__(
            f"Band {band_index} does not exist{source}. "
            f"This raster has {total_bands} band(s) (1-indexed)."
        )
        self.band_index: int = band_index
        self.total_bands: int = total_bands
        self.path: str | None = path


class IncompatibleBandsError(RasterError):
    """Raised when bands that must share a grid do not.

    Args:
        label_a: Name of the first band.
        label_b: Name of the second band.
        mismatches: One line per differing attribute.

    Example::

        raise IncompatibleBandsError("nir", "red", ["crs: EPSG:4326 != EPSG:32633"])
    """

    def __init__(self, label_a: str, label_b: str, mismatches: Sequence[str]) -> None:
        detail = "; ".join(mismatches)
        super().__init__(
            f"Bands '{label_a}' and '{label_b}' are incompatible: {detail}"
        )
        self.label_a: str = label_a
        self.label_b: str = label_b
        self.mismatches: tuple[str, ...] = tuple(mismatches)


class ShapeMismatchError(RasterError):
    """Raised when a flat label vector cannot be scattered back onto a grid.

    Args:
        expected: Number of cells in the target grid.
        actual: Number of labels plus number of no-data cells supplied.
    """

    def __init__(self, expected: int, actual: int, detail: str = "") -> None:
        extra = f" {detail}" if detail else ""
        super().__init__(
            f"Label count does not fit the grid: expected {expected} cells, "
            f"got {actual}.{extra}"
        )
        self.expected: int = expected
        self.actual: int = actual


# ---------------------------------------------------------------------------
# Spectral index
# ---------------------------------------------------------------------------


class SpectralIndexError(VegMapKitError):
    """Raised when a spectral index cannot be calculated.

    Args:
        index_name: The name of the index that failed (e.g. ``"NDVI"``).
        reason: Short explanation of why calculation failed.

    Example::

        raise SpectralIndexError("NDVI", "NIR band not provided")
    """

    def __init__(self, index_name: str, reason: str) -> None:
        super().__init__(f"Cannot calculate {index_name}: {reason}")
        self.index_name: str = index_name
        self.reason: str = reason


class DivisionSingularity(RuntimeWarning):
    """Warning category for zero-denominator pixels in a ratio.

    Those pixels are written as no-data; the warning reports how many.
    """


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(VegMapKitError):
    """An output GeoTIFF, JSON summary or PNG could not be written.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/NDVI.tif", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
