"""
VegMapKit — Shared Input Validators
====================================
Precondition checks shared by the VegMapKit tools.

Each check returns nothing on success and raises an exception from
:mod:`shared.python.exceptions` on failure, so a tool's
``validate_inputs`` reads as a flat list of assertions::

    class NdviTool(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_int_at_least("k", self.k, 2)
"""

from __future__ import annotations

import math
import numbers
from pathlib import Path
from typing import Sequence

from shared.python.exceptions import (
    BandIndexError,
    FormatError,
    InvalidParameterError,
    OutputWriteError,
    RasterNotFoundError,
)


def _is_int(value: object) -> bool:
    # bool subclasses int but is never a valid count or index
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


class Validators:
    """Namespace of static precondition checks.  Never instantiated."""

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Require *path* to be an existing file.

        Raises:
            RasterNotFoundError: Nothing exists at *path*.
            FormatError: *path* is a directory.
        """
        path = Path(path)
        if not path.exists():
            raise RasterNotFoundError(str(path))
        if path.is_dir():
            raise FormatError(str(path), "expected a file but got a directory")

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Create the parent directory of *output_path* if needed.

        Raises:
            OutputWriteError: The directory cannot be created, e.g. because
                a regular file already occupies its path.
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @staticmethod
    def assert_int_at_least(name: str, value: object, minimum: int) -> None:
        """Require an integer (not ``bool``) no smaller than *minimum*.

        Example::

            Validators.assert_int_at_least("max_iterations", 0, 1)  # raises
        """
        if not _is_int(value):
            raise InvalidParameterError(name, value, "must be an integer")
        if value < minimum:  # type: ignore[operator]
            raise InvalidParameterError(name, value, f"must be >= {minimum}")

    @staticmethod
    def assert_finite(name: str, value: object) -> float:
        """Require a finite real number and return it as ``float``."""
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise InvalidParameterError(name, value, "must be a number") from None
        if not math.isfinite(number):
            raise InvalidParameterError(name, value, "must be finite")
        return number

    @staticmethod
    def assert_positive(name: str, value: object) -> float:
        """Require a finite number greater than zero and return it."""
        number = Validators.assert_finite(name, value)
        if number <= 0:
            raise InvalidParameterError(name, value, "must be a positive number")
        return number

    @staticmethod
    def assert_choice(name: str, value: str, choices: Sequence[str]) -> None:
        """Require *value* to be one of *choices*."""
        if value not in choices:
            raise InvalidParameterError(
                name, value, f"expected one of: {', '.join(choices)}"
            )

    # ------------------------------------------------------------------
    # Rasters
    # ------------------------------------------------------------------

    @staticmethod
    def assert_band_index_valid(
        band_index: int,
        total_bands: int,
        path: str | None = None,
    ) -> None:
        """Require a 1-based band number within ``1..total_bands``.

        Args:
            band_index: Requested band.
            total_bands: Band count of the raster.
            path: Source file, quoted in the error message.

        Raises:
            InvalidParameterError: *band_index* is not an integer.
            BandIndexError: *band_index* is out of range.
        """
        if not _is_int(band_index):
            raise InvalidParameterError("band", band_index, "must be an integer")
        if not 1 <= band_index <= total_bands:
            raise BandIndexError(int(band_index), total_bands, path)
