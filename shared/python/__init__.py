"""
VegMapKit — Shared Python Package
==================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import BandIndexError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    BandIndexError,
    DivisionSingularity,
    FormatError,
    IncompatibleBandsError,
    InputValidationError,
    InvalidParameterError,
    OutputWriteError,
    RasterError,
    RasterNotFoundError,
    ShapeMismatchError,
    SpectralIndexError,
    VegMapKitError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "VegMapKitError",
    "InputValidationError",
    "RasterNotFoundError",
    "InvalidParameterError",
    "RasterError",
    "FormatError",
    "BandIndexError",
    "IncompatibleBandsError",
    "ShapeMismatchError",
    "SpectralIndexError",
    "DivisionSingularity",
    "OutputWriteError",
]
