"""
VegMapKit — Shared Base Tool
=============================
Abstract base class for VegMapKit raster tools.

Design Pattern:
    Template Method.  :meth:`GeoTool.run` fixes the order
    validate → process → report; subclasses supply
    :meth:`~GeoTool.validate_inputs` and :meth:`~GeoTool.process` and store
    whatever they produce in ``self._result``.

Usage::

    from shared.python.base_tool import GeoTool

    class NdviTool(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)

        def process(self) -> None:
            self._result = compute_something(self.input_path)

    result = NdviTool(Path("scene.tif"), Path("out")).run()
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

# Tools log to children of this logger: "vegmapkit.<tool>.<module>".
logger = logging.getLogger("vegmapkit")

_LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s"


class GeoTool(ABC):
    """Base class for a file-in / files-out raster tool.

    Attributes:
        input_path: Primary input raster.
        output_path: Output file or directory.
        verbose: Log at DEBUG instead of INFO.
        elapsed: Wall-clock seconds of the last successful :meth:`run`,
                 ``None`` before the first one.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_path: Path = Path(output_path)
        self.verbose: bool = verbose
        self.elapsed: float | None = None
        self._result: Any = None

        self._configure_logging()

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Check every precondition before any file is read in full.

        Raise an :class:`~shared.python.exceptions.InputValidationError`
        (or another ``VegMapKitError``) on failure.
        """

    @abstractmethod
    def process(self) -> None:
        """Do the work and set ``self._result``."""

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def run(self) -> Any:
        """Validate, process and report.

        Returns:
            The value :meth:`process` stored in ``self._result``.

        Raises:
            Whatever ``validate_inputs`` or ``process`` raises, unchanged.
        """
        logger.info("Starting %s on %s", self.__class__.__name__, self.input_path.name)
        self._result = None
        start = time.perf_counter()

        self.validate_inputs()
        self.process()

        self.elapsed = time.perf_counter() - start
        self._report_success()
        return self._result

    @property
    def result(self) -> Any:
        """Output of the last successful :meth:`run`, or ``None``."""
        return self._result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _report_success(self) -> None:
        logger.info(
            "%s finished in %.2fs → %s",
            self.__class__.__name__,
            self.elapsed,
            self.output_path,
        )

    def _configure_logging(self) -> None:
        """Attach one console handler to ``vegmapkit`` and set its level."""
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt="%H:%M:%S"))
            logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_path={self.input_path!r}, "
            f"output_path={self.output_path!r})"
        )
