"""
Error taxonomy for the Spatial Pipeline.

Every failure an operation can report on purpose derives from
SpatialPipelineError. These are deterministic input-validation failures:
callers surface them, nothing retries them.

Classes:
    SpatialPipelineError: Base class for pipeline errors
    SourceNotFoundError: Data source, layer, or attribute file missing
    SchemaMismatchError: Layer geometry family differs from what the caller expects
    UnknownColumnError: Requested attribute column does not exist
    CRSAlreadySetError: assume_crs called on a dataset with a known CRS
    CRSUnsetError: Operation needs a known CRS but the dataset has none
    CRSMismatchError: Two datasets must share a CRS but do not
    StyleAttributeNotFoundError: Style fill attribute is not a dataset column
"""

from typing import Iterable, Optional


class SpatialPipelineError(Exception):
    """Base class for all spatial pipeline errors."""


class SourceNotFoundError(SpatialPipelineError, FileNotFoundError):
    """Raised when a source location, layer, or one of its files does not exist."""


class SchemaMismatchError(SpatialPipelineError):
    """Raised when a layer's geometry family is not the one the caller asked for."""

    def __init__(self, layer_name: str, expected: str, found: str):
        self.layer_name = layer_name
        self.expected = expected
        self.found = found
        super().__init__(
            f"Layer '{layer_name}' has {found} geometries, expected {expected}"
        )


class UnknownColumnError(SpatialPipelineError):
    """Raised when one or more requested columns are not in the dataset."""

    def __init__(self, missing: Iterable[str], available: Iterable[str],
                 dataset_name: Optional[str] = None):
        self.missing = list(missing)
        self.available = list(available)
        self.dataset_name = dataset_name
        where = f" in '{dataset_name}'" if dataset_name else ""
        super().__init__(
            f"Unknown column(s){where}: {', '.join(map(str, self.missing))} "
            f"(available: {', '.join(map(str, self.available)) or 'none'})"
        )


class CRSAlreadySetError(SpatialPipelineError):
    """Raised by assume_crs when the dataset already declares a CRS."""


class CRSUnsetError(SpatialPipelineError):
    """Raised when an operation requires a known CRS and the dataset has none."""


class CRSMismatchError(SpatialPipelineError):
    """Raised when two datasets must share a CRS but do not."""


class StyleAttributeNotFoundError(UnknownColumnError):
    """Raised when a style's fill attribute is not a column of the rendered dataset."""
