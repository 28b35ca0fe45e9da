"""
Spatial dataset value type.

SpatialDataset wraps a GeoDataFrame together with a display name. The frame is
copied on construction and copied again whenever it is handed out, so a dataset
never changes after it is built: every pipeline operation returns a new one.

Classes:
    Feature: One geometry plus its attribute mapping
    SpatialDataset: Ordered features sharing a schema and a single CRS
"""

from dataclasses import InitVar, dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import geopandas as gpd
import pandas as pd
from pyproj import CRS
from shapely.geometry.base import BaseGeometry

from core.errors import CRSUnsetError, UnknownColumnError


class Feature(NamedTuple):
    """A geometry with its attributes. Missing attribute values are None."""
    geometry: Optional[BaseGeometry]
    attributes: Dict[str, Any]


def _scalar(value: Any) -> Any:
    """Convert pandas/numpy scalars to plain Python values, NaN/NA to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # Array-like values are not scalars; pass them through untouched
        return value
    if hasattr(value, 'item'):
        return value.item()
    return value


@dataclass(frozen=True, eq=False)
class SpatialDataset:
    """
    Immutable table of features with a uniform schema and one CRS.

    Two datasets are equal when they share a name, a CRS and an identical
    frame (same columns, dtypes, values and geometries, in the same order).

    Parameters:
    -----------
    source_frame : gpd.GeoDataFrame
        Geometries and attributes. Copied on construction.
    name : str
        Display name used in logs, errors and output file names

    Example:
        >>> ds = SpatialDataset(gdf, name='counties')
        >>> ds.crs_id
        'EPSG:4326'
        >>> ds.columns
        ('name', 'fips')
    """
    source_frame: InitVar[gpd.GeoDataFrame]
    name: str = 'dataset'
    _frame: gpd.GeoDataFrame = field(init=False, repr=False)

    def __post_init__(self, source_frame):
        if not isinstance(source_frame, gpd.GeoDataFrame):
            raise TypeError(
                f"SpatialDataset requires a GeoDataFrame, got {type(source_frame).__name__}"
            )
        try:
            source_frame.geometry
        except AttributeError as e:
            raise ValueError(f"Dataset '{self.name}' has no active geometry column") from e
        object.__setattr__(self, '_frame', source_frame.copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpatialDataset):
            return NotImplemented
        return (
            self.name == other.name
            and self.crs == other.crs
            and list(self._frame.columns) == list(other._frame.columns)
            and self._frame.equals(other._frame)
        )

    def __hash__(self) -> int:
        return hash((self.name, self.crs_id, self.columns, len(self)))

    @property
    def frame(self) -> gpd.GeoDataFrame:
        """A copy of the features; changing it leaves the dataset untouched."""
        return self._frame.copy()

    # ------------------------------------------------------------------
    # Schema and CRS
    # ------------------------------------------------------------------

    @property
    def geometry_column(self) -> str:
        return self._frame.geometry.name

    @property
    def columns(self) -> Tuple[str, ...]:
        """Attribute column names in order, geometry column excluded."""
        return tuple(c for c in self._frame.columns if c != self.geometry_column)

    @property
    def crs(self) -> Optional[CRS]:
        return self._frame.crs

    @property
    def crs_id(self) -> Optional[str]:
        """Authority code such as 'EPSG:4326', the CRS string if it has none, or None."""
        if self._frame.crs is None:
            return None
        authority = self._frame.crs.to_authority()
        if authority:
            return f"{authority[0]}:{authority[1]}"
        return self._frame.crs.to_string()

    @property
    def has_crs(self) -> bool:
        return self._frame.crs is not None

    @property
    def geometry_types(self) -> List[str]:
        return self._frame.geometry.geom_type.dropna().unique().tolist()

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return tuple(float(v) for v in self._frame.total_bounds)

    @property
    def is_empty(self) -> bool:
        return len(self._frame) == 0

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return (
            f"SpatialDataset(name={self.name!r}, features={len(self)}, "
            f"crs={self.crs_id!r}, columns={list(self.columns)!r})"
        )

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def to_frame(self) -> gpd.GeoDataFrame:
        """Return a copy of the underlying GeoDataFrame."""
        return self._frame.copy()

    def with_frame(self, frame: gpd.GeoDataFrame, name: Optional[str] = None) -> 'SpatialDataset':
        """Build a new dataset from a derived frame, keeping this dataset's name by default."""
        return SpatialDataset(frame, name=name or self.name)

    def features(self) -> Iterator[Feature]:
        geom_col = self.geometry_column
        attribute_columns = self.columns
        for _, row in self._frame.iterrows():
            yield Feature(
                geometry=row[geom_col],
                attributes={col: _scalar(row[col]) for col in attribute_columns}
            )

    def column_values(self, column: str) -> List[Any]:
        self.require_columns([column])
        return [_scalar(v) for v in self._frame[column]]

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def require_crs(self, operation: str) -> CRS:
        """Return the dataset CRS or raise CRSUnsetError naming the operation."""
        if self._frame.crs is None:
            raise CRSUnsetError(
                f"{operation} requires a known CRS, but dataset '{self.name}' has none. "
                f"Declare one with assume_crs() first."
            )
        return self._frame.crs

    def require_columns(self, columns: Iterable[str]) -> None:
        missing = [c for c in columns if c not in self.columns]
        if missing:
            raise UnknownColumnError(missing, self.columns, dataset_name=self.name)
