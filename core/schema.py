"""
Schema projection module.

Selects, orders and renames attribute columns so datasets from different
sources share a canonical schema before they are combined.

Functions:
    project: Keep a set of columns and rename them
    filter_rows: Keep features whose attribute value is in a set of values
"""

from typing import Any, Iterable, Mapping, Optional, Sequence

from core.dataset import SpatialDataset
from core.errors import UnknownColumnError
from utils.logger import get_logger

logger = get_logger(__name__)


def project(dataset: SpatialDataset,
            keep_columns: Sequence[str],
            rename_map: Optional[Mapping[str, str]] = None) -> SpatialDataset:
    """
    Project a dataset onto a subset of its attribute columns.

    Columns not in keep_columns are dropped; the geometry column is always kept.
    rename_map is applied after selection, so its keys must be kept columns.

    Parameters:
    -----------
    dataset : SpatialDataset
        Dataset to project
    keep_columns : Sequence[str]
        Attribute columns to keep, in output order
    rename_map : Optional[Mapping[str, str]]
        Old name -> new name for kept columns

    Returns:
    --------
    SpatialDataset
        New dataset with the projected schema

    Raises:
    -------
    UnknownColumnError
        If a kept or renamed column does not exist
    ValueError
        If renaming would produce duplicate or geometry-shadowing column names

    Example:
        >>> counties = project(raw, ['NAME', 'GEOID'], {'NAME': 'name'})
        >>> counties.columns
        ('name', 'GEOID')
    """
    rename_map = dict(rename_map or {})
    keep_columns = list(dict.fromkeys(keep_columns))

    dataset.require_columns(keep_columns)
    not_kept = [c for c in rename_map if c not in keep_columns]
    if not_kept:
        raise UnknownColumnError(not_kept, keep_columns, dataset_name=dataset.name)

    final_names = [rename_map.get(c, c) for c in keep_columns]
    if len(set(final_names)) != len(final_names):
        raise ValueError(f"Renaming produces duplicate columns: {final_names}")
    if dataset.geometry_column in final_names:
        raise ValueError(f"Cannot rename a column to the geometry column '{dataset.geometry_column}'")

    frame = dataset.to_frame()[keep_columns + [dataset.geometry_column]]
    if rename_map:
        frame = frame.rename(columns=rename_map)

    logger.debug(
        f"Projected '{dataset.name}': {len(dataset.columns)} -> {len(keep_columns)} columns"
        + (f", renamed {rename_map}" if rename_map else "")
    )

    return dataset.with_frame(frame)


def filter_rows(dataset: SpatialDataset,
                column: str,
                values: Iterable[Any]) -> SpatialDataset:
    """
    Keep features whose value in column is one of values.

    Raises:
        UnknownColumnError: If column does not exist
    """
    dataset.require_columns([column])
    values = list(values)

    frame = dataset.to_frame()
    frame = frame[frame[column].isin(values)]

    logger.info(f"Filtered '{dataset.name}' on {column}: {len(dataset)} -> {len(frame)} features")

    return dataset.with_frame(frame)
