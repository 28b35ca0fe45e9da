"""
Aggregation module.

Counts features per attribute group and merges the counts back onto a base
dataset, e.g. "number of dams per county".

Classes:
    AggregationResult: Group key -> count mapping

Functions:
    count_by_group: Count features per value of a column
    merge_counts: Left-join counts onto every base feature
    count_within: Count point features falling within each polygon group
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from core.combiner import right_column_name, spatial_join
from core.dataset import SpatialDataset
from core.schema import project
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AggregationResult:
    """Feature counts keyed by the values of group_column."""
    group_column: str
    counts: Mapping[Any, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'counts', MappingProxyType(dict(self.counts)))

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def get(self, key: Any, default: Optional[int] = None) -> Optional[int]:
        return self.counts.get(key, default)

    def __len__(self) -> int:
        return len(self.counts)


def count_by_group(dataset: SpatialDataset, group_column: str) -> AggregationResult:
    """
    Count features per distinct value of group_column.

    Features with a missing group value are not counted.

    Raises:
        UnknownColumnError: If group_column does not exist
    """
    dataset.require_columns([group_column])

    value_counts = dataset.frame[group_column].value_counts(dropna=True)
    counts = {
        (key.item() if hasattr(key, 'item') else key): int(count)
        for key, count in value_counts.items()
    }

    logger.info(
        f"Counted '{dataset.name}' by {group_column}: "
        f"{len(counts)} group(s), {sum(counts.values())} feature(s)"
    )

    return AggregationResult(group_column=group_column, counts=counts)


def merge_counts(base: SpatialDataset,
                 result: AggregationResult,
                 on_column: str,
                 fill_value: Any = 0,
                 count_column: str = 'count') -> SpatialDataset:
    """
    Attach counts to every feature of base, keyed by on_column.

    Features whose key has no count receive fill_value. The output always has
    exactly as many features as base, in the same order.

    Parameters:
    -----------
    base : SpatialDataset
        Dataset receiving the counts
    result : AggregationResult
        Counts from count_by_group
    on_column : str
        Base column holding the group keys
    fill_value : Any
        Value for features without a count (default 0)
    count_column : str
        Name of the new column

    Returns:
    --------
    SpatialDataset
        Base features with the count column added

    Raises:
    -------
    UnknownColumnError
        If on_column does not exist in base
    ValueError
        If count_column already exists in base
    """
    base.require_columns([on_column])
    if count_column in base.columns:
        raise ValueError(f"Column '{count_column}' already exists in '{base.name}'")

    frame = base.to_frame()
    counts = frame[on_column].map(dict(result.counts))
    counts = counts.where(counts.notna(), fill_value)
    if isinstance(fill_value, int) and not isinstance(fill_value, bool):
        counts = counts.astype('int64')
    frame[count_column] = counts

    filled = int(frame[on_column].map(lambda key: key not in result.counts).sum())
    logger.info(
        f"Merged counts onto '{base.name}' by {on_column}: "
        f"{len(frame)} feature(s), {filled} filled with {fill_value!r}"
    )

    return base.with_frame(frame)


def count_within(points: SpatialDataset,
                 polygons: SpatialDataset,
                 group_column: str,
                 count_column: str = 'count') -> SpatialDataset:
    """
    Count the features of points that fall within each polygon group.

    Joins points to polygons (inner, 'within'), counts matches per
    group_column value and merges the counts onto every polygon; polygons
    without points get 0.

    Raises:
        CRSUnsetError, CRSMismatchError: If the CRSs are not both known and equal
        UnknownColumnError: If group_column is not a polygons column
    """
    polygons.require_columns([group_column])

    joined = spatial_join(
        points, project(polygons, [group_column]), how='inner', predicate='within'
    )
    joined_column = right_column_name(points, group_column)
    counts = count_by_group(joined, joined_column)

    return merge_counts(
        polygons,
        AggregationResult(group_column=group_column, counts=counts.counts),
        on_column=group_column,
        count_column=count_column
    )
