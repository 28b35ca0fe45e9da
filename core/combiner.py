"""
Spatial combination module.

Combines two datasets by geometric relation: attribute joins (spatial_join),
pairwise geometric intersections (intersection) and clipping to a mask
(clip). Both inputs must declare the same CRS; nothing is reprojected
implicitly.

Functions:
    spatial_join: Attach attributes of related right features to left features
    intersection: One clipped feature per overlapping pair
    clip: Cut a dataset down to the area covered by a mask dataset
"""

from typing import Dict, Tuple

import geopandas as gpd
import pandas as pd

from core.dataset import SpatialDataset
from core.errors import CRSMismatchError
from geometry_input.clipping import (
    clip_geodataframe,
    extract_geometry_type,
    geometry_dimension,
    lower_family
)
from geometry_input.dissolve import dissolve_geometries, repair_frame, repair_invalid_geometry
from geometry_input.load_input import detect_geometry_type
from utils.logger import get_logger

logger = get_logger(__name__)

JOIN_MODES = ('left', 'inner')
# Bookkeeping columns geopandas reserves in sjoin; only index_right ends up in results
SJOIN_INDEX_COLUMN = 'index_right'
SJOIN_RESERVED_COLUMNS = ('index_left', SJOIN_INDEX_COLUMN)


def check_combinable(left: SpatialDataset, right: SpatialDataset, operation: str) -> None:
    """
    Ensure two datasets can be combined.

    Raises:
        CRSUnsetError: If either dataset has no CRS
        CRSMismatchError: If the two CRSs differ
    """
    left_crs = left.require_crs(operation)
    right_crs = right.require_crs(operation)
    if left_crs != right_crs:
        raise CRSMismatchError(
            f"{operation} requires matching CRSs: '{left.name}' is {left.crs_id}, "
            f"'{right.name}' is {right.crs_id}. Reproject one of them first."
        )


def _prepare_right(left: SpatialDataset,
                   right: SpatialDataset,
                   rsuffix: str) -> Tuple[gpd.GeoDataFrame, Dict[str, str]]:
    """
    Copy the right frame with clashing attribute names suffixed.

    Left columns keep their names; a right column sharing a name with a left
    column becomes '<name>_<rsuffix>'.

    Raises:
        ValueError: If a suffixed name still clashes with an existing column
    """
    taken = set(left.columns) | {left.geometry_column}
    rename_map = {}
    for col in right.columns:
        if col in taken:
            new_name = f"{col}_{rsuffix}"
            if new_name in taken or new_name in right.columns:
                raise ValueError(
                    f"Cannot suffix column '{col}' of '{right.name}': "
                    f"'{new_name}' already exists"
                )
            rename_map[col] = new_name

    frame = right.to_frame().reset_index(drop=True)
    if rename_map:
        frame = frame.rename(columns=rename_map)
        logger.debug(f"  - Suffixed right columns: {rename_map}")

    return frame, rename_map


def _sjoin(left_frame: gpd.GeoDataFrame,
           right_frame: gpd.GeoDataFrame,
           how: str,
           predicate: str) -> Tuple[gpd.GeoDataFrame, pd.Series]:
    """
    Run gpd.sjoin and split off the matched right row positions.

    Attribute columns named like the sjoin bookkeeping columns are renamed for
    the join and restored afterwards. right_frame must have a RangeIndex and no
    column names in common with left_frame.

    Returns:
        (joined frame without bookkeeping columns, right positions; NaN where
        a left feature matched nothing)
    """
    taken = set(left_frame.columns) | set(right_frame.columns)
    aliases = {}
    for col in SJOIN_RESERVED_COLUMNS:
        if col in taken:
            alias = f'__{col}'
            while alias in taken:
                alias = f'_{alias}'
            aliases[col] = alias

    if aliases:
        logger.debug(f"  - Aliasing reserved column name(s) for the join: {aliases}")
        left_frame = left_frame.rename(columns=aliases)
        right_frame = right_frame.rename(columns=aliases)

    joined = gpd.sjoin(
        left_frame, right_frame, how=how, predicate=predicate,
        lsuffix='left', rsuffix='right'
    )
    right_positions = joined.pop(SJOIN_INDEX_COLUMN)

    if aliases:
        joined = joined.rename(columns={alias: col for col, alias in aliases.items()})

    return joined, right_positions


def right_column_name(left: SpatialDataset, column: str, rsuffix: str = 'right') -> str:
    """Name a right-side column ends up with after spatial_join/intersection."""
    if column in left.columns or column == left.geometry_column:
        return f"{column}_{rsuffix}"
    return column


def spatial_join(left: SpatialDataset,
                 right: SpatialDataset,
                 how: str = 'left',
                 predicate: str = 'intersects',
                 rsuffix: str = 'right') -> SpatialDataset:
    """
    Attach to each left feature the attributes of every right feature it relates to.

    Parameters:
    -----------
    left : SpatialDataset
        Features to enrich; their geometries are kept
    right : SpatialDataset
        Features whose attributes are attached
    how : str
        'left' keeps every left feature, null-filling right attributes when
        nothing matches; 'inner' keeps only matched left features
    predicate : str
        Spatial relation tested as left.<predicate>(right): 'intersects',
        'within', 'contains', 'touches', ...
    rsuffix : str
        Suffix for right columns whose names clash with left columns

    Returns:
    --------
    SpatialDataset
        Left geometries with left + right attributes. A left feature matching
        several right features appears once per match.

    Raises:
    -------
    CRSUnsetError, CRSMismatchError
        If the CRSs are not both known and equal
    ValueError
        If how or predicate is not supported

    Example:
        >>> joined = spatial_join(animals, habitats, how='inner')
        >>> joined.column_values('name')
        ['lion', 'bear']
    """
    if how not in JOIN_MODES:
        raise ValueError(f"Unsupported join mode '{how}', expected one of {JOIN_MODES}")
    check_combinable(left, right, 'spatial_join')

    logger.info(f"Spatial join ({how}, {predicate}): '{left.name}' x '{right.name}'")

    left_frame = left.to_frame().reset_index(drop=True)
    right_frame, _ = _prepare_right(left, right, rsuffix)

    joined, right_positions = _sjoin(left_frame, right_frame, how, predicate)

    matched = int(right_positions.notna().sum())
    joined = joined.reset_index(drop=True)

    logger.info(f"  - {len(left_frame)} left features, {matched} match(es), {len(joined)} output features")

    return SpatialDataset(joined, name=f"{left.name}_join_{right.name}")


def intersection(left: SpatialDataset,
                 right: SpatialDataset,
                 keep_geom_type: bool = True,
                 rsuffix: str = 'right') -> SpatialDataset:
    """
    Intersect every overlapping pair of features.

    Produces one feature per overlapping (left, right) pair carrying both
    attribute sets and the clipped geometry. Pairs that do not overlap are
    dropped.

    Args:
        left: First dataset
        right: Second dataset
        keep_geom_type: Drop results of lower dimension than the lower-dimension
                        input of each pair (e.g. the shared edge of two touching
                        polygons)
        rsuffix: Suffix for right columns whose names clash with left columns

    Returns:
        New dataset of intersections

    Raises:
        CRSUnsetError, CRSMismatchError: If the CRSs are not both known and equal
    """
    check_combinable(left, right, 'intersection')

    logger.info(f"Intersecting '{left.name}' with '{right.name}'...")

    left_frame = repair_frame(left.to_frame().reset_index(drop=True))
    right_frame, _ = _prepare_right(left, right, rsuffix)
    right_frame = repair_frame(right_frame)

    pairs, right_positions = _sjoin(left_frame, right_frame, 'inner', 'intersects')
    pairs = pairs.reset_index(drop=True)

    right_positions = right_positions.to_numpy()
    right_geoms = right_frame.geometry.take(right_positions).to_numpy()
    left_geoms = pairs.geometry.to_numpy()

    clipped = []
    for left_geom, right_geom in zip(left_geoms, right_geoms):
        result = repair_invalid_geometry(left_geom.intersection(right_geom))
        if keep_geom_type:
            left_family = geometry_dimension(left_geom)
            right_family = geometry_dimension(right_geom)
            if left_family and right_family:
                result = extract_geometry_type(result, lower_family(left_family, right_family))
        clipped.append(result)

    geom_col = pairs.geometry.name
    pairs[geom_col] = gpd.GeoSeries(clipped, index=pairs.index, crs=left_frame.crs)

    keep_mask = pairs.geometry.notna() & ~pairs.geometry.is_empty
    dropped = int((~keep_mask).sum())
    result = pairs[keep_mask].reset_index(drop=True)

    logger.info(
        f"  - {len(pairs)} overlapping pair(s), {len(result)} intersection feature(s)"
        + (f", {dropped} empty/sliver result(s) dropped" if dropped else "")
    )

    return SpatialDataset(result, name=f"{left.name}_x_{right.name}")


def clip(dataset: SpatialDataset, mask: SpatialDataset) -> SpatialDataset:
    """
    Clip a dataset to the area covered by the union of a mask dataset.

    Only the dataset's own attributes are kept. Features entirely outside the
    mask are dropped.

    Raises:
        CRSUnsetError, CRSMismatchError: If the CRSs are not both known and equal
    """
    check_combinable(dataset, mask, 'clip')

    frame = dataset.to_frame()
    if mask.is_empty:
        logger.info(f"Mask '{mask.name}' is empty, clipping '{dataset.name}' to nothing")
        return dataset.with_frame(frame.iloc[0:0])

    boundary = repair_invalid_geometry(dissolve_geometries(mask.frame))
    clipped, clip_metadata = clip_geodataframe(
        frame, boundary, dataset.name, detect_geometry_type(frame)
    )
    logger.debug(f"  Clip metadata for '{dataset.name}': {clip_metadata}")

    return dataset.with_frame(clipped.reset_index(drop=True))
