"""
Geometry Clipping Module

Clips geometries to a boundary and cleans up the mixed results shapely
returns from intersections (GeometryCollections, lower-dimension slivers,
empty geometries).
"""

from typing import Tuple, Dict, Optional
import geopandas as gpd
from shapely.geometry import (
    Point, MultiPoint, LineString, MultiLineString,
    Polygon, MultiPolygon, GeometryCollection
)
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid
from utils.logger import get_logger

logger = get_logger(__name__)

_FAMILY_TYPES = {
    'point': (Point, MultiPoint),
    'line': (LineString, MultiLineString),
    'polygon': (Polygon, MultiPolygon),
}
_MULTI_TYPES = {
    'point': MultiPoint,
    'line': MultiLineString,
    'polygon': MultiPolygon,
}
_DIMENSIONS = {'point': 0, 'line': 1, 'polygon': 2}


def count_vertices(geometry: BaseGeometry) -> int:
    """
    Count total vertices in a geometry.

    Handles Point, MultiPoint, LineString, MultiLineString,
    Polygon, MultiPolygon, and GeometryCollection types.

    Args:
        geometry: Shapely geometry object (None counts as 0)

    Returns:
        Total number of vertices/coordinates in the geometry
    """
    if geometry is None or geometry.is_empty:
        return 0

    if isinstance(geometry, Point):
        return 1
    elif isinstance(geometry, MultiPoint):
        return len(geometry.geoms)
    elif isinstance(geometry, LineString):
        return len(geometry.coords)
    elif isinstance(geometry, MultiLineString):
        return sum(len(line.coords) for line in geometry.geoms)
    elif isinstance(geometry, Polygon):
        # Exterior ring + interior rings (holes)
        count = len(geometry.exterior.coords)
        for interior in geometry.interiors:
            count += len(interior.coords)
        return count
    elif isinstance(geometry, (MultiPolygon, GeometryCollection)):
        return sum(count_vertices(geom) for geom in geometry.geoms)
    return 0


def geometry_dimension(geometry: BaseGeometry) -> Optional[str]:
    """Return the family ('point', 'line', 'polygon') of a single-family geometry, else None."""
    for family, types in _FAMILY_TYPES.items():
        if isinstance(geometry, types):
            return family
    return None


def lower_family(family_a: str, family_b: str) -> str:
    """Return whichever of two geometry families has the lower dimension."""
    return family_a if _DIMENSIONS[family_a] <= _DIMENSIONS[family_b] else family_b


def extract_geometry_type(
    geometry: BaseGeometry,
    target_type: str
) -> Optional[BaseGeometry]:
    """
    Extract geometries of a specific type from a potentially mixed result.

    When .intersection() returns a GeometryCollection, or a geometry of a
    lower dimension than the inputs (e.g. two touching polygons meeting in a
    line), this keeps only the parts of the target type.

    Args:
        geometry: Result geometry (may be GeometryCollection)
        target_type: 'point', 'line' or 'polygon'

    Returns:
        Extracted geometry of the target type, or None if no matching geometries
    """
    if geometry is None or geometry.is_empty:
        return None

    target_classes = _FAMILY_TYPES[target_type]

    # Direct match - return as-is
    if isinstance(geometry, target_classes):
        return geometry

    if not isinstance(geometry, GeometryCollection):
        return None

    extracted = []
    for geom in geometry.geoms:
        if isinstance(geom, target_classes[1]):
            extracted.extend(geom.geoms)
        elif isinstance(geom, target_classes[0]) and not geom.is_empty:
            extracted.append(geom)

    if not extracted:
        return None
    elif len(extracted) == 1:
        return extracted[0]
    return _MULTI_TYPES[target_type](extracted)


def clip_geodataframe(
    gdf: gpd.GeoDataFrame,
    clip_boundary: BaseGeometry,
    layer_name: str,
    geometry_type: str
) -> Tuple[gpd.GeoDataFrame, Dict]:
    """
    Clip all geometries in a GeoDataFrame to the clip boundary.

    Args:
        gdf: GeoDataFrame with geometries to clip
        clip_boundary: Polygon boundary to clip geometries to
        layer_name: Name of the layer (for logging)
        geometry_type: Family of the layer ('point', 'line', 'polygon' or 'mixed')

    Returns:
        Tuple of (clipped GeoDataFrame, metadata dictionary)

    Metadata dictionary contains:
        - original_feature_count: Features before clipping
        - clipped_feature_count: Features after clipping
        - original_vertex_count: Total vertices before clipping
        - clipped_vertex_count: Total vertices after clipping
        - vertex_reduction_percent: Percentage reduction in vertices
        - empty_geometries_removed: Features removed due to empty geometry after clip
    """
    clip_metadata = {
        'original_feature_count': len(gdf),
        'clipped_feature_count': 0,
        'original_vertex_count': 0,
        'clipped_vertex_count': 0,
        'vertex_reduction_percent': 0.0,
        'empty_geometries_removed': 0
    }

    if len(gdf) == 0:
        return gdf.copy(), clip_metadata

    logger.info(f"  Clipping {len(gdf)} features for {layer_name}...")

    original_vertex_count = sum(count_vertices(geom) for geom in gdf.geometry)
    clip_metadata['original_vertex_count'] = original_vertex_count

    # Step 1: Batch repair invalid geometries (vectorized validity check)
    invalid_mask = ~gdf.is_valid & gdf.geometry.notna()
    if invalid_mask.any():
        logger.debug(f"    Repairing {int(invalid_mask.sum())} invalid geometries...")
        gdf = gdf.copy()
        geom_col = gdf.geometry.name
        gdf.loc[invalid_mask, geom_col] = gdf.loc[invalid_mask, geom_col].apply(make_valid)

    # Step 2: Vectorized clipping
    clipped_gdf = gpd.clip(gdf, clip_boundary, keep_geom_type=geometry_type in _FAMILY_TYPES)

    # Step 3: Handle GeometryCollection results from clipping
    if len(clipped_gdf) > 0 and geometry_type in _FAMILY_TYPES:
        gc_mask = clipped_gdf.geometry.apply(lambda g: isinstance(g, GeometryCollection))
        if gc_mask.any():
            clipped_gdf = clipped_gdf.copy()
            geom_col = clipped_gdf.geometry.name
            clipped_gdf.loc[gc_mask, geom_col] = clipped_gdf.loc[gc_mask, geom_col].apply(
                lambda g: extract_geometry_type(g, geometry_type)
            )

    # Step 4: Remove empty/null geometries
    if len(clipped_gdf) > 0:
        empty_mask = clipped_gdf.geometry.isna() | clipped_gdf.geometry.is_empty
        empty_count = int(empty_mask.sum())
        if empty_count > 0:
            clipped_gdf = clipped_gdf[~empty_mask]
            clip_metadata['empty_geometries_removed'] = empty_count
            logger.debug(f"    Removed {empty_count} features with empty geometries after clipping")

    # Step 5: Calculate statistics
    clipped_vertex_count = sum(count_vertices(g) for g in clipped_gdf.geometry)
    clip_metadata['clipped_vertex_count'] = clipped_vertex_count
    clip_metadata['clipped_feature_count'] = len(clipped_gdf)

    if original_vertex_count > 0:
        reduction = ((original_vertex_count - clipped_vertex_count) / original_vertex_count) * 100
        clip_metadata['vertex_reduction_percent'] = round(reduction, 1)

    logger.info(
        f"    Kept {len(clipped_gdf)} of {len(gdf)} features: "
        f"{original_vertex_count:,} -> {clipped_vertex_count:,} vertices "
        f"({clip_metadata['vertex_reduction_percent']}% reduction)"
    )

    return clipped_gdf, clip_metadata
