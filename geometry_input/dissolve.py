"""
Geometry Dissolve Module

Handles dissolving geometries into single unified geometries, repairing
invalid geometries, and lossy simplification for interactive display.
"""

import geopandas as gpd
from shapely.ops import unary_union
from shapely.geometry.base import BaseGeometry
from shapely import make_valid

from core.dataset import SpatialDataset
from geometry_input.clipping import count_vertices
from utils.logger import get_logger

logger = get_logger(__name__)


def dissolve_geometries(gdf: gpd.GeoDataFrame) -> BaseGeometry:
    """
    Dissolve all geometries in GeoDataFrame into a single unified geometry.

    Uses shapely.ops.unary_union to merge all features, handling:
    - Multiple separate geometries → single geometry (or MultiGeometry)
    - MultiPoint/MultiLineString/MultiPolygon → unified equivalent

    Args:
        gdf: GeoDataFrame with one or more geometries

    Returns:
        Single Shapely geometry (may be Multi* type)

    Raises:
        ValueError: If the GeoDataFrame is empty or the union fails
    """
    if len(gdf) == 0:
        raise ValueError("Cannot dissolve an empty GeoDataFrame")

    if len(gdf) == 1:
        logger.debug("Single feature detected, returning as-is")
        return gdf.geometry.iloc[0]

    logger.debug(f"Dissolving {len(gdf)} features into single geometry...")

    try:
        dissolved = unary_union(gdf.geometry.values)
    except Exception as e:
        logger.error(f"Failed to dissolve geometries: {e}")
        raise ValueError(f"Geometry dissolve failed: {e}") from e

    logger.debug(f"  - Result: {dissolved.geom_type}")

    return dissolved


def repair_invalid_geometry(geom: BaseGeometry) -> BaseGeometry:
    """
    Repair invalid geometries using make_valid() or buffer(0) technique.

    Common issues fixed:
    - Self-intersecting polygons
    - Duplicate vertices
    - Invalid ring orientations
    - Topology errors from CRS transformations

    Args:
        geom: Potentially invalid Shapely geometry (None passes through)

    Returns:
        Valid Shapely geometry
    """
    if geom is None or geom.is_valid:
        return geom

    logger.debug(f"Invalid geometry detected: {geom.geom_type}")

    try:
        return make_valid(geom)

    except Exception as e:
        logger.warning(f"make_valid() failed: {e}, trying buffer(0)...")

        try:
            return geom.buffer(0)

        except Exception as e2:
            logger.error(f"All repair attempts failed: {e2}")
            raise ValueError(f"Cannot repair invalid geometry: {e2}") from e2


def repair_frame(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Return a copy of gdf with invalid geometries repaired (vectorized validity check)."""
    invalid_mask = ~gdf.geometry.is_valid & gdf.geometry.notna()
    repair_count = int(invalid_mask.sum())
    if repair_count == 0:
        return gdf

    logger.debug(f"    Repairing {repair_count} invalid geometries...")
    gdf = gdf.copy()
    geom_col = gdf.geometry.name
    gdf.loc[invalid_mask, geom_col] = gdf.loc[invalid_mask, geom_col].apply(repair_invalid_geometry)
    return gdf


def simplify(dataset: SpatialDataset,
             tolerance: float,
             preserve_topology: bool = True) -> SpatialDataset:
    """
    Simplify line and polygon geometries to reduce vertex count.

    Every simplified vertex stays within tolerance (in CRS units) of the
    original boundary. Lossy: meant for interactive-speed display, never for
    authoritative geometry. Point geometries are returned unchanged.

    Args:
        dataset: Dataset to simplify
        tolerance: Maximum distance in CRS units (degrees for EPSG:4326;
                   0.0001 ≈ 11 meters at equator)
        preserve_topology: Keep polygons valid (slower)

    Returns:
        New simplified dataset

    Raises:
        ValueError: If tolerance is negative
    """
    if tolerance < 0:
        raise ValueError(f"Simplification tolerance must be non-negative, got {tolerance}")

    frame = dataset.to_frame()
    if dataset.is_empty or tolerance == 0:
        return dataset.with_frame(frame)

    geom_col = frame.geometry.name
    original_vertices = sum(count_vertices(g) for g in frame.geometry)

    frame[geom_col] = frame.geometry.simplify(tolerance, preserve_topology=preserve_topology)

    simplified_vertices = sum(count_vertices(g) for g in frame.geometry)
    if original_vertices > 0:
        reduction = (original_vertices - simplified_vertices) / original_vertices * 100
        logger.info(
            f"Simplified '{dataset.name}' (tolerance {tolerance}): "
            f"{original_vertices:,} -> {simplified_vertices:,} vertices ({reduction:.1f}% reduction)"
        )

    return dataset.with_frame(frame)
