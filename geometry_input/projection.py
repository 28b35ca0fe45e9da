"""
Coordinate Reference System Module

Declares and transforms the CRS of a SpatialDataset. Labelling a CRS and
transforming coordinates are separate operations that never stand in for
each other: assume_crs only works on an unset CRS, reproject only works on a
known one. Also selects a local projected CRS for metric measurements.
"""

from typing import Any

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from core.dataset import SpatialDataset
from core.errors import CRSAlreadySetError
from utils.logger import get_logger

logger = get_logger(__name__)

# Constants
WGS84 = 'EPSG:4326'
CONUS_ALBERS = 'EPSG:5070'  # Albers Equal Area Conic for CONUS
WEB_MERCATOR = 'EPSG:3857'  # Web Mercator for global coverage

AREA_UNITS = {
    'm2': 1.0,
    'ha': 1.0e4,
    'km2': 1.0e6,
    'sq_miles': 2589988.110336,
}


def resolve_crs(crs_id: Any) -> CRS:
    """
    Turn a CRS identifier into a pyproj CRS.

    Accepts anything pyproj understands: 'EPSG:4326', 4326, a WKT string or a CRS.

    Raises:
        ValueError: If the identifier is not a recognized CRS
    """
    if crs_id is None:
        raise ValueError("CRS identifier must not be None")
    try:
        return CRS.from_user_input(crs_id)
    except CRSError as e:
        raise ValueError(f"Unrecognized CRS: {crs_id!r}") from e


def assume_crs(dataset: SpatialDataset, crs_id: Any) -> SpatialDataset:
    """
    Declare the CRS of a dataset whose CRS is unset, without moving any coordinate.

    Args:
        dataset: Dataset with an unset CRS
        crs_id: CRS the coordinates are already expressed in

    Returns:
        New dataset labelled with crs_id

    Raises:
        CRSAlreadySetError: If the dataset already declares a CRS
        ValueError: If crs_id is not a recognized CRS
    """
    if dataset.has_crs:
        raise CRSAlreadySetError(
            f"Dataset '{dataset.name}' already declares {dataset.crs_id}; "
            f"use reproject() to transform it to {crs_id}"
        )

    crs = resolve_crs(crs_id)
    frame = dataset.to_frame().set_crs(crs)

    logger.info(f"Assumed CRS for '{dataset.name}': {crs.to_string()}")

    return dataset.with_frame(frame)


def reproject(dataset: SpatialDataset, target_crs_id: Any) -> SpatialDataset:
    """
    Transform every geometry of a dataset into the target CRS.

    Args:
        dataset: Dataset with a known CRS
        target_crs_id: CRS to transform to

    Returns:
        New dataset in target_crs_id

    Raises:
        CRSUnsetError: If the dataset CRS is unset
        ValueError: If target_crs_id is not a recognized CRS
    """
    source_crs = dataset.require_crs('reproject')
    target_crs = resolve_crs(target_crs_id)

    if source_crs == target_crs:
        logger.debug(f"'{dataset.name}' already in {target_crs.to_string()}, copying")
        return dataset.with_frame(dataset.to_frame())

    logger.info(
        f"Reprojecting '{dataset.name}': {dataset.crs_id} -> {target_crs.to_string()}"
    )
    frame = dataset.to_frame().to_crs(target_crs)

    return dataset.with_frame(frame)


def select_projected_crs(dataset: SpatialDataset) -> CRS:
    """
    Select a projected CRS suitable for metric measurements on the dataset.

    Strategy:
    1. Take the centre of the dataset bounds in lon/lat
    2. Determine UTM zone from longitude and hemisphere from latitude
    3. Fall back to Albers Equal Area (CONUS) or Web Mercator (global)

    Raises:
        CRSUnsetError: If the dataset CRS is unset
        ValueError: If the dataset has no features
    """
    source_crs = dataset.require_crs('select_projected_crs')
    if dataset.is_empty:
        raise ValueError(f"Cannot select a projected CRS for empty dataset '{dataset.name}'")

    minx, miny, maxx, maxy = dataset.bounds
    x, y = (minx + maxx) / 2, (miny + maxy) / 2

    wgs84 = CRS.from_epsg(4326)
    if source_crs != wgs84:
        transformer = Transformer.from_crs(source_crs, wgs84, always_xy=True)
        lon, lat = transformer.transform(x, y)
    else:
        lon, lat = x, y

    try:
        # UTM zones are 6 degrees wide, starting at -180
        utm_zone = int((lon + 180) / 6) + 1
        if not 1 <= utm_zone <= 60:
            raise ValueError(f"Longitude {lon} outside UTM range")

        if lat >= 0:
            epsg_code = 32600 + utm_zone  # WGS84 UTM North
        else:
            epsg_code = 32700 + utm_zone  # WGS84 UTM South

        utm_crs = CRS.from_epsg(epsg_code)
        logger.debug(f"  - Selected UTM Zone {utm_zone} (EPSG:{epsg_code}) for '{dataset.name}'")
        return utm_crs

    except (ValueError, CRSError) as e:
        logger.warning(f"Failed to determine UTM zone: {e}")

        # CONUS approximate bounds: lon -125 to -66, lat 24 to 49
        if -125 <= lon <= -66 and 24 <= lat <= 49:
            logger.info("  - Using fallback: Albers Equal Area Conic (EPSG:5070)")
            return CRS.from_string(CONUS_ALBERS)
        logger.info("  - Using fallback: Web Mercator (EPSG:3857)")
        return CRS.from_string(WEB_MERCATOR)


def add_area_column(dataset: SpatialDataset,
                    column: str = 'area_km2',
                    units: str = 'km2') -> SpatialDataset:
    """
    Derive a polygon area column measured in a local projected CRS.

    Geometries are left in the dataset's own CRS; only the measurement is
    taken in the projected CRS. Points and lines measure 0.

    Args:
        dataset: Dataset with a known CRS
        column: Name of the new column
        units: One of 'm2', 'ha', 'km2', 'sq_miles'

    Raises:
        CRSUnsetError: If the dataset CRS is unset
        ValueError: If units is unknown or column already exists
    """
    dataset.require_crs('add_area_column')
    if units not in AREA_UNITS:
        raise ValueError(f"Unknown area units '{units}', expected one of {sorted(AREA_UNITS)}")
    if column in dataset.columns:
        raise ValueError(f"Column '{column}' already exists in '{dataset.name}'")

    frame = dataset.to_frame()
    if dataset.is_empty:
        frame[column] = []
        return dataset.with_frame(frame)

    if dataset.crs.is_projected:
        measured = frame.geometry
    else:
        measured = frame.geometry.to_crs(select_projected_crs(dataset))

    frame[column] = measured.area.values / AREA_UNITS[units]

    logger.debug(f"Derived '{column}' ({units}) for {len(frame)} features of '{dataset.name}'")

    return dataset.with_frame(frame)
