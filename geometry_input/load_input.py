"""
Dataset Loading Module

Resolves a named layer inside a directory-based spatial data source and reads it
into a SpatialDataset through GeoPandas. A shapefile layer is one geometry file
(.shp), one attribute file (.dbf) and an optional CRS file (.prj); when the .prj
is missing the dataset comes back with an unset CRS rather than a guessed one.
"""

import geopandas as gpd
from pathlib import Path
from typing import List, Optional, Union

from core.dataset import SpatialDataset
from core.errors import SchemaMismatchError, SourceNotFoundError
from utils.logger import get_logger

logger = get_logger(__name__)

# File extensions a directory source may hold a layer in, in lookup order
LAYER_EXTENSIONS = ('.shp', '.geojson', '.json', '.gpkg')
GEOPACKAGE_EXTENSIONS = ('.gpkg',)
GEOMETRY_FAMILIES = ('point', 'line', 'polygon')


def geometry_family(geom_type: str) -> str:
    """
    Map a geometry type name to its family.

    MultiPoint/MultiLineString/MultiPolygon are classified as their base type.

    Returns:
        One of: 'point', 'line', 'polygon', or 'unknown'
    """
    if geom_type in ('Point', 'MultiPoint'):
        return 'point'
    if geom_type in ('LineString', 'MultiLineString', 'LinearRing'):
        return 'line'
    if geom_type in ('Polygon', 'MultiPolygon'):
        return 'polygon'
    return 'unknown'


def _resolve_layer_path(source: Path, layer_name: str) -> Path:
    """Find the file holding layer_name inside a directory source."""
    candidates = []
    for ext in LAYER_EXTENSIONS:
        candidates.append(source / f'{layer_name}{ext}')
        candidates.append(source / layer_name / f'{layer_name}{ext}')

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    available = list_layers(source)
    raise SourceNotFoundError(
        f"Layer '{layer_name}' not found in {source} "
        f"(available: {', '.join(available) or 'none'})"
    )


def _check_shapefile_parts(layer_path: Path, layer_name: str) -> None:
    """Require the .dbf beside a .shp layer and warn when the .prj is missing."""
    if layer_path.suffix.lower() != '.shp':
        return
    dbf_path = layer_path.with_suffix('.dbf')
    if not dbf_path.exists():
        raise SourceNotFoundError(
            f"Attribute file missing for layer '{layer_name}': {dbf_path}"
        )
    if not layer_path.with_suffix('.prj').exists():
        logger.warning(f"  - No .prj file for '{layer_name}', CRS will be unset")


def list_layers(source: Union[str, Path]) -> List[str]:
    """
    List the layer names available at a source.

    Args:
        source: Directory of layer files, or a GeoPackage file

    Returns:
        Sorted layer names

    Raises:
        SourceNotFoundError: If the source does not exist
    """
    source = Path(source)
    if not source.exists():
        raise SourceNotFoundError(f"Data source not found: {source}")

    if source.is_file():
        if source.suffix.lower() in GEOPACKAGE_EXTENSIONS:
            return sorted(gpd.list_layers(source)['name'].tolist())
        return [source.stem]

    names = set()
    for ext in LAYER_EXTENSIONS:
        for path in source.glob(f'*{ext}'):
            names.add(path.stem)
        for path in source.glob(f'*/*{ext}'):
            if path.stem == path.parent.name:
                names.add(path.stem)
    return sorted(names)


def load_layer(source: Union[str, Path],
               layer_name: str,
               expected_geometry: Optional[str] = None) -> SpatialDataset:
    """
    Load a named layer from a spatial data source.

    Supports: directories of Shapefile/GeoJSON/GeoPackage files named after their
    layer, shapefile folders (<dir>/<layer>/<layer>.shp), GeoPackage files
    holding several layers, and a single layer file whose stem is the layer name.

    Args:
        source: Directory, GeoPackage file or single layer file
        layer_name: Layer to read
        expected_geometry: Optional 'point', 'line' or 'polygon'; when given, a layer
                           of any other family is rejected

    Returns:
        SpatialDataset named after the layer, CRS as declared by the source or unset

    Raises:
        SourceNotFoundError: If the source, layer or attribute file doesn't exist
        SchemaMismatchError: If expected_geometry is given and does not match
        ValueError: If the layer cannot be read

    Note:
        Heterogeneous geometry types are passed through unchanged; callers that
        rely on a single geometry family should pass expected_geometry.
    """
    source = Path(source)
    if not source.exists():
        raise SourceNotFoundError(f"Data source not found: {source}")

    logger.info(f"Loading layer '{layer_name}' from: {source}")

    read_kwargs = {}
    if source.is_dir():
        layer_path = _resolve_layer_path(source, layer_name)
        _check_shapefile_parts(layer_path, layer_name)
    elif source.suffix.lower() in GEOPACKAGE_EXTENSIONS:
        layer_path = source
        available = list_layers(source)
        if layer_name not in available:
            raise SourceNotFoundError(
                f"Layer '{layer_name}' not found in {source} "
                f"(available: {', '.join(available) or 'none'})"
            )
        read_kwargs['layer'] = layer_name
    else:
        if source.stem != layer_name:
            raise SourceNotFoundError(
                f"Layer '{layer_name}' not found in {source} (available: {source.stem})"
            )
        layer_path = source
        _check_shapefile_parts(layer_path, layer_name)

    try:
        gdf = gpd.read_file(layer_path, **read_kwargs)
    except Exception as e:
        raise ValueError(f"Failed to read layer '{layer_name}' from {layer_path}: {e}") from e

    dataset = SpatialDataset(gdf, name=layer_name)

    logger.info(f"  - Loaded {len(dataset)} feature(s)")
    logger.info(f"  - CRS: {dataset.crs_id or 'unset'}")
    logger.debug(f"  - Columns: {list(dataset.columns)}")
    logger.debug(f"  - Geometry types: {dataset.geometry_types}")

    detected = detect_geometry_type(gdf)
    if expected_geometry is not None:
        check_geometry_type(dataset, expected_geometry, detected=detected)
    elif detected == 'mixed':
        logger.warning(f"  - Layer '{layer_name}' mixes geometry types, passing through unchanged")

    return dataset


def detect_geometry_type(gdf: gpd.GeoDataFrame) -> str:
    """
    Detect the primary geometry family in the GeoDataFrame.

    Args:
        gdf: GeoDataFrame with geometries

    Returns:
        One of: 'point', 'line', 'polygon', 'mixed', 'unknown' or 'empty'
    """
    geom_types = gdf.geometry.geom_type.dropna().unique()
    if len(geom_types) == 0:
        return 'empty'

    normalized_types = {geometry_family(gtype) for gtype in geom_types}

    if len(normalized_types) > 1:
        logger.debug(f"Mixed geometry types detected: {sorted(normalized_types)}")
        return 'mixed'

    return normalized_types.pop()


def check_geometry_type(dataset: SpatialDataset,
                        expected: str,
                        detected: Optional[str] = None) -> None:
    """
    Ensure every geometry in the dataset belongs to the expected family.

    Empty datasets pass.

    Raises:
        ValueError: If expected is not a known geometry family
        SchemaMismatchError: If the dataset holds another family or a mix
    """
    if expected not in GEOMETRY_FAMILIES:
        raise ValueError(
            f"Unknown geometry family '{expected}', expected one of {GEOMETRY_FAMILIES}"
        )
    if detected is None:
        detected = detect_geometry_type(dataset.frame)
    if detected not in (expected, 'empty'):
        raise SchemaMismatchError(dataset.name, expected, detected)


def extract_geometry_metadata(dataset: SpatialDataset) -> dict:
    """
    Summarize a dataset for logs and metadata.json.

    Returns:
        Dictionary with name, CRS, feature count, geometry family and bounds
    """
    metadata = {
        'name': dataset.name,
        'crs': dataset.crs_id,
        'feature_count': len(dataset),
        'geometry_type': detect_geometry_type(dataset.frame),
        'geometry_types_detail': dataset.geometry_types,
        'columns': list(dataset.columns),
        'bounds': list(dataset.bounds) if not dataset.is_empty else None
    }

    return metadata
