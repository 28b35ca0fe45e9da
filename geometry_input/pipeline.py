"""
Dataset Preparation Pipeline

Orchestrates the steps that turn a raw layer into a normalized dataset:
1. Load the layer from its source
2. Project the schema (keep + rename columns)
3. Declare the CRS when the source has none
4. Reproject to the target CRS
5. Simplify geometries (optional, lossy)

Each step returns a new SpatialDataset; the steps compose as plain function
calls in this order.
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from core.dataset import SpatialDataset
from core.schema import project
from geometry_input.dissolve import simplify
from geometry_input.load_input import extract_geometry_metadata, load_layer
from geometry_input.projection import assume_crs, reproject
from config.config_loader import get_layer_config, load_pipeline_settings
from utils.logger import get_logger, log_section

logger = get_logger(__name__)


def prepare_dataset(source: Union[str, Path],
                    layer_name: str,
                    keep_columns: Optional[Sequence[str]] = None,
                    rename_map: Optional[Mapping[str, str]] = None,
                    assume_crs_id: Optional[Any] = None,
                    target_crs_id: Optional[Any] = None,
                    simplify_tolerance: Optional[float] = None,
                    expected_geometry: Optional[str] = None) -> SpatialDataset:
    """
    Load a layer and normalize its schema and CRS.

    Args:
        source: Directory or GeoPackage holding the layer
        layer_name: Layer to load
        keep_columns: Attribute columns to keep (None keeps all)
        rename_map: Old name -> new name applied after selection
        assume_crs_id: CRS to declare when the source declares none; ignored
                       when the source already declares one
        target_crs_id: CRS to reproject to (None keeps the source CRS)
        simplify_tolerance: Simplification tolerance in target CRS units (None skips)
        expected_geometry: Required geometry family ('point', 'line', 'polygon')

    Returns:
        Normalized SpatialDataset

    Raises:
        SourceNotFoundError: If the source or layer doesn't exist
        SchemaMismatchError: If expected_geometry doesn't match
        UnknownColumnError: If keep_columns/rename_map name missing columns
        CRSUnsetError: If target_crs_id is given but the CRS is unknown and
                       no assume_crs_id is provided

    Example:
        >>> counties = prepare_dataset(
        ...     'data', 'counties',
        ...     keep_columns=['NAME'], rename_map={'NAME': 'county'},
        ...     target_crs_id='EPSG:3310'
        ... )
        >>> counties.crs_id
        'EPSG:3310'
    """
    log_section(logger, f"PREPARING DATASET: {layer_name}")

    # Step 1: Load
    dataset = load_layer(source, layer_name, expected_geometry=expected_geometry)
    original_crs = dataset.crs_id

    # Step 2: Schema
    if keep_columns is not None:
        dataset = project(dataset, keep_columns, rename_map)
    elif rename_map:
        dataset = project(dataset, dataset.columns, rename_map)

    # Step 3: Declare CRS only when the source left it unset
    if assume_crs_id is not None:
        if dataset.has_crs:
            logger.info(f"  - Source declares {dataset.crs_id}, not assuming {assume_crs_id}")
        else:
            dataset = assume_crs(dataset, assume_crs_id)

    # Step 4: Reproject
    if target_crs_id is not None:
        dataset = reproject(dataset, target_crs_id)

    # Step 5: Simplify
    if simplify_tolerance:
        dataset = simplify(dataset, simplify_tolerance)

    metadata = extract_geometry_metadata(dataset)
    logger.info(f"  ✓ {metadata['name']}: {metadata['feature_count']} {metadata['geometry_type']} feature(s)")
    logger.info(f"  ✓ CRS: {original_crs or 'unset'} → {dataset.crs_id or 'unset'}")
    logger.info(f"  ✓ Columns: {', '.join(dataset.columns) or 'none'}")
    logger.info("=" * 80)

    return dataset


def prepare_from_config(config: Dict, layer_key: str) -> SpatialDataset:
    """
    Prepare a configured layer.

    Layer entries may override the source directory with 'source'; otherwise
    settings.data_dir is used. settings.target_crs and
    settings.simplify_tolerance apply to every layer.

    Raises:
        KeyError: If layer_key is not configured
    """
    settings = load_pipeline_settings(config)
    layer_config = get_layer_config(config, layer_key)

    source = layer_config['source'] or settings['data_dir']

    return prepare_dataset(
        source,
        layer_config['layer'],
        keep_columns=layer_config['keep_columns'],
        rename_map=layer_config['rename'],
        assume_crs_id=layer_config['assume_crs'],
        target_crs_id=settings['target_crs'],
        simplify_tolerance=settings['simplify_tolerance'],
        expected_geometry=layer_config['expected_geometry']
    )
