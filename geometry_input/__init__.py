"""
Geometry Input Processing Package

This package turns raw layers into normalized SpatialDatasets: loading from
directory-based sources, CRS declaration and reprojection, repair and
simplification, and clipping helpers.

Modules:
    load_input: Resolve and read named layers, detect geometry families
    projection: assume_crs / reproject and local projected CRS selection
    dissolve: Dissolve, repair and simplify geometries
    clipping: Clip geometries and clean up intersection results
    pipeline: Compose load -> schema -> CRS steps

Usage:
    from geometry_input import prepare_dataset

    dams = prepare_dataset('data', 'dams', target_crs_id='EPSG:3310')
"""

from geometry_input.load_input import load_layer, list_layers
from geometry_input.projection import assume_crs, reproject
from geometry_input.dissolve import simplify
from geometry_input.pipeline import prepare_dataset, prepare_from_config

__all__ = [
    'load_layer',
    'list_layers',
    'assume_crs',
    'reproject',
    'simplify',
    'prepare_dataset',
    'prepare_from_config'
]
