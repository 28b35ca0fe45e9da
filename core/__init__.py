"""
Core modules for the Spatial Pipeline.

This package contains the dataset model and the operations applied to
normalized datasets.

Modules:
    errors: Error taxonomy
    dataset: SpatialDataset and Feature value types
    schema: Column projection and row filtering
    combiner: Spatial join, intersection and clip
    aggregation: Group counts and count merging
    styling: Style configuration and colour lookup
    static_renderer: Static matplotlib maps
    map_builder: Interactive Leaflet maps
    output_generator: Save maps, data files and metadata
"""

__version__ = '1.0.0'
