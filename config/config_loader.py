"""
Configuration loading for the Spatial Pipeline.

This module handles loading and validation of the pipeline configuration JSON
file. Configuration is read once and passed explicitly to every step; nothing
here keeps process-wide state.

Constants:
    PROJECT_ROOT: Root directory of the project
    CONFIG_DIR: Configuration files directory
    DATA_DIR: Default directory of input layers
    OUTPUT_DIR: Default output files directory

Functions:
    load_config: Load and validate pipeline configuration from JSON
    load_pipeline_settings: Merge 'settings' over defaults
    load_style_settings: Merge 'style' over defaults
    get_layer_config: Look up one entry of the 'layers' section
"""

import json
from pathlib import Path
from typing import Dict, Optional, Union

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / 'config'
DATA_DIR = PROJECT_ROOT / 'data'
OUTPUT_DIR = PROJECT_ROOT / 'outputs'

DEFAULT_CONFIG_FILE = CONFIG_DIR / 'pipeline_config.json'


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict:
    """
    Load pipeline configuration from a JSON file.

    Parameters:
    -----------
    config_path : Optional[Union[str, Path]]
        Path to the configuration file. Defaults to config/pipeline_config.json

    Returns:
    --------
    Dict
        Configuration dictionary with 'layers' and 'settings' keys

    Raises:
    -------
    FileNotFoundError
        If configuration file doesn't exist
    json.JSONDecodeError
        If configuration file contains invalid JSON
    KeyError
        If required configuration keys are missing
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    # Validate required keys
    if 'layers' not in config:
        raise KeyError("Configuration missing required 'layers' key")
    if 'settings' not in config:
        raise KeyError("Configuration missing required 'settings' key")

    for key, layer in config['layers'].items():
        if 'layer' not in layer:
            raise KeyError(f"Layer '{key}' missing required 'layer' key")

    return config


def load_pipeline_settings(config: Dict) -> Dict:
    """
    Load pipeline settings from configuration.

    Defaults:
        - data_dir: PROJECT_ROOT/data
        - output_dir: PROJECT_ROOT/outputs
        - target_crs: 'EPSG:4326'
        - simplify_tolerance: None (no simplification)
        - default_zoom: 8
        - render_static: True
        - render_interactive: True

    Note:
        Relative data_dir/output_dir values are resolved against PROJECT_ROOT.
    """
    defaults = {
        'data_dir': str(DATA_DIR),
        'output_dir': str(OUTPUT_DIR),
        'target_crs': 'EPSG:4326',
        'simplify_tolerance': None,
        'default_zoom': 8,
        'render_static': True,
        'render_interactive': True
    }

    result = {**defaults, **config.get('settings', {})}

    for key in ('data_dir', 'output_dir'):
        path = Path(result[key])
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        result[key] = path

    return result


def load_style_settings(config: Dict) -> Dict:
    """
    Load map style settings from configuration.

    Returns defaults if the 'style' section is missing. The result feeds
    StyleConfig.from_dict.
    """
    defaults = {
        'fill_attribute': None,
        'color_palette': 'viridis',
        'opacity': 0.7,
        'stroke_color': '#333333',
        'stroke_width': 1.0,
        'basemap_provider': 'CartoDB.Positron',
        'view_bounds': None
    }

    return {**defaults, **config.get('style', {})}


def get_layer_config(config: Dict, layer_key: str) -> Dict:
    """
    Return the configuration of one layer with optional keys filled in.

    Raises:
        KeyError: If the layer is not configured
    """
    if layer_key not in config['layers']:
        raise KeyError(
            f"Layer '{layer_key}' not in configuration "
            f"(configured: {', '.join(config['layers'])})"
        )

    defaults = {
        'source': None,
        'keep_columns': None,
        'rename': {},
        'assume_crs': None,
        'expected_geometry': None
    }

    return {**defaults, **config['layers'][layer_key]}
