"""
Basemap utility functions shared by the static and interactive renderers.

This module provides functions to:
- Look up a basemap by provider name
- Resolve the contextily tile provider for static maps
- Build the folium tile layer for interactive maps
"""

from typing import Dict, List

import contextily as cx
import folium

from utils.logger import get_logger

logger = get_logger(__name__)

# Provider names follow the xyzservices dotted naming used by contextily
BASEMAPS = [
    {
        'provider': 'CartoDB.Positron',
        'display_name': 'Light Gray Canvas',
        'tile_url': 'https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png',
        'attribution': '&copy; <a href=\'https://www.openstreetmap.org/copyright\'>OpenStreetMap</a> contributors &copy; <a href=\'https://carto.com/attributions\'>CARTO</a>'
    },
    {
        'provider': 'CartoDB.DarkMatter',
        'display_name': 'Dark Gray Canvas',
        'tile_url': 'https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png',
        'attribution': '&copy; <a href=\'https://www.openstreetmap.org/copyright\'>OpenStreetMap</a> contributors &copy; <a href=\'https://carto.com/attributions\'>CARTO</a>'
    },
    {
        'provider': 'OpenStreetMap.Mapnik',
        'display_name': 'Street Map',
        'tile_url': 'https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png',
        'attribution': '&copy; <a href=\'https://www.openstreetmap.org/copyright\'>OpenStreetMap</a> contributors'
    },
    {
        'provider': 'Esri.WorldImagery',
        'display_name': 'Satellite Imagery',
        'tile_url': 'https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}',
        'attribution': 'Tiles &copy; Esri'
    }
]


def list_basemaps() -> List[str]:
    """Return the provider names of all known basemaps."""
    return [basemap['provider'] for basemap in BASEMAPS]


def get_basemap_config(provider: str) -> Dict:
    """
    Look up a basemap by provider name (case-insensitive).

    Returns:
        Dictionary with provider, display_name, tile_url and attribution

    Raises:
        ValueError: If the provider is not a known basemap
    """
    for basemap in BASEMAPS:
        if basemap['provider'].lower() == provider.lower():
            return dict(basemap)
    raise ValueError(
        f"Unknown basemap provider '{provider}' (available: {', '.join(list_basemaps())})"
    )


def get_contextily_source(provider: str):
    """
    Resolve a provider name to the contextily/xyzservices tile provider.

    Raises:
        ValueError: If the provider is not a known basemap
    """
    basemap = get_basemap_config(provider)
    return cx.providers.query_name(basemap['provider'])


def create_tile_layer(provider: str) -> folium.TileLayer:
    """
    Build a folium tile layer for a provider name.

    Raises:
        ValueError: If the provider is not a known basemap
    """
    basemap = get_basemap_config(provider)
    logger.debug(f"Using basemap {basemap['display_name']} ({basemap['provider']})")
    return folium.TileLayer(
        tiles=basemap['tile_url'],
        attr=basemap['attribution'],
        name=basemap['display_name'],
        control=True
    )
