"""
Map building module for the Spatial Pipeline.

This module creates interactive Leaflet maps with Folium: a basemap, the
dataset styled by attribute, click popups with every attribute, a hover
tooltip on the fill attribute and a legend rendered from a Jinja2 template.

Functions:
    render_interactive: Generate an interactive Leaflet map for a dataset
"""

from pathlib import Path
from typing import Optional

import folium
import pandas as pd
from folium import Element
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pyproj import CRS, Transformer

from core.dataset import SpatialDataset
from core.styling import StyleConfig, build_color_lookup, validate_style
from geometry_input.load_input import detect_geometry_type
from geometry_input.projection import WGS84, reproject
from utils.basemap_helpers import create_tile_layer
from utils.popup_formatters import build_popup_html
from utils.logger import get_logger, log_section

logger = get_logger(__name__)

# Template directory path
TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

DEFAULT_ZOOM = 10
POINT_RADIUS = 6
POPUP_FIELD = 'popup_html'


def _display_bounds(dataset: SpatialDataset, style: StyleConfig, display: SpatialDataset):
    """Bounds to fit the map to, as (minx, miny, maxx, maxy) in EPSG:4326."""
    if style.view_bounds is not None:
        if dataset.crs == CRS.from_user_input(WGS84):
            return style.view_bounds
        transformer = Transformer.from_crs(dataset.crs, WGS84, always_xy=True)
        return transformer.transform_bounds(*style.view_bounds)
    if display.is_empty:
        return (-180.0, -85.0, 180.0, 85.0)
    return display.bounds


def _json_ready_frame(frame):
    """Copy of frame with datetime columns as ISO 8601 strings (None for NaT)."""
    frame = frame.copy()
    for column in frame.select_dtypes(include=['datetime', 'datetimetz']).columns:
        frame[column] = frame[column].map(
            lambda value: None if pd.isna(value) else value.isoformat()
        ).astype(object)
    return frame


def render_legend_html(title: str, entries: dict) -> str:
    """Render the legend control HTML from the legend.html template."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(['html'])
    )
    template = env.get_template('legend.html')
    return template.render(title=title, entries=entries)


def render_interactive(dataset: SpatialDataset,
                       style: StyleConfig,
                       zoom_start: Optional[int] = None) -> folium.Map:
    """
    Create an interactive Leaflet map of a dataset.

    The dataset is reprojected to EPSG:4326 for display only; the caller's
    dataset is not changed.

    Parameters:
    -----------
    dataset : SpatialDataset
        Dataset to display
    style : StyleConfig
        Styling parameters
    zoom_start : Optional[int]
        Initial zoom before the map is fitted to the view bounds

    Returns:
    --------
    folium.Map
        Folium map object ready to be saved or displayed

    Raises:
    -------
    StyleAttributeNotFoundError
        If style.fill_attribute is not a dataset column
    CRSUnsetError
        If the dataset has no CRS
    ValueError
        If the basemap provider is unknown

    Example:
        >>> web_map = render_interactive(counties, StyleConfig(fill_attribute='count'))
        >>> web_map.save('counties.html')
    """
    log_section(logger, f"Creating Interactive Web Map: {dataset.name}")

    validate_style(dataset, style)
    dataset.require_crs('render_interactive')

    display = reproject(dataset, WGS84)
    color_for, legend_entries = build_color_lookup(display, style)

    minx, miny, maxx, maxy = _display_bounds(dataset, style, display)
    m = folium.Map(
        location=[(miny + maxy) / 2, (minx + maxx) / 2],
        zoom_start=zoom_start or DEFAULT_ZOOM,
        tiles=None
    )

    if style.basemap_provider:
        create_tile_layer(style.basemap_provider).add_to(m)

    if display.is_empty:
        logger.info(f"  - Skipping {dataset.name} (0 features)")
    else:
        logger.info(f"  - Adding {dataset.name} ({len(display)} features)...")

        fill_attribute = style.fill_attribute

        # Use default parameters to capture values
        def style_function(feature, attr=fill_attribute, cfg=style):
            value = feature['properties'].get(attr) if attr else None
            return {
                'fillColor': color_for(value),
                'fillOpacity': cfg.opacity,
                'color': cfg.stroke_color,
                'weight': cfg.stroke_width,
                'opacity': 1.0
            }

        def highlight_function(feature, cfg=style):
            return {
                'weight': cfg.stroke_width + 2,
                'fillOpacity': min(cfg.opacity + 0.2, 1.0)
            }

        geojson_kwargs = {}
        if detect_geometry_type(display.frame) in ('point', 'mixed'):
            geojson_kwargs['marker'] = folium.CircleMarker(radius=POINT_RADIUS)

        geojson_layer = folium.GeoJson(
            _json_ready_frame(display.frame),
            name=dataset.name,
            style_function=style_function,
            highlight_function=highlight_function,
            **geojson_kwargs
        )

        # Popup HTML is stored per feature so Leaflet shows it on click
        for feature in geojson_layer.data['features']:
            props = feature['properties']
            props[POPUP_FIELD] = build_popup_html(dataset.name, dict(props))

        geojson_layer.add_child(
            folium.GeoJsonPopup(fields=[POPUP_FIELD], labels=False, style="max-width: 400px;")
        )
        if fill_attribute:
            geojson_layer.add_child(folium.GeoJsonTooltip(fields=[fill_attribute]))

        geojson_layer.add_to(m)
        logger.info(f"    ✓ Added {len(display)} features as GeoJSON layer")

    if style.legend and legend_entries:
        legend_title = style.fill_attribute or dataset.name
        m.get_root().html.add_child(Element(render_legend_html(legend_title, legend_entries)))

    if style.basemap_provider:
        folium.LayerControl(collapsed=True).add_to(m)

    m.fit_bounds([[miny, minx], [maxy, maxx]])

    if style.title:
        m.get_root().title = style.title

    logger.info("  ✓ Map created successfully\n")

    return m
