# =============================================================================
# Unit Tests: Static and interactive rendering
# =============================================================================

import folium
import pandas as pd
import pytest

from core.aggregation import count_within
from core.errors import CRSUnsetError, StyleAttributeNotFoundError
from core.map_builder import render_interactive, render_legend_html
from core.static_renderer import RenderedImage, render_static
from core.styling import StyleConfig
from geometry_input.load_input import load_layer
from utils.basemap_helpers import create_tile_layer, get_basemap_config, list_basemaps


@pytest.fixture
def counted(dams, counties):
    """Counties with a dam_count column."""
    return count_within(dams, counties, "county", count_column="dam_count")


# =============================================================================
# render_static
# =============================================================================

def test_render_static_returns_image(counted):
    """Test rendering without a basemap produces a figure."""
    image = render_static(counted, StyleConfig(fill_attribute="dam_count", basemap_provider=None))
    try:
        assert isinstance(image, RenderedImage)
        assert image.axes.figure is image.figure
        assert len(image.axes.collections) > 0
    finally:
        image.close()


def test_render_static_saves_png(counted, tmp_path):
    """Test saving a static map to disk."""
    image = render_static(counted, StyleConfig(basemap_provider=None, title="Dams"))
    try:
        path = image.save(tmp_path / "maps" / "dams.png", dpi=50)
    finally:
        image.close()

    assert path.exists()
    assert path.stat().st_size > 0


def test_render_static_applies_view_bounds(counted):
    """Test that view bounds set the axes extent."""
    image = render_static(counted, StyleConfig(basemap_provider=None, view_bounds=(0, 0, 15, 10)))
    try:
        assert image.axes.get_xlim() == pytest.approx((0, 15))
        assert image.axes.get_ylim() == pytest.approx((0, 10))
    finally:
        image.close()


def test_render_static_unknown_attribute(counted):
    """Test that an unknown fill attribute raises StyleAttributeNotFoundError."""
    with pytest.raises(StyleAttributeNotFoundError):
        render_static(counted, StyleConfig(fill_attribute="population", basemap_provider=None))


def test_render_static_basemap_requires_crs(animals_unset):
    """Test that a basemap cannot be placed under data without CRS."""
    with pytest.raises(CRSUnsetError):
        render_static(animals_unset, StyleConfig())


def test_render_static_points_without_crs(animals_unset):
    """Test that data without CRS still renders without a basemap."""
    image = render_static(animals_unset, StyleConfig(fill_attribute="name", basemap_provider=None))
    image.close()


def test_render_static_empty_dataset(counties):
    """Test that an empty dataset renders an empty map."""
    empty = counties.with_frame(counties.to_frame().iloc[0:0])

    image = render_static(empty, StyleConfig(basemap_provider=None))
    image.close()


# =============================================================================
# render_interactive
# =============================================================================

def test_render_interactive_builds_map(counted):
    """Test that the interactive map carries the features, legend and popups."""
    web_map = render_interactive(counted, StyleConfig(fill_attribute="dam_count", title="Dams"))

    assert isinstance(web_map, folium.Map)
    html = web_map.get_root().render()
    assert "Alpha" in html
    assert "spatial-pipeline-legend" in html
    assert "popup_html" in html
    assert "basemaps.cartocdn.com" in html


def test_render_interactive_does_not_change_input(counted):
    """Test that display reprojection leaves the dataset in its own CRS."""
    render_interactive(counted, StyleConfig(fill_attribute="dam_count"))

    assert counted.crs_id == "EPSG:3310"


def test_render_interactive_points(animals):
    """Test that point layers render as circle markers."""
    web_map = render_interactive(animals, StyleConfig(fill_attribute="name", basemap_provider=None))

    html = web_map.get_root().render()
    assert "tiger" in html
    assert "CircleMarker" in html


def test_render_interactive_requires_crs(animals_unset):
    """Test that data without CRS cannot be placed on a web map."""
    with pytest.raises(CRSUnsetError):
        render_interactive(animals_unset, StyleConfig(basemap_provider=None))


def test_render_interactive_unknown_attribute(counted):
    """Test that an unknown fill attribute raises StyleAttributeNotFoundError."""
    with pytest.raises(StyleAttributeNotFoundError):
        render_interactive(counted, StyleConfig(fill_attribute="population"))


def test_render_interactive_unknown_basemap(counted):
    """Test that an unknown basemap provider is a ValueError."""
    with pytest.raises(ValueError):
        render_interactive(counted, StyleConfig(basemap_provider="Nowhere.Tiles"))


def test_render_interactive_empty_dataset(counties):
    """Test that an empty dataset yields a map without a data layer."""
    empty = counties.with_frame(counties.to_frame().iloc[0:0])

    web_map = render_interactive(empty, StyleConfig(basemap_provider=None))

    assert isinstance(web_map, folium.Map)


def test_render_interactive_datetime_columns(tmp_path, dams):
    """Test that a layer with date attributes read from a GeoPackage renders."""
    frame = dams.to_frame()
    frame["inspected"] = pd.to_datetime(
        ["2023-05-01", "2021-11-15", None, "2019-02-28", "2024-07-04"]
    )
    gpkg = tmp_path / "inspections.gpkg"
    frame.to_file(gpkg, layer="dams", driver="GPKG")
    loaded = load_layer(gpkg, "dams")

    web_map = render_interactive(loaded, StyleConfig(fill_attribute="name", basemap_provider=None))

    html = web_map.get_root().render()
    assert "2023-05-01T00:00:00" in html
    assert loaded.frame["inspected"].dtype.kind == "M"


def test_render_interactive_timezone_aware_column(animals):
    """Test that timezone-aware timestamps are written as ISO strings."""
    frame = animals.to_frame()
    frame["seen"] = pd.to_datetime(["2024-01-02 08:30", None, "2024-01-03 17:00"]).tz_localize("UTC")

    web_map = render_interactive(animals.with_frame(frame), StyleConfig(basemap_provider=None))

    html = web_map.get_root().render()
    assert "2024-01-02T08:30:00+00:00" in html


def test_render_legend_html_escapes_labels():
    """Test that legend labels are HTML-escaped."""
    html = render_legend_html("Dams", {"<b>bold</b>": "#ffffff"})

    assert "&lt;b&gt;bold&lt;/b&gt;" in html
    assert "#ffffff" in html


# =============================================================================
# Basemaps
# =============================================================================

def test_basemap_lookup_is_case_insensitive():
    """Test provider lookup ignores case."""
    assert get_basemap_config("cartodb.positron")["provider"] == "CartoDB.Positron"
    assert "OpenStreetMap.Mapnik" in list_basemaps()


def test_create_tile_layer():
    """Test building a folium tile layer for a provider."""
    layer = create_tile_layer("OpenStreetMap.Mapnik")

    assert isinstance(layer, folium.TileLayer)
