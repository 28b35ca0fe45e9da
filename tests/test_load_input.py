# =============================================================================
# Unit Tests: Dataset loading
# =============================================================================

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from core.errors import SchemaMismatchError, SourceNotFoundError
from geometry_input.load_input import (
    check_geometry_type,
    detect_geometry_type,
    extract_geometry_metadata,
    geometry_family,
    list_layers,
    load_layer,
)


# =============================================================================
# Directory sources
# =============================================================================

def test_load_shapefile_layer(layer_dir):
    """Test that a shapefile layer loads with its attributes and declared CRS."""
    dataset = load_layer(layer_dir, "counties")

    assert dataset.name == "counties"
    assert len(dataset) == 3
    assert dataset.has_crs
    assert set(dataset.columns) == {"NAME", "GEOID"}
    assert sorted(dataset.column_values("NAME")) == ["Alpha", "Bravo", "Charlie"]


def test_load_layer_without_prj_has_unset_crs(layer_dir):
    """Test that a missing CRS file yields an unset CRS rather than a default."""
    dataset = load_layer(layer_dir, "animals")

    assert len(dataset) == 3
    assert dataset.crs is None


def test_load_from_layer_subdirectory(tmp_path, counties):
    """Test the <dir>/<layer>/<layer>.shp layout."""
    folder = tmp_path / "source" / "counties"
    folder.mkdir(parents=True)
    counties.to_frame().to_file(folder / "counties.shp")

    dataset = load_layer(tmp_path / "source", "counties")

    assert len(dataset) == 3


def test_missing_source_raises(tmp_path):
    """Test that a nonexistent source location raises SourceNotFoundError."""
    with pytest.raises(SourceNotFoundError):
        load_layer(tmp_path / "nowhere", "counties")


def test_missing_layer_raises(layer_dir):
    """Test that a layer absent from the source raises SourceNotFoundError."""
    with pytest.raises(SourceNotFoundError, match="rivers"):
        load_layer(layer_dir, "rivers")


def test_missing_attribute_file_raises(layer_dir):
    """Test that a shapefile without its .dbf raises SourceNotFoundError."""
    (layer_dir / "dams.dbf").unlink()

    with pytest.raises(SourceNotFoundError, match="Attribute file"):
        load_layer(layer_dir, "dams")


def test_source_not_found_is_file_not_found(tmp_path):
    """Test that callers catching FileNotFoundError also catch missing sources."""
    with pytest.raises(FileNotFoundError):
        load_layer(tmp_path / "nowhere", "counties")


def test_single_file_source_loads_matching_layer(layer_dir):
    """Test that a layer file given directly loads when its stem is the layer name."""
    dataset = load_layer(layer_dir / "dams.shp", "dams")

    assert dataset.name == "dams"
    assert len(dataset) == 5


def test_single_file_source_rejects_other_layer(layer_dir):
    """Test that a layer file cannot be loaded under another layer name."""
    with pytest.raises(SourceNotFoundError, match="counties"):
        load_layer(layer_dir / "dams.shp", "counties")


def test_single_file_source_requires_attribute_file(layer_dir):
    """Test that a shapefile given directly still needs its .dbf."""
    (layer_dir / "dams.dbf").unlink()

    with pytest.raises(SourceNotFoundError, match="Attribute file"):
        load_layer(layer_dir / "dams.shp", "dams")


def test_list_layers_directory(layer_dir):
    """Test that layers in a directory source are listed by name."""
    assert list_layers(layer_dir) == ["animals", "counties", "dams"]


# =============================================================================
# Geometry family checks
# =============================================================================

def test_expected_geometry_matches(layer_dir):
    """Test that a matching expected geometry family loads normally."""
    dataset = load_layer(layer_dir, "dams", expected_geometry="point")

    assert len(dataset) == 5


def test_expected_geometry_mismatch_raises(layer_dir):
    """Test that a polygon layer requested as points raises SchemaMismatchError."""
    with pytest.raises(SchemaMismatchError) as exc_info:
        load_layer(layer_dir, "counties", expected_geometry="point")

    assert exc_info.value.expected == "point"
    assert exc_info.value.found == "polygon"


def test_mixed_geometries_pass_through(tmp_path):
    """Test that a mixed layer loads unchanged when no family is required."""
    mixed = gpd.GeoDataFrame(
        {"kind": ["site", "area"]},
        geometry=[Point(0.5, 0.5), box(0, 0, 1, 1)],
        crs="EPSG:4326",
    )
    mixed.to_file(tmp_path / "mixed.geojson", driver="GeoJSON")

    dataset = load_layer(tmp_path, "mixed")

    assert len(dataset) == 2
    assert detect_geometry_type(dataset.frame) == "mixed"

    with pytest.raises(SchemaMismatchError):
        load_layer(tmp_path, "mixed", expected_geometry="polygon")


def test_check_geometry_type_rejects_unknown_family(dams):
    """Test that an unknown family name is a ValueError."""
    with pytest.raises(ValueError):
        check_geometry_type(dams, "raster")


def test_multi_geometries_share_family():
    """Test that Multi* types classify as their base family."""
    assert geometry_family("MultiPolygon") == "polygon"
    assert geometry_family("MultiLineString") == "line"
    assert geometry_family("MultiPoint") == "point"
    assert geometry_family("GeometryCollection") == "unknown"


# =============================================================================
# GeoPackage sources
# =============================================================================

def test_geopackage_layers(tmp_path, counties, dams):
    """Test listing and loading named layers from one GeoPackage."""
    gpkg = tmp_path / "california.gpkg"
    counties.to_frame().to_file(gpkg, layer="counties", driver="GPKG")
    dams.to_frame().to_file(gpkg, layer="dams", driver="GPKG")

    assert list_layers(gpkg) == ["counties", "dams"]

    dataset = load_layer(gpkg, "dams")
    assert dataset.name == "dams"
    assert len(dataset) == 5
    assert dataset.crs_id == "EPSG:3310"

    with pytest.raises(SourceNotFoundError):
        load_layer(gpkg, "rivers")


def test_extract_geometry_metadata(counties):
    """Test the metadata summary of a dataset."""
    metadata = extract_geometry_metadata(counties)

    assert metadata["name"] == "counties"
    assert metadata["crs"] == "EPSG:3310"
    assert metadata["feature_count"] == 3
    assert metadata["geometry_type"] == "polygon"
    assert metadata["bounds"] == [0.0, 0.0, 30.0, 10.0]
