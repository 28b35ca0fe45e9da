# =============================================================================
# Unit Tests: Schema projection
# =============================================================================

import pytest

from core.errors import UnknownColumnError
from core.schema import filter_rows, project


def test_project_keeps_and_renames(dams):
    """Test that only kept columns survive, renamed and in the requested order."""
    result = project(dams, ["height_ft", "name"], {"name": "dam_name"})

    assert result.columns == ("height_ft", "dam_name")
    assert result.column_values("dam_name")[0] == "Oroville"
    assert len(result) == len(dams)


def test_project_keeps_geometry_and_crs(counties):
    """Test that projecting attributes leaves geometries and CRS untouched."""
    result = project(counties, ["county"])

    assert result.crs_id == counties.crs_id
    assert result.frame.geometry.geom_equals(counties.frame.geometry).all()


def test_project_is_idempotent(counties):
    """Test that projecting twice with the same columns changes nothing more."""
    once = project(counties, ["geoid"])
    twice = project(once, ["geoid"])

    assert twice.columns == once.columns
    assert twice.frame.equals(once.frame)


def test_project_leaves_input_unchanged(dams):
    """Test that the source dataset keeps its schema."""
    project(dams, ["name"], {"name": "dam_name"})

    assert dams.columns == ("name", "height_ft")


def test_project_unknown_column_raises(counties):
    """Test that keeping an absent column raises UnknownColumnError."""
    with pytest.raises(UnknownColumnError) as exc_info:
        project(counties, ["county", "population"])

    assert exc_info.value.missing == ["population"]


def test_rename_of_dropped_column_raises(counties):
    """Test that renaming a column that is not kept raises UnknownColumnError."""
    with pytest.raises(UnknownColumnError):
        project(counties, ["county"], {"geoid": "fips"})


def test_rename_collision_raises(counties):
    """Test that renaming onto another kept column is rejected."""
    with pytest.raises(ValueError):
        project(counties, ["county", "geoid"], {"geoid": "county"})


def test_filter_rows(counties):
    """Test that filter_rows keeps only matching features."""
    result = filter_rows(counties, "county", ["Alpha", "Charlie"])

    assert result.column_values("county") == ["Alpha", "Charlie"]
    assert len(counties) == 3


def test_filter_rows_unknown_column(counties):
    """Test that filtering on an absent column raises UnknownColumnError."""
    with pytest.raises(UnknownColumnError):
        filter_rows(counties, "state", ["CA"])
