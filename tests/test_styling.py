# =============================================================================
# Unit Tests: Style configuration and colour lookup
# =============================================================================

import matplotlib
import pytest
from matplotlib.colors import to_hex

from core.aggregation import count_within
from core.errors import StyleAttributeNotFoundError, UnknownColumnError
from core.styling import MISSING_COLOR, StyleConfig, build_color_lookup, palette_colors, validate_style


# =============================================================================
# StyleConfig
# =============================================================================

def test_style_defaults():
    """Test the default style draws a single colour over a light basemap."""
    style = StyleConfig()

    assert style.fill_attribute is None
    assert style.color_palette == "viridis"
    assert style.basemap_provider == "CartoDB.Positron"
    assert style.view_bounds is None


@pytest.mark.parametrize("kwargs", [
    {"opacity": 1.5},
    {"opacity": -0.1},
    {"stroke_width": -1},
    {"color_palette": "not-a-palette"},
    {"view_bounds": (10, 0, 0, 10)},
    {"view_bounds": (0, 0, 10)},
])
def test_style_rejects_invalid_values(kwargs):
    """Test that out-of-range style values are rejected at construction."""
    with pytest.raises(ValueError):
        StyleConfig(**kwargs)


def test_style_from_dict_ignores_unrelated_keys():
    """Test building a style from a configuration section."""
    style = StyleConfig.from_dict({
        "fill_attribute": "dam_count",
        "view_bounds": [0, 0, 30, 10],
        "comment": "dams per county",
    })

    assert style.fill_attribute == "dam_count"
    assert style.view_bounds == (0.0, 0.0, 30.0, 10.0)


# =============================================================================
# validate_style
# =============================================================================

def test_validate_style_unknown_attribute(counties):
    """Test that a missing fill attribute raises StyleAttributeNotFoundError."""
    with pytest.raises(StyleAttributeNotFoundError) as exc_info:
        validate_style(counties, StyleConfig(fill_attribute="population"))

    assert isinstance(exc_info.value, UnknownColumnError)
    assert exc_info.value.missing == ["population"]


def test_validate_style_accepts_known_attribute(counties):
    """Test that an existing fill attribute passes."""
    validate_style(counties, StyleConfig(fill_attribute="county"))


# =============================================================================
# build_color_lookup
# =============================================================================

def test_categorical_colors_are_distinct(counties):
    """Test that each category gets its own palette colour."""
    color_for, legend = build_color_lookup(counties, StyleConfig(fill_attribute="county"))

    assert list(legend) == ["Alpha", "Bravo", "Charlie"]
    assert len(set(legend.values())) == 3
    assert color_for("Bravo") == legend["Bravo"]
    assert color_for(None) == MISSING_COLOR


def test_numeric_colors_span_palette(dams, counties):
    """Test that numeric values are normalized between min and max."""
    counted = count_within(dams, counties, "county", count_column="dam_count")
    color_for, legend = build_color_lookup(
        counted, StyleConfig(fill_attribute="dam_count", color_palette="YlGnBu")
    )

    cmap = matplotlib.colormaps["YlGnBu"]
    assert color_for(0) == to_hex(cmap(0.0))
    assert color_for(3) == to_hex(cmap(1.0))
    assert color_for(float("nan")) == MISSING_COLOR
    assert len(legend) == 5


def test_forced_categorical_numeric(dams, counties):
    """Test that categorical=True treats numbers as categories."""
    counted = count_within(dams, counties, "county", count_column="dam_count")
    _, legend = build_color_lookup(
        counted, StyleConfig(fill_attribute="dam_count", categorical=True)
    )

    assert list(legend) == ["0", "2", "3"]


def test_single_color_without_fill_attribute(counties):
    """Test that no fill attribute gives one colour for every feature."""
    color_for, legend = build_color_lookup(counties, StyleConfig())

    assert legend == {"counties": color_for("anything")}


def test_palette_colors():
    """Test palette sampling endpoints."""
    colors = palette_colors("viridis", 3)

    assert len(colors) == 3
    assert colors[0] == to_hex(matplotlib.colormaps["viridis"](0.0))
    assert palette_colors("viridis", 0) == []
