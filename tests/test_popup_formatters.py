# =============================================================================
# Unit Tests: Popup HTML formatting
# =============================================================================

from utils.popup_formatters import build_popup_html, format_popup_value


def test_format_plain_value():
    """Test that plain strings pass through."""
    assert format_popup_value("name", "Isabella Dam") == "Isabella Dam"


def test_format_missing_values():
    """Test that None and NaN show as 'None'."""
    assert format_popup_value("height", None) == "None"
    assert format_popup_value("height", float("nan")) == "None"


def test_format_escapes_html():
    """Test that markup in attribute values is escaped."""
    assert format_popup_value("name", "<script>") == "&lt;script&gt;"


def test_format_url_becomes_link():
    """Test that URL values render as links."""
    html = format_popup_value("source_url", "https://example.com/dams")

    assert html.startswith('<a href="https://example.com/dams"')
    assert 'target="_blank"' in html


def test_build_popup_html_uses_name_as_title():
    """Test that the first name-like attribute is the popup title."""
    html = build_popup_html("dams", {"height_ft": 770.0, "name": "Oroville"})

    assert "<i>dams</i>" in html
    assert "font-weight: bold; margin: 5px 0;'>Oroville</div>" in html
    assert "<b>height_ft:</b> 770<br>" in html


def test_build_popup_html_explicit_title_field():
    """Test choosing the title attribute explicitly."""
    html = build_popup_html("counties", {"county": "Alpha", "geoid": "06001"}, title_field="geoid")

    assert "margin: 5px 0;'>06001</div>" in html
