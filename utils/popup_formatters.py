"""
Popup formatting utilities for interactive maps.

Formats feature attributes as the HTML shown when a feature is clicked.
URLs become clickable links, missing values show as 'None', and
everything else is HTML-escaped.

Functions:
    format_popup_value: Format a single attribute value
    build_popup_html: Format all attributes of one feature
"""

from html import escape
from typing import Any, Mapping, Optional


def format_popup_value(col: str, value: Any) -> str:
    """
    Format a popup value, converting URLs to clickable hyperlinks.

    Parameters:
    -----------
    col : str
        Column name (used to detect URL fields)
    value : Any
        Value to format

    Returns:
    --------
    str
        HTML fragment safe for popup display

    Examples:
        >>> format_popup_value('name', 'Isabella Dam')
        'Isabella Dam'

        >>> format_popup_value('height', None)
        'None'

        >>> format_popup_value('source_url', 'https://example.com')
        '<a href="https://example.com" target="_blank">https://example.com</a>'
    """
    # NaN is the only value not equal to itself
    if value is None or (isinstance(value, float) and value != value):
        return 'None'

    if isinstance(value, float):
        value_str = f"{value:,.4g}" if abs(value) < 1e6 else f"{value:,.0f}"
    else:
        value_str = str(value)

    is_url = 'url' in col.lower() or value_str.startswith(('http://', 'https://'))
    if is_url:
        display_text = value_str if len(value_str) <= 60 else f"{value_str[:57]}..."
        return f'<a href="{escape(value_str)}" target="_blank">{escape(display_text)}</a>'

    return escape(value_str)


def build_popup_html(layer_name: str,
                     properties: Mapping[str, Any],
                     title_field: Optional[str] = None) -> str:
    """
    Build the popup HTML for one feature.

    The title is taken from title_field, or from the first property whose name
    contains 'name'.
    """
    title = None
    if title_field and title_field in properties:
        title = properties[title_field]
    else:
        for key, value in properties.items():
            if 'name' in key.lower():
                title = value
                break

    popup_html = f"<div style='font-size: 10px;'><i>{escape(layer_name)}</i></div>"
    if title is not None:
        popup_html += (
            f"<div style='font-size: 14px; font-weight: bold; margin: 5px 0;'>"
            f"{format_popup_value('', title)}</div>"
        )
    popup_html += "<hr style='margin: 5px 0;'>"

    for key, value in properties.items():
        popup_html += f"<b>{escape(str(key))}:</b> {format_popup_value(key, value)}<br>"

    return popup_html
