"""
HTML templates for the Spatial Pipeline.

This package contains Jinja2 templates for interactive map UI elements.

Templates:
    legend.html: Fill colour legend for interactive maps
"""

__version__ = '1.0.0'
