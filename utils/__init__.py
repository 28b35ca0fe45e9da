"""
Utility modules for the Spatial Pipeline.

Modules:
    logger: Logging configuration and setup
    basemap_helpers: Basemap lookup for static and interactive maps
    popup_formatters: Popup value formatting utilities
"""

__version__ = '1.0.0'
