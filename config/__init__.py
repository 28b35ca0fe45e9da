"""
Configuration package for the Spatial Pipeline.

This package contains configuration loading and validation.

Modules:
    config_loader: Load and validate pipeline configuration from JSON
"""

__version__ = '1.0.0'
