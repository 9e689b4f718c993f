"""
Storage Layer.

This package handles reading and writing the files the player depends on:
the INI configuration and JSON track catalogs.
"""

from .catalog_loader import load_catalog, parse_catalog
from .config_manager import ConfigManager

__all__ = ["ConfigManager", "load_catalog", "parse_catalog"]
