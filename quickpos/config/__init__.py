# Configuration package
"""
Configuration package for QuickPos
Exports settings from settings.py for easy import
"""
from .settings import Settings, settings, validate_settings

__all__ = ["Settings", "settings", "validate_settings"]
