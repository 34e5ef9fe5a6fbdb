"""
Logging package for poolcmd.
This package provides the console logging setup shared by every entry point.
"""

from .setup import setup_logging, MainFormatter

__all__ = ["setup_logging", "MainFormatter"]
