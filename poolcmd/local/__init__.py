"""
Local package for poolcmd.

Everything that runs on this host: configuration, process spawning and the
supervised instance lifecycle.
"""

from .config import effective_settings

__all__ = ["effective_settings"]
