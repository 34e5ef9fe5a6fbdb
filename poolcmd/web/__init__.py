"""
Web package for poolcmd.

This package contains the pool front door: the Starlette application that
routes start/stop/restart requests to pool instances, and the client that
parses pool URLs and sends restart requests.
"""

from .pool import PoolCommand, PoolUrl, create_command, parse_pool_url
from .server import create_app

__all__ = ["PoolCommand", "PoolUrl", "create_command", "parse_pool_url", "create_app"]
