"""
poolcmd: supervise a command as a pool instance.

Starts a process with templated arguments, waits for its ready message, runs
lifecycle hooks, and exposes a pool front door whose restart endpoint is bound
to a pool id in the URL.
"""

from .local.instance import Instance, InstanceConfig, InstanceState
from .web.pool import PoolCommand, PoolUrl, create_command, parse_pool_url

__version__ = "0.1.0"

__all__ = [
    "Instance", "InstanceConfig", "InstanceState",
    "PoolCommand", "PoolUrl", "create_command", "parse_pool_url",
]
