import re
import asyncio
import logging
import requests
import setproctitle
from typing import Any, Mapping, NamedTuple, Optional
from urllib.parse import urlsplit

from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig

from poolcmd.local.config import effective_settings as config
from poolcmd.local.instance import InvalidPoolUrl
from poolcmd.local.pool import InstancePool
from poolcmd.web.server import create_app

log = logging.getLogger(__name__)

_POOL_ID = re.compile(r"[0-9]+")


class PoolUrl(NamedTuple):
    """The pieces of a pool URL the front door needs."""

    port: int
    pool_id: int


def parse_pool_url(url: str) -> PoolUrl:
    """
    Parses `scheme://host[:port]/<poolId>`.

    :param url: The pool URL.
    :return PoolUrl: The explicit port (80 when absent or not numeric) and the pool id.
    :raises InvalidPoolUrl: If the first path segment is not a base-10 integer.
    """
    parts = urlsplit(url)
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is None:
        port = config.DEFAULT_FRONT_DOOR_PORT

    segment = parts.path[1:].split("/", 1)[0]
    if not _POOL_ID.fullmatch(segment):
        raise InvalidPoolUrl(url)
    return PoolUrl(port=port, pool_id=int(segment))


class PoolCommand:
    """
    Client and server side of one pool URL.

    `start()` runs the front door on the URL's port, `restart()` asks a running
    front door to restart the URL's pool instance.
    """

    def __init__(self, url: str, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self.url = url.rstrip("/")
        self.pool_url = parse_pool_url(self.url)
        self.parameters = parameters

    @property
    def port(self) -> int:
        return self.pool_url.port

    @property
    def pool_id(self) -> int:
        return self.pool_url.pool_id

    def restart(self) -> None:
        """
        Sends `GET <url>/restart`. The response is not inspected; only
        transport errors (requests.RequestException) reach the caller.
        """
        restart_url = f"{self.url}/restart"
        log.info(f"Requesting restart via {restart_url}")
        requests.get(restart_url, timeout=config.RESTART_REQUEST_TIMEOUT)

    def build_config(self) -> HypercornConfig:
        hypercorn_config = HypercornConfig()
        hypercorn_config.bind = [f"{config.FRONT_DOOR_HOST}:{self.port}"]
        hypercorn_config.graceful_timeout = config.GRACEFUL_SHUTDOWN_TIMEOUT
        return hypercorn_config

    def start(self) -> None:
        """Serves the front door until interrupted. Blocks the calling thread."""
        setproctitle.setproctitle(f"{config.FRONT_DOOR_PROCESS_TITLE} :{self.port}")
        pool = InstancePool(self.parameters)
        app = create_app(pool)
        log.info(f"Front door starting on http://{config.FRONT_DOOR_HOST}:{self.port} (pool id {self.pool_id})")
        asyncio.run(serve(app, self.build_config()))


def create_command(url: str, parameters: Optional[Mapping[str, Any]] = None) -> PoolCommand:
    """Validates `url` and returns the PoolCommand bound to it."""
    return PoolCommand(url, parameters)
