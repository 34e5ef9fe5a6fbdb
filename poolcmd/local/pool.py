import socket
import logging
import threading
from typing import Any, Dict, Mapping, Optional

from poolcmd.local.instance import Instance, InstanceConfig

log = logging.getLogger(__name__)


def find_free_port(host: str = "127.0.0.1") -> int:
    """Asks the OS for a currently unused TCP port on `host`."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


class InstancePool:
    """
    Instances keyed by pool id, all built from the same parameters.

    Instances are created on first use. When the parameters name a port, every
    instance starts on it, so only one of them can run at a time; otherwise
    each pool id is given a free port on its first start and keeps it across
    restarts. Operations on one pool id are serialized, operations on
    different pool ids are independent.
    """

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None, ready_timeout: Optional[float] = None) -> None:
        self.config = InstanceConfig.from_parameters(parameters)
        self.ready_timeout = ready_timeout
        self.instances: Dict[int, Instance] = {}
        self.ports: Dict[int, int] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._pool_lock = threading.Lock()

    def _lock_for(self, pool_id: int) -> threading.Lock:
        with self._pool_lock:
            return self._locks.setdefault(pool_id, threading.Lock())

    def get(self, pool_id: int) -> Instance:
        """Returns the instance for `pool_id`, creating it if needed."""
        with self._pool_lock:
            instance = self.instances.get(pool_id)
            if instance is None:
                instance = Instance(self.config, ready_timeout=self.ready_timeout)
                self.instances[pool_id] = instance
                log.debug(f"Created instance for pool id {pool_id}.")
            return instance

    def port_for(self, pool_id: int) -> int:
        """Returns the port the instance of `pool_id` is started on."""
        with self._pool_lock:
            if pool_id not in self.ports:
                if self.config.port_argument_name in self.config.extra_arguments:
                    port = self.config.port
                    if port in self.ports.values():
                        log.warning(f"Pool id {pool_id} shares the configured port {port} with another pool id.")
                    self.ports[pool_id] = port
                else:
                    self.ports[pool_id] = find_free_port()
            return self.ports[pool_id]

    def start(self, pool_id: int) -> Instance:
        with self._lock_for(pool_id):
            instance = self.get(pool_id)
            instance.start(self.port_for(pool_id))
            return instance

    def stop(self, pool_id: int) -> Instance:
        with self._lock_for(pool_id):
            instance = self.get(pool_id)
            instance.stop()
            return instance

    def restart(self, pool_id: int) -> Instance:
        with self._lock_for(pool_id):
            log.info(f"Restarting instance for pool id {pool_id}...")
            instance = self.get(pool_id)
            instance.stop()
            instance.start(self.port_for(pool_id))
            return instance

    def stop_all(self) -> None:
        """Stops every instance created so far."""
        with self._pool_lock:
            pool_ids = list(self.instances)
        if pool_ids:
            log.info(f"Stopping {len(pool_ids)} pool instance(s)...")
        for pool_id in pool_ids:
            self.stop(pool_id)
