from starlette.testclient import TestClient

from poolcmd.local.instance import AlreadyRunning, SpawnFailure
from poolcmd.web.server import create_app


class FakeInstance:
    def __init__(self):
        self.state = "idle"

    def status(self):
        return {"name": "myserver", "host": "localhost", "state": self.state, "port": 4000, "pid": None}


class FakePool:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.instance = FakeInstance()
        self.stopped_all = False

    def get(self, pool_id):
        return self.instance

    def _record(self, name, pool_id, state):
        self.calls.append((name, pool_id))
        if self.error is not None:
            raise self.error
        self.instance.state = state
        return self.instance

    def start(self, pool_id):
        return self._record("start", pool_id, "ready")

    def stop(self, pool_id):
        return self._record("stop", pool_id, "idle")

    def restart(self, pool_id):
        return self._record("restart", pool_id, "ready")

    def stop_all(self):
        self.stopped_all = True


def test_healthcheck():
    with TestClient(create_app(FakePool())) as client:
        response = client.get("/healthcheck")

    assert response.status_code == 200
    assert response.text == "ok"


def test_restart_route_dispatches_to_pool_id():
    pool = FakePool()
    with TestClient(create_app(pool)) as client:
        response = client.get("/42/restart")

    assert response.status_code == 200
    assert response.json()["poolId"] == 42
    assert response.json()["state"] == "ready"
    assert pool.calls == [("restart", 42)]


def test_start_and_stop_routes():
    pool = FakePool()
    with TestClient(create_app(pool)) as client:
        client.get("/1/start")
        response = client.get("/1/stop")

    assert response.json()["state"] == "idle"
    assert pool.calls == [("start", 1), ("stop", 1)]


def test_status_route():
    with TestClient(create_app(FakePool())) as client:
        response = client.get("/5")

    assert response.json() == {
        "name": "myserver", "host": "localhost", "state": "idle", "port": 4000, "pid": None, "poolId": 5,
    }


def test_non_integer_pool_id_is_not_routed():
    with TestClient(create_app(FakePool())) as client:
        response = client.get("/abc/restart")

    assert response.status_code == 404


def test_already_running_maps_to_conflict():
    pool = FakePool(error=AlreadyRunning("myserver", "ready"))
    with TestClient(create_app(pool)) as client:
        response = client.get("/1/start")

    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyRunning"


def test_other_instance_errors_map_to_server_error():
    pool = FakePool(error=SpawnFailure("myserver", "No such file or directory"))
    with TestClient(create_app(pool)) as client:
        response = client.get("/1/restart")

    assert response.status_code == 500
    assert response.json()["error"] == "SpawnFailure"


def test_shutdown_stops_every_instance():
    pool = FakePool()
    with TestClient(create_app(pool)):
        pass

    assert pool.stopped_all is True
