import logging

from poolcmd.local.instance import InstanceState
from poolcmd.local.pool import InstancePool, find_free_port


def test_find_free_port_returns_a_usable_port():
    assert 0 < find_free_port() < 65536


def test_instances_are_created_lazily_and_reused():
    pool = InstancePool({"command": "myserver"})

    assert pool.instances == {}
    first = pool.get(1)

    assert pool.get(1) is first
    assert pool.get(2) is not first


def test_explicit_port_is_used_for_every_pool_id(caplog):
    caplog.set_level(logging.WARNING, logger="poolcmd.local.pool")
    pool = InstancePool({"command": "myserver", "port": 4000})

    assert pool.port_for(1) == 4000
    assert not caplog.records
    assert pool.port_for(2) == 4000
    assert "shares the configured port 4000" in caplog.text


def test_free_port_is_kept_per_pool_id():
    pool = InstancePool({"command": "myserver"})

    port = pool.port_for(1)

    assert pool.port_for(1) == port


def test_restart_cycles_the_instance(fake_server):
    pool = InstancePool({"command": fake_server, "readyMessage": "Listening on"}, ready_timeout=10)
    try:
        instance = pool.start(3)
        first_pid = instance.pid
        assert instance.assigned_port == pool.port_for(3)

        restarted = pool.restart(3)

        assert restarted is instance
        assert instance.state is InstanceState.READY
        assert instance.pid != first_pid
        assert instance.assigned_port == pool.port_for(3)
    finally:
        pool.stop_all()

    assert instance.state is InstanceState.IDLE
