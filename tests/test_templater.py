from poolcmd.local.instance import InstanceConfig, Instance
from poolcmd.local.instance.templater import substitute_port, templated_args, to_args, to_flag


def test_to_args_emits_flag_value_pairs_in_insertion_order():
    assert to_args({"port": 4000, "host": "localhost"}) == ["--port", "4000", "--host", "localhost"]


def test_to_args_booleans_become_bare_flags_or_disappear():
    assert to_args({"verbose": True, "quiet": False, "missing": None}) == ["--verbose"]


def test_to_args_joins_lists_with_commas_under_one_flag():
    assert to_args({"origins": ["a.com", "b.com"], "ids": (1, 2, 3)}) == [
        "--origins", "a.com,b.com",
        "--ids", "1,2,3",
    ]


def test_to_args_expands_nested_mappings_into_dotted_flags():
    params = {"log": {"level": "debug", "json": True, "skip": None, "tags": ["x", "y"]}}

    assert to_args(params) == ["--log.level", "debug", "--log.json", "--log.tags", "x,y"]


def test_to_args_empty_string_is_a_bare_flag():
    assert to_args({"dev": ""}) == ["--dev"]


def test_to_flag_kebab_cases_camel_case_keys_only():
    assert to_flag("maxConnections") == "--max-connections"
    assert to_flag("block_time") == "--block_time"
    assert to_flag("chain.chainId") == "--chain.chain-id"


def test_substitute_port_replaces_every_placeholder():
    assert substitute_port("db-{PORT}/{PORT}", 4000) == "db-4000/4000"
    assert substitute_port("{port} {HOST}", 4000) == "{port} {HOST}"


def test_templated_args_leaves_no_placeholder_behind():
    params = {"dataDir": "/tmp/node-{PORT}", "peers": ["a:{PORT}", "b:{PORT}"], "port": 4100}

    args = templated_args(params, 4100)

    assert args == ["--data-dir", "/tmp/node-4100", "--peers", "a:4100,b:4100", "--port", "4100"]
    assert not any("{PORT}" in token for token in args)


def test_build_command_appends_port_argument_to_command_tokens():
    instance = Instance(InstanceConfig.from_parameters({
        "command": "myserver",
        "readyMessage": "Listening on",
        "portArgumentName": "port",
        "port": 4000,
    }))

    assert instance.build_command(4000) == ["myserver", "--port", "4000"]


def test_build_command_keeps_literal_prefix_and_uses_custom_port_name():
    instance = Instance(InstanceConfig.from_parameters({
        "command": "anvil --silent",
        "portArgumentName": "rpcPort",
        "stateFile": "state-{PORT}.json",
    }))

    assert instance.build_command(8545) == [
        "anvil", "--silent", "--state-file", "state-8545.json", "--rpc-port", "8545",
    ]


def test_build_command_override_port_replaces_configured_one():
    instance = Instance(InstanceConfig.from_parameters({"command": "myserver", "port": 4000}))

    assert instance.build_command(5000) == ["myserver", "--port", "5000"]
