import pytest

from poolcmd.local.instance import HookFailure, HookMode, run_hooks
from poolcmd.local.instance.hooks import split_command


def test_split_command_substitutes_port_before_splitting():
    assert split_command("curl  http://localhost:{PORT}/init", 4000) == ["curl", "http://localhost:4000/init"]


def test_hooks_run_in_order_with_port_substituted(hook, hook_record):
    run_hooks([f"{hook} first {{PORT}}", f"{hook} second http://localhost:{{PORT}}/init"], HookMode.FAIL_FAST, 4000)

    assert hook_record.read_text().splitlines() == ["first 4000", "second http://localhost:4000/init"]


def test_fail_fast_stops_at_first_failure(hook, hook_record):
    with pytest.raises(HookFailure) as exc_info:
        run_hooks([f"{hook} one", f"{hook} two --fail", f"{hook} three"], HookMode.FAIL_FAST, 4000)

    assert exc_info.value.returncode == 1
    assert "two --fail" in exc_info.value.command
    assert hook_record.read_text().splitlines() == ["one", "two --fail"]


def test_fail_fast_reports_missing_binary():
    with pytest.raises(HookFailure) as exc_info:
        run_hooks(["poolcmd-no-such-binary --flag"], HookMode.FAIL_FAST, 4000)

    assert exc_info.value.returncode is None


def test_best_effort_runs_every_hook_and_never_raises(hook, hook_record):
    run_hooks(
        [f"{hook} one --fail", "poolcmd-no-such-binary", f"{hook} three"],
        HookMode.BEST_EFFORT,
        4000,
    )

    assert hook_record.read_text().splitlines() == ["one --fail", "three"]


def test_blank_commands_are_skipped(hook, hook_record):
    run_hooks(["", "   ", f"{hook} only"], HookMode.FAIL_FAST, 4000)

    assert hook_record.read_text().splitlines() == ["only"]


def test_command_log_still_runs_hooks(hook, hook_record):
    run_hooks([f"{hook} logged"], HookMode.FAIL_FAST, 4000, command_log=True)

    assert hook_record.read_text().splitlines() == ["logged"]
