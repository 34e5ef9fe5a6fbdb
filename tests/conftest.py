import sys
import textwrap
from pathlib import Path

import pytest

# Ensure the project root is importable without installing the package
root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

from poolcmd.local.instance import Instance, InstanceConfig  # noqa: E402

FAKE_SERVER = textwrap.dedent(
    """
    import argparse
    import sys
    import time

    parser = argparse.ArgumentParser()
    parser.add_argument("--port")
    parser.add_argument("--warn", action="store_true")
    parser.add_argument("--color", action="store_true")
    parser.add_argument("--repeat", type=int, default=1)
    parser.add_argument("--delay", type=float, default=0.0)
    parser.add_argument("--exit-code", type=int)
    parser.add_argument("--exit-after", type=float)
    parser.add_argument("--flood", type=int, default=0)
    parser.add_argument("--flag-file")
    args, _ = parser.parse_known_args()

    if args.warn:
        sys.stderr.write("warning: deprecated option\\n")
        sys.stderr.flush()
        time.sleep(0.5)
    if args.exit_code is not None:
        sys.exit(args.exit_code)
    time.sleep(args.delay)

    for _ in range(args.repeat):
        message = "Listening on " + str(args.port)
        if args.color:
            message = "\\x1b[32m" + message + "\\x1b[0m"
        print(message, flush=True)
        time.sleep(0.05)

    if args.flood:
        sys.stdout.write("x" * args.flood + "\\n")
        sys.stdout.flush()
    if args.flag_file:
        open(args.flag_file, "w").close()

    time.sleep(args.exit_after if args.exit_after is not None else 60)
    """
)

HOOK = textwrap.dedent(
    """
    import sys

    record, *rest = sys.argv[1:]
    with open(record, "a") as f:
        f.write(" ".join(rest) + "\\n")
    sys.exit(1 if "--fail" in rest else 0)
    """
)

WAIT_FOR_FILE = textwrap.dedent(
    """
    import os
    import sys
    import time

    deadline = time.monotonic() + 10
    while not os.path.exists(sys.argv[1]):
        if time.monotonic() > deadline:
            sys.exit(1)
        time.sleep(0.05)
    """
)


@pytest.fixture
def fake_server(tmp_path) -> str:
    """Command string launching a fake server that prints 'Listening on <port>'."""
    script = tmp_path / "fake_server.py"
    script.write_text(FAKE_SERVER)
    return f"{sys.executable} {script}"


@pytest.fixture
def hook_record(tmp_path) -> Path:
    """File the hook script appends its arguments to, one line per run."""
    return tmp_path / "hooks.log"


@pytest.fixture
def hook(tmp_path, hook_record) -> str:
    """Command prefix for a hook that records its arguments; '--fail' makes it exit 1."""
    script = tmp_path / "hook.py"
    script.write_text(HOOK)
    return f"{sys.executable} {script} {hook_record}"


@pytest.fixture
def wait_for_file(tmp_path) -> str:
    """Command prefix for a hook that exits 0 once the given path exists, 1 after 10 s."""
    script = tmp_path / "wait_for_file.py"
    script.write_text(WAIT_FOR_FILE)
    return f"{sys.executable} {script}"


@pytest.fixture
def make_instance():
    """Builds instances from parameters and stops all of them at teardown."""
    created = []

    def factory(parameters, ready_timeout=10.0):
        instance = Instance(InstanceConfig.from_parameters(parameters), ready_timeout=ready_timeout)
        created.append(instance)
        return instance

    yield factory
    for instance in created:
        instance.stop()
