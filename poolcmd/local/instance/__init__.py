"""
The Instance package.
Manages the lifecycle of one supervised process.

This package contains the Instance controller and its helper modules, which
together handle argument templating, readiness detection, lifecycle hooks and
shutdown of the supervised process.
"""
from .controller import Instance, InstanceConfig, InstanceState, RuntimeState
from .errors import (
    AlreadyRunning,
    HookFailure,
    InstanceError,
    InvalidPoolUrl,
    ProcessExited,
    ReadyTimeout,
    SpawnFailure,
    StderrObserved,
)
from .hooks import HookMode, run_hooks
from .readiness import ReadinessDetector, strip_ansi
from .templater import substitute_port, templated_args, to_args

__all__ = [
    "Instance", "InstanceConfig", "InstanceState", "RuntimeState",
    "InstanceError", "InvalidPoolUrl", "SpawnFailure", "StderrObserved",
    "HookFailure", "AlreadyRunning", "ProcessExited", "ReadyTimeout",
    "HookMode", "run_hooks", "ReadinessDetector", "strip_ansi",
    "to_args", "substitute_port", "templated_args",
]
