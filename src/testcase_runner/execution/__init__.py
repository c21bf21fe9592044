from .launch import LaunchPlan, LaunchStrategy, resolve_launch
from .registry import ProcessRegistry
from .timeout import TimeoutGuard
from .types import ExecutionRequest, RunResult

__all__ = [
    "ExecutionRequest",
    "LaunchPlan",
    "LaunchStrategy",
    "ProcessRegistry",
    "RunResult",
    "TimeoutGuard",
    "resolve_launch",
]
