from .cleanup import delete_binary
from .config import RunnerConfig
from .errors import ConfigError, InvalidFileNameError, RunnerError
from .execution.types import ExecutionRequest, RunResult
from .judging import JudgedRun, TestCase, judge_run, run_single
from .languages import Language, language_for
from .notify import ConsoleNotifier, RecordingNotifier
from .runner import TestCaseRunner, kill_running, run_test_case

__all__ = [
    "ConfigError",
    "ConsoleNotifier",
    "ExecutionRequest",
    "InvalidFileNameError",
    "JudgedRun",
    "Language",
    "RecordingNotifier",
    "RunResult",
    "RunnerConfig",
    "RunnerError",
    "TestCase",
    "TestCaseRunner",
    "delete_binary",
    "judge_run",
    "kill_running",
    "language_for",
    "run_single",
    "run_test_case",
]
