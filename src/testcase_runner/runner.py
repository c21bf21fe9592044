from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import Callable

from .config import RunnerConfig
from .execution.io_router import IORouter, OriginResolver, origin_file_name, start_stream_reader
from .execution.launch import resolve_launch
from .execution.registry import ProcessRegistry
from .execution.timeout import TimeoutGuard
from .execution.types import ExecutionRequest, RunResult, RunState
from .languages import Language, normalize_for_platform
from .notify import ConsoleNotifier, Notifier

logger = logging.getLogger(__name__)

# Upper bound for draining pipes after exit; grandchildren may keep them open.
_DRAIN_TIMEOUT_SECONDS = 2.0


def _elapsed_ms(begin: float) -> int:
    """Return whole milliseconds elapsed since a monotonic timestamp.

    Example:
        ```python
        ms = _elapsed_ms(time.monotonic())
        ```
    """
    return int((time.monotonic() - begin) * 1000)


def _signal_name(returncode: int) -> str:
    """Map a negative POSIX return code to its signal name.

    Example:
        ```python
        name = _signal_name(-9)  # "SIGKILL"
        ```
    """
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"SIG{-returncode}"


class TestCaseRunner:
    """Run candidate artifacts against single test inputs.

    The runner owns the registry of live processes, so `kill_all()` cancels
    every run started through it.

    Example:
        ```python
        runner = TestCaseRunner(RunnerConfig(timeout_ms=2000))
        result = runner.run(ExecutionRequest(Language("python", "python3"), "/tmp/sol.py", "1 2\\n"))
        ```
    """

    __test__ = False

    def __init__(
        self,
        config: RunnerConfig | None = None,
        *,
        registry: ProcessRegistry | None = None,
        notifier: Notifier | None = None,
        origin_resolver: OriginResolver = origin_file_name,
        guard_factory: Callable[[int, Callable[[], None]], TimeoutGuard] = TimeoutGuard,
    ) -> None:
        """Initialize the runner with its collaborators.

        `guard_factory` builds the per-run deadline guard from the deadline
        in milliseconds and the expiry action.

        Example:
            ```python
            runner = TestCaseRunner(notifier=RecordingNotifier())
            ```
        """
        self.config = config or RunnerConfig()
        self.registry = registry or ProcessRegistry()
        self._notifier = notifier or ConsoleNotifier()
        self._origin_resolver = origin_resolver
        self._guard_factory = guard_factory

    def run(self, request: ExecutionRequest) -> RunResult:
        """Execute one request and return its finalized result.

        Spawn failures, timeouts and I/O failures all resolve to a
        `RunResult`; only invalid I/O file names raise.

        Example:
            ```python
            result = runner.run(ExecutionRequest(Language("cpp", "g++"), "/tmp/sol.bin", "3\\n4\\n"))
            ```
        """
        logger.info(
            "Running testcase %s %s (input file %r, output file %r)",
            request.language.name,
            request.artifact_path,
            request.input_file_name,
            request.output_file_name,
        )
        router = IORouter(request, notifier=self._notifier, origin_resolver=self._origin_resolver)
        plan = resolve_launch(
            request.language,
            request.artifact_path,
            online_judge=self.config.online_judge,
        )
        state = RunState()
        router.prepare_input_file()

        env = {**os.environ, **self.config.env_flags}
        begin = time.monotonic()
        try:
            process = subprocess.Popen(
                list(plan.argv),
                cwd=plan.cwd,
                env=env,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            return self._spawn_failed(request.language, state, exc, begin)

        self.registry.add(process)
        guard = self._guard_factory(self.config.timeout_ms, process.kill)
        guard.arm()
        readers = [
            start_stream_reader(process.stdout, state.append_stdout, "stdout"),
            start_stream_reader(process.stderr, state.append_stderr, "stderr"),
        ]
        writer = router.start_stdin_writer(process.stdin)

        backstop_expired = False
        try:
            returncode = process.wait(timeout=self.config.spawn_timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            logger.warning("Spawn timeout of %dms expired, killing process", self.config.spawn_timeout_ms)
            backstop_expired = True
            process.kill()
            returncode = process.wait()
        finally:
            guard.disarm()
            self.registry.remove(process)

        state.time_ms = _elapsed_ms(begin)
        state.timed_out = guard.fired or backstop_expired
        if returncode < 0:
            state.signal = _signal_name(returncode)
        else:
            state.code = returncode

        for thread in (*readers, writer):
            thread.join(_DRAIN_TIMEOUT_SECONDS)
        state.stdout_override = router.read_output_file()

        result = state.freeze()
        logger.debug("Run Result: %s", result)
        return result

    def kill_all(self) -> int:
        """Kill every process currently running through this runner.

        Example:
            ```python
            killed = runner.kill_all()
            ```
        """
        return self.registry.kill_all()

    def _spawn_failed(
        self, language: Language, state: RunState, exc: OSError, begin: float
    ) -> RunResult:
        """Finalize a result for a process that could not be launched.

        Example:
            ```python
            result = runner._spawn_failed(language, RunState(), FileNotFoundError(), time.monotonic())
            ```
        """
        state.time_ms = _elapsed_ms(begin)
        state.code = 1
        state.signal = type(exc).__name__
        logger.error("Could not launch testcase process: %s", exc)
        compiler = normalize_for_platform(language).compiler
        self._notifier.error(
            f"Could not launch testcase process. Is '{compiler}' in your PATH?"
        )
        result = state.freeze()
        logger.debug("Run Error Result: %s", result)
        return result


_DEFAULT_RUNNER: TestCaseRunner | None = None
_DEFAULT_RUNNER_LOCK = threading.Lock()


def default_runner() -> TestCaseRunner:
    """Return the process-wide runner used by the module-level helpers.

    Example:
        ```python
        runner = default_runner()
        ```
    """
    global _DEFAULT_RUNNER
    with _DEFAULT_RUNNER_LOCK:
        if _DEFAULT_RUNNER is None:
            _DEFAULT_RUNNER = TestCaseRunner()
        return _DEFAULT_RUNNER


def run_test_case(
    language: Language,
    artifact_path: str | Path,
    input: str,
    input_file_name: str = "",
    output_file_name: str = "",
    *,
    runner: TestCaseRunner | None = None,
) -> RunResult:
    """Run a single test case and return the raw result, without judging.

    Example:
        ```python
        result = run_test_case(Language("python", "python3"), "/tmp/sol.py", "3\\n4\\n")
        ```
    """
    active = runner or default_runner()
    return active.run(
        ExecutionRequest(
            language=language,
            artifact_path=artifact_path,
            input=input,
            input_file_name=input_file_name,
            output_file_name=output_file_name,
        )
    )


def kill_running(runner: TestCaseRunner | None = None) -> int:
    """Kill all running binaries; usually only one is running at a time.

    Example:
        ```python
        kill_running()
        ```
    """
    return (runner or default_runner()).kill_all()
