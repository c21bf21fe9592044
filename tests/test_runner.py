import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from testcase_runner import (
    ExecutionRequest,
    Language,
    RecordingNotifier,
    RunnerConfig,
    TestCaseRunner,
    kill_running,
    run_test_case,
)
from testcase_runner.execution.timeout import TimeoutGuard

PYTHON = Language(name="python", compiler=sys.executable, skip_compile=True)
POSIX_ONLY = pytest.mark.skipif(sys.platform == "win32", reason="signal names are POSIX only")


def _script(tmp_path: Path, body: str, name: str = "sol.py") -> Path:
    path = tmp_path / name
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def _runner(**config) -> tuple[TestCaseRunner, RecordingNotifier]:
    notifier = RecordingNotifier()
    return TestCaseRunner(RunnerConfig(**config), notifier=notifier), notifier


def _wait_for_registered(runner: TestCaseRunner, count: int) -> None:
    deadline = time.monotonic() + 10
    while len(runner.registry) < count:
        if time.monotonic() > deadline:
            raise AssertionError(f"expected {count} registered processes")
        time.sleep(0.01)


def test_stream_input_is_echoed_byte_for_byte(tmp_path: Path) -> None:
    artifact = _script(
        tmp_path,
        """
        import sys
        sys.stdout.buffer.write(sys.stdin.buffer.read())
        """,
    )
    runner, notifier = _runner()

    result = runner.run(ExecutionRequest(PYTHON, artifact, "3\n4\n"))

    assert result.stdout == "3\n4\n"
    assert result.code == 0
    assert result.signal is None
    assert result.timed_out is False
    assert result.ok is True
    assert notifier.errors == []
    assert len(runner.registry) == 0


def test_stderr_and_nonzero_exit_code_are_captured(tmp_path: Path) -> None:
    artifact = _script(
        tmp_path,
        """
        import sys
        print("partial")
        print("boom", file=sys.stderr)
        sys.exit(3)
        """,
    )
    runner, _ = _runner()

    result = runner.run(ExecutionRequest(PYTHON, artifact))

    assert result.code == 3
    assert result.signal is None
    assert result.stdout.strip() == "partial"
    assert "boom" in result.stderr
    assert result.ok is False


def test_interpreter_args_are_passed_after_artifact(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "import sys\nprint(sys.argv[1:])\n")
    runner, _ = _runner()
    lang = Language(name="python", compiler=sys.executable, args=("alpha", "beta"))

    result = runner.run(ExecutionRequest(lang, artifact))

    assert result.stdout.strip() == "['alpha', 'beta']"


def test_process_runs_in_artifact_directory_with_harness_flags(tmp_path: Path) -> None:
    artifact = _script(
        tmp_path,
        """
        import os
        print(os.getcwd())
        print(os.environ.get("CPH"), os.environ.get("DEBUG"))
        """,
    )
    runner, _ = _runner()

    result = runner.run(ExecutionRequest(PYTHON, artifact))
    cwd, flags = result.stdout.splitlines()

    assert Path(cwd).resolve() == tmp_path.resolve()
    assert flags == "true true"


def test_custom_env_flags_from_config(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "import os\nprint(os.environ.get('JUDGE_MODE'))\n")
    runner, _ = _runner(env_flags={"JUDGE_MODE": "strict"})

    result = runner.run(ExecutionRequest(PYTHON, artifact))

    assert result.stdout.strip() == "strict"


def test_deadline_marks_timeout_and_kills_process(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "import time\ntime.sleep(30)\n")
    runner, _ = _runner(timeout_ms=300)

    result = runner.run(ExecutionRequest(PYTHON, artifact))

    assert result.timed_out is True
    assert result.time_ms < 10000
    assert len(runner.registry) == 0
    if sys.platform != "win32":
        assert result.code is None
        assert result.signal == "SIGKILL"


def test_spawn_timeout_acts_as_backstop(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "import time\ntime.sleep(30)\n")
    runner, _ = _runner(timeout_ms=60000, spawn_timeout_ms=300)

    result = runner.run(ExecutionRequest(PYTHON, artifact))

    assert result.timed_out is True
    assert result.time_ms < 10000


def test_fast_program_is_not_marked_timed_out(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "print('ok')\n")
    runner, _ = _runner(timeout_ms=5000)

    result = runner.run(ExecutionRequest(PYTHON, artifact))

    assert result.timed_out is False
    assert result.time_ms >= 0


def test_missing_interpreter_resolves_as_spawn_failure(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "print('never')\n")
    runner, notifier = _runner()
    lang = Language(name="python", compiler="definitely-not-an-interpreter-xyz")

    result = runner.run(ExecutionRequest(lang, artifact, "1\n"))

    assert result.code == 1
    assert result.signal == "FileNotFoundError"
    assert result.timed_out is False
    assert result.stdout == ""
    assert len(notifier.errors) == 1
    assert "'definitely-not-an-interpreter-xyz'" in notifier.errors[0]
    assert "in your PATH?" in notifier.errors[0]
    assert len(runner.registry) == 0


def test_missing_native_binary_resolves_as_spawn_failure(tmp_path: Path) -> None:
    runner, notifier = _runner()
    lang = Language(name="cpp", compiler="g++")

    result = runner.run(ExecutionRequest(lang, tmp_path / "missing.bin"))

    assert result.code == 1
    assert result.signal is not None
    assert len(notifier.errors) == 1


@POSIX_ONLY
def test_kill_all_terminates_every_registered_run(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "import time\ntime.sleep(30)\n")
    runner, _ = _runner(timeout_ms=60000)
    results = []

    def _run() -> None:
        results.append(runner.run(ExecutionRequest(PYTHON, artifact)))

    threads = [threading.Thread(target=_run) for _ in range(2)]
    for thread in threads:
        thread.start()
    _wait_for_registered(runner, 2)

    assert runner.kill_all() == 2
    for thread in threads:
        thread.join(10)

    assert len(results) == 2
    for result in results:
        assert result.signal == "SIGKILL"
        assert result.code is None
        assert result.timed_out is False
    assert len(runner.registry) == 0


def test_overlapping_runs_keep_separate_results(tmp_path: Path) -> None:
    artifact = _script(
        tmp_path,
        """
        import sys, time
        data = sys.stdin.read()
        time.sleep(0.2)
        print(data.strip())
        """,
    )
    runner, _ = _runner()
    results: dict[str, str] = {}

    def _run(text: str) -> None:
        results[text] = runner.run(ExecutionRequest(PYTHON, artifact, text)).stdout.strip()

    threads = [threading.Thread(target=_run, args=(str(i),)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10)

    assert results == {str(i): str(i) for i in range(4)}


def test_run_test_case_helper_uses_given_runner(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "print(input()[::-1])\n")
    runner, _ = _runner()

    result = run_test_case(PYTHON, str(artifact), "abc\n", runner=runner)

    assert result.stdout.strip() == "cba"


def test_result_to_dict_is_json_ready(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "print('x')\n")
    runner, _ = _runner()

    payload = runner.run(ExecutionRequest(PYTHON, artifact)).to_dict()

    assert set(payload) == {"stdout", "stderr", "code", "signal", "time_ms", "timed_out"}


def test_kill_running_with_nothing_registered() -> None:
    runner, _ = _runner()
    assert kill_running(runner) == 0


class _LateFiringGuard(TimeoutGuard):
    """Deadline guard whose timer wins the race against the exit path."""

    def __init__(self, deadline_ms: int, on_expire) -> None:
        super().__init__(deadline_ms, on_expire=lambda: None)
        self.process_kill = on_expire

    def disarm(self) -> bool:
        self._expire()
        return super().disarm()


def test_guard_firing_as_process_exits_keeps_exit_code(tmp_path: Path) -> None:
    artifact = _script(tmp_path, "print('done')\n")
    guards: list[_LateFiringGuard] = []

    def _factory(deadline_ms: int, on_expire) -> _LateFiringGuard:
        guards.append(_LateFiringGuard(deadline_ms, on_expire))
        return guards[-1]

    runner = TestCaseRunner(
        RunnerConfig(timeout_ms=60000),
        notifier=RecordingNotifier(),
        guard_factory=_factory,
    )

    result = runner.run(ExecutionRequest(PYTHON, artifact))

    assert len(guards) == 1
    assert guards[0].fired is True
    assert result.timed_out is True
    assert result.code == 0
    assert result.signal is None
    assert result.stdout.strip() == "done"
    assert result.time_ms >= 0
    assert len(runner.registry) == 0
