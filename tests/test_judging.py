import logging
import sys
from pathlib import Path

import pytest

from testcase_runner import (
    InvalidFileNameError,
    Language,
    RecordingNotifier,
    RunnerConfig,
    RunResult,
    TestCaseRunner,
)
from testcase_runner.judging import (
    TestCase,
    judge_run,
    resolve_case_origins,
    run_errored,
    run_single,
    validate_io_file_names,
)


def _run(**overrides) -> RunResult:
    fields = {
        "stdout": "3\n",
        "stderr": "",
        "code": 0,
        "signal": None,
        "time_ms": 5,
        "timed_out": False,
    }
    fields.update(overrides)
    return RunResult(**fields)


def _exact(case: TestCase, output: str) -> bool:
    return case.output.strip() == output.strip()


def test_clean_run_is_judged_by_comparator() -> None:
    case = TestCase(id=4, input="1 2\n", output="3\n")

    judged = judge_run(case, _run(), _exact)

    assert judged.passed is True
    assert judged.id == 4
    assert judged.to_dict()["pass"] is True
    assert judged.to_dict()["stdout"] == "3\n"


def test_errored_runs_fail_without_consulting_comparator() -> None:
    case = TestCase(id=1, input="", output="3\n")
    calls: list[str] = []

    def _spy(c: TestCase, out: str) -> bool:
        calls.append(out)
        return True

    killed = _run(code=None, signal="SIGKILL", timed_out=True)
    for run in (_run(code=2), _run(code=None, signal="SIGKILL"), killed, _run(stderr="warn")):
        assert judge_run(case, run, _spy).passed is False
    assert calls == []


def test_stderr_can_be_ignored() -> None:
    run = _run(stderr="debug output")

    assert run_errored(run) is True
    assert run_errored(run, ignore_stderr=True) is False
    assert judge_run(TestCase(1, "", "3"), run, _exact, ignore_stderr=True).passed is True


def test_resolve_case_origins_reads_referenced_files(tmp_path: Path) -> None:
    (tmp_path / "in1.txt").write_text("9\n", encoding="utf-8")
    (tmp_path / "ans1.txt").write_text("81\n", encoding="utf-8")
    case = TestCase(id=1, input="file:in1.txt", output="file:ans1.txt")

    resolved = resolve_case_origins(case, tmp_path)

    assert resolved.input == "9\n"
    assert resolved.output == "81\n"
    assert case.input == "file:in1.txt"


def test_missing_answer_origin_is_logged_not_fatal(
    tmp_path: Path, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(logging.getLogger("testcase_runner"), "propagate", True)
    case = TestCase(id=1, input="1\n", output="file:missing.txt")

    with caplog.at_level(logging.WARNING, logger="testcase_runner"):
        resolved = resolve_case_origins(case, tmp_path)

    assert resolved is case
    assert "missing.txt" in caplog.text


def test_validate_io_file_names() -> None:
    validate_io_file_names("in.txt", "")
    with pytest.raises(InvalidFileNameError, match="output_file_name"):
        validate_io_file_names("in.txt", "../out.txt")


def test_clean_exit_racing_the_deadline_is_still_judged_on_output() -> None:
    run = _run(timed_out=True)

    assert run_errored(run) is False
    assert judge_run(TestCase(1, "", "3\n"), run, lambda c, out: True).passed is True


def _runner(**config) -> TestCaseRunner:
    return TestCaseRunner(RunnerConfig(**config), notifier=RecordingNotifier())


def test_run_single_reads_origins_runs_and_judges(tmp_path: Path) -> None:
    artifact = tmp_path / "sol.py"
    artifact.write_text("a, b = map(int, input().split())\nprint(a + b)\n", encoding="utf-8")
    (tmp_path / "in1.txt").write_text("2 5\n", encoding="utf-8")
    (tmp_path / "ans1.txt").write_text("7\n", encoding="utf-8")
    python = Language(name="python", compiler=sys.executable, skip_compile=True)

    judged = run_single(
        TestCase(id=3, input="file:in1.txt", output="file:ans1.txt"),
        python,
        artifact,
        _exact,
        runner=_runner(),
    )

    assert judged.passed is True
    assert judged.id == 3
    assert judged.run.stdout == "7\n"
    assert artifact.exists()


def test_run_single_uses_ignore_stderr_from_runner_config(tmp_path: Path) -> None:
    artifact = tmp_path / "sol.py"
    artifact.write_text("import sys\nprint('debug', file=sys.stderr)\nprint(3)\n", encoding="utf-8")
    python = Language(name="python", compiler=sys.executable, skip_compile=True)
    case = TestCase(id=1, input="", output="3\n")

    strict = run_single(case, python, artifact, _exact, runner=_runner())
    lenient = run_single(case, python, artifact, _exact, runner=_runner(ignore_stderr=True))

    assert strict.passed is False
    assert lenient.passed is True


def test_run_single_deletes_compiled_artifact_unless_skipped(tmp_path: Path) -> None:
    artifact = tmp_path / "sol.py"
    artifact.write_text("print(3)\n", encoding="utf-8")
    compiled = Language(name="python", compiler=sys.executable, skip_compile=False)
    case = TestCase(id=1, input="", output="3\n")

    kept = run_single(case, compiled, artifact, _exact, runner=_runner(), skip_compile=True)
    assert kept.passed is True
    assert artifact.exists()

    removed = run_single(case, compiled, artifact, _exact, runner=_runner())
    assert removed.passed is True
    assert not artifact.exists()


def test_run_single_rejects_unsafe_file_names_before_running(tmp_path: Path) -> None:
    runner = _runner()

    with pytest.raises(InvalidFileNameError):
        run_single(
            TestCase(1, "", ""),
            Language("cpp", "g++"),
            tmp_path / "sol.bin",
            _exact,
            output_file_name="a/out.txt",
            runner=runner,
        )
    assert len(runner.registry) == 0
