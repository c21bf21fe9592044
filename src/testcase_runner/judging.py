"""Boundary between the execution core and an external verdict comparator.

The core never decides correctness; callers plug in `is_result_correct`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable

from .cleanup import delete_binary
from .errors import InvalidFileNameError
from .execution.io_router import OriginResolver, origin_file_name, validate_file_name
from .execution.types import ExecutionRequest, RunResult
from .languages import Language
from .runner import TestCaseRunner, default_runner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TestCase:
    """One stored test case: input text and expected output text.

    Example:
        ```python
        case = TestCase(id=1, input="1 2\\n", output="3\\n")
        ```
    """

    __test__ = False

    id: int
    input: str
    output: str


@dataclass(frozen=True, slots=True)
class JudgedRun:
    """A run result together with its verdict and test case id.

    Example:
        ```python
        judged = JudgedRun(run=result, passed=True, id=1)
        ```
    """

    run: RunResult
    passed: bool
    id: int

    def to_dict(self) -> dict[str, Any]:
        """Flatten the run fields next to `pass` and `id`.

        Example:
            ```python
            payload = judged.to_dict()
            ```
        """
        return {**self.run.to_dict(), "pass": self.passed, "id": self.id}


ResultComparator = Callable[[TestCase, str], bool]


def run_errored(run: RunResult, *, ignore_stderr: bool = False) -> bool:
    """Whether a run failed regardless of its output.

    Non-zero exit, any signal, or stderr output (unless ignored) count as
    errors. A timed-out run is usually killed and so carries a signal; one
    that exited cleanly as the deadline fired is still judged on its output.

    Example:
        ```python
        if run_errored(result, ignore_stderr=True): ...
        ```
    """
    stderr_failure = False if ignore_stderr else run.stderr != ""
    return (
        (run.code is not None and run.code != 0)
        or run.signal is not None
        or stderr_failure
    )


def judge_run(
    case: TestCase,
    run: RunResult,
    is_result_correct: ResultComparator,
    *,
    ignore_stderr: bool = False,
) -> JudgedRun:
    """Combine a finished run with the external comparator's verdict.

    The comparator is only consulted when the run did not error.

    Example:
        ```python
        judged = judge_run(case, result, lambda c, out: out.strip() == c.output.strip())
        ```
    """
    if run_errored(run, ignore_stderr=ignore_stderr):
        passed = False
    else:
        passed = bool(is_result_correct(case, run.stdout))
    judged = JudgedRun(run=run, passed=passed, id=case.id)
    logger.info("Testcase judging complete. Result: id=%s pass=%s", case.id, passed)
    return judged


def resolve_case_origins(
    case: TestCase,
    workdir: str | Path,
    *,
    origin_resolver: OriginResolver = origin_file_name,
) -> TestCase:
    """Return a copy of the case with origin-file references read in.

    A missing input origin is logged and the reference kept, so the runner
    still reports the failure; a missing answer origin is logged and not fatal.

    Example:
        ```python
        resolved = resolve_case_origins(TestCase(1, "file:in1.txt", "file:ans1.txt"), "/tmp/work")
        ```
    """
    base = Path(workdir)
    updates: dict[str, str] = {}
    for field_name, text in (("input", case.input), ("output", case.output)):
        origin = origin_resolver(text)
        if not origin:
            continue
        try:
            validate_file_name(f"{field_name}_origin_file_name", origin)
        except InvalidFileNameError as exc:
            logger.error("Ignoring unsafe %s origin file %r: %s", field_name, origin, exc)
            continue
        path = base / origin
        try:
            updates[field_name] = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("An error occurred when read %s content from %s: %s", field_name, path, exc)
    return replace(case, **updates) if updates else case


def validate_io_file_names(input_file_name: str, output_file_name: str) -> None:
    """Check both I/O file names before any compile or run step.

    Example:
        ```python
        validate_io_file_names("in.txt", "out.txt")
        ```
    """
    for field_name, value in (
        ("input_file_name", input_file_name),
        ("output_file_name", output_file_name),
    ):
        try:
            validate_file_name(field_name, value)
        except InvalidFileNameError:
            logger.error("Rejected %s %r", field_name, value)
            raise


def run_single(
    case: TestCase,
    language: Language,
    artifact_path: str | Path,
    is_result_correct: ResultComparator,
    *,
    input_file_name: str = "",
    output_file_name: str = "",
    runner: TestCaseRunner | None = None,
    skip_compile: bool = False,
) -> JudgedRun:
    """Run one stored test case against a built artifact and judge it.

    File names are checked first, origin references in the case are read
    from the artifact directory, and the artifact is deleted afterwards
    unless `skip_compile` says it was reused from an earlier build. The
    runner's `ignore_stderr` setting decides whether stderr fails the case.

    Example:
        ```python
        judged = run_single(case, Language("cpp", "g++"), "/tmp/sol.bin", lambda c, out: out == c.output)
        ```
    """
    validate_io_file_names(input_file_name, output_file_name)
    active = runner or default_runner()
    logger.info("Run and save started: case %s", case.id)
    resolved = resolve_case_origins(case, Path(artifact_path).parent)
    run = active.run(
        ExecutionRequest(
            language=language,
            artifact_path=artifact_path,
            input=resolved.input,
            input_file_name=input_file_name,
            output_file_name=output_file_name,
        )
    )
    if not skip_compile:
        delete_binary(language, artifact_path)
    return judge_run(resolved, run, is_result_correct, ignore_stderr=active.config.ignore_stderr)
