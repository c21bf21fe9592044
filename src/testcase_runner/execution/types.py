from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from ..languages import Language


@dataclass(slots=True)
class ExecutionRequest:
    """One candidate artifact to run against one test input.

    Non-empty `input_file_name` / `output_file_name` select file-based I/O
    inside the artifact's directory instead of the standard streams.

    Example:
        ```python
        req = ExecutionRequest(Language("python", "python3"), "/tmp/sol.py", "3\\n4\\n")
        ```
    """

    language: Language
    artifact_path: str | Path
    input: str = ""
    input_file_name: str = ""
    output_file_name: str = ""

    @property
    def workdir(self) -> Path:
        """Directory that relative I/O file names resolve against.

        Example:
            ```python
            cwd = req.workdir
            ```
        """
        return Path(self.artifact_path).parent


@dataclass(frozen=True, slots=True)
class RunResult:
    """Finalized outcome of one test case execution.

    `code` is None when the process did not exit normally; `signal` then
    names the terminating signal, or the exception class on spawn failure.

    Example:
        ```python
        out = RunResult(stdout="7\\n", stderr="", code=0, signal=None, time_ms=12, timed_out=False)
        ```
    """

    stdout: str
    stderr: str
    code: int | None
    signal: str | None
    time_ms: int
    timed_out: bool

    @property
    def ok(self) -> bool:
        """True when the process exited with code 0 inside the deadline.

        Example:
            ```python
            if result.ok: ...
            ```
        """
        return self.code == 0 and self.signal is None and not self.timed_out

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping of the result.

        Example:
            ```python
            payload = result.to_dict()
            ```
        """
        return asdict(self)


class RunState:
    """Mutable accumulator owned by a single in-flight execution.

    Stream chunks are appended per stream in arrival order; `freeze()`
    produces the immutable `RunResult` handed to the caller.

    Example:
        ```python
        state = RunState()
        state.append_stdout(b"hello")
        ```
    """

    __slots__ = ("_stdout", "_stderr", "stdout_override", "code", "signal", "time_ms", "timed_out")

    def __init__(self) -> None:
        """Start with empty buffers and no termination cause.

        Example:
            ```python
            state = RunState()
            ```
        """
        self._stdout = bytearray()
        self._stderr = bytearray()
        self.stdout_override: str | None = None
        self.code: int | None = None
        self.signal: str | None = None
        self.time_ms = 0
        self.timed_out = False

    def append_stdout(self, chunk: bytes) -> None:
        """Append a chunk read from the process's standard output.

        Example:
            ```python
            state.append_stdout(b"42\\n")
            ```
        """
        self._stdout.extend(chunk)

    def append_stderr(self, chunk: bytes) -> None:
        """Append a chunk read from the process's standard error.

        Example:
            ```python
            state.append_stderr(b"warning\\n")
            ```
        """
        self._stderr.extend(chunk)

    def freeze(self) -> RunResult:
        """Build the immutable result from the accumulated state.

        Example:
            ```python
            result = state.freeze()
            ```
        """
        stdout = self.stdout_override
        if stdout is None:
            stdout = self._stdout.decode("utf-8", errors="replace")
        return RunResult(
            stdout=stdout,
            stderr=self._stderr.decode("utf-8", errors="replace"),
            code=self.code,
            signal=self.signal,
            time_ms=self.time_ms,
            timed_out=self.timed_out,
        )
