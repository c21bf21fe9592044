from __future__ import annotations

import logging
import re
import shutil
import threading
from pathlib import Path
from typing import IO, Callable

from ..errors import InvalidFileNameError
from ..notify import Notifier
from .types import ExecutionRequest, RunState

logger = logging.getLogger(__name__)

OriginResolver = Callable[[str], str]

_ORIGIN_PATTERN = re.compile(r"^file:(?!\.\.?$)(?P<name>[^\s/\\]+)$")


def origin_file_name(text: str) -> str:
    """Return the origin file referenced by test case text, or "".

    A reference is the whole text being a single `file:<name>` line.

    Example:
        ```python
        name = origin_file_name("file:big_input.txt")  # "big_input.txt"
        ```
    """
    match = _ORIGIN_PATTERN.match(text.strip())
    if match is None:
        return ""
    return match.group("name")


def validate_file_name(field_name: str, value: str) -> None:
    """Reject I/O file names that could leave the artifact directory.

    Example:
        ```python
        validate_file_name("input_file_name", "in.txt")
        ```
    """
    if not value:
        return
    if "/" in value or "\\" in value or value in {".", ".."}:
        raise InvalidFileNameError(field_name, value)


class IORouter:
    """Deliver test input and collect file output for one execution.

    Filesystem failures are logged and notified, never raised, so the run
    still finalizes with best-effort data.

    Example:
        ```python
        router = IORouter(request, notifier=RecordingNotifier())
        ```
    """

    def __init__(
        self,
        request: ExecutionRequest,
        *,
        notifier: Notifier,
        origin_resolver: OriginResolver = origin_file_name,
    ) -> None:
        """Bind the router to a request and resolve its origin file.

        Example:
            ```python
            router = IORouter(request, notifier=ConsoleNotifier())
            ```
        """
        validate_file_name("input_file_name", request.input_file_name)
        validate_file_name("output_file_name", request.output_file_name)
        self._request = request
        self._notifier = notifier
        self._workdir = request.workdir
        origin = origin_resolver(request.input)
        try:
            validate_file_name("input_origin_file_name", origin)
        except InvalidFileNameError as exc:
            logger.error("Ignoring unsafe input origin file %r: %s", origin, exc)
            self._notifier.error(f"{exc}\nThe input is used as literal text.")
            origin = ""
        self._origin_path = self._workdir / origin if origin else None
        if self._origin_path is not None:
            logger.debug("Input origin file: %s", self._origin_path)

    @property
    def file_input(self) -> bool:
        """Whether input goes through a named file instead of stdin.

        Example:
            ```python
            if router.file_input: ...
            ```
        """
        return bool(self._request.input_file_name)

    @property
    def file_output(self) -> bool:
        """Whether stdout is replaced by a named file after exit.

        Example:
            ```python
            if router.file_output: ...
            ```
        """
        return bool(self._request.output_file_name)

    def prepare_input_file(self) -> None:
        """Write or copy the input into the working directory (file mode only).

        Example:
            ```python
            router.prepare_input_file()
            ```
        """
        if not self.file_input:
            return
        target = self._workdir / self._request.input_file_name
        logger.debug("Write input to %s", target)
        if self._origin_path is None:
            try:
                target.write_text(self._request.input, encoding="utf-8")
            except OSError as exc:
                self._report(f"An error occurred when write input content to {target}", exc)
            return
        try:
            shutil.copyfile(self._origin_path, target)
        except OSError as exc:
            self._report(
                f"An error occurred when copy input content from {self._origin_path} to {target}",
                exc,
            )

    def stdin_payload(self) -> bytes:
        """Return the bytes to pipe into stdin; empty in file mode.

        Example:
            ```python
            data = router.stdin_payload()
            ```
        """
        if self.file_input:
            return b""
        if self._origin_path is None:
            return self._request.input.encode("utf-8")
        try:
            return self._origin_path.read_bytes()
        except OSError as exc:
            self._report(f"An error occurred when read input from {self._origin_path}", exc)
            return b""

    def start_stdin_writer(self, stdin: IO[bytes]) -> threading.Thread:
        """Feed stdin on a background thread, then close it.

        Example:
            ```python
            writer = router.start_stdin_writer(process.stdin)
            ```
        """
        payload = self.stdin_payload()

        def _write() -> None:
            """Write the payload and close the stream.

            Example:
                ```python
                _write()
                ```
            """
            try:
                if payload:
                    stdin.write(payload)
                    stdin.flush()
            except (BrokenPipeError, ValueError, OSError) as exc:
                logger.warning("Could not write to STDIN: %s", exc)
            finally:
                try:
                    stdin.close()
                except OSError:
                    logger.debug("STDIN already closed")

        if payload:
            logger.debug("Wrote to STDIN")
        thread = threading.Thread(target=_write, name="tcr-stdin", daemon=True)
        thread.start()
        return thread

    def read_output_file(self) -> str | None:
        """Read the designated output file after exit (file mode only).

        Returns None when stdout should stay stream-captured, and "" when
        the file could not be read.

        Example:
            ```python
            text = router.read_output_file()
            ```
        """
        if not self.file_output:
            return None
        target = self._workdir / self._request.output_file_name
        try:
            return target.read_bytes().decode("utf-8", errors="replace")
        except OSError as exc:
            self._report(f"An error occurred when read output content from {target}", exc)
            return ""

    def _report(self, message: str, exc: OSError) -> None:
        """Log and notify an I/O failure.

        Example:
            ```python
            router._report("read failed", OSError("nope"))
            ```
        """
        logger.error("%s: %s", message, exc)
        self._notifier.error(f"{message}\n{exc}")


def start_stream_reader(
    stream: IO[bytes], sink: Callable[[bytes], None], name: str
) -> threading.Thread:
    """Drain a process stream into `sink` on a background thread.

    Example:
        ```python
        reader = start_stream_reader(process.stdout, state.append_stdout, "stdout")
        ```
    """

    def _drain() -> None:
        """Read chunks until EOF.

        Example:
            ```python
            _drain()
            ```
        """
        try:
            for chunk in iter(lambda: stream.read1(65536), b""):
                sink(chunk)
        except (OSError, ValueError) as exc:
            logger.debug("Stream %s closed while reading: %s", name, exc)
        finally:
            stream.close()

    thread = threading.Thread(target=_drain, name=f"tcr-{name}", daemon=True)
    thread.start()
    return thread
