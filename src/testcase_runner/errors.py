from __future__ import annotations


class RunnerError(Exception):
    """Base class for errors raised by testcase-runner.

    Example:
        ```python
        raise RunnerError("something went wrong")
        ```
    """


class InvalidFileNameError(RunnerError, ValueError):
    """Raised when an I/O file name would escape the artifact directory.

    Example:
        ```python
        raise InvalidFileNameError("input_file_name", "../in.txt")
        ```
    """

    def __init__(self, field_name: str, value: str) -> None:
        """Build the error message from the offending field and value.

        Example:
            ```python
            err = InvalidFileNameError("output_file_name", "a/b.txt")
            ```
        """
        super().__init__(
            f"For security reason, {field_name} shouldn't contain a path separator: {value!r}"
        )
        self.field_name = field_name
        self.value = value


class ConfigError(RunnerError, ValueError):
    """Raised when runner configuration is malformed.

    Example:
        ```python
        raise ConfigError("'timeout_ms' must be positive")
        ```
    """
