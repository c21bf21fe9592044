from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError


def _default_config_path() -> Path:
    """Return bundled default config TOML path.

    Example:
        ```python
        path = _default_config_path()
        ```
    """
    return Path(__file__).with_name("default_config.toml")


def _read_config_toml(path: Path) -> dict[str, Any]:
    """Read config TOML and return the runner table.

    Example:
        ```python
        raw = _read_config_toml(Path("/tmp/runner.toml"))
        ```
    """
    if not path.exists():
        return {
            "timeout_ms": 3000,
            "spawn_timeout_ms": 10000,
            "online_judge": False,
            "ignore_stderr": False,
            "env_flags": {"DEBUG": "true", "CPH": "true"},
        }
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    runner_obj = raw.get("runner", raw)
    if not isinstance(runner_obj, dict):
        raise ConfigError("Runner config must be a TOML table")
    return runner_obj


def _dict_of_str(value: Any, field_name: str) -> dict[str, str]:
    """Validate and normalize a string-to-string table.

    Example:
        ```python
        flags = _dict_of_str({"DEBUG": "true"}, "env_flags")
        ```
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{field_name}' must be a table of strings")
    out: dict[str, str] = {}
    for key, item in value.items():
        if isinstance(item, bool):
            item = "true" if item else "false"
        if not isinstance(item, (str, int)):
            raise ConfigError(f"'{field_name}' must contain only strings")
        out[str(key)] = str(item)
    return out


_DEFAULT_CONFIG_RAW = _read_config_toml(_default_config_path())
DEFAULT_TIMEOUT_MS = int(_DEFAULT_CONFIG_RAW.get("timeout_ms", 3000))
DEFAULT_SPAWN_TIMEOUT_MS = int(_DEFAULT_CONFIG_RAW.get("spawn_timeout_ms", 10000))
DEFAULT_ONLINE_JUDGE = bool(_DEFAULT_CONFIG_RAW.get("online_judge", False))
DEFAULT_IGNORE_STDERR = bool(_DEFAULT_CONFIG_RAW.get("ignore_stderr", False))
DEFAULT_ENV_FLAGS = _dict_of_str(_DEFAULT_CONFIG_RAW.get("env_flags", {}), "env_flags")


@dataclass(slots=True)
class RunnerConfig:
    """Tunables for running one test case.

    `timeout_ms` is the deadline enforced by the timeout guard and
    `spawn_timeout_ms` is the hard backstop applied while waiting for exit.

    Example:
        ```python
        config = RunnerConfig(timeout_ms=2000, online_judge=True)
        ```
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    spawn_timeout_ms: int = DEFAULT_SPAWN_TIMEOUT_MS
    online_judge: bool = DEFAULT_ONLINE_JUDGE
    ignore_stderr: bool = DEFAULT_IGNORE_STDERR
    env_flags: dict[str, str] = field(default_factory=lambda: DEFAULT_ENV_FLAGS.copy())
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate timeouts after dataclass initialization.

        Example:
            ```python
            RunnerConfig(timeout_ms=1000)
            ```
        """
        if self.timeout_ms <= 0:
            raise ConfigError("'timeout_ms' must be positive")
        if self.spawn_timeout_ms <= 0:
            raise ConfigError("'spawn_timeout_ms' must be positive")

    @classmethod
    def from_file(cls, config_path: str) -> "RunnerConfig":
        """Create a config instance from a TOML file.

        Example:
            ```python
            config = RunnerConfig.from_file("/tmp/runner.toml")
            ```
        """
        path = Path(config_path)
        if not path.is_file():
            raise ConfigError(f"Runner config file not found: {config_path}")
        raw = _read_config_toml(path)
        try:
            return cls(
                timeout_ms=int(raw.get("timeout_ms", DEFAULT_TIMEOUT_MS)),
                spawn_timeout_ms=int(raw.get("spawn_timeout_ms", DEFAULT_SPAWN_TIMEOUT_MS)),
                online_judge=bool(raw.get("online_judge", DEFAULT_ONLINE_JUDGE)),
                ignore_stderr=bool(raw.get("ignore_stderr", DEFAULT_IGNORE_STDERR)),
                env_flags=_dict_of_str(raw.get("env_flags", DEFAULT_ENV_FLAGS), "env_flags"),
                config_path=config_path,
            )
        except ConfigError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid runner config {config_path}: {exc}") from exc

    def with_timeout(self, timeout_ms: int | None) -> "RunnerConfig":
        """Return a copy with a different guard deadline, if one is given.

        Example:
            ```python
            quick = RunnerConfig().with_timeout(500)
            ```
        """
        if timeout_ms is None:
            return self
        return RunnerConfig(
            timeout_ms=timeout_ms,
            spawn_timeout_ms=max(self.spawn_timeout_ms, timeout_ms),
            online_judge=self.online_judge,
            ignore_stderr=self.ignore_stderr,
            env_flags=dict(self.env_flags),
            config_path=self.config_path,
        )
