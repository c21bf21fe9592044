from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..languages import INTERPRETED_LANGUAGES, Language, normalize_for_platform

DOTNET_PROJECT_BINARY = ".cphcsrun"
DOTNET_STACK_FLAG = "/stack:67108864"
ONLINE_JUDGE_FLAG = "-DONLINE_JUDGE"


class LaunchStrategy(Enum):
    """How an artifact of a given language is started.

    Example:
        ```python
        strategy = LaunchStrategy.INTERPRETED
        ```
    """

    INTERPRETED = "interpreted"
    CLASS_PATH = "class-path"
    DOTNET_PROJECT = "dotnet-project"
    MONO = "mono"
    NATIVE = "native"


@dataclass(frozen=True, slots=True)
class LaunchPlan:
    """Resolved command line and working directory for one artifact.

    Example:
        ```python
        plan = LaunchPlan("python3", ("python3", "/tmp/a.py"), Path("/tmp"), LaunchStrategy.INTERPRETED)
        ```
    """

    executable: str
    argv: tuple[str, ...]
    cwd: Path
    strategy: LaunchStrategy


def executable_suffix(platform: str | None = None) -> str:
    """Return the suffix appended to generated executables on the platform.

    Example:
        ```python
        suffix = executable_suffix("win32")  # ".exe"
        ```
    """
    target = sys.platform if platform is None else platform
    return ".exe" if target == "win32" else ""


def strategy_for(language: Language) -> LaunchStrategy:
    """Pick the launch strategy for a language descriptor.

    Example:
        ```python
        strategy = strategy_for(Language("csharp", "dotnet"))
        ```
    """
    if language.name in INTERPRETED_LANGUAGES:
        return LaunchStrategy.INTERPRETED
    if language.name == "java":
        return LaunchStrategy.CLASS_PATH
    if language.name == "csharp":
        if "dotnet" in language.compiler:
            return LaunchStrategy.DOTNET_PROJECT
        return LaunchStrategy.MONO
    return LaunchStrategy.NATIVE


def java_class_name(artifact_path: Path) -> str:
    """Derive the main class name from a compiled-unit artifact path.

    The compiler step leaves one marker character at the end of the stem,
    which is stripped here.

    Example:
        ```python
        name = java_class_name(Path("/tmp/Main$.class"))  # "Main"
        ```
    """
    return artifact_path.stem[:-1]


def resolve_launch(
    language: Language,
    artifact_path: str | Path,
    *,
    online_judge: bool = False,
    platform: str | None = None,
) -> LaunchPlan:
    """Resolve executable, argv and working directory for an artifact.

    Resolution never fails; a missing executable surfaces later as a
    spawn failure.

    Example:
        ```python
        plan = resolve_launch(Language("python", "python3", ("-O",)), "/tmp/sol.py")
        ```
    """
    language = normalize_for_platform(language, platform)
    artifact = Path(artifact_path)
    workdir = artifact.parent
    strategy = strategy_for(language)

    if strategy is LaunchStrategy.INTERPRETED:
        argv: tuple[str, ...] = (language.compiler, str(artifact), *language.args)
    elif strategy is LaunchStrategy.CLASS_PATH:
        flags = [ONLINE_JUDGE_FLAG] if online_judge else []
        argv = ("java", *flags, "-cp", str(workdir), java_class_name(artifact))
    elif strategy is LaunchStrategy.DOTNET_PROJECT:
        binary = artifact / (DOTNET_PROJECT_BINARY + executable_suffix(platform))
        argv = (str(binary), DOTNET_STACK_FLAG)
    elif strategy is LaunchStrategy.MONO:
        argv = ("mono", str(artifact))
    else:
        argv = (str(artifact),)

    return LaunchPlan(executable=argv[0], argv=argv, cwd=workdir, strategy=strategy)
