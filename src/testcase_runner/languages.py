from __future__ import annotations

import sys
from dataclasses import dataclass, replace

INTERPRETED_LANGUAGES = frozenset({"python", "ruby", "js"})


@dataclass(frozen=True, slots=True)
class Language:
    """Immutable description of a runnable language variant.

    `compiler` is the interpreter or toolchain entry point and `args` are
    extra arguments appended after the artifact for interpreted languages.

    Example:
        ```python
        lang = Language(name="python", compiler="python3", skip_compile=True)
        ```
    """

    name: str
    compiler: str
    args: tuple[str, ...] = ()
    skip_compile: bool = False


def normalize_for_platform(language: Language, platform: str | None = None) -> Language:
    """Apply the Windows `python3` -> `python` alias substitution.

    Example:
        ```python
        lang = normalize_for_platform(Language("python", "python3"), platform="win32")
        ```
    """
    target = sys.platform if platform is None else platform
    if target == "win32" and language.compiler == "python3":
        return replace(language, compiler="python")
    return language


DEFAULT_LANGUAGES: dict[str, Language] = {
    "python": Language(name="python", compiler="python3", skip_compile=True),
    "ruby": Language(name="ruby", compiler="ruby", skip_compile=True),
    "js": Language(name="js", compiler="node", skip_compile=True),
    "java": Language(name="java", compiler="javac"),
    "csharp": Language(name="csharp", compiler="dotnet"),
    "c": Language(name="c", compiler="gcc"),
    "cpp": Language(name="cpp", compiler="g++"),
    "rust": Language(name="rust", compiler="rustc"),
    "go": Language(name="go", compiler="go"),
}


def language_for(
    name: str,
    *,
    compiler: str | None = None,
    args: tuple[str, ...] | list[str] | None = None,
    skip_compile: bool | None = None,
) -> Language:
    """Look up a default language and apply caller overrides.

    Unknown names fall back to a native binary descriptor whose compiler is
    the name itself.

    Example:
        ```python
        lang = language_for("python", compiler="pypy3", args=["-O"])
        ```
    """
    base = DEFAULT_LANGUAGES.get(name, Language(name=name, compiler=name))
    return replace(
        base,
        compiler=compiler if compiler else base.compiler,
        args=tuple(args) if args is not None else base.args,
        skip_compile=base.skip_compile if skip_compile is None else skip_compile,
    )
