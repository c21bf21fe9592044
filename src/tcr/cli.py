from __future__ import annotations

import argparse
import json
import sys
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Never, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich_argparse import RawTextRichHelpFormatter
from testcase_runner import (
    ExecutionRequest,
    RunnerConfig,
    RunResult,
    TestCaseRunner,
    delete_binary,
    language_for,
)
from testcase_runner.errors import RunnerError
from testcase_runner.execution.launch import strategy_for
from testcase_runner.languages import DEFAULT_LANGUAGES
from testcase_runner.logging_config import setup_logging

_CONSOLE = Console(no_color=False)


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="python -m tcr")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def _add_language_options(cmd: argparse.ArgumentParser) -> None:
    """Attach the language descriptor flags shared by subcommands.

    Example:
        ```python
        _add_language_options(run_cmd)
        ```
    """
    cmd.add_argument(
        "--language",
        "-l",
        required=True,
        help=(
            "Language name, e.g. python, ruby, js, java, csharp, cpp.\n"
            "Unknown names are launched as native binaries."
        ),
    )
    cmd.add_argument(
        "--compiler",
        help="Override the interpreter/toolchain entry point (default: from `languages`).",
    )
    cmd.add_argument(
        "--skip-compile",
        action="store_true",
        default=None,
        help="Treat the artifact as source that needs no build step.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for running and cleaning test case artifacts.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="python -m tcr",
        description=(
            "testcase-runner CLI\n"
            "Run one compiled or interpreted artifact against one test input\n"
            "under a wall-clock deadline and report its outcome."
        ),
        epilog=(
            "Quick Examples:\n"
            "  python -m tcr run sol.py -l python --input $'3\\n4\\n'\n"
            "  python -m tcr run ./sol.bin -l cpp --input-path tests/1.in --timeout-ms 2000\n"
            "  python -m tcr run ./sol.bin -l cpp --input-path 1.in --input-file-name in.txt --output-file-name out.txt\n"
            "  python -m tcr clean ./sol.bin -l cpp\n"
            "  python -m tcr languages"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for runner diagnostics (default: WARNING).",
    )
    parser.add_argument(
        "--log-file",
        help="Also write runner diagnostics to this file.",
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    run_cmd = sub.add_parser(
        "run",
        help="Run an artifact against one test input.",
        description=(
            "Run an artifact against one test input.\n"
            "Input goes to stdin unless --input-file-name is given, in which case\n"
            "it is written next to the artifact and stdin is left empty."
        ),
        epilog=(
            "Examples:\n"
            "  python -m tcr run sol.py -l python --input '1 2'\n"
            "  python -m tcr run Main$.class -l java --input-path 1.in --json"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("artifact", help="Path to the runnable artifact (file or directory).")
    _add_language_options(run_cmd)
    run_cmd.add_argument(
        "--arg",
        dest="args",
        action="append",
        help="Extra interpreter argument, repeatable.",
    )
    source = run_cmd.add_mutually_exclusive_group()
    source.add_argument("--input", help="Literal input text.")
    source.add_argument("--input-path", help="Read the input text from this file.")
    run_cmd.add_argument(
        "--input-file-name",
        default="",
        help="Deliver input through this file in the artifact directory.",
    )
    run_cmd.add_argument(
        "--output-file-name",
        default="",
        help="Read stdout from this file in the artifact directory after exit.",
    )
    run_cmd.add_argument(
        "--timeout-ms",
        type=int,
        help="Deadline in milliseconds (default: from config).",
    )
    run_cmd.add_argument(
        "--config",
        help="Path to a runner config TOML file.",
    )
    run_cmd.add_argument(
        "--json",
        action="store_true",
        help="Print the run result as JSON.",
    )

    clean_cmd = sub.add_parser(
        "clean",
        help="Delete a generated artifact.",
        description=(
            "Delete a generated artifact.\n"
            "Does nothing for languages that need no build step."
        ),
        epilog=(
            "Example:\n"
            "  python -m tcr clean ./sol.bin -l cpp"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    clean_cmd.add_argument("artifact", help="Path to the artifact to delete.")
    _add_language_options(clean_cmd)

    sub.add_parser(
        "languages",
        help="List known languages and their launch strategies.",
        description="Show the default toolchain and launch strategy per language.",
        formatter_class=_HELP_FORMATTER,
    )

    return parser


def build_runner(args: argparse.Namespace) -> TestCaseRunner:
    """Create a TestCaseRunner from CLI config flags.

    Example:
        ```python
        runner = build_runner(args)
        ```
    """
    config = RunnerConfig.from_file(args.config) if args.config else RunnerConfig()
    return TestCaseRunner(config.with_timeout(args.timeout_ms))


def _read_input(args: argparse.Namespace) -> str:
    """Resolve the test input text from CLI flags.

    Example:
        ```python
        text = _read_input(args)
        ```
    """
    if args.input_path:
        return Path(args.input_path).read_text(encoding="utf-8")
    if args.input is not None:
        return args.input
    return ""


def _run_interruptibly(runner: TestCaseRunner, request: ExecutionRequest) -> RunResult:
    """Run on a worker thread so Ctrl+C can cancel through the registry.

    Example:
        ```python
        result = _run_interruptibly(runner, request)
        ```
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="tcr-run") as pool:
        future = pool.submit(runner.run, request)
        try:
            return future.result()
        except KeyboardInterrupt:
            killed = runner.kill_all()
            _CONSOLE.print(Panel.fit(f"Killed {killed} running process(es)", style="bold yellow"))
            return future.result()


def _print_result(result: RunResult) -> None:
    """Render a run result as a Rich table plus output panels.

    Example:
        ```python
        _print_result(result)
        ```
    """
    table = Table(title="Run Result")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("code", str(result.code))
    table.add_row("signal", str(result.signal))
    table.add_row("time", f"{result.time_ms} ms")
    table.add_row("timed out", "yes" if result.timed_out else "no")
    _CONSOLE.print(table)
    _CONSOLE.print(Panel(Text(result.stdout), title="stdout", border_style="green"))
    if result.stderr:
        _CONSOLE.print(Panel(Text(result.stderr), title="stderr", border_style="red"))


def _print_languages() -> None:
    """Render the default language table.

    Example:
        ```python
        _print_languages()
        ```
    """
    table = Table(title="Languages")
    table.add_column("Name", style="cyan")
    table.add_column("Toolchain", style="magenta")
    table.add_column("Build step")
    table.add_column("Launch strategy")
    for name, language in DEFAULT_LANGUAGES.items():
        table.add_row(
            name,
            language.compiler,
            "no" if language.skip_compile else "yes",
            strategy_for(language).value,
        )
    _CONSOLE.print(table)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `tcr` CLI command handler.

    Example:
        ```python
        code = main(["run", "sol.py", "-l", "python", "--input", "1 2"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        setup_logging(args.log_level, log_file=args.log_file)
    except ValueError as exc:
        parser.error(str(exc))

    if args.command == "languages":
        _print_languages()
        return 0

    language = language_for(
        args.language,
        compiler=args.compiler,
        args=getattr(args, "args", None),
        skip_compile=args.skip_compile,
    )

    if args.command == "clean":
        if delete_binary(language, args.artifact):
            _CONSOLE.print(Panel.fit(f"Deleted {args.artifact}", style="bold green"))
        else:
            _CONSOLE.print(Panel.fit(f"Nothing deleted for {args.artifact}", style="bold yellow"))
        return 0

    if args.command == "run":
        try:
            runner = build_runner(args)
            request = ExecutionRequest(
                language=language,
                artifact_path=args.artifact,
                input=_read_input(args),
                input_file_name=args.input_file_name,
                output_file_name=args.output_file_name,
            )
            result = _run_interruptibly(runner, request)
        except (RunnerError, OSError) as exc:
            _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {exc}", border_style="red"))
            return 2
        if args.json:
            sys.stdout.write(json.dumps(result.to_dict()) + "\n")
        else:
            _print_result(result)
        return 0 if result.ok else 1

    parser.error("Unhandled command")
    return 2
