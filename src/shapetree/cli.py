"""Command-line interface for compiling templates and diffing renders."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LayoutConfig
from .diff import summarize
from .shape import ShapeFactory
from .structure import ConfigurationError, MarkupError, Offset, ShapeTreeError
from .surface import MemoryContainer

SUBCOMMANDS_HINT = "Use one of: compile, diff."


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="shapetree",
        description="Lay out markup templates as shape trees and diff successive renders.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log degradations and patch summaries")

    subparsers = parser.add_subparsers(dest="command")

    compile_parser = subparsers.add_parser("compile", help="Resolve a template into a positioned shape tree")
    _add_template_args(compile_parser)
    compile_parser.add_argument("--data", help="Template data as a JSON object")
    compile_parser.add_argument("--data-file", help="Path to a JSON file with template data")
    compile_parser.add_argument("-o", "--output", help="Write the tree JSON to this path")

    diff_parser = subparsers.add_parser("diff", help="Diff two renders of a template and show the patch calls")
    _add_template_args(diff_parser)
    diff_parser.add_argument("--before", help="Data of the previous render (JSON object)")
    diff_parser.add_argument("--before-file", help="Path to JSON data of the previous render")
    diff_parser.add_argument("--after", help="Data of the new render (JSON object)")
    diff_parser.add_argument("--after-file", help="Path to JSON data of the new render")
    diff_parser.add_argument("-o", "--output", help="Write the diff JSON to this path")

    return parser


def _add_template_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", nargs="?", help="Template file")
    parser.add_argument("--text", help="Raw template markup")
    parser.add_argument("--x", type=float, default=0.0, help="Horizontal offset of the root")
    parser.add_argument("--y", type=float, default=0.0, help="Vertical offset of the root")
    parser.add_argument("--font-family", help="Font used to measure text without a character width")
    parser.add_argument("--font-path", help="Font file used to measure text")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger = logging.getLogger("shapetree")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False


def _read_template(path: Optional[str], text: Optional[str]) -> tuple[str, str]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>"

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(), str(input_path)
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Use a subcommand with FILE, --text, or pipe stdin.",
            exit_code=2,
        )

    data = sys.stdin.read()
    if not data.strip():
        raise CliError(
            "E_ARGS",
            "stdin was empty",
            hint="Pipe template markup into stdin.",
            exit_code=2,
        )
    return data, "<stdin>"


def _read_data(raw: Optional[str], path: Optional[str], flag: str) -> dict[str, Any]:
    if raw is not None and path:
        raise CliError(
            "E_ARGS",
            f"--{flag} cannot be combined with --{flag}-file",
            hint=f"Use either --{flag} or --{flag}-file.",
            exit_code=2,
        )
    source = f"--{flag}"
    if path:
        data_path = Path(path)
        try:
            raw = data_path.read_text()
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read data file: {data_path}",
                hint=str(exc),
                exit_code=2,
                file=str(data_path),
            )
        source = str(data_path)
    if raw is None:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CliError(
            "E_DATA_JSON",
            f"{source} is not valid JSON: {exc.msg}",
            hint="Pass template data as a JSON object.",
            exit_code=2,
            line=exc.lineno,
            column=exc.colno,
        )
    if not isinstance(data, dict):
        raise CliError(
            "E_DATA_JSON",
            f"{source} must be a JSON object",
            hint="Pass template data as a JSON object.",
            exit_code=2,
        )
    return data


def _factory(args: argparse.Namespace, template: str) -> ShapeFactory:
    config = LayoutConfig.from_env().with_overrides(font_family=args.font_family, font_path=args.font_path)
    return ShapeFactory(template, config=config, offset=Offset(args.x, args.y))


def _write_json(payload: Any, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if not output:
        sys.stdout.write(text + "\n")
        return
    path = Path(output)
    try:
        path.write_text(text + "\n")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )
    print(f"Wrote {path}")


def _handle_compile(args: argparse.Namespace) -> int:
    template, source_name = _read_template(args.input, args.text)
    data = _read_data(args.data, args.data_file, "data")
    try:
        tree = _factory(args, template).compile(data)
    except ShapeTreeError as exc:
        raise _error_from_exception(exc, source_name) from exc
    _write_json(tree.to_dict(), args.output)
    return 0


def _handle_diff(args: argparse.Namespace) -> int:
    template, source_name = _read_template(args.input, args.text)
    before = _read_data(args.before, args.before_file, "before")
    after = _read_data(args.after, args.after_file, "after")

    factory = _factory(args, template)
    container = MemoryContainer()
    try:
        factory.draw(before, container)
        container.reset_calls()
        stats = factory.update(after, container)
    except ShapeTreeError as exc:
        raise _error_from_exception(exc, source_name) from exc

    payload = {
        "diff": factory.last_diff.to_dict(),
        "summary": summarize(factory.last_diff),
        "calls": [{"call": call, "key": key} for call, key in container.calls],
        "skipped": stats.skipped,
    }
    _write_json(payload, args.output)
    return 0


def _error_from_exception(exc: Exception, source: Optional[str] = None) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, MarkupError):
        return CliError(
            exc.code,
            str(exc),
            hint="Ensure the rendered template is well-formed XML.",
            exit_code=2,
            file=source,
            line=exc.line,
            column=exc.column,
        )
    if isinstance(exc, ConfigurationError):
        return CliError(
            exc.code,
            str(exc),
            hint="style and attrs must hold a literal mapping such as {fill: '#fff', lineWidth: 2}.",
            exit_code=3,
            file=source,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "line": err.line,
            "column": err.column,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError("E_ARGS", "missing subcommand", hint=SUBCOMMANDS_HINT, exit_code=2)
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("SHAPETREE_DEBUG") == "1"
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format
        setup_logging(args.verbose)

        if args.command == "compile":
            return _handle_compile(args)
        if args.command == "diff":
            return _handle_diff(args)

        raise CliError("E_ARGS", "missing subcommand", hint=SUBCOMMANDS_HINT, exit_code=2)
    except UsageError as exc:
        err = CliError("E_ARGS", str(exc), hint=SUBCOMMANDS_HINT, exit_code=2)
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
