"""Command-line interface for hydrodiagram render/layout workflows."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .layout import compute_layout
from .model import HydroDiagramError, Network
from .render import LAYOUT_MODES, render_network
from .resources import load_format_reference

logger = logging.getLogger(__name__)

SUBCOMMANDS = "render, layout, format"


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
        prog="hydrodiagram",
        description="Lay out hydraulic pipe networks and render them to SVG.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    render_parser = subparsers.add_parser("render", help="Render a network JSON file to SVG")
    render_parser.add_argument("input", nargs="?", help="Input network .json file")
    render_parser.add_argument("--text", help="Raw network JSON")
    render_parser.add_argument("--stdout", action="store_true", help="Write SVG to stdout")
    render_parser.add_argument("-o", "--output", help="Output .svg path")
    render_parser.add_argument(
        "--no-labels", action="store_true", help="Omit node captions and pipe labels"
    )
    render_parser.add_argument(
        "--layout",
        choices=list(LAYOUT_MODES),
        default="auto",
        help="auto: keep supplied positions when complete; always: recompute; never: use supplied only",
    )

    layout_parser = subparsers.add_parser("layout", help="Print computed levels and positions as JSON")
    layout_parser.add_argument("input", nargs="?", help="Input network .json file")
    layout_parser.add_argument("--text", help="Raw network JSON")

    subparsers.add_parser("format", help="Print the network JSON format reference")

    return parser


def _read_input(path: Optional[str], text: Optional[str]) -> tuple[str, str, Optional[Path]]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>", None

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
            return input_path.read_text(encoding="utf-8"), str(input_path), input_path
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
            hint="Pipe network JSON into stdin.",
            exit_code=2,
        )
    return data, "<stdin>", None


def _load_network(source: str, source_name: str) -> Network:
    try:
        raw = json.loads(source)
    except json.JSONDecodeError as exc:
        raise CliError(
            "E_PARSE_JSON",
            f"failed to parse JSON: {exc.msg}",
            hint="Ensure the input is a single well-formed JSON object.",
            exit_code=2,
            file=source_name,
            line=exc.lineno,
            column=exc.colno,
        )
    return Network.from_dict(raw)


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, HydroDiagramError):
        return CliError(
            exc.code,
            exc.message,
            hint="Check node/edge ids and options in the network JSON.",
            exit_code=3,
            retryable=True,
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


def _handle_render(args: argparse.Namespace) -> int:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )

    source, source_name, source_path = _read_input(args.input, args.text)
    network = _load_network(source, source_name)
    options = network.options
    if args.no_labels:
        options = dataclasses.replace(options, show_labels=False)
    svg_text = render_network(network, options, layout=args.layout)
    logger.debug(f"Rendered {len(network.nodes)} node(s), {len(network.edges)} edge(s) from {source_name}")

    if args.stdout or (source_path is None and not args.output):
        sys.stdout.write(svg_text)
        if not svg_text.endswith("\n"):
            sys.stdout.write("\n")
        return 0

    output_path = Path(args.output) if args.output else source_path.with_suffix(".svg")
    _write_text(output_path, svg_text)
    print(f"Wrote {output_path}")
    return 0


def _handle_layout(args: argparse.Namespace) -> int:
    source, source_name, _source_path = _read_input(args.input, args.text)
    network = _load_network(source, source_name)
    result = compute_layout(network.nodes, network.edges)
    payload = {
        "width": result.width,
        "height": result.height,
        "levels": result.levels,
        "columns": {str(level): members for level, members in result.columns().items()},
        "positions": {
            node_id: {"x": point.x, "y": point.y} for node_id, point in result.positions.items()
        },
    }
    print(json.dumps(payload, indent=2))
    return 0


def _attach_debug_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger = logging.getLogger(__package__)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    return handler


def _detach_debug_handler(handler: Optional[logging.Handler]) -> None:
    if handler is None:
        return
    package_logger = logging.getLogger(__package__)
    package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {SUBCOMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("HYDRODIAGRAM_DEBUG") == "1"
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    handler = _attach_debug_handler() if debug_enabled else None
    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "render":
            return _handle_render(args)
        if args.command == "layout":
            return _handle_layout(args)
        if args.command == "format":
            print(load_format_reference())
            return 0

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {SUBCOMMANDS}.",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint=f"Use subcommands: {SUBCOMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code
    finally:
        _detach_debug_handler(handler)


if __name__ == "__main__":
    raise SystemExit(main())
