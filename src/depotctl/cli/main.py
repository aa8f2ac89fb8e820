#!/usr/bin/env python3
"""Entry point for the depotctl CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Iterable, NoReturn

from depotctl.adapters.host import LocalHost
from depotctl.adapters.server_backend import ServerBackend
from depotctl.app.dispatcher import DispatchOutcome
from depotctl.app.help import USAGE, render_help, version_banner
from depotctl.app.pipeline import Runtime, run_invocation
from depotctl.cli.pager import page_text
from depotctl.domain.actions import REGISTRY, Action
from depotctl.domain.errors import ArgumentValidationError, UnknownActionError
from depotctl.domain.request import OptionSet
from depotctl.settings import ConfigError, RuntimeSettings, load_settings
from depotctl.utils.log_config import LogConfig, configure_logging

logger = logging.getLogger("depotctl.cli")

_BOOLEAN_OPTIONS = ("quiet", "verbose", "debug", "no_puppy_notification", "puppies", "force", "freeze")
_VALUE_OPTIONS = ("admin", "expiration")


class _ArgumentParser(argparse.ArgumentParser):
    """Reports malformed flags as validation errors."""

    def error(self, message: str) -> NoReturn:
        raise ArgumentValidationError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="depotctl",
        usage="depotctl <action> [target ...] [options]",
        add_help=False,
    )
    parser.add_argument("action", nargs="?", help="Action name or alias")
    parser.add_argument("targets", nargs="*", help="Packages, receipts or files to act on")
    parser.add_argument("-H", "--help", action="store_true", help="Show help and exit")
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--quiet", action="store_true", help="Only report errors")
    parser.add_argument("--verbose", action="store_true", help="Report progress")
    parser.add_argument("--debug", action="store_true", help="Report everything (implies --verbose)")
    parser.add_argument(
        "--no-puppy-notification",
        dest="no_puppy_notification",
        action="store_true",
        help="Do not notify the user about pending reboots",
    )
    parser.add_argument("--puppies", action="store_true", help="Act on pending-reboot packages")
    parser.add_argument("--force", action="store_true", help="Bypass installed and cache checks")
    parser.add_argument("--freeze", action="store_true", help="Freeze installed packages")
    parser.add_argument("--admin", help="Admin name to attribute the action to")
    parser.add_argument("--expiration", help="Custom pilot expiration in days")
    return parser


def decode_options(args: argparse.Namespace) -> OptionSet:
    options = OptionSet()
    for name in _BOOLEAN_OPTIONS:
        if getattr(args, name, False):
            options.set(name, True)
    if getattr(args, "debug", False):
        options.set("verbose", True)
    for name in _VALUE_OPTIONS:
        value = getattr(args, name, None)
        if value is not None:
            options.set(name, value)
    return options


def build_runtime(settings: RuntimeSettings, log_config: LogConfig) -> Runtime:
    return Runtime(
        settings=settings,
        log_config=log_config,
        host=LocalHost(),
        backend=ServerBackend(settings),
    )


def _format_rows(rows: Iterable[dict[str, Any]]) -> list[str]:
    rows = list(rows)
    if not rows:
        return ["(none)"]
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    cells = [[_cell(row.get(col)) for col in columns] for row in rows]
    widths = [max(len(col), *(len(line[idx]) for line in cells)) for idx, col in enumerate(columns)]
    header = "  ".join(col.ljust(widths[idx]) for idx, col in enumerate(columns)).rstrip()
    lines = [header, "  ".join("-" * width for width in widths)]
    for line in cells:
        lines.append("  ".join(value.ljust(widths[idx]) for idx, value in enumerate(line)).rstrip())
    return lines


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _render_outcome(outcome: DispatchOutcome) -> int:
    if outcome.action is Action.HELP:
        return page_text(str(outcome.payload))
    if isinstance(outcome.payload, list):
        print("\n".join(_format_rows(outcome.payload)))
    elif outcome.payload is not None:
        print(outcome.payload)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_intermixed_args(sys.argv[1:] if argv is None else argv)
    except ArgumentValidationError as exc:
        print(f"depotctl: {exc}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 1

    if args.version:
        print(version_banner())
        return 0

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"depotctl: {exc}", file=sys.stderr)
        return 1

    log_config = LogConfig.from_flags(
        quiet=args.quiet,
        verbose=args.verbose,
        debug=args.debug,
        diagnostic_log=settings.diagnostic_log,
    )
    configure_logging(log_config)

    if args.help:
        return page_text(render_help(REGISTRY, [args.action] if args.action else []))
    if not args.action:
        print(USAGE, file=sys.stderr)
        print("Run `depotctl help` for the list of actions.", file=sys.stderr)
        return 1

    runtime = build_runtime(settings, log_config)
    try:
        outcome = run_invocation(runtime, args.action, decode_options(args), args.targets)
    except UnknownActionError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        logger.debug("backtrace", exc_info=True)
        print(USAGE, file=sys.stderr)
        return 1
    except Exception as exc:  # noqa: BLE001
        logger.error("%s: %s", type(exc).__name__, exc)
        logger.debug("backtrace", exc_info=True)
        return 1
    return _render_outcome(outcome)


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
