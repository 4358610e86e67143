"""CLI entry point for the packet fixer workbench."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import tomllib
from pathlib import Path

from mcpacketfix.config import (
    CONFIG_FILE,
    DATA_DIR,
    AppConfig,
    ConfigError,
    load_config,
)
from mcpacketfix.console import Workbench
from mcpacketfix.fixer import PacketFixer
from mcpacketfix.normalizer import NormalizationRecord, normalize
from mcpacketfix.repl import execute_line, run_repl

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mcpacketfix",
        description=(
            "Normalize hover event UUIDs in chat components and try out"
            " dig packet sanitization"
        ),
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="Chat component JSON file to normalize ('-' for stdin)",
    )
    parser.add_argument(
        "-c",
        "--command",
        help="Execute a single workbench command and exit (non-interactive mode)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_FILE,
        help=f"Configuration file (default: {CONFIG_FILE})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Log every fix and every swallowed failure",
    )
    parser.add_argument(
        "--no-int-array",
        action="store_true",
        default=False,
        help="Leave int array UUID payloads untouched",
    )
    parser.add_argument(
        "--no-uuid-object",
        action="store_true",
        default=False,
        help="Leave most/least UUID object payloads untouched",
    )
    parser.add_argument(
        "--no-audit-log",
        action="store_true",
        default=False,
        help="Do not append fixes to the handled-errors log",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Load the config file and apply command-line overrides."""
    try:
        config = load_config(args.config)
    except (tomllib.TOMLDecodeError, ConfigError) as e:
        print(f"Error: invalid config file {args.config}: {e}", file=sys.stderr)
        sys.exit(1)

    normalization = config.normalization
    if args.no_int_array:
        normalization = dataclasses.replace(normalization, convert_int_array=False)
    if args.no_uuid_object:
        normalization = dataclasses.replace(normalization, convert_uuid_object=False)

    audit_log = config.audit_log
    if args.no_audit_log:
        audit_log = dataclasses.replace(audit_log, enabled=False)

    return dataclasses.replace(
        config,
        debug=config.debug or args.debug,
        normalization=normalization,
        audit_log=audit_log,
    )


def read_document(path_arg: str) -> str:
    """Read a chat component from a file, or stdin for '-'."""
    if path_arg == "-":
        return sys.stdin.read()
    try:
        return Path(path_arg).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {path_arg}: {e}", file=sys.stderr)
        sys.exit(1)


def normalize_document(fixer: PacketFixer, text: str) -> str:
    """Normalize one document, reporting each fix on stderr."""
    if not fixer.normalization_enabled:
        print("Hover event normalization is disabled via configuration.", file=sys.stderr)
        return text

    def _report(record: NormalizationRecord) -> None:
        fixer.record_fix(record)
        print(
            f"{record.original_payload} -> {record.normalized_uuid}",
            file=sys.stderr,
        )

    return normalize(text, fixer.options, _report)


def main() -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    config = resolve_config(args)
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format=_LOG_FORMAT,
    )

    if not config.enabled:
        print("Plugin disabled via configuration. Nothing to do.", file=sys.stderr)
        return

    fixer = PacketFixer.from_config(config, DATA_DIR)

    # File mode: normalize one document and exit
    if args.file is not None:
        result = normalize_document(fixer, read_document(args.file))
        sys.stdout.write(result if result.endswith("\n") else result + "\n")
        return

    workbench = Workbench(fixer.options, record_sink=fixer.record_fix)

    # Non-interactive mode: run single command and exit
    if args.command:
        if not execute_line(workbench, args.command):
            sys.exit(1)
        return

    # Interactive mode
    print("mcpacketfix workbench")
    print("Type 'help' for commands, Ctrl+D or 'exit' to quit.\n")
    run_repl(workbench)
