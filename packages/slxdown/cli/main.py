"""Command-line interface for slxdown.

Rewrites the release recorded in .slx/.sldd/.mldatx containers so that an
older application release will open them.
"""

from __future__ import annotations

import argparse
from collections.abc import Mapping, Sequence
import logging
from pathlib import Path
import sys

from rich.console import Console
from rich.markup import escape

from slxdown.core.config.loader import load_app_config
from slxdown.core.config.models import AppConfig, ConversionConfig
from slxdown.core.conversion import (
    ConversionError,
    TraversalError,
    convert_one,
    iter_convert_tree,
)
from slxdown.core.utils.logging import configure_logging

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)
logger = logging.getLogger(__name__)

_EXAMPLES = """\
Examples:
  slxdown --r2023b model.slx                  # Convert a single file
  slxdown --r2022b data.sldd                  # Convert a single file
  slxdown --r2023a -d folder_with_archives    # Convert all containers in a directory
"""


def build_arg_parser(release_map: Mapping[str, str]) -> argparse.ArgumentParser:
    """Build argument parser for CLI.

    One ``--<flag>`` option is generated per release map entry; exactly one
    release option (or ``--release``) must be given.
    """
    p = argparse.ArgumentParser(
        prog="slxdown",
        description="Rewrite the release recorded in .slx, .sldd and .mldatx files",
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("path", help="Input .slx/.sldd/.mldatx file or directory")
    p.add_argument(
        "-d",
        "--directory",
        action="store_true",
        help="Process all container files in a directory recursively",
    )

    release = p.add_mutually_exclusive_group(required=True)
    for flag, token in sorted(release_map.items()):
        release.add_argument(
            f"--{flag}",
            dest="release",
            action="store_const",
            const=token,
            help=f"Set output to {token}",
        )
    release.add_argument(
        "--release",
        dest="release",
        metavar="TOKEN",
        help="Set output to an arbitrary release token",
    )

    p.add_argument("--config", help="Path to app config (.json, .yaml or .yml)")
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=None,
        help="Override the configured log level",
    )
    p.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    return p


def _preparse_config_path(argv: Sequence[str]) -> str | None:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config")
    known, _ = pre.parse_known_args(argv)
    return known.config


def run_single(path: Path, version_token: str, config: ConversionConfig) -> int:
    """Convert one file. Returns the process exit code."""
    try:
        out = convert_one(
            path,
            version_token,
            documents=config.metadata_documents,
            field_names=config.version_fields,
        )
    except ConversionError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e.cause))}")
        return 1
    console.print(f"Created: {escape(str(out))}")
    return 0


def run_directory(root: Path, version_token: str, config: ConversionConfig) -> int:
    """Convert every container under ``root``. Returns the process exit code.

    Each file is reported as soon as it has been converted. Per-file
    failures do not change the exit code; only a traversal failure does.
    """
    converted = failed = 0
    outcomes = iter_convert_tree(
        root,
        version_token,
        extensions=config.container_extensions,
        documents=config.metadata_documents,
        field_names=config.version_fields,
    )
    try:
        for outcome in outcomes:
            console.print(f"Processing: {escape(str(outcome.path))}")
            if outcome.success:
                converted += 1
                console.print(f"Created: {escape(str(outcome.output_path))}")
            else:
                failed += 1
                err_console.print(
                    f"[red]Error processing {escape(str(outcome.path))}:[/red] "
                    f"{escape(outcome.error or 'unknown error')}"
                )
    except TraversalError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1

    console.print(f"\n[bold]{converted} of {converted + failed} files converted[/bold]")
    if failed:
        console.print(f"[yellow]{failed} failed[/yellow]")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for CLI."""
    argv = list(sys.argv[1:] if argv is None else argv)

    try:
        app_config: AppConfig = load_app_config(_preparse_config_path(argv))
    except (OSError, ValueError) as e:
        err_console.print(f"[red]ERROR: Could not load config: {escape(str(e))}[/red]")
        return 1

    p = build_arg_parser(app_config.conversion.release_map)
    args = p.parse_args(argv)
    if not args.release.strip():
        p.error("release token must not be empty")

    log_cfg = app_config.logging
    configure_logging(
        level=args.log_level or log_cfg.level,
        format_string=log_cfg.format,
        filename=log_cfg.filename,
        structured=args.json_logs or log_cfg.structured,
    )
    logger.debug("Target release: %s", args.release)

    path = Path(args.path)
    if not path.exists():
        err_console.print(f"[red]Error:[/red] {escape(str(path))} does not exist")
        return 1

    if path.is_dir():
        if not args.directory:
            err_console.print(
                f"[red]Error:[/red] {escape(str(path))} is a directory. "
                "Use -d or --directory to process directories."
            )
            p.print_usage(sys.stderr)
            return 1
        return run_directory(path, args.release, app_config.conversion)

    return run_single(path, args.release, app_config.conversion)


if __name__ == "__main__":
    sys.exit(main())
