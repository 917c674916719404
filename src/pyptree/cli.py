"""Command-line entry point for pyptree."""

import argparse
import io
import logging
import sys
from collections.abc import Sequence
from typing import TextIO

from pyptree.app import ProcessTreeApp
from pyptree.config import Settings
from pyptree.errors import EnumerationError
from pyptree.index import ProcessIndex, ProcessIndexBuilder
from pyptree.render import TreeRenderer
from pyptree.source import ProcessSource, PsutilProcessSource

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pyptree",
        description="Print the processes visible to the current user as a tree.",
    )
    parser.add_argument(
        "--root",
        type=int,
        metavar="PID",
        help="Pid to root the tree at (default: the platform's first process)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Threads used to read process attributes (default: 1)",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        default=None,
        help="Also collect memory, thread and status metrics",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Browse the snapshot in a terminal UI instead of printing it",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log degraded process attributes to stderr",
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Merge environment settings with command-line overrides."""
    settings = Settings.from_env()
    if args.root is not None:
        settings.root_pid = args.root
    if args.workers is not None:
        settings.workers = max(1, args.workers)
    if args.metrics is not None:
        settings.collect_metrics = args.metrics
    return settings


def take_snapshot(source: ProcessSource, settings: Settings) -> ProcessIndex:
    """Build the process index for one run."""
    builder = ProcessIndexBuilder(
        source,
        workers=settings.workers,
        collect_metrics=settings.collect_metrics,
    )
    return builder.build()


def run_interactive(index: ProcessIndex, root_pid: int | None) -> None:
    """Open the Textual browser on a snapshot."""
    ProcessTreeApp(index, root_pid).run()


def utf8_stdout() -> TextIO:
    """
    Get sys.stdout switched to UTF-8.

    Characters the locale cannot encode would otherwise abort the write.
    """
    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding="utf-8", errors="backslashreplace")
    return sys.stdout


def main(
    argv: Sequence[str] | None = None,
    source: ProcessSource | None = None,
    stdout: TextIO | None = None,
) -> int:
    """
    Entry point for pyptree.

    Returns:
        0 on success (including a snapshot without a root process), 1 if the
        process table cannot be enumerated or the output cannot be written,
        2 for invalid configuration.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )

    try:
        settings = resolve_settings(args)
    except ValueError as exc:
        parser.error(str(exc))

    source = source if source is not None else PsutilProcessSource()
    stdout = stdout if stdout is not None else utf8_stdout()

    try:
        index = take_snapshot(source, settings)
    except EnumerationError as exc:
        print(f"pyptree: enumeration failed: {exc}", file=sys.stderr)
        return 1
    logger.debug("Indexed %d processes, root pid %s", len(index), settings.root_pid)

    if args.interactive:
        run_interactive(index, settings.root_pid)
        return 0

    try:
        TreeRenderer(index, settings.root_pid).write(stdout)
    except (OSError, UnicodeEncodeError) as exc:
        print(f"pyptree: cannot write output: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
