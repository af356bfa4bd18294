# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command-line interface for the include crawler.

Subcommands:
- crawl: Build the include graph of a tree and print a report
- list: Print the files discovery would crawl

Exit codes:
- 0: Success (cycles and unresolved includes are not failures)
- 1: Fatal error (root missing or unreadable, report or log dir not writable)
- 2: Usage error (bad arguments or configuration)
"""

import argparse
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from include_crawler import __version__
from include_crawler.config import CONFIG_FILENAME, Config, ConfigurationError
from include_crawler.crawler import CrawlFatalError, IncludeCrawler
from include_crawler.discovery import list_relevant_files, parse_extensions
from include_crawler.logging_setup import LOG_LEVELS, parse_log_level, setup_logging
from include_crawler.reporter import OutputFormat, render

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


def _add_discovery_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--ignore",
        action="append",
        default=None,
        metavar="PATTERN",
        help="fnmatch pattern for paths to skip (repeatable)",
    )
    parser.add_argument(
        "--exts",
        default=None,
        metavar="CSV",
        help="Comma-separated file extensions to crawl. Default: c,h,hh,hpp,hxx,inc",
    )
    parser.add_argument(
        "--follow-symlinks",
        action="store_true",
        default=None,
        help="Descend into symlinked directories",
    )


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="include-crawler",
        description="Build the #include dependency graph of a C/C++ source tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl = subparsers.add_parser("crawl", help="Crawl a tree and report its include graph")
    crawl.add_argument("root", type=Path, help="Root directory of the source tree")
    crawl.add_argument(
        "-I",
        dest="include_dirs",
        action="append",
        default=[],
        metavar="DIR",
        help="Include search directory, in precedence order (repeatable)",
    )
    crawl.add_argument(
        "--format",
        dest="output_format",
        choices=OutputFormat.ALL,
        default=None,
        help="Report format. Default: text (or output_format from the config file)",
    )
    crawl.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write the report to FILE instead of stdout",
    )
    crawl.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="FILE",
        help=f"Configuration file. Default: <root>/{CONFIG_FILENAME} if present",
    )
    _add_discovery_arguments(crawl)
    crawl.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="N",
        help="Number of scan threads (1-64). Default: 8",
    )
    crawl.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Console log level. Default: WARNING",
    )
    crawl.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        metavar="DIR",
        help="Also write JSON-lines logs to DIR",
    )

    list_parser = subparsers.add_parser("list", help="List the files that would be crawled")
    list_parser.add_argument("roots", nargs="+", type=Path, help="Root directories")
    _add_discovery_arguments(list_parser)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    return build_parser().parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Build the effective configuration for a crawl.

    Raises:
        ConfigurationError: If an explicit config file is missing or a flag is invalid.
    """
    overrides: Dict[str, Any] = {
        "output_format": args.output_format,
        "ignore_patterns": args.ignore,
        "follow_symlinks": args.follow_symlinks,
        "max_workers": args.workers,
    }
    if args.exts is not None:
        overrides["extensions"] = sorted(parse_extensions(args.exts))

    if args.config is not None:
        return Config(args.config, overrides=overrides, required=True)
    return Config(args.root / CONFIG_FILENAME, overrides=overrides)


def write_report(path: Path, report: str) -> None:
    """Write a report through a temporary sibling file.

    The target is replaced only once the whole report is on disk, so an
    interrupted write never leaves a truncated report behind.

    Raises:
        OSError: If the directory is missing or the file cannot be written.
    """
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(report)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def run_crawl(args: argparse.Namespace) -> int:
    try:
        setup_logging(log_dir=args.log_dir, log_level=parse_log_level(args.log_level))
    except OSError as e:
        print(
            f"include-crawler: error: cannot write logs to {args.log_dir}: {e}", file=sys.stderr
        )
        return EXIT_FATAL

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"include-crawler: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    crawler = IncludeCrawler(config)
    try:
        result = crawler.crawl(str(args.root), search_paths=[str(d) for d in args.include_dirs])
    except CrawlFatalError as e:
        print(f"include-crawler: error: {e}", file=sys.stderr)
        return EXIT_FATAL

    report = render(result.graph, result.root, config.output_format)

    if args.output is None:
        sys.stdout.write(report)
        return EXIT_OK

    try:
        write_report(args.output, report)
    except OSError as e:
        print(f"include-crawler: error: cannot write {args.output}: {e}", file=sys.stderr)
        return EXIT_FATAL
    logger.info(f"Wrote {config.output_format} report to {args.output}")
    return EXIT_OK


def run_list(args: argparse.Namespace) -> int:
    setup_logging(log_level=logging.WARNING)
    files = list_relevant_files(
        [str(root) for root in args.roots],
        extensions=parse_extensions(args.exts),
        ignore_patterns=args.ignore or [],
        follow_symlinks=bool(args.follow_symlinks),
    )
    for path in files:
        print(path)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the include-crawler command.

    Returns:
        Process exit code.
    """
    args = parse_args(argv)
    if args.command == "list":
        return run_list(args)
    return run_crawl(args)


if __name__ == "__main__":
    sys.exit(main())
