"""
Command-line front door for Treefind.

Parses CLI options, merges them with the optional YAML configuration file and
runs the filesystem walker. Matches go to stdout one per line, diagnostics to
stderr. This is the only place where errors become exit codes.
"""

import argparse
import logging
import os
import sys
from enum import IntEnum
from typing import List, Optional, TextIO

from . import __version__
from .config.parser import create_config_template, load_config
from .errors import ConfigurationError, RootNotFoundError
from .tools.fs_walker import FSWalker


logger = logging.getLogger(__name__)

PROG = "treefind"


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Recursively list the entries below ROOT that match every given filter.",
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        help="Directory to search from (default: the configured root, or the current directory).",
    )
    parser.add_argument(
        "--type",
        dest="type",
        default=None,
        help="Entry kind to report: f (file, default), d (directory) or s (symlink).",
    )
    parser.add_argument(
        "--size",
        default=None,
        help="Regular file size: [+-]N[KMG]; + at least, - at most.",
    )
    parser.add_argument("--name", default=None, help="Glob pattern the entry name must match.")
    parser.add_argument("--iname", default=None, help="Like --name, ignoring case.")
    parser.add_argument("--regex", default=None, help="Regular expression searched in the entry name.")
    parser.add_argument("--depth", type=int, default=None, help="Maximum number of directory levels to descend.")
    parser.add_argument("--config", metavar="FILE", default=None, help="YAML file with default options.")
    parser.add_argument("--strict", action="store_true", help="Treat configuration warnings as errors.")
    parser.add_argument("--write-config", metavar="FILE", default=None, help="Write a configuration template and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug information to stderr.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _attach_hyphen_values(argv: List[str]) -> List[str]:
    """
    Join ``--size -10M`` into ``--size=-10M``.

    argparse reads a separate ``-10M`` as an option, while a negative size
    is an ordinary value for ``--size``.
    """
    joined = []
    args = iter(argv)
    for arg in args:
        if arg == "--size":
            value = next(args, None)
            if value is None:
                joined.append(arg)
            elif value.startswith("-"):
                joined.append(f"{arg}={value}")
            else:
                joined.extend([arg, value])
        else:
            joined.append(arg)
    return joined


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _print_error(stream: TextIO, message: object) -> None:
    print(f"{PROG}: {message}", file=stream)


def _write_path(stream: TextIO, path: str) -> None:
    """Write a matched path, keeping undecodable bytes intact on real streams."""
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        stream.write(path + "\n")
        return
    stream.flush()
    buffer.write(os.fsencode(path) + b"\n")


def main(argv: Optional[List[str]] = None,
         stdout: Optional[TextIO] = None,
         stderr: Optional[TextIO] = None) -> int:
    """
    Parse CLI arguments, run the search and return the exit status.

    ``stdout`` and ``stderr`` default to the process streams and are mainly
    for tests.
    """
    stdout = stdout if stdout is not None else sys.stdout
    stderr = stderr if stderr is not None else sys.stderr

    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(_attach_hyphen_values(list(argv)))
    _configure_logging(args.verbose)

    if args.write_config is not None:
        try:
            create_config_template(args.write_config)
        except ConfigurationError as e:
            _print_error(stderr, e)
            return ExitCode.ERROR
        return ExitCode.SUCCESS

    overrides = {
        "root": args.root,
        "type": args.type,
        "size": args.size,
        "name": args.name,
        "iname": args.iname,
        "regex": args.regex,
        "depth": args.depth,
    }

    try:
        result = load_config(args.config, overrides=overrides, strict_mode=args.strict)
    except ConfigurationError as e:
        _print_error(stderr, e)
        return ExitCode.ERROR

    for warning in result.warnings:
        logger.warning(warning)

    config = result.config
    walker = FSWalker(
        config.root,
        config.to_predicate_set(),
        diagnostic_sink=lambda diagnostic: _print_error(stderr, diagnostic),
    )

    try:
        for path in walker.walk():
            _write_path(stdout, path)
    except RootNotFoundError as e:
        _print_error(stderr, e)
        return ExitCode.ERROR

    stdout.flush()
    logger.info(f"Search finished: {walker.get_stats()}")
    return ExitCode.SUCCESS
