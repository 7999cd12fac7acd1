#!/usr/bin/env python3
"""evtx2bodyfile: convert Windows event logs to bodyfile lines or JSON documents."""

import argparse
import logging
import sys

from evtx2bodyfile.config import load_config, load_yaml_config
from evtx2bodyfile.driver import BatchDriver
from evtx2bodyfile.reader import expand_paths

LOG_FORMAT = "%(asctime)s [evtx2bodyfile] %(levelname)s %(message)s"

# -q/-v steps around the default WARNING level
_LEVELS = [logging.CRITICAL, logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evtx2bodyfile",
        description="Convert EVTX files to bodyfile lines (or JSON documents for a search index).",
    )
    parser.add_argument(
        "evtx_files",
        nargs="+",
        help="EVTX file path(s) or glob pattern(s)",
    )
    parser.add_argument(
        "-J", "--json",
        dest="json_output",
        action="store_true",
        help="Output JSON for elasticsearch instead of bodyfile",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="More log output (repeatable)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="count",
        default=0,
        help="Less log output (repeatable)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file",
    )
    parser.add_argument(
        "--timestamp-format",
        default=None,
        help="strptime format of TimeCreated/@SystemTime (default: %%Y-%%m-%%d %%H:%%M:%%S.%%f %%Z; "
             "decoders that render RFC 3339 need %%Y-%%m-%%dT%%H:%%M:%%S.%%fZ)",
    )
    parser.add_argument(
        "--lenient-timestamps",
        action="store_true",
        help="Warn instead of aborting when a SystemTime does not re-encode to its original text",
    )
    parser.add_argument(
        "--no-channel",
        action="store_true",
        help="Do not collect the Channel (and do not require it)",
    )
    parser.add_argument(
        "--no-activity-id",
        action="store_true",
        help="Do not collect Correlation/@ActivityID",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop processing all files after the first fatal error",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not show a progress bar (skips the record pre-count)",
    )
    return parser


def log_level(verbose: int, quiet: int) -> int:
    index = _LEVELS.index(logging.WARNING) + verbose - quiet
    return _LEVELS[max(0, min(index, len(_LEVELS) - 1))]


def run(args) -> int:
    """Process all files named in *args*; return the process exit code."""
    try:
        config = load_config(args, load_yaml_config(args.config))
    except (ValueError, TypeError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        paths = expand_paths(args.evtx_files)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1

    driver = BatchDriver(config)
    stats = driver.process_files(paths)

    logger.info("Done: %d lines written, %d records skipped, %d undecodable, %d file(s)",
                stats.written, stats.skipped, stats.decode_errors, len(stats.files))
    return stats.exit_code


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=log_level(args.verbose, args.quiet),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    return run(args)


def entry_point():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)


if __name__ == "__main__":
    entry_point()
