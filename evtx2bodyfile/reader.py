"""EVTX container access, record iteration, and input path expansion."""

import glob
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Generator

from evtx import PyEvtxParser

from evtx2bodyfile.timestamps import parse_decoder_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceRecord:
    event_record_id: int | None
    timestamp: datetime | None   # decoder's own timestamp, not the in-record SystemTime
    data: str                    # record rendered as XML


def open_parser(path: str) -> PyEvtxParser:
    """Open *path* with the EVTX decoder.

    Raises whatever the decoder raises for unreadable or non-EVTX files
    (OSError, RuntimeError).
    """
    return PyEvtxParser(path)


def _decoded(records, path: str, level: int = logging.WARNING) -> Generator[dict | None, None, None]:
    """Yield decoder record dicts, None for each record that failed to decode.

    The decoder reports a bad record either by raising RuntimeError or by
    yielding the exception object in place of the record.
    """
    while True:
        try:
            record = next(records)
        except StopIteration:
            return
        except RuntimeError as e:
            record = e
        if isinstance(record, Exception):
            logger.log(level, "%s: failed to decode record: %s", path, record)
            yield None
            continue
        yield record


def count_records(path: str) -> int:
    """Count records with a full pre-scan pass. Failed records count too."""
    return sum(1 for _ in _decoded(open_parser(path).records(), path, logging.DEBUG))


def iter_records(path: str) -> Generator[SourceRecord | None, None, None]:
    """Open *path* and return a generator of its records; None marks undecodable ones.

    The file is opened before this returns, so open errors surface here and
    not on the first iteration.
    """
    return _source_records(_decoded(open_parser(path).records(), path))


def _source_records(decoded) -> Generator[SourceRecord | None, None, None]:
    for raw in decoded:
        if raw is None:
            yield None
            continue
        yield SourceRecord(
            event_record_id=raw.get("event_record_id"),
            timestamp=parse_decoder_timestamp(raw.get("timestamp")),
            data=raw["data"],
        )


def expand_paths(raw_paths: list[str]) -> list[str]:
    """Expand globs and deduplicate, keeping the given order.

    Plain paths are passed through even if they do not exist, so the driver
    can report them per file. Raises FileNotFoundError if a glob-only input
    matches nothing at all.
    """
    expanded = []
    seen = set()

    for raw in raw_paths:
        if any(c in raw for c in ("*", "?", "[")):
            candidates = sorted(glob.glob(raw))
            if not candidates:
                logger.warning("No files match %s", raw)
        else:
            candidates = [raw]
        for path in candidates:
            if path not in seen:
                seen.add(path)
                expanded.append(path)

    if not expanded:
        raise FileNotFoundError("No EVTX files found matching the given paths")

    return expanded
