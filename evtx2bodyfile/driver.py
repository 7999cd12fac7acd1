"""Batch driver: runs every record of every input file through extractor and formatter."""

import logging
import os
import sys
import xml.sax
from dataclasses import dataclass, field
from typing import Callable, Iterable, TextIO

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from evtx2bodyfile.config import Config
from evtx2bodyfile.events import extract_record
from evtx2bodyfile.extractor import MissingFieldError
from evtx2bodyfile.formatter import get_formatter
from evtx2bodyfile.reader import SourceRecord, count_records, iter_records
from evtx2bodyfile.timestamps import TimestampFormatError

logger = logging.getLogger(__name__)


@dataclass
class FileStats:
    path: str
    opened: bool = True
    written: int = 0
    skipped: int = 0           # records missing a mandatory field or with malformed XML
    decode_errors: int = 0     # records the container decoder could not read
    fatal: str | None = None   # reason the file was aborted

    @property
    def total(self) -> int:
        return self.written + self.skipped + self.decode_errors


@dataclass
class RunStats:
    files: list[FileStats] = field(default_factory=list)

    @property
    def written(self) -> int:
        return sum(f.written for f in self.files)

    @property
    def skipped(self) -> int:
        return sum(f.skipped for f in self.files)

    @property
    def decode_errors(self) -> int:
        return sum(f.decode_errors for f in self.files)

    @property
    def fatal(self) -> bool:
        return any(f.fatal for f in self.files)

    @property
    def exit_code(self) -> int:
        return 1 if self.fatal else 0


class BatchDriver:
    def __init__(
        self,
        config: Config,
        out: TextIO | None = None,
        record_source: Callable[[str], Iterable[SourceRecord | None]] | None = None,
        record_counter: Callable[[str], int] | None = None,
    ):
        self._config = config
        self._options = config.extractor_options()
        self._formatter = get_formatter(config.output_format)
        self._out = out if out is not None else sys.stdout
        self._record_source = record_source or iter_records
        self._record_counter = record_counter or count_records

    def process_record(self, record: SourceRecord) -> str:
        """Extract and format one record. Extraction errors propagate."""
        normalized = extract_record(
            record.data,
            self._options,
            event_record_id=record.event_record_id,
            timestamp_hint=record.timestamp,
        )
        return self._formatter(normalized)

    def process_file(self, path: str) -> FileStats:
        stats = FileStats(path=path)
        try:
            total = self._record_counter(path) if self._config.show_progress else None
            records = iter(self._record_source(path))
        except (OSError, RuntimeError) as e:
            logger.error("Error while parsing %s: %s", path, e)
            stats.opened = False
            return stats

        with self._progress(path, total) as advance:
            try:
                for record in records:
                    self._handle(record, stats)
                    advance()
            except (OSError, RuntimeError) as e:
                # the decoder gave up on the rest of the file
                logger.error("Error while reading %s: %s", path, e)
            except TimestampFormatError as e:
                stats.fatal = str(e)
                logger.error("%s: %s; aborting this file", path, e)

        logger.info("%s: %d written, %d skipped, %d undecodable",
                    path, stats.written, stats.skipped, stats.decode_errors)
        return stats

    def process_files(self, paths: Iterable[str]) -> RunStats:
        run = RunStats()
        for path in paths:
            stats = self.process_file(path)
            run.files.append(stats)
            if stats.fatal and self._config.fail_fast:
                logger.error("Stopping after fatal error in %s", path)
                break
        return run

    def _handle(self, record: SourceRecord | None, stats: FileStats) -> None:
        if record is None:
            stats.decode_errors += 1
            return
        try:
            line = self.process_record(record)
        except (MissingFieldError, xml.sax.SAXParseException) as e:
            stats.skipped += 1
            logger.warning("%s: skipping record %s: %s", stats.path, record.event_record_id, e)
            return
        print(line, file=self._out)
        stats.written += 1

    def _progress(self, path: str, total: int | None):
        if total is None:
            return _NoProgress()
        return _FileProgress(os.path.basename(path), total)


class _NoProgress:
    def __enter__(self) -> Callable[[], None]:
        return lambda: None

    def __exit__(self, *exc) -> bool:
        return False


class _FileProgress:
    """Transient per-file progress bar on stderr."""

    def __init__(self, description: str, total: int):
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=Console(stderr=True),
            transient=True,
            refresh_per_second=10,
        )
        self._task = self._progress.add_task(description, total=total)

    def __enter__(self) -> Callable[[], None]:
        self._progress.start()
        return lambda: self._progress.advance(self._task)

    def __exit__(self, *exc) -> bool:
        self._progress.stop()
        return False

