"""Fixed-format SystemTime parsing with a round-trip check.

The EVTX XML rendering writes ``TimeCreated/@SystemTime`` as e.g.
``2021-01-05 10:15:30.123456 UTC``. A value that parses but does not
re-encode to the same text means the container writes a format we were not
built for, so the mismatch is surfaced instead of silently truncated.
"""

import calendar
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

SYSTEM_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f %Z"


class TimestampFormatError(ValueError):
    """Raised when a SystemTime value does not match the expected format."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"invalid SystemTime {value!r}: {reason}")


def _as_utc(parsed: datetime) -> datetime:
    # %Z accepts "UTC" but strptime leaves the result naive
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_system_time(text: str, fmt: str = SYSTEM_TIME_FORMAT, strict: bool = True) -> int:
    """Parse *text* with *fmt* and return floor UTC epoch seconds.

    Raises TimestampFormatError when the text does not parse. When the parsed
    value re-encodes to something other than *text*, raises as well in strict
    mode and logs a warning otherwise.
    """
    try:
        parsed = _as_utc(datetime.strptime(text, fmt))
    except ValueError as e:
        raise TimestampFormatError(text, str(e)) from e

    reencoded = parsed.strftime(fmt)
    if reencoded != text:
        if strict:
            raise TimestampFormatError(text, f"re-encodes as {reencoded!r} with {fmt!r}")
        logger.warning("SystemTime %r re-encodes as %r, using parsed value", text, reencoded)

    return calendar.timegm(parsed.utctimetuple())


def format_system_time(epoch: int, fmt: str = SYSTEM_TIME_FORMAT) -> str:
    """Inverse of parse_system_time for whole seconds."""
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime(fmt)


def parse_decoder_timestamp(text: str | None) -> datetime | None:
    """Parse the decoder's own record timestamp. Returns None if unparseable."""
    if not text:
        return None
    for fmt in (SYSTEM_TIME_FORMAT, "%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%dT%H:%M:%S.%f%z"):
        try:
            return _as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    logger.debug("Unrecognized decoder timestamp %r", text)
    return None
