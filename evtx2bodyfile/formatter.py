"""Output formatters for bodyfile lines and JSON (NDJSON) documents."""

import json
from datetime import datetime, timezone
from typing import Callable

from evtx2bodyfile.models import BodyfileLine, NormalizedRecord

OUTPUT_FORMATS = ("bodyfile", "json")

DELIMITER = "|"
PLACEHOLDER = "§"


def sanitize(value: str) -> str:
    """Replace the bodyfile delimiter so collected text cannot add columns."""
    return value.replace(DELIMITER, PLACEHOLDER)


def _compact_json(data) -> str:
    return json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def render_name(record: NormalizedRecord) -> str:
    """Summary text for the bodyfile name column.

    ActivityId is always present (``None`` when absent) so the column reads
    the same for every record.
    """
    prefix = f"Channel={record.channel_name}, " if record.channel_name is not None else ""
    return (
        f"{prefix}Provider={record.provider_name}(EventID={record.event_id}): "
        f"Data={_compact_json(dict(record.payload))} ActivityId={record.activity_id}"
    )


def format_bodyfile(record: NormalizedRecord) -> str:
    """Return one eleven-field bodyfile line."""
    line = BodyfileLine.from_timestamp(sanitize(render_name(record)), record.record_timestamp)
    return str(line)


def _iso_timestamp(record: NormalizedRecord) -> str:
    if record.timestamp_hint is not None:
        return record.timestamp_hint.astimezone(timezone.utc).isoformat()
    return datetime.fromtimestamp(record.record_timestamp, tz=timezone.utc).isoformat()


def record_to_document(record: NormalizedRecord) -> dict:
    return {
        "event_record_id": record.event_record_id,
        "timestamp": _iso_timestamp(record),
        "event_id": record.event_id,
        "provider_name": record.provider_name,
        "channel_name": record.channel_name,
        "activity_id": record.activity_id,
        "custom_data": dict(record.payload),
    }


def format_json(record: NormalizedRecord) -> str:
    """Return one self-contained NDJSON object per line."""
    return json.dumps(record_to_document(record), ensure_ascii=False)


def get_formatter(output_format: str = "bodyfile") -> Callable[[NormalizedRecord], str]:
    """Factory that returns the formatter for *output_format*."""
    if output_format == "json":
        return format_json
    if output_format == "bodyfile":
        return format_bodyfile
    raise ValueError(f"Unknown output format: {output_format!r} (expected one of {OUTPUT_FORMATS})")
