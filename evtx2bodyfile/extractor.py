"""Structural field extractor: rebuilds one event record from enter/text/leave notifications.

The decoder never hands us a tree. We keep our own ancestor stack and look up
each position in two small tables:

  * enter rules, keyed by (parent tag, tag), name the attribute to read and
    the action that stores it;
  * text rules, keyed by the innermost open tag, name the action that stores
    the element's character content.

A ``Data`` element under ``EventData`` does not carry its value in an
attribute: its ``Name`` becomes a pending payload key, and the next text
notification fills it in. Any element boundary drops a pending key.

Records that use ``UserData`` instead of ``EventData`` wrap their fields in
one provider-specific element; the text of each leaf under that wrapper is
collected keyed by the leaf tag.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

from evtx2bodyfile.formatter import sanitize
from evtx2bodyfile.models import NormalizedRecord
from evtx2bodyfile.stack import AncestorStack
from evtx2bodyfile.timestamps import SYSTEM_TIME_FORMAT, parse_system_time

logger = logging.getLogger(__name__)

# Payload key used for data entries without a Name attribute (binary blobs)
BINARY_KEY = "binary"

Attributes = Mapping[str, str] | Iterable[tuple[str, str]]


class ExtractionError(Exception):
    """Base class for errors raised while building a NormalizedRecord."""


class MissingFieldError(ExtractionError):
    """A mandatory field never appeared in the record. The record is skipped."""

    def __init__(self, field_name: str, event_record_id: int | None = None):
        self.field_name = field_name
        self.event_record_id = event_record_id
        where = f" in record {event_record_id}" if event_record_id is not None else ""
        super().__init__(f"missing mandatory field '{field_name}'{where}")


@dataclass(frozen=True)
class ExtractorOptions:
    track_channel: bool = True
    track_activity_id: bool = True
    timestamp_format: str = SYSTEM_TIME_FORMAT
    strict_timestamp: bool = True


def _first_attribute(attributes: Attributes, name: str) -> str | None:
    """First value for *name*; EVTX never repeats these attributes."""
    items = attributes.items() if isinstance(attributes, Mapping) else attributes
    for key, value in items:
        if key == name:
            return value
    return None


class FieldExtractor:
    """Per-record state machine. Create one per record, call finish() once."""

    # (parent, tag) -> (attribute, action)
    ENTER_RULES = {
        ("System", "Provider"): ("Name", "_set_provider_name"),
        ("System", "TimeCreated"): ("SystemTime", "_set_record_timestamp"),
        ("System", "Correlation"): ("ActivityID", "_set_activity_id"),
        ("EventData", "Data"): ("Name", "_set_pending_key"),
        ("EventData", "Binary"): ("Name", "_set_pending_key"),
    }

    # innermost tag -> action
    TEXT_RULES = {
        "EventID": "_set_event_id",
        "Channel": "_set_channel_name",
    }

    def __init__(self, options: ExtractorOptions | None = None):
        self.options = options or ExtractorOptions()
        self._stack = AncestorStack()
        self._pending_key: str | None = None

        self.record_timestamp: int | None = None
        self.event_id: str | None = None
        self.provider_name: str | None = None
        self.channel_name: str | None = None
        self.activity_id: str | None = None
        self.payload: dict[str, str] = {}

    @property
    def stack(self) -> AncestorStack:
        return self._stack

    @property
    def pending_key(self) -> str | None:
        return self._pending_key

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def on_enter(self, tag: str, attributes: Attributes = ()) -> None:
        rule = self.ENTER_RULES.get((self._stack.top, tag))
        if rule is not None:
            attribute, action = rule
            getattr(self, action)(_first_attribute(attributes, attribute))
        self._stack.push(tag)

    def on_text(self, value: str) -> None:
        if self._pending_key is not None:
            if value:
                self.payload[self._pending_key] = sanitize(value)
            self._pending_key = None
            return

        action = self.TEXT_RULES.get(self._stack.top)
        if action is not None:
            getattr(self, action)(value)
        elif value and self._in_user_data():
            self.payload[self._stack.top] = sanitize(value)

    def on_leave(self, tag: str) -> None:
        self._stack.pop()
        self._pending_key = None

    def finish(self, event_record_id: int | None = None,
               timestamp_hint: datetime | None = None) -> NormalizedRecord:
        """Freeze the collected fields. Raises MissingFieldError if one is absent."""
        mandatory = [
            ("provider_name", self.provider_name),
            ("event_id", self.event_id),
            ("record_timestamp", self.record_timestamp),
        ]
        if self.options.track_channel:
            mandatory.append(("channel_name", self.channel_name))
        for name, value in mandatory:
            if value is None:
                raise MissingFieldError(name, event_record_id)

        return NormalizedRecord(
            record_timestamp=self.record_timestamp,
            event_id=self.event_id,
            provider_name=self.provider_name,
            channel_name=self.channel_name if self.options.track_channel else None,
            activity_id=self.activity_id if self.options.track_activity_id else None,
            payload=self.payload,
            event_record_id=event_record_id,
            timestamp_hint=timestamp_hint,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _set_provider_name(self, value: str | None) -> None:
        if value is not None:
            self.provider_name = value

    def _set_record_timestamp(self, value: str | None) -> None:
        if value is None:
            return
        self.record_timestamp = parse_system_time(
            value, self.options.timestamp_format, strict=self.options.strict_timestamp,
        )

    def _set_activity_id(self, value: str | None) -> None:
        if value is not None and self.options.track_activity_id:
            self.activity_id = value

    def _set_pending_key(self, value: str | None) -> None:
        if value is None:
            logger.debug("Data entry without a Name attribute, keyed as %r", BINARY_KEY)
            value = BINARY_KEY
        self._pending_key = value

    def _set_event_id(self, value: str) -> None:
        self.event_id = value

    def _set_channel_name(self, value: str) -> None:
        if self.options.track_channel:
            self.channel_name = value

    def _in_user_data(self) -> bool:
        # UserData/<wrapper>/<leaf>
        path = self._stack.path()
        return len(path) >= 3 and path[-3] == "UserData"
