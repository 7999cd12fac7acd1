"""Drive a FieldExtractor from one record's XML rendering.

xml.sax may split a single text node across several ``characters`` calls, so
chunks are buffered and delivered as one ``on_text`` right before the next
element boundary. Runs that are only whitespace are indentation between
elements and are dropped.
"""

import logging
import xml.sax
from datetime import datetime
from xml.sax.handler import ContentHandler

from evtx2bodyfile.extractor import ExtractorOptions, FieldExtractor
from evtx2bodyfile.models import NormalizedRecord

logger = logging.getLogger(__name__)


class ExtractorHandler(ContentHandler):
    """SAX content handler forwarding element events to a FieldExtractor."""

    def __init__(self, extractor: FieldExtractor):
        super().__init__()
        self.extractor = extractor
        self._chunks: list[str] = []

    def _flush_text(self) -> None:
        if not self._chunks:
            return
        text = "".join(self._chunks)
        self._chunks.clear()
        if text.strip():
            self.extractor.on_text(text)

    def startElement(self, name, attrs):
        self._flush_text()
        self.extractor.on_enter(name, list(attrs.items()))

    def characters(self, content):
        self._chunks.append(content)

    def endElement(self, name):
        self._flush_text()
        self.extractor.on_leave(name)


def replay_record(xml_text: str | bytes, extractor: FieldExtractor) -> FieldExtractor:
    """Feed every element of *xml_text* to *extractor* and return it.

    Raises xml.sax.SAXParseException on malformed XML. Errors raised by the
    extractor (e.g. TimestampFormatError) propagate unchanged.
    """
    if isinstance(xml_text, str):
        xml_text = xml_text.encode("utf-8")
    xml.sax.parseString(xml_text, ExtractorHandler(extractor))
    return extractor


def extract_record(xml_text: str | bytes, options: ExtractorOptions | None = None,
                   event_record_id: int | None = None,
                   timestamp_hint: datetime | None = None) -> NormalizedRecord:
    """Build a NormalizedRecord from one record's XML with a fresh extractor."""
    extractor = replay_record(xml_text, FieldExtractor(options))
    record = extractor.finish(event_record_id=event_record_id, timestamp_hint=timestamp_hint)
    logger.debug("Extracted record %s: %s(%s), %d payload entries",
                 event_record_id, record.provider_name, record.event_id, len(record.payload))
    return record
