"""Shared pytest fixtures for the evtx2bodyfile test suite."""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

import pytest

from evtx2bodyfile.config import Config
from evtx2bodyfile.reader import SourceRecord

SAMPLE_TIME = "2021-01-05 10:15:30.123456 UTC"
SAMPLE_EPOCH = 1609841730


def event_xml(
    provider: str | None = "Microsoft-Windows-Kernel-General",
    event_id: str | None = "12",
    channel: str | None = "System",
    system_time: str | None = SAMPLE_TIME,
    activity_id: str | None = None,
    data: dict | None = None,
    extra_event_data: str = "",
) -> str:
    """Render an event record the way the EVTX decoder does (indented XML)."""
    system = []
    if provider is not None:
        system.append(f"<Provider Name={quoteattr(provider)} Guid=\"{{a68ca8b7-004f-d7b6-a698-07e2de0f1f5d}}\"/>")
    if event_id is not None:
        system.append(f"<EventID Qualifiers=\"\">{escape(event_id)}</EventID>")
    system.append("<Level>4</Level>")
    if system_time is not None:
        system.append(f"<TimeCreated SystemTime={quoteattr(system_time)}/>")
    system.append("<EventRecordID>1</EventRecordID>")
    if activity_id is not None:
        system.append(f"<Correlation ActivityID={quoteattr(activity_id)}/>")
    else:
        system.append("<Correlation/>")
    if channel is not None:
        system.append(f"<Channel>{escape(channel)}</Channel>")
    system.append("<Computer>WKS-01</Computer>")

    entries = [
        f"<Data Name={quoteattr(k)}>{escape(v)}</Data>" for k, v in (data or {}).items()
    ]
    if extra_event_data:
        entries.append(extra_event_data)

    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<Event xmlns="http://schemas.microsoft.com/win/2004/08/events/event">\n'
        "  <System>\n    " + "\n    ".join(system) + "\n  </System>\n"
        "  <EventData>\n    " + "\n    ".join(entries) + "\n  </EventData>\n"
        "</Event>"
    )


@pytest.fixture()
def sample_xml() -> str:
    return event_xml(data={"ProcessID": "4"})


@pytest.fixture()
def sample_record(sample_xml) -> SourceRecord:
    return SourceRecord(event_record_id=1, timestamp=None, data=sample_xml)


@pytest.fixture()
def config() -> Config:
    """Default config with the progress bar disabled."""
    return Config(show_progress=False)
