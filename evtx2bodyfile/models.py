"""Value objects produced by the extractor and consumed by the formatters."""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class NormalizedRecord:
    record_timestamp: int            # UTC epoch seconds from TimeCreated/@SystemTime
    event_id: str                    # kept as text, never coerced
    provider_name: str
    channel_name: str | None = None  # None when channels are not tracked
    activity_id: str | None = None
    payload: Mapping[str, str] = field(default_factory=dict)
    event_record_id: int | None = None
    timestamp_hint: datetime | None = None  # the decoder's own timestamp

    def __post_init__(self):
        # Freeze the payload too; the dataclass alone only freezes the binding
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))


@dataclass(frozen=True)
class BodyfileLine:
    """One line of the bodyfile 3.x format (md5|name|inode|mode|uid|gid|size|atime|mtime|ctime|crtime)."""

    name: str
    atime: int
    mtime: int
    ctime: int
    crtime: int
    md5: str = "0"
    inode: int = 0
    mode: str = "0"
    uid: int = 0
    gid: int = 0
    size: int = 0

    @classmethod
    def from_timestamp(cls, name: str, timestamp: int) -> "BodyfileLine":
        """Event records carry a single trustworthy time, so all four slots share it."""
        return cls(name=name, atime=timestamp, mtime=timestamp, ctime=timestamp, crtime=timestamp)

    def fields(self) -> tuple:
        return (
            self.md5, self.name, self.inode, self.mode, self.uid, self.gid, self.size,
            self.atime, self.mtime, self.ctime, self.crtime,
        )

    def __str__(self) -> str:
        return "|".join(str(f) for f in self.fields())
