import hashlib
from typing import Any

from pydantic import BaseModel

from logstream.core.timestamps import to_epoch

# ASCII unit separator between the key parts
_ID_SEPARATOR = "\x1f"


def document_id(group: str, stream: str, timestamp: str) -> str:
    """
    Deterministic index id for an event.

    Two events with the same (group, stream, timestamp) map to the same
    document, so re-indexing overwrites instead of duplicating.
    """
    key = _ID_SEPARATOR.join((group, stream, timestamp))
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


class SearchDocument(BaseModel):
    """Index projection of an event"""

    id: str
    group: str
    stream: str
    timestamp: str
    message: str
    timestamp_epoch: int

    @classmethod
    def from_event(cls, group: str, stream: str, timestamp: str, message: str) -> "SearchDocument":
        """Raises ValueError when the timestamp has no numeric form"""
        return cls(
            id=document_id(group, stream, timestamp),
            group=group,
            stream=stream,
            timestamp=timestamp,
            message=message,
            timestamp_epoch=to_epoch(timestamp),
        )


class SearchHit(BaseModel):
    """A ranked search result with the highlighted message"""

    group: str
    stream: str
    timestamp: str
    message: str

    @classmethod
    def from_hit(cls, hit: dict[str, Any]) -> "SearchHit":
        formatted = hit.get("_formatted") or {}
        return cls(
            group=hit["group"],
            stream=hit["stream"],
            timestamp=hit["timestamp"],
            message=formatted.get("message", hit.get("message", "")),
        )
