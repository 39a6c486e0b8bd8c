"""
Content records handed to the bridge by a note source.
A record is immutable once created and is owned by the queue entry that wraps it.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class RecordMetadata:
    """Informational annotations carried alongside a record."""

    created: Optional[datetime.datetime] = None
    modified: Optional[datetime.datetime] = None
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": _to_epoch_ms(self.created),
            "modified": _to_epoch_ms(self.modified),
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordMetadata":
        return cls(
            created=_from_epoch_ms(data.get("created")),
            modified=_from_epoch_ms(data.get("modified")),
            tags=tuple(data.get("tags") or ()),
        )


@dataclass(frozen=True)
class ContentRecord:
    """A normalized piece of content awaiting delivery."""

    title: str
    body: str = ""
    external_link: Optional[str] = None
    metadata: Optional[RecordMetadata] = None
    path: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("ContentRecord title must be a non-empty string")

    @property
    def is_link(self) -> bool:
        return bool(self.external_link)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the field names the local server and extension exchange."""
        data: Dict[str, Any] = {
            "title": self.title,
            "content": self.body,
            "path": self.path,
        }
        if self.external_link:
            data["shareLink"] = self.external_link
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentRecord":
        metadata = data.get("metadata")
        return cls(
            title=str(data.get("title") or "").strip(),
            body=data.get("content") or "",
            external_link=data.get("shareLink") or None,
            metadata=RecordMetadata.from_dict(metadata) if metadata else None,
            path=data.get("path") or "",
        )


def _to_epoch_ms(value: Optional[datetime.datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def _from_epoch_ms(value) -> Optional[datetime.datetime]:
    if value is None:
        return None
    return datetime.datetime.fromtimestamp(float(value) / 1000)
