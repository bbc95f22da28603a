# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/data/models.py

"""
Journal entry model shared by the local store, the serializer and the sync
pipelines.

Timestamps are timezone-aware. An entry's created_at keeps the offset it was
created in, so the day folder it lands in never shifts when the machine
changes time zone.
"""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import orjson
import xxhash

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
TEXT_MIME_TYPE = "text/plain"


class Mood(Enum):
    GREAT = "Great"
    GOOD = "Good"
    OKAY = "Okay"
    BAD = "Bad"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["Mood"]:
        """Case-insensitive lookup; unknown values map to None."""
        if not text:
            return None
        wanted = text.strip().lower()
        for mood in cls:
            if mood.value.lower() == wanted:
                return mood
        return None


def local_now() -> datetime:
    """Current time with the local UTC offset attached."""
    return datetime.now(timezone.utc).astimezone()


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def from_epoch_ms(ms: int | float) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Read a stored timestamp: ISO 8601 string or epoch milliseconds."""
    if isinstance(value, (int, float)):
        return from_epoch_ms(value)
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class Image:
    """Attachment owned by exactly one entry."""
    id: str
    data: str  # base64
    mime_type: str

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/", 1)[1] if "/" in self.mime_type else ""
        return subtype or "png"

    def decode(self) -> bytes:
        """Binary content. Accepts plain base64 or a data: URL."""
        payload = self.data
        if payload.startswith("data:") and "," in payload:
            payload = payload.split(",", 1)[1]
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Image {self.id} does not hold valid base64 data: {e}") from e

    @classmethod
    def from_bytes(cls, image_id: str, content: bytes, mime_type: str) -> "Image":
        return cls(id=image_id, data=base64.b64encode(content).decode("ascii"), mime_type=mime_type)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "data": self.data, "mimeType": self.mime_type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Image":
        return cls(
            id=str(data["id"]),
            data=str(data.get("data", "")),
            mime_type=str(data.get("mimeType") or data.get("mime_type") or "image/png"),
        )


@dataclass
class Entry:
    """A single journal record."""
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    mood: Optional[Mood] = None
    images: list[Image] = field(default_factory=list)
    remote_file_name: Optional[str] = None

    def __post_init__(self):
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @classmethod
    def new(cls, title: str = "", content: str = "", mood: Optional[Mood] = None) -> "Entry":
        """Fresh local entry; the id is the creation time in epoch milliseconds."""
        now = local_now()
        return cls(
            id=str(time.time_ns() // 1_000_000),
            title=title,
            content=content,
            mood=mood,
            created_at=now,
            updated_at=now,
        )

    def touch(self, **changes: Any) -> "Entry":
        """Copy with changes applied and updated_at bumped (an editor action)."""
        changes.setdefault("updated_at", max(local_now(), self.updated_at))
        return replace(self, **changes)

    def content_fingerprint(self) -> str:
        """Hash of the user-visible fields; equal fingerprints mean nothing to save."""
        payload = orjson.dumps({
            "t": self.title,
            "c": self.content,
            "m": self.mood.value if self.mood else None,
            "i": [image.id for image in self.images],
        })
        return xxhash.xxh3_64(payload).hexdigest()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "mood": self.mood.value if self.mood else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "images": [image.to_dict() for image in self.images],
            "remoteFileName": self.remote_file_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            content=data.get("content") or "",
            mood=Mood.parse(data.get("mood")),
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(data.get("updatedAt", data["createdAt"])),
            images=[Image.from_dict(img) for img in data.get("images") or []],
            remote_file_name=data.get("remoteFileName"),
        )


@dataclass(frozen=True)
class RemoteRecord:
    """A file or folder as reported by the remote store. Never persisted locally."""
    remote_id: str
    name: str
    parents: frozenset[str] = frozenset()
    modified_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    mime_type: str = TEXT_MIME_TYPE
    entry_id: Optional[str] = None
    trashed: bool = False

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def is_text(self) -> bool:
        return self.mime_type == TEXT_MIME_TYPE
