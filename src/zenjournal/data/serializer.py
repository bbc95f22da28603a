# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.21
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/data/serializer.py

"""
Remote text-record format for journal entries.

A record is a header block, a blank line, the body and an optional footer:

    Title: Morning pages
    Date: Tue 03 Jun 2025, 07:15
    Mood: Good

    Body text...

    ---
    attachments: 1717392000000,1717392000001

This format is the durable contract with the remote store. Files written by
every earlier release must keep parsing, so the parser tolerates missing
fields, unknown moods and legacy file names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from zenjournal.data.models import Entry, Image, Mood, RemoteRecord
from zenjournal.data.naming import (
    DEFAULT_TITLE,
    canonical_file_name,
    is_generic_file_name,
    title_from_file_name,
)
from zenjournal.system.exceptions import ParseError

TITLE_PREFIX = "Title:"
DATE_PREFIX = "Date:"
MOOD_PREFIX = "Mood:"
FOOTER_PREFIX = "attachments: "
SEPARATOR = "---"

_HEADER_PREFIXES = (TITLE_PREFIX, DATE_PREFIX, MOOD_PREFIX)

DATE_DISPLAY_FORMAT = "%a %d %b %Y, %H:%M"


def serialize_entry(entry: Entry) -> str:
    """Render an entry as remote file content."""
    title = " ".join(entry.title.splitlines())
    lines = [
        f"{TITLE_PREFIX} {title}",
        f"{DATE_PREFIX} {entry.created_at.strftime(DATE_DISPLAY_FORMAT)}",
    ]
    if entry.mood:
        lines.append(f"{MOOD_PREFIX} {entry.mood.value}")
    text = "\n".join(lines) + "\n\n" + entry.content
    if entry.images:
        text += f"\n\n{SEPARATOR}\n{FOOTER_PREFIX}{','.join(image.id for image in entry.images)}"
    return text


class ParseState(Enum):
    HEADER_SCAN = auto()
    BODY = auto()
    FOOTER = auto()


def _is_header(line: str) -> bool:
    return line.startswith(_HEADER_PREFIXES)


@dataclass
class ParsedEntry:
    """Partial entry reconstructed from one remote text record."""
    id: str
    title: str
    content: str
    mood: Optional[Mood]
    record: RemoteRecord
    header_title: Optional[str] = None
    attachment_ids: list[str] = field(default_factory=list)

    def to_entry(self, images: Optional[list[Image]] = None) -> Entry:
        # The remote store is the timestamp source of truth for imported content
        return Entry(
            id=self.id,
            title=self.title,
            content=self.content,
            mood=self.mood,
            created_at=self.record.modified_time,
            updated_at=self.record.modified_time,
            images=list(images or []),
            remote_file_name=self.record.name,
        )


class _RecordParser:
    """HEADER_SCAN -> BODY -> FOOTER over the lines of one record."""

    def __init__(self, lines: list[str]):
        self.lines = lines
        self.state = ParseState.HEADER_SCAN
        self.header_title: Optional[str] = None
        self.mood_text: Optional[str] = None
        self.body: list[str] = []
        self.attachment_ids: list[str] = []
        # A separator line and the blank lines after it, until we know what follows
        self._held: list[str] = []

    def run(self) -> "_RecordParser":
        for index, line in enumerate(self.lines):
            if self.state is ParseState.HEADER_SCAN:
                self._scan_header(index, line)
            elif self.state is ParseState.BODY:
                self._accumulate(line)
            else:
                break
        # A separator with nothing after it is dropped like one before the footer
        self._held = []
        return self

    def _scan_header(self, index: int, line: str) -> None:
        if line.startswith(TITLE_PREFIX):
            self.header_title = line[len(TITLE_PREFIX):].strip()
        elif line.startswith(MOOD_PREFIX):
            self.mood_text = line[len(MOOD_PREFIX):].strip()
        elif line.startswith(DATE_PREFIX):
            pass  # display only; timestamps come from remote metadata
        elif not line.strip():
            following = self.lines[index + 1] if index + 1 < len(self.lines) else ""
            if not _is_header(following):
                self.state = ParseState.BODY
        else:
            self.state = ParseState.BODY
            self._accumulate(line)

    def _accumulate(self, line: str) -> None:
        if line.startswith(FOOTER_PREFIX):
            self.attachment_ids = [part.strip() for part in line[len(FOOTER_PREFIX):].split(",") if part.strip()]
            self._held = []
            self.state = ParseState.FOOTER
            return
        if line.strip() == SEPARATOR:
            self.body.extend(self._held)
            self._held = [line]
            return
        if self._held:
            if not line.strip():
                self._held.append(line)
                return
            # More body follows, so the separator was a horizontal rule
            self.body.extend(self._held)
            self._held = []
        self.body.append(line)


def resolve_title(header_title: Optional[str], file_name: Optional[str]) -> str:
    """Pick the entry title from the header line and the remote file name.

    - the header title wins when the file name is exactly its canonical form
      (the header is the unsanitized spelling of the same title)
    - otherwise a present, non-generic file name wins (renamed remotely)
    - otherwise the header title, otherwise Untitled
    """
    if header_title and file_name and canonical_file_name(header_title) == file_name:
        return header_title
    if file_name and not is_generic_file_name(file_name):
        from_name = title_from_file_name(file_name)
        if from_name:
            return from_name
    return header_title or DEFAULT_TITLE


def parse_entry_text(text: str, record: RemoteRecord) -> ParsedEntry:
    """Reconstruct a partial entry from record text and its remote metadata."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    parser = _RecordParser(lines).run()
    return ParsedEntry(
        id=record.entry_id or record.remote_id,
        title=resolve_title(parser.header_title, record.name),
        content="\n".join(parser.body).rstrip(),
        mood=Mood.parse(parser.mood_text),
        record=record,
        header_title=parser.header_title,
        attachment_ids=parser.attachment_ids,
    )


def parse_entry_bytes(data: bytes, record: RemoteRecord) -> ParsedEntry:
    """Decode downloaded bytes and parse them; ParseError for binary content."""
    if b"\x00" in data:
        raise ParseError(f"{record.name} looks like binary content", file_name=record.name)
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"{record.name} is not valid UTF-8: {e}", file_name=record.name) from e
    return parse_entry_text(text, record)
