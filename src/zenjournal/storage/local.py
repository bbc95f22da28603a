# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.23
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/storage/local.py

"""
JSON-file entry store.

All entries live in one entries.json document keyed by entry id. Every write
rewrites the document through a temp file and an atomic rename, so a crash
mid-write leaves the previous version intact.
"""

import os
import uuid
from pathlib import Path
from typing import Optional

import orjson
from loguru import logger

from zenjournal.data.models import Entry
from zenjournal.system.exceptions import StorageError


def write_json_atomic(path: Path, payload: object) -> None:
    """Serialize payload with orjson and replace path via temp + rename."""
    temp_path = path.with_suffix(path.suffix + f".tmp-{uuid.uuid4().hex[:8]}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise StorageError(f"Cannot write {path}: {e}", path=str(path)) from e


def read_json(path: Path) -> Optional[object]:
    """Parsed document, or None when the file does not exist."""
    try:
        return orjson.loads(path.read_bytes())
    except FileNotFoundError:
        return None
    except (OSError, orjson.JSONDecodeError) as e:
        raise StorageError(f"Cannot read {path}: {e}", path=str(path)) from e


class JsonEntryStore:
    """LocalStore persisted as entries.json."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: Optional[dict[str, Entry]] = None
        # Raw documents of entries that failed to parse; written back untouched
        self._unreadable: dict[str, object] = {}

    def _load(self) -> dict[str, Entry]:
        if self._entries is None:
            data = read_json(self.path) or {}
            if not isinstance(data, dict):
                raise StorageError(f"{self.path} must hold a JSON object", path=str(self.path))
            entries = {}
            for key, raw in data.items():
                try:
                    entry = Entry.from_dict(raw)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping unreadable local entry {key}: {e}")
                    self._unreadable[key] = raw
                    continue
                entries[entry.id] = entry
            self._entries = entries
            logger.debug(f"Loaded {len(entries)} entries from {self.path}")
        return self._entries

    @property
    def unreadable_ids(self) -> list[str]:
        self._load()
        return list(self._unreadable)

    def _save(self) -> None:
        document = dict(self._unreadable)
        document.update((eid, entry.to_dict()) for eid, entry in self._load().items())
        write_json_atomic(self.path, document)

    def get_all(self) -> list[Entry]:
        return list(self._load().values())

    def get(self, entry_id: str) -> Optional[Entry]:
        return self._load().get(entry_id)

    def put(self, entry: Entry) -> None:
        self.put_many([entry])

    def put_many(self, entries: list[Entry]) -> None:
        """Store several entries with a single write."""
        loaded = self._load()
        for entry in entries:
            loaded[entry.id] = entry
            self._unreadable.pop(entry.id, None)
        self._save()

    def delete(self, entry_id: str) -> None:
        loaded = self._load()
        if loaded.pop(entry_id, None) is not None or self._unreadable.pop(entry_id, None) is not None:
            self._save()
