# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.22
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/storage/query.py

"""
Provider-neutral filter expressions for remote store queries.

A Query is a conjunction of clauses. Providers render it into their own
query language (see storage.drive); in-memory stores evaluate it directly
with Query.matches().
"""

from dataclasses import dataclass, replace
from typing import AbstractSet, Optional

from zenjournal.data.models import RemoteRecord

ENTRY_ID_PROPERTY = "entryId"


@dataclass(frozen=True)
class Query:
    name: Optional[str] = None
    parent: Optional[str] = None
    ancestor: Optional[str] = None
    exclude_trashed: bool = False
    mime_type: Optional[str] = None
    excluded_mime_types: tuple[str, ...] = ()
    properties: tuple[tuple[str, str], ...] = ()

    # ---- builder ----

    def name_is(self, name: str) -> "Query":
        return replace(self, name=name)

    def in_parent(self, folder_id: str) -> "Query":
        return replace(self, parent=folder_id)

    def under(self, folder_id: str) -> "Query":
        """Anywhere below folder_id, at any depth."""
        return replace(self, ancestor=folder_id)

    def not_trashed(self) -> "Query":
        return replace(self, exclude_trashed=True)

    def mime_is(self, mime_type: str) -> "Query":
        return replace(self, mime_type=mime_type)

    def mime_is_not(self, mime_type: str) -> "Query":
        return replace(self, excluded_mime_types=self.excluded_mime_types + (mime_type,))

    def has_property(self, key: str, value: str) -> "Query":
        return replace(self, properties=self.properties + ((key, value),))

    def for_entry(self, entry_id: str) -> "Query":
        return self.has_property(ENTRY_ID_PROPERTY, entry_id)

    # ---- evaluation ----

    def matches(self, record: RemoteRecord, ancestors: AbstractSet[str] = frozenset(),
                properties: Optional[dict[str, str]] = None) -> bool:
        """Evaluate against a record.

        ancestors: every folder id above the record (transitively).
        properties: full custom property map; defaults to the entryId property.
        """
        if properties is None:
            properties = {ENTRY_ID_PROPERTY: record.entry_id} if record.entry_id else {}
        if self.name is not None and record.name != self.name:
            return False
        if self.parent is not None and self.parent not in record.parents:
            return False
        if self.ancestor is not None and self.ancestor not in ancestors:
            return False
        if self.exclude_trashed and record.trashed:
            return False
        if self.mime_type is not None and record.mime_type != self.mime_type:
            return False
        if record.mime_type in self.excluded_mime_types:
            return False
        return all(properties.get(key) == value for key, value in self.properties)

    def describe(self) -> str:
        parts = []
        if self.name is not None:
            parts.append(f"name={self.name!r}")
        if self.parent is not None:
            parts.append(f"parent={self.parent}")
        if self.ancestor is not None:
            parts.append(f"under={self.ancestor}")
        if self.mime_type is not None:
            parts.append(f"mime={self.mime_type}")
        for mime in self.excluded_mime_types:
            parts.append(f"mime!={mime}")
        for key, value in self.properties:
            parts.append(f"{key}={value}")
        return " ".join(parts) or "<all>"
