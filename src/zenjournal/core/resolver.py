# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.24
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/core/resolver.py

"""
Identity resolution: find the remote text record that already belongs to an
entry.

The remote naming scheme changed over time, so a record may be identified by
its entryId property, by being the imported file itself (remote-native id),
by the name last recorded locally, by the current canonical name, or by one
of the legacy names. Each way of finding it is a LookupStep; the chain is
tried in order and the first hit wins. Every step is run against the day
folder first and then again against the app root, which rescues files
written before day folders existed. A last property search over the whole
app tree finds a record left in another day folder after created_at moved.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

from zenjournal.data.models import Entry, RemoteRecord, TEXT_MIME_TYPE
from zenjournal.data.naming import canonical_file_name, is_remote_native_id, legacy_file_names
from zenjournal.storage.protocols import FileStore, find_first, iter_query
from zenjournal.storage.query import Query


class Scope(Enum):
    DAY = "day folder"
    ROOT = "app root"
    TREE = "app tree"
    GLOBAL = "anywhere"


@dataclass(frozen=True)
class LookupStep:
    scope: Scope
    description: str
    lookup: Callable[[], Awaitable[Optional[RemoteRecord]]]


@dataclass(frozen=True)
class Resolution:
    record: RemoteRecord
    step: LookupStep

    @property
    def scope(self) -> Scope:
        return self.step.scope


class IdentityResolver:
    """Ordered identity-resolution chain over a FileStore."""

    def __init__(self, store: FileStore):
        self.store = store

    # ---- individual lookups ----

    async def _by_property(self, entry: Entry, folder_id: str) -> Optional[RemoteRecord]:
        query = Query().for_entry(entry.id).in_parent(folder_id).mime_is(TEXT_MIME_TYPE).not_trashed()
        return await find_first(self.store, query)

    async def _by_property_in_tree(self, entry: Entry, root_id: str) -> Optional[RemoteRecord]:
        query = Query().for_entry(entry.id).under(root_id).mime_is(TEXT_MIME_TYPE).not_trashed()
        logger.debug(f"Searching the app tree for entry {entry.id}: {query.describe()}")
        return await find_first(self.store, query)

    async def _by_remote_id(self, entry: Entry) -> Optional[RemoteRecord]:
        record = await self.store.get(entry.id)
        if record is None or record.trashed or not record.is_text:
            return None
        return record

    async def _by_name(self, entry: Entry, folder_id: str, name: str) -> Optional[RemoteRecord]:
        query = Query().name_is(name).in_parent(folder_id).mime_is(TEXT_MIME_TYPE).not_trashed()
        async for record in iter_query(self.store, query):
            # A file that already belongs to another entry is never adopted
            if record.entry_id is None or record.entry_id == entry.id:
                return record
            logger.debug(f"{name} in {folder_id} belongs to entry {record.entry_id}, not {entry.id}")
        return None

    # ---- chain ----

    def _scoped_steps(self, entry: Entry, scope: Scope, folder_id: str) -> list[LookupStep]:
        steps = [LookupStep(scope, "entryId property", lambda: self._by_property(entry, folder_id))]

        names: list[tuple[str, str]] = []
        if entry.remote_file_name:
            names.append(("recorded file name", entry.remote_file_name))
        names.append(("canonical file name", canonical_file_name(entry.title)))
        names.extend(("legacy file name", legacy) for legacy in legacy_file_names(entry.id))

        seen = set()
        for description, name in names:
            if name in seen:
                continue
            seen.add(name)
            steps.append(LookupStep(
                scope, f"{description} {name!r}",
                lambda name=name: self._by_name(entry, folder_id, name),
            ))
        return steps

    def steps(self, entry: Entry, day_folder_id: str, root_id: str) -> list[LookupStep]:
        """The full chain for entry, in precedence order."""
        steps = self._scoped_steps(entry, Scope.DAY, day_folder_id)
        if is_remote_native_id(entry.id):
            steps.insert(1, LookupStep(Scope.GLOBAL, "remote id", lambda: self._by_remote_id(entry)))
        if root_id != day_folder_id:
            steps.extend(self._scoped_steps(entry, Scope.ROOT, root_id))
        steps.append(LookupStep(Scope.TREE, "entryId property",
                                lambda: self._by_property_in_tree(entry, root_id)))
        return steps

    async def resolve(self, entry: Entry, day_folder_id: str, root_id: str) -> Optional[Resolution]:
        for step in self.steps(entry, day_folder_id, root_id):
            record = await step.lookup()
            if record is not None:
                logger.debug(f"Entry {entry.id} resolved to {record.remote_id} by {step.description} ({step.scope.value})")
                return Resolution(record, step)
        logger.debug(f"Entry {entry.id} has no remote record yet")
        return None
