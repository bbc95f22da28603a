# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.24
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/core/upload.py

"""
Upload pipeline: push one local entry (and its attachments) to the remote
store.

Order within one run is fixed: folders are ensured before any file
operation, and a metadata patch always follows the content upload. Running
the pipeline twice on an unchanged entry creates nothing new and patches
metadata at most once.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from zenjournal.config.manager import DEFAULT_APP_FOLDER
from zenjournal.core.resolver import IdentityResolver
from zenjournal.data.models import Entry, FOLDER_MIME_TYPE, RemoteRecord, TEXT_MIME_TYPE
from zenjournal.data.naming import (
    IMAGES_FOLDER_NAME,
    canonical_file_name,
    day_folder_name,
    image_file_name,
    legacy_file_names,
)
from zenjournal.data.serializer import serialize_entry
from zenjournal.storage.protocols import FileStore, collect_query, find_first, iter_query
from zenjournal.storage.query import ENTRY_ID_PROPERTY, Query
from zenjournal.system.exceptions import AuthError, RemoteError


@dataclass
class UploadResult:
    entry_id: str
    remote_id: Optional[str] = None
    remote_file_name: Optional[str] = None
    created: bool = False
    updated: bool = False
    moved: bool = False
    renamed: bool = False
    images_uploaded: int = 0
    images_skipped: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def action(self) -> str:
        if self.error:
            return "failed"
        if self.created:
            return "created"
        parts = [name for name, flag in (("moved", self.moved), ("renamed", self.renamed)) if flag]
        return "+".join(["updated"] + parts)


async def find_or_create_folder(store: FileStore, name: str, parent_id: Optional[str] = None) -> str:
    query = Query().name_is(name).mime_is(FOLDER_MIME_TYPE).not_trashed()
    if parent_id:
        query = query.in_parent(parent_id)
    found = await find_first(store, query)
    if found is not None:
        return found.remote_id
    folder_id = await store.create_folder(name, parent_id)
    logger.info(f"Created remote folder {name} ({folder_id})")
    return folder_id


class UploadPipeline:
    """Uploads entries through a FileStore. Folder ids are cached per instance."""

    def __init__(self, store: FileStore, app_folder_name: str = DEFAULT_APP_FOLDER):
        self.store = store
        self.app_folder_name = app_folder_name
        self.resolver = IdentityResolver(store)
        self._folder_ids: dict[tuple[Optional[str], str], str] = {}

    async def ensure_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        """Find-or-create a folder; parent_id None means the app root lookup."""
        key = (parent_id, name)
        cached = self._folder_ids.get(key)
        if cached:
            return cached
        folder_id = await find_or_create_folder(self.store, name, parent_id)
        self._folder_ids[key] = folder_id
        return folder_id

    async def root_folder(self) -> str:
        return await self.ensure_folder(self.app_folder_name)

    async def upload(self, entry: Entry) -> UploadResult:
        """Push entry. AuthError propagates; other remote failures land in result.error."""
        result = UploadResult(entry_id=entry.id)
        try:
            await self._upload(entry, result)
        except AuthError:
            raise
        except RemoteError as e:
            logger.error(f"Upload of entry {entry.id} failed: {e}")
            result.error = str(e)
        return result

    async def _upload(self, entry: Entry, result: UploadResult) -> None:
        root_id = await self.root_folder()
        day_id = await self.ensure_folder(day_folder_name(entry.created_at), root_id)

        content = serialize_entry(entry).encode("utf-8")
        file_name = canonical_file_name(entry.title)
        resolution = await self.resolver.resolve(entry, day_id, root_id)

        if resolution is not None:
            record = resolution.record
            result.remote_id = record.remote_id

            stray_parents = [p for p in record.parents if p != day_id]
            if day_id not in record.parents or stray_parents:
                await self.store.move_parents(
                    record.remote_id,
                    add_parents=[] if day_id in record.parents else [day_id],
                    remove_parents=stray_parents,
                )
                result.moved = True
                logger.info(f"Moved {record.name} into {day_folder_name(entry.created_at)}")

            await self.store.update_content(record.remote_id, content, TEXT_MIME_TYPE)
            result.updated = True

            rename = record.name != file_name
            tag = record.entry_id != entry.id
            if rename or tag:
                await self.store.patch_metadata(
                    record.remote_id,
                    name=file_name if rename else None,
                    properties={ENTRY_ID_PROPERTY: entry.id} if tag else None,
                )
                result.renamed = rename
                logger.debug(f"Patched {record.remote_id}: name={rename} entryId={tag}")
        else:
            remote_id = await self.store.create_file(
                file_name, day_id, TEXT_MIME_TYPE, {ENTRY_ID_PROPERTY: entry.id}
            )
            await self.store.update_content(remote_id, content, TEXT_MIME_TYPE)
            result.remote_id = remote_id
            result.created = True
            logger.info(f"Created remote record {file_name} ({remote_id}) for entry {entry.id}")

        result.remote_file_name = file_name

        if entry.images:
            await self._upload_images(entry, day_id, result)

    async def _upload_images(self, entry: Entry, day_id: str, result: UploadResult) -> None:
        images_id = await self.ensure_folder(IMAGES_FOLDER_NAME, day_id)
        existing = {
            record.name
            for record in await collect_query(self.store, Query().in_parent(images_id).not_trashed())
        }
        for image in entry.images:
            name = image_file_name(image)
            if name in existing:
                result.images_skipped += 1
                continue
            try:
                data = image.decode()
            except ValueError as e:
                logger.warning(f"Not uploading image {image.id} of entry {entry.id}: {e}")
                continue
            remote_id = await self.store.create_file(
                name, images_id, image.mime_type, {ENTRY_ID_PROPERTY: entry.id}
            )
            await self.store.update_content(remote_id, data, image.mime_type)
            existing.add(name)
            result.images_uploaded += 1

    async def delete(self, entry: Entry) -> bool:
        """Delete the entry's remote text record. Attachments are left in place.

        Returns True when a record was found and deleted.
        """
        try:
            record = await self._find_for_delete(entry)
            if record is None:
                logger.debug(f"No remote record to delete for entry {entry.id}")
                return False
            await self.store.delete(record.remote_id)
            logger.info(f"Deleted remote record {record.name} ({record.remote_id})")
            return True
        except AuthError:
            raise
        except RemoteError as e:
            logger.warning(f"Remote delete of entry {entry.id} failed: {e}")
            return False

    async def _existing_folder(self, name: str, parent_id: Optional[str] = None) -> Optional[str]:
        """Like ensure_folder, but never creates anything."""
        key = (parent_id, name)
        if key in self._folder_ids:
            return self._folder_ids[key]
        query = Query().name_is(name).mime_is(FOLDER_MIME_TYPE).not_trashed()
        if parent_id:
            query = query.in_parent(parent_id)
        found = await find_first(self.store, query)
        if found is None:
            return None
        self._folder_ids[key] = found.remote_id
        return found.remote_id

    async def _find_for_delete(self, entry: Entry) -> Optional[RemoteRecord]:
        # Nothing outside the app folder is ever a delete candidate
        root_id = await self._existing_folder(self.app_folder_name)
        if root_id is None:
            return None
        text = Query().mime_is(TEXT_MIME_TYPE).not_trashed()
        record = await find_first(self.store, text.for_entry(entry.id).under(root_id))
        if record is not None:
            return record

        candidates = [text.name_is(legacy_file_names(entry.id)[0]).under(root_id)]
        if entry.remote_file_name:
            day_id = await self._existing_folder(day_folder_name(entry.created_at), root_id)
            folders = [day_id, root_id] if day_id else [root_id]
            candidates.extend(text.name_is(entry.remote_file_name).in_parent(f) for f in folders)
        for query in candidates:
            async for candidate in iter_query(self.store, query):
                if candidate.entry_id in (None, entry.id):
                    return candidate
        return None
