# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.25
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/core/download.py

"""
Download pipeline: rebuild entries from everything under the app root.

Text records are fetched in fixed-size batches; the attachments of each
record are fetched under a semaphore. Attachments pair with entries only by
the entryId property, never by folder proximity.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from zenjournal.config.manager import DEFAULT_APP_FOLDER, JournalConfig
from zenjournal.core.upload import find_or_create_folder
from zenjournal.data.models import Entry, FOLDER_MIME_TYPE, Image, RemoteRecord, TEXT_MIME_TYPE
from zenjournal.data.naming import image_id_from_file_name
from zenjournal.data.serializer import parse_entry_bytes
from zenjournal.storage.protocols import FileStore, collect_query
from zenjournal.storage.query import Query
from zenjournal.system.exceptions import AuthError, ParseError, RemoteError


@dataclass
class FetchResult:
    entries: list[Entry] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)  # (file name, reason)


class DownloadPipeline:

    def __init__(self, store: FileStore, app_folder_name: str = DEFAULT_APP_FOLDER,
                 download_concurrency: int = 5, attachment_concurrency: int = 5):
        self.store = store
        self.app_folder_name = app_folder_name
        self.download_concurrency = max(1, download_concurrency)
        self.attachment_concurrency = max(1, attachment_concurrency)

    @classmethod
    def from_config(cls, store: FileStore, config: JournalConfig) -> "DownloadPipeline":
        return cls(
            store,
            app_folder_name=config.app_folder_name,
            download_concurrency=config.sync.download_concurrency,
            attachment_concurrency=config.sync.attachment_concurrency,
        )

    async def fetch_all(self) -> FetchResult:
        """Every entry reconstructable from the remote store. AuthError aborts the pass."""
        root_id = await find_or_create_folder(self.store, self.app_folder_name)

        base = Query().under(root_id).not_trashed()
        text_records = await collect_query(self.store, base.mime_is(TEXT_MIME_TYPE))
        attachment_records = await collect_query(
            self.store, base.mime_is_not(FOLDER_MIME_TYPE).mime_is_not(TEXT_MIME_TYPE)
        )
        logger.info(f"Found {len(text_records)} text records and {len(attachment_records)} attachments")

        attachments: dict[str, list[RemoteRecord]] = {}
        for record in attachment_records:
            if record.entry_id:
                attachments.setdefault(record.entry_id, []).append(record)

        result = FetchResult()
        newest: dict[str, tuple[RemoteRecord, Entry]] = {}
        for start in range(0, len(text_records), self.download_concurrency):
            batch = text_records[start:start + self.download_concurrency]
            outcomes = await asyncio.gather(
                *(self._fetch_record(record, attachments) for record in batch),
                return_exceptions=True,
            )
            for record, outcome in zip(batch, outcomes):
                if isinstance(outcome, AuthError):
                    raise outcome
                if isinstance(outcome, (RemoteError, ParseError)):
                    logger.warning(f"Skipping remote record {record.name}: {outcome}")
                    result.skipped.append((record.name, str(outcome)))
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome
                self._keep_newest(newest, record, outcome, result)

        result.entries = [entry for _, entry in newest.values()]
        return result

    def _keep_newest(self, newest: dict, record: RemoteRecord, entry: Entry, result: FetchResult) -> None:
        current = newest.get(entry.id)
        if current is None:
            newest[entry.id] = (record, entry)
            return
        kept, dropped = (current[0], record) if current[0].modified_time >= record.modified_time else (record, current[0])
        if kept is record:
            newest[entry.id] = (record, entry)
        logger.warning(f"Two remote records claim entry {entry.id}; keeping {kept.name} ({kept.remote_id})")
        result.skipped.append((dropped.name, f"duplicate of {kept.remote_id}"))

    async def _fetch_record(self, record: RemoteRecord, attachments: dict[str, list[RemoteRecord]]) -> Entry:
        data = await self.store.download_bytes(record.remote_id)
        parsed = parse_entry_bytes(data, record)
        images = await self._fetch_images(parsed.id, attachments.get(parsed.id, []))
        # Footer order when known, remote listing order otherwise
        order = {image_id: index for index, image_id in enumerate(parsed.attachment_ids)}
        images.sort(key=lambda image: order.get(image.id, len(order)))
        return parsed.to_entry(images)

    async def _fetch_images(self, entry_id: str, records: list[RemoteRecord]) -> list[Image]:
        if not records:
            return []
        semaphore = asyncio.Semaphore(self.attachment_concurrency)

        async def fetch(record: RemoteRecord) -> Optional[Image]:
            async with semaphore:
                try:
                    data = await self.store.download_bytes(record.remote_id)
                except AuthError:
                    raise
                except RemoteError as e:
                    logger.warning(f"Dropping attachment {record.name} of entry {entry_id}: {e}")
                    return None
            image_id = image_id_from_file_name(record.name) or record.remote_id
            return Image.from_bytes(image_id, data, record.mime_type or "image/png")

        images = await asyncio.gather(*(fetch(record) for record in records))
        return [image for image in images if image is not None]
