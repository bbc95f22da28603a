# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.22
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/storage/protocols.py

"""
Interfaces between the sync engine and its collaborators.

FileStore is the remote capability the pipelines need; any provider that
implements it is sufficient. LocalStore and Session are the local entry
storage and the bearer-token holder.
"""

from typing import AsyncIterator, Iterable, Mapping, Optional, Protocol

from zenjournal.data.models import Entry, RemoteRecord
from zenjournal.storage.query import Query


class FileStore(Protocol):
    """Authenticated remote file store.

    All methods raise AuthError on rejected credentials and RemoteError on any
    other provider failure.
    """

    async def query(self, query: Query, page_token: Optional[str] = None) -> tuple[list[RemoteRecord], Optional[str]]:
        """One page of matching records and the continuation token, None when exhausted."""
        ...

    async def get(self, remote_id: str) -> Optional[RemoteRecord]:
        """Direct lookup by remote id; None if it does not exist."""
        ...

    async def create_folder(self, name: str, parent_id: Optional[str]) -> str:
        ...

    async def create_file(self, name: str, parent_id: str, mime_type: str,
                          properties: Optional[Mapping[str, str]] = None) -> str:
        """Create file metadata (empty content) and return its remote id."""
        ...

    async def update_content(self, remote_id: str, data: bytes, mime_type: str) -> None:
        ...

    async def patch_metadata(self, remote_id: str, name: Optional[str] = None,
                             add_parents: Iterable[str] = (), remove_parents: Iterable[str] = (),
                             properties: Optional[Mapping[str, str]] = None) -> None:
        ...

    async def move_parents(self, remote_id: str, add_parents: Iterable[str],
                           remove_parents: Iterable[str]) -> None:
        ...

    async def delete(self, remote_id: str) -> None:
        ...

    async def download_bytes(self, remote_id: str) -> bytes:
        ...


class LocalStore(Protocol):
    """Key-value entry storage."""

    def get_all(self) -> list[Entry]:
        ...

    def put(self, entry: Entry) -> None:
        ...

    def delete(self, entry_id: str) -> None:
        ...


class Session(Protocol):
    """Holder of the current bearer token."""

    @property
    def generation(self) -> int:
        """Bumped on every login/logout; runs compare it to detect cancellation."""
        ...

    def token(self) -> Optional[str]:
        ...

    def on_auth_expired(self) -> None:
        """Drop the cached token and require a new login."""
        ...


async def iter_query(store: FileStore, query: Query) -> AsyncIterator[RemoteRecord]:
    """Yield every matching record, following continuation tokens until exhausted."""
    page_token = None
    while True:
        records, page_token = await store.query(query, page_token)
        for record in records:
            yield record
        if not page_token:
            return


async def collect_query(store: FileStore, query: Query) -> list[RemoteRecord]:
    return [record async for record in iter_query(store, query)]


async def find_first(store: FileStore, query: Query) -> Optional[RemoteRecord]:
    records = iter_query(store, query)
    try:
        async for record in records:
            return record
        return None
    finally:
        await records.aclose()
