# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.22
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/storage/drive.py

"""
Google Drive v3 implementation of the FileStore capability.

Drive has no "anywhere below this folder" operator, so ancestor queries are
expanded here: the folder tree under the ancestor is listed breadth-first
and the query is issued as chunks of `'<id>' in parents` disjunctions. The
continuation token handed back to callers is "<chunk>|<drive page token>".
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

import httpx
from loguru import logger

from zenjournal.config.manager import DriveSettings, JournalConfig
from zenjournal.core.retry import RetryConfig, retry_with_backoff
from zenjournal.data.models import FOLDER_MIME_TYPE, RemoteRecord
from zenjournal.storage.query import ENTRY_ID_PROPERTY, Query
from zenjournal.system.exceptions import AuthError, RemoteError

FILE_FIELDS = "id,name,parents,modifiedTime,mimeType,appProperties,trashed"
LIST_FIELDS = f"nextPageToken,files({FILE_FIELDS})"

# Keeps rendered `q` strings well under Drive's URL length limit
PARENT_CHUNK_SIZE = 40


def escape_q(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def render_q(query: Query, parent_ids: Optional[list[str]] = None) -> str:
    """Render a Query in the Drive `q` language.

    parent_ids replaces the ancestor clause with an explicit set of folders.
    """
    clauses = []
    if query.name is not None:
        clauses.append(f"name = '{escape_q(query.name)}'")
    if query.parent is not None:
        clauses.append(f"'{escape_q(query.parent)}' in parents")
    if parent_ids:
        clauses.append("(" + " or ".join(f"'{escape_q(pid)}' in parents" for pid in parent_ids) + ")")
    if query.mime_type is not None:
        clauses.append(f"mimeType = '{escape_q(query.mime_type)}'")
    for mime in query.excluded_mime_types:
        clauses.append(f"mimeType != '{escape_q(mime)}'")
    for key, value in query.properties:
        clauses.append(f"appProperties has {{ key='{escape_q(key)}' and value='{escape_q(value)}' }}")
    if query.exclude_trashed:
        clauses.append("trashed = false")
    return " and ".join(clauses)


def _parse_drive_time(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def record_from_json(data: Mapping[str, Any]) -> RemoteRecord:
    properties = data.get("appProperties") or {}
    return RemoteRecord(
        remote_id=data["id"],
        name=data.get("name", ""),
        parents=frozenset(data.get("parents") or ()),
        modified_time=_parse_drive_time(data.get("modifiedTime")),
        mime_type=data.get("mimeType", ""),
        entry_id=properties.get(ENTRY_ID_PROPERTY),
        trashed=bool(data.get("trashed", False)),
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.reason_phrase or f"HTTP {response.status_code}"


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class DriveClient:
    """FileStore over the Drive v3 REST API."""

    def __init__(self, token: str, settings: Optional[DriveSettings] = None,
                 retry_config: Optional[RetryConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or DriveSettings()
        self.retry_config = retry_config or RetryConfig()
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.settings.timeout_seconds,
            transport=transport,
        )
        # ancestor id -> every folder id below it, as of the first page of the last query
        self._tree_cache: dict[str, list[str]] = {}

    @classmethod
    def from_config(cls, token: str, config: JournalConfig) -> "DriveClient":
        return cls(token, config.drive, RetryConfig.from_settings(config.sync))

    async def __aenter__(self) -> "DriveClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---- transport ----

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise RemoteError(f"{method} {url} failed: {e}", retry_possible=True) from e
        if response.status_code in (401, 403):
            logger.debug(f"{method} {url} rejected with {response.status_code}")
            raise AuthError(status_code=response.status_code)
        if not response.is_success:
            raise RemoteError(
                _error_message(response),
                status_code=response.status_code,
                backoff_seconds=_retry_after(response),
            )
        return response

    def _files_url(self, remote_id: str = "") -> str:
        base = f"{self.settings.api_url}/files"
        return f"{base}/{remote_id}" if remote_id else base

    async def _list_page(self, q: str, page_token: Optional[str]) -> tuple[list[RemoteRecord], Optional[str]]:
        params = {"q": q, "fields": LIST_FIELDS, "pageSize": self.settings.page_size, "spaces": "drive"}
        if page_token:
            params["pageToken"] = page_token
        response = await self._request("GET", self._files_url(), params=params)
        body = response.json()
        records = [record_from_json(item) for item in body.get("files", [])]
        return records, body.get("nextPageToken")

    # ---- ancestor expansion ----

    async def _folder_tree(self, ancestor_id: str) -> list[str]:
        cached = self._tree_cache.get(ancestor_id)
        if cached is not None:
            return cached

        folders = [ancestor_id]
        frontier = [ancestor_id]
        while frontier:
            next_frontier = []
            for start in range(0, len(frontier), PARENT_CHUNK_SIZE):
                chunk = frontier[start:start + PARENT_CHUNK_SIZE]
                q = render_q(Query().mime_is(FOLDER_MIME_TYPE).not_trashed(), parent_ids=chunk)
                page_token = None
                while True:
                    records, page_token = await self._list_page(q, page_token)
                    next_frontier.extend(r.remote_id for r in records if r.remote_id not in folders)
                    if not page_token:
                        break
            folders.extend(next_frontier)
            frontier = next_frontier

        logger.debug(f"Expanded folder tree under {ancestor_id}: {len(folders)} folders")
        self._tree_cache[ancestor_id] = folders
        return folders

    # ---- FileStore ----

    @retry_with_backoff(operation_name="drive query")
    async def query(self, query: Query, page_token: Optional[str] = None) -> tuple[list[RemoteRecord], Optional[str]]:
        if query.ancestor is None:
            return await self._list_page(render_q(query), page_token)

        if page_token is None:
            # Folders made elsewhere since the last query must be listed; the
            # cached tree only keeps the chunks stable across pages
            self._tree_cache.pop(query.ancestor, None)
            logger.debug(f"Drive ancestor query: {query.describe()}")
        folders = await self._folder_tree(query.ancestor)
        chunks = [folders[i:i + PARENT_CHUNK_SIZE] for i in range(0, len(folders), PARENT_CHUNK_SIZE)]
        chunk_index, drive_token = 0, None
        if page_token:
            index_text, _, drive_token = page_token.partition("|")
            chunk_index = int(index_text)
            drive_token = drive_token or None

        while chunk_index < len(chunks):
            q = render_q(query, parent_ids=chunks[chunk_index])
            records, next_token = await self._list_page(q, drive_token)
            if next_token:
                return records, f"{chunk_index}|{next_token}"
            chunk_index, drive_token = chunk_index + 1, None
            if records:
                return records, (f"{chunk_index}|" if chunk_index < len(chunks) else None)
        return [], None

    @retry_with_backoff(operation_name="drive get")
    async def get(self, remote_id: str) -> Optional[RemoteRecord]:
        try:
            response = await self._request("GET", self._files_url(remote_id), params={"fields": FILE_FIELDS})
        except RemoteError as e:
            if e.status_code == 404:
                return None
            raise
        return record_from_json(response.json())

    async def create_folder(self, name: str, parent_id: Optional[str]) -> str:
        metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]
        response = await self._request("POST", self._files_url(), params={"fields": "id"}, json=metadata)
        # A new folder can belong to any cached tree
        self._tree_cache.clear()
        return response.json()["id"]

    async def create_file(self, name: str, parent_id: str, mime_type: str,
                          properties: Optional[Mapping[str, str]] = None) -> str:
        metadata: dict[str, Any] = {"name": name, "mimeType": mime_type, "parents": [parent_id]}
        if properties:
            metadata["appProperties"] = dict(properties)
        response = await self._request("POST", self._files_url(), params={"fields": "id"}, json=metadata)
        return response.json()["id"]

    async def update_content(self, remote_id: str, data: bytes, mime_type: str) -> None:
        await self._request(
            "PATCH",
            f"{self.settings.upload_url}/files/{remote_id}",
            params={"uploadType": "media"},
            content=data,
            headers={"Content-Type": mime_type},
        )

    async def patch_metadata(self, remote_id: str, name: Optional[str] = None,
                             add_parents: Iterable[str] = (), remove_parents: Iterable[str] = (),
                             properties: Optional[Mapping[str, str]] = None) -> None:
        params = {"fields": "id"}
        add_parents, remove_parents = list(add_parents), list(remove_parents)
        if add_parents:
            params["addParents"] = ",".join(add_parents)
        if remove_parents:
            params["removeParents"] = ",".join(remove_parents)
        body: dict[str, Any] = {}
        if name is not None:
            body["name"] = name
        if properties is not None:
            body["appProperties"] = dict(properties)
        await self._request("PATCH", self._files_url(remote_id), params=params, json=body)

    async def move_parents(self, remote_id: str, add_parents: Iterable[str],
                           remove_parents: Iterable[str]) -> None:
        await self.patch_metadata(remote_id, add_parents=add_parents, remove_parents=remove_parents)

    async def delete(self, remote_id: str) -> None:
        await self._request("DELETE", self._files_url(remote_id))

    @retry_with_backoff(operation_name="drive download")
    async def download_bytes(self, remote_id: str) -> bytes:
        response = await self._request("GET", self._files_url(remote_id), params={"alt": "media"})
        return response.content
