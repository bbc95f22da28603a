# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.26
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/core/orchestrator.py

"""
Sync orchestrator.

Owns the UI-visible entry snapshot and is the only writer of the local store
during a session. Two independent flows run through it:

- saving an edited entry: IDLE -> DEBOUNCING -> SAVING_LOCAL -> SAVING_REMOTE
  -> IDLE, with a one-slot latch so at most one remote save runs and only the
  latest waiting entry is kept;
- reconciliation: download everything, merge last-write-wins, swap the
  snapshot. Single-flight; a request while a pass runs is dropped.

Results of a run are discarded if the session changed (logout, expiry, new
login) while its network calls were in flight.
"""

import asyncio
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

from zenjournal.config.manager import JournalConfig
from zenjournal.core.download import DownloadPipeline
from zenjournal.core.merge import merge_entries, sort_entries
from zenjournal.core.upload import UploadPipeline, UploadResult
from zenjournal.data.models import Entry, Mood
from zenjournal.storage.protocols import FileStore, LocalStore, Session
from zenjournal.system.exceptions import AuthError, EntryNotFoundError


class SaveState(Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SAVING_LOCAL = "saving locally"
    SAVING_REMOTE = "saving to remote"


@dataclass
class SyncReport:
    fetched: int = 0
    inserted: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    discarded: bool = False
    duration_seconds: float = 0.0


class SaveLatch:
    """One remote save in flight, at most one waiting.

    A submit while a save is in flight replaces the waiting entry; earlier
    waiting entries are superseded, never queued.
    """

    def __init__(self, runner: Callable[[Entry], Awaitable[None]],
                 on_idle: Optional[Callable[[], None]] = None):
        self._runner = runner
        self._on_idle = on_idle
        self.in_flight: Optional[asyncio.Task] = None
        self.pending: Optional[Entry] = None

    @property
    def idle(self) -> bool:
        return self.in_flight is None

    def submit(self, entry: Entry) -> None:
        if self.in_flight is not None:
            if self.pending is not None:
                logger.debug(f"Superseding pending save of {self.pending.id} with {entry.id}")
            self.pending = entry
            return
        self.in_flight = asyncio.create_task(self._drain(entry))

    async def _drain(self, entry: Entry) -> None:
        current: Optional[Entry] = entry
        try:
            while current is not None:
                try:
                    await self._runner(current)
                except Exception:
                    logger.exception(f"Remote save of entry {current.id} failed")
                current, self.pending = self.pending, None
        finally:
            self.in_flight = None
            if self._on_idle is not None:
                self._on_idle()

    async def wait_idle(self) -> None:
        while self.in_flight is not None:
            await asyncio.shield(self.in_flight)


def filter_entries(entries: list[Entry], search: Optional[str] = None,
                   mood: Optional[Mood] = None) -> list[Entry]:
    """The journal table's filter: case-insensitive text in title or content, and mood."""
    needle = (search or "").strip().lower()
    return [
        entry for entry in entries
        if (not needle or needle in entry.title.lower() or needle in entry.content.lower())
        and (mood is None or entry.mood == mood)
    ]


class SyncOrchestrator:

    def __init__(self, local_store: LocalStore, session: Session,
                 store_factory: Callable[[str], FileStore], config: JournalConfig):
        self.local_store = local_store
        self.session = session
        self.store_factory = store_factory
        self.config = config

        self._entries: list[Entry] = sort_entries(local_store.get_all())
        self._fingerprints = {entry.id: entry.content_fingerprint() for entry in self._entries}
        self._state = SaveState.IDLE
        self._debounce: Optional[asyncio.Task] = None
        self._debounce_entry: Optional[Entry] = None
        self._latch = SaveLatch(self._push_remote, on_idle=self._latch_idle)
        self._reconciling = False
        self._background: set[asyncio.Task] = set()

        self._remote_store: Optional[FileStore] = None
        self._upload: Optional[UploadPipeline] = None
        self._remote_generation: Optional[int] = None

        self.last_upload: Optional[UploadResult] = None

    # ---- snapshot ----

    @property
    def entries(self) -> list[Entry]:
        return self._entries

    @property
    def latch(self) -> SaveLatch:
        return self._latch

    @property
    def reconciling(self) -> bool:
        return self._reconciling

    def get(self, entry_id: str) -> Optional[Entry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def _swap_in(self, entry: Entry) -> None:
        self._entries = sort_entries([e for e in self._entries if e.id != entry.id] + [entry])

    @property
    def save_state(self) -> SaveState:
        return self._state

    def _latch_idle(self) -> None:
        if self._state is SaveState.SAVING_REMOTE:
            self._state = SaveState.IDLE

    # ---- remote store lifecycle ----

    async def _pipeline(self, token: str) -> UploadPipeline:
        """Upload pipeline bound to the current session generation."""
        if self._upload is None or self._remote_generation != self.session.generation:
            await self._close_remote()
            self._remote_store = self.store_factory(token)
            self._upload = UploadPipeline(self._remote_store, self.config.app_folder_name)
            self._remote_generation = self.session.generation
        return self._upload

    async def _close_remote(self) -> None:
        store, self._remote_store, self._upload = self._remote_store, None, None
        aclose = getattr(store, "aclose", None)
        if aclose is not None:
            await aclose()

    async def aclose(self) -> None:
        await self.flush()
        await self._close_remote()

    def _auth_expired(self) -> None:
        logger.error("The remote store rejected our credentials; please log in again")
        self.session.on_auth_expired()

    # ---- save flow ----

    def request_save(self, entry: Entry) -> None:
        """Debounced save: only the last request within the autosave window runs."""
        previous = self._debounce_entry
        if self._debounce is not None:
            self._debounce.cancel()
            if previous is not None and previous.id != entry.id:
                # A different entry must not lose its pending edit
                task = asyncio.create_task(self.save_now(previous))
                self._background.add(task)
                task.add_done_callback(self._background.discard)
        self._debounce_entry = entry
        self._state = SaveState.DEBOUNCING
        self._debounce = asyncio.create_task(self._debounced(entry))

    async def _debounced(self, entry: Entry) -> None:
        await asyncio.sleep(self.config.sync.autosave_seconds)
        self._debounce = None
        self._debounce_entry = None
        await self.save_now(entry)

    async def save_now(self, entry: Entry) -> bool:
        """Save locally, then hand the entry to the remote latch. False if nothing changed."""
        fingerprint = entry.content_fingerprint()
        if self._fingerprints.get(entry.id) == fingerprint and self.get(entry.id) is not None:
            logger.debug(f"Entry {entry.id} unchanged since last save")
            if self._state in (SaveState.DEBOUNCING, SaveState.SAVING_LOCAL):
                self._state = SaveState.IDLE
            return False

        self._state = SaveState.SAVING_LOCAL
        self.local_store.put(entry)
        self._swap_in(entry)
        self._fingerprints[entry.id] = fingerprint
        logger.debug(f"Saved entry {entry.id} locally")

        if self.session.token() is None:
            self._state = SaveState.IDLE
            return True
        self._state = SaveState.SAVING_REMOTE
        self._latch.submit(entry)
        return True

    async def flush(self) -> None:
        """Run any debounced save now and wait until no remote save is in flight."""
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None
            entry, self._debounce_entry = self._debounce_entry, None
            if entry is not None:
                await self.save_now(entry)
        if self._background:
            await asyncio.gather(*self._background)
        await self._latch.wait_idle()

    async def _push_remote(self, entry: Entry) -> None:
        token = self.session.token()
        if token is None:
            logger.debug(f"Not signed in; entry {entry.id} stays local")
            return
        generation = self.session.generation
        try:
            with logger.contextualize(session=generation):
                result = await (await self._pipeline(token)).upload(entry)
        except AuthError:
            self._auth_expired()
            return
        self.last_upload = result
        if result.ok and self.session.generation == generation:
            self._record_remote_name(entry.id, result.remote_file_name)

    def _record_remote_name(self, entry_id: str, file_name: Optional[str]) -> None:
        current = self.get(entry_id)
        if current is None or not file_name or current.remote_file_name == file_name:
            return
        updated = replace(current, remote_file_name=file_name)
        self.local_store.put(updated)
        self._swap_in(updated)

    async def push(self, entry_id: str) -> UploadResult:
        """Upload one entry right away, outside the debounce/latch flow."""
        entry = self.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        token = self.session.token()
        if token is None:
            raise AuthError("Not logged in")
        try:
            result = await (await self._pipeline(token)).upload(entry)
        except AuthError:
            self._auth_expired()
            raise
        self.last_upload = result
        if result.ok:
            self._record_remote_name(entry.id, result.remote_file_name)
        return result

    # ---- reconciliation ----

    async def reconcile(self) -> Optional[SyncReport]:
        """Full download + merge pass. None if a pass is already running or nobody is signed in."""
        if self._reconciling:
            logger.info("Reconciliation already running; request ignored")
            return None
        token = self.session.token()
        if token is None:
            logger.warning("Not logged in; skipping reconciliation")
            return None

        self._reconciling = True
        generation = self.session.generation
        with logger.contextualize(session=generation):
            return await self._reconcile_pass(token, generation)

    async def _reconcile_pass(self, token: str, generation: int) -> SyncReport:
        started = time.monotonic()
        try:
            store = (await self._pipeline(token)).store
            fetched = await DownloadPipeline.from_config(store, self.config).fetch_all()
        except AuthError:
            self._auth_expired()
            raise
        finally:
            self._reconciling = False

        report = SyncReport(fetched=len(fetched.entries), skipped=fetched.skipped)
        if self.session.generation != generation or self.session.token() is None:
            logger.warning("Session changed during reconciliation; discarding results")
            report.discarded = True
            return report

        merged = merge_entries(self.local_store.get_all(), fetched.entries)
        self._store_all(merged.changed_entries)
        for entry in merged.changed_entries:
            self._fingerprints[entry.id] = entry.content_fingerprint()
        self._entries = merged.entries

        report.inserted = merged.inserted
        report.replaced = merged.replaced
        report.unchanged = merged.unchanged
        report.duration_seconds = time.monotonic() - started
        logger.info(
            f"Reconciled {report.fetched} remote entries: {len(report.inserted)} new, "
            f"{len(report.replaced)} updated, {len(report.skipped)} skipped"
        )
        return report

    def _store_all(self, entries: list[Entry]) -> None:
        """Apply a merge in one local write where the store supports it."""
        if not entries:
            return
        put_many = getattr(self.local_store, "put_many", None)
        if put_many is not None:
            put_many(entries)
            return
        for entry in entries:
            self.local_store.put(entry)

    async def on_login(self) -> Optional[SyncReport]:
        return await self.reconcile()

    # ---- delete ----

    async def delete_entry(self, entry_id: str) -> bool:
        """Remote delete (best effort), then local delete.

        AuthError aborts before anything local is touched. Returns whether a
        remote record was deleted.
        """
        entry = self.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)

        remote_deleted = False
        token = self.session.token()
        if token is not None:
            try:
                remote_deleted = await (await self._pipeline(token)).delete(entry)
            except AuthError:
                self._auth_expired()
                raise

        self.local_store.delete(entry_id)
        self._entries = [e for e in self._entries if e.id != entry_id]
        self._fingerprints.pop(entry_id, None)
        return remote_deleted
