# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.07
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/cli/commands/actions.py

"""
Action command handlers - state-changing operations.

Handles: new, edit, delete, export, login, logout, sync, push
"""

import mimetypes
import time
from pathlib import Path
from typing import Any, Optional

import typer
from loguru import logger
from rich.console import Console

from zenjournal.cli.utils import Runtime, handle_auth_error, require_login, run_with_orchestrator
from zenjournal.data.models import Entry, Image, Mood
from zenjournal.data.naming import canonical_file_name
from zenjournal.data.serializer import serialize_entry
from zenjournal.system.display import display_sync_report, display_upload_result
from zenjournal.system.exceptions import AuthError, EntryNotFoundError


def _get_or_exit(console: Console, runtime: Runtime, entry_id: str) -> Entry:
    entry = runtime.store.get(entry_id)
    if entry is None:
        console.print(f"[red]✗[/red] No entry with id {entry_id}")
        raise typer.Exit(1)
    return entry


def _save(console: Console, runtime: Runtime, entry: Entry) -> bool:
    """Save through the orchestrator so a logged-in session also pushes."""
    async def work(orchestrator):
        saved = await orchestrator.save_now(entry)
        await orchestrator.flush()
        return saved, orchestrator.last_upload

    saved, upload = run_with_orchestrator(runtime, work)
    if runtime.session.token() is None and upload is None and saved:
        console.print("[dim]Saved locally (not logged in, nothing pushed)[/dim]")
    if upload is not None:
        display_upload_result(console, upload)
    return saved


def _image_from_path(path: Path, index: int) -> Image:
    mime_type = mimetypes.guess_type(path.name)[0] or "image/png"
    image_id = f"{time.time_ns() // 1_000_000}{index}"
    return Image.from_bytes(image_id, path.read_bytes(), mime_type)


def new_entry(console: Console, runtime: Runtime, title: str, content: str,
              mood: Optional[Mood] = None) -> dict[str, Any]:
    entry = Entry.new(title=title, content=content, mood=mood)
    _save(console, runtime, entry)
    console.print(f"[green]✓[/green] Created entry {entry.id}")
    return {"entry": entry.id}


def edit_entry(console: Console, runtime: Runtime, entry_id: str,
               title: Optional[str] = None, content: Optional[str] = None,
               mood: Optional[Mood] = None, clear_mood: bool = False,
               add_images: Optional[list[Path]] = None,
               remove_images: Optional[list[str]] = None) -> dict[str, Any]:
    entry = _get_or_exit(console, runtime, entry_id)
    changes: dict[str, Any] = {}
    if title is not None:
        changes["title"] = title
    if content is not None:
        changes["content"] = content
    if mood is not None or clear_mood:
        changes["mood"] = None if clear_mood else mood
    if add_images or remove_images:
        images = [image for image in entry.images if image.id not in set(remove_images or ())]
        for index, path in enumerate(add_images or ()):
            try:
                images.append(_image_from_path(path, index))
            except OSError as e:
                console.print(f"[red]✗[/red] Cannot read image {path}: {e}")
                raise typer.Exit(1)
        changes["images"] = images

    if not changes:
        console.print("[yellow]![/yellow] Nothing to change")
        return {"entry": entry.id, "saved": False}

    updated = entry.touch(**changes)
    saved = _save(console, runtime, updated)
    if saved:
        console.print(f"[green]✓[/green] Updated entry {entry.id}")
    else:
        console.print("[dim]No changes to save[/dim]")
    return {"entry": entry.id, "saved": saved}


def delete_entry(console: Console, runtime: Runtime, entry_id: str, yes: bool = False) -> dict[str, Any]:
    entry = _get_or_exit(console, runtime, entry_id)
    if not yes and not typer.confirm(f"Delete '{entry.title or 'Untitled'}'?"):
        console.print("Cancelled")
        raise typer.Exit(0)
    try:
        remote_deleted = run_with_orchestrator(runtime, lambda o: o.delete_entry(entry_id))
    except AuthError as e:
        handle_auth_error(console, e)
    except EntryNotFoundError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    suffix = " (remote copy deleted)" if remote_deleted else ""
    console.print(f"[green]✓[/green] Deleted entry {entry_id}{suffix}")
    return {"entry": entry_id, "remote_deleted": remote_deleted}


def export_entry(console: Console, runtime: Runtime, entry_id: str,
                 output: Optional[Path] = None) -> dict[str, Any]:
    """Write the entry as the same text the remote store receives."""
    entry = _get_or_exit(console, runtime, entry_id)
    target = output or Path(canonical_file_name(entry.title))
    target.write_text(serialize_entry(entry), encoding="utf-8")
    console.print(f"[green]✓[/green] Exported to {target}")
    return {"entry": entry.id, "path": str(target)}


def login(console: Console, runtime: Runtime, token: str, expires_in: Optional[int] = None) -> dict[str, Any]:
    runtime.session.login(token, expires_in)
    console.print("[green]✓[/green] Logged in; reconciling with the remote store...")
    try:
        report = run_with_orchestrator(runtime, lambda o: o.on_login())
    except AuthError as e:
        handle_auth_error(console, e)
    if report is not None:
        display_sync_report(console, report)
    return {"logged_in": True}


def logout(console: Console, runtime: Runtime) -> dict[str, Any]:
    runtime.session.logout()
    console.print("[green]✓[/green] Logged out")
    return {"logged_in": False}


def sync(console: Console, runtime: Runtime, verbose: bool = False) -> dict[str, Any]:
    require_login(console, runtime)
    try:
        report = run_with_orchestrator(runtime, lambda o: o.reconcile())
    except AuthError as e:
        handle_auth_error(console, e)
    if report is None:
        console.print("[yellow]![/yellow] Sync did not run")
        return {"synced": False}
    display_sync_report(console, report, verbose=verbose)
    return {"synced": not report.discarded, "inserted": report.inserted, "replaced": report.replaced}


def push(console: Console, runtime: Runtime, entry_id: Optional[str] = None) -> dict[str, Any]:
    """Upload one entry, or every entry when no id is given."""
    require_login(console, runtime)
    if entry_id is not None:
        _get_or_exit(console, runtime, entry_id)
        ids = [entry_id]
    else:
        ids = [entry.id for entry in runtime.store.get_all()]

    async def work(orchestrator):
        results = []
        for eid in ids:
            results.append(await orchestrator.push(eid))
        return results

    try:
        results = run_with_orchestrator(runtime, work)
    except AuthError as e:
        handle_auth_error(console, e)
    for result in results:
        display_upload_result(console, result)
    failed = [result.entry_id for result in results if not result.ok]
    if failed:
        logger.debug(f"Push failed for {failed}")
        raise typer.Exit(1)
    return {"pushed": len(results)}
