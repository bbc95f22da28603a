# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.07
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/cli/commands/info.py

"""
Info command handlers - read-only information commands.

Handles: list, show, status, validate-config
"""

from datetime import datetime, timezone
from typing import Any, Optional

import humanize
import orjson
import typer
from rich.console import Console

from zenjournal.cli.utils import Runtime
from zenjournal.config.manager import validate_config as validate_config_files
from zenjournal.core.merge import sort_entries
from zenjournal.core.orchestrator import filter_entries
from zenjournal.data.models import Entry, Mood
from zenjournal.system.display import display_entry, entries_to_table


def _entry_summary(entry: Entry) -> dict[str, Any]:
    data = entry.to_dict()
    data["images"] = [image.id for image in entry.images]
    return data


def list_entries(console: Console, runtime: Runtime, search: Optional[str] = None,
                 mood: Optional[Mood] = None, to_json: bool = False,
                 verbose: bool = False) -> dict[str, Any]:
    """List entries newest first, filtered by search text and mood."""
    entries = filter_entries(sort_entries(runtime.store.get_all()), search=search, mood=mood)
    if to_json:
        console.print_json(orjson.dumps([_entry_summary(e) for e in entries]).decode())
    elif entries:
        console.print(entries_to_table(entries, verbose=verbose))
    else:
        console.print("[dim]No entries match.[/dim]")
    return {"count": len(entries), "entries": [e.id for e in entries]}


def show_entry(console: Console, runtime: Runtime, entry_id: str) -> dict[str, Any]:
    entry = runtime.store.get(entry_id)
    if entry is None:
        console.print(f"[red]✗[/red] No entry with id {entry_id}")
        raise typer.Exit(1)
    display_entry(console, entry)
    return {"entry": entry.id}


def status(console: Console, runtime: Runtime) -> dict[str, Any]:
    """Local store and session overview."""
    entries = runtime.store.get_all()
    token = runtime.session.token()
    expires_at = runtime.session.expires_at

    console.print(f"Entries:     {len(entries)} in {runtime.config.entries_path}")
    console.print(f"Remote root: {runtime.config.app_folder_name}")
    if token is None:
        console.print("Session:     [yellow]not logged in[/yellow]")
    elif expires_at is not None:
        remaining = humanize.naturaldelta(expires_at - datetime.now(timezone.utc))
        console.print(f"Session:     [green]logged in[/green], expires in {remaining}")
    else:
        console.print("Session:     [green]logged in[/green]")
    if entries:
        newest = max(entries, key=lambda e: e.updated_at)
        console.print(f"Last edit:   {newest.title or 'Untitled'} ({humanize.naturaltime(datetime.now(timezone.utc) - newest.updated_at)})")
    return {"entries": len(entries), "logged_in": token is not None}


def validate_config(console: Console) -> dict[str, Any]:
    errors = validate_config_files()
    if errors:
        for error in errors:
            console.print(f"[red]✗[/red] {error}")
        raise typer.Exit(1)
    console.print("[green]✓[/green] Configuration is valid")
    return {"errors": []}
