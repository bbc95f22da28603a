# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.05.17
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/system/display.py

from datetime import datetime, timezone
from typing import Optional

import humanize
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from zenjournal.core.orchestrator import SyncReport
from zenjournal.core.upload import UploadResult
from zenjournal.data.models import Entry, Mood

MOOD_STYLES = {
    Mood.GREAT: "bold green",
    Mood.GOOD: "green",
    Mood.OKAY: "yellow",
    Mood.BAD: "red",
}

PREVIEW_LENGTH = 60


def _relative(dt: datetime) -> str:
    return humanize.naturaltime(datetime.now(timezone.utc) - dt)


def _mood_text(mood: Optional[Mood]) -> str:
    if mood is None:
        return "[dim]-[/dim]"
    return f"[{MOOD_STYLES[mood]}]{mood.value}[/{MOOD_STYLES[mood]}]"


def _preview(content: str) -> str:
    flat = " ".join(content.split())
    return flat if len(flat) <= PREVIEW_LENGTH else flat[:PREVIEW_LENGTH - 1] + "…"


def entries_to_table(entries: list[Entry], verbose: bool = False) -> Table:
    """Journal table: one row per entry, newest first as given."""
    table = Table(title=f"Journal ({len(entries)} entries)")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Mood")
    table.add_column("Created")
    table.add_column("Updated")
    table.add_column("Images", justify="right")
    if verbose:
        table.add_column("Preview")
        table.add_column("Remote name", style="dim")

    for entry in entries:
        row = [
            entry.id,
            entry.title or "[dim]Untitled[/dim]",
            _mood_text(entry.mood),
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            _relative(entry.updated_at),
            str(len(entry.images)) if entry.images else "",
        ]
        if verbose:
            row.extend([_preview(entry.content), entry.remote_file_name or ""])
        table.add_row(*row)
    return table


def display_entry(console: Console, entry: Entry) -> None:
    subtitle = f"{entry.created_at.strftime('%A, %d %B %Y %H:%M')} · {_mood_text(entry.mood)}"
    console.print(Panel(entry.content or "[dim](empty)[/dim]", title=f"[bold]{entry.title or 'Untitled'}[/bold]",
                        subtitle=subtitle, expand=False))
    if entry.images:
        images = Table(show_header=True, box=None)
        images.add_column("Image")
        images.add_column("Type")
        images.add_column("Size", justify="right")
        for image in entry.images:
            try:
                size = humanize.naturalsize(len(image.decode()))
            except ValueError:
                size = "[red]invalid[/red]"
            images.add_row(image.id, image.mime_type, size)
        console.print(images)
    console.print(f"[dim]id {entry.id} · updated {_relative(entry.updated_at)}[/dim]")


def display_sync_report(console: Console, report: SyncReport, verbose: bool = False) -> None:
    if report.discarded:
        console.print("[yellow]![/yellow] Session changed during sync; results were discarded")
        return
    console.print(
        f"[green]✓[/green] Synced {report.fetched} remote entries in "
        f"{humanize.naturaldelta(report.duration_seconds, minimum_unit='milliseconds')}: "
        f"{len(report.inserted)} new, {len(report.replaced)} updated, {len(report.unchanged)} unchanged"
    )
    if report.skipped:
        console.print(f"[yellow]![/yellow] Skipped {len(report.skipped)} remote records")
        if verbose:
            for name, reason in report.skipped:
                console.print(f"  [dim]{name}[/dim]: {reason}")


def display_upload_result(console: Console, result: UploadResult) -> None:
    if not result.ok:
        console.print(f"[red]✗[/red] {result.entry_id}: {result.error}")
        return
    images = ""
    if result.images_uploaded or result.images_skipped:
        images = f", images {result.images_uploaded} uploaded / {result.images_skipped} already present"
    console.print(f"[green]✓[/green] {result.entry_id}: {result.action} as {result.remote_file_name}{images}")
