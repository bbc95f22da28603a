# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.05.10
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/cli/main.py

"""
CLI dispatcher. Each command parses its options and hands off to a handler in
zenjournal.cli.commands.
"""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from zenjournal.cli.commands import actions as action_commands
from zenjournal.cli.commands import info as info_commands
from zenjournal.cli.utils import load_runtime, parse_mood_option
from zenjournal.system.logging_setup import setup_logging

app = typer.Typer(
    help="""zenjournal - A calm journal that mirrors itself to your cloud drive

[bold blue]Entries:[/bold blue] new, edit, show, list, delete, export
[bold green]Sync:[/bold green] login, logout, sync, push, status
[bold red]Validation:[/bold red] validate-config
""",
    rich_markup_mode="rich"
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        try:
            pkg_version = version("zenjournal")
        except PackageNotFoundError:
            pkg_version = "unknown"
        console.print(f"zenjournal version {pkg_version}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """zenjournal - journal entries, synced to a cloud drive."""
    setup_logging(debug=debug)


# =============================================================================
# ENTRY COMMANDS
# =============================================================================

@app.command()
def new(
    title: str = typer.Option("", "--title", "-t", help="Entry title"),
    content: str = typer.Option("", "--content", "-c", help="Entry text"),
    mood: Optional[str] = typer.Option(None, "--mood", "-m", help="Great, Good, Okay or Bad"),
) -> Any:
    """[bold blue]Entries[/bold blue]: Create a new entry."""
    runtime = load_runtime(console)
    return action_commands.new_entry(console, runtime, title, content, parse_mood_option(console, mood))


@app.command()
def edit(
    entry_id: str = typer.Argument(..., help="Entry id"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="New text"),
    mood: Optional[str] = typer.Option(None, "--mood", "-m", help="Great, Good, Okay or Bad"),
    clear_mood: bool = typer.Option(False, "--clear-mood", help="Remove the mood"),
    add_image: Optional[list[Path]] = typer.Option(None, "--add-image", exists=True, dir_okay=False,
                                                   help="Attach an image file (repeatable)"),
    remove_image: Optional[list[str]] = typer.Option(None, "--remove-image", help="Detach an image by id (repeatable)"),
) -> Any:
    """[bold blue]Entries[/bold blue]: Change an entry's title, text, mood or images."""
    runtime = load_runtime(console)
    return action_commands.edit_entry(
        console, runtime, entry_id,
        title=title, content=content, mood=parse_mood_option(console, mood), clear_mood=clear_mood,
        add_images=add_image, remove_images=remove_image,
    )


@app.command()
def show(entry_id: str = typer.Argument(..., help="Entry id")) -> Any:
    """[bold blue]Entries[/bold blue]: Show one entry."""
    return info_commands.show_entry(console, load_runtime(console), entry_id)


@app.command(name="list")
def list_command(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Text to look for in title or body"),
    mood: Optional[str] = typer.Option(None, "--mood", "-m", help="Only entries with this mood"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show previews and remote names"),
    to_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> Any:
    """[bold blue]Entries[/bold blue]: List entries, newest first."""
    runtime = load_runtime(console)
    return info_commands.list_entries(
        console, runtime, search=search, mood=parse_mood_option(console, mood),
        to_json=to_json, verbose=verbose,
    )


@app.command()
def delete(
    entry_id: str = typer.Argument(..., help="Entry id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> Any:
    """[bold blue]Entries[/bold blue]: Delete an entry here and on the remote store."""
    return action_commands.delete_entry(console, load_runtime(console), entry_id, yes=yes)


@app.command()
def export(
    entry_id: str = typer.Argument(..., help="Entry id"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Target file (default: <title>.txt)"),
) -> Any:
    """[bold blue]Entries[/bold blue]: Save an entry as a text file."""
    return action_commands.export_entry(console, load_runtime(console), entry_id, output=output)


# =============================================================================
# SYNC COMMANDS
# =============================================================================

@app.command()
def login(
    token: str = typer.Option(..., "--token", help="OAuth bearer token for the drive API"),
    expires_in: Optional[int] = typer.Option(None, "--expires-in", help="Token lifetime in seconds"),
) -> Any:
    """[bold green]Sync[/bold green]: Store an access token and reconcile."""
    return action_commands.login(console, load_runtime(console), token, expires_in)


@app.command()
def logout() -> Any:
    """[bold green]Sync[/bold green]: Forget the stored access token."""
    return action_commands.logout(console, load_runtime(console))


@app.command()
def sync(verbose: bool = typer.Option(False, "--verbose", "-v", help="List skipped remote records")) -> Any:
    """[bold green]Sync[/bold green]: Download remote entries and merge them (newest wins)."""
    return action_commands.sync(console, load_runtime(console), verbose=verbose)


@app.command()
def push(entry_id: Optional[str] = typer.Argument(None, help="Entry id (default: all entries)")) -> Any:
    """[bold green]Sync[/bold green]: Upload entries to the remote store."""
    return action_commands.push(console, load_runtime(console), entry_id)


@app.command()
def status() -> Any:
    """[bold green]Sync[/bold green]: Show local store and session status."""
    return info_commands.status(console, load_runtime(console))


@app.command(name="validate-config")
def validate_config_command() -> Any:
    """[bold red]Validation[/bold red]: Validate configuration files."""
    return info_commands.validate_config(console)


if __name__ == "__main__":
    app()
