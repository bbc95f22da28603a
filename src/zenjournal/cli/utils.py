# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.01
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/cli/utils.py

"""
CLI utility functions shared by the command handlers.

All functions handle console output and typer exits consistently.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, NoReturn, Optional, TypeVar

import typer
from rich.console import Console

from zenjournal.config.manager import JournalConfig, load_merged_config
from zenjournal.core.orchestrator import SyncOrchestrator
from zenjournal.data.models import Mood
from zenjournal.storage.drive import DriveClient
from zenjournal.storage.local import JsonEntryStore
from zenjournal.storage.session import SessionStore
from zenjournal.system.exceptions import AuthError, ConfigError

T = TypeVar("T")


@dataclass
class Runtime:
    config: JournalConfig
    store: JsonEntryStore
    session: SessionStore

    def orchestrator(self) -> SyncOrchestrator:
        return SyncOrchestrator(
            self.store,
            self.session,
            lambda token: DriveClient.from_config(token, self.config),
            self.config,
        )


def load_config_with_console(console: Console, verbose: bool = False) -> JournalConfig:
    """
    Load configuration with proper error handling and console output.

    Raises:
        typer.Exit: If configuration loading fails
    """
    if verbose:
        console.print("[dim]Loading configuration...[/dim]")
    try:
        return load_merged_config()
    except ConfigError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(1)


def load_runtime(console: Console, config: Optional[JournalConfig] = None) -> Runtime:
    config = config or load_config_with_console(console)
    return Runtime(
        config=config,
        store=JsonEntryStore(config.entries_path),
        session=SessionStore(config.session_path),
    )


def parse_mood_option(console: Console, value: Optional[str]) -> Optional[Mood]:
    if value is None:
        return None
    mood = Mood.parse(value)
    if mood is None:
        choices = ", ".join(m.value for m in Mood)
        console.print(f"[red]✗[/red] Unknown mood '{value}' (choose from {choices})")
        raise typer.Exit(1)
    return mood


def require_login(console: Console, runtime: Runtime) -> None:
    if runtime.session.token() is None:
        console.print("[red]✗[/red] Not logged in to the remote store")
        console.print("Run 'zenjournal login --token <TOKEN>' first")
        raise typer.Exit(1)


def run_with_orchestrator(runtime: Runtime, work: Callable[[SyncOrchestrator], Awaitable[T]]) -> T:
    """Run work on a fresh event loop and close remote connections afterwards."""
    async def runner() -> T:
        orchestrator = runtime.orchestrator()
        try:
            return await work(orchestrator)
        finally:
            await orchestrator.aclose()

    return asyncio.run(runner())


def handle_auth_error(console: Console, error: AuthError) -> NoReturn:
    console.print(f"[red]✗[/red] Remote store rejected the session ({error})")
    console.print("Session expired, run 'zenjournal login' to reconnect")
    raise typer.Exit(1)


def handle_operation_error(console: Console, operation: str, error: Exception) -> NoReturn:
    """Handle operation errors with consistent formatting."""
    console.print(f"[red]✗[/red] Error {operation}: {error}")
    raise typer.Exit(1)
