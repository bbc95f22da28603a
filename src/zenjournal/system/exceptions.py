# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.08
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/system/exceptions.py

"""
zenjournal-specific exception classes.

The sync engine distinguishes three failure families: credentials rejected by
the remote store (AuthError), any other provider failure (RemoteError), and
remote content that cannot be read back into an entry (ParseError).
"""


class JournalError(Exception):
    """Base exception for all zenjournal errors."""
    pass


class ConfigError(JournalError):
    """Raised when there are configuration validation or loading errors."""
    pass


class StorageError(JournalError):
    """Raised when the local entry store or session file cannot be read or written."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(message)


class EntryNotFoundError(JournalError):
    """No local entry has the requested id."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"No entry with id {entry_id}")


class SyncError(JournalError):
    """Base class for sync engine failures."""
    pass


class ParseError(SyncError):
    """Remote text record could not be parsed into an entry."""

    def __init__(self, message: str, file_name: str = None):
        self.file_name = file_name
        super().__init__(message)


# === REMOTE STORE ERRORS ===

class RemoteError(SyncError):
    """Provider-side failure unrelated to authentication."""

    def __init__(self, message: str, status_code: int = None,
                 retry_possible: bool = None, backoff_seconds: float = None):
        self.message = message
        self.status_code = status_code
        if retry_possible is None:
            # Rate limits and server errors are transient; validation errors are not
            retry_possible = status_code is not None and (status_code == 429 or status_code >= 500)
        self.retry_possible = retry_possible
        self.backoff_seconds = backoff_seconds
        super().__init__(message)


class AuthError(RemoteError):
    """Credentials rejected or expired (HTTP 401/403). Never retried."""

    def __init__(self, message: str = "UNAUTHENTICATED", **kwargs):
        kwargs['retry_possible'] = False
        super().__init__(message, **kwargs)
