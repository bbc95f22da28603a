# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.23
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/storage/session.py

"""Persisted bearer-token session."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from zenjournal.data.models import parse_timestamp
from zenjournal.storage.local import read_json, write_json_atomic

# A token this close to expiry is treated as already expired
EXPIRY_BUFFER = timedelta(seconds=60)


class SessionStore:
    """Session backed by session.json.

    generation counts logins and invalidations; a sync run that started under
    an older generation must discard its results.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._generation = 0
        data = read_json(self.path) or {}
        self._token: Optional[str] = data.get("token") if isinstance(data, dict) else None
        expires = data.get("expiresAt") if isinstance(data, dict) else None
        self._expires_at: Optional[datetime] = parse_timestamp(expires) if expires else None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def token(self) -> Optional[str]:
        if not self._token:
            return None
        if self._expires_at is not None and self._now() + EXPIRY_BUFFER >= self._expires_at:
            logger.debug("Stored token is expired")
            return None
        return self._token

    def login(self, token: str, expires_in: Optional[int] = None) -> None:
        """Store a new token; expires_in is seconds from now, None for no known expiry."""
        self._token = token
        self._expires_at = self._now() + timedelta(seconds=expires_in) if expires_in else None
        self._generation += 1
        write_json_atomic(self.path, {
            "token": token,
            "expiresAt": self._expires_at.isoformat() if self._expires_at else None,
        })
        logger.info("Logged in to remote store")

    def logout(self) -> None:
        self._token = None
        self._expires_at = None
        self._generation += 1
        self.path.unlink(missing_ok=True)

    def on_auth_expired(self) -> None:
        logger.warning("Remote session expired; run `zenjournal login` to reconnect")
        self.logout()
