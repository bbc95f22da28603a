# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.02
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/conftest.py

"""
Shared test fixtures for the zenjournal test suite.
"""

from pathlib import Path

import pytest

from zenjournal.config.manager import JournalConfig, SyncSettings
from zenjournal.storage.local import JsonEntryStore
from zenjournal.storage.session import SessionStore
from zenjournal.data.models import Entry
from tests.fixtures.factories import PNG_BYTES, make_entry
from tests.fixtures.fake_drive import FakeDrive


@pytest.fixture(autouse=True)
def isolated_config_env(tmp_path, monkeypatch):
    """Keep every test away from the real config and data directories."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    monkeypatch.delenv("ZENJOURNAL_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def config(tmp_path) -> JournalConfig:
    return JournalConfig(
        data_dir=tmp_path / "data",
        sync=SyncSettings(autosave_seconds=0.01, retry_base_delay=0),
    )


@pytest.fixture
def local_store(config) -> JsonEntryStore:
    return JsonEntryStore(config.entries_path)


@pytest.fixture
def session(config) -> SessionStore:
    s = SessionStore(config.session_path)
    s.login("test-token", expires_in=3600)
    return s


@pytest.fixture
def entry() -> Entry:
    return make_entry()


@pytest.fixture
def sample_image_file(tmp_path) -> Path:
    path = tmp_path / "sunrise.png"
    path.write_bytes(PNG_BYTES)
    return path
