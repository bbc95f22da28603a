# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.27
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_session.py

from datetime import timedelta

from zenjournal.storage.session import SessionStore


class TestSessionStore:
    def test_logged_out_by_default(self, config):
        session = SessionStore(config.session_path)
        assert session.token() is None
        assert session.generation == 0

    def test_login_persists_token(self, config):
        session = SessionStore(config.session_path)
        session.login("abc", expires_in=3600)
        assert session.token() == "abc"
        assert SessionStore(config.session_path).token() == "abc"

    def test_token_without_expiry_never_expires(self, config):
        session = SessionStore(config.session_path)
        session.login("forever")
        assert session.expires_at is None
        assert session.token() == "forever"

    def test_token_inside_expiry_buffer_is_treated_as_expired(self, config):
        session = SessionStore(config.session_path)
        session.login("short", expires_in=30)
        assert session.token() is None

    def test_expired_token_from_disk(self, config):
        session = SessionStore(config.session_path)
        session.login("abc", expires_in=3600)
        reopened = SessionStore(config.session_path)
        reopened._expires_at = reopened.expires_at - timedelta(hours=2)
        assert reopened.token() is None

    def test_generation_bumps_on_login_and_logout(self, config):
        session = SessionStore(config.session_path)
        session.login("a", expires_in=3600)
        session.login("b", expires_in=3600)
        assert session.generation == 2
        session.logout()
        assert session.generation == 3
        assert session.token() is None
        assert not config.session_path.exists()

    def test_auth_expired_clears_session(self, session, config):
        before = session.generation
        session.on_auth_expired()
        assert session.token() is None
        assert session.generation == before + 1
        assert SessionStore(config.session_path).token() is None
