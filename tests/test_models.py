# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.27
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_models.py

import base64
from datetime import datetime, timedelta, timezone

import pytest

from zenjournal.data.models import (
    Entry,
    Image,
    Mood,
    RemoteRecord,
    FOLDER_MIME_TYPE,
    parse_timestamp,
)
from tests.fixtures.factories import CEST, PNG_BYTES, make_entry, make_image


class TestMood:
    def test_parse_is_case_insensitive(self):
        assert Mood.parse("great") is Mood.GREAT
        assert Mood.parse("  OKAY ") is Mood.OKAY

    def test_unknown_mood_is_none(self):
        assert Mood.parse("Ecstatic") is None
        assert Mood.parse("") is None
        assert Mood.parse(None) is None

    def test_str_is_display_value(self):
        assert str(Mood.BAD) == "Bad"


class TestEntry:
    def test_updated_at_clamped_to_created_at(self):
        created = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        entry = make_entry(created_at=created, updated_at=created - timedelta(hours=1))
        assert entry.updated_at == created

    def test_new_entry_has_numeric_id_and_local_offset(self):
        entry = Entry.new(title="Hello")
        assert entry.id.isdigit()
        assert entry.created_at.tzinfo is not None
        assert entry.updated_at == entry.created_at
        assert entry.content == ""

    def test_touch_bumps_updated_at_and_applies_changes(self):
        entry = make_entry()
        edited = entry.touch(title="Evening pages")
        assert edited.title == "Evening pages"
        assert edited.updated_at > entry.updated_at
        assert edited.id == entry.id
        assert entry.title == "Morning pages"

    def test_touch_never_moves_updated_at_backwards(self):
        future = datetime.now(timezone.utc) + timedelta(days=1)
        entry = make_entry(created_at=future, updated_at=future)
        assert entry.touch(content="x").updated_at == future

    def test_fingerprint_ignores_timestamps_and_remote_name(self):
        entry = make_entry()
        later = make_entry(updated_at=entry.updated_at + timedelta(hours=2), remote_file_name="x.txt")
        assert entry.content_fingerprint() == later.content_fingerprint()

    def test_fingerprint_tracks_visible_fields(self):
        entry = make_entry()
        assert entry.content_fingerprint() != make_entry(mood=Mood.BAD).content_fingerprint()
        assert entry.content_fingerprint() != make_entry(images=[make_image()]).content_fingerprint()

    def test_dict_round_trip_keeps_offset(self):
        entry = make_entry(images=[make_image()], remote_file_name="Morning pages.txt")
        data = entry.to_dict()
        assert data["createdAt"].endswith("+02:00")
        restored = Entry.from_dict(data)
        assert restored == entry
        assert restored.created_at.utcoffset() == CEST.utcoffset(None)

    def test_from_dict_accepts_epoch_millis(self):
        entry = Entry.from_dict({"id": "1", "title": "t", "content": "", "createdAt": 1717236000000})
        assert entry.created_at == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        assert entry.updated_at == entry.created_at
        assert entry.mood is None
        assert entry.images == []


class TestImage:
    def test_extension_from_mime(self):
        assert make_image(mime_type="image/jpeg").extension == "jpeg"
        assert Image(id="1", data="", mime_type="").extension == "png"

    def test_decode_plain_and_data_url(self):
        encoded = base64.b64encode(PNG_BYTES).decode()
        assert Image(id="1", data=encoded, mime_type="image/png").decode() == PNG_BYTES
        data_url = f"data:image/png;base64,{encoded}"
        assert Image(id="1", data=data_url, mime_type="image/png").decode() == PNG_BYTES

    def test_decode_rejects_garbage(self):
        with pytest.raises(ValueError):
            Image(id="1", data="not base64!!", mime_type="image/png").decode()


class TestRemoteRecord:
    def test_kind_helpers(self):
        folder = RemoteRecord(remote_id="f", name="2025-06-01", mime_type=FOLDER_MIME_TYPE)
        text = RemoteRecord(remote_id="t", name="a.txt")
        assert folder.is_folder and not folder.is_text
        assert text.is_text and not text.is_folder


def test_parse_timestamp_defaults_naive_to_utc():
    assert parse_timestamp("2025-06-01T10:00:00").tzinfo == timezone.utc
    assert parse_timestamp("2025-06-01T10:00:00Z") == datetime(2025, 6, 1, 10, tzinfo=timezone.utc)
