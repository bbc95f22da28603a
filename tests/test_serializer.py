# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.27
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_serializer.py

"""
Tests for the remote text-record format: serializing entries, the
header/body/footer state machine, title precedence and decoding.
"""

from datetime import datetime, timezone

import pytest

from zenjournal.data.models import Mood, RemoteRecord
from zenjournal.data.naming import canonical_file_name
from zenjournal.data.serializer import (
    parse_entry_bytes,
    parse_entry_text,
    resolve_title,
    serialize_entry,
)
from zenjournal.system.exceptions import ParseError
from tests.fixtures.factories import make_entry, make_image

MODIFIED = datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)


def record_for(name: str = "Morning pages.txt", entry_id: str | None = "1717236000000",
               remote_id: str = "1AbCdEfGhIjKlMnOpQrStUv") -> RemoteRecord:
    return RemoteRecord(remote_id=remote_id, name=name, parents=frozenset({"day"}),
                        modified_time=MODIFIED, entry_id=entry_id)


class TestSerialize:
    def test_header_body_layout(self):
        text = serialize_entry(make_entry())
        lines = text.split("\n")
        assert lines[0] == "Title: Morning pages"
        assert lines[1].startswith("Date: ")
        assert "2025" in lines[1]
        assert lines[2] == "Mood: Good"
        assert lines[3] == ""
        assert lines[4:] == ["Slept well.", "Long walk after breakfast."]

    def test_mood_line_omitted_when_absent(self):
        assert "Mood:" not in serialize_entry(make_entry(mood=None))

    def test_footer_lists_attachment_ids(self):
        entry = make_entry(images=[make_image("a1"), make_image("b2")])
        assert serialize_entry(entry).endswith("\n\n---\nattachments: a1,b2")

    def test_no_footer_without_images(self):
        text = serialize_entry(make_entry())
        assert "---" not in text
        assert "attachments:" not in text

    def test_multiline_title_is_flattened(self):
        text = serialize_entry(make_entry(title="two\nlines"))
        assert text.startswith("Title: two lines\n")


class TestRoundTrip:
    @pytest.mark.parametrize("entry", [
        make_entry(),
        make_entry(mood=None, content=""),
        make_entry(title='Q3: plans / "ideas"', mood=Mood.GREAT),
        make_entry(content="Intro\n\n---\n\nAfter the rule\n", images=[make_image()]),
        make_entry(content="\n\nStarts after blank lines", mood=Mood.BAD),
        make_entry(content="Ends with a rule\n---", images=[make_image("x")]),
    ])
    def test_round_trip_reproduces_title_mood_and_body(self, entry):
        record = RemoteRecord(
            remote_id="remote-1234567890abcdefgh",
            name=canonical_file_name(entry.title),
            modified_time=entry.updated_at,
            entry_id=entry.id,
        )
        parsed = parse_entry_text(serialize_entry(entry), record)
        assert parsed.id == entry.id
        assert parsed.title == entry.title
        assert parsed.mood == entry.mood
        assert parsed.content == entry.content.rstrip()
        assert parsed.attachment_ids == [image.id for image in entry.images]


class TestHeaderScan:
    def test_blank_line_between_header_fields_stays_in_header(self):
        text = "Title: Spaced\n\nMood: Okay\n\nBody here"
        parsed = parse_entry_text(text, record_for("Spaced.txt"))
        assert parsed.mood is Mood.OKAY
        assert parsed.content == "Body here"

    def test_first_non_header_line_starts_body_without_blank(self):
        parsed = parse_entry_text("Title: Tight\nBody right away", record_for("Tight.txt"))
        assert parsed.content == "Body right away"

    def test_file_without_any_header(self):
        parsed = parse_entry_text("Just some text\nacross lines", record_for("Thoughts.txt", entry_id=None))
        assert parsed.title == "Thoughts"
        assert parsed.content == "Just some text\nacross lines"
        assert parsed.mood is None

    def test_unknown_mood_is_ignored(self):
        parsed = parse_entry_text("Title: x\nMood: Radiant\n\nbody", record_for("x.txt"))
        assert parsed.mood is None

    def test_crlf_line_endings(self):
        parsed = parse_entry_text("Title: Win\r\nMood: Good\r\n\r\nline one\r\nline two", record_for("Win.txt"))
        assert parsed.mood is Mood.GOOD
        assert parsed.content == "line one\nline two"


class TestBodyAndFooter:
    def test_separator_before_footer_is_skipped(self):
        text = "Title: t\n\nbody\n\n---\nattachments: a,b"
        parsed = parse_entry_text(text, record_for("t.txt"))
        assert parsed.content == "body"
        assert parsed.attachment_ids == ["a", "b"]

    def test_mid_body_rule_is_kept(self):
        text = "Title: t\n\nabove\n---\nbelow"
        assert parse_entry_text(text, record_for("t.txt")).content == "above\n---\nbelow"

    def test_lone_separator_at_eof_is_skipped(self):
        text = "Title: t\n\nbody\n---\n"
        assert parse_entry_text(text, record_for("t.txt")).content == "body"

    def test_lines_after_footer_are_ignored(self):
        text = "Title: t\n\nbody\n---\nattachments: a\ntrailing junk"
        assert parse_entry_text(text, record_for("t.txt")).content == "body"

    def test_trailing_whitespace_is_trimmed(self):
        assert parse_entry_text("Title: t\n\nbody  \n\n\n", record_for("t.txt")).content == "body"


class TestIdentityAndTimestamps:
    def test_entry_id_property_wins(self):
        parsed = parse_entry_text("Title: t\n\nb", record_for("t.txt", entry_id="42"))
        assert parsed.id == "42"

    def test_falls_back_to_remote_id(self):
        parsed = parse_entry_text("Title: t\n\nb", record_for("t.txt", entry_id=None, remote_id="remote-abc"))
        assert parsed.id == "remote-abc"

    def test_timestamps_come_from_modified_time(self):
        entry = parse_entry_text("Title: t\n\nb", record_for("t.txt")).to_entry()
        assert entry.created_at == MODIFIED
        assert entry.updated_at == MODIFIED
        assert entry.remote_file_name == "t.txt"


class TestTitlePrecedence:
    def test_header_wins_when_name_is_its_canonical_form(self):
        assert resolve_title("a/b: c", "a_b_ c.txt") == "a/b: c"

    def test_renamed_file_wins_over_header(self):
        assert resolve_title("Morning pages", "Renamed_on_drive.txt") == "Renamed on drive"

    @pytest.mark.parametrize("name", ["notes.txt", "entry-1717236000000.txt", "Untitled.txt"])
    def test_generic_name_falls_back_to_header(self, name):
        assert resolve_title("From header", name) == "From header"

    def test_untitled_when_nothing_is_known(self):
        assert resolve_title(None, "notes.txt") == "Untitled"
        assert resolve_title("", None) == "Untitled"


class TestDecoding:
    def test_bom_is_tolerated(self):
        parsed = parse_entry_bytes("\ufeffTitle: t\n\nb".encode("utf-8"), record_for("t.txt"))
        assert parsed.content == "b"
        assert parsed.header_title == "t"

    def test_invalid_utf8_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            parse_entry_bytes(b"\xff\xfe\xfa broken", record_for("bad.txt"))
        assert exc_info.value.file_name == "bad.txt"

    def test_binary_content_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_entry_bytes(b"PK\x03\x04\x00\x00", record_for("archive.txt"))
