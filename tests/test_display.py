# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.05.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_display.py

import pytest
from rich.console import Console

from zenjournal.core.orchestrator import SyncReport
from zenjournal.core.upload import UploadResult
from zenjournal.data.models import Image
from zenjournal.system.display import (
    display_entry,
    display_sync_report,
    display_upload_result,
    entries_to_table,
)
from tests.fixtures.factories import make_entry, make_image


@pytest.fixture
def console():
    return Console(record=True, width=160, color_system=None)


@pytest.fixture
def sample_entries():
    return [
        make_entry("2", title="Evening", content="A long day " * 20, images=[make_image()],
                   remote_file_name="Evening.txt"),
        make_entry("1", title="", mood=None),
    ]


def test_entries_to_table_basic(console, sample_entries):
    table = entries_to_table(sample_entries)
    assert table.title == "Journal (2 entries)"
    assert [column.header for column in table.columns] == ["ID", "Title", "Mood", "Created", "Updated", "Images"]
    assert table.row_count == 2

    console.print(table)
    output = console.export_text()
    assert "Evening" in output
    assert "Untitled" in output
    assert "2025-06-01 09:30" in output


def test_entries_to_table_verbose(console, sample_entries):
    table = entries_to_table(sample_entries, verbose=True)
    assert [column.header for column in table.columns][-2:] == ["Preview", "Remote name"]

    console.print(table)
    output = console.export_text()
    assert "Evening.txt" in output
    assert "…" in output


def test_display_entry(console):
    broken = Image(id="bad", data="abc", mime_type="image/png")
    display_entry(console, make_entry(images=[make_image("ok"), broken]))
    output = console.export_text()
    assert "Morning pages" in output
    assert "Slept well." in output
    assert "Good" in output
    assert "invalid" in output
    assert "id 1717236000000" in output


def test_display_sync_report(console):
    report = SyncReport(fetched=3, inserted=["a"], replaced=["b"], unchanged=["c"],
                        skipped=[("Broken.txt", "not valid UTF-8")], duration_seconds=0.4)
    display_sync_report(console, report, verbose=True)
    output = console.export_text()
    assert "Synced 3 remote entries" in output
    assert "1 new, 1 updated, 1 unchanged" in output
    assert "Broken.txt: not valid UTF-8" in output


def test_display_discarded_sync_report(console):
    display_sync_report(console, SyncReport(discarded=True))
    assert "discarded" in console.export_text()


def test_display_upload_result(console):
    display_upload_result(console, UploadResult(entry_id="1", remote_file_name="A.txt", created=True))
    display_upload_result(console, UploadResult(entry_id="2", remote_file_name="B.txt", updated=True,
                                                moved=True, images_uploaded=1))
    display_upload_result(console, UploadResult(entry_id="3", error="quota exceeded"))
    output = console.export_text()
    assert "1: created as A.txt" in output
    assert "2: updated+moved as B.txt, images 1 uploaded / 0 already present" in output
    assert "3: quota exceeded" in output
