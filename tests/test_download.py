# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.28
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_download.py

from datetime import datetime, timezone

import pytest

from zenjournal.core.download import DownloadPipeline
from zenjournal.core.upload import UploadPipeline
from zenjournal.data.models import Mood
from zenjournal.data.serializer import serialize_entry
from zenjournal.system.exceptions import AuthError, RemoteError
from tests.fixtures.factories import PNG_BYTES, make_entry, make_image
from tests.fixtures.fake_drive import FakeDrive


class FlakyAttachmentDrive(FakeDrive):
    """Fails downloads of chosen ids only."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.broken: set[str] = set()

    async def download_bytes(self, remote_id: str) -> bytes:
        if remote_id in self.broken:
            self.calls.append(("download_bytes", remote_id))
            raise RemoteError("backend error", status_code=500)
        return await super().download_bytes(remote_id)


def seed(drive: FakeDrive, entries) -> tuple[str, str]:
    root = drive.add_folder("ZenJournal")
    day = drive.add_folder("2025-06-01", root)
    for entry in entries:
        drive.add_file(f"{entry.title}.txt", day, serialize_entry(entry), entry_id=entry.id)
    return root, day


class TestFetchAll:
    @pytest.mark.asyncio
    async def test_uploaded_entry_comes_back(self, drive):
        entry = make_entry(images=[make_image("i2"), make_image("i1")])
        await UploadPipeline(drive, "ZenJournal").upload(entry)

        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()

        assert len(fetched.entries) == 1
        back = fetched.entries[0]
        assert (back.id, back.title, back.content, back.mood) == (entry.id, entry.title, entry.content, Mood.GOOD)
        assert [image.id for image in back.images] == ["i2", "i1"]
        assert back.images[0].decode() == PNG_BYTES
        assert back.remote_file_name == "Morning pages.txt"

    @pytest.mark.asyncio
    async def test_timestamps_come_from_remote_modified_time(self, drive):
        root = drive.add_folder("ZenJournal")
        modified = datetime(2025, 7, 4, 10, 0, tzinfo=timezone.utc)
        drive.add_file("Trip.txt", root, "Title: Trip\n\nbody", entry_id="7", modified_time=modified)

        entry = (await DownloadPipeline(drive, "ZenJournal").fetch_all()).entries[0]
        assert entry.created_at == modified
        assert entry.updated_at == modified

    @pytest.mark.asyncio
    async def test_follows_pagination(self):
        drive = FakeDrive(page_size=2)
        seed(drive, [make_entry(str(i), title=f"Entry {i}") for i in range(5)])

        fetched = await DownloadPipeline(drive, "ZenJournal", download_concurrency=2).fetch_all()

        assert sorted(e.id for e in fetched.entries) == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_file_without_entry_id_uses_remote_id(self, drive):
        root = drive.add_folder("ZenJournal")
        remote_id = drive.add_file("Written elsewhere.txt", root, "Just text")

        entry = (await DownloadPipeline(drive, "ZenJournal").fetch_all()).entries[0]
        assert entry.id == remote_id
        assert entry.title == "Written elsewhere"

    @pytest.mark.asyncio
    async def test_files_outside_root_and_trashed_are_ignored(self, drive):
        root, day = seed(drive, [make_entry()])
        drive.add_file("Elsewhere.txt", drive.add_folder("Other"), "x", entry_id="99")
        trashed = drive.add_file("Gone.txt", day, "x", entry_id="98")
        drive.files[trashed].trashed = True

        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()
        assert [e.id for e in fetched.entries] == ["1717236000000"]

    @pytest.mark.asyncio
    async def test_creates_root_when_missing(self, drive):
        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()
        assert fetched.entries == []
        assert drive.folder_id("ZenJournal") is not None


class TestPartialFailure:
    @pytest.mark.asyncio
    async def test_unparseable_record_is_skipped(self, drive):
        root, day = seed(drive, [make_entry()])
        drive.add_file("Binary.txt", day, b"\x00\x01\x02", entry_id="5")

        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()

        assert [e.id for e in fetched.entries] == ["1717236000000"]
        assert [name for name, _ in fetched.skipped] == ["Binary.txt"]

    @pytest.mark.asyncio
    async def test_failed_record_download_is_skipped(self):
        drive = FlakyAttachmentDrive()
        root, day = seed(drive, [make_entry("1", title="Kept")])
        broken = drive.add_file("Broken.txt", day, "Title: Broken\n\nx", entry_id="2")
        drive.broken.add(broken)

        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()
        assert [e.id for e in fetched.entries] == ["1"]
        assert fetched.skipped[0][0] == "Broken.txt"

    @pytest.mark.asyncio
    async def test_failed_attachment_is_dropped_not_the_entry(self):
        drive = FlakyAttachmentDrive()
        entry = make_entry(images=[make_image("i1"), make_image("i2")])
        await UploadPipeline(drive, "ZenJournal").upload(entry)
        drive.broken.add(drive.find(name="image-i1.png")[0].remote_id)

        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()

        assert [image.id for image in fetched.entries[0].images] == ["i2"]
        assert fetched.skipped == []

    @pytest.mark.asyncio
    async def test_auth_error_aborts_the_pass(self, drive):
        seed(drive, [make_entry()])
        drive.fail("download_bytes", AuthError(status_code=401))
        with pytest.raises(AuthError):
            await DownloadPipeline(drive, "ZenJournal").fetch_all()


class TestAttachmentPairing:
    @pytest.mark.asyncio
    async def test_pairs_by_property_not_folder(self, drive):
        root, day = seed(drive, [make_entry("1", title="One"), make_entry("2", title="Two")])
        images = drive.add_folder("images", day)
        drive.add_file("image-a.png", images, PNG_BYTES, mime_type="image/png", entry_id="2")
        drive.add_file("image-orphan.png", images, PNG_BYTES, mime_type="image/png")

        entries = {e.id: e for e in (await DownloadPipeline(drive, "ZenJournal").fetch_all()).entries}
        assert entries["1"].images == []
        assert [image.id for image in entries["2"].images] == ["a"]

    @pytest.mark.asyncio
    async def test_image_without_id_in_name_uses_remote_id(self, drive):
        root, day = seed(drive, [make_entry("1", title="One")])
        photo = drive.add_file("holiday.jpg", day, PNG_BYTES, mime_type="image/jpeg", entry_id="1")

        entry = (await DownloadPipeline(drive, "ZenJournal").fetch_all()).entries[0]
        assert entry.images[0].id == photo
        assert entry.images[0].mime_type == "image/jpeg"


class TestDuplicates:
    @pytest.mark.asyncio
    async def test_newest_record_wins_for_shared_entry_id(self, drive):
        root = drive.add_folder("ZenJournal")
        older = datetime(2025, 6, 1, tzinfo=timezone.utc)
        newer = datetime(2025, 6, 2, tzinfo=timezone.utc)
        drive.add_file("Old copy.txt", root, "Title: Old copy\n\nold", entry_id="7", modified_time=older)
        drive.add_file("New copy.txt", root, "Title: New copy\n\nnew", entry_id="7", modified_time=newer)

        fetched = await DownloadPipeline(drive, "ZenJournal").fetch_all()

        assert [e.content for e in fetched.entries] == ["new"]
        assert fetched.skipped[0][0] == "Old copy.txt"
