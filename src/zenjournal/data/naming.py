# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.20
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/data/naming.py

"""
Remote locations and file names for journal entries.

The naming scheme changed several times (entry-{id}.txt, notes.txt, then
title-based names inside day folders). Everything here is pure so the
identity chain in core.resolver can combine it freely.
"""

import re
import unicodedata
from datetime import datetime
from typing import Optional

from zenjournal.data.models import Image


# Global constants

IMAGES_FOLDER_NAME = "images"
TEXT_SUFFIX = ".txt"
DEFAULT_TITLE = "Untitled"

# / \ ? % * : | " < > and control characters 0x00-0x1F
_ILLEGAL_TITLE_CHARS = re.compile(r'[/\\?%*:|"<>\x00-\x1f]')

_IMAGE_NAME = re.compile(r"^image-(?P<id>.+)\.[^.]+$")

_GENERIC_STEMS = {"notes", "untitled"}

# Local ids are epoch milliseconds; remote ids are long opaque strings
_REMOTE_ID_MIN_LENGTH = 20


def day_folder_name(created_at: datetime) -> str:
    """YYYY-MM-DD of created_at in its own UTC offset."""
    return created_at.strftime("%Y-%m-%d")


def sanitize_title(title: Optional[str]) -> str:
    """Replace filesystem-illegal characters with '_', trim, default to Untitled."""
    cleaned = _ILLEGAL_TITLE_CHARS.sub("_", unicodedata.normalize("NFC", title or "")).strip()
    return cleaned or DEFAULT_TITLE


def canonical_file_name(title: Optional[str]) -> str:
    safe = sanitize_title(title)
    if safe.lower().endswith(TEXT_SUFFIX):
        return safe
    return f"{safe}{TEXT_SUFFIX}"


def legacy_file_names(entry_id: str) -> tuple[str, ...]:
    """Names used by older releases, most specific first."""
    return (f"entry-{entry_id}{TEXT_SUFFIX}", f"notes{TEXT_SUFFIX}")


def image_file_name(image: Image) -> str:
    return f"image-{image.id}.{image.extension}"


def image_id_from_file_name(name: str) -> Optional[str]:
    match = _IMAGE_NAME.match(name)
    return match.group("id") if match else None


def is_remote_native_id(entry_id: str) -> bool:
    """True for opaque remote identifiers, False for numeric local timestamp ids."""
    return len(entry_id) >= _REMOTE_ID_MIN_LENGTH and not entry_id.isdigit()


def file_stem(name: str) -> str:
    if name.lower().endswith(TEXT_SUFFIX):
        return name[:-len(TEXT_SUFFIX)]
    return name


def is_generic_file_name(name: Optional[str]) -> bool:
    """Legacy placeholder names that say nothing about the entry's title."""
    if not name:
        return True
    stem = file_stem(name).strip().lower()
    return not stem or stem in _GENERIC_STEMS or stem.startswith("entry-")


def title_from_file_name(name: str) -> str:
    return file_stem(name).replace("_", " ").strip()
