# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.25
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/core/merge.py

"""
Last-write-wins merge of remote entries into the local set.

Each entry id gets a MergeDecision from its presence on each side and the
comparison of updated_at. A sync pass never deletes: an entry present only
locally is kept as it is.

A replaced entry keeps its local created_at. The remote format carries no
creation time, so an imported one is only the file's modifiedTime, and
created_at decides which day folder the entry lives in.
"""

from collections import OrderedDict
from dataclasses import dataclass, field, replace
from enum import Enum

from zenjournal.data.models import Entry


class MergeDecision(Enum):
    INSERT_REMOTE = "01: only remote has the entry; insert it"
    REPLACE_WITH_REMOTE = "11: remote is strictly newer; replace local"
    KEEP_LOCAL_NEWER = "11: local is newer; keep local"
    KEEP_LOCAL_TIE = "11: same updated_at; keep local"
    KEEP_LOCAL_ONLY = "10: only local has the entry; keep it"

    def __str__(self) -> str:
        return self.value


def classify(local: Entry | None, remote: Entry | None) -> MergeDecision:
    if local is None and remote is not None:
        return MergeDecision.INSERT_REMOTE
    if remote is None:
        return MergeDecision.KEEP_LOCAL_ONLY
    if remote.updated_at > local.updated_at:
        return MergeDecision.REPLACE_WITH_REMOTE
    if remote.updated_at == local.updated_at:
        return MergeDecision.KEEP_LOCAL_TIE
    return MergeDecision.KEEP_LOCAL_NEWER


def sort_entries(entries: list[Entry]) -> list[Entry]:
    """Newest first, as the journal table shows them."""
    return sorted(entries, key=lambda entry: entry.updated_at, reverse=True)


@dataclass
class MergeResult:
    entries: list[Entry]
    decisions: OrderedDict[str, MergeDecision] = field(default_factory=OrderedDict)

    def _ids(self, *wanted: MergeDecision) -> list[str]:
        return [entry_id for entry_id, decision in self.decisions.items() if decision in wanted]

    @property
    def inserted(self) -> list[str]:
        return self._ids(MergeDecision.INSERT_REMOTE)

    @property
    def replaced(self) -> list[str]:
        return self._ids(MergeDecision.REPLACE_WITH_REMOTE)

    @property
    def unchanged(self) -> list[str]:
        return self._ids(MergeDecision.KEEP_LOCAL_NEWER, MergeDecision.KEEP_LOCAL_TIE,
                         MergeDecision.KEEP_LOCAL_ONLY)

    @property
    def changed_entries(self) -> list[Entry]:
        """Entries the local store must write."""
        changed = set(self.inserted) | set(self.replaced)
        return [entry for entry in self.entries if entry.id in changed]


def merge_entries(local: list[Entry], remote: list[Entry]) -> MergeResult:
    local_by_id = {entry.id: entry for entry in local}
    remote_by_id = {entry.id: entry for entry in remote}

    merged: dict[str, Entry] = {}
    decisions: OrderedDict[str, MergeDecision] = OrderedDict()
    for entry_id in sorted(set(local_by_id) | set(remote_by_id)):
        decision = classify(local_by_id.get(entry_id), remote_by_id.get(entry_id))
        decisions[entry_id] = decision
        if decision is MergeDecision.REPLACE_WITH_REMOTE:
            merged[entry_id] = replace(remote_by_id[entry_id],
                                       created_at=local_by_id[entry_id].created_at)
        elif decision is MergeDecision.INSERT_REMOTE:
            merged[entry_id] = remote_by_id[entry_id]
        else:
            merged[entry_id] = local_by_id[entry_id]

    return MergeResult(entries=sort_entries(list(merged.values())), decisions=decisions)
