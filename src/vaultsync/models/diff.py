"""Diff models produced by the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .sync_meta import LocalDriveSyncMeta


@dataclass(slots=True)
class ConflictInfo:
    """A file that changed on both sides (or was edited on one and deleted on the other)."""

    file_id: str
    file_name: str
    local_checksum: str = ""
    remote_checksum: str = ""
    local_modified_time: str = ""
    remote_modified_time: str = ""
    is_edit_delete: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "fileId": self.file_id,
            "fileName": self.file_name,
            "localChecksum": self.local_checksum,
            "remoteChecksum": self.remote_checksum,
            "localModifiedTime": self.local_modified_time,
            "remoteModifiedTime": self.remote_modified_time,
        }
        if self.is_edit_delete:
            data["isEditDelete"] = True
        return data


@dataclass(slots=True)
class SyncDiff:
    """
    Partition of every known file id into one of six sync actions.

    Files already in sync appear in no list.
    """

    to_push: list[str] = field(default_factory=list)
    to_pull: list[str] = field(default_factory=list)
    conflicts: list[ConflictInfo] = field(default_factory=list)
    edit_delete_conflicts: list[str] = field(default_factory=list)
    local_only: list[str] = field(default_factory=list)
    remote_only: list[str] = field(default_factory=list)

    def all_ids(self) -> set[str]:
        ids = set(self.to_push)
        ids.update(self.to_pull)
        ids.update(c.file_id for c in self.conflicts)
        ids.update(self.edit_delete_conflicts)
        ids.update(self.local_only)
        ids.update(self.remote_only)
        return ids

    def is_empty(self) -> bool:
        return not self.all_ids()

    def remotely_deleted(
        self,
        local_meta: LocalDriveSyncMeta,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> list[str]:
        """local_only ids that were tracked locally, i.e. deleted on Drive."""
        return [
            fid for fid in self.local_only
            if fid in local_meta.files and fid not in exclude
        ]

    def has_remote_changes(
        self,
        local_meta: LocalDriveSyncMeta,
        exclude: set[str] | frozenset[str] = frozenset(),
    ) -> bool:
        """True when Drive holds changes that must be pulled before a push."""
        return bool(
            self.conflicts
            or self.edit_delete_conflicts
            or self.to_pull
            or self.remote_only
            or self.remotely_deleted(local_meta, exclude)
        )
