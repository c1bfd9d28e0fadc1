"""Result models for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from .diff import ConflictInfo

SyncStatus = Literal["idle", "pushing", "pulling", "conflict", "error"]
ReportStatus = Literal["success", "rejected", "conflict", "noop"]
FileChangeType = Literal["new", "modified", "deleted", "renamed", "conflict", "editDeleted"]


@dataclass(slots=True, frozen=True)
class VaultStat:
    """Stat of a vault file: mtime in epoch milliseconds, size in bytes."""

    mtime: int
    size: int


@dataclass(slots=True)
class SyncFileListItem:
    """One row of a push/pull preview."""

    id: str
    name: str
    type: FileChangeType
    old_name: Optional[str] = None


@dataclass(slots=True)
class SyncFileList:
    files: list[SyncFileListItem]
    has_remote_changes: bool = False


@dataclass(slots=True)
class SyncReport:
    """Outcome of push/pull/full_push/full_pull."""

    status: ReportStatus
    pushed: int = 0
    pulled: int = 0
    renamed: int = 0
    trashed: int = 0
    deleted: int = 0
    conflicts: list[ConflictInfo] = field(default_factory=list)
    message: Optional[str] = None
