"""Public model exports for vaultsync."""

from __future__ import annotations

from .diff import ConflictInfo, SyncDiff
from .drive_file import DriveFile, drive_file_from_dict
from .results import (
    FileChangeType,
    ReportStatus,
    SyncFileList,
    SyncFileListItem,
    SyncReport,
    SyncStatus,
    VaultStat,
)
from .sync_meta import (
    SYNC_META_FILE_NAME,
    SYSTEM_FILE_NAMES,
    FileSyncMeta,
    LocalDriveSyncMeta,
    LocalFileEntry,
    SyncMeta,
)

__all__ = [
    "SYNC_META_FILE_NAME",
    "SYSTEM_FILE_NAMES",
    "FileSyncMeta",
    "SyncMeta",
    "LocalFileEntry",
    "LocalDriveSyncMeta",
    "ConflictInfo",
    "SyncDiff",
    "DriveFile",
    "drive_file_from_dict",
    "VaultStat",
    "SyncFileListItem",
    "SyncFileList",
    "SyncReport",
    "SyncStatus",
    "ReportStatus",
    "FileChangeType",
]
