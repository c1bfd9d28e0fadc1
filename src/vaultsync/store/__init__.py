"""Sync meta persistence and conflict backups."""

from __future__ import annotations

from .backup import DEFAULT_CONFLICT_FOLDER, build_backup_name, save_conflict_backup
from .meta_store import (
    MetaReadResult,
    read_local_sync_meta,
    read_remote_sync_meta,
    rebuild_sync_meta,
    remove_file_from_meta,
    to_local_sync_meta,
    upsert_file_in_meta,
    write_local_sync_meta,
    write_remote_sync_meta,
)

__all__ = [
    "MetaReadResult",
    "read_local_sync_meta",
    "write_local_sync_meta",
    "read_remote_sync_meta",
    "write_remote_sync_meta",
    "rebuild_sync_meta",
    "upsert_file_in_meta",
    "remove_file_from_meta",
    "to_local_sync_meta",
    "DEFAULT_CONFLICT_FOLDER",
    "build_backup_name",
    "save_conflict_backup",
]
