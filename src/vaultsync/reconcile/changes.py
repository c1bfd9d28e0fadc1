"""Detection of local changes against the local sync cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from vaultsync.models import LocalDriveSyncMeta, SyncDiff, SyncMeta, VaultStat
from vaultsync.util.checksum import md5_hex

if TYPE_CHECKING:
    from vaultsync.local import Vault

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LocalChanges:
    """
    Local edits since the last sync.

    renames maps old path -> new path for files moved without content change.
    deleted_ids are tracked files gone from disk that were not renamed.
    """

    modified_ids: set[str] = field(default_factory=set)
    new_paths: list[str] = field(default_factory=list)
    renames: dict[str, str] = field(default_factory=dict)
    deleted_ids: set[str] = field(default_factory=set)

    def renamed_ids(self, local_meta: LocalDriveSyncMeta) -> set[str]:
        return {
            local_meta.path_to_id[old]
            for old in self.renames
            if old in local_meta.path_to_id
        }


def compute_vault_checksums(
    vault: Vault,
    files: Iterable[str],
    local_meta: Optional[LocalDriveSyncMeta] = None,
) -> tuple[dict[str, str], dict[str, VaultStat]]:
    """
    MD5 of every file, reusing the cached checksum when mtime and size match.

    Returns:
        (checksums by path, stats by path). Unreadable files are left out of
        both maps.
    """
    cached_by_path = {}
    if local_meta is not None:
        for path, fid in local_meta.path_to_id.items():
            entry = local_meta.files.get(fid)
            if entry is not None:
                cached_by_path[path] = entry

    checksums: dict[str, str] = {}
    stats: dict[str, VaultStat] = {}

    for path in files:
        try:
            st = vault.stat(path)
            cached = cached_by_path.get(path)
            if (
                cached is not None
                and cached.md5_checksum
                and cached.local_mtime == st.mtime
                and cached.local_size == st.size
            ):
                checksum = cached.md5_checksum
            else:
                checksum = md5_hex(vault.read_bytes(path))
        except OSError as exc:
            logger.warning("Skipping file (read error): %s: %s", path, exc)
            continue
        stats[path] = st
        checksums[path] = checksum

    return checksums, stats


def find_locally_modified_files(
    local_meta: LocalDriveSyncMeta,
    checksums: Mapping[str, str],
) -> LocalChanges:
    """Classify the current vault checksums against the tracked paths."""
    changes = LocalChanges()
    # checksum -> [(file_id, old_path)]; identical files share a checksum
    disappeared: dict[str, list[tuple[str, str]]] = {}

    for path, fid in local_meta.path_to_id.items():
        current = checksums.get(path)
        entry = local_meta.files.get(fid)
        tracked = entry.md5_checksum if entry is not None else ""

        if current is None and tracked:
            disappeared.setdefault(tracked, []).append((fid, path))
        elif current is not None and tracked and current != tracked:
            changes.modified_ids.add(fid)

    for path, checksum in checksums.items():
        if path in local_meta.path_to_id:
            continue
        candidates = disappeared.get(checksum)
        if candidates:
            _, old_path = candidates.pop(0)
            changes.renames[old_path] = path
        else:
            changes.new_paths.append(path)

    changes.deleted_ids.update(fid for gone in disappeared.values() for fid, _ in gone)
    return changes


def find_missing_local_files(
    local_meta: LocalDriveSyncMeta,
    remote_meta: Optional[SyncMeta],
    checksums: Mapping[str, str],
    diff: SyncDiff,
    renames: Optional[Mapping[str, str]] = None,
    deleted_ids: Iterable[str] = (),
) -> list[str]:
    """
    Ids in sync on both sides whose file is missing from disk.

    Files the user deleted or renamed on purpose are not reported; those are
    pushed instead.
    """
    if remote_meta is None:
        return []

    id_to_path = local_meta.id_to_path()
    handled = diff.all_ids()
    deleted = set(deleted_ids)
    renames = renames or {}

    missing: list[str] = []
    for fid, entry in remote_meta.files.items():
        if fid in handled or fid in deleted or fid not in local_meta.files:
            continue
        path = id_to_path.get(fid) or entry.vault_path
        if not path or path in renames:
            continue
        if path not in checksums:
            missing.append(fid)
    return missing
