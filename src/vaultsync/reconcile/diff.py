"""Pure sync diff computation (no I/O)."""

from __future__ import annotations

from typing import Iterable, Optional, Union

from vaultsync.models import (
    SYSTEM_FILE_NAMES,
    ConflictInfo,
    LocalDriveSyncMeta,
    SyncDiff,
    SyncMeta,
)

LocalMetaLike = Union[LocalDriveSyncMeta, SyncMeta, None]


def compute_sync_diff(
    local_meta: LocalMetaLike,
    remote_meta: Optional[SyncMeta],
    locally_modified_ids: Iterable[str] = (),
) -> SyncDiff:
    """
    Classify every known file id into exactly one sync action.

    Rules (first match wins):
        1. local but not remote: edit_delete_conflicts if locally modified,
           else local_only.
        2. remote but not local: remote_only.
        3. changed on both sides: conflicts.
        4. changed locally: to_push.
        5. changed remotely: to_pull.
        6. otherwise: in sync, omitted.

    A remote change is a checksum difference, or a name difference when both
    names are known. Ids whose remote entry is a system file (the index
    itself, settings) never appear in the result.
    """
    local_files = local_meta.files if local_meta is not None else {}
    remote_files = remote_meta.files if remote_meta is not None else {}
    modified = set(locally_modified_ids)

    system_ids = {
        fid for fid, entry in remote_files.items() if entry.name in SYSTEM_FILE_NAMES
    }

    # dict as an insertion-ordered set
    all_ids: dict[str, None] = {}
    for fid in (*local_files, *remote_files, *sorted(modified)):
        if fid not in system_ids:
            all_ids[fid] = None

    diff = SyncDiff()
    for fid in all_ids:
        local = local_files.get(fid)
        remote = remote_files.get(fid)

        local_changed = fid in modified
        has_local = local is not None or local_changed
        has_remote = remote is not None

        remote_changed = False
        if local is not None and remote is not None:
            remote_changed = local.md5_checksum != remote.md5_checksum or (
                local.name is not None and local.name != remote.name
            )

        if has_local and not has_remote:
            if local_changed:
                diff.edit_delete_conflicts.append(fid)
            else:
                diff.local_only.append(fid)
        elif not has_local and has_remote:
            diff.remote_only.append(fid)
        elif local_changed and remote_changed:
            diff.conflicts.append(
                ConflictInfo(
                    file_id=fid,
                    file_name=remote.name if remote is not None else fid,
                    local_checksum=local.md5_checksum if local is not None else "",
                    remote_checksum=remote.md5_checksum if remote is not None else "",
                    local_modified_time=local.modified_time if local is not None else "",
                    remote_modified_time=remote.modified_time if remote is not None else "",
                )
            )
        elif local_changed:
            diff.to_push.append(fid)
        elif remote_changed:
            diff.to_pull.append(fid)

    return diff
