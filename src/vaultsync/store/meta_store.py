"""Persistence of the local sync cache and the remote sync index."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, Mapping, Optional, TypeVar

from vaultsync.config import DriveSyncSettings
from vaultsync.errors import MetaCorruptionError
from vaultsync.models import (
    SYNC_META_FILE_NAME,
    DriveFile,
    FileSyncMeta,
    LocalDriveSyncMeta,
    LocalFileEntry,
    SyncMeta,
    VaultStat,
)
from vaultsync.util.time import now_iso

if TYPE_CHECKING:
    from vaultsync.controller import DriveClient
    from vaultsync.local import Vault

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MetaReadResult(Generic[T]):
    """
    Outcome of reading a sync meta file.

    `found` is False when no file exists. `error` is set when the file exists
    but could not be parsed; `meta` is None in both cases. The caller decides
    whether to continue with an empty structure via `or_empty()`.
    """

    meta: Optional[T]
    empty_factory: Callable[[], T]
    error: Optional[MetaCorruptionError] = None
    found: bool = True

    @property
    def ok(self) -> bool:
        return self.meta is not None

    def or_empty(self) -> T:
        return self.meta if self.meta is not None else self.empty_factory()


def _parse_json_object(content: str, source: str) -> dict:
    try:
        data = json.loads(content)
    except ValueError as exc:
        raise MetaCorruptionError(source, cause=exc) from exc
    if not isinstance(data, dict):
        raise MetaCorruptionError(source)
    return data


# ----------------------------
# Local cache
# ----------------------------
def read_local_sync_meta(
    vault: Vault,
    settings: DriveSyncSettings,
) -> MetaReadResult[LocalDriveSyncMeta]:
    path = settings.local_meta_path
    if not vault.exists(path):
        return MetaReadResult(None, LocalDriveSyncMeta.empty, found=False)

    try:
        data = _parse_json_object(vault.read_text(path), "local")
    except MetaCorruptionError as exc:
        logger.error("Failed to read local sync meta %s: %s", path, exc.cause or exc)
        return MetaReadResult(None, LocalDriveSyncMeta.empty, error=exc)

    return MetaReadResult(LocalDriveSyncMeta.from_dict(data), LocalDriveSyncMeta.empty)


def write_local_sync_meta(
    vault: Vault,
    settings: DriveSyncSettings,
    meta: LocalDriveSyncMeta,
) -> None:
    vault.mkdir(settings.workspace_folder.strip("/"))
    vault.write_text(settings.local_meta_path, json.dumps(meta.to_dict(), indent=2))


# ----------------------------
# Remote index
# ----------------------------
async def read_remote_sync_meta(
    client: DriveClient,
    token: str,
    root_id: str,
) -> MetaReadResult[SyncMeta]:
    """
    Read `_sync-meta.json` from the root folder.

    Transport failures propagate; only unparsable content is reported in the
    result.
    """
    meta_file = await client.find_file_by_exact_name(token, SYNC_META_FILE_NAME, root_id)
    if meta_file is None:
        return MetaReadResult(None, SyncMeta.empty, found=False)

    content = await client.read_file(token, meta_file.id)
    try:
        data = _parse_json_object(content, "remote")
    except MetaCorruptionError as exc:
        logger.error("Failed to read remote sync meta %s: %s", meta_file.id, exc.cause or exc)
        return MetaReadResult(None, SyncMeta.empty, error=exc)

    return MetaReadResult(SyncMeta.from_dict(data), SyncMeta.empty)


async def write_remote_sync_meta(
    client: DriveClient,
    token: str,
    root_id: str,
    meta: SyncMeta,
) -> None:
    """
    Overwrite the remote index.

    There is no version check: a device writing between our read and this
    write loses its update.
    """
    content = json.dumps(meta.to_dict(), indent=2)
    meta_file = await client.find_file_by_exact_name(token, SYNC_META_FILE_NAME, root_id)
    if meta_file is not None:
        await client.update_file(token, meta_file.id, content, "application/json")
    else:
        await client.create_file(
            token, SYNC_META_FILE_NAME, content, root_id, "application/json"
        )


async def rebuild_sync_meta(
    client: DriveClient,
    token: str,
    root_id: str,
) -> SyncMeta:
    """
    Rebuild the remote index from a full listing of the root folder.

    `path`, `shared` and `webViewLink` are not returned by a listing, so the
    values from the previous index are kept.
    """
    existing = (await read_remote_sync_meta(client, token, root_id)).or_empty()
    files = await client.list_user_files(token, root_id)

    meta = SyncMeta(last_updated_at=now_iso(), files={})
    for f in files:
        prev = existing.files.get(f.id)
        meta.files[f.id] = FileSyncMeta(
            name=f.name,
            path=prev.path if prev else None,
            mime_type=f.mime_type,
            md5_checksum=f.md5_checksum or "",
            modified_time=f.modified_time or "",
            created_time=f.created_time,
            shared=prev.shared if prev else None,
            web_view_link=prev.web_view_link if prev else None,
        )

    await write_remote_sync_meta(client, token, root_id, meta)
    logger.info("Rebuilt remote sync meta with %d files", len(meta.files))
    return meta


def upsert_file_in_meta(
    meta: SyncMeta,
    drive_file: DriveFile,
    vault_path: Optional[str] = None,
) -> None:
    meta.files[drive_file.id] = FileSyncMeta(
        name=drive_file.name,
        path=vault_path,
        mime_type=drive_file.mime_type,
        md5_checksum=drive_file.md5_checksum or "",
        modified_time=drive_file.modified_time or "",
        created_time=drive_file.created_time,
    )
    meta.last_updated_at = now_iso()


def remove_file_from_meta(meta: SyncMeta, file_id: str) -> None:
    meta.files.pop(file_id, None)
    meta.last_updated_at = now_iso()


# ----------------------------
# Conversion
# ----------------------------
def to_local_sync_meta(
    remote_meta: SyncMeta,
    existing_local: Optional[LocalDriveSyncMeta],
    vault_stats: Optional[Mapping[str, VaultStat]] = None,
) -> LocalDriveSyncMeta:
    """
    Derive the local cache from the remote index.

    Stats come from `vault_stats` when given for the path; otherwise cached
    localMtime/localSize are reused only if the checksum did not change.
    """
    files: dict[str, LocalFileEntry] = {}
    path_to_id = dict(existing_local.path_to_id) if existing_local else {}

    for fid, entry in remote_meta.files.items():
        vault_path = entry.vault_path
        stats = vault_stats.get(vault_path) if vault_stats else None
        cached = existing_local.files.get(fid) if existing_local else None
        reuse = cached is not None and cached.md5_checksum == entry.md5_checksum

        files[fid] = LocalFileEntry(
            md5_checksum=entry.md5_checksum,
            modified_time=entry.modified_time,
            name=entry.name,
            local_mtime=stats.mtime if stats else (cached.local_mtime if reuse else None),
            local_size=stats.size if stats else (cached.local_size if reuse else None),
        )

        for stale in [p for p, i in path_to_id.items() if i == fid and p != vault_path]:
            del path_to_id[stale]
        path_to_id[vault_path] = fid

    return LocalDriveSyncMeta(
        last_updated_at=remote_meta.last_updated_at,
        files=files,
        path_to_id=path_to_id,
    )
