"""Conflict backups: the copy of the losing side kept before an overwrite."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Union

from vaultsync.errors import ConflictBackupError
from vaultsync.models import DriveFile
from vaultsync.util.time import backup_timestamp, now_utc

if TYPE_CHECKING:
    from vaultsync.controller import DriveClient

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT_FOLDER: str = "sync_conflicts"


def build_backup_name(file_name: str, now: datetime) -> str:
    """
    "notes/a.md" -> "notes_a_20250101_123456.md".

    The stamp goes before the last '.', unless that dot starts the name.
    """
    ts = backup_timestamp(now)
    safe = file_name.replace("/", "_")
    dot = safe.rfind(".")
    if dot > 0:
        return f"{safe[:dot]}_{ts}{safe[dot:]}"
    return f"{safe}_{ts}"


async def save_conflict_backup(
    client: DriveClient,
    token: str,
    root_id: str,
    file_name: str,
    content: Union[str, bytes],
    *,
    folder_name: str = DEFAULT_CONFLICT_FOLDER,
    now: Optional[datetime] = None,
) -> DriveFile:
    """
    Store `content` under `<root>/<folder_name>/` with a timestamped name.

    Raises:
        ConflictBackupError: the backup could not be written. The caller must
            not overwrite the conflicting version in that case.
    """
    backup_name = build_backup_name(file_name, now or now_utc())
    try:
        folder_id = await client.ensure_sub_folder(token, root_id, folder_name)
        if isinstance(content, (bytes, bytearray)):
            created = await client.create_file_binary(token, backup_name, bytes(content), folder_id)
        else:
            created = await client.create_file(token, backup_name, content, folder_id, "text/plain")
    except Exception as exc:
        raise ConflictBackupError(
            f"Failed to back up conflicting version of {file_name}",
            details={"file_name": file_name, "backup_name": backup_name},
            cause=exc,
        ) from exc

    logger.info("Saved conflict backup %s for %s", backup_name, file_name)
    return created
