"""DriveSyncManager: push, pull and conflict resolution for one vault."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    Literal,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

from vaultsync.context import SyncContext
from vaultsync.errors import InvalidStateError, SyncInProgressError, TransportError
from vaultsync.local import is_sync_excluded_path, is_valid_vault_path
from vaultsync.models import (
    ConflictInfo,
    DriveFile,
    LocalDriveSyncMeta,
    LocalFileEntry,
    SyncFileList,
    SyncFileListItem,
    SyncMeta,
    SyncReport,
    SyncStatus,
    VaultStat,
)
from vaultsync.reconcile import (
    LocalChanges,
    compute_sync_diff,
    compute_vault_checksums,
    find_locally_modified_files,
    find_missing_local_files,
)
from vaultsync.store import (
    read_local_sync_meta,
    read_remote_sync_meta,
    rebuild_sync_meta,
    remove_file_from_meta,
    save_conflict_backup,
    to_local_sync_meta,
    upsert_file_in_meta,
    write_local_sync_meta,
    write_remote_sync_meta,
)
from vaultsync.util.mime import (
    get_mime_type,
    is_binary_extension,
    is_binary_mime_type,
    looks_like_binary,
)
from vaultsync.util.time import now_iso

logger = logging.getLogger(__name__)

Direction = Literal["push", "pull"]
ConflictChoice = Literal["local", "remote"]
Content = Union[str, bytes]

T = TypeVar("T")
R = TypeVar("R")

REMOTE_CHANGES_MESSAGE = "Remote has pending changes. Please pull first."


@dataclass(frozen=True)
class _Upload:
    path: str
    old_content: Optional[str]
    new_content: Optional[str]


@dataclass
class _Scan:
    local_meta: LocalDriveSyncMeta
    checksums: dict[str, str]
    stats: dict[str, VaultStat]
    changes: LocalChanges


class DriveSyncManager:
    """
    Reconciles a vault with its Drive root folder.

    Drive holds every synced file flat in the root folder, named by its vault
    path. Only one reconciliation runs at a time per manager.
    """

    def __init__(self, ctx: SyncContext) -> None:
        self._ctx = ctx
        self.conflicts: list[ConflictInfo] = []
        self.status: SyncStatus = "idle"
        self.last_error: Optional[str] = None
        self._busy = False
        self._root_id: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self._busy

    # ----------------------------
    # Preview
    # ----------------------------
    async def compute_sync_file_list(self, direction: Direction) -> SyncFileList:
        """List what push or pull would change, without changing anything."""
        if direction not in ("push", "pull"):
            raise ValueError("direction must be 'push' or 'pull'")

        token, root_id = await self._session()
        scan = self._scan()
        local_meta, changes = scan.local_meta, scan.changes
        remote_meta = (await read_remote_sync_meta(self._ctx.client, token, root_id)).meta

        diff = compute_sync_diff(local_meta, remote_meta, changes.modified_ids)
        if direction == "pull":
            diff.to_pull.extend(
                find_missing_local_files(
                    local_meta, remote_meta, scan.checksums, diff,
                    changes.renames, changes.deleted_ids,
                )
            )

        remote_files = remote_meta.files if remote_meta is not None else {}
        id_to_path = local_meta.id_to_path()

        def remote_name(fid: str) -> str:
            entry = remote_files.get(fid)
            return id_to_path.get(fid) or (entry.vault_path if entry else fid)

        items: list[SyncFileListItem] = []
        if direction == "push":
            items += [SyncFileListItem(fid, remote_name(fid), "modified") for fid in diff.to_push]
            items += [SyncFileListItem(p, p, "new") for p in changes.new_paths]
            items += [
                SyncFileListItem(local_meta.path_to_id.get(old, old), new, "renamed", old_name=old)
                for old, new in changes.renames.items()
            ]
            items += [
                SyncFileListItem(fid, id_to_path.get(fid, fid), "editDeleted")
                for fid in diff.edit_delete_conflicts
            ]
            items += [
                SyncFileListItem(fid, id_to_path[fid], "deleted")
                for fid in (*diff.local_only, *sorted(changes.deleted_ids))
                if fid in id_to_path and id_to_path[fid] not in scan.checksums
            ]
        else:
            items += [SyncFileListItem(fid, remote_name(fid), "new") for fid in diff.remote_only]
            items += [SyncFileListItem(fid, remote_name(fid), "modified") for fid in diff.to_pull]
            items += [
                SyncFileListItem(fid, id_to_path.get(fid, fid), "deleted")
                for fid in diff.local_only
                if fid in local_meta.files
            ]
            items += [
                SyncFileListItem(fid, id_to_path.get(fid, fid), "editDeleted")
                for fid in diff.edit_delete_conflicts
            ]
            items += [
                SyncFileListItem(c.file_id, remote_name(c.file_id), "conflict")
                for c in diff.conflicts
            ]

        items.sort(key=lambda item: item.name)
        return SyncFileList(
            files=[item for item in items if not self._is_excluded(item.name)],
            has_remote_changes=diff.has_remote_changes(local_meta),
        )

    # ----------------------------
    # Push
    # ----------------------------
    async def push(self) -> SyncReport:
        """
        Upload local changes.

        Refused (status "error", report status "rejected") while Drive has
        changes that were not pulled yet.
        """
        async with self._running("pushing"):
            token, root_id = await self._session()
            client = self._ctx.client
            scan = self._scan()
            local_meta, changes = scan.local_meta, scan.changes

            remote_result = await read_remote_sync_meta(client, token, root_id)
            renamed_ids = changes.renamed_ids(local_meta)
            diff = compute_sync_diff(local_meta, remote_result.meta, changes.modified_ids)

            if diff.has_remote_changes(local_meta, exclude=renamed_ids):
                self.status = "error"
                self.last_error = REMOTE_CHANGES_MESSAGE
                logger.warning("Push rejected: %s", REMOTE_CHANGES_MESSAGE)
                return SyncReport(status="rejected", message=REMOTE_CHANGES_MESSAGE)

            remote_meta = remote_result.or_empty()
            if not remote_meta.last_updated_at:
                remote_meta.last_updated_at = now_iso()
            id_to_path = local_meta.id_to_path()
            logger.info(
                "Push started: %d modified, %d new, %d renamed, %d deleted",
                len(diff.to_push), len(changes.new_paths),
                len(changes.renames), len(changes.deleted_ids),
            )

            renamed = 0
            for old_path, new_path in changes.renames.items():
                fid = local_meta.path_to_id.get(old_path)
                if not fid:
                    continue
                drive_file = await client.rename_file(await self._token(), fid, new_path)
                del local_meta.path_to_id[old_path]
                local_meta.path_to_id[new_path] = fid
                upsert_file_in_meta(remote_meta, drive_file, new_path)
                renamed += 1

            upload_paths = [id_to_path[fid] for fid in diff.to_push if fid in id_to_path]
            upload_paths += changes.new_paths
            uploads, failed = await self._in_batches(
                upload_paths,
                lambda path: self._upload_file(
                    root_id, path, local_meta.path_to_id.get(path),
                    remote_meta, local_meta, scan.checksums,
                ),
            )

            trashed = await self._trash_remote(
                root_id, sorted(changes.deleted_ids), id_to_path, remote_meta, local_meta
            )

            # Completed uploads are recorded even when others failed.
            remote_meta.last_updated_at = now_iso()
            await write_remote_sync_meta(client, await self._token(), root_id, remote_meta)
            write_local_sync_meta(
                self._ctx.vault,
                self._ctx.settings,
                to_local_sync_meta(
                    remote_meta, local_meta, _without(scan.stats, (p for p, _ in failed))
                ),
            )

            await self._record_history(u for u in uploads if u is not None)
            if failed:
                raise failed[0][1]

            pushed = sum(1 for u in uploads if u is not None)
            self.status = "idle"
            logger.info("Push finished: %d pushed, %d renamed, %d trashed", pushed, renamed, trashed)
            return SyncReport(
                status="success" if pushed or renamed or trashed else "noop",
                pushed=pushed,
                renamed=renamed,
                trashed=trashed,
            )

    # ----------------------------
    # Pull
    # ----------------------------
    async def pull(self) -> SyncReport:
        """
        Download remote changes.

        Nothing is applied while conflicts exist; they are stored in
        `conflicts` and the status becomes "conflict".
        """
        async with self._running("pulling"):
            token, root_id = await self._session()
            remote_result = await read_remote_sync_meta(self._ctx.client, token, root_id)
            remote_meta = remote_result.meta
            if remote_meta is None:
                self.status = "idle"
                message = (
                    "Remote sync meta is unreadable. Rebuild it or run a full push."
                    if remote_result.error is not None
                    else "No remote data found. Push first."
                )
                logger.info("Pull skipped: %s", message)
                return SyncReport(status="noop", message=message)

            scan = self._scan()
            local_meta, changes = scan.local_meta, scan.changes
            diff = compute_sync_diff(local_meta, remote_meta, changes.modified_ids)
            diff.to_pull.extend(
                find_missing_local_files(
                    local_meta, remote_meta, scan.checksums, diff,
                    changes.renames, changes.deleted_ids,
                )
            )

            # Untracked local files that a remote-only download would overwrite.
            safe_remote_only: list[str] = []
            untracked: list[ConflictInfo] = []
            for fid in diff.remote_only:
                entry = remote_meta.files[fid]
                local_checksum = scan.checksums.get(entry.vault_path)
                if local_checksum and local_checksum != entry.md5_checksum:
                    untracked.append(
                        ConflictInfo(
                            file_id=fid,
                            file_name=entry.vault_path,
                            local_checksum=local_checksum,
                            remote_checksum=entry.md5_checksum,
                            remote_modified_time=entry.modified_time,
                        )
                    )
                else:
                    safe_remote_only.append(fid)
            diff.remote_only = safe_remote_only

            id_to_path = local_meta.id_to_path()
            conflicts = [*diff.conflicts, *untracked]
            for fid in diff.edit_delete_conflicts:
                entry = local_meta.files.get(fid)
                conflicts.append(
                    ConflictInfo(
                        file_id=fid,
                        file_name=id_to_path.get(fid, fid),
                        local_checksum=entry.md5_checksum if entry else "",
                        local_modified_time=entry.modified_time if entry else "",
                        is_edit_delete=True,
                    )
                )

            if conflicts:
                self.conflicts = conflicts
                self.status = "conflict"
                logger.info("Pull stopped: %d conflict(s)", len(conflicts))
                return SyncReport(status="conflict", conflicts=list(conflicts))

            pulled, deleted = await self._apply_pull_diff(
                local_meta, remote_meta, diff.local_only, diff.to_pull, diff.remote_only,
                unpushed={id_to_path[fid] for fid in changes.modified_ids if fid in id_to_path},
            )
            self.status = "idle"
            logger.info("Pull finished: %d pulled, %d deleted", pulled, deleted)
            return SyncReport(
                status="success" if pulled or deleted else "noop",
                pulled=pulled,
                deleted=deleted,
            )

    # ----------------------------
    # Full resync
    # ----------------------------
    async def full_push(self) -> SyncReport:
        """Make Drive match the vault. Known file ids are updated in place."""
        async with self._running("pushing"):
            token, root_id = await self._session()
            vault, settings = self._ctx.vault, self._ctx.settings

            old_local = read_local_sync_meta(vault, settings).or_empty()
            old_remote = (await read_remote_sync_meta(self._ctx.client, token, root_id)).or_empty()
            files = self._sync_files()
            checksums, stats = compute_vault_checksums(vault, files, old_local)

            remote_meta = SyncMeta(last_updated_at=now_iso())
            new_local = LocalDriveSyncMeta(last_updated_at=now_iso())
            uploads, failed = await self._in_batches(
                [p for p in files if p in checksums],
                lambda path: self._upload_file(
                    root_id, path, old_local.path_to_id.get(path),
                    remote_meta, new_local, checksums,
                ),
            )

            # Files that failed keep their previous ids; a retry updates them in place.
            for path, _ in failed:
                fid = old_local.path_to_id.get(path)
                if fid and fid in old_remote.files:
                    remote_meta.files[fid] = old_remote.files[fid]
                    new_local.path_to_id[path] = fid
                    if fid in old_local.files:
                        new_local.files[fid] = old_local.files[fid]

            remote_meta.last_updated_at = now_iso()
            await write_remote_sync_meta(self._ctx.client, await self._token(), root_id, remote_meta)
            write_local_sync_meta(
                vault, settings,
                to_local_sync_meta(remote_meta, new_local, _without(stats, (p for p, _ in failed))),
            )
            if failed:
                raise failed[0][1]

            pushed = sum(1 for u in uploads if u is not None)
            self.conflicts = []
            self.status = "idle"
            logger.info("Full push finished: %d files", pushed)
            return SyncReport(status="success", pushed=pushed)

    async def full_pull(self) -> SyncReport:
        """Make the vault match Drive. Vault files unknown to Drive are trashed."""
        async with self._running("pulling"):
            token, root_id = await self._session()
            vault, settings = self._ctx.vault, self._ctx.settings

            remote_meta = (await read_remote_sync_meta(self._ctx.client, token, root_id)).meta
            if remote_meta is None:
                self.status = "idle"
                return SyncReport(status="noop", message="No remote data found.")

            new_local = LocalDriveSyncMeta(last_updated_at=now_iso())
            results, failed = await self._in_batches(
                list(remote_meta.files),
                lambda fid: self._download_file(fid, remote_meta, new_local),
            )
            if failed:
                # Nothing is trashed until every download succeeded.
                self._write_pulled_local_meta(
                    remote_meta, new_local, self._vault_stats(), [fid for fid, _ in failed]
                )
                raise failed[0][1]

            trashed = 0
            for path in self._sync_files():
                if path not in new_local.path_to_id:
                    vault.trash(path)
                    trashed += 1

            write_local_sync_meta(
                vault, settings, to_local_sync_meta(remote_meta, new_local, self._vault_stats())
            )

            pulled = sum(1 for ok in results if ok)
            self.conflicts = []
            self.status = "idle"
            logger.info("Full pull finished: %d pulled, %d trashed", pulled, trashed)
            return SyncReport(status="success", pulled=pulled, trashed=trashed)

    # ----------------------------
    # Conflicts
    # ----------------------------
    async def resolve_conflict(self, file_id: str, choice: ConflictChoice) -> SyncReport:
        """
        Settle one conflict from the last pull.

        The side that loses is backed up first; a failed backup aborts the
        resolution. Once no conflicts remain, the pull continues.
        """
        if choice not in ("local", "remote"):
            raise ValueError("choice must be 'local' or 'remote'")

        async with self._running(None):
            token, root_id = await self._session()
            vault, settings = self._ctx.vault, self._ctx.settings

            conflict = next((c for c in self.conflicts if c.file_id == file_id), None)
            if conflict is None:
                raise InvalidStateError("Conflict not found", details={"file_id": file_id})

            local_meta = read_local_sync_meta(vault, settings).or_empty()
            remote_meta = (await read_remote_sync_meta(self._ctx.client, token, root_id)).meta
            if remote_meta is None:
                raise InvalidStateError("Remote sync meta not found")

            vault_path = local_meta.id_to_path().get(file_id) or conflict.file_name
            if conflict.is_edit_delete:
                await self._resolve_edit_delete(root_id, file_id, vault_path, choice, local_meta, remote_meta)
            else:
                await self._resolve_normal(root_id, file_id, vault_path, choice, local_meta, remote_meta)

            self.conflicts = [c for c in self.conflicts if c.file_id != file_id]
            logger.info("Resolved conflict for %s (%s wins)", vault_path, choice)
            should_pull = not self.conflicts and self.status == "conflict"
            if not should_pull:
                return SyncReport(status="conflict", conflicts=list(self.conflicts))

        return await self.pull()

    # ----------------------------
    # Maintenance
    # ----------------------------
    async def reset_sync_state(self) -> None:
        """Forget all local sync state; the next sync treats every file as new."""
        async with self._running(None):
            write_local_sync_meta(self._ctx.vault, self._ctx.settings, LocalDriveSyncMeta.empty())
            self.conflicts = []
            self.status = "idle"
            logger.info("Local sync state cleared")

    async def rebuild_remote_meta(self) -> SyncMeta:
        async with self._running(None):
            token, root_id = await self._session()
            return await rebuild_sync_meta(self._ctx.client, token, root_id)

    # ----------------------------
    # Drive trash folder
    # ----------------------------
    async def list_trash_files(self) -> list[DriveFile]:
        """Files that pushes moved into the Drive trash folder."""
        token, trash_id = await self._sub_folder(self._ctx.settings.trash_folder_name)
        return await self._ctx.client.list_files(token, trash_id)

    async def restore_from_trash(self, file_ids: Iterable[str]) -> int:
        """
        Move trashed files back into the root folder and index them again.

        The files reach the vault with the next pull. A file that cannot be
        restored is logged and skipped.

        Raises:
            MetaCorruptionError: the remote index is unreadable.
        """
        async with self._running(None):
            token, root_id = await self._session()
            client = self._ctx.client
            trash_id = await client.ensure_sub_folder(
                token, root_id, self._ctx.settings.trash_folder_name
            )
            result = await read_remote_sync_meta(client, token, root_id)
            if result.error is not None:
                raise result.error
            remote_meta = result.or_empty()

            restored = 0
            for fid in file_ids:
                try:
                    await client.move_file(token, fid, root_id, trash_id)
                    drive_file = await client.get_file_metadata(token, fid)
                except TransportError as exc:
                    logger.warning("Failed to restore %s from the Drive trash folder: %s", fid, exc)
                    continue
                upsert_file_in_meta(remote_meta, drive_file, drive_file.name)
                restored += 1

            if restored:
                await write_remote_sync_meta(client, token, root_id, remote_meta)
            logger.info("Restored %d file(s) from the Drive trash folder", restored)
            return restored

    async def permanent_delete_files(self, file_ids: Iterable[str]) -> int:
        """Delete trashed files from Drive for good. Returns how many went."""
        return await self._delete_files(file_ids)

    # ----------------------------
    # Conflict backups
    # ----------------------------
    async def list_conflict_files(self) -> list[DriveFile]:
        token, folder_id = await self._sub_folder(self._ctx.settings.conflict_folder_name)
        return await self._ctx.client.list_files(token, folder_id)

    async def restore_conflict_file(self, file_id: str, restore_name: str) -> None:
        """
        Write a conflict backup into the vault as `restore_name`, then delete
        the backup from Drive. The restored file goes up with the next push.
        """
        if not is_valid_vault_path(restore_name):
            raise ValueError(f"Invalid vault path: {restore_name!r}")

        async with self._running(None):
            token = await self._token()
            client = self._ctx.client
            self._ctx.vault.write_bytes(restore_name, await client.read_file_raw(token, file_id))
            await client.delete_file(token, file_id)
            logger.info("Restored conflict backup %s as %s", file_id, restore_name)

    async def delete_conflict_files(self, file_ids: Iterable[str]) -> int:
        return await self._delete_files(file_ids)

    # ----------------------------
    # Internals
    # ----------------------------
    @asynccontextmanager
    async def _running(self, status: Optional[SyncStatus]) -> AsyncIterator[None]:
        if self._busy:
            raise SyncInProgressError("A sync operation is already in progress")
        self._busy = True
        if status is not None:
            self.status = status
        self.last_error = None
        try:
            yield
        except Exception as exc:
            self.status = "error"
            self.last_error = str(exc)
            logger.error("Sync failed: %s", exc)
            raise
        finally:
            self._busy = False

    async def _token(self) -> str:
        return (await self._ctx.tokens.get_tokens()).access_token

    async def _session(self) -> tuple[str, str]:
        tokens = await self._ctx.tokens.get_tokens()
        if tokens.root_folder_id:
            return tokens.access_token, tokens.root_folder_id
        if self._root_id is None:
            self._root_id = await self._ctx.client.ensure_root_folder(
                tokens.access_token, self._ctx.settings.root_folder_name
            )
        return tokens.access_token, self._root_id

    async def _sub_folder(self, name: str) -> tuple[str, str]:
        token, root_id = await self._session()
        return token, await self._ctx.client.ensure_sub_folder(token, root_id, name)

    async def _delete_files(self, file_ids: Iterable[str]) -> int:
        async with self._running(None):
            token = await self._token()
            deleted = 0
            for fid in file_ids:
                try:
                    await self._ctx.client.delete_file(token, fid)
                except TransportError as exc:
                    logger.warning("Failed to delete %s from Drive: %s", fid, exc)
                    continue
                deleted += 1
            logger.info("Deleted %d file(s) from Drive", deleted)
            return deleted

    def _is_excluded(self, path: str) -> bool:
        settings = self._ctx.settings
        return is_sync_excluded_path(
            path,
            settings.exclude_patterns,
            config_dir=settings.config_dir,
            workspace_folder=settings.workspace_folder,
        )

    def _sync_files(self) -> list[str]:
        meta_path = self._ctx.settings.local_meta_path
        return [
            p for p in self._ctx.vault.list_files()
            if p != meta_path and not self._is_excluded(p)
        ]

    def _vault_stats(self) -> dict[str, VaultStat]:
        return {p: self._ctx.vault.stat(p) for p in self._sync_files()}

    def _scan(self) -> _Scan:
        local_meta = read_local_sync_meta(self._ctx.vault, self._ctx.settings).or_empty()
        checksums, stats = compute_vault_checksums(self._ctx.vault, self._sync_files(), local_meta)
        return _Scan(
            local_meta=local_meta,
            checksums=checksums,
            stats=stats,
            changes=find_locally_modified_files(local_meta, checksums),
        )

    async def _in_batches(
        self,
        items: Sequence[T],
        fn: Callable[[T], Awaitable[R]],
    ) -> tuple[list[R], list[tuple[T, BaseException]]]:
        """
        Run `fn` over `items`, `concurrency` at a time.

        Every call runs to completion. Returns the results of the calls that
        succeeded and the (item, exception) pairs of those that failed.
        """
        size = self._ctx.settings.concurrency
        results: list[R] = []
        failed: list[tuple[T, BaseException]] = []
        for i in range(0, len(items), size):
            chunk = items[i:i + size]
            outcomes = await asyncio.gather(*(fn(item) for item in chunk), return_exceptions=True)
            for item, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning("Transfer failed for %s: %s", item, outcome)
                    failed.append((item, outcome))
                else:
                    results.append(outcome)
        return results, failed

    def _read_local(self, path: str) -> Content:
        """Vault content as text, or as bytes when it is not UTF-8 text."""
        data = self._ctx.vault.read_bytes(path)
        if is_binary_extension(path):
            return data
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return data
        return data if looks_like_binary(text) else text

    async def _read_remote(
        self, token: str, file_id: str, path: str, mime_type: Optional[str]
    ) -> Content:
        client = self._ctx.client
        if is_binary_extension(path) or is_binary_mime_type(mime_type):
            return await client.read_file_raw(token, file_id)
        return await client.read_file(token, file_id)

    def _write_local(self, path: str, content: Content) -> None:
        if isinstance(content, bytes):
            self._ctx.vault.write_bytes(path, content)
        else:
            self._ctx.vault.write_text(path, content)

    async def _create_remote(
        self, token: str, path: str, content: Content, parent_id: str
    ) -> DriveFile:
        client, mime_type = self._ctx.client, get_mime_type(path)
        if isinstance(content, bytes):
            return await client.create_file_binary(token, path, content, parent_id, mime_type)
        return await client.create_file(token, path, content, parent_id, mime_type)

    async def _update_remote(
        self, token: str, file_id: str, path: str, content: Content
    ) -> DriveFile:
        client, mime_type = self._ctx.client, get_mime_type(path)
        if isinstance(content, bytes):
            return await client.update_file_binary(token, file_id, content, mime_type)
        return await client.update_file(token, file_id, content, mime_type)

    async def _upload_file(
        self,
        root_id: str,
        path: str,
        existing_id: Optional[str],
        remote_meta: SyncMeta,
        local_meta: LocalDriveSyncMeta,
        checksums: dict[str, str],
    ) -> Optional[_Upload]:
        vault, client = self._ctx.vault, self._ctx.client
        if not vault.exists(path):
            return None

        token = await self._token()
        content = self._read_local(path)
        old_content: Optional[str] = None
        new_content = content if isinstance(content, str) else None

        if existing_id and new_content is not None and self._ctx.history is not None:
            try:
                old_content = await client.read_file(token, existing_id)
            except TransportError as exc:
                logger.debug("Old content of %s unavailable: %s", path, exc)

        if existing_id:
            drive_file = await self._update_remote(token, existing_id, path, content)
        else:
            drive_file = await self._create_remote(token, path, content, root_id)

        upsert_file_in_meta(remote_meta, drive_file, path)
        local_meta.path_to_id[path] = drive_file.id
        local_meta.files[drive_file.id] = LocalFileEntry(
            md5_checksum=checksums.get(path) or drive_file.md5_checksum or "",
            modified_time=drive_file.modified_time or "",
        )
        return _Upload(path, old_content, new_content)

    async def _download_file(
        self,
        file_id: str,
        remote_meta: SyncMeta,
        local_meta: LocalDriveSyncMeta,
    ) -> bool:
        entry = remote_meta.files.get(file_id)
        if entry is None:
            return False

        path = entry.vault_path
        if not is_valid_vault_path(path):
            logger.warning("Skipping unsafe remote path: %r", path)
            return False
        if self._is_excluded(path):
            return False

        token = await self._token()
        self._write_local(path, await self._read_remote(token, file_id, path, entry.mime_type))

        local_meta.path_to_id[path] = file_id
        local_meta.files[file_id] = LocalFileEntry(
            md5_checksum=entry.md5_checksum,
            modified_time=entry.modified_time,
        )
        return True

    async def _trash_remote(
        self,
        root_id: str,
        file_ids: list[str],
        id_to_path: dict[str, str],
        remote_meta: SyncMeta,
        local_meta: LocalDriveSyncMeta,
    ) -> int:
        """Move locally deleted files into the Drive trash folder."""
        if not file_ids:
            return 0

        client = self._ctx.client
        token = await self._token()
        trash_id = await client.ensure_sub_folder(token, root_id, self._ctx.settings.trash_folder_name)

        trashed = 0
        for fid in file_ids:
            path = id_to_path.get(fid)
            if not path:
                continue
            try:
                await client.move_file(await self._token(), fid, trash_id, root_id)
            except TransportError as exc:
                logger.warning("Failed to move %s to the Drive trash folder: %s", path, exc)
                continue
            remove_file_from_meta(remote_meta, fid)
            local_meta.files.pop(fid, None)
            local_meta.path_to_id.pop(path, None)
            trashed += 1
        return trashed

    async def _apply_pull_diff(
        self,
        local_meta: LocalDriveSyncMeta,
        remote_meta: SyncMeta,
        local_only: list[str],
        to_pull: list[str],
        remote_only: list[str],
        unpushed: Iterable[str] = (),
    ) -> tuple[int, int]:
        vault = self._ctx.vault
        id_to_path = local_meta.id_to_path()

        deleted = 0
        for fid in local_only:
            path = id_to_path.get(fid)
            if path:
                if vault.exists(path):
                    vault.trash(path)
                    deleted += 1
                local_meta.path_to_id.pop(path, None)
            local_meta.files.pop(fid, None)

        # Remote renames: the old local copy goes before the new path is written.
        for fid in to_pull:
            old_path = id_to_path.get(fid)
            entry = remote_meta.files.get(fid)
            if old_path and entry and old_path != entry.vault_path:
                if vault.exists(old_path):
                    vault.trash(old_path)
                local_meta.path_to_id.pop(old_path, None)

        results, failed = await self._in_batches(
            [*to_pull, *remote_only],
            lambda fid: self._download_file(fid, remote_meta, local_meta),
        )

        # No fresh stats for unpushed edits: the next scan must re-hash them.
        stats = _without(self._vault_stats(), unpushed)
        self._write_pulled_local_meta(remote_meta, local_meta, stats, [fid for fid, _ in failed])
        if failed:
            raise failed[0][1]
        return sum(1 for ok in results if ok), deleted

    def _write_pulled_local_meta(
        self,
        remote_meta: SyncMeta,
        local_meta: LocalDriveSyncMeta,
        stats: dict[str, VaultStat],
        failed_ids: Sequence[str],
    ) -> None:
        """
        Write the local cache after downloads.

        Ids whose download failed keep the entry of the cache on disk, or no
        entry at all, so the next pull fetches them again.
        """
        vault, settings = self._ctx.vault, self._ctx.settings
        result = to_local_sync_meta(remote_meta, local_meta, stats)
        if failed_ids:
            previous = read_local_sync_meta(vault, settings).or_empty()
            previous_paths = previous.id_to_path()
            for fid in failed_ids:
                for path in [p for p, i in result.path_to_id.items() if i == fid]:
                    del result.path_to_id[path]
                result.files.pop(fid, None)
                if fid in previous.files and fid in previous_paths:
                    result.files[fid] = previous.files[fid]
                    result.path_to_id[previous_paths[fid]] = fid
        write_local_sync_meta(vault, settings, result)

    async def _resolve_normal(
        self,
        root_id: str,
        file_id: str,
        vault_path: str,
        choice: ConflictChoice,
        local_meta: LocalDriveSyncMeta,
        remote_meta: SyncMeta,
    ) -> None:
        vault, client, settings = self._ctx.vault, self._ctx.client, self._ctx.settings
        entry = remote_meta.files.get(file_id)
        token = await self._token()

        if choice == "local":
            if vault.exists(vault_path):
                remote_content = await self._read_remote(
                    token, file_id, vault_path, entry.mime_type if entry else None
                )
                await save_conflict_backup(
                    client, token, root_id, vault_path, remote_content,
                    folder_name=settings.conflict_folder_name,
                )
                drive_file = await self._update_remote(
                    token, file_id, vault_path, self._read_local(vault_path)
                )
                upsert_file_in_meta(remote_meta, drive_file, vault_path)
        else:
            if vault.exists(vault_path):
                await save_conflict_backup(
                    client, token, root_id, vault_path, self._read_local(vault_path),
                    folder_name=settings.conflict_folder_name,
                )
            await self._download_file(file_id, remote_meta, local_meta)

        await write_remote_sync_meta(client, token, root_id, remote_meta)
        self._write_tracked_local_meta(remote_meta, local_meta)

    async def _resolve_edit_delete(
        self,
        root_id: str,
        file_id: str,
        vault_path: str,
        choice: ConflictChoice,
        local_meta: LocalDriveSyncMeta,
        remote_meta: SyncMeta,
    ) -> None:
        vault, client, settings = self._ctx.vault, self._ctx.client, self._ctx.settings
        token = await self._token()

        if choice == "local":
            # Re-create on Drive; the old id is gone for good.
            if vault.exists(vault_path):
                drive_file = await self._create_remote(
                    token, vault_path, self._read_local(vault_path), root_id
                )
                local_meta.path_to_id[vault_path] = drive_file.id
                upsert_file_in_meta(remote_meta, drive_file, vault_path)
        else:
            if vault.exists(vault_path):
                await save_conflict_backup(
                    client, token, root_id, vault_path, self._read_local(vault_path),
                    folder_name=settings.conflict_folder_name,
                )
                vault.trash(vault_path)
            local_meta.path_to_id.pop(vault_path, None)
            local_meta.files.pop(file_id, None)

        remove_file_from_meta(remote_meta, file_id)
        await write_remote_sync_meta(client, token, root_id, remote_meta)
        self._write_tracked_local_meta(remote_meta, local_meta)

    def _write_tracked_local_meta(self, remote_meta: SyncMeta, local_meta: LocalDriveSyncMeta) -> None:
        """Rewrite the local cache, limited to files this vault already tracks."""
        tracked = set(local_meta.path_to_id.values())
        known = SyncMeta(
            last_updated_at=remote_meta.last_updated_at,
            files={fid: e for fid, e in remote_meta.files.items() if fid in tracked},
        )
        write_local_sync_meta(
            self._ctx.vault, self._ctx.settings, to_local_sync_meta(known, local_meta)
        )

    async def _record_history(self, uploads: Iterable[_Upload]) -> None:
        """Hand text edits to the history recorder. Failures are logged only."""
        history = self._ctx.history
        if history is None:
            return
        for upload in uploads:
            if (
                upload.old_content is None
                or upload.new_content is None
                or upload.old_content == upload.new_content
            ):
                continue
            try:
                await history.record(upload.path, upload.old_content, upload.new_content)
            except Exception as exc:
                logger.warning("Edit history for %s not recorded: %s", upload.path, exc)


def _without(stats: dict[str, VaultStat], paths: Iterable[str]) -> dict[str, VaultStat]:
    skip = set(paths)
    return {p: s for p, s in stats.items() if p not in skip}
