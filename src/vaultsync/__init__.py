"""vaultsync public API."""

from __future__ import annotations

from vaultsync.auth import (
    AuthDecryptor,
    DecryptedAuth,
    EncryptedAuth,
    SessionTokens,
    TokenGuard,
    get_valid_session_tokens,
    refresh_access_token,
)
from vaultsync.config import DriveSyncSettings, RetryPolicy
from vaultsync.context import EditHistoryRecorder, SyncContext
from vaultsync.controller import DriveClient, escape_query_value
from vaultsync.errors import (
    ApiError,
    AuthError,
    ConflictBackupError,
    ConflictError,
    ForbiddenError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    MetaCorruptionError,
    NetworkError,
    NotFoundError,
    QuotaExceededError,
    RateLimitError,
    ServiceUnavailableError,
    SyncInProgressError,
    TokenRefreshError,
    TransportError,
    VaultSyncError,
    map_http_error,
)
from vaultsync.local import Vault
from vaultsync.manager import DriveSyncManager
from vaultsync.models import (
    ConflictInfo,
    DriveFile,
    FileSyncMeta,
    LocalDriveSyncMeta,
    LocalFileEntry,
    SyncDiff,
    SyncFileList,
    SyncFileListItem,
    SyncMeta,
    SyncReport,
)
from vaultsync.reconcile import compute_sync_diff
from vaultsync.store import (
    MetaReadResult,
    read_local_sync_meta,
    read_remote_sync_meta,
    rebuild_sync_meta,
    save_conflict_backup,
    to_local_sync_meta,
    write_local_sync_meta,
    write_remote_sync_meta,
)

__all__ = [
    # High-level
    "DriveSyncManager",
    "SyncContext",
    "EditHistoryRecorder",
    "DriveSyncSettings",
    "RetryPolicy",
    "Vault",
    # Transport
    "DriveClient",
    "escape_query_value",
    # Auth
    "TokenGuard",
    "SessionTokens",
    "EncryptedAuth",
    "DecryptedAuth",
    "AuthDecryptor",
    "refresh_access_token",
    "get_valid_session_tokens",
    # Diff / Meta
    "compute_sync_diff",
    "SyncDiff",
    "ConflictInfo",
    "SyncMeta",
    "FileSyncMeta",
    "LocalDriveSyncMeta",
    "LocalFileEntry",
    "DriveFile",
    "SyncFileList",
    "SyncFileListItem",
    "SyncReport",
    "MetaReadResult",
    "read_local_sync_meta",
    "write_local_sync_meta",
    "read_remote_sync_meta",
    "write_remote_sync_meta",
    "rebuild_sync_meta",
    "to_local_sync_meta",
    "save_conflict_backup",
    # Errors
    "VaultSyncError",
    "InvalidStateError",
    "SyncInProgressError",
    "MetaCorruptionError",
    "ConflictBackupError",
    "TokenRefreshError",
    "NetworkError",
    "TransportError",
    "AuthError",
    "ForbiddenError",
    "QuotaExceededError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "ServiceUnavailableError",
    "ApiError",
    "HttpErrorInfo",
    "map_http_error",
]
