"""Public error exports for vaultsync."""

from __future__ import annotations

from .exceptions import (
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
    parse_error_reason,
)

__all__ = [
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
    "parse_error_reason",
]
