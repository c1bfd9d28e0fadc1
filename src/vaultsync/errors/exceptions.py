"""Exception hierarchy and HTTP error mapping for vaultsync."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

BODY_PREVIEW_CHARS: int = 200


class VaultSyncError(Exception):
    """
    Base exception for vaultsync.

    Attributes:
        details: Optional structured information (e.g., HTTP status, reason).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(VaultSyncError):
    """Raised when the library is used in an invalid state (e.g., not unlocked)."""


class SyncInProgressError(InvalidStateError):
    """Raised when a reconciliation is started while another one is running."""


class MetaCorruptionError(VaultSyncError):
    """Sync meta JSON (local or remote) could not be parsed."""

    def __init__(
        self,
        source: str,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            f"Failed to parse {source} sync meta",
            details={"source": source},
            cause=cause,
        )
        self.source = source


class ConflictBackupError(VaultSyncError):
    """Raised when the losing side of a conflict could not be backed up."""


class TokenRefreshError(VaultSyncError):
    """Raised when the access token could not be refreshed (re-auth required)."""


class NetworkError(VaultSyncError):
    """Raised when network/timeout issues prevent the request."""


class TransportError(VaultSyncError):
    """
    Non-2xx response from Drive after retries were exhausted.

    Attributes:
        status_code: HTTP status of the last attempt.
        body: Response body truncated to BODY_PREVIEW_CHARS characters.
    """

    def __init__(
        self,
        status_code: int,
        body: str = "",
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        preview = body[:BODY_PREVIEW_CHARS]
        merged = {"status_code": status_code}
        if details:
            merged.update(details)
        super().__init__(
            f"Drive API error {status_code}: {preview}",
            details=merged,
            cause=cause,
        )
        self.status_code = status_code
        self.body = preview


class AuthError(TransportError):
    """HTTP 401: the bearer token was rejected."""


class ForbiddenError(TransportError):
    """HTTP 403 (non-quota)."""


class QuotaExceededError(TransportError):
    """HTTP 403 with a quota-related reason."""


class InvalidArgumentError(TransportError):
    """HTTP 400."""


class NotFoundError(TransportError):
    """HTTP 404."""


class ConflictError(TransportError):
    """HTTP 409/412."""


class RateLimitError(TransportError):
    """HTTP 429 that persisted through every retry."""


class ServiceUnavailableError(TransportError):
    """HTTP 503 that persisted through every retry."""


class ApiError(TransportError):
    """Unclassified API errors (other 5xx, unknown 4xx, etc.)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to vaultsync exceptions."""

    status_code: int
    body: str = ""
    reason: str | None = None


_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "dailyLimitExceeded",
    "usageLimits",
    "storageQuotaExceeded",
)


def _is_quota_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() in reason.lower() for key in _QUOTA_REASON_KEYWORDS)


def parse_error_reason(body: str) -> str | None:
    """Extract `error.errors[0].reason` from a Google JSON error body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if not isinstance(err, dict):
        return None
    errors = err.get("errors") or []
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        reason = errors[0].get("reason")
        if isinstance(reason, str):
            return reason
    return None


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> TransportError:
    """
    Map an HTTP error to a vaultsync exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> ForbiddenError (default), but QuotaExceededError if quota-related
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 503 -> ServiceUnavailableError
        - otherwise -> ApiError
    """
    details = {"reason": info.reason} if info.reason else None
    args = (info.status_code, info.body)

    if info.status_code == 400:
        return InvalidArgumentError(*args, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(*args, details=details, cause=cause)
    if info.status_code == 403:
        if _is_quota_reason(info.reason):
            return QuotaExceededError(*args, details=details, cause=cause)
        return ForbiddenError(*args, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(*args, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(*args, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(*args, details=details, cause=cause)
    if info.status_code == 503:
        return ServiceUnavailableError(*args, details=details, cause=cause)

    return ApiError(*args, details=details, cause=cause)
