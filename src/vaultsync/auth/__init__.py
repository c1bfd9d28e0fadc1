"""Session and token handling for vaultsync."""

from __future__ import annotations

from .session import (
    DEFAULT_EXPIRES_IN_SEC,
    ENCRYPTED_AUTH_FILE_NAME,
    REFRESH_BUFFER,
    AuthDecryptor,
    DecryptedAuth,
    EncryptedAuth,
    SessionTokens,
    fetch_encrypted_auth,
    get_valid_session_tokens,
    refresh_access_token,
)
from .token_guard import TokenGuard

__all__ = [
    "EncryptedAuth",
    "DecryptedAuth",
    "AuthDecryptor",
    "SessionTokens",
    "TokenGuard",
    "refresh_access_token",
    "get_valid_session_tokens",
    "fetch_encrypted_auth",
    "ENCRYPTED_AUTH_FILE_NAME",
    "REFRESH_BUFFER",
    "DEFAULT_EXPIRES_IN_SEC",
]
