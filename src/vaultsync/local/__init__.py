"""Local vault access and path rules."""

from __future__ import annotations

from .validators import (
    SYNC_EXCLUDED_FILE_NAMES,
    SYNC_EXCLUDED_PREFIXES,
    is_sync_excluded_path,
    is_valid_vault_path,
)
from .vault import VAULT_TRASH_DIR, Vault

__all__ = [
    "Vault",
    "VAULT_TRASH_DIR",
    "SYNC_EXCLUDED_FILE_NAMES",
    "SYNC_EXCLUDED_PREFIXES",
    "is_sync_excluded_path",
    "is_valid_vault_path",
]
