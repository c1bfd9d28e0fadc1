"""Reconciliation: diff computation and local change detection."""

from __future__ import annotations

from .changes import (
    LocalChanges,
    compute_vault_checksums,
    find_locally_modified_files,
    find_missing_local_files,
)
from .diff import LocalMetaLike, compute_sync_diff

__all__ = [
    "compute_sync_diff",
    "LocalMetaLike",
    "LocalChanges",
    "compute_vault_checksums",
    "find_locally_modified_files",
    "find_missing_local_files",
]
