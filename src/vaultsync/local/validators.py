"""Path rules deciding which vault files take part in sync."""

from __future__ import annotations

import re
from typing import Iterable, Optional

SYNC_EXCLUDED_FILE_NAMES: frozenset[str] = frozenset(
    {"_sync-meta.json", "_encrypted-auth.json", "settings.json"}
)

SYNC_EXCLUDED_PREFIXES: tuple[str, ...] = (
    "history/",
    "trash/",
    "sync_conflicts/",
    "__TEMP__/",
    "plugins/",
    ".trash/",
    "node_modules/",
)


def is_valid_vault_path(path: str) -> bool:
    """
    Reject paths that could escape the vault.

    Absolute paths, backslashes, and empty, '.' or '..' segments are invalid.
    """
    if not path or path.startswith("/") or "\\" in path or "\x00" in path:
        return False
    if re.match(r"^[A-Za-z]:", path):
        return False
    return all(seg not in ("", ".", "..") for seg in path.split("/"))


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$")


def _under(path: str, folder: str) -> bool:
    folder = folder.strip("/")
    return bool(folder) and (path == folder or path.startswith(folder + "/"))


def is_sync_excluded_path(
    path: str,
    exclude_patterns: Iterable[str] = (),
    config_dir: Optional[str] = None,
    workspace_folder: Optional[str] = None,
) -> bool:
    normalized = path.lstrip("/")
    if normalized in SYNC_EXCLUDED_FILE_NAMES:
        return True
    if normalized.startswith(SYNC_EXCLUDED_PREFIXES):
        return True
    if config_dir and _under(normalized, config_dir):
        return True
    if workspace_folder and _under(normalized, workspace_folder):
        return True

    base_name = normalized.rsplit("/", 1)[-1]
    for raw in exclude_patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        if pattern.endswith("/"):
            # "drafts/" also matches a sibling like "drafts-old/..."
            if normalized.startswith(pattern) or normalized.startswith(pattern[:-1]):
                return True
            continue
        regex = _glob_to_regex(pattern)
        if regex.match(normalized) or regex.match(base_name):
            return True

    return False
