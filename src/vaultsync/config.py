"""Settings for vaultsync."""

from __future__ import annotations

from dataclasses import dataclass

LOCAL_META_FILE_NAME: str = "drive-sync-meta.json"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """
    Retry behaviour of DriveClient.

    A request is attempted at most `max_retries + 1` times. Only statuses in
    `retry_statuses` are retried; the wait is the `Retry-After` header value in
    seconds, or `default_retry_after_sec` when the header is absent or not an
    integer.
    """

    max_retries: int = 2
    default_retry_after_sec: float = 2.0
    retry_statuses: tuple[int, ...] = (429, 503)

    def __post_init__(self) -> None:
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValueError("RetryPolicy.max_retries must be a non-negative int")
        if self.default_retry_after_sec < 0:
            raise ValueError("RetryPolicy.default_retry_after_sec must be >= 0")


@dataclass(slots=True, frozen=True)
class DriveSyncSettings:
    """
    Vault-side sync settings.

    workspace_folder holds the local sync meta; it and config_dir are never
    synced. exclude_patterns accepts folder patterns ending in '/' and simple
    '*'/'?' globs.
    """

    workspace_folder: str = "vaultsync"
    root_folder_name: str = "vaultsync"
    exclude_patterns: tuple[str, ...] = ()
    concurrency: int = 5
    conflict_folder_name: str = "sync_conflicts"
    trash_folder_name: str = "trash"
    config_dir: str = ".obsidian"

    def __post_init__(self) -> None:
        for key in ("workspace_folder", "root_folder_name",
                    "conflict_folder_name", "trash_folder_name"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"DriveSyncSettings.{key} must be a non-empty string")

        if not isinstance(self.exclude_patterns, tuple):
            raise TypeError("DriveSyncSettings.exclude_patterns must be a tuple")

        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            raise ValueError("DriveSyncSettings.concurrency must be >= 1")

    @property
    def local_meta_path(self) -> str:
        """Vault-relative path of the local sync meta file."""
        return f"{self.workspace_folder.strip('/')}/{LOCAL_META_FILE_NAME}"
