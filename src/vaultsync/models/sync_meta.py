"""Sync meta models: the remote index (SyncMeta) and the local cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

SYNC_META_FILE_NAME: str = "_sync-meta.json"
SYSTEM_FILE_NAMES: frozenset[str] = frozenset({SYNC_META_FILE_NAME, "settings.json"})


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(slots=True)
class FileSyncMeta:
    """
    Remote index entry, keyed by Drive file id.

    `path` is absent for files created outside this tool; `md5_checksum` may be
    empty while Drive has not computed one yet.
    """

    name: str
    mime_type: str = ""
    md5_checksum: str = ""
    modified_time: str = ""
    path: Optional[str] = None
    created_time: Optional[str] = None
    shared: Optional[bool] = None
    web_view_link: Optional[str] = None

    @property
    def vault_path(self) -> str:
        """Target vault path: `path` when set, else `name`."""
        return self.path or self.name

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "mimeType": self.mime_type,
            "md5Checksum": self.md5_checksum,
            "modifiedTime": self.modified_time,
        }
        if self.path is not None:
            data["path"] = self.path
        if self.created_time is not None:
            data["createdTime"] = self.created_time
        if self.shared is not None:
            data["shared"] = self.shared
        if self.web_view_link is not None:
            data["webViewLink"] = self.web_view_link
        return data

    @classmethod
    def from_dict(cls, data: Any) -> FileSyncMeta:
        data = _dict(data)
        shared = data.get("shared")
        return cls(
            name=_str(data.get("name")),
            mime_type=_str(data.get("mimeType")),
            md5_checksum=_str(data.get("md5Checksum")),
            modified_time=_str(data.get("modifiedTime")),
            path=_opt_str(data.get("path")),
            created_time=_opt_str(data.get("createdTime")),
            shared=shared if isinstance(shared, bool) else None,
            web_view_link=_opt_str(data.get("webViewLink")),
        )


@dataclass(slots=True)
class SyncMeta:
    """Remote index root, persisted on Drive as `_sync-meta.json`."""

    last_updated_at: str
    files: dict[str, FileSyncMeta] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> SyncMeta:
        return cls(last_updated_at="", files={})

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdatedAt": self.last_updated_at,
            "files": {fid: f.to_dict() for fid, f in self.files.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> SyncMeta:
        data = _dict(data)
        files = {
            fid: FileSyncMeta.from_dict(entry)
            for fid, entry in _dict(data.get("files")).items()
            if isinstance(entry, dict)
        }
        return cls(last_updated_at=_str(data.get("lastUpdatedAt")), files=files)


@dataclass(slots=True)
class LocalFileEntry:
    """
    Local cache entry.

    local_mtime (epoch ms) and local_size let a scan skip re-hashing a file
    whose stat has not changed since the last sync.
    """

    md5_checksum: str = ""
    modified_time: str = ""
    name: Optional[str] = None
    local_mtime: Optional[int] = None
    local_size: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "md5Checksum": self.md5_checksum,
            "modifiedTime": self.modified_time,
        }
        if self.name is not None:
            data["name"] = self.name
        if self.local_mtime is not None:
            data["localMtime"] = self.local_mtime
        if self.local_size is not None:
            data["localSize"] = self.local_size
        return data

    @classmethod
    def from_dict(cls, data: Any) -> LocalFileEntry:
        data = _dict(data)
        return cls(
            md5_checksum=_str(data.get("md5Checksum")),
            modified_time=_str(data.get("modifiedTime")),
            name=_opt_str(data.get("name")),
            local_mtime=_opt_int(data.get("localMtime")),
            local_size=_opt_int(data.get("localSize")),
        )


@dataclass(slots=True)
class LocalDriveSyncMeta:
    """
    Local sync cache stored in the vault workspace folder.

    `path_to_id` is kept close to a bijection: at most one path maps to a
    given id at a time.
    """

    last_updated_at: str
    files: dict[str, LocalFileEntry] = field(default_factory=dict)
    path_to_id: dict[str, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> LocalDriveSyncMeta:
        return cls(last_updated_at="", files={}, path_to_id={})

    def id_to_path(self) -> dict[str, str]:
        """Reverse map: Drive file id -> vault path."""
        return {fid: path for path, fid in self.path_to_id.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdatedAt": self.last_updated_at,
            "files": {fid: f.to_dict() for fid, f in self.files.items()},
            "pathToId": dict(self.path_to_id),
        }

    @classmethod
    def from_dict(cls, data: Any) -> LocalDriveSyncMeta:
        data = _dict(data)
        files = {
            fid: LocalFileEntry.from_dict(entry)
            for fid, entry in _dict(data.get("files")).items()
            if isinstance(entry, dict)
        }
        path_to_id = {
            path: fid
            for path, fid in _dict(data.get("pathToId")).items()
            if isinstance(fid, str)
        }
        return cls(
            last_updated_at=_str(data.get("lastUpdatedAt")),
            files=files,
            path_to_id=path_to_id,
        )
