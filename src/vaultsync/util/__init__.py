from .checksum import md5_hex
from .ids import new_boundary
from .mime import (
    DEFAULT_MIME,
    FOLDER_MIME,
    get_mime_type,
    is_binary_extension,
    is_binary_mime_type,
    is_folder,
    looks_like_binary,
)
from .time import backup_timestamp, epoch_ms, normalize_dt, now_iso, now_utc, to_iso

__all__ = [
    "md5_hex",
    "new_boundary",
    "DEFAULT_MIME",
    "FOLDER_MIME",
    "get_mime_type",
    "is_binary_extension",
    "is_binary_mime_type",
    "is_folder",
    "looks_like_binary",
    "now_utc",
    "now_iso",
    "normalize_dt",
    "to_iso",
    "backup_timestamp",
    "epoch_ms",
]
