"""Drive transport exports for vaultsync."""

from __future__ import annotations

from .drive_client import DRIVE_API, DRIVE_UPLOAD_API, DriveClient, escape_query_value

__all__ = ["DriveClient", "DRIVE_API", "DRIVE_UPLOAD_API", "escape_query_value"]
