"""Field selectors for Google Drive API responses."""

from __future__ import annotations

FILE_FIELDS: str = (
    "id,"
    "name,"
    "mimeType,"
    "modifiedTime,"
    "createdTime,"
    "webViewLink,"
    "md5Checksum"
)

METADATA_FIELDS: str = f"{FILE_FIELDS},parents,size"

LIST_FIELDS: str = f"nextPageToken,files({FILE_FIELDS})"

FOLDER_LIST_FIELDS: str = "files(id,name)"

FIND_FIELDS: str = "files(id,name,mimeType,modifiedTime,md5Checksum)"
