"""Data model for Drive items returned by the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(slots=True)
class DriveFile:
    """
    A Drive item as returned by the files endpoints.

    Only `id` and `name` are always present; other fields depend on the
    `fields` selector of the request.
    """

    id: str
    name: str
    mime_type: str = ""
    modified_time: Optional[str] = None
    created_time: Optional[str] = None
    parents: list[str] = field(default_factory=list)
    web_view_link: Optional[str] = None
    md5_checksum: Optional[str] = None
    size: Optional[int] = None


def drive_file_from_dict(data: dict[str, Any]) -> DriveFile:
    file_id = data.get("id")
    name = data.get("name", "")
    mime_type = data.get("mimeType", "")
    parents = data.get("parents", []) or []

    size = None
    if isinstance(data.get("size"), str) and data["size"].isdigit():
        size = int(data["size"])
    elif isinstance(data.get("size"), int):
        size = data["size"]

    def opt(key: str) -> Optional[str]:
        value = data.get(key)
        return value if isinstance(value, str) else None

    return DriveFile(
        id=file_id if isinstance(file_id, str) else "",
        name=name if isinstance(name, str) else "",
        mime_type=mime_type if isinstance(mime_type, str) else "",
        modified_time=opt("modifiedTime"),
        created_time=opt("createdTime"),
        parents=list(parents) if isinstance(parents, list) else [],
        web_view_link=opt("webViewLink"),
        md5_checksum=opt("md5Checksum"),
        size=size,
    )
