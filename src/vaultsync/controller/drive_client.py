"""Google Drive REST client used by the sync engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from vaultsync.config import RetryPolicy
from vaultsync.errors import (
    HttpErrorInfo,
    NetworkError,
    TransportError,
    map_http_error,
    parse_error_reason,
)
from vaultsync.models import SYSTEM_FILE_NAMES, DriveFile, drive_file_from_dict
from vaultsync.util.mime import DEFAULT_MIME, FOLDER_MIME

from .fields import FILE_FIELDS, FIND_FIELDS, FOLDER_LIST_FIELDS, LIST_FIELDS, METADATA_FIELDS
from .multipart import encode_multipart_binary, encode_multipart_text

logger = logging.getLogger(__name__)

DRIVE_API: str = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_API: str = "https://www.googleapis.com/upload/drive/v3"

LIST_PAGE_SIZE: int = 1000


def escape_query_value(value: str) -> str:
    """Escape a value for embedding inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """
    Thin, retrying wrapper around the Drive v3 REST surface.

    Every operation takes the bearer token explicitly. Non-2xx responses are
    raised as TransportError subclasses after the retry budget is spent.

    Notes:
        - Only 429 and 503 are retried, waiting `Retry-After` seconds.
        - Concurrent ensure_sub_folder calls for the same (parent, name) share
          one lookup/create sequence.
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        api_base: str = DRIVE_API,
        upload_base: str = DRIVE_UPLOAD_API,
    ) -> None:
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=60.0)
        self._retry_policy = retry_policy or RetryPolicy()
        self._api = api_base.rstrip("/")
        self._upload = upload_base.rstrip("/")
        self._folder_inflight: dict[tuple[str, str], asyncio.Task[str]] = {}

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "DriveClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ----------------------------
    # Folders
    # ----------------------------
    async def ensure_root_folder(self, token: str, folder_name: str) -> str:
        """Find the top-level sync folder by name, creating it if needed."""
        q = (
            f"name='{escape_query_value(folder_name)}' "
            f"and mimeType='{FOLDER_MIME}' and trashed=false"
        )
        found = await self._query(token, q, fields=FOLDER_LIST_FIELDS)
        if found:
            return found[0].id

        created = await self._create_folder(token, folder_name, parent_id=None)
        return created.id

    async def ensure_sub_folder(self, token: str, parent_id: str, folder_name: str) -> str:
        """
        Find-or-create folder `folder_name` under `parent_id`.

        Callers arriving while the same key is in flight await the same task.
        The entry is dropped once that task settles, success or failure.
        """
        key = (parent_id, folder_name)
        inflight = self._folder_inflight.get(key)
        if inflight is not None:
            return await inflight

        async def run() -> str:
            try:
                return await self._ensure_sub_folder_uncoalesced(token, parent_id, folder_name)
            finally:
                self._folder_inflight.pop(key, None)

        task = asyncio.ensure_future(run())
        self._folder_inflight[key] = task
        return await task

    async def ensure_folder_path(self, token: str, root_id: str, folder_path: str) -> str:
        """
        Ensure every segment of "a/b/c" exists below root_id.

        Returns:
            The id of the deepest folder (root_id for an empty path).
        """
        current = root_id
        for part in (p for p in folder_path.split("/") if p):
            current = await self.ensure_sub_folder(token, current, part)
        return current

    async def list_folders(self, token: str, parent_id: str) -> list[DriveFile]:
        q = (
            f"'{escape_query_value(parent_id)}' in parents "
            f"and mimeType='{FOLDER_MIME}' and trashed=false"
        )
        return await self._query(
            token, q, fields="files(id,name,mimeType)", extra={"orderBy": "name"}
        )

    # ----------------------------
    # Listing / lookup
    # ----------------------------
    async def list_files(
        self,
        token: str,
        folder_id: str,
        mime_type: Optional[str] = None,
    ) -> list[DriveFile]:
        """List all non-trashed children of folder_id, following every page."""
        q = f"'{escape_query_value(folder_id)}' in parents and trashed=false"
        if mime_type:
            q += f" and mimeType='{escape_query_value(mime_type)}'"

        all_files: list[DriveFile] = []
        page_token: Optional[str] = None

        while True:
            params = {
                "q": q,
                "fields": LIST_FIELDS,
                "orderBy": "modifiedTime desc",
                "pageSize": str(LIST_PAGE_SIZE),
            }
            if page_token:
                params["pageToken"] = page_token

            data = (await self._request("GET", f"{self._api}/files", token, params=params)).json()
            all_files.extend(drive_file_from_dict(f) for f in data.get("files", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return all_files

    async def list_user_files(self, token: str, root_id: str) -> list[DriveFile]:
        """Files under root_id, minus folders and the reserved system files."""
        files = await self.list_files(token, root_id)
        return [
            f for f in files
            if f.mime_type != FOLDER_MIME and f.name not in SYSTEM_FILE_NAMES
        ]

    async def find_file_by_exact_name(
        self,
        token: str,
        name: str,
        parent_id: Optional[str] = None,
    ) -> Optional[DriveFile]:
        """Return the single non-folder file named `name`, or None."""
        q = (
            f"name='{escape_query_value(name)}' "
            f"and mimeType!='{FOLDER_MIME}' and trashed=false"
        )
        if parent_id:
            q += f" and '{escape_query_value(parent_id)}' in parents"

        files = await self._query(token, q, fields=FIND_FIELDS, extra={"pageSize": "1"})
        return files[0] if files else None

    async def get_file_metadata(self, token: str, file_id: str) -> DriveFile:
        res = await self._request(
            "GET", f"{self._api}/files/{file_id}", token, params={"fields": METADATA_FIELDS}
        )
        return drive_file_from_dict(res.json())

    # ----------------------------
    # Read
    # ----------------------------
    async def read_file(self, token: str, file_id: str) -> str:
        res = await self._request(
            "GET", f"{self._api}/files/{file_id}", token, params={"alt": "media"}
        )
        return res.text

    async def read_file_raw(self, token: str, file_id: str) -> bytes:
        res = await self._request(
            "GET", f"{self._api}/files/{file_id}", token, params={"alt": "media"}
        )
        return res.content

    # ----------------------------
    # Create / update
    # ----------------------------
    async def create_file(
        self,
        token: str,
        name: str,
        content: str,
        parent_id: str,
        mime_type: str = "text/plain",
    ) -> DriveFile:
        metadata = {"name": name, "parents": [parent_id], "mimeType": mime_type}
        content_type, body = encode_multipart_text(metadata, content, mime_type)
        return await self._upload_multipart(token, content_type, body)

    async def create_file_binary(
        self,
        token: str,
        name: str,
        content: bytes,
        parent_id: str,
        mime_type: str = DEFAULT_MIME,
    ) -> DriveFile:
        metadata = {"name": name, "parents": [parent_id], "mimeType": mime_type}
        content_type, body = encode_multipart_binary(metadata, content, mime_type)
        return await self._upload_multipart(token, content_type, body)

    async def update_file(
        self,
        token: str,
        file_id: str,
        content: str,
        mime_type: str = "text/plain",
    ) -> DriveFile:
        return await self._upload_media(token, file_id, content.encode("utf-8"), mime_type)

    async def update_file_binary(
        self,
        token: str,
        file_id: str,
        content: bytes,
        mime_type: str = DEFAULT_MIME,
    ) -> DriveFile:
        return await self._upload_media(token, file_id, bytes(content), mime_type)

    # ----------------------------
    # Metadata-only operations
    # ----------------------------
    async def move_file(
        self,
        token: str,
        file_id: str,
        new_parent_id: str,
        old_parent_id: str,
    ) -> None:
        await self._request(
            "PATCH",
            f"{self._api}/files/{file_id}",
            token,
            params={
                "addParents": new_parent_id,
                "removeParents": old_parent_id,
                "fields": "id",
            },
        )

    async def rename_file(self, token: str, file_id: str, new_name: str) -> DriveFile:
        res = await self._request(
            "PATCH",
            f"{self._api}/files/{file_id}",
            token,
            params={"fields": FILE_FIELDS},
            json={"name": new_name},
        )
        return drive_file_from_dict(res.json())

    async def delete_file(self, token: str, file_id: str) -> None:
        """Permanently delete. Reserved for temporary and system files."""
        await self._request("DELETE", f"{self._api}/files/{file_id}", token)

    # ----------------------------
    # Internals
    # ----------------------------
    async def _ensure_sub_folder_uncoalesced(
        self,
        token: str,
        parent_id: str,
        folder_name: str,
    ) -> str:
        q = (
            f"name='{escape_query_value(folder_name)}' "
            f"and '{escape_query_value(parent_id)}' in parents "
            f"and mimeType='{FOLDER_MIME}' and trashed=false"
        )
        found = await self._query(token, q, fields=FOLDER_LIST_FIELDS)
        if found:
            return found[0].id

        created = await self._create_folder(token, folder_name, parent_id=parent_id)
        return created.id

    async def _create_folder(
        self,
        token: str,
        name: str,
        *,
        parent_id: Optional[str],
    ) -> DriveFile:
        body: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME}
        if parent_id is not None:
            body["parents"] = [parent_id]
        res = await self._request("POST", f"{self._api}/files", token, json=body)
        return drive_file_from_dict(res.json())

    async def _query(
        self,
        token: str,
        q: str,
        *,
        fields: str,
        extra: Optional[dict[str, str]] = None,
    ) -> list[DriveFile]:
        params = {"q": q, "fields": fields}
        if extra:
            params.update(extra)
        res = await self._request("GET", f"{self._api}/files", token, params=params)
        return [drive_file_from_dict(f) for f in res.json().get("files", [])]

    async def _upload_multipart(self, token: str, content_type: str, body: bytes) -> DriveFile:
        res = await self._request(
            "POST",
            f"{self._upload}/files",
            token,
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            headers={"Content-Type": content_type},
            content=body,
        )
        return drive_file_from_dict(res.json())

    async def _upload_media(
        self,
        token: str,
        file_id: str,
        body: bytes,
        mime_type: str,
    ) -> DriveFile:
        res = await self._request(
            "PATCH",
            f"{self._upload}/files/{file_id}",
            token,
            params={"uploadType": "media", "fields": FILE_FIELDS},
            headers={"Content-Type": mime_type},
            content=body,
        )
        return drive_file_from_dict(res.json())

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        *,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
        content: Optional[bytes] = None,
        json: Any = None,
    ) -> httpx.Response:
        req_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            req_headers.update(headers)

        policy = self._retry_policy
        for attempt in range(policy.max_retries + 1):
            try:
                res = await self._http.request(
                    method,
                    url,
                    params=params,
                    headers=req_headers,
                    content=content,
                    json=json,
                )
            except httpx.TransportError as exc:
                raise NetworkError(
                    "Network error",
                    details={"method": method, "url": url},
                    cause=exc,
                ) from exc

            if 200 <= res.status_code < 300:
                return res

            if res.status_code in policy.retry_statuses and attempt < policy.max_retries:
                delay = _retry_after_seconds(res, policy.default_retry_after_sec)
                logger.warning(
                    "Drive API %s %s returned %s; retrying in %ss (attempt %d/%d)",
                    method, url, res.status_code, delay, attempt + 1, policy.max_retries,
                )
                await asyncio.sleep(delay)
                continue

            raise _to_transport_error(res)

        raise TransportError(0, "Unexpected retry loop termination")


def _retry_after_seconds(res: httpx.Response, default: float) -> float:
    raw = res.headers.get("retry-after")
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return float(value) if value >= 0 else default


def _to_transport_error(res: httpx.Response) -> TransportError:
    body = res.text
    info = HttpErrorInfo(
        status_code=res.status_code,
        body=body,
        reason=parse_error_reason(body) or res.reason_phrase or None,
    )
    return map_http_error(info)
