"""multipart/related bodies for Drive uploads."""

from __future__ import annotations

import json
from typing import Any

from vaultsync.util.ids import new_boundary

CRLF = "\r\n"


def multipart_content_type(boundary: str) -> str:
    return f"multipart/related; boundary={boundary}"


def _preamble(boundary: str, metadata: dict[str, Any], mime_type: str) -> str:
    return (
        f"--{boundary}{CRLF}"
        f"Content-Type: application/json; charset=UTF-8{CRLF}{CRLF}"
        f"{json.dumps(metadata)}{CRLF}"
        f"--{boundary}{CRLF}"
        f"Content-Type: {mime_type}{CRLF}{CRLF}"
    )


def _epilogue(boundary: str) -> str:
    return f"{CRLF}--{boundary}--"


def encode_multipart_text(
    metadata: dict[str, Any],
    content: str,
    mime_type: str,
    *,
    boundary: str | None = None,
) -> tuple[str, bytes]:
    """
    Encode a JSON metadata part followed by a text content part.

    Returns:
        (content_type_header, body)
    """
    boundary = boundary or new_boundary()
    body = _preamble(boundary, metadata, mime_type) + content + _epilogue(boundary)
    return multipart_content_type(boundary), body.encode("utf-8")


def encode_multipart_binary(
    metadata: dict[str, Any],
    content: bytes,
    mime_type: str,
    *,
    boundary: str | None = None,
) -> tuple[str, bytes]:
    """
    Same layout as encode_multipart_text, but the content is spliced in as
    raw bytes between the encoded preamble and epilogue.
    """
    boundary = boundary or new_boundary()
    preamble = _preamble(boundary, metadata, mime_type).encode("utf-8")
    epilogue = _epilogue(boundary).encode("utf-8")
    return multipart_content_type(boundary), b"".join((preamble, bytes(content), epilogue))
