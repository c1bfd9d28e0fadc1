from __future__ import annotations

import hashlib


def md5_hex(data: bytes | str) -> str:
    """
    MD5 hex digest, compatible with Drive's `md5Checksum`.

    Text is hashed as UTF-8.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.md5(data).hexdigest()
