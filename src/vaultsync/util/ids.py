from __future__ import annotations

import uuid


def new_boundary() -> str:
    """Generate a multipart boundary that cannot collide with file content."""
    return f"-------vaultsync{uuid.uuid4().hex}"
