"""SyncContext: the collaborators one sync manager works with."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol

from vaultsync.config import DriveSyncSettings

if TYPE_CHECKING:
    from vaultsync.auth import TokenGuard
    from vaultsync.controller import DriveClient
    from vaultsync.local import Vault


class EditHistoryRecorder(Protocol):
    """Receives old/new text of files updated by a push."""

    async def record(self, path: str, old_content: str, new_content: str) -> None:
        ...


@dataclass(slots=True)
class SyncContext:
    """
    Explicit dependency bundle passed to DriveSyncManager.

    Nothing in vaultsync looks these up globally; tests build a context with
    fakes in place of the Drive client or the history recorder.
    """

    client: DriveClient
    tokens: TokenGuard
    vault: Vault
    settings: DriveSyncSettings = field(default_factory=DriveSyncSettings)
    history: Optional[EditHistoryRecorder] = None
