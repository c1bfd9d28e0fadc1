"""TokenGuard: the single holder of the live session."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

import httpx

from vaultsync.errors import InvalidStateError
from vaultsync.util.time import now_utc

from .session import (
    AuthDecryptor,
    EncryptedAuth,
    SessionTokens,
    get_valid_session_tokens,
    refresh_access_token,
)

logger = logging.getLogger(__name__)


class TokenGuard:
    """
    Hands out access tokens, refreshing them shortly before expiry.

    Concurrent get_tokens() calls share a single refresh.
    """

    def __init__(
        self,
        session: Optional[SessionTokens] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._session = session
        self._http = http
        self._lock = asyncio.Lock()

    @property
    def is_unlocked(self) -> bool:
        return self._session is not None

    async def unlock(
        self,
        encrypted: EncryptedAuth,
        password: str,
        decryptor: AuthDecryptor,
        *,
        now: Optional[datetime] = None,
    ) -> SessionTokens:
        """Decrypt the stored refresh token and obtain a first access token."""
        decrypted = await decryptor.decrypt(encrypted, password)
        access_token, expires_at = await refresh_access_token(
            decrypted.api_origin, decrypted.refresh_token, http=self._http, now=now
        )
        self._session = SessionTokens(
            access_token=access_token,
            refresh_token=decrypted.refresh_token,
            api_origin=decrypted.api_origin,
            expires_at=expires_at,
            root_folder_id=encrypted.root_folder_id,
        )
        logger.info("Drive session unlocked")
        return self._session

    async def get_tokens(self, *, now: Optional[datetime] = None) -> SessionTokens:
        if self._session is None:
            raise InvalidStateError("Drive session is locked; unlock it first")

        async with self._lock:
            session = self._session
            if session is None:
                raise InvalidStateError("Drive session is locked; unlock it first")
            fresh = await get_valid_session_tokens(session, http=self._http, now=now or now_utc())
            self._session = fresh
            return fresh

    async def access_token(self) -> str:
        return (await self.get_tokens()).access_token

    def lock(self) -> None:
        self._session = None
