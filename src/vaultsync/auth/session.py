"""Session tokens and refresh through the token proxy."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional, Protocol

import httpx

from vaultsync.errors import InvalidStateError, TokenRefreshError
from vaultsync.util.time import normalize_dt, now_utc

if TYPE_CHECKING:
    from vaultsync.controller import DriveClient

logger = logging.getLogger(__name__)

ENCRYPTED_AUTH_FILE_NAME: str = "_encrypted-auth.json"
REFRESH_BUFFER: timedelta = timedelta(minutes=5)
DEFAULT_EXPIRES_IN_SEC: int = 3600


@dataclass(slots=True, frozen=True)
class EncryptedAuth:
    """At-rest form of the refresh token, as stored on Drive."""

    data: str
    encrypted_private_key: str
    salt: str
    root_folder_id: str = ""


@dataclass(slots=True, frozen=True)
class DecryptedAuth:
    refresh_token: str
    api_origin: str

    def __post_init__(self) -> None:
        if not self.refresh_token or not self.api_origin:
            raise ValueError("Decrypted auth data is incomplete")


class AuthDecryptor(Protocol):
    """Crypto collaborator that unwraps EncryptedAuth with the user's password."""

    async def decrypt(self, encrypted: EncryptedAuth, password: str) -> DecryptedAuth:
        ...


@dataclass(slots=True, frozen=True)
class SessionTokens:
    """
    Live credentials for one unlocked session.

    `expires_at` is tz-aware. `root_folder_id` is the Drive folder all sync
    state lives under.
    """

    access_token: str
    refresh_token: str
    api_origin: str
    expires_at: datetime
    root_folder_id: str

    def __post_init__(self) -> None:
        normalize_dt(self.expires_at)

    def needs_refresh(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at - (now or now_utc()) <= REFRESH_BUFFER


async def refresh_access_token(
    api_origin: str,
    refresh_token: str,
    *,
    http: Optional[httpx.AsyncClient] = None,
    now: Optional[datetime] = None,
) -> tuple[str, datetime]:
    """
    Exchange a refresh token for a new access token.

    Returns:
        (access_token, expires_at)

    Raises:
        TokenRefreshError: origin is not HTTPS, the proxy answered non-2xx, or
            the response carries no access token.
    """
    if not api_origin.startswith("https://"):
        raise TokenRefreshError(
            "Token refresh requires HTTPS. Insecure api_origin rejected.",
            details={"api_origin": api_origin},
        )

    url = f"{api_origin.rstrip('/')}/token"
    try:
        if http is None:
            async with httpx.AsyncClient(timeout=30.0) as own:
                res = await own.post(url, json={"refreshToken": refresh_token})
        else:
            res = await http.post(url, json={"refreshToken": refresh_token})
    except httpx.HTTPError as exc:
        raise TokenRefreshError("Token refresh request failed", cause=exc) from exc

    if not res.is_success:
        raise TokenRefreshError(
            f"Token refresh failed: {res.text[:200]}",
            details={"status_code": res.status_code},
        )

    try:
        data = res.json()
    except ValueError as exc:
        raise TokenRefreshError("Token refresh returned invalid JSON", cause=exc) from exc

    access_token = data.get("access_token") if isinstance(data, dict) else None
    if not isinstance(access_token, str) or not access_token:
        raise TokenRefreshError("Failed to refresh access token")

    expires_in = data.get("expires_in")
    if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool):
        expires_in = DEFAULT_EXPIRES_IN_SEC

    expires_at = (now or now_utc()) + timedelta(seconds=expires_in)
    logger.info("Refreshed access token, expires at %s", expires_at.isoformat())
    return access_token, expires_at


async def get_valid_session_tokens(
    session: SessionTokens,
    *,
    http: Optional[httpx.AsyncClient] = None,
    now: Optional[datetime] = None,
) -> SessionTokens:
    """Return `session` as-is with more than 5 minutes left, else a refreshed copy."""
    now = now or now_utc()
    if not session.needs_refresh(now):
        return session

    access_token, expires_at = await refresh_access_token(
        session.api_origin, session.refresh_token, http=http, now=now
    )
    return dataclasses.replace(session, access_token=access_token, expires_at=expires_at)


async def fetch_encrypted_auth(
    client: DriveClient,
    token: str,
    root_id: str,
) -> EncryptedAuth:
    """
    Load `_encrypted-auth.json` from the root folder using a temporary token.

    Raises:
        InvalidStateError: the file is missing or lacks required fields.
    """
    found = await client.find_file_by_exact_name(token, ENCRYPTED_AUTH_FILE_NAME, root_id)
    if found is None:
        raise InvalidStateError(f"{ENCRYPTED_AUTH_FILE_NAME} not found on Drive")

    try:
        data = json.loads(await client.read_file(token, found.id))
    except ValueError as exc:
        raise InvalidStateError(f"Invalid {ENCRYPTED_AUTH_FILE_NAME} format", cause=exc) from exc

    fields = {}
    for key in ("data", "encryptedPrivateKey", "salt"):
        value = data.get(key) if isinstance(data, dict) else None
        if not isinstance(value, str) or not value:
            raise InvalidStateError(f"Invalid {ENCRYPTED_AUTH_FILE_NAME} format")
        fields[key] = value

    return EncryptedAuth(
        data=fields["data"],
        encrypted_private_key=fields["encryptedPrivateKey"],
        salt=fields["salt"],
        root_folder_id=root_id,
    )
