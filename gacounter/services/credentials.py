"""
Credentials — the Google OAuth2 token, its expiry and the refresh token.

``Credentials`` is an immutable value; every change goes through a pure
function (``apply_token_response``) and is persisted explicitly through a
``CredentialStore``. Nothing here is process-global, so the fetcher can be
handed whichever store it should use.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from gacounter.exceptions import AuthenticationError, UpstreamRequestError
from gacounter.models.state import CounterState

if TYPE_CHECKING:
    from gacounter.services.ga_feed import GoogleOAuthClient

logger = logging.getLogger(__name__)

STATE_KEY = "credentials"


class CredentialState(str, Enum):
    ABSENT = "absent"
    VALID = "valid"
    REFRESH_PENDING = "refresh_pending"


@dataclass(frozen=True)
class Credentials:
    access_token: str = ""
    expires_at: int = 0          # unix seconds
    refresh_token: str = ""

    def state(self, now: float) -> CredentialState:
        if self.access_token and now < self.expires_at:
            return CredentialState.VALID
        if self.refresh_token:
            return CredentialState.REFRESH_PENDING
        return CredentialState.ABSENT

    @property
    def is_authenticated(self) -> bool:
        """A refresh token is what lets us mint new access tokens."""
        return bool(self.refresh_token)

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "expires_at": self.expires_at,
            "refresh_token": self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Credentials":
        data = data or {}
        return cls(
            access_token=data.get("access_token") or "",
            expires_at=int(data.get("expires_at") or 0),
            refresh_token=data.get("refresh_token") or "",
        )


def apply_token_response(creds: Credentials, response: dict[str, Any], now: float) -> Credentials:
    """
    Fold an OAuth token-endpoint response into *creds*.

    Refresh responses usually omit ``refresh_token``; the existing one is kept.
    """
    access_token = response.get("access_token")
    if not access_token:
        raise AuthenticationError(
            response.get("error_description") or response.get("error") or "No access token in response"
        )
    return replace(
        creds,
        access_token=access_token,
        expires_at=int(now) + int(response.get("expires_in", 3600)),
        refresh_token=response.get("refresh_token") or creds.refresh_token,
    )


class CredentialStore:
    """Credentials persisted in the ``counter_state`` key/value table."""

    def __init__(self, session: AsyncSession, clock: Callable[[], float] = time.time):
        self.session = session
        self.clock = clock

    async def load(self) -> Credentials:
        row = await self.session.get(CounterState, STATE_KEY)
        return Credentials.from_dict(row.value if row else None)

    async def save(self, creds: Credentials) -> None:
        await self.session.merge(CounterState(key=STATE_KEY, value=creds.to_dict()))
        await self.session.commit()

    async def clear(self) -> None:
        await self.save(Credentials())

    async def state(self) -> CredentialState:
        return (await self.load()).state(self.clock())


async def ensure_access_token(store: CredentialStore, oauth: "GoogleOAuthClient") -> str:
    """
    Return an access token that is valid right now.

    Refreshes (and persists) the token when it has expired. Raises
    ``AuthenticationError`` when there is no credential at all or the
    refresh is rejected.
    """
    creds = await store.load()
    now = store.clock()
    state = creds.state(now)

    if state is CredentialState.VALID:
        return creds.access_token

    if state is CredentialState.ABSENT:
        raise AuthenticationError("Not authenticated with Google Analytics")

    logger.info("🔑 Access token expired — refreshing")
    try:
        response = await oauth.refresh(creds.refresh_token)
    except UpstreamRequestError as e:
        raise AuthenticationError(f"There was an authentication error. Message: {e.message}") from e

    creds = apply_token_response(creds, response, now)
    await store.save(creds)
    return creds.access_token
