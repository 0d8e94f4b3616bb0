"""
Google Analytics Counter — OAuth admin routes.

Consent URL, callback, revoke and the list of GA views the account can read.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gacounter.config import Settings
from gacounter.database import get_db
from gacounter.exceptions import ConfigurationError, GACounterError
from gacounter.routes import get_oauth_client, get_settings, http_error
from gacounter.schemas import AuthStatusResponse, AuthUrlResponse
from gacounter.services.credentials import (
    Credentials,
    CredentialState,
    CredentialStore,
    apply_token_response,
    ensure_access_token,
)
from gacounter.services.ga_feed import GoogleAnalyticsFeed, GoogleOAuthClient

logger = logging.getLogger(__name__)
auth_router = APIRouter(tags=["auth"])


def _status(creds: Credentials, store: CredentialStore) -> AuthStatusResponse:
    state = creds.state(store.clock())
    return AuthStatusResponse(
        authenticated=creds.is_authenticated,
        state=state.value,
        expires_at=creds.expires_at or None,
    )


@auth_router.get("/auth/status", response_model=AuthStatusResponse)
async def auth_status(session: AsyncSession = Depends(get_db)):
    store = CredentialStore(session)
    return _status(await store.load(), store)


@auth_router.get("/auth/url", response_model=AuthUrlResponse)
async def auth_url(
    cfg: Settings = Depends(get_settings),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Where to send the admin to grant read access to Analytics."""
    if not cfg.ga_client_id:
        raise http_error(ConfigurationError("GA client id is not configured (GA_CLIENT_ID)"), "Auth URL")
    return AuthUrlResponse(url=oauth.authorization_url())


@auth_router.get("/auth/callback", response_model=AuthStatusResponse)
async def auth_callback(
    code: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Finish the authorization-code flow and store the tokens."""
    store = CredentialStore(session)
    try:
        response = await oauth.exchange_code(code)
        creds = apply_token_response(Credentials(), response, store.clock())
    except GACounterError as exc:
        raise http_error(exc, "Authentication")

    await store.save(creds)
    logger.info("✅ Authenticated with Google Analytics")
    return _status(creds, store)


@auth_router.post("/auth/revoke", response_model=AuthStatusResponse)
async def auth_revoke(
    session: AsyncSession = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Revoke the grant at Google and forget every stored token."""
    store = CredentialStore(session)
    creds = await store.load()
    token = creds.refresh_token or creds.access_token
    if token:
        try:
            await oauth.revoke(token)
        except GACounterError as exc:
            # Tokens are dropped locally even when Google already forgot them
            logger.warning("Token revoke at Google failed: %s", exc)
    await store.clear()
    logger.info("🔓 Google Analytics tokens revoked")
    return _status(Credentials(), store)


@auth_router.get("/profiles")
async def list_profiles(
    session: AsyncSession = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
) -> dict[str, dict[str, str]]:
    """GA views grouped by web property; empty when not authenticated."""
    store = CredentialStore(session)
    if await store.state() is CredentialState.ABSENT:
        return {}

    feed = GoogleAnalyticsFeed(lambda: ensure_access_token(store, oauth))
    try:
        return await feed.profile_options()
    except GACounterError as exc:
        raise http_error(exc, "Listing GA profiles")
