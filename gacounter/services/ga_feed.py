"""
Google Analytics Counter — Google Analytics / OAuth2 HTTP client.

Talks to the Core Reporting API v3, the Management API (to list views) and
Google's OAuth2 endpoints. Everything else in the package only sees the
``AnalyticsProvider`` protocol, so tests and other backends can stand in
for ``GoogleAnalyticsFeed``.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import urlencode

import aiohttp

from gacounter.exceptions import AuthenticationError, UpstreamRequestError
from gacounter.schemas.report import FetchParameters, ReportChunk, ReportRow

logger = logging.getLogger(__name__)

OAUTH_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
OAUTH_TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
OAUTH_REVOKE_URL = "https://accounts.google.com/o/oauth2/revoke"
OAUTH_SCOPE = "https://www.googleapis.com/auth/analytics.readonly"

REPORT_URL = "https://www.googleapis.com/analytics/v3/data/ga"
WEBPROPERTIES_URL = "https://www.googleapis.com/analytics/v3/management/accounts/~all/webproperties"
PROFILES_URL = (
    "https://www.googleapis.com/analytics/v3/management/accounts/~all/webproperties/~all/profiles"
)

REQUEST_TIMEOUT_S = 30


class AnalyticsProvider(Protocol):
    """Anything that can run one report query."""

    async def fetch_report(self, params: FetchParameters) -> ReportChunk:
        ...


# ── helpers ──────────────────────────────────────────────

def _error_message(body: Any, fallback: str) -> str:
    """Pull the human-readable message out of a Google error body."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return err.get("message") or fallback
        if isinstance(err, str):
            return body.get("error_description") or err
    return fallback


def parse_report(body: dict[str, Any]) -> ReportChunk:
    """
    Turn a v3 ``data/ga`` response into a ReportChunk.

    Column names lose their ``ga:`` prefix, so rows come out keyed by
    ``pagePath`` / ``pageviews``.
    """
    headers = [h.get("name", "").removeprefix("ga:") for h in body.get("columnHeaders", [])]
    rows = [ReportRow.model_validate(dict(zip(headers, raw))) for raw in body.get("rows") or []]
    return ReportChunk(rows=rows, total_results=int(body.get("totalResults", len(rows))))


async def _request(
    session: aiohttp.ClientSession | None,
    method: str,
    url: str,
    **kwargs: Any,
) -> dict[str, Any]:
    """Send one request, return the decoded JSON body or raise UpstreamRequestError."""
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_S))
    try:
        async with session.request(method, url, **kwargs) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = {}
            if resp.status == 401:
                raise AuthenticationError(_error_message(body, "Invalid credentials"))
            if resp.status >= 400:
                raise UpstreamRequestError(
                    _error_message(body, f"HTTP {resp.status} from {url}"), status=resp.status
                )
            if isinstance(body, dict) and body.get("error"):
                raise UpstreamRequestError(_error_message(body, "Unknown API error"), status=resp.status)
            return body if isinstance(body, dict) else {}
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise UpstreamRequestError(f"Request to {url} failed: {e}") from e
    finally:
        if own_session:
            await session.close()


# ── OAuth2 ───────────────────────────────────────────────

class GoogleOAuthClient:
    """Authorization-code flow: consent URL, code exchange, refresh, revoke."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        session: aiohttp.ClientSession | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._session = session

    def authorization_url(self, state: str | None = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "access_type": "offline",
            "approval_prompt": "force",
        }
        if state:
            params["state"] = state
        return f"{OAUTH_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        return await _request(self._session, "POST", OAUTH_TOKEN_URL, data={
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        })

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        return await _request(self._session, "POST", OAUTH_TOKEN_URL, data={
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        })

    async def revoke(self, token: str) -> None:
        await _request(self._session, "GET", OAUTH_REVOKE_URL, params={"token": token})


# ── Reporting / Management ───────────────────────────────

class GoogleAnalyticsFeed:
    """AnalyticsProvider backed by the live Google Analytics APIs."""

    def __init__(
        self,
        token_getter: Callable[[], Awaitable[str]],
        session: aiohttp.ClientSession | None = None,
    ):
        self._token_getter = token_getter
        self._session = session

    async def _get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        token = await self._token_getter()
        return await _request(
            self._session, "GET", url,
            params=params or {},
            headers={"Authorization": f"Bearer {token}"},
        )

    async def fetch_report(self, params: FetchParameters) -> ReportChunk:
        logger.debug(
            "GA query %s rows %d–%d",
            params.profile_id, params.start_index, params.start_index + params.max_results - 1,
        )
        body = await self._get(REPORT_URL, params.to_query())
        return parse_report(body)

    async def query_web_properties(self) -> list[dict[str, Any]]:
        return (await self._get(WEBPROPERTIES_URL)).get("items") or []

    async def query_profiles(self) -> list[dict[str, Any]]:
        return (await self._get(PROFILES_URL)).get("items") or []

    async def profile_options(self) -> dict[str, dict[str, str]]:
        """``{web property name: {profile id: "name (id)"}}`` for every accessible view."""
        webprops = {w.get("id"): w.get("name", w.get("id")) for w in await self.query_web_properties()}
        options: dict[str, dict[str, str]] = {}
        for profile in await self.query_profiles():
            group = webprops.get(profile.get("webPropertyId"), profile.get("webPropertyId", ""))
            options.setdefault(group, {})[str(profile["id"])] = f"{profile.get('name', '')} ({profile['id']})"
        return options
