"""
YouTube Data API v3 + Google OAuth2 client.

Flow:
  1. /oauth/youtube/authorize  → redirect to authorization_url()
  2. /oauth/youtube/callback   → exchange_code() stores the token pair on disk
  3. fetch_channel_metrics()   → search channel by handle, read its statistics

The token file doubles as the authentication state: no file, not authenticated.
Expired access tokens are refreshed with the stored refresh token before any
Data API call, and the refreshed token is written back.

Required OAuth scopes:
  - https://www.googleapis.com/auth/youtube.readonly
  - https://www.googleapis.com/auth/yt-analytics.readonly
"""

import functools
import json
import logging
import os
import threading
from datetime import timezone
from typing import Any
from urllib.parse import urlencode

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials

from metrics_api.errors import ChannelNotFound, NotAuthenticated, StoreUnreadable, StoreUnwritable, UpstreamError
from metrics_api.models import AuthToken, Counters
from metrics_api.store import write_json_atomic

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
API_BASE = "https://www.googleapis.com/youtube/v3"

SCOPES = [
    "https://www.googleapis.com/auth/youtube.readonly",
    "https://www.googleapis.com/auth/yt-analytics.readonly",
]


def _safe_json(resp: requests.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        text = resp.text or ""
        return {"raw": text[:1500]} if text else {}
    return data if isinstance(data, dict) else {"raw": data}


class YouTubeClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        token_file: str,
        timeout: float = 15.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_file = token_file
        self.timeout = timeout
        self._token_lock = threading.Lock()

    # ── OAuth2: consent + code exchange ───────────────────────────────────────

    def authorization_url(self, state: str | None = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            # offline + consent so Google hands out a refresh token every time
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
        }
        if state:
            params["state"] = state
        return f"{AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> AuthToken:
        """Trade an authorization code for a token pair and persist it."""
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            resp = requests.post(
                TOKEN_URL,
                data=payload,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"YouTube token exchange failed: {exc}") from exc

        data = _safe_json(resp)
        if resp.status_code >= 400:
            logger.error("Token exchange failed: %s %s", resp.status_code, resp.text[:1500])
            reason = data.get("error_description") or data.get("error") or f"HTTP {resp.status_code}"
            raise UpstreamError(f"YouTube token exchange failed: {reason}", details=data)
        if not data.get("access_token"):
            raise UpstreamError("YouTube token exchange returned no access_token", details=data)

        token = AuthToken.from_token_response(data)
        self.save_token(token)
        logger.info("Stored YouTube token (refresh token: %s)", "yes" if token.refresh_token else "no")
        return token

    # ── Token file ────────────────────────────────────────────────────────────

    def is_authenticated(self) -> bool:
        return os.path.exists(self.token_file)

    def load_token(self) -> AuthToken:
        if not self.is_authenticated():
            raise NotAuthenticated()
        try:
            with open(self.token_file, "r", encoding="utf-8") as f:
                return AuthToken.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, AttributeError) as exc:
            raise StoreUnreadable(f"Cannot read token file {self.token_file}: {exc}") from exc

    def save_token(self, token: AuthToken) -> None:
        try:
            write_json_atomic(self.token_file, token.to_dict())
        except (OSError, TypeError, ValueError) as exc:
            raise StoreUnwritable(f"Cannot write token file {self.token_file}: {exc}") from exc

    def credentials(self) -> Credentials:
        """google-auth credentials for the stored token, refreshed if expired."""
        token = self.load_token()
        creds = Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=token.scope.split() if token.scope else SCOPES,
            # google-auth compares against naive UTC
            expiry=token.expiry.astimezone(timezone.utc).replace(tzinfo=None) if token.expiry else None,
        )
        if creds.expired and creds.refresh_token:
            with self._token_lock:
                logger.info("YouTube access token expired, refreshing")
                try:
                    creds.refresh(functools.partial(Request(), timeout=self.timeout))
                except (GoogleAuthError, requests.RequestException) as exc:
                    raise UpstreamError(f"YouTube token refresh failed: {exc}") from exc
                token.access_token = creds.token
                token.expiry = creds.expiry.replace(tzinfo=timezone.utc) if creds.expiry else None
                self.save_token(token)
        return creds

    # ── Data API ──────────────────────────────────────────────────────────────

    def _get(self, session: requests.Session, path: str, params: dict) -> dict[str, Any]:
        try:
            resp = session.get(f"{API_BASE}{path}", params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.HTTPError as exc:
            body = _safe_json(exc.response) if exc.response is not None else {}
            raise UpstreamError(f"YouTube API {path} failed: {exc}", details=body) from exc
        except (requests.RequestException, GoogleAuthError) as exc:
            raise UpstreamError(f"YouTube API {path} failed: {exc}") from exc
        return resp.json()

    def fetch_channel_metrics(self, handle: str) -> Counters:
        """
        Look up a channel by free-text handle (first search hit wins) and
        return its public statistics. YouTube does not expose likes or shares
        at channel level, so both are 0.
        """
        if not self.is_authenticated():
            raise NotAuthenticated()
        with AuthorizedSession(self.credentials()) as session:
            search = self._get(session, "/search", {
                "part": "snippet",
                "type": "channel",
                "q": handle,
                "maxResults": 1,
            })
            items = search.get("items") or []
            if not items:
                raise ChannelNotFound(handle)
            first = items[0]
            channel_id = (first.get("id") or {}).get("channelId") or (first.get("snippet") or {}).get("channelId")
            if not channel_id:
                raise ChannelNotFound(handle)

            channels = self._get(session, "/channels", {"part": "statistics", "id": channel_id})

        items = channels.get("items") or []
        if not items:
            raise ChannelNotFound(handle)
        stats = items[0].get("statistics") or {}

        counters = Counters(
            views=int(stats.get("viewCount") or 0),
            followers=int(stats.get("subscriberCount") or 0),
        )
        logger.info("Fetched %s (%s): views=%d subscribers=%d",
                    handle, channel_id, counters.views, counters.followers)
        return counters
