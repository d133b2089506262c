# vidstream/services/oauth_service.py
"""
Provider glue for Google sign-in and GitHub OAuth.

Google: the app sends an ID token obtained on the device; it is verified with
google-auth against our client id. GitHub: classic web flow, the code from the
callback is exchanged for an access token and the profile is read from the
REST API.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import requests
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from vidstream.errors import OAuthError

log = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_API_URL = "https://api.github.com"
GITHUB_SCOPE = "user:email"
HTTP_TIMEOUT = 10


@dataclass
class ProviderIdentity:
    provider: str
    provider_id: str
    email: str


# ────────────────────────────────────────────────────────────────
# Google
# ────────────────────────────────────────────────────────────────
def verify_google_id_token(token: str, client_id: Optional[str]) -> ProviderIdentity:
    if not client_id:
        raise OAuthError("GOOGLE_CLIENT_ID not configured")
    try:
        claims = google_id_token.verify_oauth2_token(token, google_requests.Request(), client_id)
    except ValueError as exc:
        raise OAuthError(f"google token rejected: {exc}") from exc
    email = claims.get("email")
    if not email:
        raise OAuthError("google token has no email claim")
    return ProviderIdentity("google", str(claims["sub"]), email)


# ────────────────────────────────────────────────────────────────
# GitHub
# ────────────────────────────────────────────────────────────────
def github_authorize_url(client_id: str, redirect_uri: Optional[str], state: str) -> str:
    params = {"client_id": client_id, "scope": GITHUB_SCOPE, "state": state}
    if redirect_uri:
        params["redirect_uri"] = redirect_uri
    return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"


def exchange_github_code(client_id: str, client_secret: str, code: str,
                         redirect_uri: Optional[str] = None) -> str:
    payload = {"client_id": client_id, "client_secret": client_secret, "code": code}
    if redirect_uri:
        payload["redirect_uri"] = redirect_uri
    try:
        resp = requests.post(
            GITHUB_TOKEN_URL, data=payload,
            headers={"Accept": "application/json"}, timeout=HTTP_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise OAuthError(f"github token exchange failed: {exc}") from exc
    token = data.get("access_token")
    if not token:
        raise OAuthError(f"github token exchange failed: {data.get('error', 'no access_token')}")
    return token


def _github_get(path: str, token: str):
    resp = requests.get(
        f"{GITHUB_API_URL}{path}",
        headers={"Authorization": f"Bearer {token}", "Accept": "application/vnd.github+json"},
        timeout=HTTP_TIMEOUT,
    )
    resp.raise_for_status()
    return resp.json()


def fetch_github_identity(token: str) -> ProviderIdentity:
    try:
        profile = _github_get("/user", token)
        github_id = str(profile["id"])
        email = profile.get("email")
        if not email:
            emails = _github_get("/user/emails", token)
            primary = next((e for e in emails if e.get("primary") and e.get("verified")), None)
            email = primary["email"] if primary else None
    except (requests.RequestException, ValueError, KeyError) as exc:
        raise OAuthError(f"github profile lookup failed: {exc}") from exc
    # accounts with private email and no verified address
    return ProviderIdentity("github", github_id, email or f"{github_id}@github.user")
