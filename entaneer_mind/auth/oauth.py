import logging
from urllib.parse import urlencode

import httpx

from entaneer_mind.core import config

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """The identity provider rejected the exchange or returned unusable data."""


def build_authorize_url(state: str | None = None) -> str:
    params = {
        "response_type": "code",
        "client_id": config.OAUTH_CLIENT_ID,
        "redirect_uri": config.OAUTH_REDIRECT_URI,
        "scope": config.OAUTH_SCOPE,
    }
    if state:
        params["state"] = state
    return f"{config.OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


async def exchange_code(code: str) -> str:
    """Trade an authorization code for the provider's access token."""
    async with httpx.AsyncClient(timeout=config.OAUTH_TIMEOUT_SECONDS) as client:
        response = await client.post(
            config.OAUTH_TOKEN_URL,
            data={
                "code": code,
                "redirect_uri": config.OAUTH_REDIRECT_URI,
                "client_id": config.OAUTH_CLIENT_ID,
                "client_secret": config.OAUTH_CLIENT_SECRET,
                "grant_type": "authorization_code",
            },
        )

    if response.status_code != 200:
        logger.error("OAuth token exchange failed with status %s", response.status_code)
        raise OAuthError("Token exchange failed")

    access_token = response.json().get("access_token")
    if not access_token:
        raise OAuthError("No access token in token response")
    return access_token


async def fetch_user_info(access_token: str) -> dict:
    async with httpx.AsyncClient(timeout=config.OAUTH_TIMEOUT_SECONDS) as client:
        response = await client.get(
            config.OAUTH_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    if response.status_code != 200:
        logger.error("OAuth user info request failed with status %s", response.status_code)
        raise OAuthError("User info request failed")
    return response.json()


def normalize_user_info(info: dict) -> dict:
    """Map the provider's basic-info payload onto our user columns."""
    account = (info.get("cmuitaccount") or info.get("email") or "").strip().lower()
    if not account:
        raise OAuthError("Account not found in user info")

    return {
        "account": account,
        "sso_subject": str(info.get("sub") or info.get("cmuitaccount_name") or account),
        "first_name": info.get("firstname_EN") or info.get("given_name") or "",
        "last_name": info.get("lastname_EN") or info.get("family_name") or "",
        "client_id": info.get("student_id") or None,
        "department": info.get("organization_name_EN") or None,
    }
