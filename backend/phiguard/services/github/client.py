"""
client.py - Thin async client for the GitHub REST endpoints the auditor uses.

Authentication is either a static token (GITHUB_TOKEN) or GitHub App
installation tokens minted per event from an RS256 app JWT.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any

import httpx
import jwt

from phiguard.config import Settings

logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
JSON_MEDIA_TYPE = "application/vnd.github+json"
API_VERSION = "2022-11-28"

# GitHub rejects app JWTs valid for more than 10 minutes
APP_JWT_TTL_SECONDS = 540
APP_JWT_CLOCK_SKEW_SECONDS = 60


class ReviewAction(str, Enum):
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


class GitHubAuthError(Exception):
    """Credentials missing or rejected."""


class GitHubResponseError(Exception):
    """A 2xx response whose body is not the JSON object the endpoint documents."""


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as e:
        raise GitHubResponseError(f"Non-JSON body from {response.request.url.path}") from e
    if not isinstance(payload, dict):
        raise GitHubResponseError(
            f"Expected a JSON object from {response.request.url.path}, got {type(payload).__name__}"
        )
    return payload


class GitHubClient:
    """Client bound to one credential (installation or static token)."""

    def __init__(self, http: httpx.AsyncClient, token: str) -> None:
        self._http = http
        self._headers = {
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": API_VERSION,
        }

    async def fetch_pull(self, owner: str, repo: str, pr_number: int) -> dict[str, Any]:
        response = await self._http.get(
            f"/repos/{owner}/{repo}/pulls/{pr_number}",
            headers={**self._headers, "Accept": JSON_MEDIA_TYPE},
        )
        response.raise_for_status()
        return _json_object(response)

    async def fetch_diff(self, owner: str, repo: str, pr_number: int) -> str:
        response = await self._http.get(
            f"/repos/{owner}/{repo}/pulls/{pr_number}",
            headers={**self._headers, "Accept": DIFF_MEDIA_TYPE},
        )
        response.raise_for_status()
        return response.text

    async def post_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        body: str,
        action: ReviewAction,
    ) -> None:
        response = await self._http.post(
            f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews",
            headers={**self._headers, "Accept": JSON_MEDIA_TYPE},
            json={"body": body, "event": action.value},
        )
        response.raise_for_status()


class GitHubAppAuth:
    """
    Issues GitHubClient handles for webhook installations.

    A static token, when configured, wins over app credentials.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        app_id: str | None = None,
        private_key: bytes | None = None,
        static_token: str | None = None,
    ) -> None:
        self._http = http
        self._app_id = app_id
        self._private_key = private_key
        self._static_token = static_token

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient) -> "GitHubAppAuth":
        private_key = None
        if settings.GITHUB_APP_ID and not settings.GITHUB_TOKEN:
            key_path = Path(settings.GITHUB_PRIVATE_KEY_PATH)
            if not key_path.exists():
                raise FileNotFoundError(
                    f"GitHub App private key not found: {key_path}. "
                    f"Set GITHUB_PRIVATE_KEY_PATH or GITHUB_TOKEN."
                )
            private_key = key_path.read_bytes()
        return cls(
            http,
            app_id=settings.GITHUB_APP_ID,
            private_key=private_key,
            static_token=settings.GITHUB_TOKEN,
        )

    def app_jwt(self, now: float | None = None) -> str:
        """Sign the short-lived app JWT used to mint installation tokens."""
        if not self._app_id or not self._private_key:
            raise GitHubAuthError("GitHub App credentials are not configured")
        issued = int(now if now is not None else time.time())
        claims = {
            "iat": issued - APP_JWT_CLOCK_SKEW_SECONDS,
            "exp": issued + APP_JWT_TTL_SECONDS,
            "iss": str(self._app_id),
        }
        return jwt.encode(claims, self._private_key, algorithm="RS256")

    async def client_for(self, installation_id: int | None) -> GitHubClient:
        """
        Return a client authorized for ``installation_id``.

        Raises:
            GitHubAuthError: No usable credentials for this event.
            httpx.HTTPError: Token exchange failed.
        """
        if self._static_token:
            return GitHubClient(self._http, self._static_token)
        if installation_id is None:
            raise GitHubAuthError("Event carries no installation and no static token is set")

        response = await self._http.post(
            f"/app/installations/{installation_id}/access_tokens",
            headers={
                "Authorization": f"Bearer {self.app_jwt()}",
                "Accept": JSON_MEDIA_TYPE,
                "X-GitHub-Api-Version": API_VERSION,
            },
        )
        response.raise_for_status()
        try:
            token = _json_object(response).get("token")
        except GitHubResponseError as e:
            raise GitHubAuthError(f"Unusable token response for installation {installation_id}: {e}") from e
        if not token or not isinstance(token, str):
            raise GitHubAuthError(f"No token issued for installation {installation_id}")
        logger.debug("Minted installation token for installation %s", installation_id)
        return GitHubClient(self._http, token)
