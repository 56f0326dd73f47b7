"""
fetcher.py - Build the AuditContext for one pull request.

No retry: the webhook was already acknowledged, so a failure here aborts
only this run.
"""

import logging

import httpx

from phiguard.errors import FetchError
from phiguard.services.types import AuditContext

from .client import GitHubAppAuth, GitHubAuthError, GitHubClient, GitHubResponseError

logger = logging.getLogger(__name__)


async def fetch_context(
    client: GitHubClient,
    owner: str,
    repo: str,
    pr_number: int,
) -> AuditContext:
    """
    Fetch PR metadata and the raw diff.

    Raises:
        FetchError: API/transport error, malformed response, or the diff is empty.
    """
    try:
        pull = await client.fetch_pull(owner, repo, pr_number)
        diff = await client.fetch_diff(owner, repo, pr_number)
    except httpx.HTTPStatusError as e:
        raise FetchError(
            f"GitHub returned {e.response.status_code} for {owner}/{repo}#{pr_number}",
            details={"status_code": e.response.status_code},
        ) from e
    except httpx.HTTPError as e:
        raise FetchError(f"GitHub request failed for {owner}/{repo}#{pr_number}: {e}") from e
    except GitHubResponseError as e:
        raise FetchError(f"Malformed GitHub response for {owner}/{repo}#{pr_number}: {e}") from e

    if not diff or not diff.strip():
        raise FetchError(f"Empty diff for {owner}/{repo}#{pr_number}")

    base = pull.get("base")
    return AuditContext(
        repo_owner=owner,
        repo_name=repo,
        pr_number=pr_number,
        title=pull.get("title") or "",
        description=pull.get("body") or "",
        diff=diff,
        base_branch=(base.get("ref") or "") if isinstance(base, dict) else "",
    )


async def authorize(auth: GitHubAppAuth, installation_id: int | None) -> GitHubClient:
    """Resolve the installation client, mapping auth failures to FetchError."""
    try:
        return await auth.client_for(installation_id)
    except (GitHubAuthError, httpx.HTTPError) as e:
        raise FetchError(f"Could not authorize GitHub client: {e}") from e
