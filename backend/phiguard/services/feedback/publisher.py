"""
publisher.py - Post the verdict back to the pull request.

Publishing runs after the ledger and persistence steps have committed. A
failure here is reported as PublishError and is never retried.
"""

import logging

import httpx

from phiguard.errors import PublishError
from phiguard.services.github import GitHubClient, ReviewAction
from phiguard.services.types import AuditContext, Verdict

logger = logging.getLogger(__name__)


def review_action(status: Verdict) -> ReviewAction:
    if status is Verdict.VIOLATION:
        return ReviewAction.REQUEST_CHANGES
    return ReviewAction.COMMENT


class FeedbackPublisher:
    async def publish(
        self,
        client: GitHubClient,
        context: AuditContext,
        status: Verdict,
        report: str,
    ) -> None:
        action = review_action(status)
        try:
            await client.post_review(
                context.repo_owner,
                context.repo_name,
                context.pr_number,
                report,
                action,
            )
        except httpx.HTTPStatusError as e:
            raise PublishError(
                f"GitHub rejected review for {context.full_name}#{context.pr_number}",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise PublishError(
                f"Review post failed for {context.full_name}#{context.pr_number}: {e}"
            ) from e
        logger.info(
            "Published %s review to %s#%s",
            action.value,
            context.full_name,
            context.pr_number,
        )
