"""
webhook.py - Pydantic schemas for the inbound pull_request event.

Only the fields the pipeline needs are declared; everything else in the
GitHub payload is ignored.
"""

from pydantic import BaseModel, Field


class AccountRef(BaseModel):
    login: str = Field(..., min_length=1)


class RepositoryRef(BaseModel):
    name: str = Field(..., min_length=1)
    owner: AccountRef


class BranchRef(BaseModel):
    ref: str
    sha: str = ""


class PullRequestRef(BaseModel):
    number: int = Field(..., gt=0)
    base: BranchRef
    head: BranchRef | None = None


class InstallationRef(BaseModel):
    id: int


class PullRequestWebhook(BaseModel):
    """The subset of a GitHub ``pull_request`` delivery the auditor reads."""

    action: str
    pull_request: PullRequestRef
    repository: RepositoryRef
    installation: InstallationRef | None = None


class WebhookAck(BaseModel):
    """Response body for POST /webhook."""

    status: str = Field(..., description="accepted | ignored")
    delivery_id: str | None = None
