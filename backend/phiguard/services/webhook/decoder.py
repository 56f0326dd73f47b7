"""
decoder.py - Classify inbound webhook events and extract identifiers.

Only pull request openings and updates are audited. Everything else is
acknowledged and dropped. Runs inline in the request path: no I/O.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from phiguard.errors import ParseError
from phiguard.schemas.webhook import PullRequestWebhook

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"

AUDITED_EVENT = "pull_request"
AUDITED_ACTIONS = frozenset({"opened", "synchronize", "reopened"})


@dataclass(frozen=True)
class PullRequestEvent:
    """Identifiers of one auditable pull request event."""

    action: str
    repo_owner: str
    repo_name: str
    pr_number: int
    base_branch: str
    head_sha: str = ""
    installation_id: int | None = None
    delivery_id: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"


def decode_event(
    event_type: str | None,
    body: bytes,
    delivery_id: str | None = None,
) -> PullRequestEvent | None:
    """
    Decode a verified webhook body.

    Returns:
        PullRequestEvent for auditable events, None for events to drop.

    Raises:
        ParseError: Missing event type, invalid JSON, or a pull_request
            event missing required fields.
    """
    if not event_type:
        raise ParseError(f"Missing {EVENT_HEADER} header")

    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError(f"Body is not valid JSON: {e}")

    if not isinstance(payload, dict):
        raise ParseError("Body must be a JSON object")

    if event_type != AUDITED_EVENT:
        logger.debug("Ignoring %s event (delivery %s)", event_type, delivery_id)
        return None

    action = payload.get("action")
    if not isinstance(action, str):
        raise ParseError("pull_request event missing 'action'")
    if action not in AUDITED_ACTIONS:
        logger.debug("Ignoring pull_request.%s (delivery %s)", action, delivery_id)
        return None

    try:
        event = PullRequestWebhook.model_validate(payload)
    except ValidationError as e:
        raise ParseError(
            "Malformed pull_request event",
            details={
                "fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            },
        )

    pr = event.pull_request
    return PullRequestEvent(
        action=action,
        repo_owner=event.repository.owner.login,
        repo_name=event.repository.name,
        pr_number=pr.number,
        base_branch=pr.base.ref,
        head_sha=pr.head.sha if pr.head else "",
        installation_id=event.installation.id if event.installation else None,
        delivery_id=delivery_id,
    )
