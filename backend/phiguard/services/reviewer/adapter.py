"""
adapter.py - Contextual reviewer adapter.

The reviewer is advisory. Every failure mode (timeout, transport error,
empty or malformed output) is raised internally as ReviewerError, logged,
and turned into an empty outcome so the run continues on deterministic
findings alone.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from phiguard.config import Settings
from phiguard.errors import ReviewerError
from phiguard.services.types import (
    AuditContext,
    Finding,
    FindingCategory,
    FindingSource,
    Severity,
)

from .prompts import SYSTEM_INSTRUCTIONS, build_user_prompt

logger = logging.getLogger(__name__)

SENTINEL_PATTERN = re.compile(r"\b(?:VIOLATION|CRITICAL|LEAK)", re.IGNORECASE)

DEGRADED_MESSAGE = "Reviewer reported a possible violation in unstructured output"


@dataclass(frozen=True)
class ReviewerOutcome:
    findings: tuple[Finding, ...] = field(default_factory=tuple)
    summary: str = ""
    degraded: bool = False


EMPTY_OUTCOME = ReviewerOutcome()


def _map_category(raw: Any) -> tuple[FindingCategory, Optional[str]]:
    name = str(raw or "").strip()
    try:
        return FindingCategory(name.upper()), None
    except ValueError:
        return FindingCategory.OTHER, name or None


def _map_severity(raw: Any) -> Severity:
    try:
        return Severity(str(raw or "").strip().upper())
    except ValueError:
        return Severity.MEDIUM


def _to_finding(issue: Any) -> Finding:
    if not isinstance(issue, dict):
        raise ReviewerError("Reviewer issue is not an object")
    category, label = _map_category(issue.get("category"))
    line = issue.get("line")
    if isinstance(line, bool) or not isinstance(line, int) or line < 1:
        line = None
    return Finding(
        category=category,
        severity=_map_severity(issue.get("severity")),
        message=str(issue.get("message") or "").strip() or "Reviewer finding",
        line=line,
        source=FindingSource.REVIEWER,
        label=label,
    )


def parse_review(text: Optional[str]) -> ReviewerOutcome:
    """
    Interpret raw reviewer output.

    Structured JSON yields one finding per issue. Anything that is not JSON
    is free text: a sentinel token yields a single OTHER/HIGH finding,
    otherwise nothing.

    Raises:
        ReviewerError: Empty output, or JSON that does not follow the schema.
    """
    if text is None or not text.strip():
        raise ReviewerError("Reviewer returned an empty response")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        if SENTINEL_PATTERN.search(text):
            finding = Finding(
                category=FindingCategory.OTHER,
                severity=Severity.HIGH,
                message=DEGRADED_MESSAGE,
                source=FindingSource.REVIEWER,
            )
            return ReviewerOutcome(findings=(finding,), summary=text.strip(), degraded=True)
        return ReviewerOutcome(summary=text.strip(), degraded=True)

    if not isinstance(payload, dict):
        raise ReviewerError("Reviewer JSON is not an object")
    issues = payload.get("issues", [])
    if not isinstance(issues, list):
        raise ReviewerError("Reviewer 'issues' is not a list")

    findings = tuple(_to_finding(issue) for issue in issues)
    summary = payload.get("summary") or f"Reviewer status: {payload.get('status', 'UNKNOWN')}"
    return ReviewerOutcome(findings=findings, summary=str(summary))


class ReviewerAdapter:
    """
    Calls an OpenAI-compatible chat completion endpoint.

    With no client the adapter is disabled and every review is empty.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        model: str = "gpt-4o",
        timeout_seconds: float = 20.0,
    ) -> None:
        self._client = client
        self._model = model
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReviewerAdapter":
        if not settings.reviewer_enabled:
            logger.info("Contextual reviewer disabled (OPENAI_API_KEY not set)")
            return cls(None)
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.REVIEWER_TIMEOUT_SECONDS,
            max_retries=0,
        )
        return cls(client, settings.REVIEWER_MODEL, settings.REVIEWER_TIMEOUT_SECONDS)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def _complete(self, context: AuditContext) -> Optional[str]:
        response = await self._client.chat.completions.create(
            model=self._model,
            temperature=0.1,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTIONS},
                {"role": "user", "content": build_user_prompt(context)},
            ],
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def _review(self, context: AuditContext) -> ReviewerOutcome:
        try:
            text = await asyncio.wait_for(self._complete(context), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ReviewerError(f"Reviewer timed out after {self._timeout}s") from e
        except OpenAIError as e:
            raise ReviewerError(f"Reviewer request failed: {type(e).__name__}") from e
        return parse_review(text)

    async def review(self, context: AuditContext) -> ReviewerOutcome:
        if not self.enabled:
            return EMPTY_OUTCOME
        try:
            outcome = await self._review(context)
        except ReviewerError as e:
            logger.warning(
                "Reviewer unavailable for %s#%s, continuing deterministic-only: %s",
                context.full_name,
                context.pr_number,
                e.message,
            )
            return EMPTY_OUTCOME
        logger.info(
            "Reviewer returned %d finding(s) for %s#%s%s",
            len(outcome.findings),
            context.full_name,
            context.pr_number,
            " (degraded)" if outcome.degraded else "",
        )
        return outcome
