"""
context.py - The application context.

Built once at startup from Settings and stored on ``app.state.context``.
Every request path and background run reaches its collaborators (store,
GitHub client, reviewer, ledger) through this object only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from phiguard.config import Settings
from phiguard.database import build_engine, build_session_factory
from phiguard.services.feedback import FeedbackPublisher
from phiguard.services.github import GitHubAppAuth
from phiguard.services.ledger import AuditLedger
from phiguard.services.persistence import AuditRecordWriter
from phiguard.services.pipeline import AuditPipeline
from phiguard.services.reviewer import ReviewerAdapter
from phiguard.services.scanner import Scanner, load_ruleset
from phiguard.services.static_analysis import SemgrepRunner
from phiguard.worker import TaskSupervisor

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    http: httpx.AsyncClient
    pipeline: AuditPipeline
    supervisor: TaskSupervisor

    async def aclose(self) -> None:
        await self.http.aclose()
        self.engine.dispose()


def build_context(
    settings: Settings,
    http: Optional[httpx.AsyncClient] = None,
) -> AppContext:
    """
    Wire every collaborator from ``settings``.

    Args:
        settings: Loaded configuration
        http: Outbound GitHub client; defaults to one bound to GITHUB_API_URL
    """
    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)
    if http is None:
        http = httpx.AsyncClient(
            base_url=settings.GITHUB_API_URL,
            timeout=settings.GITHUB_TIMEOUT_SECONDS,
            headers={"User-Agent": "phiguard"},
        )

    scanner = Scanner(load_ruleset(settings.POLICY_CONFIG_PATH))
    pipeline = AuditPipeline(
        auth=GitHubAppAuth.from_settings(settings, http),
        scanner=scanner,
        static_analysis=SemgrepRunner.from_settings(settings),
        reviewer=ReviewerAdapter.from_settings(settings),
        ledger=AuditLedger(session_factory, max_retries=settings.LEDGER_MAX_RETRIES),
        writer=AuditRecordWriter(session_factory),
        publisher=FeedbackPublisher(),
        threshold=settings.VERDICT_THRESHOLD,
        run_timeout_seconds=settings.AUDIT_RUN_TIMEOUT_SECONDS,
    )
    logger.info(
        "Context ready: threshold=%d reviewer=%s static_analysis=%s rules=%s",
        settings.VERDICT_THRESHOLD,
        "on" if pipeline.reviewer.enabled else "off",
        "on" if pipeline.static_analysis.enabled else "off",
        scanner.rules_hash[:12],
    )
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        http=http,
        pipeline=pipeline,
        supervisor=TaskSupervisor(),
    )
