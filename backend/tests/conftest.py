"""Test configuration and fixtures."""

import json
import os

import httpx
import pytest

# Settings are read from the environment; set them BEFORE phiguard is imported.
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GITHUB_TOKEN"] = "test-token"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("SEMGREP_PATH", None)

from phiguard.config import Settings
from phiguard.database import build_engine, build_session_factory, init_db
from phiguard.services.feedback import FeedbackPublisher
from phiguard.services.github import GitHubAppAuth
from phiguard.services.ledger import AuditLedger
from phiguard.services.persistence import AuditRecordWriter
from phiguard.services.pipeline import AuditPipeline
from phiguard.services.reviewer import ReviewerAdapter
from phiguard.services.scanner import Scanner
from phiguard.services.static_analysis import SemgrepRunner
from phiguard.services.webhook.decoder import PullRequestEvent

WEBHOOK_SECRET = "test-webhook-secret"

PHI_DIFF = """diff --git a/src/patient.rs b/src/patient.rs
index 1111111..2222222 100644
--- a/src/patient.rs
+++ b/src/patient.rs
@@ -1,3 +1,4 @@
 fn handle(p: &Patient) {
+    println!("Patient SSN: {}", ssn);
     process(p);
 }
"""

CLEAN_DIFF = """diff --git a/src/lib.rs b/src/lib.rs
index 1111111..2222222 100644
--- a/src/lib.rs
+++ b/src/lib.rs
@@ -1,2 +1,3 @@
 fn add(a: i32, b: i32) -> i32 {
+    // sum two values
     a + b
"""

SECRET_DIFF = """diff --git a/src/config.rs b/src/config.rs
--- a/src/config.rs
+++ b/src/config.rs
@@ -1,1 +1,2 @@
+let password = "abc123";
 fn main() {}
"""


@pytest.fixture
def settings():
    return Settings(
        WEBHOOK_SECRET=WEBHOOK_SECRET,
        DATABASE_URL="sqlite://",
        GITHUB_TOKEN="test-token",
        OPENAI_API_KEY=None,
        SEMGREP_PATH=None,
        AUDIT_RUN_TIMEOUT_SECONDS=5.0,
        REVIEWER_TIMEOUT_SECONDS=0.5,
        SHUTDOWN_DRAIN_SECONDS=1.0,
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeGitHub:
    """
    In-memory stand-in for the GitHub REST API, served via httpx.MockTransport.

    Pull requests are registered with ``add_pull``; reviews posted by the
    publisher are collected in ``reviews``.
    """

    def __init__(self):
        self.pulls = {}
        self.reviews = []
        self.fail_reviews = False
        self.fail_fetch_status = None

    def add_pull(self, owner, repo, number, diff, title="Add feature", body="", base="main"):
        self.pulls[(owner, repo, number)] = {
            "title": title,
            "body": body,
            "base": {"ref": base},
            "diff": diff,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if parts[:1] == ["repos"] and len(parts) >= 5 and parts[3] == "pulls":
            key = (parts[1], parts[2], int(parts[4]))
            if len(parts) == 6 and parts[5] == "reviews" and request.method == "POST":
                if self.fail_reviews:
                    return httpx.Response(502, json={"message": "Bad Gateway"})
                self.reviews.append({"pr": key, **json.loads(request.content)})
                return httpx.Response(200, json={"id": len(self.reviews)})
            if self.fail_fetch_status is not None:
                return httpx.Response(self.fail_fetch_status, json={"message": "error"})
            pull = self.pulls.get(key)
            if pull is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if request.headers.get("Accept") == "application/vnd.github.v3.diff":
                return httpx.Response(200, text=pull["diff"])
            return httpx.Response(
                200, json={k: v for k, v in pull.items() if k != "diff"}
            )
        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
async def github_http(fake_github):
    client = httpx.AsyncClient(
        base_url="https://api.github.test",
        transport=httpx.MockTransport(fake_github.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def ledger(session_factory):
    return AuditLedger(session_factory, max_retries=3)


@pytest.fixture
def pipeline(github_http, ledger, session_factory):
    """Pipeline wired to the fake GitHub, an in-memory store and no reviewer."""
    return AuditPipeline(
        auth=GitHubAppAuth(github_http, static_token="test-token"),
        scanner=Scanner(),
        static_analysis=SemgrepRunner(None),
        reviewer=ReviewerAdapter(None),
        ledger=ledger,
        writer=AuditRecordWriter(session_factory),
        publisher=FeedbackPublisher(),
        threshold=30,
        run_timeout_seconds=5.0,
    )


def make_event(owner="acme", repo="ehr", number=7, action="opened"):
    return PullRequestEvent(
        action=action,
        repo_owner=owner,
        repo_name=repo,
        pr_number=number,
        base_branch="main",
        head_sha="abc123",
        installation_id=None,
        delivery_id="delivery-1",
    )


def pull_request_payload(action="opened", owner="acme", repo="ehr", number=7):
    return {
        "action": action,
        "number": number,
        "pull_request": {
            "number": number,
            "title": "Add feature",
            "base": {"ref": "main", "sha": "000"},
            "head": {"ref": "feature", "sha": "abc123"},
        },
        "repository": {"name": repo, "owner": {"login": owner}},
        "installation": {"id": 42},
    }
