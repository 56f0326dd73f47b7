"""
Event decoding and filtering.
"""

import json

import pytest

from conftest import pull_request_payload
from phiguard.errors import ParseError
from phiguard.services.webhook.decoder import decode_event


def encode(payload):
    return json.dumps(payload).encode()


class TestDecodeEvent:
    @pytest.mark.parametrize("action", ["opened", "synchronize", "reopened"])
    def test_audited_actions(self, action):
        event = decode_event("pull_request", encode(pull_request_payload(action=action)), "d-1")

        assert event is not None
        assert event.action == action
        assert event.repo_owner == "acme"
        assert event.repo_name == "ehr"
        assert event.full_name == "acme/ehr"
        assert event.pr_number == 7
        assert event.base_branch == "main"
        assert event.head_sha == "abc123"
        assert event.installation_id == 42
        assert event.delivery_id == "d-1"

    @pytest.mark.parametrize("action", ["closed", "labeled", "edited"])
    def test_other_actions_ignored(self, action):
        assert decode_event("pull_request", encode(pull_request_payload(action=action))) is None

    def test_other_events_ignored(self):
        assert decode_event("ping", encode({"zen": "Keep it logically awesome."})) is None
        assert decode_event("push", encode({"ref": "refs/heads/main"})) is None

    def test_installation_optional(self):
        payload = pull_request_payload()
        del payload["installation"]
        assert decode_event("pull_request", encode(payload)).installation_id is None

    def test_invalid_json(self):
        with pytest.raises(ParseError):
            decode_event("pull_request", b"{not json")

    def test_non_object_body(self):
        with pytest.raises(ParseError):
            decode_event("pull_request", b"[1, 2]")

    def test_missing_event_header(self):
        with pytest.raises(ParseError):
            decode_event(None, encode(pull_request_payload()))

    def test_missing_action(self):
        payload = pull_request_payload()
        del payload["action"]
        with pytest.raises(ParseError):
            decode_event("pull_request", encode(payload))

    def test_missing_fields_reported(self):
        payload = pull_request_payload()
        del payload["repository"]["owner"]
        payload["pull_request"]["number"] = 0

        with pytest.raises(ParseError) as exc_info:
            decode_event("pull_request", encode(payload))

        fields = exc_info.value.details["fields"]
        assert "repository.owner" in fields
        assert "pull_request.number" in fields
