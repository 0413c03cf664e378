from __future__ import annotations

import json

from draftstore.services.audit import new_request_context_id, render_details, sanitize_details
from draftstore.services.documents import generation_action


def test_audit_redacts_credentials_and_tokens() -> None:
    payload = {
        "password": "hunter2",
        "credential_hash": "abc",
        "nested": {"authorization": "Bearer abc", "items": [{"api_key": "k"}]},
        "safe": "value",
    }
    sanitized = sanitize_details(payload)
    assert sanitized["password"] == "[REDACTED]"
    assert sanitized["credential_hash"] == "[REDACTED]"
    assert sanitized["nested"]["authorization"] == "[REDACTED]"
    assert sanitized["nested"]["items"][0]["api_key"] == "[REDACTED]"
    assert sanitized["safe"] == "value"


def test_render_details_keeps_strings_and_serializes_mappings() -> None:
    assert render_details(None) is None
    assert render_details("free text") == "free text"
    rendered = render_details({"b": 1, "token": "t", "a": "x"})
    assert json.loads(rendered) == {"a": "x", "b": 1, "token": "[REDACTED]"}


def test_request_context_ids_are_unique() -> None:
    first = new_request_context_id()
    second = new_request_context_id()
    assert first != second
    assert first.startswith("req-")


def test_generation_action_follows_doc_type() -> None:
    assert generation_action("email") == "generate_email"
    assert generation_action("report") == "generate_report"
