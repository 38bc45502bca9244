"""Tests for DecisionLogger."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from aumos_gatekeeper.audit import DecisionLogger
from aumos_gatekeeper.permissions.resolver import ConditionalGrant, Decision, Effect


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "decisions.jsonl"


@pytest.fixture()
def decision_log(log_path: Path) -> DecisionLogger:
    return DecisionLogger(log_path, session_id="session-1")


ALLOW = Decision(
    allowed=True,
    permission="docs.read",
    reason="Access granted by permission: docs.*",
    matched=(ConditionalGrant("docs.*"),),
)
DENY = Decision(
    allowed=False,
    permission="billing.view",
    reason="Access denied by explicit deny rule: billing.*",
    matched=(ConditionalGrant("billing.*", effect=Effect.DENY),),
    denied_by=(ConditionalGrant("billing.*", effect=Effect.DENY),),
)


class TestConstruction:
    def test_session_id(self, decision_log: DecisionLogger) -> None:
        assert decision_log.session_id == "session-1"

    def test_generated_session_id(self, log_path: Path) -> None:
        assert DecisionLogger(log_path).session_id

    def test_log_path(self, decision_log: DecisionLogger, log_path: Path) -> None:
        assert decision_log.log_path == log_path


class TestRecord:
    def test_record_written_as_json_line(
        self, decision_log: DecisionLogger, log_path: Path
    ) -> None:
        decision_log.record("alice", ALLOW)
        lines = log_path.read_text(encoding="utf-8").strip().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["event"] == "permission_check"
        assert record["subject_id"] == "alice"
        assert record["permission"] == "docs.read"
        assert record["allowed"] is True
        assert record["matched"] == ["docs.*"]
        assert record["session_id"] == "session-1"
        assert "timestamp" in record

    def test_denied_by_recorded(self, decision_log: DecisionLogger) -> None:
        decision_log.record("bob", DENY)
        assert decision_log.read_all()[0]["denied_by"] == ["billing.*"]

    def test_parent_directories_created(self, tmp_path: Path) -> None:
        nested = tmp_path / "a" / "b" / "decisions.jsonl"
        DecisionLogger(nested).record("alice", ALLOW)
        assert nested.exists()


class TestRead:
    def test_read_all_without_file(self, decision_log: DecisionLogger) -> None:
        assert decision_log.read_all() == []
        assert decision_log.count() == 0

    def test_query(self, decision_log: DecisionLogger) -> None:
        decision_log.record("alice", ALLOW)
        decision_log.record("bob", DENY)
        decision_log.record("alice", DENY)
        denied = decision_log.query({"subject_id": "alice", "allowed": False})
        assert len(denied) == 1
        assert denied[0]["permission"] == "billing.view"

    def test_last_n(self, decision_log: DecisionLogger) -> None:
        for subject in ("a", "b", "c"):
            decision_log.record(subject, ALLOW)
        assert [r["subject_id"] for r in decision_log.last_n(2)] == ["b", "c"]
        assert decision_log.last_n(0) == []

    def test_malformed_lines_skipped(self, decision_log: DecisionLogger, log_path: Path) -> None:
        decision_log.record("alice", ALLOW)
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write('{"truncated": \n\n')
        assert decision_log.count() == 1
