"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json

from stepboard.core.audit.logger import AuditEvent, AuditLogger, _hash_input


# ---------------------------------------------------------------------------
# _hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_hashes_dict(self):
        h = _hash_input({"period": "today"})
        assert isinstance(h, str)
        assert len(h) == 64  # SHA-256 hex

    def test_order_independent(self):
        assert _hash_input({"z": 1, "a": 2}) == _hash_input({"a": 2, "z": 1})

    def test_unserializable_returns_empty(self):
        assert _hash_input({"x": object()}) == ""


# ---------------------------------------------------------------------------
# AuditLogger tests
# ---------------------------------------------------------------------------

class TestLogToolCall:
    def test_records_invocation(self, audit_logger: AuditLogger):
        event_id = audit_logger.log_tool_call(
            tool_name="step_totals",
            tool_input={"period": "today"},
            data_source="composite",
            duration_ms=12.5,
        )
        assert event_id

        events = audit_logger.get_events()
        assert len(events) == 1
        event = events[0]
        assert event["id"] == event_id
        assert event["action"] == "tool_invocation"
        assert event["tool_name"] == "step_totals"
        assert event["data_source"] == "composite"
        assert event["status"] == "success"
        assert event["tool_input_hash"] == _hash_input({"period": "today"})

    def test_raw_input_not_stored(self, audit_logger: AuditLogger, step_db):
        audit_logger.log_tool_call(tool_name="enter_manual_steps", tool_input={"note": "clinic visit"})
        rows = step_db.connection.execute("SELECT * FROM audit_log").fetchall()
        assert "clinic" not in json.dumps([dict(r) for r in rows])

    def test_failure_recorded(self, audit_logger: AuditLogger):
        audit_logger.log_tool_call(
            tool_name="step_totals",
            status="failure",
            error_type="unauthorized",
        )
        assert audit_logger.count_events(status="failure") == 1
        assert audit_logger.get_events()[0]["error_type"] == "unauthorized"

    def test_filters(self, audit_logger: AuditLogger):
        audit_logger.log_tool_call(tool_name="step_totals")
        audit_logger.log_tool_call(tool_name="step_leaderboard")
        audit_logger.log_data_delete(tool_name="delete_manual_entry", record_id="e1", count=1)

        assert len(audit_logger.get_events(tool_name="step_leaderboard")) == 1
        assert len(audit_logger.get_events(action="data_delete")) == 1
        assert audit_logger.count_events() == 3
        assert audit_logger.count_events(since="2999-01-01") == 0


class TestLogDataDelete:
    def test_count_in_metadata(self, audit_logger: AuditLogger):
        audit_logger.log_data_delete(
            tool_name="delete_all_step_data",
            count=7,
            metadata={"confirmed": True},
        )
        event = audit_logger.get_events(action="data_delete")[0]
        metadata = json.loads(event["metadata_json"])
        assert metadata == {"confirmed": True, "records_deleted": 7}


class TestWriteFailures:
    def test_sqlite_error_returns_empty_id(self, step_db):
        audit = AuditLogger(step_db)
        step_db.connection.execute("DROP TABLE audit_log")
        assert audit.log_event(AuditEvent(action="tool_invocation")) == ""
