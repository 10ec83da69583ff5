"""
Unit Tests: Logger Utility
--------------------------
Covers claim_risk/utils/logger.py.
Validates:
- JSON formatter carries run / entity context only when present
- Run-context decorator logs start, finish and failure
- CloudWatch handler buffers events and flushes on close

Run:
    pytest tests/unit/test_utils/test_logger.py -v
"""

import json
import logging
from datetime import datetime

import pytest

from claim_risk.utils.logger import CloudWatchHandler, JSONFormatter, cloudwatch_stream_name, log_with_context


def _record(msg: str, level=logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("claim_risk", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_includes_run_and_entity_ids(self):
        payload = json.loads(JSONFormatter().format(_record("batch failed", logging.ERROR, run_id="run-1", entity_id="CLM-1")))

        assert payload["level"] == "ERROR"
        assert payload["message"] == "batch failed"
        assert payload["run_id"] == "run-1"
        assert payload["entity_id"] == "CLM-1"

    def test_omits_missing_context(self):
        payload = json.loads(JSONFormatter().format(_record("hello")))
        assert "run_id" not in payload
        assert "entity_id" not in payload


class TestLogWithContext:
    def test_logs_start_and_finish_with_run_id(self, caplog):
        @log_with_context("info")
        def scoring_step(x, run_id=None):
            return x * 2

        with caplog.at_level("INFO", logger="claim_risk"):
            assert scoring_step(21, run_id="abc123") == 42

        entries = [r for r in caplog.records if "scoring_step" in r.message]
        assert [("started" in r.message, "finished" in r.message) for r in entries] == [(True, False), (False, True)]
        assert all(r.run_id == "abc123" for r in entries)

    def test_failure_is_logged_and_reraised(self, caplog):
        @log_with_context("info")
        def broken_step(run_id=None):
            raise RuntimeError("boom")

        with caplog.at_level("INFO", logger="claim_risk"):
            with pytest.raises(RuntimeError):
                broken_step(run_id="r-9")

        failures = [r for r in caplog.records if r.levelname == "ERROR" and "broken_step failed" in r.message]
        assert len(failures) == 1
        assert failures[0].run_id == "r-9"


class TestCloudWatchHandler:
    def test_buffers_until_size_then_flushes(self, mocker):
        client = mocker.Mock()
        handler = CloudWatchHandler("group", "stream", buffer_size=2, client=client)

        handler.emit(_record("one"))
        client.put_log_events.assert_not_called()

        handler.emit(_record("two"))
        client.put_log_events.assert_called_once()
        kwargs = client.put_log_events.call_args.kwargs
        assert kwargs["logGroupName"] == "group"
        assert [json.loads(e["message"])["message"] for e in kwargs["logEvents"]] == ["one", "two"]
        assert handler.buffer == []

    def test_close_flushes_remaining(self, mocker):
        client = mocker.Mock()
        handler = CloudWatchHandler("group", "stream", buffer_size=10, client=client)
        handler.emit(_record("tail"))
        handler.close()
        client.put_log_events.assert_called_once()

    def test_stream_name_is_daily(self):
        assert cloudwatch_stream_name(datetime(2024, 6, 1, 9, 30)) == "scoring-runs/2024-06-01"
