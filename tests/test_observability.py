import logging

from packages.error_reporting import init_error_reporting
from packages.logging_utils import LOG_FORMAT, ContextFilter, SafeFormatter
from packages.metrics import inc, observe, render_text, reset, snapshot
from packages.request_context import athlete_context, sync_run_context


def test_log_records_carry_context():
    record = logging.LogRecord("leaderboard.sync", logging.INFO, __file__, 1, "hello", None, None)
    with sync_run_context("run-1"), athlete_context(42):
        ContextFilter().filter(record)
    line = SafeFormatter(LOG_FORMAT).format(record)
    assert "sync_run_id=run-1" in line
    assert "athlete_id=42" in line


def test_formatter_defaults_without_context():
    record = logging.LogRecord("leaderboard.cache", logging.WARNING, __file__, 1, "miss", None, None)
    line = SafeFormatter(LOG_FORMAT).format(record)
    assert "sync_run_id=- athlete_id=-" in line


def test_metrics_render():
    reset()
    inc("sync_runs_total")
    inc("sync_runs_total")
    observe("sync_duration_seconds", 0.5)
    counters, durations = snapshot()
    assert counters["sync_runs_total"] == 2
    text = render_text()
    assert "sync_runs_total 2" in text
    assert "sync_duration_seconds_sum 0.5" in text


def test_error_reporting_disabled_without_dsn(monkeypatch):
    monkeypatch.delenv("LEADERBOARD_SENTRY_DSN", raising=False)
    assert init_error_reporting("test") is False
