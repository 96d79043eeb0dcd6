from pathlib import Path
import logging
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.models import TaskContext
from app.services.diagnostics import DiagnosticReporter


def _ctx(**overrides):
    values = dict(task_id="1", request_id="abcd1234", start_time=100.0, is_active=True)
    values.update(overrides)
    return TaskContext(**values)


def test_request_counter_increments(caplog):
    reporter = DiagnosticReporter(collect_garbage=False)
    with caplog.at_level(logging.INFO, logger="app.services.diagnostics"):
        reporter.request_received("/user/1", 0)
        reporter.request_received("/user/2", 3)

    assert reporter.request_count == 2
    assert "[REQ-2] /user/2" in caplog.text
    assert "Active contexts: 3" in caplog.text


def test_memory_is_reported_in_megabytes():
    assert DiagnosticReporter().memory_mb() > 0


def test_resumed_logs_snapshot_as_json(caplog):
    reporter = DiagnosticReporter()
    with caplog.at_level(logging.INFO, logger="app.services.diagnostics"):
        reporter.resumed(_ctx(), _ctx(), 250, ballast=1000)

    assert '"request_id":"abcd1234"' in caplog.text
    assert '"duration":250' in caplog.text
    assert "Context restored with 1000 items" in caplog.text
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


def test_resumed_flags_a_changed_context(caplog):
    reporter = DiagnosticReporter()
    with caplog.at_level(logging.INFO, logger="app.services.diagnostics"):
        reporter.resumed(_ctx(), _ctx(task_id="2"), 10)

    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "Context changed across await" in errors[0].getMessage()


def test_garbage_is_collected_only_when_enabled(monkeypatch):
    calls = []
    monkeypatch.setattr("app.services.diagnostics.gc.collect", lambda: calls.append(1))

    DiagnosticReporter(collect_garbage=True).batch_completed(5, 0)
    assert calls == []

    DiagnosticReporter(collect_garbage=True).collect_garbage_now()
    DiagnosticReporter(collect_garbage=False).collect_garbage_now()

    assert calls == [1]
