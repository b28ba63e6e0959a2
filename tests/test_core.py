from __future__ import annotations
import json
import logging
import sys
from datetime import date, datetime

from app import create_app
from blueprints.core.filters import fmt_date, fmt_datetime
from blueprints.core.routes import JSONFormatter

def test_health_ok():
    app = create_app("test")
    with app.test_client() as c:
        rv = c.get("/health")
        assert rv.status_code == 200
        data = rv.get_json()
        assert data["status"] == "ok"
        assert data["ts"].endswith("Z")
        # в тестах планировщик не стартует сам
        assert data["lifecycle_running"] is False

def test_json_formatter_keeps_extra_fields():
    record = logging.LogRecord("blueprints.lifecycle.engine", logging.INFO, __file__, 1,
                               "lifecycle tick", None, None)
    record.event = "lifecycle_tick"
    record.counts = {"schedules_ongoing": 2}
    record.unrelated = "skip me"
    payload = json.loads(JSONFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["msg"] == "lifecycle tick"
    assert payload["event"] == "lifecycle_tick"
    assert payload["counts"] == {"schedules_ongoing": 2}
    assert "unrelated" not in payload

def test_json_formatter_includes_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    payload = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc"]

def test_filters():
    assert fmt_datetime(datetime(2026, 3, 2, 9, 5)) == "02.03.2026 09:05"
    assert fmt_date(date(2026, 3, 2)) == "02.03.2026"
    assert fmt_datetime(None) == ""

def test_filters_registered():
    app = create_app("test")
    assert "fmt_datetime" in app.jinja_env.filters
    assert "fmt_date" in app.jinja_env.filters
