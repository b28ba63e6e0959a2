from __future__ import annotations
import json, logging
from datetime import datetime, timezone

from flask import current_app, g, jsonify, request
from werkzeug.wrappers.response import Response

from . import bp
from .filters import register_filters

# поля из extra=..., которые попадают в JSON-запись
LOG_FIELDS = (
    "event", "path", "method", "status", "duration_ms",
    "step", "schedule_id", "assignment_id", "homework_id", "report_url",
    "counts", "now", "interval", "error",
)

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in LOG_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

def _install_json_handler(logger: logging.Logger, level: int) -> None:
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in logger.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)

def setup_structured_logging(app):
    level = logging.DEBUG if app.debug else logging.INFO
    _install_json_handler(app.logger, level)
    # логгеры модулей blueprints.* (движок, сервисы)
    _install_json_handler(logging.getLogger("blueprints"), level)

@bp.before_app_request
def _start_timer():
    g._req_start = datetime.now(timezone.utc)

@bp.after_app_request
def _log_request(response: Response):
    start = getattr(g, "_req_start", None)
    duration_ms = int((datetime.now(timezone.utc) - start).total_seconds() * 1000) if start else None
    current_app.logger.info("request handled", extra={
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    })
    return response

@bp.record_once
def _on_register(state):
    app = state.app
    setup_structured_logging(app)
    register_filters(app)

@bp.get("/health")
def health():
    sch = current_app.extensions.get("lifecycle")
    return jsonify({
        "status": "ok",
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "lifecycle_running": bool(sch and sch.running),
    })
