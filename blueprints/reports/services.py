# blueprints/reports/services.py
from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, List

from flask import current_app, render_template

from blueprints.lifecycle.store import SqlEntityStore
from models import Assignment, AssignmentStatus, Schedule, utcnow

def reports_dir() -> Path:
    path = Path(current_app.config.get("REPORTS_DIR") or os.path.join(current_app.instance_path, "reports"))
    path.mkdir(parents=True, exist_ok=True)
    return path

def report_path(schedule_id: int) -> Path:
    return reports_dir() / f"schedule_{schedule_id}.html"

def report_url(schedule_id: int) -> str:
    prefix = current_app.config.get("REPORT_URL_PREFIX", "/api/v1/schedules").rstrip("/")
    return f"{prefix}/{schedule_id}/report"

def _person(user) -> Dict[str, str]:
    return {
        "name": getattr(user, "name", None) or "N/A",
        "email": getattr(user, "email", None) or "",
    }

def build_report_data(schedule: Schedule) -> Dict[str, Any]:
    """Данные отчёта: занятие, участники, краткий и подробный чек-лист заданий."""
    assignments: List[Assignment] = (
        Assignment.query.filter_by(schedule_id=schedule.id).order_by(Assignment.id.asc()).all()
    )
    return {
        "schedule": {
            "id": schedule.id,
            "subject_code": schedule.subject_code,
            "start_time": schedule.start_time,
            "duration": schedule.duration,
            "status": schedule.status,
        },
        "student": _person(schedule.student),
        "tutor": _person(schedule.tutor),
        "summary": schedule.note or "N/A",
        "checklist": {
            "simple": [
                {"name": a.name,
                 "status": "done" if a.status == AssignmentStatus.COMPLETED.value else "not_done"}
                for a in assignments
            ],
            "assignments": [
                {
                    "name": a.name,
                    "tasks": [
                        {
                            "name": t.name,
                            "estimated_time": t.estimated_time,
                            "actual_time": t.actual_time or 0,
                            "status": t.status,
                            "description": t.description or "N/A",
                            "note": t.note or "N/A",
                            "assignment_url": t.assignment_url,
                            "answer_url": t.answer_url,
                            "solution_url": t.solution_url,
                        }
                        for t in a.tasks
                    ],
                }
                for a in assignments
            ],
        },
        "generated_at": utcnow(),
    }

def generate_report_for_schedule(schedule_id: int) -> str:
    """
    Сформировать отчёт по занятию, сохранить файл и ссылку в schedule.report_url.
    Повторный вызов перезаписывает отчёт.
    """
    store = SqlEntityStore()
    schedule = store.get_schedule(schedule_id)
    if not schedule:
        raise LookupError("SCHEDULE_NOT_FOUND")

    html = render_template("reports/session_report.html", report=build_report_data(schedule))
    report_path(schedule_id).write_text(html, encoding="utf-8")

    schedule.report_url = report_url(schedule_id)
    store.save(schedule)
    return schedule.report_url
