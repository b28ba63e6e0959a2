# blueprints/reports/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify, send_file
from flask_login import login_required, current_user

from blueprints.auth.routes import tutor_required
from extensions import db
from models import Schedule, UserRole
from .services import generate_report_for_schedule, report_path

api_bp = Blueprint("reports_api", __name__)

def _can_view(schedule: Schedule) -> bool:
    role = getattr(current_user, "role", None)
    if role == UserRole.ADMIN.value:
        return True
    return current_user.id in (schedule.student_id, schedule.tutor_id)

@api_bp.post("/schedules/<int:schedule_id>/report")
@tutor_required
def regenerate_report(schedule_id: int):
    # ручная (пере)генерация: автотриггер после завершения занятия не повторяется
    try:
        url = generate_report_for_schedule(schedule_id)
    except LookupError as e:
        return jsonify({"error": str(e).lower()}), 404
    return jsonify({"ok": True, "report_url": url})

@api_bp.get("/schedules/<int:schedule_id>/report")
@login_required
def download_report(schedule_id: int):
    schedule = db.session.get(Schedule, schedule_id)
    if not schedule:
        return jsonify({"error": "schedule_not_found"}), 404
    if not _can_view(schedule):
        return jsonify({"error": "forbidden"}), 403
    path = report_path(schedule_id)
    if not schedule.report_url or not path.exists():
        return jsonify({"error": "report_not_ready"}), 404
    return send_file(path, mimetype="text/html", download_name=f"schedule_{schedule_id}.html")
