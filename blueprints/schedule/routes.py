# blueprints/schedule/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from blueprints.auth.routes import tutor_required
from models import UserRole
from . import services as svc

api_bp = Blueprint("schedule_api", __name__)

@api_bp.get("/schedules/<int:schedule_id>")
@login_required
def api_schedule_get(schedule_id: int):
    try:
        sch = svc.get_schedule(schedule_id)
    except LookupError:
        return jsonify({"error": "schedule_not_found"}), 404
    if current_user.role != UserRole.ADMIN.value and current_user.id not in (sch.student_id, sch.tutor_id):
        return jsonify({"error": "forbidden"}), 403
    return jsonify(svc.out_dict(sch))

@api_bp.post("/schedules/<int:schedule_id>/cancel")
@tutor_required
def api_schedule_cancel(schedule_id: int):
    try:
        sch = svc.cancel_schedule(user=current_user, schedule_id=schedule_id)
    except LookupError:
        return jsonify({"error": "schedule_not_found"}), 404
    except PermissionError:
        return jsonify({"error": "not_owner"}), 403
    except RuntimeError:
        return jsonify({"error": "already_completed"}), 409
    return jsonify({"ok": True, "schedule": svc.out_dict(sch)})
