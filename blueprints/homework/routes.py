# blueprints/homework/routes.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from pydantic import BaseModel, ValidationError, field_validator

from blueprints.auth.routes import tutor_required
from . import services as svc

api_bp = Blueprint("homework_api", __name__)

class HomeworkTaskIn(BaseModel):
    name: str
    assignment_url: Optional[str] = None
    solution_url: Optional[str] = None
    description: Optional[str] = None

class HomeworkIn(BaseModel):
    student_id: int
    schedule_id: int
    name: str
    deadline: datetime
    description: Optional[str] = None
    subject: Optional[str] = None
    difficulty: Optional[str] = None
    tasks: List[HomeworkTaskIn] = []

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("name_required")
        if len(v) > 255:
            raise ValueError("too_long")
        return v.strip()

    @field_validator("difficulty")
    @classmethod
    def _difficulty(cls, v):
        if v is not None and v not in ("easy", "medium", "hard", "advanced"):
            raise ValueError("unknown_difficulty")
        return v

class SubmitIn(BaseModel):
    answer_url: str

    @field_validator("answer_url")
    @classmethod
    def _non_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("answer_required")
        return v.strip()

def _json_err(code: str, http: int = 400, detail: str | None = None):
    body = {"error": code}
    if detail:
        body["detail"] = detail
    return jsonify(body), http

@api_bp.post("/homework")
@tutor_required
def api_homework_create():
    payload = request.get_json(silent=True) or {}
    try:
        data = HomeworkIn.model_validate(payload)
    except ValidationError as ve:
        return jsonify({"error": "validation_error", "detail": ve.errors(include_context=False)}), 422

    try:
        hw = svc.create_homework(
            user=current_user,
            student_id=data.student_id,
            schedule_id=data.schedule_id,
            name=data.name,
            deadline=data.deadline,
            description=data.description,
            subject=data.subject,
            difficulty=data.difficulty,
            tasks=[t.model_dump() for t in data.tasks],
        )
    except LookupError as le:
        return _json_err(str(le).lower(), 404)
    except PermissionError as pe:
        return _json_err(str(pe).lower(), 403)
    except ValueError as ve:
        return _json_err(str(ve).lower(), 400)

    return jsonify({"ok": True, "homework": svc.out_dict(hw)}), 201

@api_bp.post("/homework/<int:homework_id>/tasks/<int:task_id>/submit")
@login_required
def api_homework_submit(homework_id: int, task_id: int):
    try:
        data = SubmitIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return jsonify({"error": "validation_error", "detail": ve.errors(include_context=False)}), 422

    try:
        hw = svc.submit_homework_task(user=current_user, homework_id=homework_id, task_id=task_id,
                                      answer_url=data.answer_url)
    except LookupError as le:
        return _json_err(str(le).lower(), 404)
    except PermissionError as pe:
        return _json_err(str(pe).lower(), 403)

    return jsonify({"ok": True, "homework": svc.out_dict(hw)})

@api_bp.get("/homework/<int:homework_id>")
@login_required
def api_homework_get(homework_id: int):
    try:
        hw = svc.get_homework(user=current_user, homework_id=homework_id)
    except LookupError as le:
        return _json_err(str(le).lower(), 404)
    except PermissionError as pe:
        return _json_err(str(pe).lower(), 403)
    return jsonify(svc.out_dict(hw))

@api_bp.get("/homework")
@login_required
def api_homework_list():
    schedule_id = request.args.get("schedule_id", type=int)
    if schedule_id is None:
        return _json_err("schedule_id_required", 400)
    try:
        items = svc.list_homework(user=current_user, schedule_id=schedule_id)
    except LookupError as le:
        return _json_err(str(le).lower(), 404)
    except PermissionError as pe:
        return _json_err(str(pe).lower(), 403)
    return jsonify({"items": [svc.out_dict(hw) for hw in items]})
