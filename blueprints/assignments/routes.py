# blueprints/assignments/routes.py
from __future__ import annotations
from typing import List, Optional

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from pydantic import BaseModel, Field, ValidationError, field_validator

from blueprints.auth.routes import tutor_required
from models import AssignmentTaskStatus
from . import services as svc

api_bp = Blueprint("assignments_api", __name__)

TASK_STATUSES = {s.value for s in AssignmentTaskStatus}

def _check_status(v):
    if v is not None and v not in TASK_STATUSES:
        raise ValueError("unknown_status")
    return v

class TaskIn(BaseModel):
    name: str
    estimated_time: int = Field(ge=1)
    actual_time: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    assignment_url: Optional[str] = None
    solution_url: Optional[str] = None
    answer_url: Optional[str] = None
    description: Optional[str] = None
    note: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, v):
        return _check_status(v)

class AssignmentIn(BaseModel):
    schedule_id: int
    name: str
    description: Optional[str] = None
    subject: Optional[str] = None
    tasks: List[TaskIn] = []

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("name_required")
        return v.strip()

class TaskPatch(BaseModel):
    name: Optional[str] = None
    estimated_time: Optional[int] = Field(default=None, ge=1)
    actual_time: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    assignment_url: Optional[str] = None
    solution_url: Optional[str] = None
    answer_url: Optional[str] = None
    description: Optional[str] = None
    note: Optional[str] = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, v):
        return _check_status(v)

class SubmitIn(BaseModel):
    answer_url: str
    actual_time: Optional[int] = Field(default=None, ge=0)
    note: Optional[str] = None

    @field_validator("answer_url")
    @classmethod
    def _non_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("answer_required")
        return v.strip()

def _json_err(code: str, http: int = 400):
    return jsonify({"error": code}), http

def _service_call(fn, **kwargs):
    try:
        a = fn(user=current_user, **kwargs)
    except LookupError as e:
        return _json_err(str(e).lower(), 404)
    except PermissionError as e:
        return _json_err(str(e).lower(), 403)
    except RuntimeError as e:
        return _json_err(str(e).lower(), 409)
    return jsonify({"ok": True, "assignment": svc.out_dict(a)})

@api_bp.post("/assignments")
@tutor_required
def api_assignment_create():
    try:
        data = AssignmentIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return jsonify({"error": "validation_error", "detail": ve.errors(include_context=False)}), 422
    return _service_call(
        svc.create_assignment,
        schedule_id=data.schedule_id, name=data.name, description=data.description,
        subject=data.subject, tasks=[t.model_dump() for t in data.tasks],
    )

@api_bp.patch("/assignments/<int:assignment_id>/tasks/<int:task_id>")
@tutor_required
def api_task_update(assignment_id: int, task_id: int):
    try:
        data = TaskPatch.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return jsonify({"error": "validation_error", "detail": ve.errors(include_context=False)}), 422
    return _service_call(svc.update_task, assignment_id=assignment_id, task_id=task_id,
                         changes=data.model_dump(exclude_unset=True))

@api_bp.post("/assignments/<int:assignment_id>/tasks/<int:task_id>/submit")
@login_required
def api_task_submit(assignment_id: int, task_id: int):
    try:
        data = SubmitIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as ve:
        return jsonify({"error": "validation_error", "detail": ve.errors(include_context=False)}), 422
    return _service_call(svc.submit_task, assignment_id=assignment_id, task_id=task_id,
                         answer_url=data.answer_url, actual_time=data.actual_time, note=data.note)

@api_bp.get("/assignments/<int:assignment_id>")
@login_required
def api_assignment_get(assignment_id: int):
    return _service_call(svc.get_assignment, assignment_id=assignment_id)

@api_bp.get("/assignments")
@login_required
def api_assignment_list():
    schedule_id = request.args.get("schedule_id", type=int)
    if schedule_id is None:
        return _json_err("schedule_id_required", 400)
    try:
        items = svc.list_assignments(user=current_user, schedule_id=schedule_id)
    except LookupError as e:
        return _json_err(str(e).lower(), 404)
    except PermissionError as e:
        return _json_err(str(e).lower(), 403)
    return jsonify({"items": [svc.out_dict(a) for a in items]})
