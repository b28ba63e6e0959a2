# blueprints/assignments/services.py
from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from extensions import db
from models import (
    Assignment, AssignmentStatus, AssignmentTask, AssignmentTaskStatus,
    Schedule, ScheduleStatus, UserRole,
)
from blueprints.lifecycle.rollup import refresh_assignment

# поля задачи, которые тутор может править напрямую
EDITABLE_TASK_FIELDS = (
    "name", "estimated_time", "actual_time", "status", "assignment_url",
    "answer_url", "solution_url", "description", "note",
)

@dataclass
class TaskOut:
    id: int
    name: str
    estimated_time: int
    actual_time: Optional[int]
    status: str
    assignment_url: Optional[str]
    answer_url: Optional[str]
    solution_url: Optional[str]

@dataclass
class AssignmentOut:
    id: int
    schedule_id: int
    name: str
    status: str
    tasks: List[TaskOut]

def to_out(a: Assignment) -> AssignmentOut:
    return AssignmentOut(
        id=a.id, schedule_id=a.schedule_id, name=a.name, status=a.status,
        tasks=[TaskOut(id=t.id, name=t.name, estimated_time=t.estimated_time, actual_time=t.actual_time,
                       status=t.status, assignment_url=t.assignment_url, answer_url=t.answer_url,
                       solution_url=t.solution_url) for t in a.tasks],
    )

def out_dict(a: Assignment) -> Dict[str, Any]:
    return asdict(to_out(a))

def _get_assignment(assignment_id: int) -> Assignment:
    a: Assignment | None = db.session.get(Assignment, assignment_id)
    if not a:
        raise LookupError("ASSIGNMENT_NOT_FOUND")
    return a

def _get_task(a: Assignment, task_id: int) -> AssignmentTask:
    task = a.task(task_id)
    if not task:
        raise LookupError("TASK_NOT_FOUND")
    return task

def _check_tutor(user, schedule: Schedule) -> None:
    role = getattr(user, "role", None)
    if role == UserRole.ADMIN.value:
        return
    if role != UserRole.TUTOR.value or schedule.tutor_id != user.id:
        raise PermissionError("NOT_OWNER")

def create_assignment(*, user, schedule_id: int, name: str, tasks: Iterable[Dict[str, Any]],
                      description: str | None = None, subject: str | None = None) -> Assignment:
    """Создать задание с задачами. Если занятие уже идёт, pending-задачи сразу в работе."""
    schedule: Schedule | None = db.session.get(Schedule, schedule_id)
    if not schedule:
        raise LookupError("SCHEDULE_NOT_FOUND")
    _check_tutor(user, schedule)

    a = Assignment(schedule_id=schedule.id, name=name, description=description, subject=subject,
                   status=AssignmentStatus.PENDING.value)
    for t in tasks:
        fields = {k: v for k, v in t.items() if v is not None}
        fields.setdefault("status", AssignmentTaskStatus.PENDING.value)
        a.tasks.append(AssignmentTask(**fields))
    if schedule.status == ScheduleStatus.ONGOING.value:
        for t in a.tasks:
            if t.status == AssignmentTaskStatus.PENDING.value:
                t.status = AssignmentTaskStatus.IN_PROGRESS.value
    refresh_assignment(a)
    db.session.add(a)
    db.session.commit()
    return a

def update_task(*, user, assignment_id: int, task_id: int, changes: Dict[str, Any]) -> Assignment:
    a = _get_assignment(assignment_id)
    _check_tutor(user, a.schedule)
    task = _get_task(a, task_id)
    for key, value in changes.items():
        if key in EDITABLE_TASK_FIELDS:
            setattr(task, key, value)
    refresh_assignment(a)
    db.session.commit()
    return a

def submit_task(*, user, assignment_id: int, task_id: int, answer_url: str,
                actual_time: int | None = None, note: str | None = None) -> Assignment:
    """Сдача задачи учеником: ответ + статус submitted, затем rollup задания."""
    a = _get_assignment(assignment_id)
    role = getattr(user, "role", None)
    if role != UserRole.ADMIN.value and a.schedule.student_id != user.id:
        raise PermissionError("NOT_OWNER")
    task = _get_task(a, task_id)
    if task.status in (AssignmentTaskStatus.GRADED.value, AssignmentTaskStatus.UNDONE.value):
        raise RuntimeError("TASK_CLOSED")

    task.answer_url = answer_url
    task.status = AssignmentTaskStatus.SUBMITTED.value
    if actual_time is not None:
        task.actual_time = actual_time
    if note is not None:
        task.note = note
    refresh_assignment(a)
    db.session.commit()
    return a

def _check_participant(user, schedule: Schedule) -> None:
    if getattr(user, "role", None) == UserRole.ADMIN.value:
        return
    if user.id not in (schedule.student_id, schedule.tutor_id):
        raise PermissionError("NOT_PARTICIPANT")

def get_assignment(*, user, assignment_id: int) -> Assignment:
    a = _get_assignment(assignment_id)
    _check_participant(user, a.schedule)
    return a

def list_assignments(*, user, schedule_id: int) -> List[Assignment]:
    """Задания занятия по порядку создания. Видны участникам занятия и админу."""
    schedule: Schedule | None = db.session.get(Schedule, schedule_id)
    if not schedule:
        raise LookupError("SCHEDULE_NOT_FOUND")
    _check_participant(user, schedule)
    return Assignment.query.filter_by(schedule_id=schedule.id).order_by(Assignment.id.asc()).all()
