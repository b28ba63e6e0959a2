# blueprints/homework/services.py
from __future__ import annotations
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from extensions import db
from models import (
    Homework, HomeworkStatus, HomeworkTask, HomeworkTaskStatus,
    Schedule, User, UserRole, utcnow,
)
from blueprints.lifecycle.engine import as_naive_utc
from blueprints.lifecycle.rollup import refresh_homework

@dataclass
class HomeworkTaskOut:
    id: int
    name: str
    status: str
    answer_url: Optional[str]
    submitted_at: Optional[str]

@dataclass
class HomeworkOut:
    id: int
    student_id: int
    schedule_id: int
    name: str
    deadline: str
    status: str
    tasks: List[HomeworkTaskOut]

def to_out(hw: Homework) -> HomeworkOut:
    return HomeworkOut(
        id=hw.id,
        student_id=hw.student_id,
        schedule_id=hw.schedule_id,
        name=hw.name,
        deadline=hw.deadline.isoformat(),
        status=hw.status,
        tasks=[HomeworkTaskOut(
            id=t.id, name=t.name, status=t.status, answer_url=t.answer_url,
            submitted_at=t.submitted_at.isoformat() if t.submitted_at else None,
        ) for t in hw.tasks],
    )

def out_dict(hw: Homework) -> Dict[str, Any]:
    return asdict(to_out(hw))

def create_homework(*, user, student_id: int, schedule_id: int, name: str, deadline: datetime,
                    tasks: Iterable[Dict[str, Any]], description: str | None = None,
                    subject: str | None = None, difficulty: str | None = None) -> Homework:
    """Создать ДЗ ученику по занятию. Проверяет занятие, ученика и владельца занятия."""
    sch: Schedule | None = db.session.get(Schedule, schedule_id)
    if not sch:
        raise LookupError("SCHEDULE_NOT_FOUND")
    student: User | None = db.session.get(User, student_id)
    if not student:
        raise LookupError("STUDENT_NOT_FOUND")
    if student.role != UserRole.STUDENT.value:
        raise ValueError("NOT_A_STUDENT")

    role = getattr(user, "role", None)
    if role == UserRole.TUTOR.value and sch.tutor_id != user.id:
        raise PermissionError("NOT_OWNER")

    hw = Homework(
        student_id=student.id, schedule_id=sch.id, name=name, description=description,
        subject=subject, difficulty=difficulty, deadline=as_naive_utc(deadline),
        status=HomeworkStatus.IN_PROGRESS.value,
    )
    for t in tasks:
        fields = {k: v for k, v in t.items() if v is not None}
        fields.setdefault("status", HomeworkTaskStatus.IN_PROGRESS.value)
        hw.tasks.append(HomeworkTask(**fields))
    refresh_homework(hw)
    db.session.add(hw)
    db.session.commit()
    return hw

def submit_homework_task(*, user, homework_id: int, task_id: int, answer_url: str,
                         now: datetime | None = None) -> Homework:
    """
    Сдача задачи ДЗ. После дедлайна задача получает late-submitted.
    Статус ДЗ пересчитывается тем же rollup, что и в движке.
    """
    hw: Homework | None = db.session.get(Homework, homework_id)
    if not hw:
        raise LookupError("HOMEWORK_NOT_FOUND")
    role = getattr(user, "role", None)
    if role != UserRole.ADMIN.value and hw.student_id != user.id:
        raise PermissionError("NOT_OWNER")
    task = hw.task(task_id)
    if not task:
        raise LookupError("TASK_NOT_FOUND")

    now = as_naive_utc(now or utcnow())
    task.answer_url = answer_url
    task.submitted_at = now
    task.status = (HomeworkTaskStatus.LATE_SUBMITTED.value if now > hw.deadline
                   else HomeworkTaskStatus.SUBMITTED.value)
    refresh_homework(hw)
    db.session.commit()
    return hw

def _can_view(user, hw: Homework) -> bool:
    role = getattr(user, "role", None)
    if role == UserRole.ADMIN.value:
        return True
    return user.id in (hw.student_id, hw.schedule.tutor_id)

def get_homework(*, user, homework_id: int) -> Homework:
    hw: Homework | None = db.session.get(Homework, homework_id)
    if not hw:
        raise LookupError("HOMEWORK_NOT_FOUND")
    if not _can_view(user, hw):
        raise PermissionError("NOT_PARTICIPANT")
    return hw

def list_homework(*, user, schedule_id: int) -> List[Homework]:
    """ДЗ по занятию. Ученик видит только своё, тутор занятия и админ видят всё."""
    sch: Schedule | None = db.session.get(Schedule, schedule_id)
    if not sch:
        raise LookupError("SCHEDULE_NOT_FOUND")
    role = getattr(user, "role", None)
    q = Homework.query.filter_by(schedule_id=sch.id)
    if role != UserRole.ADMIN.value and user.id != sch.tutor_id:
        if user.id != sch.student_id:
            raise PermissionError("NOT_PARTICIPANT")
        q = q.filter_by(student_id=user.id)
    return q.order_by(Homework.deadline.asc(), Homework.id.asc()).all()
