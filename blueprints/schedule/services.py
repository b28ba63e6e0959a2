# blueprints/schedule/services.py
from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from extensions import db
from models import Schedule, ScheduleStatus, UserRole

@dataclass
class ScheduleOut:
    id: int
    start_time: str
    end_time: str
    duration: int
    subject_code: str
    student_id: int
    tutor_id: int
    status: str
    report_url: Optional[str]

def out_dict(s: Schedule) -> Dict[str, Any]:
    return asdict(ScheduleOut(
        id=s.id,
        start_time=s.start_time.isoformat(),
        end_time=s.end_time.isoformat(),
        duration=s.duration,
        subject_code=s.subject_code,
        student_id=s.student_id,
        tutor_id=s.tutor_id,
        status=s.status,
        report_url=s.report_url,
    ))

def get_schedule(schedule_id: int) -> Schedule:
    sch: Schedule | None = db.session.get(Schedule, schedule_id)
    if not sch:
        raise LookupError("SCHEDULE_NOT_FOUND")
    return sch

def cancel_schedule(*, user, schedule_id: int) -> Schedule:
    """
    Отмена занятия пользователем. cancelled является терминальным статусом,
    движок такие занятия не трогает.
    """
    sch = get_schedule(schedule_id)
    role = getattr(user, "role", None)
    if role != UserRole.ADMIN.value and sch.tutor_id != user.id:
        raise PermissionError("NOT_OWNER")
    if sch.status == ScheduleStatus.COMPLETED.value:
        raise RuntimeError("ALREADY_COMPLETED")
    if sch.status != ScheduleStatus.CANCELLED.value:
        sch.status = ScheduleStatus.CANCELLED.value
        db.session.commit()
    return sch
