# blueprints/lifecycle/rules.py
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, Optional

from models import AssignmentTaskStatus, HomeworkStatus, HomeworkTaskStatus, ScheduleStatus

# правило задачи: текущая задача -> новый статус или None (не трогать)
TaskRule = Callable[[object], Optional[str]]


# ---------- занятия ----------
def session_end(start_time: datetime, duration_minutes: int) -> datetime:
    return start_time + timedelta(minutes=duration_minutes or 0)


def should_start(schedule, now: datetime) -> bool:
    """upcoming -> ongoing, когда началось время занятия."""
    return schedule.status == ScheduleStatus.UPCOMING.value and schedule.start_time <= now


def should_complete(schedule, now: datetime) -> bool:
    """ongoing -> completed, когда start_time + duration <= now."""
    return (
        schedule.status == ScheduleStatus.ONGOING.value
        and session_end(schedule.start_time, schedule.duration) <= now
    )


# ---------- задачи ----------
def has_answer(task) -> bool:
    return bool((getattr(task, "answer_url", None) or "").strip())


def started_task_status(task) -> Optional[str]:
    """Занятие началось: pending -> in-progress, остальное не трогаем."""
    if task.status == AssignmentTaskStatus.PENDING.value:
        return AssignmentTaskStatus.IN_PROGRESS.value
    return None


def abandoned_task_status(task) -> Optional[str]:
    """Занятие закончилось: in-progress без ответа -> undone."""
    if task.status == AssignmentTaskStatus.IN_PROGRESS.value and not has_answer(task):
        return AssignmentTaskStatus.UNDONE.value
    return None


def overdue_homework_task_status(task) -> Optional[str]:
    """Дедлайн ДЗ прошёл: in-progress без ответа -> undone."""
    if task.status == HomeworkTaskStatus.IN_PROGRESS.value and not has_answer(task):
        return HomeworkTaskStatus.UNDONE.value
    return None


def task_diff(tasks: Iterable, rule: TaskRule) -> Dict[int, str]:
    """{task_id: new_status} только для задач, которые правило меняет."""
    diff: Dict[int, str] = {}
    for task in tasks:
        new = rule(task)
        if new is not None and new != task.status:
            diff[task.id] = new
    return diff


def apply_diff(tasks: Iterable, diff: Dict[int, str]) -> int:
    changed = 0
    for task in tasks:
        new = diff.get(task.id)
        if new is not None:
            task.status = new
            changed += 1
    return changed


def homework_overdue_status(task_statuses: Iterable[str], current: str) -> Optional[str]:
    """
    После дедлайна: если не все задачи submitted, ДЗ становится undone, минуя обычный rollup.
    None: статус оставить как есть.
    """
    statuses = list(task_statuses)
    all_submitted = all(s == HomeworkTaskStatus.SUBMITTED.value for s in statuses)
    if not all_submitted and current != HomeworkStatus.UNDONE.value:
        return HomeworkStatus.UNDONE.value
    return None
