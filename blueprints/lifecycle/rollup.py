# blueprints/lifecycle/rollup.py
"""
Вывод статуса родителя (Assignment / Homework) из статусов его задач.

Чистые функции: на вход список статусов задач и текущий статус родителя,
на выход новый статус. Вызываются и движком, и CRUD-путями (сдача задачи
учеником), чтобы правило было одно.
"""
from __future__ import annotations
from typing import Iterable, Optional

from models import (
    AssignmentStatus, AssignmentTaskStatus,
    HomeworkStatus, HomeworkTaskStatus,
)

_HOMEWORK_DONE = {HomeworkTaskStatus.SUBMITTED.value, HomeworkTaskStatus.LATE_SUBMITTED.value}


def _values(statuses: Iterable) -> list[str]:
    return [getattr(s, "value", s) for s in statuses]


def assignment_status(task_statuses: Iterable, current: Optional[str]) -> Optional[str]:
    """
    - все задачи submitted (и список не пуст) -> completed
    - хоть одна in-progress                  -> in-progress
    - иначе статус не меняется
    """
    statuses = _values(task_statuses)
    if statuses and all(s == AssignmentTaskStatus.SUBMITTED.value for s in statuses):
        return AssignmentStatus.COMPLETED.value
    if any(s == AssignmentTaskStatus.IN_PROGRESS.value for s in statuses):
        return AssignmentStatus.IN_PROGRESS.value
    return current


def homework_status(task_statuses: Iterable, current: Optional[str] = None) -> Optional[str]:
    """
    - все задачи submitted / late-submitted -> completed
    - хоть одна undone                      -> undone
    - иначе                                 -> in-progress
    Пустой список задач статус не трогает.
    """
    statuses = _values(task_statuses)
    if not statuses:
        return current
    if all(s in _HOMEWORK_DONE for s in statuses):
        return HomeworkStatus.COMPLETED.value
    if any(s == HomeworkTaskStatus.UNDONE.value for s in statuses):
        return HomeworkStatus.UNDONE.value
    return HomeworkStatus.IN_PROGRESS.value


def refresh_assignment(assignment) -> bool:
    """Пересчитать статус задания по задачам. True, если статус изменился."""
    new = assignment_status((t.status for t in assignment.tasks), assignment.status)
    if new != assignment.status:
        assignment.status = new
        return True
    return False


def refresh_homework(homework) -> bool:
    new = homework_status((t.status for t in homework.tasks), homework.status)
    if new != homework.status:
        homework.status = new
        return True
    return False
