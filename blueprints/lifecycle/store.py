# blueprints/lifecycle/store.py
from __future__ import annotations
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from extensions import db
from models import Assignment, Homework, Schedule, ScheduleStatus, utcnow
from . import rules


class SqlEntityStore:
    """
    Доступ движка к БД. Выборки идут по статусу, времени или членству id в множестве;
    статусы занятий обновляются пакетно, остальное сохраняется поштучно.
    """

    def __init__(self, session=None):
        # db.session это scoped-прокси, реальная сессия берётся из текущего app context
        self.session = session if session is not None else db.session

    # ---------- точечные выборки ----------
    def get_schedule(self, schedule_id: int) -> Optional[Schedule]:
        return self.session.get(Schedule, schedule_id)

    # ---------- занятия ----------
    def due_to_start(self, now: datetime) -> List[int]:
        stmt = (
            select(Schedule)
            .where(Schedule.status == ScheduleStatus.UPCOMING.value, Schedule.start_time <= now)
            .order_by(Schedule.id)
        )
        return [s.id for s in self.session.execute(stmt).scalars() if rules.should_start(s, now)]

    def due_to_complete(self, now: datetime) -> List[int]:
        # start_time + duration считаем в Python: арифметика дат в SQL у каждой БД своя
        stmt = (
            select(Schedule)
            .where(Schedule.status == ScheduleStatus.ONGOING.value, Schedule.start_time <= now)
            .order_by(Schedule.id)
        )
        return [s.id for s in self.session.execute(stmt).scalars() if rules.should_complete(s, now)]

    def set_schedule_status(self, ids: Sequence[int], from_status: str, to_status: str) -> int:
        """Пакетный переход статуса. Повторная проверка from_status защищает от двойного применения."""
        if not ids:
            return 0
        stmt = (
            update(Schedule)
            .where(Schedule.id.in_(list(ids)), Schedule.status == from_status)
            .values(status=to_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount or 0

    # ---------- задания/ДЗ ----------
    def assignments_for_schedules(self, schedule_ids: Iterable[int]) -> List[Assignment]:
        ids = list(schedule_ids)
        if not ids:
            return []
        stmt = (
            select(Assignment)
            .where(Assignment.schedule_id.in_(ids))
            .options(selectinload(Assignment.tasks))
            .order_by(Assignment.id)
        )
        return list(self.session.execute(stmt).scalars())

    def overdue_homeworks(self, now: datetime) -> List[Homework]:
        stmt = (
            select(Homework)
            .where(Homework.deadline < now)
            .options(selectinload(Homework.tasks))
            .order_by(Homework.id)
        )
        return list(self.session.execute(stmt).scalars())

    # ---------- сохранение ----------
    def save(self, entity) -> None:
        self.session.add(entity)
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
