from __future__ import annotations
from datetime import datetime, timedelta, timezone
from enum import Enum as PyEnum

from flask_login import UserMixin
from sqlalchemy import ForeignKey, Index, Integer, String, Text, DateTime
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db


def utcnow() -> datetime:
    """Naive UTC: так хранятся все метки времени в БД."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------- Enums ----------
# значения строковые, колонки String: не зависим от типа ENUM в конкретной БД
class UserRole(str, PyEnum):
    ADMIN = "ADMIN"
    TUTOR = "TUTOR"
    STUDENT = "STUDENT"

class ScheduleStatus(str, PyEnum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class AssignmentStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

class AssignmentTaskStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    GRADED = "graded"
    UNDONE = "undone"

class HomeworkStatus(str, PyEnum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    UNDONE = "undone"

class HomeworkTaskStatus(str, PyEnum):
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    LATE_SUBMITTED = "late-submitted"
    UNDONE = "undone"


# ---------- Core Entities ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, index=True, default=UserRole.STUDENT.value)
    is_active_flag: Mapped[bool] = mapped_column(db.Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Flask-Login ожидает .is_active
    @property
    def is_active(self):
        return bool(self.is_active_flag)

    def __repr__(self):
        return f"<User {self.email}>"


class Schedule(db.Model):
    """Занятие (сессия) ученика с тутором."""
    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # минуты
    subject_code: Mapped[str] = mapped_column(String(50), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    tutor_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    meeting_url: Mapped[str | None] = mapped_column(String(500))
    note: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ScheduleStatus.UPCOMING.value)
    report_url: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    student = relationship("User", foreign_keys=[student_id])
    tutor = relationship("User", foreign_keys=[tutor_id])
    assignments = relationship("Assignment", back_populates="schedule")
    homeworks = relationship("Homework", back_populates="schedule")

    __table_args__ = (
        Index("ix_schedules_status_start", "status", "start_time"),
    )

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration or 0)

    def __repr__(self):
        return f"<Schedule {self.id} {self.status}>"


class Assignment(db.Model):
    """Чек-лист заданий на занятии. Статус выводится из задач (rollup)."""
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    subject: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=AssignmentStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    schedule = relationship("Schedule", back_populates="assignments")
    tasks = relationship(
        "AssignmentTask",
        back_populates="assignment",
        order_by="AssignmentTask.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    def task(self, task_id: int) -> "AssignmentTask | None":
        return next((t for t in self.tasks if t.id == task_id), None)


class AssignmentTask(db.Model):
    __tablename__ = "assignment_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    estimated_time: Mapped[int] = mapped_column(Integer, nullable=False)  # минуты
    actual_time: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=AssignmentTaskStatus.PENDING.value)
    assignment_url: Mapped[str | None] = mapped_column(String(500))
    answer_url: Mapped[str | None] = mapped_column(String(500))
    solution_url: Mapped[str | None] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text)
    note: Mapped[str | None] = mapped_column(Text)

    assignment = relationship("Assignment", back_populates="tasks")


class Homework(db.Model):
    """Домашнее задание ученика с дедлайном."""
    __tablename__ = "homeworks"

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    subject: Mapped[str | None] = mapped_column(String(100))
    difficulty: Mapped[str | None] = mapped_column(String(16))
    deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=HomeworkStatus.IN_PROGRESS.value)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    student = relationship("User")
    schedule = relationship("Schedule", back_populates="homeworks")
    tasks = relationship(
        "HomeworkTask",
        back_populates="homework",
        order_by="HomeworkTask.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    def task(self, task_id: int) -> "HomeworkTask | None":
        return next((t for t in self.tasks if t.id == task_id), None)


class HomeworkTask(db.Model):
    __tablename__ = "homework_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    homework_id: Mapped[int] = mapped_column(ForeignKey("homeworks.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # новые задачи ДЗ сразу «в работе», статуса pending у них нет
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=HomeworkTaskStatus.IN_PROGRESS.value)
    assignment_url: Mapped[str | None] = mapped_column(String(500))
    answer_url: Mapped[str | None] = mapped_column(String(500))
    solution_url: Mapped[str | None] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime)

    homework = relationship("Homework", back_populates="tasks")
