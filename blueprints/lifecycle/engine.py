# blueprints/lifecycle/engine.py
"""
Движок статусов: один «тик» переводит занятия upcoming -> ongoing -> completed,
каскадом обновляет задачи заданий, закрывает просроченные ДЗ и запускает
генерацию отчёта по каждому только что завершённому занятию.

Каждый шаг тика изолирован: ошибка шага логируется, следующие шаги выполняются.
Внутри шага ошибки изолированы по сущностям (задание, ДЗ, отчёт).
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from models import ScheduleStatus, utcnow
from . import rollup, rules
from .store import SqlEntityStore

log = logging.getLogger(__name__)

ReportGenerator = Callable[[int], Any]


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass
class TickResult:
    now: datetime
    schedules_ongoing: int = 0
    tasks_in_progress: int = 0
    schedules_completed: int = 0
    tasks_undone: int = 0
    reports_generated: int = 0
    reports_failed: int = 0
    homework_tasks_undone: int = 0
    homeworks_undone: int = 0
    started_ids: List[int] = field(default_factory=list)
    completed_ids: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "schedules_ongoing": self.schedules_ongoing,
            "tasks_in_progress": self.tasks_in_progress,
            "schedules_completed": self.schedules_completed,
            "tasks_undone": self.tasks_undone,
            "reports_generated": self.reports_generated,
            "reports_failed": self.reports_failed,
            "homework_tasks_undone": self.homework_tasks_undone,
            "homeworks_undone": self.homeworks_undone,
        }

    @property
    def has_changes(self) -> bool:
        return any(self.counts().values())

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["now"] = self.now.isoformat()
        return out


class ReportTrigger:
    """
    Вызов генератора отчёта после завершения занятия.
    Не транзакционно со статусом: статус уже сохранён, ошибка/таймаут только логируются,
    повтора на следующем тике нет (занятие больше не ongoing).
    """

    def __init__(self, generator: ReportGenerator, *, timeout: Optional[float] = None, app=None,
                 max_workers: int = 2):
        self.generator = generator
        self.timeout = timeout or None
        self.app = app
        self._executor: Optional[ThreadPoolExecutor] = None
        self._max_workers = max_workers

    def _run(self, schedule_id: int):
        if self.app is None:
            return self.generator(schedule_id)
        # в рабочем потоке свой app context и, значит, своя сессия БД
        with self.app.app_context():
            return self.generator(schedule_id)

    def _call(self, schedule_id: int):
        if self.timeout is None:
            return self.generator(schedule_id)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="report")
        future = self._executor.submit(self._run, schedule_id)
        return future.result(timeout=self.timeout)

    def fire(self, schedule_id: int) -> bool:
        try:
            ref = self._call(schedule_id)
        except FuturesTimeout:
            log.error("report generation timed out",
                      extra={"event": "report_failed", "schedule_id": schedule_id,
                             "error": f"timeout after {self.timeout}s"})
            return False
        except Exception as e:
            log.exception("report generation failed",
                          extra={"event": "report_failed", "schedule_id": schedule_id, "error": str(e)})
            return False
        log.info("report generated", extra={"event": "report_generated", "schedule_id": schedule_id,
                                            "report_url": ref})
        return True

    def close(self) -> None:
        if self._executor is not None:
            # зависший генератор не ждём
            self._executor.shutdown(wait=False)
            self._executor = None


class LifecycleEngine:
    def __init__(self, store: SqlEntityStore, report_trigger: Optional[ReportTrigger] = None,
                 *, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.report_trigger = report_trigger
        self.clock = clock

    # ---------- точка входа ----------
    def run_tick(self, now: Optional[datetime] = None) -> TickResult:
        """Один цикл движка. Никогда не бросает исключений."""
        now = as_naive_utc(now or self.clock())
        result = TickResult(now=now)

        self._step("start_sessions", self.start_sessions, now, result)
        self._step("complete_sessions", self.complete_sessions, now, result)
        self._step("homework_deadlines", self.sweep_homework_deadlines, now, result)

        if result.has_changes:
            log.info("lifecycle tick", extra={"event": "lifecycle_tick", "counts": result.counts(),
                                              "now": now.isoformat()})
        else:
            log.debug("lifecycle tick: nothing to do")
        return result

    def _step(self, name: str, fn: Callable[[datetime, TickResult], None], now: datetime,
              result: TickResult) -> None:
        try:
            fn(now, result)
        except Exception as e:
            result.errors.append(f"{name}: {e}")
            log.exception("lifecycle step failed", extra={"event": "lifecycle_step_failed", "step": name})
            try:
                self.store.rollback()
            except Exception:
                log.exception("rollback after failed step also failed", extra={"step": name})

    # ---------- шаг 1: upcoming -> ongoing ----------
    def start_sessions(self, now: datetime, result: TickResult) -> None:
        ids = self.store.due_to_start(now)
        if not ids:
            return
        result.schedules_ongoing = self.store.set_schedule_status(
            ids, ScheduleStatus.UPCOMING.value, ScheduleStatus.ONGOING.value)
        result.started_ids = list(ids)
        result.tasks_in_progress = self.cascade(ids, rules.started_task_status)

    # ---------- шаг 2: ongoing -> completed ----------
    def complete_sessions(self, now: datetime, result: TickResult) -> None:
        # выборка идёт по сохранённому статусу: занятие, начатое на шаге 1 и уже
        # закончившееся по времени, завершается в этом же тике
        ids = self.store.due_to_complete(now)
        if not ids:
            return
        result.schedules_completed = self.store.set_schedule_status(
            ids, ScheduleStatus.ONGOING.value, ScheduleStatus.COMPLETED.value)
        result.completed_ids = list(ids)
        try:
            result.tasks_undone = self.cascade(ids, rules.abandoned_task_status)
        finally:
            # статусы уже сохранены: отчёты запускаем даже если каскад упал
            self.trigger_reports(ids, result)

    def trigger_reports(self, schedule_ids: Iterable[int], result: TickResult) -> None:
        if self.report_trigger is None:
            return
        for sid in schedule_ids:
            if self.report_trigger.fire(sid):
                result.reports_generated += 1
            else:
                result.reports_failed += 1

    # ---------- каскад на задачи заданий ----------
    def cascade(self, schedule_ids: Iterable[int], rule: rules.TaskRule) -> int:
        """Применить правило к задачам заданий указанных занятий. Возвращает число изменённых задач."""
        changed = 0
        for assignment in self.store.assignments_for_schedules(schedule_ids):
            assignment_id = assignment.id
            try:
                diff = rules.task_diff(assignment.tasks, rule)
                if not diff:
                    continue
                n = rules.apply_diff(assignment.tasks, diff)
                rollup.refresh_assignment(assignment)
                self.store.save(assignment)
                changed += n
            except Exception:
                self.store.rollback()
                log.exception("assignment cascade failed",
                              extra={"event": "cascade_failed", "assignment_id": assignment_id})
        return changed

    # ---------- шаг 3: дедлайны ДЗ ----------
    def sweep_homework_deadlines(self, now: datetime, result: TickResult) -> None:
        for homework in self.store.overdue_homeworks(now):
            homework_id = homework.id
            try:
                diff = rules.task_diff(homework.tasks, rules.overdue_homework_task_status)
                n = rules.apply_diff(homework.tasks, diff)
                new_status = rules.homework_overdue_status((t.status for t in homework.tasks), homework.status)
                if new_status is not None:
                    homework.status = new_status
                if not n and new_status is None:
                    continue
                self.store.save(homework)
                result.homework_tasks_undone += n
                if new_status is not None:
                    result.homeworks_undone += 1
            except Exception:
                self.store.rollback()
                log.exception("homework sweep failed",
                              extra={"event": "homework_sweep_failed", "homework_id": homework_id})


def build_engine(app) -> LifecycleEngine:
    """Движок с настройками приложения и генератором отчётов по умолчанию."""
    from blueprints.reports.services import generate_report_for_schedule

    trigger = ReportTrigger(
        generate_report_for_schedule,
        timeout=app.config.get("REPORT_TIMEOUT_SECONDS"),
        app=app,
    )
    return LifecycleEngine(SqlEntityStore(), trigger)
