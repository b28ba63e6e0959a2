# blueprints/lifecycle/scheduler.py
"""
Периодический запуск движка: threading.Timer, перевзводимый после каждого тика.
Часы подставляются снаружи, поэтому в тестах тик можно вызвать напрямую через run_once().
"""
from __future__ import annotations
import logging
import threading
from datetime import datetime
from threading import Timer
from typing import Callable, Optional

from models import utcnow
from .engine import LifecycleEngine, TickResult

log = logging.getLogger(__name__)


class LifecycleScheduler:
    def __init__(self, app, engine: LifecycleEngine, *, interval: float = 60,
                 clock: Callable[[], datetime] = utcnow):
        self.app = app
        self.engine = engine
        self.interval = interval
        self.clock = clock
        self.last_result: Optional[TickResult] = None
        self.last_run_at: Optional[datetime] = None
        self.ticks = 0
        self.skipped = 0
        self._timer: Optional[Timer] = None
        # поколение таймеров: после stop()/start() старый таймер не перевзводится
        self._generation = 0
        self._stopped = threading.Event()
        self._stopped.set()
        # «тик в процессе»: перекрывающийся тик пропускается, а не ждёт
        self._tick_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._generation += 1
        log.info("lifecycle scheduler started", extra={"event": "lifecycle_started", "interval": self.interval})
        self._arm(self.interval)

    def stop(self) -> None:
        self._stopped.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.engine.report_trigger is not None:
            self.engine.report_trigger.close()
        log.info("lifecycle scheduler stopped", extra={"event": "lifecycle_stopped"})

    def _arm(self, delay: float) -> None:
        timer = Timer(delay, self._on_timer, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self, generation: int) -> None:
        try:
            self.run_once()
        finally:
            if self.running and generation == self._generation:
                self._arm(self.interval)

    def run_once(self, now: Optional[datetime] = None) -> Optional[TickResult]:
        """Один тик в app context. None, если тик пропущен или упал целиком."""
        if not self._tick_lock.acquire(blocking=False):
            self.skipped += 1
            log.warning("lifecycle tick skipped: previous tick still running",
                        extra={"event": "lifecycle_tick_skipped"})
            return None
        try:
            with self.app.app_context():
                result = self.engine.run_tick(now or self.clock())
            self.last_result = result
            self.last_run_at = result.now
            self.ticks += 1
            return result
        except Exception:
            log.exception("lifecycle tick crashed", extra={"event": "lifecycle_tick_failed"})
            return None
        finally:
            self._tick_lock.release()

    def state(self) -> dict:
        return {
            "running": self.running,
            "interval_seconds": self.interval,
            "ticks": self.ticks,
            "skipped": self.skipped,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }
