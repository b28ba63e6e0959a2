from __future__ import annotations
import logging

from .engine import LifecycleEngine, ReportTrigger, TickResult, build_engine
from .rollup import assignment_status, homework_status, refresh_assignment, refresh_homework
from .scheduler import LifecycleScheduler
from .store import SqlEntityStore

log = logging.getLogger(__name__)


def init_app(app) -> LifecycleScheduler:
    """Создать планировщик движка и положить его в app.extensions['lifecycle']."""
    scheduler = LifecycleScheduler(
        app,
        build_engine(app),
        interval=app.config.get("LIFECYCLE_TICK_SECONDS", 60),
    )
    app.extensions["lifecycle"] = scheduler

    from .routes import lifecycle_cli
    app.cli.add_command(lifecycle_cli)

    if app.config.get("LIFECYCLE_AUTOSTART") and not app.config.get("TESTING"):
        scheduler.start()
    return scheduler


def get_scheduler(app) -> LifecycleScheduler:
    return app.extensions["lifecycle"]
