from __future__ import annotations
import os
from pathlib import Path

def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- движок статусов занятий/заданий
    LIFECYCLE_TICK_SECONDS = int(os.getenv("LIFECYCLE_TICK_SECONDS", "60"))
    LIFECYCLE_AUTOSTART = False
    # None или 0: генератор отчёта вызывается синхронно, без таймаута
    REPORT_TIMEOUT_SECONDS = _env_float("REPORT_TIMEOUT_SECONDS", 30.0)
    REPORTS_DIR = os.getenv("REPORTS_DIR")  # по умолчанию <instance>/reports
    REPORT_URL_PREFIX = "/api/v1/schedules"

    # True отключает проверку X-CSRF-Token для /api/ (только локальная отладка)
    CSRF_DISABLED = False

    AUTH_RL_MAX = 5
    AUTH_RL_WINDOW = 300

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True
    DEFAULT_USERS = [
        {"email": "admin@example.com", "password": "pass", "role": "ADMIN", "name": "Admin"},
        {"email": "tutor@example.com", "password": "pass", "role": "TUTOR", "name": "Tutor"},
        {"email": "student@example.com", "password": "pass", "role": "STUDENT", "name": "Student"},
    ]

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SEED_TEST_DATA = False
    DEFAULT_USERS = []
    REPORT_TIMEOUT_SECONDS = None
    AUTH_RL_MAX = 10000

class ProdConfig(BaseConfig):
    DEBUG = False
    JSON_SORT_KEYS = False
    SEED_TEST_DATA = False
    DEFAULT_USERS = []
    LIFECYCLE_AUTOSTART = os.getenv("LIFECYCLE_AUTOSTART", "1") not in ("0", "false", "no")

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
