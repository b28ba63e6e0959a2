# tests/test_reports.py
from datetime import datetime, timedelta
import pytest

from app import create_app
from extensions import db
from werkzeug.security import generate_password_hash
from models import User, Schedule, Assignment, AssignmentTask
from blueprints.lifecycle import build_engine
from blueprints.reports.services import build_report_data, generate_report_for_schedule, report_path

NOW = datetime(2026, 3, 2, 12, 0)

def _csrf(client):
    r = client.get("/api/v1/csrf")
    return (r.get_json() or {}).get("csrf", "")

def _login(client, email):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": "pass"})
    assert r.status_code == 200

@pytest.fixture()
def app_ctx(tmp_path):
    app = create_app("test")
    app.config.update(REPORTS_DIR=str(tmp_path / "reports"))
    with app.app_context():
        db.create_all()
        users = [
            User(email="admin@example.com", name="Admin", role="ADMIN", password_hash=generate_password_hash("pass")),
            User(email="tutor@example.com", name="Tutor T.", role="TUTOR", password_hash=generate_password_hash("pass")),
            User(email="student@example.com", name="Student S.", role="STUDENT", password_hash=generate_password_hash("pass")),
            User(email="stranger@example.com", role="STUDENT", password_hash=generate_password_hash("pass")),
        ]
        db.session.add_all(users); db.session.commit()
        admin, tutor, student, _ = users

        sch = Schedule(start_time=NOW - timedelta(hours=2), duration=60, subject_code="REP-MATH",
                       student_id=student.id, tutor_id=tutor.id, status="ongoing", note="Разобрали дроби")
        db.session.add(sch); db.session.flush()
        a = Assignment(schedule_id=sch.id, name="Дроби", status="in-progress")
        a.tasks.extend([
            AssignmentTask(name="Сложение", estimated_time=10, status="submitted", answer_url="https://files/1.pdf"),
            AssignmentTask(name="Деление", estimated_time=15, status="in-progress"),
        ])
        db.session.add(a); db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app_ctx):
    return app_ctx.test_client()

def test_build_report_data(app_ctx):
    sch = db.session.get(Schedule, 1)
    data = build_report_data(sch)
    assert data["summary"] == "Разобрали дроби"
    assert data["student"] == {"name": "Student S.", "email": "student@example.com"}
    assert data["checklist"]["simple"] == [{"name": "Дроби", "status": "not_done"}]
    tasks = data["checklist"]["assignments"][0]["tasks"]
    assert [t["name"] for t in tasks] == ["Сложение", "Деление"]
    assert tasks[1]["actual_time"] == 0
    assert tasks[1]["note"] == "N/A"

def test_generate_writes_file_and_url(app_ctx):
    url = generate_report_for_schedule(1)
    assert url == "/api/v1/schedules/1/report"
    assert db.session.get(Schedule, 1).report_url == url
    html = report_path(1).read_text(encoding="utf-8")
    assert "REP-MATH" in html
    assert "Деление" in html

def test_generate_unknown_schedule(app_ctx):
    with pytest.raises(LookupError):
        generate_report_for_schedule(999)

def test_tick_generates_report_on_completion(app_ctx):
    result = build_engine(app_ctx).run_tick(NOW)
    assert result.schedules_completed == 1
    assert result.reports_generated == 1
    db.session.expire_all()
    sch = db.session.get(Schedule, 1)
    assert sch.status == "completed"
    assert sch.report_url == "/api/v1/schedules/1/report"
    # задача без ответа ушла в undone до генерации отчёта
    assert "undone" in report_path(1).read_text(encoding="utf-8")

def test_tick_with_timeout_runs_generator_in_worker(app_ctx):
    app_ctx.config["REPORT_TIMEOUT_SECONDS"] = 5
    engine = build_engine(app_ctx)
    try:
        result = engine.run_tick(NOW)
    finally:
        engine.report_trigger.close()
    assert result.reports_generated == 1
    db.session.expire_all()
    assert db.session.get(Schedule, 1).report_url is not None

def test_download_not_ready(client):
    _login(client, "student@example.com")
    r = client.get("/api/v1/schedules/1/report")
    assert r.status_code == 404
    assert r.get_json()["error"] == "report_not_ready"

def test_regenerate_and_download(client):
    _login(client, "tutor@example.com")
    r = client.post("/api/v1/schedules/1/report", headers={"X-CSRF-Token": _csrf(client)})
    assert r.status_code == 200
    assert r.get_json()["report_url"] == "/api/v1/schedules/1/report"

    r2 = client.get("/api/v1/schedules/1/report")
    assert r2.status_code == 200
    assert r2.mimetype == "text/html"
    assert "Дроби" in r2.get_data(as_text=True)

def test_regenerate_forbidden_for_student(client):
    _login(client, "student@example.com")
    r = client.post("/api/v1/schedules/1/report", headers={"X-CSRF-Token": _csrf(client)})
    assert r.status_code == 403

def test_regenerate_unknown_schedule(client):
    _login(client, "admin@example.com")
    r = client.post("/api/v1/schedules/999/report", headers={"X-CSRF-Token": _csrf(client)})
    assert r.status_code == 404

def test_download_forbidden_for_stranger(client, app_ctx):
    generate_report_for_schedule(1)
    _login(client, "stranger@example.com")
    r = client.get("/api/v1/schedules/1/report")
    assert r.status_code == 403
