from __future__ import annotations
from datetime import timedelta

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import User, Schedule, utcnow
from blueprints.lifecycle import LifecycleEngine, SqlEntityStore
from blueprints.schedule.services import cancel_schedule

@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        tutor = User(email="tutor@example.com", role="TUTOR", password_hash=generate_password_hash("pass"))
        other = User(email="other@example.com", role="TUTOR", password_hash=generate_password_hash("pass"))
        student = User(email="student@example.com", role="STUDENT", password_hash=generate_password_hash("pass"))
        db.session.add_all([tutor, other, student]); db.session.commit()
        db.session.add_all([
            Schedule(start_time=utcnow() + timedelta(hours=1), duration=60, subject_code="A",
                     student_id=student.id, tutor_id=tutor.id),
            Schedule(start_time=utcnow() - timedelta(hours=3), duration=60, subject_code="B",
                     student_id=student.id, tutor_id=tutor.id, status="completed"),
        ])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()

def _user(email):
    return User.query.filter_by(email=email).first()

def test_cancelled_schedule_stays_cancelled(app_ctx):
    sch = cancel_schedule(user=_user("tutor@example.com"), schedule_id=1)
    assert sch.status == "cancelled"
    LifecycleEngine(SqlEntityStore()).run_tick(utcnow() + timedelta(days=1))
    assert db.session.get(Schedule, 1).status == "cancelled"

def test_cancel_by_foreign_tutor(app_ctx):
    with pytest.raises(PermissionError):
        cancel_schedule(user=_user("other@example.com"), schedule_id=1)

def test_cancel_completed(app_ctx):
    with pytest.raises(RuntimeError):
        cancel_schedule(user=_user("tutor@example.com"), schedule_id=2)

def test_cancel_unknown(app_ctx):
    with pytest.raises(LookupError):
        cancel_schedule(user=_user("tutor@example.com"), schedule_id=404)

def test_schedule_api(app_ctx):
    client = app_ctx.test_client()
    r = client.post("/api/v1/auth/login", json={"email": "student@example.com", "password": "pass"})
    assert r.status_code == 200
    body = client.get("/api/v1/schedules/1").get_json()
    assert body["status"] == "upcoming"
    assert body["subject_code"] == "A"
    assert client.get("/api/v1/schedules/404").status_code == 404

    token = client.get("/api/v1/csrf").get_json()["csrf"]
    # ученик не может отменить занятие
    assert client.post("/api/v1/schedules/1/cancel", headers={"X-CSRF-Token": token}).status_code == 403
