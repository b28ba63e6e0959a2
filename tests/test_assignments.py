from __future__ import annotations
from datetime import timedelta

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import User, Schedule, Assignment, utcnow
from blueprints.lifecycle import LifecycleEngine, SqlEntityStore

@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        tutor = User(email="tutor@example.com", password_hash=generate_password_hash("pass"), role="TUTOR")
        other = User(email="other@example.com", password_hash=generate_password_hash("pass"), role="TUTOR")
        student = User(email="student@example.com", password_hash=generate_password_hash("pass"), role="STUDENT")
        db.session.add_all([tutor, other, student]); db.session.commit()
        now = utcnow()
        future = Schedule(start_time=now + timedelta(days=1), duration=60, subject_code="MATH",
                          student_id=student.id, tutor_id=tutor.id)
        running = Schedule(start_time=now - timedelta(minutes=10), duration=60, subject_code="MATH",
                           student_id=student.id, tutor_id=tutor.id, status="ongoing")
        db.session.add_all([future, running]); db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app_ctx):
    return app_ctx.test_client()

def csrf(client):
    r = client.get("/api/v1/csrf")
    assert r.status_code == 200
    return r.get_json()["csrf"]

def login_as(client, email, password="pass"):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200

def _create(client, schedule_id=1, tasks=None):
    payload = {
        "schedule_id": schedule_id, "name": "Разминка",
        "tasks": tasks if tasks is not None else [
            {"name": "Задачи 1-5", "estimated_time": 15},
            {"name": "Задачи 6-10", "estimated_time": 20},
        ],
    }
    return client.post("/api/v1/assignments", json=payload, headers={"X-CSRF-Token": csrf(client)})

def test_create_assignment_pending_for_future_session(client):
    login_as(client, "tutor@example.com")
    r = _create(client, schedule_id=1)
    assert r.status_code == 200
    a = r.get_json()["assignment"]
    assert a["status"] == "pending"
    assert [t["status"] for t in a["tasks"]] == ["pending", "pending"]

def test_create_assignment_for_running_session_starts_tasks(client):
    login_as(client, "tutor@example.com")
    r = _create(client, schedule_id=2)
    assert r.status_code == 200
    a = r.get_json()["assignment"]
    assert a["status"] == "in-progress"
    assert {t["status"] for t in a["tasks"]} == {"in-progress"}

def test_create_requires_owner_tutor(client):
    login_as(client, "other@example.com")
    r = _create(client)
    assert r.status_code == 403
    assert r.get_json()["error"] == "not_owner"

def test_student_cannot_create(client):
    login_as(client, "student@example.com")
    assert _create(client).status_code == 403

def test_create_validation_error(client):
    login_as(client, "tutor@example.com")
    r = _create(client, tasks=[{"name": "x", "estimated_time": 0}])
    assert r.status_code == 422
    assert r.get_json()["error"] == "validation_error"

def test_create_unknown_schedule_404(client):
    login_as(client, "tutor@example.com")
    r = _create(client, schedule_id=999)
    assert r.status_code == 404

def test_mutation_without_csrf_rejected(client):
    login_as(client, "tutor@example.com")
    r = client.post("/api/v1/assignments", json={"schedule_id": 1, "name": "x", "tasks": []})
    assert r.status_code == 400

def test_submitting_all_tasks_completes_assignment(client):
    login_as(client, "tutor@example.com")
    a = _create(client, schedule_id=2).get_json()["assignment"]
    client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": csrf(client)})

    login_as(client, "student@example.com")
    first, second = (t["id"] for t in a["tasks"])
    r1 = client.post(f"/api/v1/assignments/{a['id']}/tasks/{first}/submit",
                     json={"answer_url": "https://files/1.pdf", "actual_time": 12},
                     headers={"X-CSRF-Token": csrf(client)})
    assert r1.status_code == 200
    assert r1.get_json()["assignment"]["status"] == "in-progress"

    r2 = client.post(f"/api/v1/assignments/{a['id']}/tasks/{second}/submit",
                     json={"answer_url": "https://files/2.pdf"},
                     headers={"X-CSRF-Token": csrf(client)})
    body = r2.get_json()["assignment"]
    assert body["status"] == "completed"
    assert [t["answer_url"] for t in body["tasks"]] == ["https://files/1.pdf", "https://files/2.pdf"]

def test_other_student_cannot_submit(client):
    login_as(client, "tutor@example.com")
    a = _create(client, schedule_id=2).get_json()["assignment"]
    tid = a["tasks"][0]["id"]
    # другой тутор не ученик этого занятия
    client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": csrf(client)})
    login_as(client, "other@example.com")
    r = client.post(f"/api/v1/assignments/{a['id']}/tasks/{tid}/submit",
                    json={"answer_url": "https://x"}, headers={"X-CSRF-Token": csrf(client)})
    assert r.status_code == 403

def test_undone_task_cannot_be_submitted(client, app_ctx):
    login_as(client, "tutor@example.com")
    a = _create(client, schedule_id=2).get_json()["assignment"]
    tid = a["tasks"][0]["id"]
    r = client.patch(f"/api/v1/assignments/{a['id']}/tasks/{tid}", json={"status": "undone"},
                     headers={"X-CSRF-Token": csrf(client)})
    assert r.status_code == 200

    client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": csrf(client)})
    login_as(client, "student@example.com")
    r2 = client.post(f"/api/v1/assignments/{a['id']}/tasks/{tid}/submit",
                     json={"answer_url": "https://x"}, headers={"X-CSRF-Token": csrf(client)})
    assert r2.status_code == 409
    assert r2.get_json()["error"] == "task_closed"

def test_patch_rejects_unknown_status(client):
    login_as(client, "tutor@example.com")
    a = _create(client).get_json()["assignment"]
    tid = a["tasks"][0]["id"]
    r = client.patch(f"/api/v1/assignments/{a['id']}/tasks/{tid}", json={"status": "done"},
                     headers={"X-CSRF-Token": csrf(client)})
    assert r.status_code == 422

def test_patch_status_runs_rollup(client, app_ctx):
    login_as(client, "tutor@example.com")
    a = _create(client).get_json()["assignment"]
    tid = a["tasks"][0]["id"]
    r = client.patch(f"/api/v1/assignments/{a['id']}/tasks/{tid}", json={"status": "in-progress"},
                     headers={"X-CSRF-Token": csrf(client)})
    assert r.get_json()["assignment"]["status"] == "in-progress"
    with app_ctx.app_context():
        assert db.session.get(Assignment, a["id"]).status == "in-progress"

def test_get_and_list_assignments(client):
    login_as(client, "tutor@example.com")
    a = _create(client, schedule_id=1).get_json()["assignment"]
    _create(client, schedule_id=1)
    client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": csrf(client)})

    login_as(client, "student@example.com")
    r = client.get(f"/api/v1/assignments/{a['id']}")
    assert r.status_code == 200
    assert r.get_json()["assignment"]["name"] == "Разминка"

    r2 = client.get("/api/v1/assignments?schedule_id=1")
    assert r2.status_code == 200
    assert [x["schedule_id"] for x in r2.get_json()["items"]] == [1, 1]
    assert client.get("/api/v1/assignments?schedule_id=2").get_json()["items"] == []

def test_read_assignments_requires_participant(client):
    login_as(client, "tutor@example.com")
    a = _create(client, schedule_id=1).get_json()["assignment"]
    client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": csrf(client)})

    login_as(client, "other@example.com")
    assert client.get(f"/api/v1/assignments/{a['id']}").status_code == 403
    assert client.get("/api/v1/assignments?schedule_id=1").status_code == 403

def test_list_assignments_bad_requests(client):
    login_as(client, "tutor@example.com")
    assert client.get("/api/v1/assignments").status_code == 400
    assert client.get("/api/v1/assignments?schedule_id=999").status_code == 404
    assert client.get("/api/v1/assignments/999").status_code == 404

def test_tick_result_visible_through_api(client, app_ctx):
    login_as(client, "tutor@example.com")
    a = _create(client, schedule_id=2).get_json()["assignment"]

    LifecycleEngine(SqlEntityStore()).run_tick(utcnow() + timedelta(hours=2))

    body = client.get(f"/api/v1/assignments/{a['id']}").get_json()["assignment"]
    assert {t["status"] for t in body["tasks"]} == {"undone"}
