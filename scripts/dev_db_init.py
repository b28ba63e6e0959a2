# scripts/dev_db_init.py
from datetime import timedelta
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import (
    User, UserRole, Schedule, Assignment, AssignmentTask,
    Homework, HomeworkTask, utcnow,
)

def _user(email: str, role: UserRole, name: str) -> User:
    u = User.query.filter_by(email=email).first()
    if not u:
        u = User(email=email, name=name, role=role.value, password_hash=generate_password_hash("pass"))
        db.session.add(u)
    return u

def seed_minimal():
    _user("admin@example.com", UserRole.ADMIN, "Admin")
    tutor = _user("tutor@example.com", UserRole.TUTOR, "Demo Tutor")
    student = _user("student@example.com", UserRole.STUDENT, "Demo Student")
    db.session.flush()

    if Schedule.query.first():
        db.session.commit()
        return

    now = utcnow()
    # одно занятие уже идёт по времени, одно в будущем; первое движок подхватит на ближайшем тике
    current = Schedule(start_time=now - timedelta(minutes=10), duration=60, subject_code="MATH-101",
                       student_id=student.id, tutor_id=tutor.id, note="Квадратные уравнения")
    future = Schedule(start_time=now + timedelta(days=1), duration=90, subject_code="PHYS-201",
                      student_id=student.id, tutor_id=tutor.id)
    db.session.add_all([current, future])
    db.session.flush()

    a = Assignment(schedule_id=current.id, name="Разминка", subject="Математика")
    a.tasks.extend([
        AssignmentTask(name="Задачи 1-5", estimated_time=15, status="pending"),
        AssignmentTask(name="Задачи 6-10", estimated_time=20, status="pending"),
    ])
    hw = Homework(student_id=student.id, schedule_id=current.id, name="ДЗ к занятию",
                  deadline=now + timedelta(days=3))
    hw.tasks.extend([
        HomeworkTask(name="Параграф 4, упр. 1-3"),
        HomeworkTask(name="Параграф 4, упр. 4-6"),
    ])
    db.session.add_all([a, hw])
    db.session.commit()

if __name__ == "__main__":
    app = create_app("dev")
    with app.app_context():
        db.create_all()
        seed_minimal()
