# blueprints/auth/routes.py
from __future__ import annotations
import time
import secrets
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, session, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash

from extensions import db, login_manager
from models import User, UserRole

api_bp = Blueprint("auth_api", __name__)

# ---- безопасные значения по умолчанию
DEFAULT_RL_MAX = 5
DEFAULT_RL_WIN = 300  # 5 минут
_login_attempts: dict[str, list[float]] = {}  # ключ: ip|email -> [timestamps]

@login_manager.user_loader
def load_user(uid: str) -> Optional[User]:
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None

# ---------- CSRF ----------
def issue_csrf() -> str:
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token

def verify_csrf() -> None:
    # Только для изменяющих методов и только для API
    if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
        return
    if not request.path.startswith("/api/"):
        return
    if request.path in ("/api/v1/auth/login", "/api/v1/csrf"):
        return
    if current_app.config.get("CSRF_DISABLED"):
        return

    token = request.headers.get("X-CSRF-Token") or request.form.get("csrf_token")
    if not token or token != session.get("csrf_token"):
        abort(400, description="CSRF token missing or invalid")

@api_bp.before_app_request
def _csrf_middleware():
    verify_csrf()

# ---------- rate limit ----------
def _rl_key(email: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "0.0.0.0").split(",")[0].strip()
    return f"{ip}|{(email or '').lower()}"

def _rl_check_and_hit(email: str) -> bool:
    now = time.time()
    win = current_app.config.get("AUTH_RL_WINDOW", DEFAULT_RL_WIN)
    mx = current_app.config.get("AUTH_RL_MAX", DEFAULT_RL_MAX)
    bucket = _login_attempts.setdefault(_rl_key(email), [])
    cutoff = now - win
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)
    if len(bucket) >= mx:
        return False
    bucket.append(now)
    return True

# ---------- декораторы ролей ----------
def role_of(user) -> str | None:
    return getattr(user, "role", None)

def admin_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if role_of(current_user) != UserRole.ADMIN.value:
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

def tutor_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        # админу можно всё, что может тутор
        if role_of(current_user) not in (UserRole.TUTOR.value, UserRole.ADMIN.value):
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

# ---------- обработчики 401/403 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"error": "unauthorized"}), 401

@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"error": "forbidden"}), 403

@api_bp.app_errorhandler(400)
def _bad_request(e):
    return jsonify({"error": "bad_request", "detail": getattr(e, "description", None)}), 400

# ---------- API ----------
@api_bp.get("/csrf")
def api_csrf():
    token = issue_csrf()
    resp = jsonify({"csrf": token})
    resp.set_cookie("csrf_token", token, samesite="Lax", httponly=False, path="/")
    return resp

@api_bp.post("/auth/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"error": "missing_credentials"}), 400

    if not _rl_check_and_hit(email):
        return jsonify({"error": "too_many_attempts"}), 429

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        return jsonify({"error": "invalid_credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "inactive"}), 403

    login_user(user, remember=True)
    return jsonify({"ok": True, "user": {"id": user.id, "email": user.email, "role": user.role}})

@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})

@api_bp.get("/auth/me")
@login_required
def api_me():
    return jsonify({"id": current_user.id, "email": current_user.email,
                    "name": current_user.name, "role": current_user.role})
