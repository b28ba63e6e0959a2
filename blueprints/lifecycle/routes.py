# blueprints/lifecycle/routes.py
from __future__ import annotations
import time
from datetime import datetime

import click
from flask import Blueprint, current_app, jsonify, request
from flask.cli import with_appcontext

from blueprints.auth.routes import admin_required

api_bp = Blueprint("lifecycle_api", __name__)


def _scheduler():
    return current_app.extensions["lifecycle"]


@api_bp.get("/admin/lifecycle")
@admin_required
def lifecycle_state():
    return jsonify(_scheduler().state())


@api_bp.post("/admin/lifecycle/tick")
@admin_required
def lifecycle_tick():
    payload = request.get_json(silent=True) or {}
    now = None
    if payload.get("now"):
        try:
            now = datetime.fromisoformat(str(payload["now"]))
        except ValueError:
            return jsonify({"error": "bad_now"}), 400
    result = _scheduler().run_once(now)
    if result is None:
        return jsonify({"error": "tick_skipped"}), 409
    return jsonify({"ok": not result.errors, "result": result.to_dict()})


# ---------- CLI: flask lifecycle tick|run ----------
@click.group("lifecycle")
def lifecycle_cli():
    """Движок статусов занятий и заданий."""


@lifecycle_cli.command("tick")
@click.option("--now", "now_str", default=None, help="ISO-время вместо текущего")
@with_appcontext
def tick_cmd(now_str):
    now = datetime.fromisoformat(now_str) if now_str else None
    result = _scheduler().run_once(now)
    if result is None:
        raise click.ClickException("tick skipped or failed, see logs")
    for key, value in result.counts().items():
        click.echo(f"{key}: {value}")
    for err in result.errors:
        click.echo(f"error: {err}", err=True)


@lifecycle_cli.command("run")
@with_appcontext
def run_cmd():
    sch = _scheduler()
    sch.start()
    click.echo(f"lifecycle scheduler running every {sch.interval}s, Ctrl+C to stop")
    try:
        while sch.running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        sch.stop()
