from __future__ import annotations

import os
import socket
import time
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hopefund.extensions import db, guess_stripe_mode

bp = Blueprint("health", __name__)

APP_STARTED_AT = time.time()
HOSTNAME = socket.gethostname()

STRICT_HEALTH = os.getenv("STRICT_HEALTH", "0").lower() in {"1", "true", "yes", "on"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _overall_status(parts: Dict[str, Dict[str, Any]]) -> str:
    states = [p.get("status", "ok") for p in parts.values()]
    if any(s == "fail" for s in states):
        return "fail"
    if any(s == "degraded" for s in states):
        return "degraded"
    return "ok"


def _db_check() -> Dict[str, Any]:
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "ok", "ok": True}
    except SQLAlchemyError as e:
        db.session.rollback()
        return {"status": "fail", "ok": False, "error": str(e)}


def _stripe_check() -> Dict[str, Any]:
    key = current_app.config.get("STRIPE_SECRET_KEY", "")
    if not key:
        if current_app.config.get("DEMO_MODE"):
            return {"status": "ok", "ok": True, "mode": "demo"}
        return {
            "status": "fail" if STRICT_HEALTH else "degraded",
            "ok": False,
            "reason": "no-secret-key",
        }
    return {"status": "ok", "ok": True, "mode": guess_stripe_mode(key)}


def _summary_payload() -> Dict[str, Any]:
    parts = {
        "database": _db_check(),
        "stripe": _stripe_check(),
    }
    return {
        "status": _overall_status(parts),
        "hostname": HOSTNAME,
        "started_at": datetime.fromtimestamp(APP_STARTED_AT, tz=timezone.utc).isoformat(timespec="seconds"),
        "uptime_s": int(time.time() - APP_STARTED_AT),
        "now": _now_iso(),
        "parts": parts,
        "flags": {"strict": STRICT_HEALTH},
    }


@bp.get("/health")
def health():
    return jsonify(_summary_payload())


@bp.get("/health/ready")
def ready():
    p = _summary_payload()
    code = 200 if p["status"] != "fail" else 503
    return jsonify(p), code


@bp.get("/health/live")
def live():
    return jsonify({"status": "ok", "now": _now_iso(), "uptime_s": int(time.time() - APP_STARTED_AT)})
