# hopefund/__init__.py
# HopeFund: Flask app factory
# - deterministic blueprint registration (admin + public API are required)
# - request id on every log line and response
# - one JSON error shape for services, HTTP errors and crashes

from __future__ import annotations

import logging
import os
import time
from importlib import import_module
from pathlib import Path
from typing import Any, List, Optional, Type, Union
from uuid import uuid4

import sentry_sdk
from dotenv import load_dotenv
from flask import Blueprint, Flask, abort, g, request, send_from_directory
from flask_socketio import join_room
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.utils import import_string

# IMPORTANT: never override real env vars in prod
load_dotenv(override=False)

from hopefund.config import CONFIG_BY_NAME  # noqa: E402
from hopefund.errors import ServiceError  # noqa: E402
from hopefund.extensions import ADMIN_ROOM, cors, csrf, db, init_stripe, login_manager, mail, migrate, socketio  # noqa: E402
from hopefund.helpers import json_error  # noqa: E402

__version__ = "1.0.0"

ConfigLike = Union[str, Type[Any]]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _env_mode() -> str:
    for key in ("HOPEFUND_ENV", "ENV", "FLASK_ENV"):
        val = (os.getenv(key) or "").strip().lower()
        if val:
            if val == "prod":
                return "production"
            if val == "dev":
                return "development"
            return val
    return "development"


def _resolve_config(target: Optional[ConfigLike]) -> ConfigLike:
    """
    Choose the config class.
    - explicit argument (class, dotted path or short name)
    - FLASK_CONFIG
    - HOPEFUND_ENV / ENV / FLASK_ENV, defaulting to development
    """
    if target is None:
        target = (os.getenv("FLASK_CONFIG") or "").strip() or _env_mode()
    if isinstance(target, str) and target.lower() in CONFIG_BY_NAME:
        return CONFIG_BY_NAME[target.lower()]
    return target


def _parse_cors_origins(raw: Optional[str]) -> Union[str, List[str]]:
    raw = (raw or "*").strip()
    if raw in {"", "*"}:
        return "*"
    if "," in raw:
        return [o.strip() for o in raw.split(",") if o.strip()]
    return raw


# -----------------------------------------------------------------------------
# Logging with request_id
# -----------------------------------------------------------------------------
class _RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            record.request_id = getattr(g, "request_id", "-")
        except RuntimeError:
            # outside an app/request context
            record.request_id = "-"
        return True


def _configure_logging(app: Flask) -> None:
    fmt = "%(asctime)s [%(levelname)s] %(name)s [rid=%(request_id)s]: %(message)s"
    root = logging.getLogger()

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        handler.addFilter(_RequestIDFilter())
        root.addHandler(handler)
    else:
        for h in root.handlers:
            h.addFilter(_RequestIDFilter())
            if not getattr(h, "formatter", None) or "%(request_id)s" not in getattr(h.formatter, "_fmt", ""):
                h.setFormatter(logging.Formatter(fmt))

    root.setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    logging.getLogger("werkzeug").setLevel(str(app.config.get("WERKZEUG_LOG_LEVEL", "WARNING")).upper())
    app.logger.info("Loaded config: ENV=%s DEBUG=%s", app.config.get("ENV", "?"), app.debug)


# -----------------------------------------------------------------------------
# Integrations
# -----------------------------------------------------------------------------
def _init_sentry(app: Flask) -> None:
    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn or app.testing:
        return
    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FlaskIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0")),
        send_default_pii=False,
        environment=app.config.get("ENV", "development"),
        release=os.getenv("GIT_COMMIT") or __version__,
    )
    app.logger.info("Sentry initialized")


def _apply_proxyfix(app: Flask) -> None:
    if not app.config.get("TRUST_PROXY"):
        return
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)
    app.logger.info("ProxyFix enabled (trusting X-Forwarded-* headers).")


def _init_cors(app: Flask, origins: Union[str, List[str]]) -> None:
    cors.init_app(
        app,
        supports_credentials=origins != "*",
        resources={r"/api/*": {"origins": origins}, r"/uploads/*": {"origins": origins}},
        expose_headers=["X-Request-ID"],
        allow_headers=["Content-Type", "Authorization", "Stripe-Signature", "X-Request-ID"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )


def _maybe_create_sqlite_tables(app: Flask) -> None:
    uri = (app.config.get("SQLALCHEMY_DATABASE_URI") or "").strip()
    if not uri.startswith("sqlite") or not app.config.get("AUTO_CREATE_SQLITE", True):
        return
    with app.app_context():
        db.create_all()


# -----------------------------------------------------------------------------
# Request lifecycle + errors
# -----------------------------------------------------------------------------
def _register_request_lifecycle(app: Flask) -> None:
    @app.before_request
    def _bootstrap_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g._start_ts = time.perf_counter()

    @app.after_request
    def _attach_request_headers(resp):
        resp.headers["X-Request-ID"] = getattr(g, "request_id", "-")
        start = getattr(g, "_start_ts", None)
        if start:
            resp.headers["X-Response-Time-ms"] = str(int((time.perf_counter() - start) * 1000))
        return resp


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def _service_err(err: ServiceError):
        db.session.rollback()
        body = err.to_dict()
        message = body.pop("message", err.message)
        if err.status_code >= 500:
            app.logger.error("Service failure: %s", message)
        return json_error(message, err.status_code, **body)

    @app.errorhandler(HTTPException)
    def _http_err(err: HTTPException):
        return json_error(err.description or err.name, err.code or 500, type=err.name.lower().replace(" ", "_"))

    @app.errorhandler(Exception)
    def _uncaught(err: Exception):
        app.logger.exception("Unhandled error")
        db.session.rollback()
        return json_error("Internal Server Error", 500, type="internal_error")


# -----------------------------------------------------------------------------
# Blueprint registration (deterministic + strict)
# -----------------------------------------------------------------------------
def _safe_register(app: Flask, dotted: str, url_prefix: Optional[str]) -> bool:
    disabled = {p.strip().lower() for p in (os.getenv("DISABLE_BPS", "")).split(",") if p.strip()}
    mod_key = dotted.split(".")[-1].lower()
    if mod_key in disabled:
        app.logger.info("Disabled module: %s", dotted)
        return False

    mod = import_module(dotted)
    blueprint: Optional[Blueprint] = None
    for name in ("bp", "api_bp", "admin_bp"):
        cand = getattr(mod, name, None)
        if isinstance(cand, Blueprint):
            blueprint = cand
            break

    if blueprint is None:
        app.logger.warning("No blueprint found in %s", dotted)
        return False

    if blueprint.name in app.blueprints:
        return False

    app.register_blueprint(blueprint, url_prefix=url_prefix)
    app.logger.info("Registered blueprint: %-18s → %s", blueprint.name, url_prefix or "/")
    return True


def _register_blueprints(app: Flask) -> None:
    required = [
        ("hopefund.admin", "/api/admin/v1"),
        ("hopefund.api", "/api"),
    ]
    for dotted, prefix in required:
        if not _safe_register(app, dotted, prefix):
            raise RuntimeError(f"Blueprint {dotted} failed to register at {prefix}")

    _safe_register(app, "hopefund.health", None)


# -----------------------------------------------------------------------------
# Small root routes
# -----------------------------------------------------------------------------
def _register_root_routes(app: Flask) -> None:
    @app.get("/healthz")
    def _healthz():
        return {
            "status": "ok",
            "brand": app.config.get("BRAND_NAME", "HopeFund"),
            "env": app.config.get("ENV", "unknown"),
            "request_id": getattr(g, "request_id", "-"),
        }

    @app.get("/version")
    def _version():
        return {
            "version": os.getenv("GIT_COMMIT") or __version__,
            "env": app.config.get("ENV"),
            "brand": app.config.get("BRAND_NAME", "HopeFund"),
        }

    @app.get("/uploads/<path:filename>")
    def _uploads(filename: str):
        if ".." in Path(filename).parts:
            abort(404)
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename, conditional=True)


# -----------------------------------------------------------------------------
# Socket.IO: admins join the live notification room
# -----------------------------------------------------------------------------
def _register_socket_handlers() -> None:
    from hopefund.security import decode_token, principal_from_claims

    @socketio.on("connect")
    def _socket_connect(auth=None):
        token = (auth or {}).get("token") if isinstance(auth, dict) else None
        token = token or request.args.get("token")
        claims = decode_token(token) if token else None
        principal = principal_from_claims(claims) if claims else None
        if principal is not None and principal.kind == "admin":
            join_room(ADMIN_ROOM)
            logging.getLogger(__name__).info("Admin %s joined %s", principal.id, ADMIN_ROOM)


# -----------------------------------------------------------------------------
# App Factory
# -----------------------------------------------------------------------------
def create_app(config: Optional[ConfigLike] = None) -> Flask:
    app = Flask(__name__, static_folder=None)

    # ---- Config loading
    cfg = _resolve_config(config)
    if isinstance(cfg, str):
        cfg = import_string(cfg)
    app.config.from_object(cfg)
    init_config = getattr(cfg, "init_app", None)
    if callable(init_config):
        init_config(app)

    app.url_map.strict_slashes = False
    app.config.setdefault("JSON_SORT_KEYS", False)
    app.config.setdefault("PROPAGATE_EXCEPTIONS", False)

    # ---- Proxy / logging / integrations
    _apply_proxyfix(app)
    _configure_logging(app)
    _init_sentry(app)
    origins = _parse_cors_origins(app.config.get("CORS_ORIGINS"))
    _init_cors(app, origins)

    # ---- Core extensions
    csrf.init_app(app)
    db.init_app(app)
    migrate.init_app(app, db, compare_type=True, render_as_batch=True)
    mail.init_app(app)
    login_manager.init_app(app)
    socketio.init_app(app, cors_allowed_origins=origins)
    init_stripe(app)

    # registers the Flask-Login loaders
    import hopefund.security  # noqa: F401
    import hopefund.models  # noqa: F401

    _maybe_create_sqlite_tables(app)

    # ---- Request lifecycle / errors
    _register_request_lifecycle(app)
    _register_error_handlers(app)

    # ---- Blueprints + root routes
    _register_blueprints(app)
    _register_root_routes(app)
    _register_socket_handlers()

    from hopefund.cli import register_cli

    register_cli(app)

    return app


__all__ = ["create_app", "__version__"]
