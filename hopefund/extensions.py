import atexit
import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import stripe
from flask_cors import CORS
from flask_login import LoginManager
from flask_mail import Mail, Message
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from jinja2 import Environment, FileSystemLoader, select_autoescape

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Core singletons
# ─────────────────────────────────────────────────────────────
db = SQLAlchemy()
migrate = Migrate()
mail = Mail()
socketio = SocketIO(async_mode=os.getenv("SOCKET_ASYNC_MODE", "threading"))
login_manager = LoginManager()
csrf = CSRFProtect()
cors = CORS()


# ─────────────────────────────────────────────────────────────
# Background tasks + clean shutdown
# ─────────────────────────────────────────────────────────────
_BG_MAX_WORKERS = int(os.getenv("BG_MAX_WORKERS", "4"))
_EXECUTOR = ThreadPoolExecutor(max_workers=_BG_MAX_WORKERS)


def run_bg(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
    return _EXECUTOR.submit(func, *args, **kwargs)


@atexit.register
def _shutdown_executor() -> None:
    _EXECUTOR.shutdown(wait=False, cancel_futures=True)


# ─────────────────────────────────────────────────────────────
# Email helper
# ─────────────────────────────────────────────────────────────
def get_mail_env(templates_dir: Optional[str] = None) -> Environment:
    """
    Jinja environment for email templates.
    Default path: hopefund/templates/emails
    """
    if not templates_dir:
        templates_dir = str(Path(__file__).resolve().parent / "templates" / "emails")
    return Environment(
        loader=FileSystemLoader(templates_dir),
        autoescape=select_autoescape(["html", "xml"]),
    )


def send_email_async(
    app: Any,
    subject: str,
    recipients: List[str],
    *,
    html_template: Optional[str] = None,
    text_template: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    sender: Optional[str] = None,
    max_retries: int = 2,
    retry_backoff: float = 0.5,
) -> Future:
    ctx = context or {}
    env = get_mail_env()

    def _job() -> bool:
        # Always run inside an app context
        with app.app_context():
            logger = getattr(app, "logger", log)

            try:
                html = env.get_template(html_template).render(**ctx) if html_template else None
                body = env.get_template(text_template).render(**ctx) if text_template else None

                msg = Message(
                    subject=subject,
                    recipients=recipients,
                    sender=sender or app.config.get("MAIL_DEFAULT_SENDER"),
                    html=html,
                    body=body,
                )

                attempts = 0
                while True:
                    try:
                        mail.send(msg)
                        return True
                    except Exception as e:
                        attempts += 1
                        if attempts > max_retries:
                            raise
                        logger.warning(
                            "Mail send failed (attempt %s/%s): %s",
                            attempts,
                            max_retries,
                            e,
                        )
                        time.sleep(float(retry_backoff) * attempts)

            except Exception as e:
                logger.error("Email send permanently failed: %s", e, exc_info=True)
                return False

    return run_bg(_job)


# ─────────────────────────────────────────────────────────────
# Admin live notifications
# ─────────────────────────────────────────────────────────────
ADMIN_ROOM = "admins"


def emit_socket(event: str, data: Optional[Dict[str, Any]] = None, room: Optional[str] = ADMIN_ROOM) -> bool:
    try:
        socketio.emit(event, data or {}, to=room)
        return True
    except Exception as e:
        log.warning("socket emit failed: %s", e)
        return False


# ─────────────────────────────────────────────────────────────
# Stripe initialization
# ─────────────────────────────────────────────────────────────
def guess_stripe_mode(api_key: Optional[str]) -> str:
    if not api_key:
        return "disabled"
    if api_key.startswith(("sk_live_", "rk_live_")):
        return "live"
    if api_key.startswith(("sk_test_", "rk_test_")):
        return "test"
    return "unknown"


def init_stripe(app: Any) -> None:
    api_key = app.config.get("STRIPE_SECRET_KEY") or ""

    if not api_key:
        if not app.config.get("DEMO_MODE"):
            app.logger.warning("Stripe NOT initialized: missing STRIPE_SECRET_KEY")
        return

    stripe.api_key = api_key
    stripe.max_network_retries = int(app.config.get("STRIPE_MAX_NETWORK_RETRIES", 2))
    app.logger.info("✅ Stripe initialized (%s mode)", guess_stripe_mode(api_key))


__all__ = [
    "db",
    "migrate",
    "mail",
    "socketio",
    "login_manager",
    "csrf",
    "cors",
    "run_bg",
    "send_email_async",
    "emit_socket",
    "init_stripe",
    "guess_stripe_mode",
    "ADMIN_ROOM",
]
