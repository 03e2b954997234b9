#!/usr/bin/env python3
"""
HopeFund dev launcher.

- Local dev:        ./run.py --env development
- No reloader:      ./run.py --env development --no-reload
- Print routes:     ./run.py --routes
- Gunicorn export:  gunicorn "wsgi:app"
"""
from __future__ import annotations

import argparse
import logging
import os
import socket

from dotenv import load_dotenv


def _port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.settimeout(0.5)
        return s.connect_ex(("127.0.0.1" if host in {"0.0.0.0", ""} else host, port)) == 0


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the HopeFund Flask app.")
    p.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    p.add_argument("--port", type=int, default=int(os.getenv("PORT", "5000")))
    p.add_argument("--env", choices=["development", "testing", "production"], help="Runtime environment")
    p.add_argument("--config", help="Config name (development/testing/production) or dotted path")
    p.add_argument("--debug", action=argparse.BooleanOptionalAction, default=None, help="Force debug on/off.")
    p.add_argument("--no-reload", action="store_true", help="Disable the Werkzeug reloader.")
    p.add_argument("--routes", action="store_true", help="Print the URL map and exit.")
    p.add_argument("--force", dest="force_run", action="store_true", help="Start even if the port looks busy.")
    return p.parse_args()


def print_routes(app) -> None:
    for rule in sorted(app.url_map.iter_rules(), key=lambda r: r.rule):
        methods = ",".join(sorted(m for m in rule.methods if m not in {"HEAD", "OPTIONS"}))
        print(f"{methods:<22} {rule.rule:<55} {rule.endpoint}")


def main() -> None:
    load_dotenv(override=False)
    args = parse_args()

    env = args.env or os.getenv("ENV") or "development"
    os.environ["ENV"] = env
    debug = args.debug if args.debug is not None else env != "production"
    use_reloader = debug and not args.no_reload

    from hopefund import create_app
    from hopefund.extensions import socketio

    app = create_app(args.config or env)

    if args.routes:
        print_routes(app)
        return

    if not args.force_run and _port_in_use(args.host, args.port):
        logging.error("Port %s already in use (host=%s). Stop the other process or use --force.", args.port, args.host)
        raise SystemExit(2)

    logging.info("Starting HopeFund on %s:%s (env=%s, debug=%s)", args.host, args.port, env, debug)
    socketio.run(
        app,
        host=args.host,
        port=args.port,
        debug=debug,
        use_reloader=use_reloader,
        allow_unsafe_werkzeug=debug,
    )


if __name__ == "__main__":
    main()
