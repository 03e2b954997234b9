# hopefund/helpers.py
"""
hopefund.helpers: compact utility helpers used across the app and tests.

- json_ok / json_list / json_error: the API response envelope
- request_payload: JSON body or form fields as a plain dict
- to_cents / cents_to_dollars / format_currency: money handling
- truthy / safe_int_opt: tolerant scalar parsing
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from flask import g, jsonify, request

_TRUTHY = {"1", "true", "yes", "on", "y"}

_CURRENCY_SYMBOLS = {"usd": "$", "aud": "A$", "cad": "CA$", "eur": "€", "gbp": "£"}


# ----------------------------
# JSON envelope
# ----------------------------
def _json_response(payload: Dict[str, Any], status: int = 200):
    resp = jsonify(payload)
    resp.status_code = int(status)
    resp.headers.setdefault("Cache-Control", "no-store")
    return resp


def json_ok(data: Any = None, status: int = 200, message: Optional[str] = None, **extra: Any):
    payload: Dict[str, Any] = {"ok": True, "data": data}
    if message:
        payload["message"] = message
    payload.update(extra)
    return _json_response(payload, status)


def json_list(items: Iterable[Any], meta: Dict[str, Any], **extra: Any):
    payload: Dict[str, Any] = {"ok": True, "data": list(items), "meta": meta}
    payload.update(extra)
    return _json_response(payload)


def json_error(message: str, status: int, **extra: Any):
    payload: Dict[str, Any] = {"ok": False, "error": {"code": int(status), "message": str(message)}}
    rid = getattr(g, "request_id", None)
    if rid:
        payload["error"]["request_id"] = rid
    if extra:
        payload["error"].update(extra)
    return _json_response(payload, status)


def request_payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    if request.form:
        out: Dict[str, Any] = {}
        for key in request.form.keys():
            values = request.form.getlist(key)
            out[key] = values if len(values) > 1 else values[0]
        return out
    return {}


# ----------------------------
# Scalars
# ----------------------------
def truthy(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    return str(v).strip().lower() in _TRUTHY


def safe_int_opt(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        s = str(v).strip()
        if not s:
            return None
        return int(s)
    except (TypeError, ValueError):
        return None


# ----------------------------
# Money
# ----------------------------
def to_decimal(val: Any) -> Optional[Decimal]:
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, Decimal):
        return val
    s = str(val).replace("$", "").replace(",", "").strip()
    if not s:
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


def to_cents(dollars: Any) -> Optional[int]:
    """Convert a dollar amount ("12.5", 12.5, Decimal) to integer cents."""
    d = to_decimal(dollars)
    if d is None or not d.is_finite():
        return None
    return int((d * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: Optional[int]) -> float:
    return round((cents or 0) / 100.0, 2)


def format_currency(amount: Any, currency: str = "USD") -> str:
    d = to_decimal(amount) or Decimal("0")
    symbol = _CURRENCY_SYMBOLS.get((currency or "usd").lower(), f"{(currency or '').upper()} ")
    sign = "-" if d < 0 else ""
    return f"{sign}{symbol}{abs(d):,.2f}"
