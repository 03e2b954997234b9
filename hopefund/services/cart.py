# hopefund/services/cart.py
"""
Donation cart kept in the signed Flask session.

Items are plain dicts so they serialize straight into the session cookie:
    {event_id, title, image, price_cents, quantity, is_fixed_donation}

The list helpers (`add_item`, `set_quantity`, ...) are pure; `SessionCart`
loads, mutates and stores them.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from flask import session

from hopefund.errors import Conflict, NotFound, ValidationError
from hopefund.extensions import db
from hopefund.helpers import cents_to_dollars
from hopefund.models import Event

CART_KEY = "cart"

Item = Dict[str, Any]


# ─────────────────────────────────────────────────────────────
# Pure list operations
# ─────────────────────────────────────────────────────────────
def find_item(items: List[Item], event_id: int) -> Optional[Item]:
    return next((i for i in items if int(i["event_id"]) == int(event_id)), None)


def add_item(items: List[Item], item: Item) -> List[Item]:
    """Adding an event that is already in the cart bumps its quantity."""
    qty = int(item.get("quantity") or 1)
    if qty < 1:
        raise ValidationError(["Quantity must be at least 1"])
    out = [dict(i) for i in items]
    existing = find_item(out, item["event_id"])
    if existing is not None:
        existing["quantity"] = int(existing["quantity"]) + qty
        if not existing.get("is_fixed_donation") and item.get("price_cents"):
            existing["price_cents"] = int(item["price_cents"])
        return out
    out.append({**item, "quantity": qty})
    return out


def set_quantity(items: List[Item], event_id: int, quantity: int) -> List[Item]:
    if int(quantity) < 1:
        raise ValidationError(["Quantity must be at least 1"])
    out = [dict(i) for i in items]
    item = find_item(out, event_id)
    if item is None:
        raise NotFound("Item is not in your cart")
    item["quantity"] = int(quantity)
    return out


def set_price(items: List[Item], event_id: int, price_cents: int) -> List[Item]:
    """Fixed-donation events keep their price; the edit is ignored."""
    out = [dict(i) for i in items]
    item = find_item(out, event_id)
    if item is None:
        raise NotFound("Item is not in your cart")
    if item.get("is_fixed_donation"):
        return out
    if int(price_cents) <= 0:
        raise ValidationError(["Amount must be greater than 0"])
    item["price_cents"] = int(price_cents)
    return out


def remove_item(items: List[Item], event_id: int) -> List[Item]:
    return [dict(i) for i in items if int(i["event_id"]) != int(event_id)]


def cart_total_cents(items: List[Item]) -> int:
    return sum(int(i["price_cents"]) * int(i["quantity"]) for i in items)


def item_public(item: Item) -> Dict[str, Any]:
    return {
        "event_id": int(item["event_id"]),
        "title": item.get("title"),
        "image": item.get("image"),
        "price": cents_to_dollars(item["price_cents"]),
        "quantity": int(item["quantity"]),
        "is_fixed_donation": bool(item.get("is_fixed_donation")),
        "line_total": cents_to_dollars(int(item["price_cents"]) * int(item["quantity"])),
    }


def item_for_event(event: Event, quantity: int = 1, price_cents: Optional[int] = None) -> Item:
    if event.is_fixed_donation or not price_cents:
        price_cents = event.price_cents
    if not price_cents or price_cents <= 0:
        raise ValidationError(["Please enter a donation amount"])
    return {
        "event_id": event.id,
        "title": event.title,
        "image": event.feature_image,
        "price_cents": int(price_cents),
        "quantity": int(quantity),
        "is_fixed_donation": bool(event.is_fixed_donation),
    }


def donatable_event(event_id: int) -> Event:
    event = db.session.get(Event, event_id)
    if event is None or event.deleted or not event.is_enabled:
        raise NotFound("Event not found")
    if event.end_date and event.end_date < date.today():
        raise Conflict("This event is no longer accepting donations")
    return event


# ─────────────────────────────────────────────────────────────
# Session-backed cart
# ─────────────────────────────────────────────────────────────
class SessionCart:
    def __init__(self) -> None:
        self.items: List[Item] = list(session.get(CART_KEY) or [])

    def _store(self, items: List[Item]) -> "SessionCart":
        self.items = items
        session[CART_KEY] = items
        session.modified = True
        return self

    @property
    def total_cents(self) -> int:
        return cart_total_cents(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def add(self, event_id: int, quantity: int = 1, price_cents: Optional[int] = None) -> "SessionCart":
        event = donatable_event(event_id)
        return self._store(add_item(self.items, item_for_event(event, quantity, price_cents)))

    def update(self, event_id: int, quantity: Optional[int] = None, price_cents: Optional[int] = None) -> "SessionCart":
        items = self.items
        if quantity is not None:
            items = set_quantity(items, event_id, quantity)
        if price_cents is not None:
            items = set_price(items, event_id, price_cents)
        return self._store(items)

    def remove(self, event_id: int) -> "SessionCart":
        if find_item(self.items, event_id) is None:
            raise NotFound("Item is not in your cart")
        return self._store(remove_item(self.items, event_id))

    def clear(self) -> "SessionCart":
        session.pop(CART_KEY, None)
        self.items = []
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {
            "items": [item_public(i) for i in self.items],
            "count": sum(int(i["quantity"]) for i in self.items),
            "total_amount": cents_to_dollars(self.total_cents),
        }
