# hopefund/api/cart.py
"""Session cart."""

from __future__ import annotations

from hopefund.forms import validate_payload
from hopefund.forms.checkout import CartItemForm, CartUpdateForm
from hopefund.helpers import json_ok, request_payload, to_cents
from hopefund.services.cart import SessionCart

from . import bp


@bp.get("/cart")
def view_cart():
    return json_ok(SessionCart().as_dict())


@bp.post("/cart")
def add_to_cart():
    form = validate_payload(CartItemForm, request_payload())
    cart = SessionCart().add(
        form.event_id.data,
        quantity=form.quantity.data or 1,
        price_cents=to_cents(form.price.data),
    )
    return json_ok(cart.as_dict(), message="Added to cart")


@bp.put("/cart/<int:event_id>")
def update_cart_item(event_id: int):
    form = validate_payload(CartUpdateForm, request_payload())
    cart = SessionCart().update(
        event_id,
        quantity=form.quantity.data,
        price_cents=to_cents(form.price.data),
    )
    return json_ok(cart.as_dict(), message="Cart updated")


@bp.delete("/cart/<int:event_id>")
def remove_cart_item(event_id: int):
    return json_ok(SessionCart().remove(event_id).as_dict(), message="Removed from cart")


@bp.delete("/cart")
def clear_cart():
    return json_ok(SessionCart().clear().as_dict(), message="Cart cleared")
