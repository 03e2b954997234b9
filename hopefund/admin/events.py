# hopefund/admin/events.py
"""Event management, event donations, receipts and CSV export."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date

from flask import Response, request

from hopefund.errors import NotFound
from hopefund.extensions import db
from hopefund.forms import validate_payload
from hopefund.forms.content import EventForm, StatusForm
from hopefund.helpers import cents_to_dollars, format_currency, json_list, json_ok, request_payload, truthy
from hopefund.models import Donation, Event
from hopefund.models.mixins import iso
from hopefund.services import content as content_service
from hopefund.services.donations import event_donation_stats, event_donations_query, event_share_cents
from hopefund.services.listing import ListParams, apply_listing
from hopefund.services.permissions import require_permission
from hopefund.services.uploads import save_upload

from . import bp

log = logging.getLogger(__name__)

CSV_HEADER = ["Invoice", "Date", "Donor", "Email", "Anonymous", "Event amount", "Donation total", "Currency", "Status"]


def _event_or_404(event_id: int) -> Event:
    event = db.session.get(Event, event_id)
    if event is None or event.deleted:
        raise NotFound("Event not found")
    return event


def _feature_image():
    storage = request.files.get("image") or request.files.get("feature_image")
    if storage is None or not storage.filename:
        return None
    return save_upload(storage, "image")


@bp.get("/events")
@require_permission("event_view")
def list_events():
    params = ListParams.from_request()
    query = Event.active()
    archived = request.args.get("archived")
    if archived is not None:
        today = date.today()
        query = query.filter(Event.end_date < today) if truthy(archived) else query.filter(Event.end_date >= today)
    if truthy(request.args.get("featured")):
        query = query.filter(Event.is_featured.is_(True))
    rows, meta = apply_listing(
        query,
        Event,
        params,
        search=("title", "location"),
        sortable={
            "title": Event.title,
            "start_date": Event.start_date,
            "end_date": Event.end_date,
            "raised": Event.raised_cents,
            "created_at": Event.created_at,
        },
    )
    return json_list([e.as_dict() for e in rows], meta)


@bp.post("/events")
@require_permission("event_create")
def create_event():
    form = validate_payload(EventForm, request_payload())
    event = content_service.save_event(form, _feature_image())
    log.info("Event %s created", event.id)
    return json_ok(event.as_dict(), status=201, message="Event created successfully")


@bp.get("/events/<int:event_id>")
@require_permission("event_view")
def event_details(event_id: int):
    event = _event_or_404(event_id)
    data = event.as_dict()
    data["stats"] = event_donation_stats(event)
    return json_ok(data)


@bp.route("/events/<int:event_id>", methods=["PUT", "POST"])
@require_permission("event_edit")
def update_event(event_id: int):
    event = _event_or_404(event_id)
    form = validate_payload(EventForm, request_payload())
    content_service.save_event(form, _feature_image(), event)
    return json_ok(event.as_dict(), message="Event updated successfully")


@bp.patch("/events/status/<int:event_id>")
@require_permission("event_edit")
def event_status(event_id: int):
    event = _event_or_404(event_id)
    form = validate_payload(StatusForm, request_payload())
    event.status = form.status.data
    db.session.commit()
    return json_ok(event.as_dict(), message="Event status updated")


@bp.delete("/events/<int:event_id>")
@require_permission("event_delete")
def delete_event(event_id: int):
    _event_or_404(event_id).soft_delete()
    return json_ok(None, message="Event deleted successfully")


# ─────────────────────────────────────────────────────────────
# Donations per event
# ─────────────────────────────────────────────────────────────
@bp.get("/events/<int:event_id>/donations")
@require_permission("donation_view")
def event_donations(event_id: int):
    event = _event_or_404(event_id)
    params = ListParams.from_request()
    rows, meta = apply_listing(
        event_donations_query(event.id),
        Donation,
        params,
        search=("donor_name", "donor_email", "invoice_number"),
        sortable={"created_at": Donation.created_at, "amount": Donation.amount_cents, "paid_at": Donation.paid_at},
    )
    items = []
    for d in rows:
        data = d.as_dict()
        data["event_amount"] = cents_to_dollars(event_share_cents(d, event.id))
        items.append(data)
    return json_list(items, meta, stats=event_donation_stats(event))


@bp.get("/events/<int:event_id>/stats")
@require_permission("donation_view")
def event_stats(event_id: int):
    return json_ok(event_donation_stats(_event_or_404(event_id)))


@bp.get("/events/<int:event_id>/donations/export")
@require_permission("donation_view")
def export_event_donations(event_id: int):
    event = _event_or_404(event_id)
    rows = event_donations_query(event.id).order_by(Donation.created_at.asc(), Donation.id.asc()).all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for d in rows:
        writer.writerow(
            [
                d.invoice_number,
                iso(d.paid_at or d.created_at),
                d.donor_name,
                d.donor_email,
                "yes" if d.is_anonymous else "no",
                f"{event_share_cents(d, event.id) / 100:.2f}",
                f"{d.total_cents / 100:.2f}",
                d.currency.upper(),
                d.status,
            ]
        )
    return Response(
        output.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename=event-{event.id}-donations.csv"},
    )


@bp.get("/donations/<int:donation_id>/receipt")
@require_permission("donation_view")
def donation_receipt(donation_id: int):
    donation = db.session.get(Donation, donation_id)
    if donation is None:
        raise NotFound("Donation not found")
    data = donation.as_dict()
    data["formatted_total"] = format_currency(donation.total_amount, donation.currency)
    return json_ok(data)
