# hopefund/api/donations.py
"""Recording a checkout and the donor's own donation history."""

from __future__ import annotations

from hopefund.errors import NotFound
from hopefund.forms import validate_payload
from hopefund.forms.checkout import DonationForm
from hopefund.helpers import format_currency, json_list, json_ok, request_payload
from hopefund.models import Donation
from hopefund.security import current_donor, user_required
from hopefund.services.donations import record_donation
from hopefund.services.listing import ListParams, apply_listing

from . import bp


@bp.post("/donations")
def create_donation():
    form = validate_payload(DonationForm, request_payload())
    donation = record_donation(form, donor=current_donor())
    return json_ok(donation.as_dict(), status=201, message="Thank you! Your donation is being processed.")


@bp.get("/donations")
@user_required
def my_donations():
    params = ListParams.from_request()
    rows, meta = apply_listing(
        Donation.query.filter(Donation.user_id == current_donor().id),
        Donation,
        params,
        search=("invoice_number",),
        sortable={"created_at": Donation.created_at, "amount": Donation.amount_cents},
    )
    return json_list([d.as_dict() for d in rows], meta)


@bp.get("/donations/<int:donation_id>")
@user_required
def donation_details(donation_id: int):
    donation = Donation.query.filter_by(id=donation_id, user_id=current_donor().id).first()
    if donation is None:
        raise NotFound("Donation not found")
    data = donation.as_dict()
    data["formatted_total"] = format_currency(donation.total_amount, donation.currency)
    return json_ok(data)
