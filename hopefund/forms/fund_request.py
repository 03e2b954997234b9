"""Fundraising request submission and the admin review / approval / publish forms."""

from datetime import date, datetime

from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, Email, InputRequired, Length, NumberRange, Optional
from wtforms.validators import ValidationError as FieldError

from hopefund.models.fund_request import FUND_TYPES

REVIEW_STATUSES = ("information_needed", "in_review")
APPROVAL_ACTIONS = ("accepted", "rejected")


def _required(label, message, max_len=255, max_message=None):
    validators = [InputRequired(message=message)]
    if max_len:
        validators.append(Length(max=max_len, message=max_message or f"{label} must not exceed {max_len} characters"))
    return StringField(label, validators=validators)


class FundRequestForm(FlaskForm):
    name = _required("Name", "Name is required")
    phone = _required("Phone", "Phone number is required", 40)
    email = StringField(
        "Email",
        validators=[InputRequired(message="Email is required"), Email(message="Please enter a valid email.")],
    )
    country = _required("Country", "Country is required", 80)
    address = _required("Address", "Address is required", 500, "Address must not exceed 500 characters")
    title = _required("Title", "Title is required", 255)
    description = TextAreaField(
        "Description",
        validators=[
            InputRequired(message="Description is required"),
            Length(max=1000, message="Description must not exceed 1000 characters"),
        ],
    )
    category_id = IntegerField(
        "Category",
        validators=[InputRequired(message="Category is required"), NumberRange(min=1, message="Category is required")],
    )
    fund_type = StringField(
        "Fund type",
        validators=[
            InputRequired(message="Fund type is required"),
            AnyOf(FUND_TYPES, message="Fund type must be individual or organization"),
        ],
    )
    # no Optional(): it would stop the chain before validate_fundraising_for runs
    fundraising_for = StringField("Fundraising for", validators=[Length(max=255)])
    currency = StringField(
        "Currency",
        validators=[InputRequired(message="Currency is required"), Length(min=3, max=3, message="Currency must be a 3-letter code")],
    )
    target_amount = DecimalField(
        "Target amount",
        places=2,
        validators=[
            InputRequired(message="Target amount is required"),
            NumberRange(min=0.01, message="Amount must be greater than 0"),
        ],
    )
    shortage_amount = DecimalField(
        "Shortage amount",
        places=2,
        validators=[
            InputRequired(message="Shortage amount is required"),
            NumberRange(min=0.01, message="Amount must be greater than 0"),
        ],
    )
    reference_name = StringField(
        "Reference name",
        validators=[Optional(), Length(max=255, message="Reference name must not exceed 255 characters")],
    )
    reference_phone = StringField("Reference phone", validators=[Optional(), Length(max=40)])
    reference_email = StringField(
        "Reference email",
        validators=[
            Optional(),
            Email(message="Please enter a valid reference email."),
            Length(max=255, message="Reference email must not exceed 255 characters"),
        ],
    )

    def validate_fundraising_for(self, field):
        if (field.data or "").strip():
            return
        if self.fund_type.data == "organization":
            raise FieldError("Organization name is required")
        raise FieldError("Person name is required")

    def validate_shortage_amount(self, field):
        target = self.target_amount.data
        if target is not None and field.data is not None and field.data > target:
            raise FieldError("Shortage amount cannot exceed target amount")


class ReviewForm(FlaskForm):
    status = StringField(
        "Status",
        validators=[
            InputRequired(message="status is required"),
            AnyOf(REVIEW_STATUSES, message='Status must be either "information_needed" or "in_review"'),
        ],
    )
    comments = TextAreaField(
        "Comments",
        validators=[
            InputRequired(message="comments is required"),
            Length(min=5, message="Comments must be at least 5 characters long"),
        ],
    )
    deadline = StringField("Deadline", validators=[InputRequired(message="deadline is required")])

    def validate_deadline(self, field):
        raw = (field.data or "").strip()
        try:
            parsed = datetime.strptime(raw, "%Y-%m-%d").date()
        except ValueError:
            raise FieldError("Deadline must be in YYYY-MM-DD format")
        if len(raw) != 10:
            raise FieldError("Deadline must be in YYYY-MM-DD format")
        if parsed < date.today():
            raise FieldError("Deadline must be today or a future date")
        field.parsed = parsed


class ApprovalForm(FlaskForm):
    action = StringField(
        "Action",
        validators=[
            InputRequired(message="action is required"),
            AnyOf(APPROVAL_ACTIONS, message='Action must be either "accepted" or "rejected"'),
        ],
    )
    comments = TextAreaField(
        "Comments",
        validators=[
            InputRequired(message="comments is required"),
            Length(min=5, message="Comments must be at least 5 characters long"),
        ],
    )


class PublishForm(FlaskForm):
    event_id = IntegerField(
        "Event",
        validators=[
            InputRequired(message="Event ID is required"),
            NumberRange(min=1, message="Event ID must be a positive integer"),
        ],
    )
