"""Cart and checkout forms."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, DecimalField, IntegerField, StringField
from wtforms.validators import Email, InputRequired, Length, NumberRange, Optional

from . import FALSE_VALUES


class CartItemForm(FlaskForm):
    event_id = IntegerField(
        "Event",
        validators=[
            InputRequired(message="Event ID is required"),
            NumberRange(min=1, message="Event ID must be a positive integer"),
        ],
    )
    quantity = IntegerField(
        "Quantity",
        default=1,
        validators=[Optional(), NumberRange(min=1, message="Quantity must be at least 1")],
    )
    price = DecimalField(
        "Price",
        places=2,
        validators=[Optional(), NumberRange(min=0.01, message="Amount must be greater than 0")],
    )


class CartUpdateForm(FlaskForm):
    quantity = IntegerField(
        "Quantity",
        validators=[Optional(), NumberRange(min=1, message="Quantity must be at least 1")],
    )
    price = DecimalField(
        "Price",
        places=2,
        validators=[Optional(), NumberRange(min=0.01, message="Amount must be greater than 0")],
    )


class PaymentIntentForm(FlaskForm):
    total_amount = DecimalField(
        "Total amount",
        places=2,
        validators=[Optional(), NumberRange(min=0.01, message="Amount must be greater than 0")],
    )
    tip_amount = DecimalField(
        "Platform contribution",
        places=2,
        validators=[Optional(), NumberRange(min=0, message="Contribution cannot be negative")],
    )
    email = StringField("Email", validators=[Optional(), Email(message="Please enter a valid email.")])


class DonationForm(FlaskForm):
    payment_intent_id = StringField(
        "Payment intent",
        validators=[InputRequired(message="Payment intent is required"), Length(max=120)],
    )
    name = StringField(
        "Name",
        validators=[Optional(), Length(min=2, max=160, message="Name must be at least 2 characters long")],
    )
    email = StringField("Email", validators=[Optional(), Email(message="Please enter a valid email.")])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    note = StringField("Note", validators=[Optional(), Length(max=500)])
    is_anonymous = BooleanField("Anonymous", false_values=FALSE_VALUES)
