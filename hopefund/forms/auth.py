"""Login, registration, verification-code and password forms (donors and admins)."""

from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import Email, EqualTo, InputRequired, Length, Optional, Regexp
from wtforms.validators import ValidationError as FieldError

MIN_PASSWORD = 8


def _email_field():
    return StringField(
        "Email",
        validators=[
            InputRequired(message="Email is required"),
            Email(message="Please enter a valid email."),
            Length(max=255),
        ],
    )


def _new_password_field(label="Password", message="Password is required"):
    return PasswordField(
        label,
        validators=[
            InputRequired(message=message),
            Length(min=MIN_PASSWORD, message=f"Password must be at least {MIN_PASSWORD} characters long"),
        ],
    )


class LoginForm(FlaskForm):
    email = _email_field()
    password = PasswordField("Password", validators=[InputRequired(message="Password is required")])


class EmailForm(FlaskForm):
    email = _email_field()


class CodeForm(FlaskForm):
    email = _email_field()
    code = StringField(
        "Code",
        validators=[
            InputRequired(message="Verification code is required"),
            Regexp(r"^\d{6}$", message="Verification code must be 6 digits"),
        ],
    )


class RegistrationForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[
            InputRequired(message="Name is required"),
            Length(min=2, max=120, message="Name must be at least 2 characters long"),
        ],
    )
    email = _email_field()
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    password = _new_password_field()
    password_confirmation = PasswordField(
        "Confirm password",
        validators=[InputRequired(message="Please confirm your password"), EqualTo("password", message="Passwords do not match")],
    )


class ResetPasswordForm(FlaskForm):
    email = _email_field()
    password = _new_password_field()
    password_confirmation = PasswordField(
        "Confirm password",
        validators=[InputRequired(message="Please confirm your password"), EqualTo("password", message="Passwords do not match")],
    )


class ChangePasswordForm(FlaskForm):
    current_password = PasswordField(
        "Current password",
        validators=[InputRequired(message="Current password is required")],
    )
    new_password = _new_password_field("New password", "New password is required")
    new_password_confirmation = PasswordField(
        "Confirm new password",
        validators=[Optional(), EqualTo("new_password", message="Passwords do not match")],
    )

    def validate_new_password(self, field):
        if field.data and field.data == self.current_password.data:
            raise FieldError("New password must be different from current password")


class ProfileForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[
            InputRequired(message="Name is required"),
            Length(min=2, max=120, message="Name must be at least 2 characters long"),
        ],
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    address = StringField(
        "Address",
        validators=[Optional(), Length(max=255, message="Address must not exceed 255 characters")],
    )
    avatar = StringField("Avatar", validators=[Optional(), Length(max=255)])
