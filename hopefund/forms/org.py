"""Organization forms: admins, roles, permissions."""

from flask_wtf import FlaskForm
from wtforms import IntegerField, PasswordField, StringField
from wtforms.validators import AnyOf, Email, InputRequired, Length, NumberRange, Optional, Regexp

from . import IntListField
from .auth import MIN_PASSWORD
from .content import STATUS_MESSAGE


class RoleForm(FlaskForm):
    name = StringField(
        "Role name",
        validators=[
            InputRequired(message="Role name is required"),
            Length(min=2, max=80, message="Role name must be at least 2 characters"),
        ],
    )
    status = IntegerField(
        "Status",
        default=1,
        validators=[Optional(), AnyOf([0, 1], message=STATUS_MESSAGE)],
    )
    permission_ids = IntListField("Permissions")


class RolePermissionsForm(FlaskForm):
    role_id = IntegerField(
        "Role",
        validators=[
            InputRequired(message="Role is required"),
            NumberRange(min=1, message="Role ID must be a positive integer"),
        ],
    )
    permission_ids = IntListField("Permissions")


class PermissionForm(FlaskForm):
    name = StringField(
        "Permission name",
        validators=[
            InputRequired(message="Permission name is required"),
            Regexp(r"^[a-z]+_[a-z]+$", message="Permission name must look like module_action"),
            Length(max=120),
        ],
    )
    status = IntegerField(
        "Status",
        default=1,
        validators=[Optional(), AnyOf([0, 1], message=STATUS_MESSAGE)],
    )


class AdminForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[
            InputRequired(message="Name is required"),
            Length(min=2, max=120, message="Name must be at least 2 characters long"),
        ],
    )
    email = StringField(
        "Email",
        validators=[InputRequired(message="Email is required"), Email(message="Please enter a valid email.")],
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    password = PasswordField(
        "Password",
        validators=[
            InputRequired(message="Password is required"),
            Length(min=MIN_PASSWORD, message=f"Password must be at least {MIN_PASSWORD} characters long"),
        ],
    )
    role_id = IntegerField(
        "Role",
        validators=[
            InputRequired(message="Role is required"),
            NumberRange(min=1, message="Role ID must be a positive integer"),
        ],
    )
    status = IntegerField(
        "Status",
        default=1,
        validators=[Optional(), AnyOf([0, 1], message=STATUS_MESSAGE)],
    )


class AdminUpdateForm(AdminForm):
    password = PasswordField(
        "Password",
        validators=[
            Optional(),
            Length(min=MIN_PASSWORD, message=f"Password must be at least {MIN_PASSWORD} characters long"),
        ],
    )


class AdminProfileForm(FlaskForm):
    name = StringField(
        "Name",
        validators=[
            InputRequired(message="Name is required"),
            Length(min=2, max=120, message="Name must be at least 2 characters long"),
        ],
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    avatar = StringField("Avatar", validators=[Optional(), Length(max=255)])


class AdminPasswordResetForm(FlaskForm):
    user_id = IntegerField(
        "User",
        validators=[
            InputRequired(message="User ID is required"),
            NumberRange(min=1, message="User ID must be a positive integer"),
        ],
    )
    password = PasswordField(
        "Password",
        validators=[
            InputRequired(message="Password is required"),
            Length(min=MIN_PASSWORD, message=f"Password must be at least {MIN_PASSWORD} characters long"),
        ],
    )
