"""
Admin content forms: FAQs, sliders, menus, blogs, events, settings, contact
messages. Table-level rules (ordering uniqueness, slug collisions, image
presence on create) are checked by the content services.
"""

from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, DecimalField, IntegerField, StringField, TextAreaField
from wtforms.validators import (
    URL,
    AnyOf,
    Email,
    InputRequired,
    Length,
    NumberRange,
    Optional,
)
from wtforms.validators import ValidationError as FieldError

from hopefund.models.content import BLOG_STATUSES, MENU_POSITIONS
from hopefund.models.setting import CONTACT_STATUSES, SETTING_TYPES

from . import FALSE_VALUES, ListField

def _strip(value):
    return value.strip() if isinstance(value, str) else value


STRIP = [_strip]

STATUS_MESSAGE = "Status must be either 0 (inactive) or 1 (active)"
ORDERING_MESSAGE = "Ordering must be a positive integer"


def _status_field():
    return IntegerField(
        "Status",
        validators=[InputRequired(message="Status is required"), AnyOf([0, 1], message=STATUS_MESSAGE)],
    )


def _ordering_field():
    return IntegerField(
        "Ordering",
        validators=[
            InputRequired(message="Ordering is required"),
            NumberRange(min=1, message=ORDERING_MESSAGE),
        ],
    )


class FAQForm(FlaskForm):
    question = StringField(
        "Question",
        filters=STRIP,
        validators=[
            InputRequired(message="Question is required."),
            Length(min=5, message="Question must be at least 5 characters."),
            Length(max=500),
        ],
    )
    answer = TextAreaField(
        "Answer",
        filters=STRIP,
        validators=[
            InputRequired(message="Answer is required."),
            Length(min=5, message="Answer must be at least 5 characters long"),
        ],
    )
    ordering = _ordering_field()
    status = _status_field()


class SliderForm(FlaskForm):
    title = StringField(
        "Title",
        filters=STRIP,
        validators=[
            InputRequired(message="Title is required"),
            Length(min=2, max=255, message="Title must be at least 2 characters."),
        ],
    )
    subtitle = StringField("Subtitle", validators=[Optional(), Length(max=500)])
    image = StringField("Image", validators=[Optional(), Length(max=500)])
    button_text = StringField("Button text", validators=[Optional(), Length(max=80)])
    button_link = StringField("Button link", validators=[Optional(), Length(max=500)])
    ordering = _ordering_field()
    status = _status_field()


class StatusForm(FlaskForm):
    status = _status_field()


class MenuForm(FlaskForm):
    name = StringField(
        "Name",
        filters=STRIP,
        validators=[
            InputRequired(message="Name is required"),
            Length(min=2, max=120, message="Menu name must be at least 2 characters."),
        ],
    )
    slug = StringField(
        "Slug",
        validators=[
            InputRequired(message="Slug is required"),
            Length(min=2, max=160, message="Slug must be at least 2 characters."),
        ],
    )
    url = StringField("URL", validators=[Optional(), Length(max=500)])
    position = StringField(
        "Position",
        default="header",
        validators=[Optional(), AnyOf(MENU_POSITIONS, message="Position must be header or footer")],
    )
    parent_id = IntegerField("Parent", validators=[Optional(), NumberRange(min=1)])
    ordering = _ordering_field()
    status = _status_field()


class BlogForm(FlaskForm):
    title = StringField(
        "Title",
        filters=STRIP,
        validators=[
            InputRequired(message="Title is required"),
            Length(min=5, max=255, message="Title must be at least 5 characters."),
        ],
    )
    slug = StringField("Slug", validators=[Optional(), Length(min=2, max=280, message="Slug must be at least 2 characters.")])
    excerpt = TextAreaField(
        "Excerpt",
        validators=[Optional(), Length(max=300, message="Excerpt must not exceed 300 characters.")],
    )
    content = TextAreaField(
        "Content",
        filters=STRIP,
        validators=[
            InputRequired(message="Content is required"),
            Length(min=20, message="Content must be at least 20 characters."),
        ],
    )
    category = StringField("Category", validators=[Optional(), Length(max=120)])
    tags = ListField("Tags")
    featured_image = StringField("Featured image", validators=[Optional(), Length(max=500)])
    status = StringField(
        "Status",
        default="draft",
        validators=[
            Optional(),
            AnyOf(BLOG_STATUSES, message="Status must be draft, published or archived"),
        ],
    )
    seo_title = StringField(
        "SEO title",
        validators=[Optional(), Length(max=60, message="SEO title must not exceed 60 characters.")],
    )
    meta_description = StringField(
        "Meta description",
        validators=[Optional(), Length(max=160, message="Meta description must not exceed 160 characters.")],
    )


class EventForm(FlaskForm):
    title = StringField(
        "Title",
        filters=STRIP,
        validators=[
            InputRequired(message="Title is required"),
            Length(min=2, max=255, message="Event title must be at least 2 characters."),
        ],
    )
    description = TextAreaField(
        "Description",
        filters=STRIP,
        validators=[
            InputRequired(message="Description is required"),
            Length(min=10, message="Description must be at least 10 characters."),
        ],
    )
    location = StringField(
        "Location",
        filters=STRIP,
        validators=[
            InputRequired(message="Location is required"),
            Length(min=2, max=255, message="Location must be at least 2 characters."),
        ],
    )
    start_date = DateField(
        "Start date",
        format="%Y-%m-%d",
        validators=[InputRequired(message="Start date is required.")],
    )
    end_date = DateField(
        "End date",
        format="%Y-%m-%d",
        validators=[InputRequired(message="End date is required.")],
    )
    price = DecimalField(
        "Price",
        places=2,
        validators=[Optional(), NumberRange(min=0, message="Price must be 0 or more.")],
    )
    target_amount = DecimalField(
        "Target amount",
        places=2,
        validators=[
            InputRequired(message="Target amount is required"),
            NumberRange(min=0, message="Target amount must be a positive number."),
        ],
    )
    is_fixed_donation = BooleanField("Fixed donation", false_values=FALSE_VALUES)
    is_featured = BooleanField("Featured", false_values=FALSE_VALUES)
    feature_image = StringField("Feature image", validators=[Optional(), Length(max=500)])
    status = _status_field()

    def validate_end_date(self, field):
        start = self.start_date.data
        if start and field.data and field.data < start:
            raise FieldError("End date must be after start date")


class SettingForm(FlaskForm):
    key = StringField(
        "Key",
        validators=[
            InputRequired(message="Setting key is required"),
            Length(min=2, max=120, message="Setting key must be at least 2 characters long"),
        ],
    )
    value = TextAreaField("Value", validators=[Optional()])
    type = StringField(
        "Type",
        default="general",
        validators=[Optional(), AnyOf(SETTING_TYPES, message="Unknown setting type")],
    )

    def validate_value(self, field):
        if self.type.data == "social" and field.data:
            URL(message="Social links must be valid URLs")(self, field)


class ContactForm(FlaskForm):
    name = StringField(
        "Name",
        filters=STRIP,
        validators=[
            InputRequired(message="Name is required"),
            Length(min=2, max=160, message="Contact name must be at least 2 characters long"),
        ],
    )
    email = StringField(
        "Email",
        validators=[InputRequired(message="Email is required"), Email(message="Please enter a valid email.")],
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    subject = StringField(
        "Subject",
        validators=[InputRequired(message="Subject is required"), Length(max=255)],
    )
    message = TextAreaField(
        "Message",
        filters=STRIP,
        validators=[
            InputRequired(message="Message is required"),
            Length(min=10, message="Message must be at least 10 characters."),
        ],
    )


class ContactUpdateForm(FlaskForm):
    status = StringField(
        "Status",
        validators=[InputRequired(message="Status is required"), AnyOf(CONTACT_STATUSES)],
    )
    admin_note = TextAreaField("Note", validators=[Optional(), Length(max=2000)])


class PageForm(FlaskForm):
    """Page-builder metadata; `content_data` is a JSON list checked by the content service."""

    title = StringField(
        "Title",
        filters=STRIP,
        validators=[
            InputRequired(message="Please enter a page title"),
            Length(min=2, max=255, message="Page title must be at least 2 characters."),
        ],
    )
    slug = StringField("Slug", validators=[Optional(), Length(min=2, max=280, message="Slug must be at least 2 characters.")])
    meta_title = StringField(
        "Meta title",
        validators=[Optional(), Length(max=60, message="Meta title must not exceed 60 characters.")],
    )
    meta_description = StringField(
        "Meta description",
        validators=[Optional(), Length(max=160, message="Meta description must not exceed 160 characters.")],
    )
    status = _status_field()
