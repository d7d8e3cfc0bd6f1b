"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from flask_wtf.file import FileAllowed, FileField  # type: ignore
from wtforms import IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from bucketly import constants
from bucketly.badges.models import CriteriaType


class BadgeForm(FlaskForm):
    """Form for creating or editing a badge definition."""

    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=500)])
    criteria_type = SelectField(
        "Criteria",
        choices=[(criteria.value, criteria.value) for criteria in CriteriaType],
        validators=[DataRequired()],
    )
    target = IntegerField("Target", validators=[DataRequired(), NumberRange(min=1)])
    icon = FileField(
        "Icon",
        validators=[
            FileAllowed(["jpg", "jpeg", "png", "gif", "webp"], "Images only!"),
        ],
    )


class BroadcastForm(FlaskForm):
    """Form for sending a notification to every user."""

    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    message = TextAreaField("Message", validators=[DataRequired(), Length(max=2000)])
    notification_type = SelectField(
        "Type",
        choices=[(value, value.title()) for value in constants.NOTIFICATION_TYPES],
        default="info",
    )
    priority = SelectField(
        "Priority",
        choices=[(value, value.title()) for value in constants.NOTIFICATION_PRIORITIES],
        default="medium",
    )
