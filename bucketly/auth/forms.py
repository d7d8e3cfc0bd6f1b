"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import PasswordField, StringField, SubmitField, ValidationError
from wtforms.validators import DataRequired, Email, EqualTo

from bucketly.core.validation import validate_password, validate_username


class RegisterForm(FlaskForm):
    """Registration form."""

    username = StringField("Username", validators=[DataRequired()])
    email = StringField(
        "Email",
        validators=[DataRequired(), Email()],
        render_kw={"autocomplete": "email"},
    )
    password = PasswordField(
        "Password",
        validators=[DataRequired()],
        render_kw={"autocomplete": "new-password"},
    )
    confirm_password = PasswordField(
        "Confirm Password",
        validators=[
            DataRequired(),
            EqualTo("password", message="Passwords must match."),
        ],
    )
    submit = SubmitField("Register")

    def validate_username(self, field):
        """Apply the username rules."""
        result = validate_username(field.data)
        if not result.is_valid:
            raise ValidationError(result.error)

    def validate_password(self, field):
        """Apply the password strength rules."""
        result = validate_password(field.data)
        if not result.is_valid:
            raise ValidationError(result.error)
