"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, EqualTo, Length, Optional


class RegisterForm(FlaskForm):
    """Participant self-registration form."""

    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=6),
            EqualTo("confirm_password", message="Passwords must match."),
        ],
    )
    confirm_password = PasswordField("Confirm Password", validators=[DataRequired()])
    display_name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    participant_id = StringField("Participant", validators=[Optional()])


class AdminAccountForm(FlaskForm):
    """Form used by an admin to create another admin account."""

    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    display_name = StringField("Name", validators=[DataRequired(), Length(max=100)])
