"""Forms for the change request blueprint."""

from flask_wtf import FlaskForm
from wtforms import SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Optional

from korban.constants import SACRIFICE_TYPE_LABELS


class ChangeRequestForm(FlaskForm):
    """Form a participant uses to request changes to their details.

    Blank fields are left unchanged.
    """

    participant_id = StringField("Participant", validators=[DataRequired()])
    name = StringField("Name", validators=[Optional(), Length(max=100)])
    phone = StringField("Phone", validators=[Optional(), Length(max=30)])
    email = StringField("Email", validators=[Optional(), Email()])
    sacrifice_type = SelectField(
        "Sacrifice Type",
        choices=[("", "")] + list(SACRIFICE_TYPE_LABELS.items()),
        default="",
        validators=[Optional()],
    )
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=500)])


class ReviewForm(FlaskForm):
    """Admin notes attached to an approval or rejection."""

    notes = TextAreaField("Notes", validators=[Optional(), Length(max=500)])
