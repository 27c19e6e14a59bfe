"""Forms for the participant blueprint."""

from flask_wtf import FlaskForm
from wtforms import SelectField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

from korban.constants import DEFAULT_SACRIFICE_TYPE, SACRIFICE_TYPE_LABELS


class ParticipantForm(FlaskForm):
    """Form for creating or editing a participant."""

    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    group_id = StringField("Group", validators=[DataRequired()])
    phone = StringField("Phone", validators=[Optional(), Length(max=30)])
    email = StringField("Email", validators=[Optional(), Email()])
    user_id = StringField("Linked Account", validators=[Optional()])
    sacrifice_type = SelectField(
        "Sacrifice Type",
        choices=list(SACRIFICE_TYPE_LABELS.items()),
        default=DEFAULT_SACRIFICE_TYPE,
    )
