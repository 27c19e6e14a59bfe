"""Forms for the payment blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, DecimalField, StringField, TextAreaField
from wtforms.validators import (
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    Regexp,
)


class PaymentForm(FlaskForm):
    """Form for recording a payment."""

    participant_id = StringField("Participant", validators=[DataRequired()])
    month = StringField(
        "Month",
        validators=[
            DataRequired(),
            Regexp(r"^\d{4}-(0[1-9]|1[0-2])$", message="Month must be YYYY-MM."),
        ],
    )
    amount = DecimalField("Amount", validators=[InputRequired(), NumberRange(min=0)])
    is_paid = BooleanField("Paid", default=True)
    paid_date = DateField("Paid Date", validators=[Optional()])
    payment_method = StringField(
        "Payment Method", validators=[Optional(), Length(max=50)]
    )
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=500)])


class ReminderForm(FlaskForm):
    """Form for sending payment reminders."""

    group_id = StringField("Group", validators=[Optional()])
