"""Forms for the receipt blueprint."""

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import BooleanField, DecimalField, StringField, TextAreaField
from wtforms.validators import (
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    Regexp,
)


class ReceiptUploadForm(FlaskForm):
    """Form a participant uses to upload a receipt."""

    participant_id = StringField("Participant", validators=[DataRequired()])
    month = StringField(
        "Month",
        validators=[
            DataRequired(),
            Regexp(r"^\d{4}-(0[1-9]|1[0-2])$", message="Month must be YYYY-MM."),
        ],
    )
    amount = DecimalField("Amount", validators=[InputRequired(), NumberRange(min=0)])
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=500)])
    receipt = FileField("Receipt", validators=[FileRequired()])


class ApproveReceiptForm(FlaskForm):
    """Approve a receipt, optionally recording the matching payment."""

    create_payment = BooleanField("Create Payment", default=False)
    notes = TextAreaField("Payment Notes", validators=[Optional(), Length(max=500)])


class RejectReceiptForm(FlaskForm):
    """Reject one or more receipts with a reason."""

    reason = TextAreaField(
        "Reason", validators=[DataRequired(), Length(max=500)]
    )
