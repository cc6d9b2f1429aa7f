from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, TextAreaField
from wtforms.validators import DataRequired, Length

URGENCY_CHOICES = [(1, "Low"), (2, "Medium"), (3, "High"), (4, "Very high")]


class TicketForm(FlaskForm):
    subject = StringField("Subject", validators=[DataRequired(), Length(max=255)])
    urgency = SelectField("Urgency", choices=URGENCY_CHOICES, coerce=int, default=2)
    message = TextAreaField("Message", validators=[DataRequired()])


class ReplyForm(FlaskForm):
    message = TextAreaField("Reply", validators=[DataRequired()])
