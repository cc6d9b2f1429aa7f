from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, IntegerField, SelectField, TextAreaField, BooleanField
from wtforms.validators import DataRequired, EqualTo, Length, NumberRange, Optional

ACCOUNT_TYPE_CHOICES = [
    ("normal", "Mailbox"),
    ("forward", "Forward"),
    ("normal_forward", "Mailbox and forward"),
]


class MailAccountForm(FlaskForm):
    # "<domain_type>:<id>" of the owning domain entity
    entity = SelectField("Domain", validators=[DataRequired()])
    local_part = StringField("Username", validators=[DataRequired(), Length(max=64)])
    account_type = SelectField("Type", choices=ACCOUNT_TYPE_CHOICES, default="normal")
    password = PasswordField("Password", validators=[Optional(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )
    quota = IntegerField("Quota (MiB)", default=10, validators=[Optional(), NumberRange(min=0)])
    forward_list = TextAreaField("Forward to", validators=[Optional()], description="One address per line")


class MailEditForm(FlaskForm):
    account_type = SelectField("Type", choices=ACCOUNT_TYPE_CHOICES)
    password = PasswordField("New password", validators=[Optional(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )
    quota = IntegerField("Quota (MiB)", validators=[Optional(), NumberRange(min=0)])
    forward_list = TextAreaField("Forward to", validators=[Optional()])


class AutoresponderForm(FlaskForm):
    enabled = BooleanField("Enabled")
    text = TextAreaField("Message", validators=[Optional(), Length(max=10000)])


class CatchallForm(FlaskForm):
    entity = SelectField("Domain", validators=[DataRequired()])
    targets = TextAreaField("Deliver to", validators=[DataRequired()], description="One address per line")
