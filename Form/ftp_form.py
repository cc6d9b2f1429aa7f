from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SelectField
from wtforms.validators import DataRequired, EqualTo, Length, Optional


class FtpUserForm(FlaskForm):
    entity = SelectField("Domain", validators=[DataRequired()])
    name = StringField("Username", validators=[DataRequired(), Length(max=64)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )
    homedir = StringField("Home directory", default="/", validators=[Optional(), Length(max=255)])


class FtpPasswordForm(FlaskForm):
    password = PasswordField("New password", validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )
    homedir = StringField("Home directory", validators=[Optional(), Length(max=255)])
