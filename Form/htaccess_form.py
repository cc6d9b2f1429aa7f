from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SelectMultipleField
from wtforms.validators import DataRequired, EqualTo, Length


class ProtectedAreaForm(FlaskForm):
    path = StringField("Path", default="/", validators=[DataRequired(), Length(max=255)])
    auth_name = StringField("Area name", validators=[DataRequired(), Length(max=255)])
    user_ids = SelectMultipleField("Users", coerce=int)
    group_ids = SelectMultipleField("Groups", coerce=int)


class HtaccessUserForm(FlaskForm):
    uname = StringField("Username", validators=[DataRequired(), Length(max=64)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )


class HtaccessPasswordForm(FlaskForm):
    password = PasswordField("New password", validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )


class HtaccessGroupForm(FlaskForm):
    ugroup = StringField("Group name", validators=[DataRequired(), Length(max=64)])
    member_ids = SelectMultipleField("Members", coerce=int)
