from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import DataRequired, EqualTo, Length


class SqlDatabaseForm(FlaskForm):
    name = StringField("Database name", validators=[DataRequired(), Length(max=64)])
    use_prefix = BooleanField("Prefix with my username", default=True)


class SqlUserForm(FlaskForm):
    name = StringField("Username", validators=[DataRequired(), Length(max=32)])
    host = StringField("Host", default="localhost", validators=[DataRequired(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )


class SqlPasswordForm(FlaskForm):
    password = PasswordField("New password", validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password", validators=[EqualTo("password", message="Passwords do not match")]
    )
