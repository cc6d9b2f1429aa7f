from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, IntegerField, BooleanField
from wtforms.validators import InputRequired, Email, EqualTo, Length, NumberRange, Optional

LIMIT_HELP = "-1 disabled, 0 unlimited"


class DummyForm(FlaskForm):
    """CSRF token only, for action buttons."""


class AccountForm(FlaskForm):
    username = StringField("Username", validators=[InputRequired(), Length(min=2, max=200)])
    email = StringField("Email", validators=[InputRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[InputRequired(), Length(min=6)])
    confirm_password = PasswordField(
        "Confirm password",
        validators=[InputRequired(), EqualTo("password", message="Passwords do not match")],
    )
    fname = StringField("First name", validators=[Optional(), Length(max=200)])
    lname = StringField("Last name", validators=[Optional(), Length(max=200)])


def _limit(label):
    return IntegerField(
        label,
        default=0,
        validators=[InputRequired(), NumberRange(min=-1)],
        description=LIMIT_HELP,
    )


class ResellerLimitsForm(FlaskForm):
    max_dmn = _limit("Domains")
    max_sub = _limit("Subdomains")
    max_als = _limit("Domain aliases")
    max_mail = _limit("Mail accounts")
    max_ftp = _limit("FTP accounts")
    max_sql_db = _limit("SQL databases")
    max_sql_user = _limit("SQL users")
    max_disk = _limit("Disk space (MiB)")
    max_traff = _limit("Monthly traffic (MiB)")

    def limits(self):
        return {name[4:]: field.data for name, field in self._fields.items() if name.startswith("max_")}


class ResellerForm(AccountForm, ResellerLimitsForm):
    pass


class CustomerLimitsForm(FlaskForm):
    subdomain_limit = _limit("Subdomains")
    alias_limit = _limit("Domain aliases")
    mail_limit = _limit("Mail accounts")
    ftp_limit = _limit("FTP accounts")
    sql_db_limit = _limit("SQL databases")
    sql_user_limit = _limit("SQL users")
    disk_limit = _limit("Disk space (MiB)")
    traffic_limit = _limit("Monthly traffic (MiB)")
    mail_quota = IntegerField(
        "Mail quota (MiB)",
        default=0,
        validators=[InputRequired(), NumberRange(min=0)],
        description="0 unlimited",
    )
    ssl_allowed = BooleanField("SSL", default=True)
    protected_areas_allowed = BooleanField("Protected areas", default=True)
    dns_allowed = BooleanField("Custom DNS records", default=True)

    def limits(self):
        return {name: field.data for name, field in self._fields.items() if name.endswith("_limit")}

    def features(self):
        return {
            "ssl_allowed": self.ssl_allowed.data,
            "protected_areas_allowed": self.protected_areas_allowed.data,
            "dns_allowed": self.dns_allowed.data,
        }


class CustomerForm(AccountForm, CustomerLimitsForm):
    domain_name = StringField("Domain name", validators=[InputRequired(), Length(max=255)])
