from flask_wtf import FlaskForm
from wtforms import PasswordField, TextAreaField, BooleanField, IntegerField
from wtforms.validators import DataRequired, NumberRange, Optional


class SslCertificateForm(FlaskForm):
    private_key = TextAreaField("Private key (PEM)", validators=[DataRequired()])
    passphrase = PasswordField("Private key passphrase", validators=[Optional()])
    certificate = TextAreaField("Certificate (PEM)", validators=[DataRequired()])
    ca_bundle = TextAreaField("CA bundle (PEM)", validators=[Optional()])
    allow_hsts = BooleanField("Enable HSTS")
    hsts_max_age = IntegerField("HSTS max-age (seconds)", default=31536000, validators=[NumberRange(min=0)])
    hsts_include_subdomains = BooleanField("HSTS includeSubDomains")
