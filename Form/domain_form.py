from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional
from util.constant import DNS_RECORD_TYPES


class AliasForm(FlaskForm):
    name = StringField("Domain alias (example.org)", validators=[DataRequired(), Length(max=255)])
    mount = StringField("Mount point", validators=[Optional(), Length(max=255)])
    url_forward = StringField("URL forward", validators=[Optional(), Length(max=255)])


class SubdomainForm(FlaskForm):
    # "<domain_type>:<id>" of the parent
    parent = SelectField("Parent domain", validators=[DataRequired()])
    name = StringField("Subdomain name", validators=[DataRequired(), Length(max=63)])
    mount = StringField("Mount point", validators=[Optional(), Length(max=255)])


class UrlForwardForm(FlaskForm):
    url_forward = StringField("URL forward", validators=[Optional(), Length(max=255)])


class DnsRecordForm(FlaskForm):
    zone = SelectField("Zone", validators=[DataRequired()])
    name = StringField("Name", validators=[Optional(), Length(max=255)], description="@ for the zone apex")
    record_type = SelectField(
        "Type", choices=[(t, t) for t in DNS_RECORD_TYPES], validators=[DataRequired()]
    )
    rdata = TextAreaField("Data", validators=[DataRequired()])


class DnsRecordEditForm(FlaskForm):
    name = StringField("Name", validators=[Optional(), Length(max=255)])
    rdata = TextAreaField("Data", validators=[DataRequired()])
