from database_init import db
from models.mixins import StatusMixin


class SslCertificate(StatusMixin, db.Model):
    __tablename__ = "ssl_certs"
    __table_args__ = (db.UniqueConstraint("domain_id", "domain_type"),)
    id = db.Column(db.Integer, primary_key=True)
    # id of the domain, alias, subdomain or subdomain alias according to domain_type
    domain_id = db.Column(db.Integer, nullable=False)
    domain_type = db.Column(db.String(15), nullable=False)
    private_key = db.Column(db.Text, nullable=False)
    certificate = db.Column(db.Text, nullable=False)
    ca_bundle = db.Column(db.Text, nullable=True)
    allow_hsts = db.Column(db.Boolean, default=False, nullable=False)
    hsts_max_age = db.Column(db.Integer, default=31536000, nullable=False)
    hsts_include_subdomains = db.Column(db.Boolean, default=False, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f"<SslCertificate {self.domain_type}:{self.domain_id}>"
