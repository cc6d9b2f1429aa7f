from datetime import datetime
from database_init import db
from models.mixins import StatusMixin
from util.constant import DOMAIN_TYPE


class DomainAlias(StatusMixin, db.Model):
    __tablename__ = "domain_aliases"
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False, unique=True)
    mount = db.Column(db.String(255), nullable=False)  # /alias.tld
    url_forward = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    domain = db.relationship("Domain", back_populates="aliases")
    subdomains = db.relationship(
        "SubdomainAlias", back_populates="alias", lazy=True, cascade="all, delete-orphan"
    )

    domain_type = DOMAIN_TYPE.ALIAS

    @property
    def fqdn(self):
        return self.name

    def __repr__(self):
        return f"<DomainAlias {self.name}>"
