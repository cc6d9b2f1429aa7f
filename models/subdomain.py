from database_init import db
from models.mixins import StatusMixin
from util.constant import DOMAIN_TYPE


class Subdomain(StatusMixin, db.Model):
    __tablename__ = "subdomain"
    __table_args__ = (db.UniqueConstraint("domain_id", "name"),)
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)  # label only: "blog"
    mount = db.Column(db.String(255), nullable=False)

    domain = db.relationship("Domain", back_populates="subdomains")

    domain_type = DOMAIN_TYPE.SUBDOMAIN

    @property
    def fqdn(self):
        return f"{self.name}.{self.domain.name}"

    def __repr__(self):
        return f"<Subdomain {self.name} of domain {self.domain_id}>"
