from database_init import db
from models.mixins import StatusMixin
from util.constant import DOMAIN_TYPE


class SubdomainAlias(StatusMixin, db.Model):
    __tablename__ = "subdomain_alias"
    __table_args__ = (db.UniqueConstraint("alias_id", "name"),)
    id = db.Column(db.Integer, primary_key=True)
    alias_id = db.Column(db.Integer, db.ForeignKey("domain_aliases.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    mount = db.Column(db.String(255), nullable=False)

    alias = db.relationship("DomainAlias", back_populates="subdomains")

    domain_type = DOMAIN_TYPE.SUBDOMAIN_ALIAS

    @property
    def domain(self):
        return self.alias.domain

    @property
    def fqdn(self):
        return f"{self.name}.{self.alias.name}"

    def __repr__(self):
        return f"<SubdomainAlias {self.name} of alias {self.alias_id}>"
