from database_init import db
from models.mixins import StatusMixin


class DnsRecord(StatusMixin, db.Model):
    __tablename__ = "domain_dns"
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    alias_id = db.Column(db.Integer, db.ForeignKey("domain_aliases.id"), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    dns_class = db.Column(db.String(10), default="IN", nullable=False)
    record_type = db.Column(db.String(10), nullable=False)  # A, CNAME, TXT,...
    data = db.Column(db.Text, nullable=False)
    owned_by = db.Column(db.String(255), default="custom_dns_feature", nullable=False)

    domain = db.relationship("Domain", back_populates="dns_records")
    alias = db.relationship("DomainAlias")

    def __repr__(self):
        return f"<DnsRecord {self.name} ({self.record_type})>"
