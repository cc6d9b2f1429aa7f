from database_init import db
from models.mixins import StatusMixin


class HtaccessGroup(StatusMixin, db.Model):
    __tablename__ = "htaccess_groups"
    __table_args__ = (db.UniqueConstraint("domain_id", "ugroup"),)
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    ugroup = db.Column(db.String(255), nullable=False)
    members = db.Column(db.Text, nullable=True)  # comma separated htaccess_users ids

    domain = db.relationship("Domain", back_populates="htaccess_groups")

    def __repr__(self):
        return f"<HtaccessGroup {self.ugroup}>"
