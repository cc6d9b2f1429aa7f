from database_init import db
from models.mixins import StatusMixin


class HtaccessUser(StatusMixin, db.Model):
    __tablename__ = "htaccess_users"
    __table_args__ = (db.UniqueConstraint("domain_id", "uname"),)
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    uname = db.Column(db.String(255), nullable=False)
    upass = db.Column(db.String(255), nullable=False)

    domain = db.relationship("Domain", back_populates="htaccess_users")

    def __repr__(self):
        return f"<HtaccessUser {self.uname}>"
