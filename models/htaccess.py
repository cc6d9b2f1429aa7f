from database_init import db
from models.mixins import StatusMixin


class ProtectedArea(StatusMixin, db.Model):
    __tablename__ = "htaccess"
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    path = db.Column(db.String(255), nullable=False)
    auth_name = db.Column(db.String(255), nullable=False)
    auth_type = db.Column(db.String(255), default="Basic", nullable=False)
    user_ids = db.Column(db.Text, nullable=True)  # comma separated htaccess_users ids
    group_ids = db.Column(db.Text, nullable=True)  # comma separated htaccess_groups ids

    domain = db.relationship("Domain", back_populates="protected_areas")

    def __repr__(self):
        return f"<ProtectedArea {self.path}>"
