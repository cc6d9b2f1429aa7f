from datetime import datetime
from database_init import db
from flask_login import UserMixin
from models.mixins import StatusMixin
from util.constant import ITEM_STATUS, USER_TYPE


class User(StatusMixin, UserMixin, db.Model):
    __tablename__ = "admin"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(200), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    user_type = db.Column(db.String(10), nullable=False, default=USER_TYPE.CUSTOMER)
    created_by = db.Column(db.Integer, db.ForeignKey("admin.id"), nullable=True)
    fname = db.Column(db.String(200), nullable=True)
    lname = db.Column(db.String(200), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    creator = db.relationship("User", remote_side=[id], backref="created_users")
    domains = db.relationship(
        "Domain", back_populates="owner", lazy=True, cascade="all, delete-orphan"
    )
    ftp_users = db.relationship(
        "FtpUser", back_populates="owner", lazy=True, cascade="all, delete-orphan"
    )
    reseller_props = db.relationship(
        "ResellerProperties",
        back_populates="reseller",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self):
        return self.user_type == USER_TYPE.ADMIN

    @property
    def is_reseller(self):
        return self.user_type == USER_TYPE.RESELLER

    @property
    def is_customer(self):
        return self.user_type == USER_TYPE.CUSTOMER

    # Flask-Login refuses inactive accounts
    @property
    def is_active(self):
        return self.status == ITEM_STATUS.ok.value

    @property
    def main_domain(self):
        return self.domains[0] if self.domains else None

    def get_id(self):
        return str(self.id)

    def __repr__(self):
        return f"<User {self.username} ({self.user_type})>"
