from database_init import db
from models.mixins import StatusMixin


class FtpUser(StatusMixin, db.Model):
    __tablename__ = "ftp_users"
    id = db.Column(db.Integer, primary_key=True)
    userid = db.Column(db.String(255), nullable=False, unique=True)  # name@domain.tld
    admin_id = db.Column(db.Integer, db.ForeignKey("admin.id"), nullable=False)
    passwd = db.Column(db.String(255), nullable=False)
    homedir = db.Column(db.String(255), nullable=False)

    owner = db.relationship("User", back_populates="ftp_users")

    def __repr__(self):
        return f"<FtpUser {self.userid}>"
