from database_init import db


class FtpGroup(db.Model):
    __tablename__ = "ftp_group"
    id = db.Column(db.Integer, primary_key=True)
    groupname = db.Column(db.String(255), nullable=False, unique=True)  # customer username
    members = db.Column(db.Text, nullable=False, default="")  # comma separated userids

    @property
    def member_list(self):
        return [m for m in (self.members or "").split(",") if m]

    def __repr__(self):
        return f"<FtpGroup {self.groupname}>"
