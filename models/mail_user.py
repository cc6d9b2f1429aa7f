from database_init import db
from models.mixins import StatusMixin


class MailUser(StatusMixin, db.Model):
    __tablename__ = "mail_users"
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    # id of the owning alias/subdomain/subdomain alias, None for the main domain
    sub_id = db.Column(db.Integer, nullable=True)
    mail_acc = db.Column(db.String(255), nullable=False)  # local part, or target list for catch-alls
    mail_addr = db.Column(db.String(255), nullable=False, unique=True)
    mail_pass = db.Column(db.String(255), nullable=True)
    mail_forward = db.Column(db.Text, nullable=True)  # comma separated
    mail_type = db.Column(db.String(60), nullable=False)  # e.g. "normal_mail,normal_forward"
    po_active = db.Column(db.Boolean, default=True, nullable=False)
    quota = db.Column(db.BigInteger, nullable=True)  # bytes, 0 unlimited, None for forwards
    auto_respond = db.Column(db.Boolean, default=False, nullable=False)
    auto_respond_text = db.Column(db.Text, nullable=True)
    is_default = db.Column(db.Boolean, default=False, nullable=False)

    domain = db.relationship("Domain", back_populates="mail_users")

    @property
    def types(self):
        return [t for t in self.mail_type.split(",") if t]

    @property
    def is_mailbox(self):
        return any(t.endswith("_mail") for t in self.types)

    @property
    def is_forward(self):
        return any(t.endswith("_forward") for t in self.types)

    @property
    def is_catchall(self):
        return any(t.endswith("_catchall") for t in self.types)

    @property
    def forwards(self):
        if not self.mail_forward:
            return []
        return [f.strip() for f in self.mail_forward.split(",") if f.strip()]

    def __repr__(self):
        return f"<MailUser {self.mail_addr}>"
