from datetime import datetime
from database_init import db
from models.mixins import StatusMixin
from util.constant import DOMAIN_TYPE


class Domain(StatusMixin, db.Model):
    __tablename__ = "domain"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)  # example.com
    admin_id = db.Column(db.Integer, db.ForeignKey("admin.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    # -1 disabled, 0 unlimited
    subdomain_limit = db.Column(db.Integer, default=0, nullable=False)
    alias_limit = db.Column(db.Integer, default=0, nullable=False)
    mail_limit = db.Column(db.Integer, default=0, nullable=False)
    ftp_limit = db.Column(db.Integer, default=0, nullable=False)
    sql_db_limit = db.Column(db.Integer, default=0, nullable=False)
    sql_user_limit = db.Column(db.Integer, default=0, nullable=False)
    disk_limit = db.Column(db.Integer, default=0, nullable=False)  # MiB
    traffic_limit = db.Column(db.Integer, default=0, nullable=False)  # MiB
    mail_quota = db.Column(db.BigInteger, default=0, nullable=False)  # bytes, 0 unlimited
    ssl_allowed = db.Column(db.Boolean, default=True, nullable=False)
    protected_areas_allowed = db.Column(db.Boolean, default=True, nullable=False)
    dns_allowed = db.Column(db.Boolean, default=True, nullable=False)

    owner = db.relationship("User", back_populates="domains")
    aliases = db.relationship(
        "DomainAlias", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    subdomains = db.relationship(
        "Subdomain", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    mail_users = db.relationship(
        "MailUser", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    dns_records = db.relationship(
        "DnsRecord", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    sql_databases = db.relationship(
        "SqlDatabase", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    protected_areas = db.relationship(
        "ProtectedArea", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    htaccess_users = db.relationship(
        "HtaccessUser", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )
    htaccess_groups = db.relationship(
        "HtaccessGroup", back_populates="domain", lazy=True, cascade="all, delete-orphan"
    )

    domain_type = DOMAIN_TYPE.DOMAIN
    mount = "/"

    @property
    def fqdn(self):
        return self.name

    def __repr__(self):
        return f"<Domain {self.name}>"
