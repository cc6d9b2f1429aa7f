from database_init import db


def _column_name(prefix, key):
    if key in ("disk", "traff"):
        return f"{prefix}_{key}_amnt"
    return f"{prefix}_{key}_cnt"


class ResellerProperties(db.Model):
    __tablename__ = "reseller_props"
    id = db.Column(db.Integer, primary_key=True)
    reseller_id = db.Column(
        db.Integer, db.ForeignKey("admin.id"), unique=True, nullable=False
    )
    # max_* : 0 unlimited, -1 disabled; current_* : sum of what is assigned to customers
    max_dmn_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_dmn_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_sub_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_sub_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_als_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_als_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_mail_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_mail_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_ftp_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_ftp_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_sql_db_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_sql_db_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_sql_user_cnt = db.Column(db.Integer, default=0, nullable=False)
    current_sql_user_cnt = db.Column(db.Integer, default=0, nullable=False)
    max_disk_amnt = db.Column(db.Integer, default=0, nullable=False)  # MiB
    current_disk_amnt = db.Column(db.Integer, default=0, nullable=False)
    max_traff_amnt = db.Column(db.Integer, default=0, nullable=False)  # MiB
    current_traff_amnt = db.Column(db.Integer, default=0, nullable=False)

    reseller = db.relationship("User", back_populates="reseller_props")

    def current(self, key):
        return getattr(self, _column_name("current", key))

    def maximum(self, key):
        return getattr(self, _column_name("max", key))

    def set_current(self, key, value):
        setattr(self, _column_name("current", key), value)

    def set_maximum(self, key, value):
        setattr(self, _column_name("max", key), value)

    def __repr__(self):
        return f"<ResellerProperties reseller={self.reseller_id}>"
