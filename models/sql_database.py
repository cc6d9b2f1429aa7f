from database_init import db
from models.mixins import StatusMixin


class SqlDatabase(StatusMixin, db.Model):
    __tablename__ = "sql_database"
    id = db.Column(db.Integer, primary_key=True)
    domain_id = db.Column(db.Integer, db.ForeignKey("domain.id"), nullable=False)
    name = db.Column(db.String(64), nullable=False, unique=True)

    domain = db.relationship("Domain", back_populates="sql_databases")
    users = db.relationship(
        "SqlUser", back_populates="database", lazy=True, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<SqlDatabase {self.name}>"
