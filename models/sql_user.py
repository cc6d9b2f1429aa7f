from database_init import db
from models.mixins import StatusMixin


class SqlUser(StatusMixin, db.Model):
    __tablename__ = "sql_user"
    __table_args__ = (db.UniqueConstraint("sqld_id", "name", "host"),)
    id = db.Column(db.Integer, primary_key=True)
    sqld_id = db.Column(db.Integer, db.ForeignKey("sql_database.id"), nullable=False)
    name = db.Column(db.String(32), nullable=False)
    host = db.Column(db.String(255), nullable=False, default="localhost")
    password_hash = db.Column(db.String(64), nullable=False)  # mysql_native_password

    database = db.relationship("SqlDatabase", back_populates="users")

    def __repr__(self):
        return f"<SqlUser {self.name}@{self.host}>"
