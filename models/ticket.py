from datetime import datetime
from database_init import db
from util.constant import TICKET_STATUS


class Ticket(db.Model):
    __tablename__ = "tickets"
    id = db.Column(db.Integer, primary_key=True)
    # 1: customer -> reseller, 2: reseller -> admin
    level = db.Column(db.Integer, nullable=False, default=1)
    from_id = db.Column(db.Integer, db.ForeignKey("admin.id"), nullable=False)
    to_id = db.Column(db.Integer, db.ForeignKey("admin.id"), nullable=False)
    status = db.Column(db.String(20), default=TICKET_STATUS.open.value, nullable=False)
    reply_to = db.Column(db.Integer, db.ForeignKey("tickets.id"), nullable=True)
    urgency = db.Column(db.Integer, default=2, nullable=False)  # 1 low .. 4 very high
    subject = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sender = db.relationship("User", foreign_keys=[from_id])
    recipient = db.relationship("User", foreign_keys=[to_id])
    replies = db.relationship(
        "Ticket",
        backref=db.backref("parent", remote_side=[id]),
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Ticket.created_at",
    )

    def __repr__(self):
        return f"<Ticket #{self.id} {self.subject}>"
