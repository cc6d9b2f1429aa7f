from datetime import datetime
from database_init import db
from util.constant import TASK_STATUS


class ProvisioningTask(db.Model):
    __tablename__ = "provisioning_task"
    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(
        db.String(20), default=TASK_STATUS.pending.value, nullable=False, index=True
    )
    reason = db.Column(db.String(255), nullable=True)
    requested_by = db.Column(db.String(200), nullable=True)
    job_id = db.Column(db.String(64), nullable=True)  # rq job id
    attempts = db.Column(db.Integer, default=0, nullable=False)
    last_error = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    delivered_at = db.Column(db.DateTime, nullable=True)
    acknowledged_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f"<ProvisioningTask #{self.id} {self.status}>"
