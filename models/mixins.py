from datetime import datetime
from database_init import db
from util.constant import ITEM_STATUS


class StatusMixin:
    """Provisioning status shared by every row the daemon works on."""

    status = db.Column(
        db.String(255), nullable=False, default=ITEM_STATUS.toadd.value, index=True
    )
    status_message = db.Column(db.Text, nullable=True)  # last daemon error
    status_changed_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def is_stable(self):
        return self.status in (ITEM_STATUS.ok.value, ITEM_STATUS.disabled.value)
