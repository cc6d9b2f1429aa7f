import logging
from datetime import datetime
from flask import current_app
from rq import get_current_job
from database_init import db
from models.provisioning_task import ProvisioningTask
from service.daemon_service import DaemonClient
from util.constant import TASK_STATUS
from util.exceptions import DaemonRequestError

logger = logging.getLogger("daemon")


def notify_daemon(task_id):
    """Job: deliver one daemon request. Raises so that rq retries on failure."""
    task = db.session.get(ProvisioningTask, task_id)
    if not task:
        return
    if task.status == TASK_STATUS.acknowledged.value:
        return

    client = DaemonClient.from_config(current_app.config)
    task.attempts = (task.attempts or 0) + 1

    if client.send_request():
        task.status = TASK_STATUS.delivered.value
        task.delivered_at = datetime.utcnow()
        task.last_error = None
        db.session.commit()
        return task.id

    task.last_error = client.last_error
    job = get_current_job()
    if job is None or not job.retries_left:
        task.status = TASK_STATUS.failed.value
        logger.error("Task #%s failed after %s attempt(s)", task.id, task.attempts)
    db.session.commit()
    raise DaemonRequestError(client.last_error or "Daemon request failed")
