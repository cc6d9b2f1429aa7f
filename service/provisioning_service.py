# service/provisioning_service.py
import logging
from datetime import datetime
from flask import current_app, g, has_request_context
from flask_login import current_user
from redis.exceptions import RedisError
from rq import Retry
from database_init import db
from models.provisioning_task import ProvisioningTask
from queue_config import queue
from service.daemon_service import DaemonClient
from service.status_service import PENDING_STATUSES, PROVISIONABLE_MODELS, complete
from util.constant import TASK_STATUS
from util.exceptions import NotFoundError, ValidationError
from util.tasks import notify_daemon

logger = logging.getLogger("daemon")

RETRY_INTERVALS = [10, 30, 60]


def _requested_by():
    if has_request_context() and current_user and current_user.is_authenticated:
        return current_user.username
    return "system"


def send_daemon_request(reason=None):
    """
    Tell the daemon there is pending work. Called after commit.

    At most one request goes out per HTTP request. A failure is logged and
    reported through the return value; the pending rows stay queued in the
    database until the next request reaches the daemon.
    """
    if g.get("daemon_request_sent"):
        return True

    daemon_type = current_app.config.get("DAEMON_TYPE")
    if daemon_type == "imscp":
        client = DaemonClient.from_config(current_app.config)
        sent = client.send_request()
    elif daemon_type == "queue":
        sent = _queue_request(reason)
    else:
        # No daemon to wake up (development, tests)
        sent = True

    if sent:
        g.daemon_request_sent = True
    return sent


def _queue_request(reason):
    task = ProvisioningTask(reason=reason, requested_by=_requested_by())
    db.session.add(task)
    db.session.commit()
    return dispatch_task(task)


def dispatch_task(task):
    max_retries = current_app.config.get("DAEMON_MAX_RETRIES", 3)
    try:
        job = queue.enqueue(
            notify_daemon,
            task.id,
            retry=Retry(max=max_retries, interval=RETRY_INTERVALS[:max_retries]),
        )
    except RedisError as e:
        task.last_error = f"Couldn't enqueue daemon request: {e}"
        db.session.commit()
        logger.error("Task #%s not enqueued: %s", task.id, e)
        return False

    task.job_id = job.id
    task.status = TASK_STATUS.pending.value
    db.session.commit()
    logger.info("Task #%s enqueued as job %s (%s)", task.id, job.id, task.reason or "-")
    return True


def redispatch_tasks():
    """Enqueue again every task the daemon never received. Returns how many were sent."""
    tasks = (
        ProvisioningTask.query.filter(
            ProvisioningTask.status.in_(
                [TASK_STATUS.pending.value, TASK_STATUS.failed.value]
            )
        )
        .order_by(ProvisioningTask.created_at.asc())
        .all()
    )
    return sum(1 for task in tasks if dispatch_task(task))


def acknowledge_task(task_id):
    task = db.session.get(ProvisioningTask, task_id)
    if task is None:
        raise NotFoundError(f"Task #{task_id} not found.")
    task.status = TASK_STATUS.acknowledged.value
    task.acknowledged_at = datetime.utcnow()
    db.session.commit()
    logger.info("Task #%s acknowledged by daemon", task_id)
    return task


def item_label(item):
    for attr in ("fqdn", "mail_addr", "userid", "username", "uname", "ugroup", "path", "name"):
        value = getattr(item, attr, None)
        if value:
            return value
    return str(item.id)


def pending_items():
    """The daemon's work queue: every row waiting for a system-level operation."""
    items = []
    for item_type, model in PROVISIONABLE_MODELS.items():
        rows = model.query.filter(model.status.in_(PENDING_STATUSES)).order_by(model.id).all()
        for row in rows:
            items.append(
                {
                    "type": item_type,
                    "id": row.id,
                    "status": row.status,
                    "name": item_label(row),
                }
            )
    return items


def report_item_result(item_type, item_id, success, message=None):
    model = PROVISIONABLE_MODELS.get(item_type)
    if model is None:
        raise ValidationError(f"Unknown item type '{item_type}'.")
    item = db.session.get(model, item_id)
    if item is None:
        raise NotFoundError(f"{item_type} #{item_id} not found.")

    label = item_label(item)
    new_status = complete(item, success, message)
    db.session.commit()
    if success:
        logger.info("%s %s processed, status now %s", item_type, label, new_status or "deleted")
    else:
        logger.warning("%s %s failed: %s", item_type, label, message)
    return new_status
