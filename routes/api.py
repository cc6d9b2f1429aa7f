import hmac
import logging
from flask import Blueprint, current_app, jsonify, request, abort
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from extensions import csrf
from service import provisioning_service
from util.exceptions import NotFoundError, PanelError

api_bp = Blueprint("api", __name__, url_prefix="/api")
csrf.exempt(api_bp)
logger = logging.getLogger("daemon")


@api_bp.before_request
def check_daemon_token():
    """The daemon authenticates with the shared token in X-Daemon-Token."""
    expected = current_app.config.get("DAEMON_API_TOKEN")
    if not expected:
        abort(404)
    token = request.headers.get("X-Daemon-Token", "")
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected daemon API call from %s", request.remote_addr)
        abort(401)


@api_bp.errorhandler(401)
def unauthorized(e):
    return jsonify({"error": "unauthorized"}), 401


@api_bp.errorhandler(404)
def not_found(e):
    return jsonify({"error": "not found"}), 404


def _error(e):
    if isinstance(e, NotFoundError):
        return jsonify({"error": e.message}), 404
    return jsonify({"error": e.message}), 400


@api_bp.route("/daemon/items", methods=["GET"])
def list_pending_items():
    items = provisioning_service.pending_items()
    return jsonify({"count": len(items), "items": items})


@api_bp.route("/daemon/tasks/<int:task_id>/ack", methods=["POST"])
def acknowledge_task(task_id):
    try:
        task = provisioning_service.acknowledge_task(task_id)
    except PanelError as e:
        return _error(e)
    return jsonify({"id": task.id, "status": task.status})


@api_bp.route("/daemon/items/<item_type>/<int:item_id>", methods=["POST"])
def report_item(item_type, item_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("success"), bool):
        return jsonify({"error": "'success' must be true or false"}), 400
    try:
        new_status = provisioning_service.report_item_result(
            item_type, item_id, data["success"], data.get("message")
        )
    except PanelError as e:
        db.session.rollback()
        return _error(e)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Couldn't store result of %s #%s", item_type, item_id)
        return jsonify({"error": "database error"}), 500
    return jsonify(
        {"type": item_type, "id": item_id, "status": new_status, "deleted": new_status is None}
    )


@api_bp.route("/daemon/request", methods=["POST"])
def request_daemon():
    data = request.get_json(silent=True) or {}
    sent = provisioning_service.send_daemon_request(data.get("reason") or "api request")
    return jsonify({"sent": sent}), 200 if sent else 503
