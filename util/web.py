import logging
from flask import abort, flash
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from util.exceptions import NotFoundError, PanelError

logger = logging.getLogger("panel")

UNEXPECTED_ERROR = "An unexpected error occurred. Please contact your administrator."


def run_action(action, success_message, *args, **kwargs):
    """
    Call a service function and flash the outcome.

    Returns (result, ok). Panel errors are shown to the user, database errors
    are rolled back and logged.
    """
    try:
        result = action(*args, **kwargs)
    except NotFoundError:
        abort(404)
    except PanelError as e:
        db.session.rollback()
        flash(e.message, e.category)
        return None, False
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error in %s", getattr(action, "__name__", action))
        flash(UNEXPECTED_ERROR, "danger")
        return None, False
    if success_message:
        flash(success_message, "success")
    return result, True


def require_user_type(*types):
    """Blueprint guard: 403 for other account types."""
    if not current_user.is_authenticated:
        return
    if current_user.user_type not in types:
        abort(403)


def entity_key(entity):
    return f"{entity.domain_type}:{entity.id}"


def parse_entity_key(value):
    """'<domain_type>:<id>' -> (domain_type, id)"""
    try:
        domain_type, entity_id = (value or "").split(":", 1)
        return domain_type, int(entity_id)
    except ValueError:
        abort(400)


def entity_choices(entities):
    return [(entity_key(e), e.fqdn) for e in entities]


def form_errors(form):
    for field, errors in form.errors.items():
        label = getattr(getattr(form, field, None), "label", None)
        for error in errors:
            flash(f"{label.text if label else field}: {error}", "danger")
