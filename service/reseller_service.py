# service/reseller_service.py
import logging
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash
from database_init import db
from models.user import User
from models.domain import Domain
from models.reseller_props import ResellerProperties
from models.ticket import Ticket
from service.status_service import OK, TODELETE
from util.constant import LIMIT_DISABLED, LIMIT_FIELDS, LIMIT_UNLIMITED, USER_TYPE
from util.exceptions import LimitReachedError, NotFoundError, ValidationError

logger = logging.getLogger("panel")

RESELLER_LIMIT_KEYS = ("dmn",) + tuple(LIMIT_FIELDS.values())

LIMIT_LABELS = {
    "dmn": "domains",
    "sub": "subdomains",
    "als": "domain aliases",
    "mail": "mail accounts",
    "ftp": "FTP accounts",
    "sql_db": "SQL databases",
    "sql_user": "SQL users",
    "disk": "disk space",
    "traff": "monthly traffic",
}


def get_reseller(reseller_id):
    reseller = User.query.filter_by(id=reseller_id, user_type=USER_TYPE.RESELLER).first()
    if not reseller:
        raise NotFoundError(f"Reseller with ID {reseller_id} not found.")
    return reseller


def get_reseller_properties(reseller_id):
    props = ResellerProperties.query.filter_by(reseller_id=reseller_id).first()
    if not props:
        raise NotFoundError(f"Properties for reseller with ID {reseller_id} were not found.")
    return props


def recalculate_reseller_assignments(reseller_id):
    """
    Recompute the reseller's current_* counters.

    The counters are the sum of what the reseller assigned to its customers,
    not what the customers actually consume. Domains scheduled for deletion
    no longer count.
    """
    props = get_reseller_properties(reseller_id)
    domains = (
        Domain.query.join(User, Domain.admin_id == User.id)
        .filter(User.created_by == reseller_id, Domain.status != TODELETE)
        .all()
    )
    props.current_dmn_cnt = len(domains)
    for field, key in LIMIT_FIELDS.items():
        props.set_current(key, sum(max(getattr(d, field) or 0, 0) for d in domains))
    return props


def check_assignment(props, key, new, old=0):
    """
    Check that the reseller can give ``new`` (instead of ``old``) for ``key``.

    Returns an error message, or None when the assignment fits.
    """
    label = LIMIT_LABELS[key]
    maximum = props.maximum(key)
    if maximum == LIMIT_UNLIMITED:
        return None
    if maximum == LIMIT_DISABLED:
        if new != LIMIT_DISABLED:
            return f"The {label} feature is disabled for your account."
        return None
    if new == LIMIT_UNLIMITED:
        return f"You cannot assign unlimited {label}: your own limit is {maximum}."
    if new == LIMIT_DISABLED:
        return None
    if props.current(key) - max(old or 0, 0) + new > maximum:
        return f"You cannot assign more than {maximum} {label} in total."
    return None


def check_customer_limits(props, limits, old_limits=None, new_domain=False):
    """Raise LimitReachedError listing every limit the reseller cannot assign."""
    errors = []
    if new_domain:
        max_dmn = props.maximum("dmn")
        if max_dmn == LIMIT_DISABLED or (max_dmn > 0 and props.current_dmn_cnt >= max_dmn):
            errors.append("You have reached your domains limit.")
    for field, value in limits.items():
        key = LIMIT_FIELDS[field]
        old = (old_limits or {}).get(field, 0)
        error = check_assignment(props, key, value, old)
        if error:
            errors.append(error)
    if errors:
        raise LimitReachedError(" ".join(errors))


def _validate_max_limits(limits):
    for key, value in limits.items():
        if key not in RESELLER_LIMIT_KEYS:
            raise ValidationError(f"Unknown limit '{key}'.")
        if value is None or value < LIMIT_DISABLED:
            raise ValidationError(f"Invalid value for the {LIMIT_LABELS[key]} limit.")


def create_reseller(admin, username, password, email, limits, fname=None, lname=None):
    username = (username or "").strip().lower()
    if User.query.filter_by(username=username).first():
        raise ValidationError("This username is already in use.")
    _validate_max_limits(limits)

    try:
        reseller = User(
            username=username,
            password=generate_password_hash(password),
            email=email,
            fname=fname,
            lname=lname,
            user_type=USER_TYPE.RESELLER,
            created_by=admin.id,
            status=OK,
        )
        props = ResellerProperties(reseller=reseller)
        for key, value in limits.items():
            props.set_maximum(key, value)
        for key in RESELLER_LIMIT_KEYS:
            props.set_current(key, 0)
        db.session.add(reseller)
        db.session.add(props)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("%s: added reseller %s", admin.username, username)
    return reseller


def update_reseller_limits(admin, reseller, limits):
    _validate_max_limits(limits)
    props = recalculate_reseller_assignments(reseller.id)
    errors = []
    for key, value in limits.items():
        current = props.current(key)
        if value == LIMIT_DISABLED and current > 0:
            errors.append(f"The reseller already assigned {current} {LIMIT_LABELS[key]}.")
        elif value > 0 and value < current:
            errors.append(
                f"The {LIMIT_LABELS[key]} limit cannot be lower than what is already assigned ({current})."
            )
    if errors:
        db.session.rollback()
        raise LimitReachedError(" ".join(errors))

    try:
        for key, value in limits.items():
            props.set_maximum(key, value)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("%s: updated limits of reseller %s", admin.username, reseller.username)
    return props


def delete_reseller(admin, reseller_id):
    reseller = get_reseller(reseller_id)
    if User.query.filter_by(created_by=reseller.id).count():
        raise ValidationError(
            "This reseller still owns customer accounts. Move or delete them first."
        )
    try:
        Ticket.query.filter(
            (Ticket.from_id == reseller.id) | (Ticket.to_id == reseller.id)
        ).delete(synchronize_session=False)
        db.session.delete(reseller)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("%s: deleted reseller %s", admin.username, reseller.username)
