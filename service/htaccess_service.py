# service/htaccess_service.py
import logging
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash
from database_init import db
from models.htaccess import ProtectedArea
from models.htaccess_group import HtaccessGroup
from models.htaccess_user import HtaccessUser
from service import counting_service
from service.provisioning_service import send_daemon_request
from service.status_service import (
    TOADD,
    TOCHANGE,
    TODELETE,
    can_transition,
    ensure_stable,
    initial_status,
    transition,
)
from util.exceptions import NotFoundError, PanelError, ValidationError
from util.until import is_valid_account_name, normalize_path

logger = logging.getLogger("panel")


def split_ids(csv):
    return [int(i) for i in (csv or "").split(",") if i.strip().isdigit()]


def _csv(ids):
    return ",".join(str(i) for i in sorted(set(ids))) or None


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _check_feature(domain):
    if not counting_service.customer_has_feature(domain, "protected_areas"):
        raise PanelError("Protected areas feature is disabled for your account.")


def _touch(item):
    if can_transition(item.status, TOCHANGE):
        transition(item, TOCHANGE)


def _get(model, domain, item_id, label):
    item = model.query.filter_by(id=item_id, domain_id=domain.id).first()
    if not item:
        raise NotFoundError(f"{label} not found.")
    return item


def get_area(domain, area_id):
    return _get(ProtectedArea, domain, area_id, "Protected area")


def get_user(domain, user_id):
    return _get(HtaccessUser, domain, user_id, "User")


def get_group(domain, group_id):
    return _get(HtaccessGroup, domain, group_id, "Group")


# ====== Protected areas ======
def add_area(customer, domain, path, auth_name, user_ids=None, group_ids=None):
    _check_feature(domain)
    path = normalize_path(path)
    auth_name = (auth_name or "").strip()
    if not auth_name:
        raise ValidationError("The area name cannot be empty.")
    user_ids = [u.id for u in (get_user(domain, i) for i in (user_ids or []))]
    group_ids = [g.id for g in (get_group(domain, i) for i in (group_ids or []))]
    if not user_ids and not group_ids:
        raise ValidationError("You must select at least one user or group.")
    if ProtectedArea.query.filter(
        ProtectedArea.domain_id == domain.id,
        ProtectedArea.path == path,
        ProtectedArea.status != TODELETE,
    ).first():
        raise ValidationError(f"The {path} area is already protected.")

    area = ProtectedArea(
        domain=domain,
        path=path,
        auth_name=auth_name,
        user_ids=_csv(user_ids),
        group_ids=_csv(group_ids),
        status=initial_status(TOADD),
    )
    db.session.add(area)
    _commit()
    send_daemon_request("protected area added")
    logger.info("%s: added protected area %s", customer.username, path)
    return area


def delete_area(customer, domain, area_id):
    area = get_area(domain, area_id)
    ensure_stable(area)
    transition(area, TODELETE)
    _commit()
    send_daemon_request("protected area deleted")
    logger.info("%s: scheduled deletion of protected area %s", customer.username, area.path)
    return area


def _areas_with(domain, column, item_id):
    return [
        area
        for area in ProtectedArea.query.filter(
            ProtectedArea.domain_id == domain.id, ProtectedArea.status != TODELETE
        ).all()
        if item_id in split_ids(getattr(area, column))
    ]


def _detach(domain, column, item_id):
    """Remove the user/group from every area; areas left unprotected are deleted."""
    for area in _areas_with(domain, column, item_id):
        setattr(area, column, _csv(i for i in split_ids(getattr(area, column)) if i != item_id))
        if not area.user_ids and not area.group_ids:
            if can_transition(area.status, TODELETE):
                transition(area, TODELETE)
        else:
            _touch(area)


# ====== Users ======
def add_user(customer, domain, uname, password):
    _check_feature(domain)
    uname = (uname or "").strip()
    if not is_valid_account_name(uname):
        raise ValidationError("Invalid username.")
    if not password or len(password) < 6:
        raise ValidationError("The password must be at least 6 characters long.")
    if HtaccessUser.query.filter_by(domain_id=domain.id, uname=uname).first():
        raise ValidationError(f"The {uname} user already exists.")

    user = HtaccessUser(
        domain=domain,
        uname=uname,
        upass=generate_password_hash(password),
        status=initial_status(TOADD),
    )
    db.session.add(user)
    _commit()
    send_daemon_request("htaccess user added")
    logger.info("%s: added htaccess user %s", customer.username, uname)
    return user


def change_user_password(customer, domain, user_id, password):
    user = get_user(domain, user_id)
    if not password or len(password) < 6:
        raise ValidationError("The password must be at least 6 characters long.")
    ensure_stable(user)
    user.upass = generate_password_hash(password)
    transition(user, TOCHANGE)
    _commit()
    send_daemon_request("htaccess user changed")
    logger.info("%s: updated htaccess user %s", customer.username, user.uname)
    return user


def delete_user(customer, domain, user_id):
    user = get_user(domain, user_id)
    transition(user, TODELETE)
    try:
        _detach(domain, "user_ids", user.id)
        groups = HtaccessGroup.query.filter(
            HtaccessGroup.domain_id == domain.id, HtaccessGroup.status != TODELETE
        ).all()
        for group in groups:
            members = split_ids(group.members)
            if user.id in members:
                group.members = _csv(m for m in members if m != user.id)
                _touch(group)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    send_daemon_request("htaccess user deleted")
    logger.info("%s: scheduled deletion of htaccess user %s", customer.username, user.uname)
    return user


# ====== Groups ======
def add_group(customer, domain, ugroup, member_ids=None):
    _check_feature(domain)
    ugroup = (ugroup or "").strip()
    if not is_valid_account_name(ugroup):
        raise ValidationError("Invalid group name.")
    if HtaccessGroup.query.filter_by(domain_id=domain.id, ugroup=ugroup).first():
        raise ValidationError(f"The {ugroup} group already exists.")
    members = [u.id for u in (get_user(domain, i) for i in (member_ids or []))]

    group = HtaccessGroup(
        domain=domain, ugroup=ugroup, members=_csv(members), status=initial_status(TOADD)
    )
    db.session.add(group)
    _commit()
    send_daemon_request("htaccess group added")
    logger.info("%s: added htaccess group %s", customer.username, ugroup)
    return group


def assign_user(customer, domain, group_id, user_id, assign=True):
    group = get_group(domain, group_id)
    user = get_user(domain, user_id)
    ensure_stable(group)
    members = split_ids(group.members)
    if assign:
        members.append(user.id)
    else:
        members = [m for m in members if m != user.id]
    group.members = _csv(members)
    transition(group, TOCHANGE)
    _commit()
    send_daemon_request("htaccess group changed")
    logger.info(
        "%s: %s htaccess user %s %s group %s",
        customer.username,
        "assigned" if assign else "removed",
        user.uname,
        "to" if assign else "from",
        group.ugroup,
    )
    return group


def delete_group(customer, domain, group_id):
    group = get_group(domain, group_id)
    transition(group, TODELETE)
    try:
        _detach(domain, "group_ids", group.id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    send_daemon_request("htaccess group deleted")
    logger.info("%s: scheduled deletion of htaccess group %s", customer.username, group.ugroup)
    return group
