# service/ftp_service.py
import logging
import posixpath
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash
from database_init import db
from models.ftp_group import FtpGroup
from models.ftp_user import FtpUser
from service import counting_service
from service.entity_service import get_domain_entity
from service.provisioning_service import send_daemon_request
from service.status_service import OK, TOADD, TOCHANGE, TODELETE, ensure_stable, initial_status, transition
from util.exceptions import ItemNotStable, LimitReachedError, NotFoundError, PanelError, ValidationError
from util.until import is_valid_account_name, normalize_path

logger = logging.getLogger("panel")


def get_customer_ftp_user(customer, ftp_id):
    ftp_user = FtpUser.query.filter_by(id=ftp_id, admin_id=customer.id).first()
    if not ftp_user:
        raise NotFoundError("FTP account not found.")
    return ftp_user


def customer_root(domain):
    return posixpath.join(current_app.config.get("USER_HOME_DIR", "/var/www/virtual"), domain.name)


def _check_password(password):
    if not password or len(password) < 6:
        raise ValidationError("The password must be at least 6 characters long.")


def remove_group_members(groupname, predicate):
    """
    Drop the members matching ``predicate`` from the FTP group.

    The group is deleted once it has no members left. Returns the removed userids.
    """
    group = FtpGroup.query.filter_by(groupname=groupname).first()
    if not group:
        return []
    removed = [m for m in group.member_list if predicate(m)]
    members = [m for m in group.member_list if not predicate(m)]
    if not members:
        db.session.delete(group)
    else:
        group.members = ",".join(members)
    return removed


def add_ftp_user(customer, domain, domain_type, entity_id, name, password, homedir="/"):
    if not counting_service.customer_has_feature(domain, "ftp"):
        raise PanelError("FTP feature is disabled for your account.")
    if counting_service.limit_reached(
        domain.ftp_limit, counting_service.customer_ftp_users_count(customer.id)
    ):
        raise LimitReachedError("You have reached the maximum number of FTP accounts allowed.")

    entity = get_domain_entity(domain, domain_type, entity_id)
    if entity.status != OK:
        raise ItemNotStable(entity, f"{entity.fqdn} is not available for new FTP accounts.")

    name = (name or "").strip().lower()
    if not is_valid_account_name(name, max_length=64):
        raise ValidationError("Invalid FTP username.")
    userid = f"{name}@{entity.fqdn}"
    if FtpUser.query.filter_by(userid=userid).first():
        raise ValidationError(f"The {userid} FTP account already exists.")
    _check_password(password)

    ftp_user = FtpUser(
        userid=userid,
        owner=customer,
        passwd=generate_password_hash(password),
        homedir=customer_root(domain) + normalize_path(homedir).rstrip("/"),
        status=initial_status(TOADD),
    )
    group = FtpGroup.query.filter_by(groupname=customer.username).first()
    if group is None:
        group = FtpGroup(groupname=customer.username, members=userid)
        db.session.add(group)
    elif userid not in group.member_list:
        group.members = ",".join(group.member_list + [userid])

    try:
        db.session.add(ftp_user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("ftp account added")
    logger.info("%s: added FTP account %s", customer.username, userid)
    return ftp_user


def change_ftp_password(customer, ftp_user, password, homedir=None):
    ensure_stable(ftp_user)
    _check_password(password)
    ftp_user.passwd = generate_password_hash(password)
    if homedir is not None:
        domain = customer.main_domain
        ftp_user.homedir = customer_root(domain) + normalize_path(homedir).rstrip("/")
    transition(ftp_user, TOCHANGE)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    send_daemon_request("ftp account changed")
    logger.info("%s: updated FTP account %s", customer.username, ftp_user.userid)
    return ftp_user


def delete_ftp_user(customer, ftp_id):
    ftp_user = get_customer_ftp_user(customer, ftp_id)
    transition(ftp_user, TODELETE)
    try:
        remove_group_members(customer.username, lambda member: member == ftp_user.userid)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    send_daemon_request("ftp account deleted")
    logger.info("%s: scheduled deletion of FTP account %s", customer.username, ftp_user.userid)
    return ftp_user
