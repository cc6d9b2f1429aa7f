# service/customer_service.py
import logging
from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash
from database_init import db
from models.user import User
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.subdomain import Subdomain
from models.subdomain_alias import SubdomainAlias
from models.mail_user import MailUser
from models.ftp_user import FtpUser
from models.ftp_group import FtpGroup
from models.sql_database import SqlDatabase
from models.sql_user import SqlUser
from models.ssl_cert import SslCertificate
from models.htaccess import ProtectedArea
from models.htaccess_user import HtaccessUser
from models.htaccess_group import HtaccessGroup
from models.dns_record import DnsRecord
from models.ticket import Ticket
from service import counting_service, reseller_service
from service.entity_service import get_customer, get_customer_main_domain, is_known_domain_name
from service.mail_service import create_default_mail_accounts, sync_mailboxes_quota
from service.provisioning_service import send_daemon_request
from service.status_service import (
    OK,
    ORDERED,
    TOADD,
    TOCHANGE,
    TODELETE,
    TODISABLE,
    TOENABLE,
    DISABLED,
    ensure_stable,
    has_pending,
    initial_status,
    schedule_bulk,
    transition,
)
from util.constant import DOMAIN_TYPE, LIMIT_DISABLED, LIMIT_FIELDS, MIB, USER_TYPE
from util.exceptions import LimitReachedError, PanelError, ValidationError
from util.until import encode_idna, is_valid_account_name, is_valid_domain_name

logger = logging.getLogger("panel")

# Customer limit -> key of get_customer_objects_counts()
USAGE_KEYS = {
    "subdomain_limit": "subdomains",
    "alias_limit": "domain_aliases",
    "mail_limit": "mail_accounts",
    "ftp_limit": "ftp_users",
    "sql_db_limit": "sql_databases",
    "sql_user_limit": "sql_users",
}

FEATURE_FLAGS = ("ssl_allowed", "protected_areas_allowed", "dns_allowed")


def _validate_limits(limits):
    clean = {}
    for field in LIMIT_FIELDS:
        try:
            value = int(limits.get(field, 0))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid value for {field}.")
        if value < LIMIT_DISABLED:
            raise ValidationError(f"Invalid value for {field}.")
        clean[field] = value
    if clean["sql_db_limit"] == LIMIT_DISABLED and clean["sql_user_limit"] != LIMIT_DISABLED:
        raise ValidationError("SQL users cannot be enabled while SQL databases are disabled.")
    if clean["sql_user_limit"] == LIMIT_DISABLED and clean["sql_db_limit"] != LIMIT_DISABLED:
        raise ValidationError("SQL databases cannot be enabled while SQL users are disabled.")
    return clean


def _validate_mail_quota(limits, mail_quota_mib):
    try:
        mail_quota_mib = int(mail_quota_mib or 0)
    except (TypeError, ValueError):
        raise ValidationError("Invalid mail quota.")
    if mail_quota_mib < 0:
        raise ValidationError("Invalid mail quota.")
    disk_limit = limits["disk_limit"]
    if disk_limit > 0 and (mail_quota_mib == 0 or mail_quota_mib > disk_limit):
        raise ValidationError("The mail quota cannot be bigger than the disk space limit.")
    return mail_quota_mib * MIB


def _validate_email(email):
    try:
        return validate_email(email or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}")


def create_customer(reseller, data):
    """
    Create a customer account, its main domain and its default mail accounts.

    ``data`` keys: username, password, email, domain_name, limits (customer
    limit columns), mail_quota (MiB), fname, lname and the feature flags.
    """
    username = (data.get("username") or "").strip().lower()
    if not is_valid_account_name(username, max_length=200):
        raise ValidationError("Invalid username.")
    if User.query.filter_by(username=username).first():
        raise ValidationError("This username is already in use.")
    if not data.get("password") or len(data["password"]) < 6:
        raise ValidationError("The password must be at least 6 characters long.")
    email = _validate_email(data.get("email"))

    domain_name = encode_idna(data.get("domain_name"))
    if not is_valid_domain_name(domain_name):
        raise ValidationError(f"Invalid domain name: {data.get('domain_name')}")
    if is_known_domain_name(domain_name):
        raise ValidationError(f"Domain {domain_name} is already registered.")

    limits = _validate_limits(data.get("limits") or {})
    mail_quota = _validate_mail_quota(limits, data.get("mail_quota"))

    props = reseller_service.recalculate_reseller_assignments(reseller.id)
    reseller_service.check_customer_limits(props, limits, new_domain=True)

    try:
        customer = User(
            username=username,
            password=generate_password_hash(data["password"]),
            email=email,
            fname=data.get("fname"),
            lname=data.get("lname"),
            user_type=USER_TYPE.CUSTOMER,
            created_by=reseller.id,
            status=initial_status(TOADD),
        )
        domain = Domain(
            name=domain_name,
            owner=customer,
            mail_quota=mail_quota,
            status=initial_status(TOADD),
            **limits,
        )
        for flag in FEATURE_FLAGS:
            if flag in data:
                setattr(domain, flag, bool(data[flag]))
        db.session.add(customer)
        db.session.add(domain)
        db.session.flush()

        if limits["mail_limit"] != LIMIT_DISABLED:
            create_default_mail_accounts(domain, email, domain_name, DOMAIN_TYPE.DOMAIN)

        reseller_service.recalculate_reseller_assignments(reseller.id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("customer added")
    logger.info("%s: added customer account %s (%s)", reseller.username, username, domain_name)
    return customer


def update_customer_limits(reseller, customer_id, limits, mail_quota_mib=None, features=None):
    customer = get_customer(customer_id, None if reseller.is_admin else reseller.id)
    domain = get_customer_main_domain(customer.id)
    ensure_stable(domain)

    limits = _validate_limits(limits)
    usage = counting_service.get_customer_objects_counts(domain)
    errors = []
    for field, key in USAGE_KEYS.items():
        value, used = limits[field], usage[key]
        if value == LIMIT_DISABLED and used > 0:
            errors.append(f"The customer already has {used} {key.replace('_', ' ')}: the feature cannot be disabled.")
        elif value > 0 and value < used:
            errors.append(f"The {key.replace('_', ' ')} limit cannot be lower than {used}.")
    if errors:
        raise LimitReachedError(" ".join(errors))

    old_limits = {field: getattr(domain, field) for field in LIMIT_FIELDS}
    props = reseller_service.recalculate_reseller_assignments(customer.created_by)
    changed = {f: v for f, v in limits.items() if v != old_limits[f]}
    reseller_service.check_customer_limits(props, changed, old_limits)

    new_quota = domain.mail_quota
    if mail_quota_mib is not None:
        new_quota = _validate_mail_quota(limits, mail_quota_mib)
        mailboxes = MailUser.query.filter(
            MailUser.domain_id == domain.id,
            MailUser.quota.isnot(None),
            MailUser.status != TODELETE,
        ).count()
        if new_quota and new_quota < mailboxes * MIB:
            raise ValidationError(
                f"The mail quota cannot be lower than {mailboxes} MiB (1 MiB per mailbox)."
            )

    try:
        for field, value in limits.items():
            setattr(domain, field, value)
        for flag in FEATURE_FLAGS:
            if features and flag in features:
                setattr(domain, flag, bool(features[flag]))
        if new_quota != domain.mail_quota:
            domain.mail_quota = new_quota
            sync_mailboxes_quota(domain.id, new_quota)
        if domain.status == OK:
            transition(domain, TOCHANGE)
        reseller_service.recalculate_reseller_assignments(customer.created_by)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("customer limits changed")
    logger.info("%s: updated limits of customer %s", reseller.username, customer.username)
    return domain


def _alias_ids(domain_id):
    return db.select(DomainAlias.id).where(DomainAlias.domain_id == domain_id)


def change_domain_status(actor, customer_id, action):
    """Schedule activation or deactivation of a whole customer account."""
    if action == "deactivate":
        target = TODISABLE
    elif action == "activate":
        target = TOENABLE
    else:
        raise PanelError(f"Unknown action: {action}")

    customer = get_customer(customer_id, actor.id if actor.is_reseller else None)
    domain = get_customer_main_domain(customer.id)
    ensure_stable(domain)
    transition(domain, target)

    try:
        mails = MailUser.query.filter_by(domain_id=domain.id)
        if action == "deactivate":
            if current_app.config.get("HARD_MAIL_SUSPENSION"):
                # SMTP, IMAP and POP disabled
                schedule_bulk(mails, TODISABLE)
            for mail in mails.all():
                mail.po_active = False
        else:
            for mail in mails.all():
                if mail.status == DISABLED:
                    transition(mail, TOENABLE)
                if mail.is_mailbox:
                    mail.po_active = True

        schedule_bulk(FtpUser.query.filter_by(admin_id=customer.id), target)
        schedule_bulk(ProtectedArea.query.filter_by(domain_id=domain.id), target)
        schedule_bulk(HtaccessGroup.query.filter_by(domain_id=domain.id), target)
        schedule_bulk(HtaccessUser.query.filter_by(domain_id=domain.id), target)
        schedule_bulk(Subdomain.query.filter_by(domain_id=domain.id), target)
        schedule_bulk(DomainAlias.query.filter_by(domain_id=domain.id), target)
        schedule_bulk(
            SubdomainAlias.query.filter(SubdomainAlias.alias_id.in_(_alias_ids(domain.id))),
            target,
        )
        schedule_bulk(DnsRecord.query.filter_by(domain_id=domain.id), target)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request(f"customer {action}")
    logger.info(
        "%s: scheduled %s of customer account: %s",
        actor.username,
        "deactivation" if action == "deactivate" else "activation",
        customer.username,
    )
    return domain


def _customer_queries(customer, domain):
    """Every provisionable child of the customer, deepest first."""
    alias_ids = _alias_ids(domain.id)
    sub_ids = db.select(Subdomain.id).where(Subdomain.domain_id == domain.id)
    alssub_ids = db.select(SubdomainAlias.id).where(SubdomainAlias.alias_id.in_(alias_ids))
    sql_db_ids = db.select(SqlDatabase.id).where(SqlDatabase.domain_id == domain.id)
    return [
        FtpUser.query.filter_by(admin_id=customer.id),
        MailUser.query.filter_by(domain_id=domain.id),
        SqlUser.query.filter(SqlUser.sqld_id.in_(sql_db_ids)),
        SqlDatabase.query.filter_by(domain_id=domain.id),
        HtaccessUser.query.filter_by(domain_id=domain.id),
        HtaccessGroup.query.filter_by(domain_id=domain.id),
        ProtectedArea.query.filter_by(domain_id=domain.id),
        SslCertificate.query.filter(
            ((SslCertificate.domain_type == DOMAIN_TYPE.DOMAIN) & (SslCertificate.domain_id == domain.id))
            | ((SslCertificate.domain_type == DOMAIN_TYPE.ALIAS) & SslCertificate.domain_id.in_(alias_ids))
            | ((SslCertificate.domain_type == DOMAIN_TYPE.SUBDOMAIN) & SslCertificate.domain_id.in_(sub_ids))
            | (
                (SslCertificate.domain_type == DOMAIN_TYPE.SUBDOMAIN_ALIAS)
                & SslCertificate.domain_id.in_(alssub_ids)
            )
        ),
        SubdomainAlias.query.filter(SubdomainAlias.alias_id.in_(alias_ids)),
        DomainAlias.query.filter_by(domain_id=domain.id),
        Subdomain.query.filter_by(domain_id=domain.id),
        Domain.query.filter_by(id=domain.id),
        User.query.filter_by(id=customer.id),
    ]


def delete_customer(actor, customer_id):
    """
    Schedule deletion of a customer account and everything it owns.

    Refused while any of the customer's items has a daemon operation in
    flight. Returns the deleted customer.
    """
    customer = get_customer(customer_id, actor.id if actor.is_reseller else None)
    domain = get_customer_main_domain(customer.id)
    queries = _customer_queries(customer, domain)
    if any(has_pending(query) for query in queries):
        raise ValidationError(
            f"The {customer.username} account still has pending operations. Retry later."
        )

    try:
        # Not handled by the daemon
        DnsRecord.query.filter_by(domain_id=domain.id).delete(synchronize_session=False)
        FtpGroup.query.filter_by(groupname=customer.username).delete(synchronize_session=False)
        Ticket.query.filter(
            (Ticket.from_id == customer.id) | (Ticket.to_id == customer.id)
        ).delete(synchronize_session=False)

        # Ordered aliases were never provisioned
        DomainAlias.query.filter_by(domain_id=domain.id, status=ORDERED).delete(
            synchronize_session=False
        )

        for query in queries:
            schedule_bulk(query, TODELETE)

        reseller_service.recalculate_reseller_assignments(customer.created_by)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    # The daemon might not be there; the rows stay scheduled until it runs
    send_daemon_request("customer deleted")
    logger.info("%s: scheduled deletion of customer account: %s", actor.username, customer.username)
    return customer
