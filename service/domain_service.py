# service/domain_service.py
import logging
import re
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.subdomain import Subdomain
from models.subdomain_alias import SubdomainAlias
from models.mail_user import MailUser
from models.ftp_user import FtpUser
from models.ssl_cert import SslCertificate
from models.htaccess import ProtectedArea
from models.dns_record import DnsRecord
from models.user import User
from service import counting_service
from service.entity_service import get_domain_entity, is_known_domain_name
from service.ftp_service import remove_group_members
from service.mail_service import create_default_mail_accounts
from service.provisioning_service import send_daemon_request
from service.status_service import (
    OK,
    ORDERED,
    TOADD,
    TOCHANGE,
    TODELETE,
    has_pending,
    initial_status,
    schedule_bulk,
    transition,
)
from util.constant import DOMAIN_TYPE
from util.exceptions import ItemNotStable, LimitReachedError, NotFoundError, PanelError, ValidationError
from util.until import encode_idna, is_valid_domain_name, is_valid_subdomain_label, normalize_path

logger = logging.getLogger("panel")


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _check_url_forward(url_forward):
    if not url_forward:
        return None
    if not re.match(r"^https?://[^\s/]+(/\S*)?$", url_forward, re.I):
        raise ValidationError("Invalid URL forward. It must start with http:// or https://.")
    return url_forward


# ====== Domain aliases ======
def get_customer_alias(domain, alias_id):
    alias = DomainAlias.query.filter_by(id=alias_id, domain_id=domain.id).first()
    if not alias:
        raise NotFoundError("Domain alias not found.")
    return alias


def add_domain_alias(customer, domain, name, mount=None, url_forward=None):
    """Order (or directly schedule) a new domain alias for the customer."""
    if not counting_service.customer_has_feature(domain, "domain_aliases"):
        raise PanelError("Domain aliases feature is disabled for your account.")
    if counting_service.limit_reached(
        domain.alias_limit, counting_service.customer_domain_aliases_count(domain.id)
    ):
        raise LimitReachedError("You have reached the maximum number of domain aliases allowed.")
    if domain.status != OK:
        raise ItemNotStable(domain, "Your main domain is not available for new domain aliases.")

    name = encode_idna(name)
    if not is_valid_domain_name(name):
        raise ValidationError(f"Invalid domain alias name: {name}")
    if is_known_domain_name(name):
        raise ValidationError(f"Domain {name} is already registered.")
    if name.endswith("." + domain.name):
        raise ValidationError("Use a subdomain for names below your main domain.")

    mount = normalize_path(mount or name)
    if mount != "/" and Subdomain.query.filter_by(domain_id=domain.id, mount=mount).first():
        raise ValidationError(f"The {mount} mount point is already in use.")

    if current_app.config.get("ALIAS_ORDER_REQUIRED"):
        status = initial_status(ORDERED)
    else:
        status = initial_status(TOADD)

    alias = DomainAlias(
        domain=domain,
        name=name,
        mount=mount,
        url_forward=_check_url_forward(url_forward),
        status=status,
    )
    db.session.add(alias)
    if status == TOADD:
        db.session.flush()
        create_default_mail_accounts(domain, customer.email, name, DOMAIN_TYPE.ALIAS, alias.id)
    _commit()

    if status == ORDERED:
        logger.info("%s: ordered the %s domain alias", customer.username, name)
    else:
        send_daemon_request("domain alias added")
        logger.info("%s: added the %s domain alias", customer.username, name)
    return alias


def _reseller_alias_order(reseller, alias_id):
    alias = (
        DomainAlias.query.join(Domain)
        .join(User, Domain.admin_id == User.id)
        .filter(DomainAlias.id == alias_id)
    )
    if not reseller.is_admin:
        alias = alias.filter(User.created_by == reseller.id)
    alias = alias.first()
    if not alias:
        raise NotFoundError("Domain alias order not found.")
    if alias.status != ORDERED:
        raise ValidationError(f"The {alias.name} domain alias is not awaiting approval.")
    return alias


def validate_alias_order(reseller, alias_id):
    alias = _reseller_alias_order(reseller, alias_id)
    domain = alias.domain
    transition(alias, TOADD)
    create_default_mail_accounts(domain, domain.owner.email, alias.name, DOMAIN_TYPE.ALIAS, alias.id)
    _commit()
    send_daemon_request("domain alias order validated")
    logger.info("%s: validated the %s domain alias order", reseller.username, alias.name)
    return alias


def reject_alias_order(reseller, alias_id):
    alias = _reseller_alias_order(reseller, alias_id)
    name = alias.name
    db.session.delete(alias)
    _commit()
    logger.info("%s: rejected the %s domain alias order", reseller.username, name)
    return name


def cancel_alias_order(customer, domain, alias_id):
    alias = get_customer_alias(domain, alias_id)
    if alias.status != ORDERED:
        raise ValidationError("Only pending orders can be cancelled.")
    name = alias.name
    db.session.delete(alias)
    _commit()
    logger.info("%s: cancelled the %s domain alias order", customer.username, name)
    return name


def alias_ftp_member(alias_name):
    """Predicate matching FTP userids on the alias or any of its subdomains."""
    pattern = re.compile(r"@(?:.+\.)*" + re.escape(alias_name) + r"$")
    return lambda member: bool(pattern.search(member))


def delete_domain_alias(customer, domain, alias_id):
    alias = get_customer_alias(domain, alias_id)
    if alias.status == ORDERED:
        return cancel_alias_order(customer, domain, alias_id)

    alssub_ids = db.select(SubdomainAlias.id).where(SubdomainAlias.alias_id == alias.id)
    mount = normalize_path(alias.mount)
    queries = [
        MailUser.query.filter(
            ((MailUser.sub_id == alias.id) & MailUser.mail_type.like("%alias_%"))
            | (MailUser.sub_id.in_(alssub_ids) & MailUser.mail_type.like("%alssub_%"))
        ),
        SslCertificate.query.filter(
            ((SslCertificate.domain_type == DOMAIN_TYPE.ALIAS) & (SslCertificate.domain_id == alias.id))
            | (
                (SslCertificate.domain_type == DOMAIN_TYPE.SUBDOMAIN_ALIAS)
                & SslCertificate.domain_id.in_(alssub_ids)
            )
        ),
        ProtectedArea.query.filter(
            ProtectedArea.domain_id == domain.id, ProtectedArea.path.like(mount + "%")
        ),
        SubdomainAlias.query.filter_by(alias_id=alias.id),
    ]
    if any(has_pending(query) for query in queries):
        raise ValidationError(
            f"Items of the {alias.name} domain alias have pending operations. Retry later."
        )

    transition(alias, TODELETE)
    try:
        is_alias_member = alias_ftp_member(alias.name)
        remove_group_members(customer.username, is_alias_member)
        ftp_ids = [
            u.id for u in FtpUser.query.filter_by(admin_id=customer.id).all() if is_alias_member(u.userid)
        ]
        schedule_bulk(FtpUser.query.filter(FtpUser.id.in_(ftp_ids)), TODELETE)
        DnsRecord.query.filter_by(alias_id=alias.id).delete(synchronize_session=False)
        for query in queries:
            schedule_bulk(query, TODELETE)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("domain alias deleted")
    logger.info("%s: scheduled deletion of the %s domain alias", customer.username, alias.name)
    return alias


# ====== Subdomains ======
def add_subdomain(customer, domain, parent_type, parent_id, label, mount=None):
    """Add a subdomain below the main domain (dmn) or one of its aliases (als)."""
    if not counting_service.customer_has_feature(domain, "subdomains"):
        raise PanelError("Subdomains feature is disabled for your account.")
    if counting_service.limit_reached(
        domain.subdomain_limit, counting_service.customer_subdomains_count(domain.id)
    ):
        raise LimitReachedError("You have reached the maximum number of subdomains allowed.")
    if parent_type not in (DOMAIN_TYPE.DOMAIN, DOMAIN_TYPE.ALIAS):
        raise ValidationError("Subdomains can only be added to a domain or a domain alias.")

    parent = get_domain_entity(domain, parent_type, parent_id)
    if parent.status != OK:
        raise ItemNotStable(parent, f"{parent.fqdn} is not available for new subdomains.")

    label = encode_idna(label)
    if not is_valid_subdomain_label(label):
        raise ValidationError(f"Invalid subdomain name: {label}")
    fqdn = f"{label}.{parent.fqdn}"
    if not is_valid_domain_name(fqdn) or is_known_domain_name(fqdn):
        raise ValidationError(f"The {fqdn} name is not available.")

    mount = normalize_path(mount or (parent.mount.rstrip("/") + "/" + label))
    if parent_type == DOMAIN_TYPE.DOMAIN:
        if Subdomain.query.filter_by(domain_id=domain.id, name=label).first():
            raise ValidationError(f"The {fqdn} subdomain already exists.")
        subdomain = Subdomain(domain=domain, name=label, mount=mount, status=initial_status(TOADD))
    else:
        if SubdomainAlias.query.filter_by(alias_id=parent.id, name=label).first():
            raise ValidationError(f"The {fqdn} subdomain already exists.")
        subdomain = SubdomainAlias(alias=parent, name=label, mount=mount, status=initial_status(TOADD))

    db.session.add(subdomain)
    _commit()
    send_daemon_request("subdomain added")
    logger.info("%s: added the %s subdomain", customer.username, fqdn)
    return subdomain


def delete_subdomain(customer, domain, domain_type, subdomain_id):
    if domain_type not in (DOMAIN_TYPE.SUBDOMAIN, DOMAIN_TYPE.SUBDOMAIN_ALIAS):
        raise ValidationError("Not a subdomain.")
    subdomain = get_domain_entity(domain, domain_type, subdomain_id)
    prefix = "subdom" if domain_type == DOMAIN_TYPE.SUBDOMAIN else "alssub"

    queries = [
        MailUser.query.filter(
            MailUser.sub_id == subdomain.id, MailUser.mail_type.like(f"%{prefix}_%")
        ),
        SslCertificate.query.filter_by(domain_type=domain_type, domain_id=subdomain.id),
    ]
    if any(has_pending(query) for query in queries):
        raise ValidationError(
            f"Items of the {subdomain.fqdn} subdomain have pending operations. Retry later."
        )

    transition(subdomain, TODELETE)
    try:
        fqdn = subdomain.fqdn
        remove_group_members(customer.username, lambda member: member.endswith("@" + fqdn))
        schedule_bulk(
            FtpUser.query.filter(FtpUser.admin_id == customer.id, FtpUser.userid.like(f"%@{fqdn}")),
            TODELETE,
        )
        for query in queries:
            schedule_bulk(query, TODELETE)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("subdomain deleted")
    logger.info("%s: scheduled deletion of the %s subdomain", customer.username, subdomain.fqdn)
    return subdomain


def edit_url_forward(customer, domain, domain_type, entity_id, url_forward):
    """Only domain aliases carry an URL forward."""
    if domain_type != DOMAIN_TYPE.ALIAS:
        raise ValidationError("URL forwarding is only available for domain aliases.")
    alias = get_domain_entity(domain, domain_type, entity_id)
    transition(alias, TOCHANGE)
    alias.url_forward = _check_url_forward(url_forward)
    _commit()
    send_daemon_request("domain alias changed")
    logger.info("%s: updated the %s domain alias", customer.username, alias.name)
    return alias
