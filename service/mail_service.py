# service/mail_service.py
import logging
import re
from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash
from database_init import db
from models.mail_user import MailUser
from service import counting_service
from service.entity_service import get_domain_entity
from service.provisioning_service import send_daemon_request
from service.status_service import (
    OK,
    TOADD,
    TOCHANGE,
    TODELETE,
    can_transition,
    ensure_stable,
    initial_status,
    transition,
)
from util.constant import DEFAULT_MAIL_ACCOUNTS, DOMAIN_TYPE, MAIL_TYPE_PREFIX, MIB
from util.exceptions import (
    ItemNotStable,
    LimitReachedError,
    NotFoundError,
    PanelError,
    ValidationError,
)
from util.until import encode_idna

logger = logging.getLogger("panel")

NO_FORWARD = "_no_"
_LOCAL_PART_RE = re.compile(r"^[a-z0-9!#$%&'*+/=?^_`{|}~-]+(\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*$", re.I)

ACCOUNT_TYPES = ("normal", "forward", "normal_forward")


def _sub_id(entity):
    return None if entity.domain_type == DOMAIN_TYPE.DOMAIN else entity.id


def _mail_type(domain_type, account_type):
    prefix = MAIL_TYPE_PREFIX[domain_type]
    types = []
    if account_type in ("normal", "normal_forward"):
        types.append(f"{prefix}_mail")
    if account_type in ("forward", "normal_forward"):
        types.append(f"{prefix}_forward")
    return ",".join(types)


def normalize_addresses(addresses):
    """Validate a list (or comma/newline separated string) of mail addresses."""
    if isinstance(addresses, str):
        addresses = re.split(r"[\s,]+", addresses)
    result = []
    for address in addresses:
        address = (address or "").strip()
        if not address:
            continue
        local, _, domain = address.rpartition("@")
        address = f"{local}@{encode_idna(domain)}".lower()
        try:
            validate_email(address, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError(f"Bad email address in forward list: {address}")
        if address not in result:
            result.append(address)
    return result


def get_customer_mail(domain, mail_id):
    mail = MailUser.query.filter_by(id=mail_id, domain_id=domain.id).first()
    if not mail:
        raise NotFoundError("Mail account not found.")
    return mail


def create_default_mail_accounts(domain, user_email, domain_name, domain_type=DOMAIN_TYPE.DOMAIN, sub_id=None):
    """Forward abuse@, hostmaster@, postmaster@ and webmaster@ to the customer."""
    if sub_id is None and domain_type != DOMAIN_TYPE.DOMAIN:
        raise PanelError("Mail account forward type doesn't match with provided child domain ID")

    try:
        user_email = normalize_addresses([user_email])[0]
    except (ValidationError, IndexError):
        logger.warning(
            "Couldn't create default mail accounts for the %s domain. Customer email address is not set or invalid.",
            domain_name,
        )
        return []

    if domain_type in (DOMAIN_TYPE.DOMAIN, DOMAIN_TYPE.ALIAS):
        accounts = DEFAULT_MAIL_ACCOUNTS
    else:
        accounts = ("webmaster",)

    created = []
    for local_part in accounts:
        mail_addr = f"{local_part}@{domain_name}"
        if MailUser.query.filter_by(mail_addr=mail_addr).first():
            continue
        mail = MailUser(
            domain=domain,
            sub_id=sub_id,
            mail_acc=local_part,
            mail_addr=mail_addr,
            mail_forward=user_email,
            mail_type=f"{MAIL_TYPE_PREFIX[domain_type]}_forward",
            po_active=False,
            status=initial_status(TOADD),
            is_default=True,
        )
        db.session.add(mail)
        created.append(mail)
    return created


def _check_quota(domain, quota, exclude_mail_id=None):
    """``quota`` in bytes; 0 is only allowed when the domain has no mail quota."""
    if quota is None or quota < 0:
        raise ValidationError("Invalid mailbox quota.")
    if not domain.mail_quota:
        return
    if quota == 0:
        raise ValidationError("The mailbox quota cannot be unlimited: your mail quota is limited.")
    query = MailUser.query.filter(
        MailUser.domain_id == domain.id,
        MailUser.quota.isnot(None),
        MailUser.status != TODELETE,
    )
    if exclude_mail_id:
        query = query.filter(MailUser.id != exclude_mail_id)
    used = sum(m.quota or 0 for m in query.all())
    if used + quota > domain.mail_quota:
        available = max(domain.mail_quota - used, 0) // MIB
        raise LimitReachedError(f"The mailbox quota cannot be bigger than {available} MiB.")


def _check_password(password):
    if not password or len(password) < 6:
        raise ValidationError("The password must be at least 6 characters long.")


def create_mail_account(
    customer,
    domain,
    domain_type,
    entity_id,
    local_part,
    account_type="normal",
    password=None,
    forwards=None,
    quota_mib=None,
):
    if not counting_service.customer_has_feature(domain, "mail"):
        raise PanelError("Mail feature is disabled for your account.")
    if counting_service.limit_reached(
        domain.mail_limit, counting_service.customer_mail_accounts_count(domain.id)
    ):
        raise LimitReachedError("You have reached the maximum number of mail accounts allowed.")
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError("Unknown mail account type.")

    entity = get_domain_entity(domain, domain_type, entity_id)
    if entity.status != OK:
        raise ItemNotStable(entity, f"{entity.fqdn} is not available for new mail accounts.")

    local_part = (local_part or "").strip().lower()
    if not local_part or len(local_part) > 64 or not _LOCAL_PART_RE.match(local_part):
        raise ValidationError("Invalid mail account name.")
    mail_addr = f"{local_part}@{entity.fqdn}"
    if MailUser.query.filter_by(mail_addr=mail_addr).first():
        raise ValidationError(f"The {mail_addr} mail account already exists.")

    mail = MailUser(
        domain=domain,
        sub_id=_sub_id(entity),
        mail_acc=local_part,
        mail_addr=mail_addr,
        mail_type=_mail_type(domain_type, account_type),
        mail_forward=NO_FORWARD,
        po_active=False,
        status=initial_status(TOADD),
    )

    if account_type in ("normal", "normal_forward"):
        _check_password(password)
        quota = int(quota_mib or 0) * MIB
        _check_quota(domain, quota)
        mail.mail_pass = generate_password_hash(password)
        mail.quota = quota
        mail.po_active = True

    if account_type in ("forward", "normal_forward"):
        targets = normalize_addresses(forwards or [])
        if not targets:
            raise ValidationError("The forward list is empty.")
        if mail_addr in targets:
            raise ValidationError("You cannot forward a mail address to itself.")
        mail.mail_forward = ",".join(targets)

    try:
        db.session.add(mail)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("mail account added")
    logger.info("%s: added mail account %s", customer.username, mail_addr)
    return mail


def edit_mail_account(customer, mail, password=None, forwards=None, quota_mib=None, account_type=None):
    ensure_stable(mail)
    if mail.is_catchall:
        raise ValidationError("Use the catch-all page to edit catch-all accounts.")

    domain_type = _domain_type_of(mail)
    account_type = account_type or account_type_of(mail)
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError("Unknown mail account type.")

    if account_type in ("normal", "normal_forward"):
        if password:
            _check_password(password)
            mail.mail_pass = generate_password_hash(password)
        elif not mail.mail_pass:
            raise ValidationError("A password is required for mailboxes.")
        quota = int(quota_mib if quota_mib is not None else (mail.quota or 0) // MIB) * MIB
        _check_quota(mail.domain, quota, exclude_mail_id=mail.id)
        mail.quota = quota
        mail.po_active = True
    else:
        mail.mail_pass = None
        mail.quota = None
        mail.po_active = False
        mail.auto_respond = False

    if account_type in ("forward", "normal_forward"):
        targets = normalize_addresses(forwards if forwards is not None else mail.forwards)
        if not targets:
            raise ValidationError("The forward list is empty.")
        if mail.mail_addr in targets:
            raise ValidationError("You cannot forward a mail address to itself.")
        mail.mail_forward = ",".join(targets)
    else:
        mail.mail_forward = NO_FORWARD

    mail.mail_type = _mail_type(domain_type, account_type)
    transition(mail, TOCHANGE)
    _commit()
    send_daemon_request("mail account changed")
    logger.info("%s: updated mail account %s", customer.username, mail.mail_addr)
    return mail


def set_autoresponder(customer, mail, enabled, text=None):
    ensure_stable(mail)
    if not mail.is_mailbox:
        raise ValidationError("Auto-responder is only available for mailboxes.")
    if enabled and not (text or mail.auto_respond_text):
        raise ValidationError("The auto-responder message cannot be empty.")
    mail.auto_respond = bool(enabled)
    if text is not None:
        mail.auto_respond_text = text
    transition(mail, TOCHANGE)
    _commit()
    send_daemon_request("auto-responder changed")
    logger.info(
        "%s: %s auto-responder for %s",
        customer.username,
        "enabled" if enabled else "disabled",
        mail.mail_addr,
    )
    return mail


def _domain_type_of(mail):
    prefix = mail.types[0].split("_", 1)[0]
    for domain_type, type_prefix in MAIL_TYPE_PREFIX.items():
        if type_prefix == prefix:
            return domain_type
    raise PanelError(f"Unknown mail type: {mail.mail_type}")


def account_type_of(mail):
    if mail.is_mailbox and mail.is_forward:
        return "normal_forward"
    if mail.is_mailbox:
        return "normal"
    return "forward"


def _remove_references(mail):
    """Drop ``mail`` from other accounts' forward and catch-all lists."""
    pattern = f"%{mail.mail_addr}%"
    candidates = MailUser.query.filter(
        MailUser.id != mail.id,
        MailUser.status != TODELETE,
        (MailUser.mail_acc.like(pattern)) | (MailUser.mail_forward.like(pattern)),
    ).all()
    for other in candidates:
        if other.mail_forward == NO_FORWARD:
            targets = [t for t in other.mail_acc.split(",") if t and t != mail.mail_addr]
            changed = len(targets) != len(other.mail_acc.split(","))
            new_acc, new_forward = ",".join(targets), other.mail_forward
        else:
            targets = [t for t in other.forwards if t != mail.mail_addr]
            changed = len(targets) != len(other.forwards)
            new_acc, new_forward = other.mail_acc, ",".join(targets)
        if not changed:
            continue
        if not targets and not other.is_mailbox:
            if can_transition(other.status, TODELETE):
                transition(other, TODELETE)
            continue
        other.mail_acc = new_acc
        other.mail_forward = new_forward or NO_FORWARD
        if not targets:
            # Mailbox left without forwards
            other.mail_type = ",".join(t for t in other.types if not t.endswith("_forward"))
        if can_transition(other.status, TOCHANGE):
            transition(other, TOCHANGE)


def delete_mail_accounts(customer, domain, mail_ids):
    if not mail_ids:
        raise ValidationError("You must select at least one mail account to delete.")
    deleted = 0
    try:
        for mail_id in mail_ids:
            mail = get_customer_mail(domain, mail_id)
            transition(mail, TODELETE)
            _remove_references(mail)
            deleted += 1
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    except PanelError:
        db.session.rollback()
        raise

    send_daemon_request("mail account deleted")
    logger.info("%s: scheduled deletion of %s mail account(s)", customer.username, deleted)
    return deleted


def add_catchall(customer, domain, domain_type, entity_id, targets):
    if not counting_service.customer_has_feature(domain, "mail"):
        raise PanelError("Mail feature is disabled for your account.")
    entity = get_domain_entity(domain, domain_type, entity_id)
    if entity.status != OK:
        raise ItemNotStable(entity)
    mail_addr = f"@{entity.fqdn}"
    if MailUser.query.filter_by(mail_addr=mail_addr).first():
        raise ValidationError(f"A catch-all account already exists for {entity.fqdn}.")
    targets = normalize_addresses(targets)
    if not targets:
        raise ValidationError("The catch-all address list is empty.")

    catchall = MailUser(
        domain=domain,
        sub_id=_sub_id(entity),
        mail_acc=",".join(targets),
        mail_addr=mail_addr,
        mail_forward=NO_FORWARD,
        mail_type=f"{MAIL_TYPE_PREFIX[domain_type]}_catchall",
        po_active=False,
        status=initial_status(TOADD),
    )
    db.session.add(catchall)
    _commit()
    send_daemon_request("catch-all added")
    logger.info("%s: added catch-all account for %s", customer.username, entity.fqdn)
    return catchall


def delete_catchall(customer, domain, mail_id):
    catchall = get_customer_mail(domain, mail_id)
    if not catchall.is_catchall:
        raise NotFoundError("Catch-all account not found.")
    transition(catchall, TODELETE)
    _commit()
    send_daemon_request("catch-all deleted")
    logger.info("%s: scheduled deletion of catch-all %s", customer.username, catchall.mail_addr)


def sync_mailboxes_quota(domain_id, new_quota):
    """
    Prorate mailbox quotas so that they fit in ``new_quota`` bytes.

    A running total keeps the sum of the new quotas equal to the new limit;
    each mailbox keeps at least 1 MiB. Mailboxes with an unlimited quota count
    as the new limit. Returns the number of mailboxes updated.
    """
    if new_quota == 0:
        return 0

    mailboxes = (
        MailUser.query.filter(
            MailUser.domain_id == domain_id,
            MailUser.quota.isnot(None),
            MailUser.status != TODELETE,
        )
        .order_by(MailUser.id.asc())
        .all()
    )
    if not mailboxes:
        return 0

    total_quota = sum(new_quota if m.quota == 0 else m.quota for m in mailboxes) / MIB
    new_quota_mib = new_quota / MIB

    sync_mode = current_app.config.get("EMAIL_QUOTA_SYNC_MODE")
    if not (new_quota_mib < total_quota or sync_mode or total_quota == 0):
        return 0

    shares = []
    result = 0
    for mailbox in mailboxes:
        old_result = result
        mailbox_quota = mailbox.quota / MIB if mailbox.quota else new_quota_mib
        result += new_quota_mib * mailbox_quota / total_quota
        shares.append(max(int(result) - int(old_result), 1))
    _balance_shares(shares, int(new_quota_mib))

    updated = 0
    for mailbox, share in zip(mailboxes, shares):
        quota = share * MIB
        if quota != mailbox.quota:
            mailbox.quota = quota
            if mailbox.status == OK:
                transition(mailbox, TOCHANGE)
            updated += 1
    return updated


def _balance_shares(shares, target):
    """Bring the sum of the shares back to target, never below 1 MiB each."""
    surplus = sum(shares) - target
    if surplus < 0:
        shares[-1] -= surplus
        return
    for i in sorted(range(len(shares)), key=lambda i: shares[i], reverse=True):
        if surplus <= 0:
            break
        taken = min(shares[i] - 1, surplus)
        shares[i] -= taken
        surplus -= taken


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
