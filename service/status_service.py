# service/status_service.py
"""
Provisioning status state machine.

Every provisionable row carries a ``status`` drawn from ``ITEM_STATUS``. The
frontend only ever moves rows into pending states; the daemon moves them back
to a stable state (or to ``error``) once the system-level work is done. All
status writes go through this module.
"""
import logging
from database_init import db
from models.user import User
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.subdomain import Subdomain
from models.subdomain_alias import SubdomainAlias
from models.mail_user import MailUser
from models.ftp_user import FtpUser
from models.sql_database import SqlDatabase
from models.sql_user import SqlUser
from models.ssl_cert import SslCertificate
from models.htaccess import ProtectedArea
from models.htaccess_user import HtaccessUser
from models.htaccess_group import HtaccessGroup
from models.dns_record import DnsRecord
from util.constant import ITEM_STATUS
from util.exceptions import InvalidStatusTransition, ItemNotStable

logger = logging.getLogger("panel")

OK = ITEM_STATUS.ok.value
DISABLED = ITEM_STATUS.disabled.value
TOADD = ITEM_STATUS.toadd.value
TOCHANGE = ITEM_STATUS.tochange.value
TORESTORE = ITEM_STATUS.torestore.value
TOCHANGEPWD = ITEM_STATUS.tochangepwd.value
TOENABLE = ITEM_STATUS.toenable.value
TODISABLE = ITEM_STATUS.todisable.value
TODELETE = ITEM_STATUS.todelete.value
ORDERED = ITEM_STATUS.ordered.value
ERROR = ITEM_STATUS.error.value

STABLE_STATUSES = frozenset({OK, DISABLED})
PENDING_STATUSES = frozenset(
    {TOADD, TOCHANGE, TORESTORE, TOCHANGEPWD, TOENABLE, TODISABLE, TODELETE}
)
KNOWN_STATUSES = frozenset(s.value for s in ITEM_STATUS)

# None is the state of a row that does not exist yet
TRANSITIONS = {
    None: frozenset({TOADD, ORDERED}),
    ORDERED: frozenset({TOADD}),
    OK: frozenset({TOCHANGE, TOCHANGEPWD, TORESTORE, TODELETE, TODISABLE}),
    DISABLED: frozenset({TOENABLE, TODELETE}),
    ERROR: frozenset({TOCHANGE, TODELETE}),
}

# Where a pending row lands once the daemon reports success; None removes the row
COMPLETIONS = {
    TOADD: OK,
    TOCHANGE: OK,
    TORESTORE: OK,
    TOCHANGEPWD: OK,
    TOENABLE: OK,
    TODISABLE: DISABLED,
    TODELETE: None,
}

PROVISIONABLE_MODELS = {
    "user": User,
    "domain": Domain,
    "domain_alias": DomainAlias,
    "subdomain": Subdomain,
    "subdomain_alias": SubdomainAlias,
    "mail_user": MailUser,
    "ftp_user": FtpUser,
    "sql_database": SqlDatabase,
    "sql_user": SqlUser,
    "ssl_cert": SslCertificate,
    "htaccess": ProtectedArea,
    "htaccess_user": HtaccessUser,
    "htaccess_group": HtaccessGroup,
    "dns_record": DnsRecord,
}


def is_stable(status):
    return status in STABLE_STATUSES


def is_pending(status):
    return status in PENDING_STATUSES


def is_error(status):
    # The daemon may also write its raw error string into the status column
    return status == ERROR or (status is not None and status not in KNOWN_STATUSES)


def _normalize(status):
    if is_error(status):
        return ERROR
    return status


def can_transition(current, target):
    return target in TRANSITIONS.get(_normalize(current), frozenset())


def allowed_sources(target):
    """Statuses from which ``target`` can be reached (excluding new rows)."""
    return frozenset(
        source
        for source, targets in TRANSITIONS.items()
        if source is not None and target in targets
    )


def transition(item, target):
    """Move a single row to ``target`` or raise InvalidStatusTransition."""
    current = item.status
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)
    item.status = target
    item.status_message = None
    return item


def initial_status(target=TOADD):
    if not can_transition(None, target):
        raise InvalidStatusTransition(None, target)
    return target


def ensure_stable(item, message=None):
    if not is_stable(item.status):
        raise ItemNotStable(item, message)
    return item


def schedule_bulk(query, target):
    """
    Move every row of ``query`` that may reach ``target``.

    Rows in any other state (in flight, already there, ...) are left alone.
    Returns the number of rows moved.
    """
    model = query.column_descriptions[0]["entity"]
    sources = allowed_sources(target)
    count = 0
    for item in query.all():
        if _normalize(item.status) in sources:
            item.status = target
            item.status_message = None
            count += 1
    if count:
        logger.debug("Scheduled %s %s row(s) to '%s'", count, model.__tablename__, target)
    return count


def has_pending(query):
    """True when any row of ``query`` has a daemon operation in flight."""
    model = query.column_descriptions[0]["entity"]
    return query.filter(model.status.in_(PENDING_STATUSES)).count() > 0


def complete(item, success, message=None):
    """
    Apply the daemon's result for a pending row.

    Returns the new status, or None when the row has been removed.
    """
    current = item.status
    if not is_pending(current):
        raise InvalidStatusTransition(current, "ok" if success else ERROR)
    if not success:
        item.status = ERROR
        item.status_message = message or "Unknown daemon error"
        return ERROR

    new_status = COMPLETIONS[current]
    if new_status is None:
        db.session.delete(item)
        return None
    item.status = new_status
    item.status_message = None
    return new_status


def humanize_status(status, show_error=False):
    try:
        return ITEM_STATUS[status].label
    except KeyError:
        return status if show_error else ITEM_STATUS.error.label


def status_sort_key(status):
    try:
        return ITEM_STATUS[status].order
    except KeyError:
        return ITEM_STATUS.error.order
