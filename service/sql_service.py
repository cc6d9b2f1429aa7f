# service/sql_service.py
import hashlib
import logging
import re
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from models.sql_database import SqlDatabase
from models.sql_user import SqlUser
from service import counting_service
from service.provisioning_service import send_daemon_request
from service.status_service import (
    OK,
    TOADD,
    TOCHANGE,
    TODELETE,
    ensure_stable,
    has_pending,
    initial_status,
    schedule_bulk,
    transition,
)
from util.exceptions import ItemNotStable, LimitReachedError, NotFoundError, PanelError, ValidationError

logger = logging.getLogger("panel")

_DB_NAME_RE = re.compile(r"^[a-z0-9_]+$", re.I)
_USER_NAME_RE = re.compile(r"^[a-z0-9_.-]+$", re.I)
_HOST_RE = re.compile(r"^(%|localhost|[a-z0-9.%_-]+|[0-9a-f:]+)$", re.I)

DB_NAME_MAX_LENGTH = 64
USER_NAME_MAX_LENGTH = 32


def mysql_native_password(password):
    """MySQL ``mysql_native_password`` hash: '*' + upper hex SHA1(SHA1(password))."""
    digest = hashlib.sha1(hashlib.sha1(password.encode("utf-8")).digest()).hexdigest()
    return "*" + digest.upper()


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _check_password(password):
    if not password or len(password) < 6:
        raise ValidationError("The password must be at least 6 characters long.")
    if not password.isascii():
        raise ValidationError("The password can only contain ASCII characters.")


def get_customer_database(domain, database_id):
    database = SqlDatabase.query.filter_by(id=database_id, domain_id=domain.id).first()
    if not database:
        raise NotFoundError("SQL database not found.")
    return database


def get_customer_sql_user(domain, sql_user_id):
    sql_user = (
        SqlUser.query.join(SqlDatabase)
        .filter(SqlUser.id == sql_user_id, SqlDatabase.domain_id == domain.id)
        .first()
    )
    if not sql_user:
        raise NotFoundError("SQL user not found.")
    return sql_user


def _check_feature(domain):
    if not counting_service.customer_has_feature(domain, "sql"):
        raise PanelError("SQL feature is disabled for your account.")


def add_database(customer, domain, name, use_prefix=True):
    _check_feature(domain)
    if counting_service.limit_reached(
        domain.sql_db_limit, counting_service.customer_sql_databases_count(domain.id)
    ):
        raise LimitReachedError("You have reached the maximum number of SQL databases allowed.")

    name = (name or "").strip()
    if use_prefix:
        name = f"{customer.username.replace('.', '_').replace('-', '_')}_{name}"
    if not name or len(name) > DB_NAME_MAX_LENGTH or not _DB_NAME_RE.match(name):
        raise ValidationError("Invalid database name.")
    if name.lower() in ("information_schema", "mysql", "performance_schema", "sys", "test"):
        raise ValidationError(f"The {name} database name is reserved.")
    if SqlDatabase.query.filter_by(name=name).first():
        raise ValidationError(f"The {name} database already exists.")

    database = SqlDatabase(domain=domain, name=name, status=initial_status(TOADD))
    db.session.add(database)
    _commit()
    send_daemon_request("sql database added")
    logger.info("%s: added SQL database %s", customer.username, name)
    return database


def add_sql_user(customer, domain, database_id, name, password, host="localhost"):
    """
    Grant a new or existing SQL user on a database.

    Re-using a name/host already defined for another database of the customer
    binds the same account; its password must then match.
    """
    _check_feature(domain)
    database = get_customer_database(domain, database_id)
    if database.status != OK:
        raise ItemNotStable(database, f"The {database.name} database is not available.")

    name = (name or "").strip()
    host = (host or "localhost").strip()
    if not name or len(name) > USER_NAME_MAX_LENGTH or not _USER_NAME_RE.match(name):
        raise ValidationError("Invalid SQL username.")
    if not _HOST_RE.match(host):
        raise ValidationError("Invalid SQL user host.")
    _check_password(password)
    password_hash = mysql_native_password(password)

    siblings = SqlUser.query.filter(
        SqlUser.name == name, SqlUser.host == host, SqlUser.status != TODELETE
    ).all()
    for sibling in siblings:
        if sibling.database.domain_id != domain.id:
            raise ValidationError(f"The {name}@{host} SQL user is not available.")
        if sibling.sqld_id == database.id:
            raise ValidationError(f"The {name}@{host} SQL user already exists for this database.")
        if sibling.password_hash != password_hash:
            raise ValidationError(f"Wrong password for the existing {name}@{host} SQL user.")

    if not siblings and counting_service.limit_reached(
        domain.sql_user_limit, counting_service.customer_sql_users_count(domain.id)
    ):
        raise LimitReachedError("You have reached the maximum number of SQL users allowed.")

    sql_user = SqlUser(
        database=database,
        name=name,
        host=host,
        password_hash=password_hash,
        status=initial_status(TOADD),
    )
    db.session.add(sql_user)
    _commit()
    send_daemon_request("sql user added")
    logger.info("%s: added SQL user %s@%s for %s", customer.username, name, host, database.name)
    return sql_user


def change_sql_user_password(customer, sql_user, password):
    """The password is shared by every grant of the same name/host."""
    _check_password(password)
    password_hash = mysql_native_password(password)
    grants = SqlUser.query.filter_by(name=sql_user.name, host=sql_user.host).all()
    for grant in grants:
        ensure_stable(grant)
    for grant in grants:
        grant.password_hash = password_hash
        transition(grant, TOCHANGE)
    _commit()
    send_daemon_request("sql user password changed")
    logger.info("%s: updated password of SQL user %s@%s", customer.username, sql_user.name, sql_user.host)
    return sql_user


def delete_sql_user(customer, domain, sql_user_id):
    sql_user = get_customer_sql_user(domain, sql_user_id)
    transition(sql_user, TODELETE)
    _commit()
    send_daemon_request("sql user deleted")
    logger.info("%s: scheduled deletion of SQL user %s@%s", customer.username, sql_user.name, sql_user.host)
    return sql_user


def delete_database(customer, domain, database_id):
    database = get_customer_database(domain, database_id)
    users = SqlUser.query.filter_by(sqld_id=database.id)
    if has_pending(users):
        raise ValidationError(f"SQL users of {database.name} have pending operations. Retry later.")
    transition(database, TODELETE)
    try:
        schedule_bulk(users, TODELETE)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    send_daemon_request("sql database deleted")
    logger.info("%s: scheduled deletion of SQL database %s", customer.username, database.name)
    return database
