# service/counting_service.py
from flask import current_app
from sqlalchemy import or_
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
from service.status_service import TODELETE, ORDERED
from util.constant import LIMIT_DISABLED, USER_TYPE

FEATURE_LIMITS = {
    "subdomains": "subdomain_limit",
    "domain_aliases": "alias_limit",
    "mail": "mail_limit",
    "ftp": "ftp_limit",
    "sql": "sql_db_limit",
    "sql_users": "sql_user_limit",
}


def customer_has_feature(domain, feature):
    if feature == "ssl":
        return domain.ssl_allowed
    if feature == "protected_areas":
        return domain.protected_areas_allowed
    if feature == "custom_dns_records":
        return domain.dns_allowed
    if feature == "sql":
        return domain.sql_db_limit != LIMIT_DISABLED and domain.sql_user_limit != LIMIT_DISABLED
    return getattr(domain, FEATURE_LIMITS[feature]) != LIMIT_DISABLED


def limit_reached(limit, current):
    return limit > 0 and current >= limit


def _live(query, model):
    return query.filter(model.status != TODELETE)


# ====== Global counts ======
def count_users(user_type):
    return _live(User.query.filter_by(user_type=user_type), User).count()


def count_domains():
    return _live(Domain.query, Domain).count()


def count_subdomains():
    return (
        _live(Subdomain.query, Subdomain).count()
        + _live(SubdomainAlias.query, SubdomainAlias).count()
    )


def count_domain_aliases():
    return _live(DomainAlias.query, DomainAlias).filter(DomainAlias.status != ORDERED).count()


def _mail_query():
    query = _live(MailUser.query, MailUser).filter(~MailUser.mail_type.like("%catchall%"))
    if not current_app.config.get("COUNT_DEFAULT_EMAIL_ADDRESSES"):
        query = query.filter(MailUser.is_default.is_(False))
    return query


def count_mail_accounts():
    return _mail_query().count()


def count_ftp_users():
    return _live(FtpUser.query, FtpUser).count()


def count_sql_databases():
    return _live(SqlDatabase.query, SqlDatabase).count()


def count_sql_users():
    return _live(SqlUser.query, SqlUser).count()


def get_objects_counts():
    return {
        "admins": count_users(USER_TYPE.ADMIN),
        "resellers": count_users(USER_TYPE.RESELLER),
        "customers": count_users(USER_TYPE.CUSTOMER),
        "domains": count_domains(),
        "subdomains": count_subdomains(),
        "domain_aliases": count_domain_aliases(),
        "mail_accounts": count_mail_accounts(),
        "ftp_users": count_ftp_users(),
        "sql_databases": count_sql_databases(),
        "sql_users": count_sql_users(),
    }


# ====== Per customer (main domain) ======
def customer_subdomains_count(domain_id):
    return (
        _live(Subdomain.query.filter_by(domain_id=domain_id), Subdomain).count()
        + _live(
            SubdomainAlias.query.join(DomainAlias).filter(DomainAlias.domain_id == domain_id),
            SubdomainAlias,
        ).count()
    )


def customer_domain_aliases_count(domain_id):
    # Orders count: they consume the limit as soon as they are placed
    return _live(DomainAlias.query.filter_by(domain_id=domain_id), DomainAlias).count()


def customer_mail_accounts_count(domain_id):
    return _mail_query().filter(MailUser.domain_id == domain_id).count()


def customer_ftp_users_count(customer_id):
    return _live(FtpUser.query.filter_by(admin_id=customer_id), FtpUser).count()


def customer_sql_databases_count(domain_id):
    return _live(SqlDatabase.query.filter_by(domain_id=domain_id), SqlDatabase).count()


def customer_sql_users_count(domain_id):
    # A user granted on several databases counts once
    rows = (
        _live(SqlUser.query.join(SqlDatabase), SqlUser)
        .filter(SqlDatabase.domain_id == domain_id)
        .with_entities(SqlUser.name, SqlUser.host)
        .distinct()
        .all()
    )
    return len(rows)


def get_customer_objects_counts(domain):
    return {
        "subdomains": customer_subdomains_count(domain.id),
        "domain_aliases": customer_domain_aliases_count(domain.id),
        "mail_accounts": customer_mail_accounts_count(domain.id),
        "ftp_users": customer_ftp_users_count(domain.admin_id),
        "sql_databases": customer_sql_databases_count(domain.id),
        "sql_users": customer_sql_users_count(domain.id),
    }


# ====== Per reseller ======
def _reseller_domain_ids(reseller_id):
    return (
        db.select(Domain.id)
        .join(User, Domain.admin_id == User.id)
        .where(User.created_by == reseller_id)
    )


def get_reseller_objects_counts(reseller_id):
    domain_ids = _reseller_domain_ids(reseller_id)
    customer_ids = db.select(User.id).where(User.created_by == reseller_id)
    return {
        "customers": _live(User.query.filter_by(created_by=reseller_id), User).count(),
        "domains": _live(Domain.query.filter(Domain.id.in_(domain_ids)), Domain).count(),
        "subdomains": _live(Subdomain.query.filter(Subdomain.domain_id.in_(domain_ids)), Subdomain).count()
        + _live(
            SubdomainAlias.query.join(DomainAlias).filter(DomainAlias.domain_id.in_(domain_ids)),
            SubdomainAlias,
        ).count(),
        "domain_aliases": _live(
            DomainAlias.query.filter(DomainAlias.domain_id.in_(domain_ids)), DomainAlias
        )
        .filter(DomainAlias.status != ORDERED)
        .count(),
        "mail_accounts": _mail_query().filter(MailUser.domain_id.in_(domain_ids)).count(),
        "ftp_users": _live(FtpUser.query.filter(FtpUser.admin_id.in_(customer_ids)), FtpUser).count(),
        "sql_databases": _live(
            SqlDatabase.query.filter(SqlDatabase.domain_id.in_(domain_ids)), SqlDatabase
        ).count(),
        "sql_users": len(
            _live(SqlUser.query.join(SqlDatabase), SqlUser)
            .filter(SqlDatabase.domain_id.in_(domain_ids))
            .with_entities(SqlUser.name, SqlUser.host)
            .distinct()
            .all()
        ),
    }


def customers_of(reseller_id, search=None):
    query = User.query.filter_by(created_by=reseller_id, user_type=USER_TYPE.CUSTOMER)
    if search:
        like = f"%{search}%"
        query = query.outerjoin(Domain, Domain.admin_id == User.id).filter(
            or_(User.username.like(like), Domain.name.like(like))
        )
    return query.order_by(User.username.asc()).all()
