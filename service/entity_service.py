# service/entity_service.py
from database_init import db
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.subdomain import Subdomain
from models.subdomain_alias import SubdomainAlias
from models.user import User
from service.status_service import OK
from util.constant import DOMAIN_TYPE, USER_TYPE
from util.exceptions import NotFoundError

ENTITY_MODELS = {
    DOMAIN_TYPE.DOMAIN: Domain,
    DOMAIN_TYPE.ALIAS: DomainAlias,
    DOMAIN_TYPE.SUBDOMAIN: Subdomain,
    DOMAIN_TYPE.SUBDOMAIN_ALIAS: SubdomainAlias,
}


def get_customer(customer_id, reseller_id=None):
    query = User.query.filter_by(id=customer_id, user_type=USER_TYPE.CUSTOMER)
    if reseller_id is not None:
        query = query.filter_by(created_by=reseller_id)
    customer = query.first()
    if not customer:
        raise NotFoundError(f"Customer with ID {customer_id} not found.")
    return customer


def get_customer_main_domain(customer_id):
    domain = Domain.query.filter_by(admin_id=customer_id).first()
    if not domain:
        raise NotFoundError(f"Couldn't find domain of user with ID {customer_id}.")
    return domain


def get_domain_entity(domain, domain_type, entity_id):
    """Domain, alias, subdomain or subdomain alias owned by ``domain``."""
    model = ENTITY_MODELS.get(domain_type)
    if model is None:
        raise NotFoundError(f"Unknown domain type '{domain_type}'.")
    entity = db.session.get(model, entity_id)
    if entity is None or _main_domain_id(entity) != domain.id:
        raise NotFoundError("Domain not found.")
    return entity


def _main_domain_id(entity):
    if isinstance(entity, Domain):
        return entity.id
    if isinstance(entity, SubdomainAlias):
        return entity.alias.domain_id
    return entity.domain_id


def domain_entities(domain, ok_only=True):
    """Every web entity of the customer, main domain first."""
    entities = [domain]
    entities.extend(domain.subdomains)
    for alias in domain.aliases:
        entities.append(alias)
        entities.extend(alias.subdomains)
    if ok_only:
        entities = [e for e in entities if e.status == OK]
    return entities


def is_known_domain_name(name):
    """True when ``name`` is already used by any domain or domain alias."""
    return bool(
        Domain.query.filter_by(name=name).first()
        or DomainAlias.query.filter_by(name=name).first()
    )
