# service/ssl_service.py
import logging
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from models.ssl_cert import SslCertificate
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
from util.exceptions import ItemNotStable, NotFoundError, PanelError, ValidationError

logger = logging.getLogger("panel")

HSTS_MAX_AGE_DEFAULT = 31536000


def _pem_bytes(value):
    return (value or "").strip().replace("\r\n", "\n").encode("ascii", errors="replace")


def load_private_key(pem, passphrase=None):
    try:
        return serialization.load_pem_private_key(
            _pem_bytes(pem), password=passphrase.encode("utf-8") if passphrase else None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm):
        raise ValidationError("Invalid private key or wrong passphrase.")


def load_certificate(pem):
    try:
        return x509.load_pem_x509_certificate(_pem_bytes(pem))
    except ValueError:
        raise ValidationError("Invalid SSL certificate.")


def load_ca_bundle(pem):
    if not (pem or "").strip():
        return []
    try:
        return x509.load_pem_x509_certificates(_pem_bytes(pem))
    except ValueError:
        raise ValidationError("Invalid CA bundle.")


def _public_bytes(key):
    return key.public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def certificate_names(cert):
    names = [a.value for a in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)]
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        names.extend(san.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        pass
    return [n.lower() for n in names]


def covers_name(cert, fqdn):
    fqdn = fqdn.lower()
    for name in certificate_names(cert):
        if name == fqdn:
            return True
        if name.startswith("*.") and fqdn.split(".", 1)[-1] == name[2:]:
            return True
    return False


def validate_certificate(private_key_pem, certificate_pem, ca_bundle_pem=None, passphrase=None):
    """
    Check that the key and the certificate belong together.

    Returns (private key PEM without passphrase, certificate).
    """
    key = load_private_key(private_key_pem, passphrase)
    cert = load_certificate(certificate_pem)
    load_ca_bundle(ca_bundle_pem)
    if _public_bytes(key.public_key()) != _public_bytes(cert.public_key()):
        raise ValidationError("The private key doesn't match the SSL certificate.")
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    return key_pem, cert


def get_entity_certificate(domain_type, entity_id):
    return SslCertificate.query.filter_by(domain_type=domain_type, domain_id=entity_id).first()


def _touch_entity(entity):
    """The vhost of the owning entity must be rebuilt."""
    if can_transition(entity.status, TOCHANGE):
        transition(entity, TOCHANGE)


def save_certificate(
    customer,
    domain,
    domain_type,
    entity_id,
    private_key_pem,
    certificate_pem,
    ca_bundle_pem=None,
    passphrase=None,
    allow_hsts=False,
    hsts_max_age=HSTS_MAX_AGE_DEFAULT,
    hsts_include_subdomains=False,
):
    """Add or update the SSL certificate of a domain entity."""
    if not counting_service.customer_has_feature(domain, "ssl"):
        raise PanelError("SSL feature is disabled for your account.")
    entity = get_domain_entity(domain, domain_type, entity_id)
    if entity.status != OK:
        raise ItemNotStable(entity, f"{entity.fqdn} is not available for SSL changes.")

    key_pem, cert = validate_certificate(private_key_pem, certificate_pem, ca_bundle_pem, passphrase)
    if not covers_name(cert, entity.fqdn):
        logger.warning("%s: SSL certificate for %s doesn't cover that name", customer.username, entity.fqdn)
    try:
        hsts_max_age = int(hsts_max_age)
    except (TypeError, ValueError):
        raise ValidationError("Invalid HSTS max-age.")
    if hsts_max_age < 0:
        raise ValidationError("Invalid HSTS max-age.")

    ssl_cert = get_entity_certificate(domain_type, entity.id)
    if ssl_cert is None:
        ssl_cert = SslCertificate(
            domain_id=entity.id, domain_type=domain_type, status=initial_status(TOADD)
        )
        db.session.add(ssl_cert)
        action = "added"
    else:
        ensure_stable(ssl_cert)
        transition(ssl_cert, TOCHANGE)
        action = "updated"

    ssl_cert.private_key = key_pem
    ssl_cert.certificate = certificate_pem.strip()
    ssl_cert.ca_bundle = (ca_bundle_pem or "").strip() or None
    ssl_cert.allow_hsts = bool(allow_hsts)
    ssl_cert.hsts_max_age = hsts_max_age
    ssl_cert.hsts_include_subdomains = bool(hsts_include_subdomains)
    ssl_cert.expires_at = cert.not_valid_after_utc.replace(tzinfo=None)
    _touch_entity(entity)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request(f"ssl certificate {action}")
    logger.info("%s: %s SSL certificate for %s", customer.username, action, entity.fqdn)
    return ssl_cert


def delete_certificate(customer, domain, domain_type, entity_id):
    entity = get_domain_entity(domain, domain_type, entity_id)
    ssl_cert = get_entity_certificate(domain_type, entity.id)
    if ssl_cert is None:
        raise NotFoundError("SSL certificate not found.")
    transition(ssl_cert, TODELETE)
    _touch_entity(entity)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("ssl certificate deleted")
    logger.info("%s: scheduled deletion of SSL certificate for %s", customer.username, entity.fqdn)
