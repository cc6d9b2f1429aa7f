# service/dns_service.py
import ipaddress
import logging
import re
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from models.dns_record import DnsRecord
from service import counting_service
from service.entity_service import get_domain_entity
from service.provisioning_service import send_daemon_request
from service.status_service import (
    OK,
    TOADD,
    TOCHANGE,
    TODELETE,
    is_pending,
    initial_status,
    transition,
)
from util.constant import DNS_RECORD_TYPES, DOMAIN_TYPE
from util.exceptions import ItemNotStable, NotFoundError, PanelError, ValidationError
from util.until import encode_idna, is_valid_domain_name

logger = logging.getLogger("panel")

_SRV_NAME_RE = re.compile(r"^_[a-z0-9-]+\._(tcp|udp|tls)$", re.I)


def get_customer_record(domain, record_id):
    record = DnsRecord.query.filter_by(
        id=record_id, domain_id=domain.id, owned_by="custom_dns_feature"
    ).first()
    if not record:
        raise NotFoundError("DNS record not found.")
    return record


def _hostname(value):
    value = encode_idna(value)
    if not is_valid_domain_name(value, min_labels=1):
        raise ValidationError(f"Invalid host name: {value}")
    return value


def _int_field(value, name, maximum=65535):
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}.")
    if not 0 <= value <= maximum:
        raise ValidationError(f"Invalid {name}.")
    return value


def validate_record_data(record_type, data):
    """Return the normalized RDATA for ``record_type``."""
    data = (data or "").strip()
    if not data:
        raise ValidationError("The record data cannot be empty.")

    if record_type == "A":
        try:
            return str(ipaddress.IPv4Address(data))
        except ValueError:
            raise ValidationError(f"Invalid IPv4 address: {data}")
    if record_type == "AAAA":
        try:
            return str(ipaddress.IPv6Address(data))
        except ValueError:
            raise ValidationError(f"Invalid IPv6 address: {data}")
    if record_type == "CNAME":
        return _hostname(data.rstrip(".")) + "."
    if record_type == "MX":
        parts = data.split()
        if len(parts) != 2:
            raise ValidationError("MX data must be '<priority> <host>'.")
        return f"{_int_field(parts[0], 'MX priority')} {_hostname(parts[1].rstrip('.'))}."
    if record_type == "SRV":
        parts = data.split()
        if len(parts) != 4:
            raise ValidationError("SRV data must be '<priority> <weight> <port> <target>'.")
        priority = _int_field(parts[0], "SRV priority")
        weight = _int_field(parts[1], "SRV weight")
        port = _int_field(parts[2], "SRV port")
        return f"{priority} {weight} {port} {_hostname(parts[3].rstrip('.'))}."
    if record_type == "TXT":
        if len(data) > 255 and not data.startswith('"'):
            # Long strings are split in 255 chars chunks
            chunks = [data[i:i + 255] for i in range(0, len(data), 255)]
            return " ".join(f'"{c}"' for c in chunks)
        if not data.startswith('"'):
            data = '"' + data.replace('"', '\\"') + '"'
        return data
    raise ValidationError(f"Unsupported DNS record type: {record_type}")


def _record_name(name, zone, record_type):
    name = (name or "").strip().rstrip(".").lower()
    if name in ("", "@"):
        return zone + "."
    if name != zone and not name.endswith("." + zone):
        name = f"{name}.{zone}"
    labels = name[: -len(zone)].rstrip(".")
    if record_type == "SRV":
        if not _SRV_NAME_RE.match(".".join(labels.split(".")[:2])):
            raise ValidationError("SRV record names must look like _service._proto.")
    elif labels and not is_valid_domain_name(encode_idna(labels), min_labels=1) and labels != "*":
        raise ValidationError(f"Invalid record name: {name}")
    return name + "."


def _check_cname_conflicts(domain, name, record_type, exclude_id=None):
    query = DnsRecord.query.filter(
        DnsRecord.domain_id == domain.id, DnsRecord.name == name, DnsRecord.status != TODELETE
    )
    if exclude_id:
        query = query.filter(DnsRecord.id != exclude_id)
    others = query.all()
    if record_type == "CNAME" and others:
        raise ValidationError("A CNAME record cannot coexist with other records of the same name.")
    if any(r.record_type == "CNAME" for r in others):
        raise ValidationError(f"A CNAME record already exists for {name}.")


def add_record(customer, domain, domain_type, entity_id, name, record_type, data):
    if not counting_service.customer_has_feature(domain, "custom_dns_records"):
        raise PanelError("Custom DNS records feature is disabled for your account.")
    if domain_type not in (DOMAIN_TYPE.DOMAIN, DOMAIN_TYPE.ALIAS):
        raise ValidationError("DNS records can only be added to a domain or a domain alias.")
    zone = get_domain_entity(domain, domain_type, entity_id)
    if zone.status != OK:
        raise ItemNotStable(zone, f"{zone.fqdn} is not available for new DNS records.")

    record_type = (record_type or "").upper()
    if record_type not in DNS_RECORD_TYPES:
        raise ValidationError(f"Unsupported DNS record type: {record_type}")
    name = _record_name(name, zone.fqdn, record_type)
    data = validate_record_data(record_type, data)
    _check_cname_conflicts(domain, name, record_type)

    if DnsRecord.query.filter_by(
        domain_id=domain.id, name=name, record_type=record_type, data=data
    ).first():
        raise ValidationError("This DNS record already exists.")

    record = DnsRecord(
        domain=domain,
        alias_id=zone.id if domain_type == DOMAIN_TYPE.ALIAS else None,
        name=name,
        record_type=record_type,
        data=data,
        status=initial_status(TOADD),
    )
    try:
        db.session.add(record)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("dns record added")
    logger.info("%s: added %s DNS record for %s", customer.username, record_type, name)
    return record


def edit_record(customer, domain, record_id, name, data):
    record = get_customer_record(domain, record_id)
    zone = record.alias.name if record.alias_id else domain.name
    new_name = _record_name(name, zone, record.record_type)
    new_data = validate_record_data(record.record_type, data)
    _check_cname_conflicts(domain, new_name, record.record_type, exclude_id=record.id)

    transition(record, TOCHANGE)
    record.name = new_name
    record.data = new_data
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("dns record changed")
    logger.info("%s: updated DNS record %s", customer.username, record.name)
    return record


def delete_record(customer, domain, record_id):
    record = get_customer_record(domain, record_id)
    if is_pending(record.status):
        raise ItemNotStable(
            record, "This DNS record has a pending operation and cannot be deleted now."
        )
    transition(record, TODELETE)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    send_daemon_request("dns record deleted")
    logger.info("%s: scheduled deletion of DNS record %s", customer.username, record.name)
    return record
