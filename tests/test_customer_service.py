import pytest

from database_init import db
from models.dns_record import DnsRecord
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.ftp_group import FtpGroup
from models.mail_user import MailUser
from models.user import User
from service import customer_service, ftp_service, reseller_service
from service.status_service import DISABLED, OK, ORDERED, TOADD, TOCHANGE, TODELETE, TODISABLE, TOENABLE
from util.constant import DOMAIN_TYPE, MIB
from util.exceptions import ItemNotStable, LimitReachedError, NotFoundError, PanelError, ValidationError
from conftest import make_customer, settle


def test_create_customer_schedules_everything(reseller):
    customer = make_customer(reseller, domain_name="Bücher.example")

    domain = customer.main_domain
    assert customer.status == TOADD
    assert domain.status == TOADD
    assert domain.name == "xn--bcher-kva.example"
    mails = {m.mail_acc for m in MailUser.query.filter_by(domain_id=domain.id)}
    assert mails == {"abuse", "hostmaster", "postmaster", "webmaster"}
    assert reseller.reseller_props.current_dmn_cnt == 1


def test_create_customer_without_mail_has_no_default_accounts(reseller):
    customer = make_customer(reseller, limits={"mail_limit": -1})
    assert MailUser.query.filter_by(domain_id=customer.main_domain.id).count() == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"username": "bad name"},
        {"password": "123"},
        {"email": "not-an-email"},
        {"domain_name": "localhost"},
        {"limits": {"sql_db_limit": -1, "sql_user_limit": 5}},
        {"limits": {"disk_limit": 100}, "mail_quota": 200},
    ],
)
def test_create_customer_validation(reseller, overrides):
    with pytest.raises(ValidationError):
        make_customer(reseller, **overrides)
    db.session.rollback()
    assert User.query.filter_by(username="client").count() == 0


def test_create_customer_refuses_taken_domain(customer, reseller):
    with pytest.raises(ValidationError):
        make_customer(reseller, username="other", domain_name="example.org")


def test_create_customer_respects_reseller_limits(admin):
    limits = {key: 0 for key in reseller_service.RESELLER_LIMIT_KEYS}
    limits.update({"dmn": 1, "mail": 10})
    reseller = reseller_service.create_reseller(admin, "small", "secret123", "small@example.net", limits)

    with pytest.raises(LimitReachedError):
        make_customer(reseller, limits={"mail_limit": 0})
    make_customer(reseller, limits={"mail_limit": 10})
    with pytest.raises(LimitReachedError):
        make_customer(reseller, username="second", domain_name="second.org", limits={"mail_limit": 1})


def test_update_limits_cannot_go_below_usage(reseller, customer, domain):
    ftp_service.add_ftp_user(customer, domain, DOMAIN_TYPE.DOMAIN, domain.id, "web", "secret123")
    settle()
    with pytest.raises(LimitReachedError):
        customer_service.update_customer_limits(reseller, customer.id, {"ftp_limit": -1})


def test_update_limits_syncs_mail_quota(reseller, customer, domain):
    for quota in (40, 60):
        db.session.add(
            MailUser(
                domain=domain,
                mail_acc=f"box{quota}",
                mail_addr=f"box{quota}@example.org",
                mail_type="normal_mail",
                quota=quota * MIB,
                status=OK,
            )
        )
    db.session.commit()

    customer_service.update_customer_limits(reseller, customer.id, {}, mail_quota_mib=50)

    boxes = MailUser.query.filter(MailUser.quota.isnot(None)).order_by(MailUser.id).all()
    assert [b.quota // MIB for b in boxes] == [20, 30]
    assert all(b.status == TOCHANGE for b in boxes)
    assert domain.mail_quota == 50 * MIB
    assert domain.status == TOCHANGE


def test_update_limits_refuses_domain_in_flight(reseller, customer, domain):
    domain.status = TOCHANGE
    db.session.commit()
    with pytest.raises(ItemNotStable):
        customer_service.update_customer_limits(reseller, customer.id, {})


def test_other_reseller_cannot_touch_customer(admin, customer):
    limits = {key: 0 for key in reseller_service.RESELLER_LIMIT_KEYS}
    other = reseller_service.create_reseller(admin, "other", "secret123", "other@example.net", limits)
    with pytest.raises(NotFoundError):
        customer_service.change_domain_status(other, customer.id, "deactivate")


def test_deactivate_with_hard_mail_suspension(app, reseller, customer, domain):
    app.config["HARD_MAIL_SUSPENSION"] = True
    customer_service.change_domain_status(reseller, customer.id, "deactivate")

    assert domain.status == TODISABLE
    mails = MailUser.query.filter_by(domain_id=domain.id).all()
    assert all(m.status == TODISABLE and not m.po_active for m in mails)


def test_deactivate_with_soft_mail_suspension(app, reseller, customer, domain):
    app.config["HARD_MAIL_SUSPENSION"] = False
    customer_service.change_domain_status(reseller, customer.id, "deactivate")

    mails = MailUser.query.filter_by(domain_id=domain.id).all()
    assert all(m.status == OK and not m.po_active for m in mails)


def test_activate_reenables_mail(reseller, customer, domain):
    customer_service.change_domain_status(reseller, customer.id, "deactivate")
    settle()
    assert domain.status == DISABLED

    customer_service.change_domain_status(reseller, customer.id, "activate")
    assert domain.status == TOENABLE
    assert all(m.status == TOENABLE for m in MailUser.query.filter_by(domain_id=domain.id))


def test_unknown_status_action(reseller, customer):
    with pytest.raises(PanelError):
        customer_service.change_domain_status(reseller, customer.id, "explode")


def test_delete_customer(reseller, customer, domain):
    db.session.add(DnsRecord(domain=domain, name="www.example.org.", record_type="A", data="192.0.2.1", status=OK))
    db.session.add(DomainAlias(domain=domain, name="ordered.org", mount="/ordered.org", status=ORDERED))
    ftp_service.add_ftp_user(customer, domain, DOMAIN_TYPE.DOMAIN, domain.id, "web", "secret123")
    settle()

    customer_service.delete_customer(reseller, customer.id)

    assert customer.status == TODELETE
    assert domain.status == TODELETE
    assert DnsRecord.query.count() == 0
    assert FtpGroup.query.count() == 0
    assert DomainAlias.query.count() == 0
    assert all(m.status == TODELETE for m in MailUser.query.all())
    assert reseller.reseller_props.current_dmn_cnt == 0


def test_delete_customer_refused_while_pending(reseller, customer, domain):
    MailUser.query.filter_by(domain_id=domain.id).first().status = TOCHANGE
    db.session.commit()
    with pytest.raises(ValidationError):
        customer_service.delete_customer(reseller, customer.id)
    assert Domain.query.one().status == OK


def test_shrinking_mail_quota_keeps_one_mib_per_mailbox(reseller, customer, domain):
    settle()
    for name, quota_mib in [("big", 1000), ("small", 1), ("tiny", 1)]:
        db.session.add(
            MailUser(
                domain=domain,
                mail_acc=name,
                mail_addr=f"{name}@example.org",
                mail_type="normal_mail",
                quota=quota_mib * MIB,
                status=OK,
            )
        )
    db.session.commit()

    customer_service.update_customer_limits(reseller, customer.id, {}, mail_quota_mib=3)

    quotas = [m.quota for m in MailUser.query.filter(MailUser.quota.isnot(None)).all()]
    assert quotas == [MIB, MIB, MIB]
