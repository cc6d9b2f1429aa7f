import pytest

from models.user import User
from service import counting_service, reseller_service
from util.exceptions import LimitReachedError, NotFoundError, ValidationError
from conftest import make_customer, settle


def _limits(**values):
    limits = {key: 0 for key in reseller_service.RESELLER_LIMIT_KEYS}
    limits.update(values)
    return limits


def test_create_reseller(admin):
    reseller = reseller_service.create_reseller(
        admin, "Shop", "secret123", "shop@example.net", _limits(dmn=5, disk=1000)
    )
    assert reseller.username == "shop"
    assert reseller.is_reseller
    assert reseller.reseller_props.maximum("dmn") == 5
    assert reseller.reseller_props.current("disk") == 0


def test_create_reseller_rejects_duplicates(admin, reseller):
    with pytest.raises(ValidationError):
        reseller_service.create_reseller(admin, "reseller", "secret123", "x@example.net", _limits())


@pytest.mark.parametrize(
    "maximum,current,new,old,allowed",
    [
        (0, 100, 50, 0, True),
        (-1, 0, -1, 0, True),
        (-1, 0, 5, 0, False),
        (10, 0, 0, 0, False),
        (10, 8, 2, 0, True),
        (10, 8, 3, 0, False),
        (10, 8, 5, 3, True),
    ],
)
def test_check_assignment(reseller, maximum, current, new, old, allowed):
    props = reseller.reseller_props
    props.set_maximum("mail", maximum)
    props.set_current("mail", current)
    assert (reseller_service.check_assignment(props, "mail", new, old) is None) is allowed


def test_recalculate_sums_assigned_limits(reseller):
    make_customer(reseller, limits={"mail_limit": 10, "ftp_limit": -1})
    make_customer(reseller, username="second", domain_name="second.org", limits={"mail_limit": 5})

    props = reseller_service.recalculate_reseller_assignments(reseller.id)
    assert props.current_dmn_cnt == 2
    assert props.current("mail") == 15
    assert props.current("ftp") == 0


def test_update_limits_not_below_assigned(admin, reseller):
    make_customer(reseller, limits={"mail_limit": 10})
    with pytest.raises(LimitReachedError):
        reseller_service.update_reseller_limits(admin, reseller, {"mail": 5})
    props = reseller_service.update_reseller_limits(admin, reseller, {"mail": 20})
    assert props.maximum("mail") == 20


def test_delete_reseller_with_customers_is_refused(admin, reseller):
    make_customer(reseller)
    settle()
    with pytest.raises(ValidationError):
        reseller_service.delete_reseller(admin, reseller.id)


def test_delete_reseller(admin, reseller):
    reseller_id = reseller.id
    reseller_service.delete_reseller(admin, reseller_id)
    assert User.query.filter_by(id=reseller_id).count() == 0
    with pytest.raises(NotFoundError):
        reseller_service.get_reseller(reseller_id)


def test_reseller_object_counts(reseller):
    make_customer(reseller)
    settle()
    counts = counting_service.get_reseller_objects_counts(reseller.id)
    assert counts["customers"] == 1
    assert counts["domains"] == 1
    # default addresses are not counted
    assert counts["mail_accounts"] == 0


def test_default_addresses_counted_when_configured(app, reseller):
    app.config["COUNT_DEFAULT_EMAIL_ADDRESSES"] = True
    make_customer(reseller)
    assert counting_service.get_reseller_objects_counts(reseller.id)["mail_accounts"] == 4


def test_limit_reached():
    assert not counting_service.limit_reached(0, 1000)
    assert counting_service.limit_reached(2, 2)
    assert not counting_service.limit_reached(2, 1)
