import pytest

from service import htaccess_service
from service.status_service import OK, TOADD, TOCHANGE, TODELETE
from util.exceptions import ItemNotStable, NotFoundError, PanelError, ValidationError
from conftest import make_customer, settle


def test_split_ids():
    assert htaccess_service.split_ids("3,1, 2,x,") == [3, 1, 2]
    assert htaccess_service.split_ids(None) == []


def test_add_user_and_group(customer, domain):
    bob = htaccess_service.add_user(customer, domain, "bob", "secret123")
    assert bob.status == TOADD
    assert bob.upass != "secret123"
    with pytest.raises(ValidationError):
        htaccess_service.add_user(customer, domain, "bob", "secret123")
    with pytest.raises(ValidationError):
        htaccess_service.add_user(customer, domain, "ann", "short")

    group = htaccess_service.add_group(customer, domain, "staff", member_ids=[bob.id])
    assert group.members == str(bob.id)
    with pytest.raises(ValidationError):
        htaccess_service.add_group(customer, domain, "staff")


def test_add_area(customer, domain):
    bob = htaccess_service.add_user(customer, domain, "bob", "secret123")
    area = htaccess_service.add_area(customer, domain, "private/", "Members only", user_ids=[bob.id])
    assert area.path == "/private"
    assert area.user_ids == str(bob.id)
    assert area.group_ids is None
    with pytest.raises(ValidationError):
        htaccess_service.add_area(customer, domain, "/private", "Again", user_ids=[bob.id])
    with pytest.raises(ValidationError):
        htaccess_service.add_area(customer, domain, "/other", "Nobody")
    with pytest.raises(ValidationError):
        htaccess_service.add_area(customer, domain, "/other", " ", user_ids=[bob.id])


def test_area_refers_only_to_own_users(reseller, customer, domain):
    other = make_customer(reseller, "other", "other.example")
    settle()
    theirs = htaccess_service.add_user(other, other.main_domain, "bob", "secret123")
    with pytest.raises(NotFoundError):
        htaccess_service.add_area(customer, domain, "/private", "Members", user_ids=[theirs.id])


def test_feature_disabled(customer, domain):
    domain.protected_areas_allowed = False
    with pytest.raises(PanelError):
        htaccess_service.add_user(customer, domain, "bob", "secret123")


def test_delete_user_detaches_it(customer, domain):
    bob = htaccess_service.add_user(customer, domain, "bob", "secret123")
    ann = htaccess_service.add_user(customer, domain, "ann", "secret123")
    staff = htaccess_service.add_group(customer, domain, "staff", member_ids=[bob.id, ann.id])
    only_bob = htaccess_service.add_area(customer, domain, "/bob", "Bob", user_ids=[bob.id])
    shared = htaccess_service.add_area(customer, domain, "/shared", "Shared", user_ids=[bob.id, ann.id])
    settle()

    htaccess_service.delete_user(customer, domain, bob.id)

    assert bob.status == TODELETE
    assert only_bob.status == TODELETE
    assert shared.user_ids == str(ann.id)
    assert shared.status == TOCHANGE
    assert staff.members == str(ann.id)
    assert staff.status == TOCHANGE


def test_delete_group_detaches_it(customer, domain):
    staff = htaccess_service.add_group(customer, domain, "staff")
    area = htaccess_service.add_area(customer, domain, "/staff", "Staff", group_ids=[staff.id])
    settle()
    htaccess_service.delete_group(customer, domain, staff.id)
    assert staff.status == TODELETE
    assert area.status == TODELETE


def test_assign_user(customer, domain):
    bob = htaccess_service.add_user(customer, domain, "bob", "secret123")
    staff = htaccess_service.add_group(customer, domain, "staff")
    with pytest.raises(ItemNotStable):
        htaccess_service.assign_user(customer, domain, staff.id, bob.id)
    settle()

    htaccess_service.assign_user(customer, domain, staff.id, bob.id)
    assert staff.members == str(bob.id)
    assert staff.status == TOCHANGE
    settle()
    htaccess_service.assign_user(customer, domain, staff.id, bob.id, assign=False)
    assert staff.members is None


def test_change_user_password(customer, domain):
    bob = htaccess_service.add_user(customer, domain, "bob", "secret123")
    settle()
    old_hash = bob.upass
    htaccess_service.change_user_password(customer, domain, bob.id, "another1")
    assert bob.upass != old_hash
    assert bob.status == TOCHANGE


def test_delete_area(customer, domain):
    bob = htaccess_service.add_user(customer, domain, "bob", "secret123")
    area = htaccess_service.add_area(customer, domain, "/private", "Members", user_ids=[bob.id])
    with pytest.raises(ItemNotStable):
        htaccess_service.delete_area(customer, domain, area.id)
    settle()
    htaccess_service.delete_area(customer, domain, area.id)
    assert area.status == TODELETE
    assert bob.status == OK
