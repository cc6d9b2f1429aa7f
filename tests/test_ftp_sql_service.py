import pytest
from werkzeug.security import check_password_hash

from models.ftp_group import FtpGroup
from models.sql_user import SqlUser
from service import counting_service, ftp_service, sql_service
from service.status_service import TOADD, TOCHANGE, TODELETE
from util.constant import DOMAIN_TYPE
from util.exceptions import ItemNotStable, LimitReachedError, NotFoundError, PanelError, ValidationError
from conftest import make_customer, settle


# ====== FTP ======
def _ftp(customer, domain, name="bob", password="secret123", homedir="/"):
    return ftp_service.add_ftp_user(customer, domain, DOMAIN_TYPE.DOMAIN, domain.id, name, password, homedir)


def test_add_ftp_user(customer, domain):
    ftp_user = _ftp(customer, domain, "Bob", homedir="/htdocs/")
    assert ftp_user.userid == "bob@example.org"
    assert ftp_user.homedir == ftp_service.customer_root(domain) + "/htdocs"
    assert ftp_user.status == TOADD
    assert check_password_hash(ftp_user.passwd, "secret123")
    assert FtpGroup.query.filter_by(groupname="client").one().member_list == ["bob@example.org"]


def test_ftp_homedir_cannot_escape_root(customer, domain):
    ftp_user = _ftp(customer, domain, homedir="../../etc")
    assert ftp_user.homedir == ftp_service.customer_root(domain) + "/etc"


def test_ftp_group_collects_members(customer, domain):
    _ftp(customer, domain, "bob")
    _ftp(customer, domain, "ann")
    assert FtpGroup.query.filter_by(groupname="client").one().members == "bob@example.org,ann@example.org"


@pytest.mark.parametrize("name,password", [("bad name", "secret123"), ("bob", "short")])
def test_ftp_validation(customer, domain, name, password):
    with pytest.raises(ValidationError):
        _ftp(customer, domain, name, password)


def test_ftp_duplicate_and_limit(customer, domain):
    domain.ftp_limit = 2
    _ftp(customer, domain, "bob")
    with pytest.raises(ValidationError):
        _ftp(customer, domain, "bob")
    _ftp(customer, domain, "ann")
    with pytest.raises(LimitReachedError):
        _ftp(customer, domain, "joe")


def test_ftp_disabled(customer, domain):
    domain.ftp_limit = -1
    with pytest.raises(PanelError):
        _ftp(customer, domain)


def test_change_ftp_password(customer, domain):
    ftp_user = _ftp(customer, domain)
    with pytest.raises(ItemNotStable):
        ftp_service.change_ftp_password(customer, ftp_user, "another1")
    settle()
    ftp_service.change_ftp_password(customer, ftp_user, "another1", homedir="/logs")
    assert ftp_user.status == TOCHANGE
    assert check_password_hash(ftp_user.passwd, "another1")
    assert ftp_user.homedir.endswith("/example.org/logs")


def test_delete_ftp_user_drops_group(customer, domain):
    ftp_user = _ftp(customer, domain)
    settle()
    ftp_service.delete_ftp_user(customer, ftp_user.id)
    assert ftp_user.status == TODELETE
    assert FtpGroup.query.filter_by(groupname="client").first() is None


def test_ftp_user_of_another_customer(reseller, customer, domain):
    other = make_customer(reseller, "other", "other.example")
    settle()
    ftp_user = ftp_service.add_ftp_user(
        other, other.main_domain, DOMAIN_TYPE.DOMAIN, other.main_domain.id, "bob", "secret123"
    )
    with pytest.raises(NotFoundError):
        ftp_service.delete_ftp_user(customer, ftp_user.id)


# ====== SQL ======
def test_mysql_native_password():
    assert sql_service.mysql_native_password("password") == "*2470C0C06DEE42FD1618BB99005ADCA2EC9D1E19"


def test_add_database_with_prefix(customer, domain):
    database = sql_service.add_database(customer, domain, "blog")
    assert database.name == "client_blog"
    assert database.status == TOADD
    with pytest.raises(ValidationError):
        sql_service.add_database(customer, domain, "blog")


@pytest.mark.parametrize("name", ["", "bad-name", "mysql", "x" * 65])
def test_add_database_rejects(customer, domain, name):
    with pytest.raises(ValidationError):
        sql_service.add_database(customer, domain, name, use_prefix=False)


def test_sql_disabled(customer, domain):
    domain.sql_user_limit = -1
    with pytest.raises(PanelError):
        sql_service.add_database(customer, domain, "blog")


def _database(customer, domain, name):
    database = sql_service.add_database(customer, domain, name)
    settle()
    return database


def test_add_sql_user_needs_stable_database(customer, domain):
    database = sql_service.add_database(customer, domain, "blog")
    with pytest.raises(ItemNotStable):
        sql_service.add_sql_user(customer, domain, database.id, "bob", "secret123")


def test_shared_sql_user_must_reuse_password(customer, domain):
    blog = _database(customer, domain, "blog")
    shop = _database(customer, domain, "shop")
    first = sql_service.add_sql_user(customer, domain, blog.id, "bob", "secret123")
    assert first.password_hash == sql_service.mysql_native_password("secret123")

    with pytest.raises(ValidationError):
        sql_service.add_sql_user(customer, domain, blog.id, "bob", "secret123")
    with pytest.raises(ValidationError):
        sql_service.add_sql_user(customer, domain, shop.id, "bob", "different")

    second = sql_service.add_sql_user(customer, domain, shop.id, "bob", "secret123")
    assert second.password_hash == first.password_hash
    # another host is another account
    sql_service.add_sql_user(customer, domain, shop.id, "bob", "other-pass", host="%")


def test_sql_user_limit_counts_accounts_once(customer, domain):
    domain.sql_user_limit = 1
    blog = _database(customer, domain, "blog")
    shop = _database(customer, domain, "shop")
    sql_service.add_sql_user(customer, domain, blog.id, "bob", "secret123")
    sql_service.add_sql_user(customer, domain, shop.id, "bob", "secret123")
    with pytest.raises(LimitReachedError):
        sql_service.add_sql_user(customer, domain, shop.id, "ann", "secret123")


def test_reseller_counts_shared_sql_user_once(reseller, customer, domain):
    blog = _database(customer, domain, "blog")
    shop = _database(customer, domain, "shop")
    sql_service.add_sql_user(customer, domain, blog.id, "bob", "secret123")
    sql_service.add_sql_user(customer, domain, shop.id, "bob", "secret123")

    assert counting_service.customer_sql_users_count(domain.id) == 1
    assert counting_service.get_reseller_objects_counts(reseller.id)["sql_users"] == 1


def test_sql_user_of_another_customer_unavailable(reseller, customer, domain):
    other = make_customer(reseller, "other", "other.example")
    settle()
    theirs = _database(other, other.main_domain, "db")
    sql_service.add_sql_user(other, other.main_domain, theirs.id, "bob", "secret123")
    mine = _database(customer, domain, "db")
    with pytest.raises(ValidationError):
        sql_service.add_sql_user(customer, domain, mine.id, "bob", "secret123")


def test_change_password_updates_every_grant(customer, domain):
    blog = _database(customer, domain, "blog")
    shop = _database(customer, domain, "shop")
    first = sql_service.add_sql_user(customer, domain, blog.id, "bob", "secret123")
    second = sql_service.add_sql_user(customer, domain, shop.id, "bob", "secret123")
    settle()

    sql_service.change_sql_user_password(customer, first, "changed1")
    expected = sql_service.mysql_native_password("changed1")
    assert first.password_hash == second.password_hash == expected
    assert first.status == second.status == TOCHANGE


def test_sql_password_must_be_ascii(customer, domain):
    blog = _database(customer, domain, "blog")
    with pytest.raises(ValidationError):
        sql_service.add_sql_user(customer, domain, blog.id, "bob", "pässword")


def test_delete_database_schedules_users(customer, domain):
    blog = _database(customer, domain, "blog")
    bob = sql_service.add_sql_user(customer, domain, blog.id, "bob", "secret123")
    with pytest.raises(ValidationError):
        sql_service.delete_database(customer, domain, blog.id)
    settle()

    sql_service.delete_database(customer, domain, blog.id)
    assert blog.status == TODELETE
    assert bob.status == TODELETE
    settle()
    assert SqlUser.query.count() == 0
