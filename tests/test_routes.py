import pytest

from database_init import db
from models.mail_user import MailUser
from models.ticket import Ticket
from models.user import User
from service.status_service import DISABLED, TOADD
from util.constant import DOMAIN_TYPE
from conftest import PASSWORD, login, settle

CUSTOMER_FORM = {
    "username": "newclient",
    "email": "newclient@mail.example.net",
    "password": PASSWORD,
    "confirm_password": PASSWORD,
    "domain_name": "new-client.example",
    "subdomain_limit": "0",
    "alias_limit": "0",
    "mail_limit": "10",
    "ftp_limit": "0",
    "sql_db_limit": "0",
    "sql_user_limit": "0",
    "disk_limit": "0",
    "traffic_limit": "0",
    "mail_quota": "0",
    "ssl_allowed": "y",
    "dns_allowed": "y",
}


def test_login_page(client):
    response = client.get("/login")
    assert response.status_code == 200
    assert b"Username" in response.data


def test_home_requires_login(client):
    response = client.get("/")
    assert response.status_code == 302
    assert "/login" in response.headers["Location"]


def test_bad_credentials(client, admin):
    response = client.post("/login", data={"username": "admin", "password": "wrong"})
    assert b"Wrong username or password." in response.data


def test_login_and_logout(client, admin):
    response = login(client, "Admin")
    assert b"Logged in successfully." in response.data
    response = client.get("/logout", follow_redirects=True)
    assert b"Logged out." in response.data


def test_maintenance_mode_only_admins(app, client, reseller):
    app.config["MAINTENANCE_MODE"] = True
    response = login(client, "reseller")
    assert b"maintenance mode" in response.data
    assert client.get("/").status_code == 302


def test_disabled_customer_cannot_login(client, customer, domain):
    domain.status = DISABLED
    response = login(client, "client")
    assert b"Your account has been deactivated." in response.data


@pytest.mark.parametrize("url", ["/admin/resellers", "/reseller/customers"])
def test_customer_forbidden_elsewhere(customer_client, url):
    assert customer_client.get(url).status_code == 403


def test_reseller_cannot_use_client_pages(reseller_client):
    assert reseller_client.get("/client/domains").status_code == 403


@pytest.mark.parametrize(
    "url", ["/", "/admin/resellers", "/admin/resellers/add", "/admin/customers", "/admin/tasks"]
)
def test_admin_pages(admin_client, customer, url):
    assert admin_client.get(url).status_code == 200


@pytest.mark.parametrize(
    "url", ["/", "/reseller/customers", "/reseller/customers/add", "/reseller/alias_orders", "/tickets/"]
)
def test_reseller_pages(reseller_client, customer, url):
    assert reseller_client.get(url).status_code == 200


@pytest.mark.parametrize(
    "url",
    [
        "/",
        "/client/domains",
        "/client/mail",
        "/client/mail/add",
        "/client/ftp",
        "/client/sql",
        "/client/protected_areas",
        "/client/dns",
        "/tickets/",
        "/tickets/new",
    ],
)
def test_customer_pages(customer_client, url):
    assert customer_client.get(url).status_code == 200


def test_reseller_adds_customer(reseller_client):
    response = reseller_client.post("/reseller/customers/add", data=CUSTOMER_FORM, follow_redirects=True)
    assert b"successfully scheduled for addition" in response.data
    user = User.query.filter_by(username="newclient").one()
    assert user.status == TOADD
    assert user.main_domain.mail_limit == 10
    assert user.main_domain.ssl_allowed
    assert not user.main_domain.protected_areas_allowed


def test_reseller_add_customer_error_is_flashed(reseller_client, customer):
    data = dict(CUSTOMER_FORM, domain_name="example.org")
    response = reseller_client.post("/reseller/customers/add", data=data)
    assert response.status_code == 200
    assert b"already registered" in response.data
    assert User.query.filter_by(username="newclient").first() is None


def test_customer_adds_mail_account(customer_client, domain):
    response = customer_client.post(
        "/client/mail/add",
        data={
            "entity": f"{DOMAIN_TYPE.DOMAIN}:{domain.id}",
            "local_part": "john",
            "account_type": "normal",
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "quota": "10",
        },
        follow_redirects=True,
    )
    assert b"Mail account successfully scheduled for addition." in response.data
    assert MailUser.query.filter_by(mail_addr="john@example.org").one().status == TOADD


def test_customer_cannot_touch_foreign_mail(customer_client, reseller):
    from conftest import make_customer

    make_customer(reseller, "other", "other.example")
    settle()
    foreign = MailUser.query.filter_by(mail_addr="webmaster@other.example").one()
    assert customer_client.get(f"/client/mail/{foreign.id}/edit").status_code == 404


def test_customer_opens_ticket(customer_client, reseller):
    response = customer_client.post(
        "/tickets/new",
        data={"subject": "Help", "urgency": "3", "message": "My site is down"},
        follow_redirects=True,
    )
    assert b"Your message has been sent." in response.data
    ticket = Ticket.query.one()
    assert ticket.to_id == reseller.id
    assert ticket.urgency == 3


def test_alias_forward_form_errors_are_flashed(customer_client, domain):
    from models.domain_alias import DomainAlias
    from service.status_service import OK

    alias = DomainAlias(domain=domain, name="example.net", mount="/example.net", status=OK)
    db.session.add(alias)
    db.session.commit()

    response = customer_client.post(
        f"/client/aliases/{alias.id}/forward", data={"url_forward": "http://" + "a" * 300}
    )
    assert response.status_code == 200
    assert b"URL forward: Field cannot be longer than 255 characters." in response.data
    assert alias.url_forward is None
