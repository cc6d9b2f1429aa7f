"""Pytest fixtures: an in-memory panel with one admin, one reseller and one customer."""
import pytest
from werkzeug.security import generate_password_hash

from app_factory import create_app
from config import TestConfig
from database_init import db
from models.user import User
from service import customer_service, reseller_service
from service.status_service import OK, PENDING_STATUSES, PROVISIONABLE_MODELS, complete
from util.constant import USER_TYPE

PASSWORD = "secret123"


def settle():
    """Play the daemon: complete every pending row successfully."""
    for model in PROVISIONABLE_MODELS.values():
        for row in model.query.filter(model.status.in_(PENDING_STATUSES)).all():
            complete(row, True)
    db.session.commit()


def make_customer(reseller, username="client", domain_name="example.org", **overrides):
    data = {
        "username": username,
        "password": PASSWORD,
        "email": f"{username}@mail.example.net",
        "domain_name": domain_name,
        "limits": {},
        "mail_quota": 0,
    }
    data.update(overrides)
    return customer_service.create_customer(reseller, data)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def admin(app):
    user = User(
        username="admin",
        password=generate_password_hash(PASSWORD),
        email="admin@example.net",
        user_type=USER_TYPE.ADMIN,
        status=OK,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def reseller(admin):
    limits = {key: 0 for key in reseller_service.RESELLER_LIMIT_KEYS}
    return reseller_service.create_reseller(admin, "reseller", PASSWORD, "reseller@example.net", limits)


@pytest.fixture
def customer(reseller):
    user = make_customer(reseller)
    settle()
    return user


@pytest.fixture
def domain(customer):
    return customer.main_domain


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username):
    return client.post(
        "/login", data={"username": username, "password": PASSWORD}, follow_redirects=True
    )


@pytest.fixture
def admin_client(client, admin):
    login(client, "admin")
    return client


@pytest.fixture
def reseller_client(client, reseller):
    login(client, "reseller")
    return client


@pytest.fixture
def customer_client(client, customer):
    login(client, "client")
    return client
