import pytest

from database_init import db
from models.mail_user import MailUser
from models.provisioning_task import ProvisioningTask
from service.status_service import ERROR, OK, TOADD
from util.constant import TASK_STATUS

HEADERS = {"X-Daemon-Token": "daemon-test-token"}


def test_token_required(client):
    assert client.get("/api/daemon/items").status_code == 401
    response = client.get("/api/daemon/items", headers={"X-Daemon-Token": "nope"})
    assert response.status_code == 401
    assert response.get_json() == {"error": "unauthorized"}


def test_api_disabled_without_token(app, client):
    app.config["DAEMON_API_TOKEN"] = ""
    assert client.get("/api/daemon/items", headers=HEADERS).status_code == 404


def test_list_pending_items(client, reseller):
    from conftest import make_customer

    make_customer(reseller)
    response = client.get("/api/daemon/items", headers=HEADERS)
    assert response.status_code == 200
    data = response.get_json()
    types = {item["type"] for item in data["items"]}
    assert {"user", "domain", "mail_user"} <= types
    assert data["count"] == len(data["items"])
    domain_item = next(i for i in data["items"] if i["type"] == "domain")
    assert domain_item == {"type": "domain", "id": domain_item["id"], "status": "toadd", "name": "example.org"}


def test_report_success(client, reseller):
    from conftest import make_customer

    customer = make_customer(reseller)
    domain_id = customer.main_domain.id
    response = client.post(f"/api/daemon/items/domain/{domain_id}", json={"success": True}, headers=HEADERS)
    assert response.status_code == 200
    assert response.get_json() == {"type": "domain", "id": domain_id, "status": OK, "deleted": False}


def test_report_failure_keeps_message(client, domain):
    mail = MailUser.query.filter_by(mail_addr="webmaster@example.org").one()
    mail.status = "todelete"
    db.session.commit()

    response = client.post(
        f"/api/daemon/items/mail_user/{mail.id}",
        json={"success": False, "message": "postfix said no"},
        headers=HEADERS,
    )
    assert response.get_json()["status"] == ERROR
    assert mail.status_message == "postfix said no"

    mail.status = "todelete"
    db.session.commit()
    response = client.post(f"/api/daemon/items/mail_user/{mail.id}", json={"success": True}, headers=HEADERS)
    assert response.get_json()["deleted"] is True
    assert db.session.get(MailUser, mail.id) is None


@pytest.mark.parametrize(
    "url,payload,status",
    [
        ("/api/daemon/items/domain/1", {}, 400),
        ("/api/daemon/items/domain/1", {"success": "false"}, 400),
        ("/api/daemon/items/domain/1", {"success": 1}, 400),
        ("/api/daemon/items/spaceship/1", {"success": True}, 400),
        ("/api/daemon/items/domain/999", {"success": True}, 404),
    ],
)
def test_report_errors(client, domain, url, payload, status):
    assert client.post(url, json=payload, headers=HEADERS).status_code == status


def test_string_success_is_not_taken_as_true(client, reseller):
    from conftest import make_customer

    customer = make_customer(reseller)
    domain = customer.main_domain
    response = client.post(f"/api/daemon/items/domain/{domain.id}", json={"success": "false"}, headers=HEADERS)
    assert response.status_code == 400
    assert domain.status == TOADD


def test_report_on_stable_item_is_rejected(client, domain):
    response = client.post(f"/api/daemon/items/domain/{domain.id}", json={"success": True}, headers=HEADERS)
    assert response.status_code == 400
    assert domain.status == OK


def test_acknowledge_task(client, app):
    task = ProvisioningTask(reason="test")
    db.session.add(task)
    db.session.commit()

    response = client.post(f"/api/daemon/tasks/{task.id}/ack", headers=HEADERS)
    assert response.get_json() == {"id": task.id, "status": TASK_STATUS.acknowledged.value}
    assert task.acknowledged_at is not None
    assert client.post("/api/daemon/tasks/999/ack", headers=HEADERS).status_code == 404


def test_request_daemon(client, app):
    response = client.post("/api/daemon/request", json={"reason": "cron"}, headers=HEADERS)
    assert response.status_code == 200
    assert response.get_json() == {"sent": True}
