import pytest

from models.ticket import Ticket
from service import ticket_service
from util.exceptions import NotFoundError, PanelError, ValidationError
from conftest import make_customer, settle


def test_customer_ticket_goes_to_reseller(reseller, customer):
    ticket = ticket_service.create_ticket(customer, "Help", "My site is down", urgency=3)
    assert ticket.to_id == reseller.id
    assert ticket.level == ticket_service.LEVEL_CUSTOMER
    assert ticket.status == ticket_service.OPEN
    assert ticket_service.count_open_tickets(reseller) == 1


def test_reseller_ticket_goes_to_admin(admin, reseller):
    ticket = ticket_service.create_ticket(reseller, "Quota", "Need more space")
    assert ticket.to_id == admin.id
    assert ticket.level == ticket_service.LEVEL_RESELLER


def test_admin_cannot_open_tickets(admin):
    with pytest.raises(PanelError):
        ticket_service.create_ticket(admin, "Hi", "Hello")


@pytest.mark.parametrize(
    "subject,message,urgency",
    [(" ", "body", 2), ("subject", "", 2), ("subject", "body", 9)],
)
def test_ticket_validation(customer, subject, message, urgency):
    with pytest.raises(ValidationError):
        ticket_service.create_ticket(customer, subject, message, urgency=urgency)


def test_reply_flow(reseller, customer):
    ticket = ticket_service.create_ticket(customer, "Help", "My site is down")

    reply = ticket_service.reply_ticket(reseller, ticket.id, "Fixed")
    assert reply.reply_to == ticket.id
    assert reply.to_id == customer.id
    assert ticket.status == ticket_service.ANSWERED

    ticket_service.reply_ticket(customer, ticket.id, "Still down")
    assert ticket.status == ticket_service.OPEN
    assert [r.message for r in ticket.replies] == ["Fixed", "Still down"]
    # replies are not listed as threads
    assert ticket_service.tickets_for(customer) == [ticket]


def test_close_and_reopen(reseller, customer):
    ticket = ticket_service.create_ticket(customer, "Help", "My site is down")
    with pytest.raises(ValidationError):
        ticket_service.reopen_ticket(customer, ticket.id)
    ticket_service.close_ticket(reseller, ticket.id)
    assert ticket_service.tickets_for(customer) == []
    assert ticket_service.tickets_for(customer, closed=True) == [ticket]
    ticket_service.reopen_ticket(customer, ticket.id)
    assert ticket.status == ticket_service.OPEN


def test_ticket_visible_to_participants_only(reseller, customer):
    other = make_customer(reseller, "other", "other.example")
    settle()
    ticket = ticket_service.create_ticket(customer, "Help", "My site is down")
    with pytest.raises(NotFoundError):
        ticket_service.get_ticket(other, ticket.id)
    reply = ticket_service.reply_ticket(reseller, ticket.id, "Fixed")
    with pytest.raises(NotFoundError):
        ticket_service.get_ticket(customer, reply.id)


def test_delete_ticket_removes_replies(reseller, customer):
    ticket = ticket_service.create_ticket(customer, "Help", "My site is down")
    ticket_service.reply_ticket(reseller, ticket.id, "Fixed")
    ticket_service.delete_ticket(customer, ticket.id)
    assert Ticket.query.count() == 0
