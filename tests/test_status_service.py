import pytest

from database_init import db
from models.dns_record import DnsRecord
from models.mail_user import MailUser
from service import status_service as st
from util.exceptions import InvalidStatusTransition, ItemNotStable


def test_new_rows_start_added_or_ordered():
    assert st.initial_status() == st.TOADD
    assert st.initial_status(st.ORDERED) == st.ORDERED
    with pytest.raises(InvalidStatusTransition):
        st.initial_status(st.OK)


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (st.OK, st.TOCHANGE, True),
        (st.OK, st.TODISABLE, True),
        (st.OK, st.TOENABLE, False),
        (st.DISABLED, st.TOENABLE, True),
        (st.DISABLED, st.TOCHANGE, False),
        (st.TOADD, st.TODELETE, False),
        (st.ORDERED, st.TOADD, True),
        (st.ERROR, st.TODELETE, True),
        ("some daemon failure", st.TOCHANGE, True),
    ],
)
def test_can_transition(current, target, allowed):
    assert st.can_transition(current, target) is allowed


def test_raw_daemon_message_is_an_error_status():
    assert st.is_error("Couldn't create the vhost")
    assert not st.is_error(st.OK)
    assert not st.is_error(None)


def test_transition_clears_previous_error(domain):
    domain.status = st.ERROR
    domain.status_message = "boom"
    st.transition(domain, st.TOCHANGE)
    assert domain.status == st.TOCHANGE
    assert domain.status_message is None


def test_transition_refuses_pending_rows(domain):
    domain.status = st.TOCHANGE
    with pytest.raises(InvalidStatusTransition):
        st.transition(domain, st.TODELETE)


def test_ensure_stable(domain):
    assert st.ensure_stable(domain) is domain
    domain.status = st.TOADD
    with pytest.raises(ItemNotStable):
        st.ensure_stable(domain)


def test_schedule_bulk_skips_rows_in_flight(domain):
    mails = MailUser.query.filter_by(domain_id=domain.id).order_by(MailUser.id).all()
    mails[0].status = st.TOCHANGE
    mails[1].status = st.DISABLED
    db.session.commit()

    moved = st.schedule_bulk(MailUser.query.filter_by(domain_id=domain.id), st.TODELETE)

    assert moved == len(mails) - 1
    assert mails[0].status == st.TOCHANGE
    assert mails[1].status == st.TODELETE


def test_has_pending(domain):
    query = MailUser.query.filter_by(domain_id=domain.id)
    assert not st.has_pending(query)
    query.first().status = st.TOCHANGE
    assert st.has_pending(query)


def test_complete_moves_to_stable_state(domain):
    domain.status = st.TODISABLE
    assert st.complete(domain, True) == st.DISABLED
    domain.status = st.TOENABLE
    assert st.complete(domain, True) == st.OK


def test_complete_failure_keeps_message(domain):
    domain.status = st.TOCHANGE
    assert st.complete(domain, False, "vhost error") == st.ERROR
    assert domain.status_message == "vhost error"


def test_complete_deletion_removes_row(domain):
    record = DnsRecord(domain=domain, name="www.example.org.", record_type="A", data="192.0.2.1", status=st.TODELETE)
    db.session.add(record)
    db.session.commit()
    record_id = record.id

    assert st.complete(record, True) is None
    db.session.commit()
    assert db.session.get(DnsRecord, record_id) is None


def test_complete_refuses_stable_rows(domain):
    with pytest.raises(InvalidStatusTransition):
        st.complete(domain, True)


def test_humanize_status():
    assert st.humanize_status(st.OK) == "Ok"
    assert st.humanize_status(st.ORDERED) == "Awaiting for approval"
    assert st.humanize_status("weird failure") == "Unexpected error"
    assert st.humanize_status("weird failure", show_error=True) == "weird failure"
    assert st.status_sort_key(st.OK) < st.status_sort_key(st.TOADD) < st.status_sort_key("x")
