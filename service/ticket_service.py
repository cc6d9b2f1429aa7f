# service/ticket_service.py
import logging
from sqlalchemy.exc import SQLAlchemyError
from database_init import db
from models.ticket import Ticket
from models.user import User
from util.constant import TICKET_STATUS, USER_TYPE
from util.exceptions import NotFoundError, PanelError, ValidationError

logger = logging.getLogger("panel")

OPEN = TICKET_STATUS.open.value
ANSWERED = TICKET_STATUS.answered.value
CLOSED = TICKET_STATUS.closed.value

URGENCY_LABELS = {1: "Low", 2: "Medium", 3: "High", 4: "Very high"}

# Customer tickets go to the reseller, reseller tickets to an administrator
LEVEL_CUSTOMER = 1
LEVEL_RESELLER = 2


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _recipient_for(user):
    if user.is_customer:
        return db.session.get(User, user.created_by), LEVEL_CUSTOMER
    if user.is_reseller:
        admin = db.session.get(User, user.created_by) if user.created_by else None
        if admin is None or not admin.is_admin:
            admin = User.query.filter_by(user_type=USER_TYPE.ADMIN).order_by(User.id).first()
        return admin, LEVEL_RESELLER
    raise PanelError("Administrators cannot open support tickets.")


def tickets_for(user, closed=False):
    """Thread starters the user is involved in."""
    query = Ticket.query.filter(
        Ticket.reply_to.is_(None),
        (Ticket.from_id == user.id) | (Ticket.to_id == user.id),
    )
    if closed:
        query = query.filter(Ticket.status == CLOSED)
    else:
        query = query.filter(Ticket.status != CLOSED)
    return query.order_by(Ticket.created_at.desc()).all()


def get_ticket(user, ticket_id):
    ticket = db.session.get(Ticket, ticket_id)
    if ticket is None or ticket.reply_to is not None:
        raise NotFoundError("Ticket not found.")
    if user.id not in (ticket.from_id, ticket.to_id):
        raise NotFoundError("Ticket not found.")
    return ticket


def _check_message(subject, message, urgency):
    subject = (subject or "").strip()
    message = (message or "").strip()
    if not subject:
        raise ValidationError("The subject cannot be empty.")
    if not message:
        raise ValidationError("The message cannot be empty.")
    if urgency not in URGENCY_LABELS:
        raise ValidationError("Invalid urgency.")
    return subject, message


def create_ticket(user, subject, message, urgency=2):
    subject, message = _check_message(subject, message, urgency)
    recipient, level = _recipient_for(user)
    if recipient is None:
        raise PanelError("No recipient available for your ticket.")

    ticket = Ticket(
        level=level,
        from_id=user.id,
        to_id=recipient.id,
        status=OPEN,
        urgency=urgency,
        subject=subject,
        message=message,
    )
    db.session.add(ticket)
    _commit()
    logger.info("%s: opened ticket #%s", user.username, ticket.id)
    return ticket


def reply_ticket(user, ticket_id, message):
    ticket = get_ticket(user, ticket_id)
    message = (message or "").strip()
    if not message:
        raise ValidationError("The message cannot be empty.")

    reply = Ticket(
        level=ticket.level,
        from_id=user.id,
        to_id=ticket.to_id if user.id == ticket.from_id else ticket.from_id,
        status=ticket.status,
        urgency=ticket.urgency,
        subject=ticket.subject,
        message=message,
        reply_to=ticket.id,
    )
    # The opener writing back re-opens the thread
    ticket.status = ANSWERED if user.id == ticket.to_id else OPEN
    db.session.add(reply)
    _commit()
    logger.info("%s: replied to ticket #%s", user.username, ticket.id)
    return reply


def close_ticket(user, ticket_id):
    ticket = get_ticket(user, ticket_id)
    ticket.status = CLOSED
    _commit()
    logger.info("%s: closed ticket #%s", user.username, ticket.id)
    return ticket


def reopen_ticket(user, ticket_id):
    ticket = get_ticket(user, ticket_id)
    if ticket.status != CLOSED:
        raise ValidationError("This ticket is not closed.")
    ticket.status = OPEN
    _commit()
    logger.info("%s: reopened ticket #%s", user.username, ticket.id)
    return ticket


def delete_ticket(user, ticket_id):
    ticket = get_ticket(user, ticket_id)
    db.session.delete(ticket)
    _commit()
    logger.info("%s: deleted ticket #%s", user.username, ticket_id)


def count_open_tickets(user):
    return Ticket.query.filter(
        Ticket.reply_to.is_(None), Ticket.to_id == user.id, Ticket.status == OPEN
    ).count()
