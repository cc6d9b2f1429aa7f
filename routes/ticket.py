from flask import Blueprint, render_template, redirect, request, url_for
from flask_login import login_required, current_user
from service import ticket_service
from util.web import form_errors, run_action
from Form.forms import DummyForm
from Form.ticket_form import ReplyForm, TicketForm

ticket_bp = Blueprint("ticket", __name__, url_prefix="/tickets")


@ticket_bp.before_request
@login_required
def require_login():
    pass


@ticket_bp.route("/")
def list_tickets():
    closed = request.args.get("closed") == "1"
    tickets = ticket_service.tickets_for(current_user, closed=closed)
    return render_template(
        "ticket/list.html",
        tickets=tickets,
        closed=closed,
        urgency_labels=ticket_service.URGENCY_LABELS,
        form=DummyForm(),
    )


@ticket_bp.route("/new", methods=["GET", "POST"])
def new_ticket():
    form = TicketForm()
    if form.validate_on_submit():
        ticket, ok = run_action(
            ticket_service.create_ticket,
            "Your message has been sent.",
            current_user,
            form.subject.data,
            form.message.data,
            urgency=form.urgency.data,
        )
        if ok:
            return redirect(url_for("ticket.view_ticket", ticket_id=ticket.id))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="New ticket")


@ticket_bp.route("/<int:ticket_id>", methods=["GET", "POST"])
def view_ticket(ticket_id):
    ticket, _ = run_action(ticket_service.get_ticket, None, current_user, ticket_id)
    form = ReplyForm()
    if form.validate_on_submit():
        _, ok = run_action(
            ticket_service.reply_ticket,
            "Your reply has been sent.",
            current_user,
            ticket.id,
            form.message.data,
        )
        if ok:
            return redirect(url_for("ticket.view_ticket", ticket_id=ticket.id))
    return render_template(
        "ticket/view.html",
        ticket=ticket,
        form=form,
        action_form=DummyForm(),
        urgency_labels=ticket_service.URGENCY_LABELS,
        closed=ticket.status == ticket_service.CLOSED,
    )


@ticket_bp.route("/<int:ticket_id>/close", methods=["POST"])
def close_ticket(ticket_id):
    run_action(ticket_service.close_ticket, "Ticket closed.", current_user, ticket_id)
    return redirect(url_for("ticket.list_tickets"))


@ticket_bp.route("/<int:ticket_id>/reopen", methods=["POST"])
def reopen_ticket(ticket_id):
    run_action(ticket_service.reopen_ticket, "Ticket reopened.", current_user, ticket_id)
    return redirect(url_for("ticket.view_ticket", ticket_id=ticket_id))


@ticket_bp.route("/<int:ticket_id>/delete", methods=["POST"])
def delete_ticket(ticket_id):
    run_action(ticket_service.delete_ticket, "Ticket deleted.", current_user, ticket_id)
    return redirect(url_for("ticket.list_tickets"))
