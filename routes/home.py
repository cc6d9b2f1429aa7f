from flask import Blueprint, render_template
from flask_login import login_required, current_user
from service import counting_service, ticket_service
from service.entity_service import domain_entities

home_bp = Blueprint("home", __name__)


@home_bp.route("/")
@login_required
def home():
    context = {"open_tickets": 0}
    if current_user.is_admin:
        context["counts"] = counting_service.get_objects_counts()
    elif current_user.is_reseller:
        context["counts"] = counting_service.get_reseller_objects_counts(current_user.id)
        context["props"] = current_user.reseller_props
    else:
        domain = current_user.main_domain
        context["domain"] = domain
        if domain is not None:
            context["counts"] = counting_service.get_customer_objects_counts(domain)
            context["entities"] = domain_entities(domain, ok_only=False)
    if not current_user.is_customer:
        context["open_tickets"] = ticket_service.count_open_tickets(current_user)
    return render_template("home.html", **context)
