from flask import Blueprint, render_template, redirect, request, url_for
from flask_login import login_required, current_user
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.user import User
from service import counting_service, customer_service, domain_service, reseller_service
from service.entity_service import get_customer, get_customer_main_domain
from service.status_service import ORDERED
from util.constant import MIB, USER_TYPE
from util.web import form_errors, require_user_type, run_action
from Form.forms import CustomerForm, CustomerLimitsForm, DummyForm

reseller_bp = Blueprint("reseller", __name__, url_prefix="/reseller")


@reseller_bp.before_request
@login_required
def require_reseller():
    require_user_type(USER_TYPE.RESELLER)


# ====== Customers ======
@reseller_bp.route("/customers")
def list_customers():
    search = request.args.get("q", "").strip()
    customers = counting_service.customers_of(current_user.id, search or None)
    return render_template(
        "reseller/customers.html",
        customers=customers,
        search=search,
        form=DummyForm(),
        endpoint_prefix="reseller",
    )


@reseller_bp.route("/customers/add", methods=["GET", "POST"])
def add_customer():
    form = CustomerForm()
    if form.validate_on_submit():
        data = {
            "username": form.username.data,
            "password": form.password.data,
            "email": form.email.data,
            "fname": form.fname.data,
            "lname": form.lname.data,
            "domain_name": form.domain_name.data,
            "limits": form.limits(),
            "mail_quota": form.mail_quota.data,
        }
        data.update(form.features())
        _, ok = run_action(
            customer_service.create_customer,
            f"Customer {form.username.data} successfully scheduled for addition.",
            current_user,
            data,
        )
        if ok:
            return redirect(url_for("reseller.list_customers"))
    elif request.method == "POST":
        form_errors(form)
    props = reseller_service.get_reseller_properties(current_user.id)
    return render_template("form_page.html", form=form, title="Add customer", props=props)


@reseller_bp.route("/customers/<int:customer_id>/edit", methods=["GET", "POST"])
def edit_customer(customer_id):
    customer, _ = run_action(get_customer, None, customer_id, current_user.id)
    domain, _ = run_action(get_customer_main_domain, None, customer.id)
    form = CustomerLimitsForm(obj=domain)
    if request.method == "GET":
        form.mail_quota.data = domain.mail_quota // MIB
    if form.validate_on_submit():
        _, ok = run_action(
            customer_service.update_customer_limits,
            f"Customer {customer.username} successfully scheduled for update.",
            current_user,
            customer.id,
            form.limits(),
            mail_quota_mib=form.mail_quota.data,
            features=form.features(),
        )
        if ok:
            return redirect(url_for("reseller.list_customers"))
    elif request.method == "POST":
        form_errors(form)
    return render_template(
        "form_page.html",
        form=form,
        title=f"Edit customer {customer.username}",
        counts=counting_service.get_customer_objects_counts(domain),
    )


@reseller_bp.route("/customers/<int:customer_id>/status/<action>", methods=["POST"])
def change_customer_status(customer_id, action):
    run_action(
        customer_service.change_domain_status,
        f"Customer account successfully scheduled for {'deactivation' if action == 'deactivate' else 'activation'}.",
        current_user,
        customer_id,
        action,
    )
    return redirect(url_for("reseller.list_customers"))


@reseller_bp.route("/customers/<int:customer_id>/delete", methods=["POST"])
def delete_customer(customer_id):
    run_action(
        customer_service.delete_customer,
        "Customer account successfully scheduled for deletion.",
        current_user,
        customer_id,
    )
    return redirect(url_for("reseller.list_customers"))


# ====== Domain alias orders ======
@reseller_bp.route("/alias_orders")
def alias_orders():
    orders = (
        DomainAlias.query.join(Domain)
        .join(User, Domain.admin_id == User.id)
        .filter(User.created_by == current_user.id, DomainAlias.status == ORDERED)
        .order_by(DomainAlias.created_at.asc())
        .all()
    )
    return render_template("reseller/alias_orders.html", orders=orders, form=DummyForm())


@reseller_bp.route("/alias_orders/<int:alias_id>/validate", methods=["POST"])
def validate_alias_order(alias_id):
    run_action(
        domain_service.validate_alias_order,
        "Domain alias order successfully validated.",
        current_user,
        alias_id,
    )
    return redirect(url_for("reseller.alias_orders"))


@reseller_bp.route("/alias_orders/<int:alias_id>/reject", methods=["POST"])
def reject_alias_order(alias_id):
    run_action(
        domain_service.reject_alias_order,
        "Domain alias order successfully rejected.",
        current_user,
        alias_id,
    )
    return redirect(url_for("reseller.alias_orders"))
