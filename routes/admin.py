from flask import Blueprint, flash, render_template, redirect, request, url_for
from flask_login import login_required, current_user
from database_init import db
from models.user import User
from models.provisioning_task import ProvisioningTask
from service import counting_service, customer_service, reseller_service
from service.provisioning_service import redispatch_tasks, send_daemon_request
from util.constant import USER_TYPE
from util.web import form_errors, require_user_type, run_action
from Form.forms import DummyForm, ResellerForm, ResellerLimitsForm

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.before_request
@login_required
def require_admin():
    require_user_type(USER_TYPE.ADMIN)


# ====== Resellers ======
@admin_bp.route("/resellers")
def list_resellers():
    resellers = User.query.filter_by(user_type=USER_TYPE.RESELLER).order_by(User.username).all()
    return render_template("admin/resellers.html", resellers=resellers, form=DummyForm())


@admin_bp.route("/resellers/add", methods=["GET", "POST"])
def add_reseller():
    form = ResellerForm()
    if form.validate_on_submit():
        _, ok = run_action(
            reseller_service.create_reseller,
            f"Reseller {form.username.data} added.",
            current_user,
            form.username.data,
            form.password.data,
            form.email.data,
            form.limits(),
            fname=form.fname.data,
            lname=form.lname.data,
        )
        if ok:
            return redirect(url_for("admin.list_resellers"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add reseller")


@admin_bp.route("/resellers/<int:reseller_id>/edit", methods=["GET", "POST"])
def edit_reseller(reseller_id):
    reseller, _ = run_action(reseller_service.get_reseller, None, reseller_id)
    props = reseller.reseller_props
    form = ResellerLimitsForm()
    if request.method == "GET":
        for key in reseller_service.RESELLER_LIMIT_KEYS:
            getattr(form, f"max_{key}").data = props.maximum(key)
    if form.validate_on_submit():
        _, ok = run_action(
            reseller_service.update_reseller_limits,
            f"Limits of reseller {reseller.username} updated.",
            current_user,
            reseller,
            form.limits(),
        )
        if ok:
            return redirect(url_for("admin.list_resellers"))
    return render_template(
        "form_page.html", form=form, title=f"Limits of reseller {reseller.username}"
    )


@admin_bp.route("/resellers/<int:reseller_id>/delete", methods=["POST"])
def delete_reseller(reseller_id):
    run_action(reseller_service.delete_reseller, "Reseller deleted.", current_user, reseller_id)
    return redirect(url_for("admin.list_resellers"))


@admin_bp.route("/resellers/<int:reseller_id>/recalculate", methods=["POST"])
def recalculate_reseller(reseller_id):
    run_action(_recalculate, "Reseller assignments recalculated.", reseller_id)
    return redirect(url_for("admin.list_resellers"))


def _recalculate(reseller_id):
    props = reseller_service.recalculate_reseller_assignments(reseller_id)
    db.session.commit()
    return props


# ====== Customers ======
@admin_bp.route("/customers")
def list_customers():
    search = request.args.get("q", "").strip()
    query = User.query.filter_by(user_type=USER_TYPE.CUSTOMER)
    if search:
        query = query.filter(User.username.like(f"%{search}%"))
    customers = query.order_by(User.username).all()
    return render_template(
        "reseller/customers.html",
        customers=customers,
        search=search,
        form=DummyForm(),
        endpoint_prefix="admin",
    )


@admin_bp.route("/customers/<int:customer_id>/status/<action>", methods=["POST"])
def change_customer_status(customer_id, action):
    run_action(
        customer_service.change_domain_status,
        f"Customer account successfully scheduled for {'deactivation' if action == 'deactivate' else 'activation'}.",
        current_user,
        customer_id,
        action,
    )
    return redirect(url_for("admin.list_customers"))


@admin_bp.route("/customers/<int:customer_id>/delete", methods=["POST"])
def delete_customer(customer_id):
    run_action(
        customer_service.delete_customer,
        "Customer account successfully scheduled for deletion.",
        current_user,
        customer_id,
    )
    return redirect(url_for("admin.list_customers"))


# ====== Daemon ======
@admin_bp.route("/tasks")
def list_tasks():
    tasks = ProvisioningTask.query.order_by(ProvisioningTask.created_at.desc()).limit(100).all()
    return render_template(
        "admin/tasks.html",
        tasks=tasks,
        counts=counting_service.get_objects_counts(),
        form=DummyForm(),
    )


@admin_bp.route("/daemon/request", methods=["POST"])
def resend_daemon_request():
    if send_daemon_request("manual request"):
        flash("Daemon request successfully sent.", "success")
    else:
        flash("Couldn't send the daemon request. See the daemon log.", "danger")
    return redirect(url_for("admin.list_tasks"))


@admin_bp.route("/tasks/redispatch", methods=["POST"])
def redispatch():
    count = redispatch_tasks()
    flash(f"{count} task(s) enqueued again.", "success" if count else "info")
    return redirect(url_for("admin.list_tasks"))
