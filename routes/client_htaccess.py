from flask import abort, render_template, redirect, request, url_for
from flask_login import current_user
from models.htaccess import ProtectedArea
from models.htaccess_group import HtaccessGroup
from models.htaccess_user import HtaccessUser
from routes.client import client_bp, has_feature, main_domain
from service import htaccess_service
from service.status_service import TODELETE
from util.web import form_errors, run_action
from Form.forms import DummyForm
from Form.htaccess_form import HtaccessGroupForm, HtaccessPasswordForm, HtaccessUserForm, ProtectedAreaForm


def _users(domain):
    return (
        HtaccessUser.query.filter(HtaccessUser.domain_id == domain.id, HtaccessUser.status != TODELETE)
        .order_by(HtaccessUser.uname)
        .all()
    )


def _groups(domain):
    return (
        HtaccessGroup.query.filter(HtaccessGroup.domain_id == domain.id, HtaccessGroup.status != TODELETE)
        .order_by(HtaccessGroup.ugroup)
        .all()
    )


@client_bp.route("/protected_areas")
def list_protected_areas():
    domain = main_domain()
    areas = ProtectedArea.query.filter_by(domain_id=domain.id).order_by(ProtectedArea.path).all()
    users = HtaccessUser.query.filter_by(domain_id=domain.id).order_by(HtaccessUser.uname).all()
    groups = HtaccessGroup.query.filter_by(domain_id=domain.id).order_by(HtaccessGroup.ugroup).all()
    return render_template(
        "client/protected_areas.html",
        areas=areas,
        users=users,
        groups=groups,
        user_names={u.id: u.uname for u in users},
        group_names={g.id: g.ugroup for g in groups},
        ids_of=htaccess_service.split_ids,
        areas_allowed=has_feature("protected_areas"),
        form=DummyForm(),
    )


# ====== Areas ======
@client_bp.route("/protected_areas/add", methods=["GET", "POST"])
def add_protected_area():
    domain = main_domain()
    form = ProtectedAreaForm()
    form.user_ids.choices = [(u.id, u.uname) for u in _users(domain)]
    form.group_ids.choices = [(g.id, g.ugroup) for g in _groups(domain)]
    if form.validate_on_submit():
        _, ok = run_action(
            htaccess_service.add_area,
            "Protected area successfully scheduled for addition.",
            current_user,
            domain,
            form.path.data,
            form.auth_name.data,
            user_ids=form.user_ids.data,
            group_ids=form.group_ids.data,
        )
        if ok:
            return redirect(url_for("client.list_protected_areas"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add protected area")


@client_bp.route("/protected_areas/<int:area_id>/delete", methods=["POST"])
def delete_protected_area(area_id):
    run_action(
        htaccess_service.delete_area,
        "Protected area successfully scheduled for deletion.",
        current_user,
        main_domain(),
        area_id,
    )
    return redirect(url_for("client.list_protected_areas"))


# ====== Users ======
@client_bp.route("/protected_areas/users/add", methods=["GET", "POST"])
def add_htaccess_user():
    form = HtaccessUserForm()
    if form.validate_on_submit():
        _, ok = run_action(
            htaccess_service.add_user,
            "User successfully scheduled for addition.",
            current_user,
            main_domain(),
            form.uname.data,
            form.password.data,
        )
        if ok:
            return redirect(url_for("client.list_protected_areas"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add user")


@client_bp.route("/protected_areas/users/<int:user_id>/password", methods=["GET", "POST"])
def change_htaccess_password(user_id):
    domain = main_domain()
    user, _ = run_action(htaccess_service.get_user, None, domain, user_id)
    form = HtaccessPasswordForm()
    if form.validate_on_submit():
        _, ok = run_action(
            htaccess_service.change_user_password,
            "User password successfully scheduled for update.",
            current_user,
            domain,
            user.id,
            form.password.data,
        )
        if ok:
            return redirect(url_for("client.list_protected_areas"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title=f"Password of {user.uname}")


@client_bp.route("/protected_areas/users/<int:user_id>/delete", methods=["POST"])
def delete_htaccess_user(user_id):
    run_action(
        htaccess_service.delete_user,
        "User successfully scheduled for deletion.",
        current_user,
        main_domain(),
        user_id,
    )
    return redirect(url_for("client.list_protected_areas"))


# ====== Groups ======
@client_bp.route("/protected_areas/groups/add", methods=["GET", "POST"])
def add_htaccess_group():
    domain = main_domain()
    form = HtaccessGroupForm()
    form.member_ids.choices = [(u.id, u.uname) for u in _users(domain)]
    if form.validate_on_submit():
        _, ok = run_action(
            htaccess_service.add_group,
            "Group successfully scheduled for addition.",
            current_user,
            domain,
            form.ugroup.data,
            member_ids=form.member_ids.data,
        )
        if ok:
            return redirect(url_for("client.list_protected_areas"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add group")


@client_bp.route("/protected_areas/groups/<int:group_id>/members", methods=["POST"])
def assign_htaccess_user(group_id):
    user_id = request.form.get("user_id", type=int)
    action = request.form.get("action", "assign")
    if user_id is None or action not in ("assign", "remove"):
        abort(400)
    run_action(
        htaccess_service.assign_user,
        "Group successfully scheduled for update.",
        current_user,
        main_domain(),
        group_id,
        user_id,
        assign=action == "assign",
    )
    return redirect(url_for("client.list_protected_areas"))


@client_bp.route("/protected_areas/groups/<int:group_id>/delete", methods=["POST"])
def delete_htaccess_group(group_id):
    run_action(
        htaccess_service.delete_group,
        "Group successfully scheduled for deletion.",
        current_user,
        main_domain(),
        group_id,
    )
    return redirect(url_for("client.list_protected_areas"))
