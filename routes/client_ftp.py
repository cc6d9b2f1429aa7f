from flask import render_template, redirect, request, url_for
from flask_login import current_user
from models.ftp_user import FtpUser
from routes.client import client_bp, has_feature, main_domain
from service import ftp_service
from service.entity_service import domain_entities
from util.web import entity_choices, form_errors, parse_entity_key, run_action
from Form.forms import DummyForm
from Form.ftp_form import FtpPasswordForm, FtpUserForm


@client_bp.route("/ftp")
def list_ftp():
    domain = main_domain()
    ftp_users = FtpUser.query.filter_by(admin_id=current_user.id).order_by(FtpUser.userid).all()
    return render_template(
        "client/ftp.html",
        ftp_users=ftp_users,
        ftp_allowed=has_feature("ftp"),
        root=ftp_service.customer_root(domain),
        form=DummyForm(),
    )


@client_bp.route("/ftp/add", methods=["GET", "POST"])
def add_ftp():
    domain = main_domain()
    form = FtpUserForm()
    form.entity.choices = entity_choices(domain_entities(domain))
    if form.validate_on_submit():
        domain_type, entity_id = parse_entity_key(form.entity.data)
        _, ok = run_action(
            ftp_service.add_ftp_user,
            "FTP account successfully scheduled for addition.",
            current_user,
            domain,
            domain_type,
            entity_id,
            form.name.data,
            form.password.data,
            homedir=form.homedir.data or "/",
        )
        if ok:
            return redirect(url_for("client.list_ftp"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add FTP account")


@client_bp.route("/ftp/<int:ftp_id>/edit", methods=["GET", "POST"])
def edit_ftp(ftp_id):
    ftp_user, _ = run_action(ftp_service.get_customer_ftp_user, None, current_user, ftp_id)
    form = FtpPasswordForm()
    if form.validate_on_submit():
        _, ok = run_action(
            ftp_service.change_ftp_password,
            "FTP account successfully scheduled for update.",
            current_user,
            ftp_user,
            form.password.data,
            homedir=form.homedir.data or None,
        )
        if ok:
            return redirect(url_for("client.list_ftp"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title=f"Edit {ftp_user.userid}")


@client_bp.route("/ftp/<int:ftp_id>/delete", methods=["POST"])
def delete_ftp(ftp_id):
    run_action(
        ftp_service.delete_ftp_user,
        "FTP account successfully scheduled for deletion.",
        current_user,
        ftp_id,
    )
    return redirect(url_for("client.list_ftp"))
