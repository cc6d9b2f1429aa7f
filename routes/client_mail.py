from flask import flash, render_template, redirect, request, url_for
from flask_login import current_user
from models.mail_user import MailUser
from routes.client import client_bp, has_feature, main_domain
from service import mail_service
from service.entity_service import domain_entities
from util.constant import MIB
from util.web import entity_choices, form_errors, parse_entity_key, run_action
from Form.forms import DummyForm
from Form.mail_form import AutoresponderForm, CatchallForm, MailAccountForm, MailEditForm


def _forward_list(text):
    return [line.strip() for line in (text or "").replace(",", "\n").splitlines() if line.strip()]


@client_bp.route("/mail")
def list_mail():
    domain = main_domain()
    mails = MailUser.query.filter_by(domain_id=domain.id).order_by(MailUser.mail_addr).all()
    return render_template(
        "client/mail.html",
        mails=mails,
        mail_allowed=has_feature("mail"),
        form=DummyForm(),
        mib=MIB,
    )


@client_bp.route("/mail/add", methods=["GET", "POST"])
def add_mail():
    domain = main_domain()
    form = MailAccountForm()
    form.entity.choices = entity_choices(domain_entities(domain))
    if form.validate_on_submit():
        domain_type, entity_id = parse_entity_key(form.entity.data)
        _, ok = run_action(
            mail_service.create_mail_account,
            "Mail account successfully scheduled for addition.",
            current_user,
            domain,
            domain_type,
            entity_id,
            form.local_part.data,
            account_type=form.account_type.data,
            password=form.password.data,
            forwards=_forward_list(form.forward_list.data),
            quota_mib=form.quota.data,
        )
        if ok:
            return redirect(url_for("client.list_mail"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add mail account")


@client_bp.route("/mail/<int:mail_id>/edit", methods=["GET", "POST"])
def edit_mail(mail_id):
    domain = main_domain()
    mail, _ = run_action(mail_service.get_customer_mail, None, domain, mail_id)
    form = MailEditForm()
    if request.method == "GET":
        form.account_type.data = mail_service.account_type_of(mail)
        form.quota.data = (mail.quota or 0) // MIB
        form.forward_list.data = "\n".join(mail.forwards)
    if form.validate_on_submit():
        _, ok = run_action(
            mail_service.edit_mail_account,
            "Mail account successfully scheduled for update.",
            current_user,
            mail,
            password=form.password.data or None,
            forwards=_forward_list(form.forward_list.data),
            quota_mib=form.quota.data,
            account_type=form.account_type.data,
        )
        if ok:
            return redirect(url_for("client.list_mail"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title=f"Edit {mail.mail_addr}")


@client_bp.route("/mail/<int:mail_id>/autoresponder", methods=["GET", "POST"])
def mail_autoresponder(mail_id):
    domain = main_domain()
    mail, _ = run_action(mail_service.get_customer_mail, None, domain, mail_id)
    form = AutoresponderForm()
    if request.method == "GET":
        form.enabled.data = mail.auto_respond
        form.text.data = mail.auto_respond_text
    if form.validate_on_submit():
        _, ok = run_action(
            mail_service.set_autoresponder,
            "Auto-responder successfully scheduled for update.",
            current_user,
            mail,
            form.enabled.data,
            form.text.data,
        )
        if ok:
            return redirect(url_for("client.list_mail"))
    return render_template("form_page.html", form=form, title=f"Auto-responder of {mail.mail_addr}")


@client_bp.route("/mail/delete", methods=["POST"])
def delete_mail():
    mail_ids = request.form.getlist("mail_ids", type=int)
    count, ok = run_action(
        mail_service.delete_mail_accounts, None, current_user, main_domain(), mail_ids
    )
    if ok:
        flash(f"{count} mail account(s) successfully scheduled for deletion.", "success")
    return redirect(url_for("client.list_mail"))


@client_bp.route("/mail/catchall/add", methods=["GET", "POST"])
def add_catchall():
    domain = main_domain()
    form = CatchallForm()
    form.entity.choices = entity_choices(domain_entities(domain))
    if form.validate_on_submit():
        domain_type, entity_id = parse_entity_key(form.entity.data)
        _, ok = run_action(
            mail_service.add_catchall,
            "Catch-all account successfully scheduled for addition.",
            current_user,
            domain,
            domain_type,
            entity_id,
            _forward_list(form.targets.data),
        )
        if ok:
            return redirect(url_for("client.list_mail"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add catch-all account")


@client_bp.route("/mail/catchall/<int:mail_id>/delete", methods=["POST"])
def delete_catchall(mail_id):
    run_action(
        mail_service.delete_catchall,
        "Catch-all account successfully scheduled for deletion.",
        current_user,
        main_domain(),
        mail_id,
    )
    return redirect(url_for("client.list_mail"))
