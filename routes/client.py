from flask import Blueprint, abort, flash, render_template, redirect, request, url_for
from flask_login import login_required, current_user
from models.dns_record import DnsRecord
from service import counting_service, dns_service, domain_service, ssl_service
from service.entity_service import domain_entities, get_domain_entity
from service.status_service import OK, ORDERED, TODELETE
from util.constant import DOMAIN_TYPE, USER_TYPE
from util.web import entity_choices, entity_key, form_errors, parse_entity_key, require_user_type, run_action
from Form.domain_form import AliasForm, DnsRecordEditForm, DnsRecordForm, SubdomainForm, UrlForwardForm
from Form.forms import DummyForm
from Form.ssl_form import SslCertificateForm

client_bp = Blueprint("client", __name__, url_prefix="/client")


@client_bp.before_request
@login_required
def require_customer():
    require_user_type(USER_TYPE.CUSTOMER)


def main_domain():
    domain = current_user.main_domain
    if domain is None:
        abort(404)
    return domain


def has_feature(feature):
    return counting_service.customer_has_feature(main_domain(), feature)


# ====== Domains ======
@client_bp.route("/domains")
def list_domains():
    domain = main_domain()
    entities = domain_entities(domain, ok_only=False)
    certificates = {
        entity_key(e): ssl_service.get_entity_certificate(e.domain_type, e.id) for e in entities
    }
    return render_template(
        "client/domains.html",
        domain=domain,
        entities=entities,
        certificates=certificates,
        entity_key=entity_key,
        form=DummyForm(),
    )


@client_bp.route("/aliases/add", methods=["GET", "POST"])
def add_alias():
    domain = main_domain()
    form = AliasForm()
    if form.validate_on_submit():
        alias, ok = run_action(
            domain_service.add_domain_alias,
            None,
            current_user,
            domain,
            form.name.data,
            mount=form.mount.data,
            url_forward=form.url_forward.data,
        )
        if ok:
            if alias.status == ORDERED:
                flash("Domain alias successfully ordered. It is awaiting approval.", "success")
            else:
                flash("Domain alias successfully scheduled for addition.", "success")
            return redirect(url_for("client.list_domains"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add domain alias")


@client_bp.route("/aliases/<int:alias_id>/delete", methods=["POST"])
def delete_alias(alias_id):
    run_action(
        domain_service.delete_domain_alias,
        "Domain alias successfully scheduled for deletion.",
        current_user,
        main_domain(),
        alias_id,
    )
    return redirect(url_for("client.list_domains"))


@client_bp.route("/aliases/<int:alias_id>/cancel", methods=["POST"])
def cancel_alias_order(alias_id):
    run_action(
        domain_service.cancel_alias_order,
        "Domain alias order successfully cancelled.",
        current_user,
        main_domain(),
        alias_id,
    )
    return redirect(url_for("client.list_domains"))


@client_bp.route("/aliases/<int:alias_id>/forward", methods=["GET", "POST"])
def edit_alias_forward(alias_id):
    domain = main_domain()
    alias, _ = run_action(domain_service.get_customer_alias, None, domain, alias_id)
    form = UrlForwardForm(obj=alias)
    if form.validate_on_submit():
        _, ok = run_action(
            domain_service.edit_url_forward,
            "Domain alias successfully scheduled for update.",
            current_user,
            domain,
            DOMAIN_TYPE.ALIAS,
            alias.id,
            form.url_forward.data,
        )
        if ok:
            return redirect(url_for("client.list_domains"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title=f"URL forward of {alias.name}")


@client_bp.route("/subdomains/add", methods=["GET", "POST"])
def add_subdomain():
    domain = main_domain()
    form = SubdomainForm()
    parents = [
        e
        for e in domain_entities(domain)
        if e.domain_type in (DOMAIN_TYPE.DOMAIN, DOMAIN_TYPE.ALIAS)
    ]
    form.parent.choices = entity_choices(parents)
    if form.validate_on_submit():
        parent_type, parent_id = parse_entity_key(form.parent.data)
        _, ok = run_action(
            domain_service.add_subdomain,
            "Subdomain successfully scheduled for addition.",
            current_user,
            domain,
            parent_type,
            parent_id,
            form.name.data,
            mount=form.mount.data,
        )
        if ok:
            return redirect(url_for("client.list_domains"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add subdomain")


@client_bp.route("/subdomains/<domain_type>/<int:subdomain_id>/delete", methods=["POST"])
def delete_subdomain(domain_type, subdomain_id):
    run_action(
        domain_service.delete_subdomain,
        "Subdomain successfully scheduled for deletion.",
        current_user,
        main_domain(),
        domain_type,
        subdomain_id,
    )
    return redirect(url_for("client.list_domains"))


# ====== Custom DNS records ======
@client_bp.route("/dns")
def list_dns():
    domain = main_domain()
    records = (
        DnsRecord.query.filter_by(domain_id=domain.id, owned_by="custom_dns_feature")
        .order_by(DnsRecord.name, DnsRecord.record_type)
        .all()
    )
    return render_template(
        "client/dns.html",
        records=records,
        form=DummyForm(),
        dns_allowed=has_feature("custom_dns_records"),
    )


@client_bp.route("/dns/add", methods=["GET", "POST"])
def add_dns():
    domain = main_domain()
    form = DnsRecordForm()
    zones = [
        e for e in domain_entities(domain) if e.domain_type in (DOMAIN_TYPE.DOMAIN, DOMAIN_TYPE.ALIAS)
    ]
    form.zone.choices = entity_choices(zones)
    if form.validate_on_submit():
        zone_type, zone_id = parse_entity_key(form.zone.data)
        _, ok = run_action(
            dns_service.add_record,
            "DNS record successfully scheduled for addition.",
            current_user,
            domain,
            zone_type,
            zone_id,
            form.name.data,
            form.record_type.data,
            form.rdata.data,
        )
        if ok:
            return redirect(url_for("client.list_dns"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add DNS record")


@client_bp.route("/dns/<int:record_id>/edit", methods=["GET", "POST"])
def edit_dns(record_id):
    domain = main_domain()
    record, _ = run_action(dns_service.get_customer_record, None, domain, record_id)
    form = DnsRecordEditForm(obj=record)
    if request.method == "GET":
        form.rdata.data = record.data
    if form.validate_on_submit():
        _, ok = run_action(
            dns_service.edit_record,
            "DNS record successfully scheduled for update.",
            current_user,
            domain,
            record.id,
            form.name.data,
            form.rdata.data,
        )
        if ok:
            return redirect(url_for("client.list_dns"))
    return render_template(
        "form_page.html", form=form, title=f"Edit {record.record_type} record {record.name}"
    )


@client_bp.route("/dns/<int:record_id>/delete", methods=["POST"])
def delete_dns(record_id):
    run_action(
        dns_service.delete_record,
        "DNS record successfully scheduled for deletion.",
        current_user,
        main_domain(),
        record_id,
    )
    return redirect(url_for("client.list_dns"))


# ====== SSL certificates ======
@client_bp.route("/ssl/<domain_type>/<int:entity_id>", methods=["GET", "POST"])
def ssl_certificate(domain_type, entity_id):
    domain = main_domain()
    entity, _ = run_action(get_domain_entity, None, domain, domain_type, entity_id)
    certificate = ssl_service.get_entity_certificate(domain_type, entity.id)
    form = SslCertificateForm(obj=certificate)
    if request.method == "GET" and certificate is not None:
        form.private_key.data = ""
    if form.validate_on_submit():
        _, ok = run_action(
            ssl_service.save_certificate,
            "SSL certificate successfully scheduled for addition or update.",
            current_user,
            domain,
            domain_type,
            entity.id,
            form.private_key.data,
            form.certificate.data,
            ca_bundle_pem=form.ca_bundle.data,
            passphrase=form.passphrase.data,
            allow_hsts=form.allow_hsts.data,
            hsts_max_age=form.hsts_max_age.data,
            hsts_include_subdomains=form.hsts_include_subdomains.data,
        )
        if ok:
            return redirect(url_for("client.list_domains"))
    elif request.method == "POST":
        form_errors(form)
    return render_template(
        "client/ssl.html",
        form=form,
        entity=entity,
        certificate=certificate,
        ssl_allowed=has_feature("ssl"),
        delete_form=DummyForm(),
        stable=entity.status == OK and (certificate is None or certificate.status != TODELETE),
    )


@client_bp.route("/ssl/<domain_type>/<int:entity_id>/delete", methods=["POST"])
def delete_ssl_certificate(domain_type, entity_id):
    run_action(
        ssl_service.delete_certificate,
        "SSL certificate successfully scheduled for deletion.",
        current_user,
        main_domain(),
        domain_type,
        entity_id,
    )
    return redirect(url_for("client.list_domains"))
