from flask import render_template, redirect, request, url_for
from flask_login import current_user
from models.sql_database import SqlDatabase
from routes.client import client_bp, has_feature, main_domain
from service import sql_service
from util.web import form_errors, run_action
from Form.forms import DummyForm
from Form.sql_form import SqlDatabaseForm, SqlPasswordForm, SqlUserForm


@client_bp.route("/sql")
def list_sql():
    domain = main_domain()
    databases = SqlDatabase.query.filter_by(domain_id=domain.id).order_by(SqlDatabase.name).all()
    return render_template(
        "client/sql.html",
        databases=databases,
        sql_allowed=has_feature("sql"),
        form=DummyForm(),
    )


@client_bp.route("/sql/add", methods=["GET", "POST"])
def add_sql_database():
    form = SqlDatabaseForm()
    if form.validate_on_submit():
        _, ok = run_action(
            sql_service.add_database,
            "SQL database successfully scheduled for addition.",
            current_user,
            main_domain(),
            form.name.data,
            use_prefix=form.use_prefix.data,
        )
        if ok:
            return redirect(url_for("client.list_sql"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title="Add SQL database")


@client_bp.route("/sql/<int:database_id>/delete", methods=["POST"])
def delete_sql_database(database_id):
    run_action(
        sql_service.delete_database,
        "SQL database successfully scheduled for deletion.",
        current_user,
        main_domain(),
        database_id,
    )
    return redirect(url_for("client.list_sql"))


@client_bp.route("/sql/<int:database_id>/users/add", methods=["GET", "POST"])
def add_sql_user(database_id):
    domain = main_domain()
    database, _ = run_action(sql_service.get_customer_database, None, domain, database_id)
    form = SqlUserForm()
    if form.validate_on_submit():
        _, ok = run_action(
            sql_service.add_sql_user,
            "SQL user successfully scheduled for addition.",
            current_user,
            domain,
            database.id,
            form.name.data,
            form.password.data,
            host=form.host.data,
        )
        if ok:
            return redirect(url_for("client.list_sql"))
    elif request.method == "POST":
        form_errors(form)
    return render_template("form_page.html", form=form, title=f"Add SQL user to {database.name}")


@client_bp.route("/sql/users/<int:sql_user_id>/password", methods=["GET", "POST"])
def change_sql_password(sql_user_id):
    sql_user, _ = run_action(sql_service.get_customer_sql_user, None, main_domain(), sql_user_id)
    form = SqlPasswordForm()
    if form.validate_on_submit():
        _, ok = run_action(
            sql_service.change_sql_user_password,
            "SQL user password successfully scheduled for update.",
            current_user,
            sql_user,
            form.password.data,
        )
        if ok:
            return redirect(url_for("client.list_sql"))
    elif request.method == "POST":
        form_errors(form)
    return render_template(
        "form_page.html", form=form, title=f"Password of {sql_user.name}@{sql_user.host}"
    )


@client_bp.route("/sql/users/<int:sql_user_id>/delete", methods=["POST"])
def delete_sql_user(sql_user_id):
    run_action(
        sql_service.delete_sql_user,
        "SQL user successfully scheduled for deletion.",
        current_user,
        main_domain(),
        sql_user_id,
    )
    return redirect(url_for("client.list_sql"))
