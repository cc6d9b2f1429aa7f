import logging
from flask import Blueprint, current_app, render_template, redirect, url_for, flash
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash
from models.user import User
from service.status_service import DISABLED
from Form.login import LoginForm

auth_bp = Blueprint("auth", __name__)
logger = logging.getLogger("panel")


def _login_refused(user):
    """Reason why the account may not log in, or None."""
    if current_app.config.get("MAINTENANCE_MODE") and not user.is_admin:
        return "The panel is in maintenance mode. Only administrators can log in."
    if not user.is_active:
        return "Your account is not available yet or has been deactivated."
    if user.is_customer:
        domain = user.main_domain
        if domain is None or domain.status == DISABLED:
            return "Your account has been deactivated."
    return None


# Login
@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("home.home"))
    form = LoginForm()
    if form.validate_on_submit():
        username = form.username.data.strip().lower()
        user = User.query.filter_by(username=username).first()
        if user and check_password_hash(user.password, form.password.data):
            reason = _login_refused(user)
            if reason:
                logger.warning("Login refused for %s: %s", username, reason)
                flash(reason, "warning")
                return render_template("login.html", form=form)
            login_user(user, remember=form.remember_me.data)
            logger.info("%s logged in", user.username)
            flash("Logged in successfully.", "success")
            return redirect(url_for("home.home"))
        logger.warning("Bad credentials for %s", username)
        flash("Wrong username or password.", "danger")
    return render_template("login.html", form=form)


# Logout
@auth_bp.route("/logout")
@login_required
def logout():
    logger.info("%s logged out", current_user.username)
    logout_user()
    flash("Logged out.", "success")
    return redirect(url_for("auth.login"))
