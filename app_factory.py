from flask import Flask, render_template
from flask_cors import CORS
from database_init import db
from extensions import csrf, migrate, login_manager
from config import Config
from log import setup_logging
from service.status_service import humanize_status, status_sort_key
from util.until import bytes_human, decode_idna, format_datetime, humanize_limit

from models.user import User
from models.reseller_props import ResellerProperties
from models.domain import Domain
from models.domain_alias import DomainAlias
from models.subdomain import Subdomain
from models.subdomain_alias import SubdomainAlias
from models.mail_user import MailUser
from models.ftp_user import FtpUser
from models.ftp_group import FtpGroup
from models.sql_database import SqlDatabase
from models.sql_user import SqlUser
from models.ssl_cert import SslCertificate
from models.htaccess import ProtectedArea
from models.htaccess_user import HtaccessUser
from models.htaccess_group import HtaccessGroup
from models.dns_record import DnsRecord
from models.ticket import Ticket
from models.provisioning_task import ProvisioningTask


def create_app(config_class=Config, config_overrides=None):
    app = Flask(__name__, static_url_path="/static")
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Logging
    if not app.config.get("TESTING"):
        setup_logging(app.config.get("LOG_DIR"))

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @app.context_processor
    def inject_common_env():
        return dict(
            app_name=app.config.get("APP_NAME"),
            panel_version=app.config.get("PANEL_VERSION"),
        )

    app.jinja_env.filters["datetimeformat"] = format_datetime
    app.jinja_env.filters["humanize_status"] = humanize_status
    app.jinja_env.filters["status_sort_key"] = status_sort_key
    app.jinja_env.filters["bytes_human"] = bytes_human
    app.jinja_env.filters["humanize_limit"] = humanize_limit
    app.jinja_env.filters["idn"] = decode_idna

    from routes.home import home_bp
    from routes.auth import auth_bp
    from routes.admin import admin_bp
    from routes.reseller import reseller_bp
    from routes.client import client_bp
    from routes.ticket import ticket_bp
    from routes.api import api_bp

    # Client pages live in several modules on the same blueprint
    import routes.client_mail  # noqa: F401
    import routes.client_ftp  # noqa: F401
    import routes.client_sql  # noqa: F401
    import routes.client_htaccess  # noqa: F401

    app.register_blueprint(home_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(reseller_bp)
    app.register_blueprint(client_bp)
    app.register_blueprint(ticket_bp)
    app.register_blueprint(api_bp)

    @app.errorhandler(403)
    def forbidden(e):
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def page_not_found(e):
        return render_template("errors/404.html"), 404

    return app
