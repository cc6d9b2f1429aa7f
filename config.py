"""
Configuration settings for the hosting panel frontend
"""
import os
import secrets
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _database_uri():
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")
    return (
        f"mysql://{os.getenv('USER_DB')}:{os.getenv('PASSWORD_DB')}"
        f"@{os.getenv('ADDRESS_DB', 'localhost')}/{os.getenv('NAME_DB', 'imscp')}"
    )


class Config:
    """Base configuration"""

    APP_NAME = os.getenv("APP_NAME", "Hosting Panel")
    PANEL_VERSION = os.getenv("PANEL_VERSION", "1.5.3")
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)

    # Session
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=60)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", True)
    SESSION_COOKIE_SAMESITE = "Lax"

    # Database
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF
    WTF_CSRF_ENABLED = True

    # Logging
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))

    # Daemon: "imscp" talks to the daemon socket directly, "queue" goes through rq,
    # anything else disables notifications
    DAEMON_TYPE = os.getenv("DAEMON_TYPE", "queue")
    DAEMON_HOST = os.getenv("DAEMON_HOST", "127.0.0.1")
    DAEMON_PORT = int(os.getenv("DAEMON_PORT", "9876"))
    DAEMON_TIMEOUT = float(os.getenv("DAEMON_TIMEOUT", "5"))
    DAEMON_API_TOKEN = os.getenv("DAEMON_API_TOKEN", "")
    DAEMON_MAX_RETRIES = int(os.getenv("DAEMON_MAX_RETRIES", "3"))

    # Panel behaviour
    MAINTENANCE_MODE = _env_bool("MAINTENANCE_MODE")
    HARD_MAIL_SUSPENSION = _env_bool("HARD_MAIL_SUSPENSION", True)
    COUNT_DEFAULT_EMAIL_ADDRESSES = _env_bool("COUNT_DEFAULT_EMAIL_ADDRESSES")
    EMAIL_QUOTA_SYNC_MODE = _env_bool("EMAIL_QUOTA_SYNC_MODE")
    ALIAS_ORDER_REQUIRED = _env_bool("ALIAS_ORDER_REQUIRED", True)
    USER_HOME_DIR = os.getenv("USER_HOME_DIR", "/var/www/virtual")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    SESSION_COOKIE_SECURE = False
    DAEMON_TYPE = "none"
    DAEMON_API_TOKEN = "daemon-test-token"
    HARD_MAIL_SUSPENSION = True
    COUNT_DEFAULT_EMAIL_ADDRESSES = False
    EMAIL_QUOTA_SYNC_MODE = False
    ALIAS_ORDER_REQUIRED = True
