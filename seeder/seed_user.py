# seeder/seed_user.py
import logging
import os
from werkzeug.security import generate_password_hash
from dotenv import load_dotenv

from models.user import User
from database_init import db
from service.status_service import OK
from util.constant import USER_TYPE

load_dotenv()
logger = logging.getLogger("panel")


def seed_admin_user(app):
    with app.app_context():
        username = os.getenv("ADMIN_USERNAME")
        email = os.getenv("ADMIN_EMAIL")
        raw_password = os.getenv("ADMIN_PASSWORD")

        if not username or not email or not raw_password:
            logger.error("Missing ADMIN_USERNAME, ADMIN_EMAIL or ADMIN_PASSWORD in .env")
            return None

        user = User.query.filter_by(username=username.lower()).first()
        if user:
            logger.info("Administrator %s already exists, skipping.", username)
            return user

        user = User(
            username=username.lower(),
            email=email,
            password=generate_password_hash(raw_password),
            user_type=USER_TYPE.ADMIN,
            status=OK,
        )
        db.session.add(user)
        db.session.commit()
        logger.info("Created administrator %s", username)
        return user
