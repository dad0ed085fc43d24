# app/services/auth.py
#
# Authentication Gate
# Verifies credentials against stored hashes and handles password changes.

import secrets
import string

import structlog
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from models import User
from app.services.errors import InvalidCredentials, ValidationError
from app.settings import get_settings

logger = structlog.get_logger(__name__)

TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*()"


# ---- Hashing ----

def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def generate_temp_password(length: int | None = None) -> str:
    """Random password for new accounts and resets."""
    length = length or get_settings().temp_password_length
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))


# ---- Credential checks ----

def authenticate(db: Session, username: str, password: str) -> User:
    """
    Look up `username` and check `password`.

    Raises InvalidCredentials when the user is missing, inactive,
    or the password does not match. The three cases share one
    message so the login screen does not leak which one it was.
    """
    user = db.query(User).filter(User.username == (username or "").strip()).first()

    if user is None or not user.is_active:
        logger.info("login_rejected", username=username, reason="unknown_or_inactive")
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        logger.info("login_rejected", username=username, reason="bad_password")
        raise InvalidCredentials()

    logger.info("login_succeeded", user_id=user.id, username=user.username)
    return user


def change_password(user: User, current_password: str, new_password: str) -> User:
    """
    Re-verify the current password, then store the new one.

    Clears must_change_password. The caller commits and records the audit entry.
    """
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")

    min_length = get_settings().min_password_length
    if not new_password or len(new_password) < min_length:
        raise ValidationError(f"New password must be at least {min_length} characters long")

    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    return user
