"""Credential checks behind the sign-in and registration endpoints."""

import logging
import re
import uuid

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizdrill.config import settings
from quizdrill.models import User

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,32}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_EMAIL_LENGTH = 254


class AccountExistsError(ValueError):
    pass


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Malformed password hash encountered")
        return False


def valid_username(value: str) -> bool:
    return bool(USERNAME_RE.match(value.strip()))


def valid_email(value: str) -> bool:
    value = value.strip()
    return len(value) <= MAX_EMAIL_LENGTH and bool(EMAIL_RE.match(value))


def check_availability(db: Session, field: str, value: str) -> bool | None:
    """True if free, False if taken, None when the value is malformed."""
    if field == "username":
        if not valid_username(value):
            return None
        column = User.username
    elif field == "email":
        if not valid_email(value):
            return None
        column = User.email
    else:
        raise ValueError(f"Unknown field: {field}")
    return db.query(User.id).filter(column == value.strip()).first() is None


def register_user(db: Session, username: str, email: str, password: str) -> User:
    user = User(
        id=uuid.uuid4().hex,
        username=username.strip(),
        email=email.strip(),
        password_hash=hash_password(password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AccountExistsError("Username or email already registered") from exc
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, username: str, password: str) -> User | None:
    user = db.query(User).filter(User.username == username).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def ensure_demo_user(db: Session) -> User:
    """Create the configured demo account if it does not exist yet."""
    user = db.query(User).filter(User.username == settings.demo_username).first()
    if user:
        return user
    user = User(
        id=settings.demo_username.lower(),
        username=settings.demo_username,
        email=f"{settings.demo_username.lower()}@example.com",
        password_hash=hash_password(settings.demo_password),
    )
    db.add(user)
    db.commit()
    return user
