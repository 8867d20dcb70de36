# Overview: Account creation and password authentication.

"""
Authentication Service

Accounts sign up with name, email and password; stores are reached only
through memberships created afterwards.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with uppercase, lowercase, digit and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..validation import ConflictError, ValidationError

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_user(name: str, email: str, password: str, image: str | None = None) -> User:
    """
    Create a new account.

    Raises:
        ValidationError: missing name, malformed email
        PasswordValidationError: weak password
        ConflictError: email already registered
    """
    for field, value in (("name", name), ("email", email), ("password", password)):
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
    if image is not None and not isinstance(image, str):
        raise ValidationError("image must be a string")

    if not name or not name.strip():
        raise ValidationError("name is required")
    if not email or not _EMAIL_PATTERN.match(normalize_email(email)):
        raise ValidationError("A valid email is required")
    if not password:
        raise ValidationError("password is required")

    email = normalize_email(email)
    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ConflictError("Email is already registered")

    user = User(
        name=name.strip(),
        email=email,
        image=image,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User %s signed up", user.id)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Return the User if the credentials are valid, None otherwise.

    A wrong email and a wrong password are indistinguishable to the caller.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if user is None:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
