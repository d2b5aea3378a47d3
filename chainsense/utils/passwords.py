# chainsense/utils/passwords.py
from __future__ import annotations

import re

from werkzeug.security import check_password_hash, generate_password_hash

MIN_LENGTH = 10

# (pattern that must match, message when it does not)
_CHARACTER_CLASSES = (
    (re.compile(r"[A-Z]"), "Include at least one uppercase letter."),
    (re.compile(r"[a-z]"), "Include at least one lowercase letter."),
    (re.compile(r"\d"), "Include at least one number."),
)


def hash_password(plain_password: str) -> str:
    """scrypt hash for User.password_hash."""
    if not isinstance(plain_password, str) or not plain_password.strip():
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(plain_password, method="scrypt")


def verify_password(password_hash: str | None, plain_password: str | None) -> bool:
    if not password_hash or not plain_password:
        return False
    return check_password_hash(password_hash, plain_password)


def validate_password(plain_password) -> tuple[bool, str]:
    """
    Account password policy, used by the create-admin command.
    Returns (ok, first problem found).
    """
    if not isinstance(plain_password, str) or not plain_password.strip():
        return False, "Password cannot be empty."

    pw = plain_password.strip()
    if len(pw) < MIN_LENGTH:
        return False, f"Password must be at least {MIN_LENGTH} characters."

    for pattern, msg in _CHARACTER_CLASSES:
        if pattern.search(pw) is None:
            return False, msg
    return True, ""
