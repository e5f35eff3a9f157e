import re

from .errors import ValidationError

USERNAME_MIN = 3
USERNAME_MAX = 32
PASSWORD_MIN = 8

_USERNAME_RE = re.compile(r"[A-Za-z0-9_-]+")


def validate_username(username: str) -> str:
    if not username or not username.strip():
        raise ValidationError("Username is required", field="username")
    if len(username) < USERNAME_MIN or len(username) > USERNAME_MAX:
        raise ValidationError(
            f"Username must be {USERNAME_MIN}-{USERNAME_MAX} characters",
            field="username",
        )
    if not _USERNAME_RE.fullmatch(username):
        raise ValidationError(
            "Username may only contain letters, numbers, '_' and '-'",
            field="username",
        )
    return username


def validate_password(password: str) -> str:
    if not password:
        raise ValidationError("Password is required", field="password")
    if len(password) < PASSWORD_MIN:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN} characters",
            field="password",
        )
    checks = (
        (any(c.isupper() for c in password), "an uppercase letter"),
        (any(c.islower() for c in password), "a lowercase letter"),
        (any(c.isdigit() for c in password), "a number"),
        (any(not c.isalnum() for c in password), "a symbol"),
    )
    missing = [label for ok, label in checks if not ok]
    if missing:
        raise ValidationError(
            "Password must contain " + ", ".join(missing),
            field="password",
        )
    return password


def validate_credentials(username: str, password: str) -> None:
    validate_username(username)
    validate_password(password)
