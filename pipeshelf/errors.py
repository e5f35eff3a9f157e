from enum import Enum
from typing import Optional


class PipeShelfError(Exception):
    """Base class for every error raised by pipeshelf."""


class ValidationError(PipeShelfError):
    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    USERNAME_EXISTS = "username_exists"
    UNAUTHORIZED = "unauthorized"
    NETWORK_ERROR = "network_error"


_AUTH_MESSAGES = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid username or password.",
    AuthErrorKind.USERNAME_EXISTS: "Username already exists.",
    AuthErrorKind.UNAUTHORIZED: "Authentication failed.",
    AuthErrorKind.NETWORK_ERROR: "Network error, check your connection.",
}


class AuthError(PipeShelfError):
    def __init__(self, kind: AuthErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = message or _AUTH_MESSAGES[kind]
        super().__init__(self.message)


class TransferError(PipeShelfError):
    """A remote upload/download/delete/share/balance call failed.

    ``operation`` names the call, ``file_name`` the file it targeted (None for
    balance queries).
    """

    OPERATIONS = ("upload", "download", "delete", "share", "balance")

    def __init__(self, operation: str, file_name: Optional[str], message: str) -> None:
        if operation not in self.OPERATIONS:
            raise ValueError(f"Unknown transfer operation: {operation}")
        self.operation = operation
        self.file_name = file_name
        self.message = message
        target = f" {file_name}" if file_name else ""
        super().__init__(f"{operation}{target} failed: {message}")


def describe_error(exc: PipeShelfError) -> str:
    """User-facing text for any pipeshelf error."""
    if isinstance(exc, ValidationError):
        return exc.message
    if isinstance(exc, AuthError):
        if exc.kind is AuthErrorKind.INVALID_CREDENTIALS:
            return "Invalid username or password. Please check your credentials."
        if exc.kind is AuthErrorKind.USERNAME_EXISTS:
            return "Username already exists. Please try a different username or login instead."
        if exc.kind is AuthErrorKind.UNAUTHORIZED:
            return "Authentication failed. Please try again."
        if exc.kind is AuthErrorKind.NETWORK_ERROR:
            return "Network error. Please check your connection and try again."
        raise AssertionError(f"Unhandled auth error kind: {exc.kind}")
    if isinstance(exc, TransferError):
        return str(exc)
    return str(exc) or exc.__class__.__name__
