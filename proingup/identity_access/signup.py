"""
Sign-up (join) use case.

Validates the submitted credentials and asks the user directory to create an
account. Provider rejections are mapped to stable error codes that the web
adapter returns unchanged; everything else surfaces as an unexpected error.

Codes:
    400 EMAIL_REQUIRED | EMAIL_INVALID | PASSWORD_REQUIRED | PASSWORD_WEAK | SIGNUP_FAILED
    403 SIGNUP_FORBIDDEN
    409 USER_EXISTS
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol
import re


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

SIGNUP_SUCCESS_MESSAGE = "Account created. You can now sign in."


class UserCreationRejected(Exception):
    """The directory refused to create the user (message comes from the provider)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UserDirectory(Protocol):
    def create_user(self, *, email: str, password: str) -> str: ...


class NullUserDirectory:
    def create_user(self, *, email: str, password: str) -> str:  # noqa: D401
        raise RuntimeError("user_directory_not_configured")


class SignupError(Exception):
    def __init__(self, status: int, code: str, message: str):
        super().__init__(code)
        self.status = status
        self.code = code
        self.message = message


@dataclass(frozen=True)
class SignupInput:
    email: str
    password: str


def normalize_email(raw: Any) -> str:
    return str(raw if raw is not None else "").strip().lower()


def parse_signup_input(body: Any) -> SignupInput:
    data = body if isinstance(body, dict) else {}
    raw_password = data.get("password")
    return SignupInput(
        email=normalize_email(data.get("email")),
        password=str(raw_password) if raw_password is not None else "",
    )


def validate_signup_input(data: SignupInput) -> None:
    if not data.email:
        raise SignupError(400, "EMAIL_REQUIRED", "Please enter your email.")
    if not EMAIL_RE.match(data.email):
        raise SignupError(400, "EMAIL_INVALID", "Please enter a valid email address.")
    if not data.password:
        raise SignupError(400, "PASSWORD_REQUIRED", "Please enter a password.")
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise SignupError(400, "PASSWORD_WEAK", f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def classify_rejection(message: str) -> SignupError:
    msg = (message or "").lower()
    if any(word in msg for word in ("already", "exists", "duplicate")):
        return SignupError(409, "USER_EXISTS", "An account with this email already exists.")
    if any(word in msg for word in ("forbidden", "not allowed", "not authorized")):
        return SignupError(403, "SIGNUP_FORBIDDEN", "Sign-up is currently blocked by server configuration.")
    return SignupError(400, "SIGNUP_FAILED", message or "Unable to create account.")


def register_user(directory: UserDirectory, body: Any) -> str:
    """Validate `body` and create the account. Returns the new user id.

    Raises SignupError for input problems and provider rejections. Other
    exceptions propagate unchanged.
    """
    data = parse_signup_input(body)
    validate_signup_input(data)
    try:
        return directory.create_user(email=data.email, password=data.password)
    except UserCreationRejected as exc:
        raise classify_rejection(exc.message) from exc


__all__ = [
    "EMAIL_RE",
    "MIN_PASSWORD_LENGTH",
    "NullUserDirectory",
    "SIGNUP_SUCCESS_MESSAGE",
    "SignupError",
    "SignupInput",
    "UserCreationRejected",
    "UserDirectory",
    "classify_rejection",
    "register_user",
]
