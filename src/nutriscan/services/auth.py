"""Identity provider interface and sign-in error messages."""

from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

from nutriscan.domain.errors import AuthErrorKind
from nutriscan.domain.users import Principal

AuthListener = Callable[[Principal | None], None]
Unsubscribe = Callable[[], None]


class IdentityProvider(Protocol):
    """Interface for the external identity provider."""

    def current_principal(self) -> Principal | None:
        """Return the principal of the restored session, if any."""

    def sign_in_interactive(self, id_token: str) -> Principal:
        """Sign in with a token obtained from the provider's interactive flow."""

    def sign_in_with_credentials(self, email: str, password: str) -> Principal:
        """Sign in with email and password."""

    def create_account(self, email: str, password: str) -> Principal:
        """Register a new account and sign it in."""

    def sign_out(self) -> None:
        """End the current provider session."""

    def on_auth_change(self, callback: AuthListener) -> Unsubscribe:
        """Subscribe to sign-in changes; returns a cancellation handle."""


class AuthAction(StrEnum):
    """Sign-in flows, each with its own fallback message."""

    INTERACTIVE = "interactive"
    PASSWORD = "password"
    SIGN_UP = "sign_up"


_MESSAGES: dict[AuthErrorKind, str] = {
    AuthErrorKind.UNAUTHORIZED_DOMAIN: (
        "Domain not authorized for Google Login. Please use Guest Mode."
    ),
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password.",
    AuthErrorKind.EMAIL_IN_USE: "Email is already in use.",
    AuthErrorKind.WEAK_PASSWORD: "Password should be at least 6 characters.",
}

_FALLBACKS: dict[AuthAction, str] = {
    AuthAction.INTERACTIVE: "Login failed. Please try again or continue as guest.",
    AuthAction.PASSWORD: "Login failed. Please check your credentials.",
    AuthAction.SIGN_UP: "Signup failed.",
}


def auth_error_message(kind: AuthErrorKind, action: AuthAction) -> str | None:
    """Map an auth failure to a user-facing message; None means stay silent."""
    if kind == AuthErrorKind.POPUP_CLOSED:
        return None
    return _MESSAGES.get(kind, _FALLBACKS[action])
