"""Supabase Auth identity provider."""

import logging
from dataclasses import dataclass

from supabase import Client

from nutriscan.domain.errors import AuthError, AuthErrorKind
from nutriscan.domain.users import Principal
from nutriscan.services.auth import AuthListener, IdentityProvider, Unsubscribe

logger = logging.getLogger(__name__)

_ERROR_KINDS: dict[str, AuthErrorKind] = {
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIALS,
    "user_not_found": AuthErrorKind.INVALID_CREDENTIALS,
    "email_exists": AuthErrorKind.EMAIL_IN_USE,
    "user_already_exists": AuthErrorKind.EMAIL_IN_USE,
    "weak_password": AuthErrorKind.WEAK_PASSWORD,
    "provider_disabled": AuthErrorKind.UNAUTHORIZED_DOMAIN,
    "oauth_provider_not_supported": AuthErrorKind.UNAUTHORIZED_DOMAIN,
}

# Events that change who is signed in; token refreshes are ignored.
_FORWARDED_EVENTS = {"SIGNED_IN", "SIGNED_OUT", "USER_DELETED"}


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by Supabase Auth."""

    client: Client
    oauth_provider: str = "google"

    def current_principal(self) -> Principal | None:
        """Return the principal of the stored session, if any."""
        session = self.client.auth.get_session()
        if session is None or session.user is None:
            return None
        return _to_principal(session.user)

    def sign_in_interactive(self, id_token: str) -> Principal:
        """Exchange an OAuth ID token for a session."""
        if not id_token:
            raise AuthError(AuthErrorKind.POPUP_CLOSED, "Sign-in was cancelled")
        return self._call(
            lambda: self.client.auth.sign_in_with_id_token(
                {"provider": self.oauth_provider, "token": id_token}
            )
        )

    def sign_in_with_credentials(self, email: str, password: str) -> Principal:
        return self._call(
            lambda: self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        )

    def create_account(self, email: str, password: str) -> Principal:
        return self._call(
            lambda: self.client.auth.sign_up({"email": email, "password": password})
        )

    def sign_out(self) -> None:
        self.client.auth.sign_out()

    def on_auth_change(self, callback: AuthListener) -> Unsubscribe:
        """Forward sign-in and sign-out events as principals."""

        def _listener(event: str, session) -> None:  # type: ignore[no-untyped-def]
            if event not in _FORWARDED_EVENTS:
                return
            user = getattr(session, "user", None) if session else None
            callback(_to_principal(user) if user is not None else None)

        subscription = self.client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    def _call(self, request) -> Principal:  # type: ignore[no-untyped-def]
        try:
            response = request()
        except Exception as exc:
            code = getattr(exc, "code", None)
            kind = _ERROR_KINDS.get(str(code), AuthErrorKind.UNKNOWN)
            logger.warning("Supabase auth error %s: %s", code, exc)
            raise AuthError(kind, str(exc)) from exc
        if response.user is None:
            raise AuthError(AuthErrorKind.UNKNOWN, "No user returned by Supabase")
        return _to_principal(response.user)


def _to_principal(user) -> Principal:  # type: ignore[no-untyped-def]
    metadata = getattr(user, "user_metadata", None) or {}
    return Principal(
        uid=str(user.id),
        display_name=metadata.get("full_name") or metadata.get("name"),
        email=getattr(user, "email", None),
        photo_url=metadata.get("avatar_url") or metadata.get("picture"),
    )
