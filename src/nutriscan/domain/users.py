"""Domain models for users and identities."""

from dataclasses import dataclass, replace
from enum import StrEnum
from urllib.parse import quote_plus

GUEST_USER_ID = "guest"


class UserTier(StrEnum):
    """Subscription tier of a user."""

    GUEST = "guest"
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class Principal:
    """Signed-in identity reported by the identity provider."""

    uid: str
    display_name: str | None = None
    email: str | None = None
    photo_url: str | None = None


@dataclass(frozen=True)
class User:
    """The active user of a session."""

    id: str
    name: str
    email: str
    picture: str
    tier: UserTier = UserTier.FREE
    scan_count: int = 0

    @property
    def is_guest(self) -> bool:
        """Return True for the local guest sentinel."""
        return self.id == GUEST_USER_ID

    def with_tier(self, tier: UserTier) -> "User":
        """Return a copy on a different plan."""
        return replace(self, tier=tier)


def user_from_principal(principal: Principal) -> User:
    """Build a registered user from an identity provider principal."""
    email = principal.email or ""
    name = principal.display_name or (email.split("@")[0] if email else "") or "User"
    picture = principal.photo_url or _avatar_url(email or "User")
    return User(
        id=principal.uid,
        name=name,
        email=email,
        picture=picture,
        tier=UserTier.FREE,
    )


def guest_user() -> User:
    """Return the local guest user."""
    return User(
        id=GUEST_USER_ID,
        name="Guest User",
        email="guest@example.com",
        picture=_avatar_url("Guest User") + "&background=random&color=fff",
        tier=UserTier.GUEST,
    )


def _avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote_plus(name)}"
