"""Typed errors raised at capability boundaries."""

from enum import StrEnum


class GenerationErrorKind(StrEnum):
    """Failure classes reported by a generation client."""

    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


class GenerationError(Exception):
    """Raised by generation clients for any failed model call."""

    def __init__(
        self, kind: GenerationErrorKind, message: str, status: int | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status

    @property
    def is_transient(self) -> bool:
        """Return True for failures worth retrying."""
        return self.kind in {
            GenerationErrorKind.RATE_LIMITED,
            GenerationErrorKind.UNAVAILABLE,
        }


class AnalysisErrorKind(StrEnum):
    """User-facing classes of analysis failure."""

    BUSY = "busy"
    UNPROCESSABLE = "unprocessable"


class AnalysisSource(StrEnum):
    """What kind of input was being analyzed."""

    IMAGE = "image"
    TEXT = "text"


_ANALYSIS_MESSAGES: dict[tuple[AnalysisSource, AnalysisErrorKind], str] = {
    (AnalysisSource.IMAGE, AnalysisErrorKind.BUSY): (
        "Failed to analyze the food image. The service is currently busy due "
        "to high traffic. Please try again in a minute."
    ),
    (AnalysisSource.IMAGE, AnalysisErrorKind.UNPROCESSABLE): (
        "Failed to analyze the food image. The AI model could not process "
        "the request. Please try a clearer image."
    ),
    (AnalysisSource.TEXT, AnalysisErrorKind.BUSY): (
        "Failed to analyze the text. The service is busy. Please wait a "
        "moment and try again."
    ),
    (AnalysisSource.TEXT, AnalysisErrorKind.UNPROCESSABLE): (
        "Failed to analyze the text. Please provide more detailed product "
        "information."
    ),
}


class AnalysisError(Exception):
    """Raised when a product could not be analyzed."""

    def __init__(self, kind: AnalysisErrorKind, source: AnalysisSource) -> None:
        super().__init__(_ANALYSIS_MESSAGES[(source, kind)])
        self.kind = kind
        self.source = source

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the user."""
        return _ANALYSIS_MESSAGES[(self.source, self.kind)]


class AuthErrorKind(StrEnum):
    """Identity provider failures the app distinguishes."""

    UNAUTHORIZED_DOMAIN = "unauthorized_domain"
    POPUP_CLOSED = "popup_closed"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_IN_USE = "email_in_use"
    WEAK_PASSWORD = "weak_password"
    UNKNOWN = "unknown"


class AuthError(Exception):
    """Raised by identity providers for failed sign-in attempts."""

    def __init__(self, kind: AuthErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind
