"""Error types for the navigator layer."""

from src.navigator.models import ErrorResponse, FetchErrorKind


class NavigatorError(Exception):
    """Base exception for navigator errors."""


class UrlParseError(NavigatorError):
    """Raised synchronously when a URL reference cannot be resolved."""

    def __init__(self, url: str, reason: str) -> None:
        """Initialize the parse error.

        Args:
            url: The offending URL reference.
            reason: Why it could not be parsed.
        """
        self.url = url
        self.reason = reason
        super().__init__(f"Could not parse URL {url!r}: {reason}")


class FetchFailedError(NavigatorError):
    """Failing outcome of a fetch coroutine.

    Wraps the ErrorResponse so callers get the URL and error kind
    without a partial body.
    """

    def __init__(self, response: ErrorResponse) -> None:
        """Initialize the fetch error.

        Args:
            response: Structured description of the failure.
        """
        self.response = response
        super().__init__(f"{response.kind.value}: {response.message}")

    @property
    def kind(self) -> FetchErrorKind:
        """Get the failure classification."""
        return self.response.kind

    @property
    def url(self) -> str:
        """Get the URL the failure applies to."""
        return self.response.url

    def to_dict(self) -> dict[str, str | int | bool | None]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "kind": self.response.kind.value,
            "message": self.response.message,
            "url": self.response.url,
            "status": self.response.status,
            "redirected": self.response.redirected,
            "path": self.response.path,
        }


class EventLoopClosedError(NavigatorError):
    """Raised by a host event loop that can no longer be woken."""
