"""Data models for the navigator layer."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NavigationMethod(str, Enum):
    """HTTP method used for fetches and navigations."""

    GET = "GET"
    POST = "POST"

    @classmethod
    def from_str(cls, value: str) -> "NavigationMethod":
        """Parse a method name case-insensitively.

        Args:
            value: Method name such as ``"get"`` or ``"POST"``.

        Returns:
            The matching NavigationMethod.

        Raises:
            ValueError: If the method is not supported.
        """
        try:
            return cls(value.upper())
        except ValueError:
            msg = f"Unsupported navigation method: {value}"
            raise ValueError(msg) from None


class OpenUrlMode(str, Enum):
    """Policy applied when content asks to open a website.

    - ALLOW: always open
    - CONFIRM: ask the user first
    - DENY: never open
    """

    ALLOW = "allow"
    CONFIRM = "confirm"
    DENY = "deny"


class DialogButtons(str, Enum):
    """Button sets offered by confirmation dialogs."""

    OK_CANCEL = "ok_cancel"
    YES_NO = "yes_no"


class FetchErrorKind(str, Enum):
    """Classification of fetch failures.

    - NETWORK_UNAVAILABLE: No HTTP client could be built
    - HEADER_ENCODING: A header name or value cannot be sent
    - TRANSPORT: DNS, connection, TLS or protocol failure
    - HTTP_STATUS: Final response status is not 2xx
    - FILESYSTEM: Local file could not be read
    """

    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    HEADER_ENCODING = "HEADER_ENCODING"
    TRANSPORT = "TRANSPORT"
    HTTP_STATUS = "HTTP_STATUS"
    FILESYSTEM = "FILESYSTEM"


class Request(BaseModel):
    """An outgoing fetch request.

    Header names are case-insensitive: names differing only by case are
    merged on construction, the last value winning.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: Annotated[str, Field(description="Target URL, possibly relative")]
    method: NavigationMethod = NavigationMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes | None = None

    @field_validator("headers")
    @classmethod
    def merge_case_insensitive(cls, v: dict[str, str]) -> dict[str, str]:
        """Collapse header names that differ only by case."""
        merged: dict[str, tuple[str, str]] = {}
        for name, value in v.items():
            merged[name.lower()] = (name, value)
        return dict(merged.values())

    @classmethod
    def get(cls, url: str) -> "Request":
        """Build a GET request with no headers or body."""
        return cls(url=url)

    @classmethod
    def post(
        cls,
        url: str,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> "Request":
        """Build a POST request."""
        return cls(
            url=url,
            method=NavigationMethod.POST,
            headers=headers or {},
            body=body,
        )

    def get_header(self, name: str) -> str | None:
        """Look up a header value case-insensitively.

        Args:
            name: Header name.

        Returns:
            The header value, or None if absent.
        """
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class SuccessResponse(BaseModel):
    """Successful outcome of a fetch."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: Annotated[str, Field(min_length=1, description="Effective URL")]
    body: bytes = b""
    status: Annotated[int, Field(ge=0, le=599)] = 0
    redirected: bool = False

    @property
    def body_size(self) -> int:
        """Get the size of the response body in bytes."""
        return len(self.body)


class ErrorResponse(BaseModel):
    """Failed outcome of a fetch. Never carries a partial body."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    kind: FetchErrorKind
    message: Annotated[str, Field(min_length=1)]
    status: int | None = None
    redirected: bool = False
    path: str | None = None
