"""Configuration models for the navigator layer."""

from pathlib import Path
from typing import Annotated
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.navigator.constants import VALID_PROXY_SCHEMES
from src.navigator.models import OpenUrlMode
from src.transport.constants import DEFAULT_READ_CHUNK_SIZE, MAX_READ_CHUNK_SIZE


def default_base_url() -> str:
    """Return the current working directory as a directory file URL."""
    return Path.cwd().as_uri() + "/"


class NavigatorConfig(BaseModel):
    """Configuration for URL resolution, fetching and navigation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = Field(
        default_factory=default_base_url,
        min_length=1,
        description="Location relative URLs resolve against",
    )
    upgrade_to_https: bool = Field(
        default=False, description="Rewrite http:// URLs to https://"
    )
    open_url_mode: OpenUrlMode = Field(
        default=OpenUrlMode.CONFIRM,
        description="Policy for content-initiated website navigation",
    )
    proxy: str | None = Field(default=None, description="Proxy URL for HTTP fetches")
    socket_read_chunk_size: Annotated[
        int, Field(ge=1, le=MAX_READ_CHUNK_SIZE)
    ] = DEFAULT_READ_CHUNK_SIZE

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure the base URL is absolute."""
        if not urlsplit(v).scheme:
            msg = f"Base URL must include a scheme: {v}"
            raise ValueError(msg)
        return v

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        """Ensure the proxy uses a scheme the HTTP client supports."""
        if v is None:
            return v
        scheme = urlsplit(v).scheme.lower()
        if scheme not in VALID_PROXY_SCHEMES:
            msg = f"Unsupported proxy scheme {scheme!r}; expected one of {VALID_PROXY_SCHEMES}"
            raise ValueError(msg)
        return v
