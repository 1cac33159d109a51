"""Relative URL resolution with optional HTTPS upgrade."""

from urllib.parse import urljoin, urlsplit, urlunsplit

import structlog

from src.navigator.constants import COMPONENT_NAVIGATOR, SCHEME_HTTP, SCHEME_HTTPS
from src.navigator.errors import UrlParseError
from src.navigator.redact import redact_url_credentials


logger = structlog.get_logger()


def normalize_base_url(url: str) -> str:
    """Replace the last path segment of a URL with an empty segment.

    Relative references then resolve as against a directory rather than
    a file: ``http://host/a/movie.swf`` becomes ``http://host/a/``.
    URLs without a hierarchical path (``mailto:``, ``data:``) are
    returned unchanged.

    Args:
        url: Absolute base URL.

    Returns:
        The normalized base URL.
    """
    parts = urlsplit(url)
    if not parts.path.startswith("/") and not (parts.netloc and not parts.path):
        return url

    segments = parts.path.split("/")[1:] if parts.path else []
    if segments:
        segments.pop()
    if segments and segments[-1] == "":
        segments.pop()
    segments.append("")

    return urlunsplit(parts._replace(path="/" + "/".join(segments)))


class UrlResolver:
    """Resolves URL references against a stored base location."""

    def __init__(self, base_url: str, upgrade_to_https: bool = False) -> None:
        """Initialize the resolver.

        Args:
            base_url: Location of the content; normalized to its directory.
            upgrade_to_https: Rewrite ``http`` URLs to ``https``.
        """
        self._base_url = normalize_base_url(base_url)
        self._upgrade_to_https = upgrade_to_https
        self._log = logger.bind(component=COMPONENT_NAVIGATOR)

    @property
    def base_url(self) -> str:
        """Get the normalized base URL."""
        return self._base_url

    @property
    def upgrade_to_https(self) -> bool:
        """Check whether insecure URLs are upgraded."""
        return self._upgrade_to_https

    def resolve(self, url: str) -> str:
        """Join a reference against the base URL and pre-process it.

        Args:
            url: Absolute or relative URL reference.

        Returns:
            The absolute, pre-processed URL.

        Raises:
            UrlParseError: If the reference is malformed or the result
                has no scheme.
        """
        try:
            joined = urljoin(self._base_url, url)
            parts = urlsplit(joined)
            # Accessing the port validates it
            _ = parts.port
        except ValueError as e:
            raise UrlParseError(url, str(e)) from e

        if not parts.scheme:
            raise UrlParseError(url, "relative URL without a base")

        return self.pre_process(joined)

    def pre_process(self, url: str) -> str:
        """Apply the HTTPS upgrade policy to an absolute URL.

        Only the scheme changes; host, path, query and fragment are kept
        byte for byte. Idempotent.

        Args:
            url: Absolute URL.

        Returns:
            The possibly upgraded URL.
        """
        if not self._upgrade_to_https:
            return url

        if urlsplit(url).scheme != SCHEME_HTTP:
            return url

        try:
            scheme_end = url.index(":")
        except ValueError:
            self._log.error("url_upgrade_failed", url=redact_url_credentials(url))
            return url

        return SCHEME_HTTPS + url[scheme_end:]
