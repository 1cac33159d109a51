"""Fetch service dispatching to the filesystem or an HTTP client."""

import re
import time
from collections.abc import Coroutine
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx
import structlog

from src.navigator.capabilities import (
    ConfirmDialog,
    Filesystem,
    FolderPicker,
    LocalFilesystem,
)
from src.navigator.constants import (
    COMPONENT_NAVIGATOR,
    FILE_RESPONSE_STATUS,
    GRANT_ACCESS_MESSAGE,
    GRANT_ACCESS_TITLE,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    SCHEME_FILE,
    VALID_PROXY_SCHEMES,
)
from src.navigator.errors import FetchFailedError
from src.navigator.metrics import NavigatorMetrics
from src.navigator.models import (
    DialogButtons,
    ErrorResponse,
    FetchErrorKind,
    Request,
    SuccessResponse,
)
from src.navigator.redact import redact_headers, redact_url_credentials
from src.navigator.resolver import UrlResolver


logger = structlog.get_logger()

# RFC 7230 token characters
_HEADER_NAME_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Visible ASCII plus space and horizontal tab
_HEADER_VALUE_PATTERN = re.compile(r"[\t\x20-\x7e]*")


def build_http_client(proxy: str | None = None) -> httpx.AsyncClient | None:
    """Build the HTTP client shared by all fetches.

    Redirects are followed and no timeout is applied. An unusable proxy
    is logged and ignored.

    Args:
        proxy: Optional proxy URL.

    Returns:
        The client, or None if one cannot be built.
    """
    log = logger.bind(component=COMPONENT_NAVIGATOR)

    if proxy is not None:
        try:
            scheme = httpx.URL(proxy).scheme
        except httpx.InvalidURL as e:
            log.warning("proxy_ignored", proxy=redact_url_credentials(proxy), error=str(e))
            proxy = None
        else:
            if scheme not in VALID_PROXY_SCHEMES:
                log.warning(
                    "proxy_ignored",
                    proxy=redact_url_credentials(proxy),
                    error=f"unsupported scheme {scheme!r}",
                )
                proxy = None

    try:
        return httpx.AsyncClient(proxy=proxy, follow_redirects=True, timeout=None)
    except (ValueError, ImportError) as e:
        log.error("http_client_unavailable", error=str(e))
        return None


def file_url_to_path(url: str) -> Path | None:
    """Convert a file URL to a local path, ignoring query and fragment.

    Args:
        url: Absolute ``file:`` URL.

    Returns:
        The local path, or None if the URL names a remote host or the
        decoded path contains a NUL byte.
    """
    parts = urlsplit(url)
    if parts.netloc not in ("", "localhost"):
        return None
    decoded = url2pathname(parts.path)
    if "\x00" in decoded:
        return None
    return Path(decoded)


def encode_headers(headers: dict[str, str]) -> list[tuple[bytes, bytes]]:
    """Encode request headers for the wire.

    Args:
        headers: Header name to value mapping.

    Returns:
        Encoded header pairs.

    Raises:
        ValueError: If a name is not a valid token or a value contains
            characters that cannot be sent.
    """
    encoded: list[tuple[bytes, bytes]] = []
    for name, value in headers.items():
        if not _HEADER_NAME_PATTERN.fullmatch(name):
            msg = f"Invalid header name: {name!r}"
            raise ValueError(msg)
        if not _HEADER_VALUE_PATTERN.fullmatch(value):
            msg = f"Invalid value for header {name!r}"
            raise ValueError(msg)
        encoded.append((name.encode("ascii"), value.encode("ascii")))
    return encoded


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


class FetchService:
    """Fetches resources through one success/error contract.

    ``file`` URLs are read from the filesystem, everything else goes
    through the shared HTTP client. ``fetch`` only resolves the URL;
    all I/O happens when the returned coroutine is driven.
    """

    def __init__(
        self,
        resolver: UrlResolver,
        client: httpx.AsyncClient | None,
        filesystem: Filesystem | None = None,
        dialog: ConfirmDialog | None = None,
        folder_picker: FolderPicker | None = None,
    ) -> None:
        """Initialize the fetch service.

        Args:
            resolver: Resolver for relative request URLs.
            client: Shared HTTP client, or None when the network is unavailable.
            filesystem: Filesystem capability (default: local disk).
            dialog: Dialog used to ask for directory access.
            folder_picker: Picker used to grant directory access.
        """
        self._resolver = resolver
        self._client = client
        self._filesystem = filesystem or LocalFilesystem()
        self._dialog = dialog
        self._folder_picker = folder_picker
        self._metrics = NavigatorMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_NAVIGATOR)

    @property
    def client(self) -> httpx.AsyncClient | None:
        """Get the shared HTTP client."""
        return self._client

    def fetch(self, request: Request) -> Coroutine[Any, Any, SuccessResponse]:
        """Start a fetch.

        Args:
            request: The request to perform.

        Returns:
            A coroutine resolving to a SuccessResponse or raising
            FetchFailedError.

        Raises:
            UrlParseError: If the request URL cannot be resolved.
        """
        url = self._resolver.resolve(request.url)
        scheme = urlsplit(url).scheme
        self._metrics.record_fetch(scheme)

        if scheme == SCHEME_FILE:
            return self._fetch_file(url)
        return self._fetch_http(request, url)

    async def _fetch_file(self, url: str) -> SuccessResponse:
        """Read a local file; the query stays in the reported URL only."""
        log = self._log.bind(url=redact_url_credentials(url), scheme=SCHEME_FILE)

        path = file_url_to_path(url)
        if path is None:
            raise self._fail(
                ErrorResponse(
                    url=url,
                    kind=FetchErrorKind.FILESYSTEM,
                    message="Unable to create path out of URL",
                ),
                log,
            )

        try:
            body = self._read_file(path)
        except OSError as e:
            raise self._fail(
                ErrorResponse(
                    url=url,
                    kind=FetchErrorKind.FILESYSTEM,
                    message=f"Can't open file: {_describe(e)}",
                    path=str(path),
                ),
                log,
            ) from e

        self._metrics.record_fetch_bytes(len(body))
        log.info("fetch_complete", status=FILE_RESPONSE_STATUS, bytes=len(body))
        return SuccessResponse(
            url=url,
            body=body,
            status=FILE_RESPONSE_STATUS,
            redirected=False,
        )

    def _read_file(self, path: Path) -> bytes:
        try:
            return self._filesystem.read(path)
        except PermissionError:
            if not self._request_directory_grant(path):
                raise
        return self._filesystem.read(path)

    def _request_directory_grant(self, path: Path) -> bool:
        """Ask the user once for read access to the file's directory.

        Args:
            path: File whose read was denied.

        Returns:
            True if the read should be retried.
        """
        if self._dialog is None or self._folder_picker is None:
            return False

        directory = path.parent
        accepted = self._dialog.confirm(
            GRANT_ACCESS_TITLE,
            GRANT_ACCESS_MESSAGE.format(directory=directory),
            DialogButtons.YES_NO,
        )
        if not accepted:
            self._log.info("directory_grant_declined", directory=str(directory))
            return False

        picked = self._folder_picker.pick_folder(directory)
        self._log.info(
            "directory_grant_requested",
            directory=str(directory),
            picked=str(picked) if picked else None,
        )
        return True

    async def _fetch_http(self, request: Request, url: str) -> SuccessResponse:
        """Send a request through the shared client and buffer the body."""
        start_time_ns = time.perf_counter_ns()
        log = self._log.bind(
            url=redact_url_credentials(url),
            method=request.method.value,
        )

        if self._client is None:
            raise self._fail(
                ErrorResponse(
                    url=url,
                    kind=FetchErrorKind.NETWORK_UNAVAILABLE,
                    message="Network unavailable",
                ),
                log,
            )

        try:
            headers = encode_headers(request.headers)
        except ValueError as e:
            raise self._fail(
                ErrorResponse(
                    url=url,
                    kind=FetchErrorKind.HEADER_ENCODING,
                    message=str(e),
                ),
                log,
            ) from e

        log.debug("fetch_started", headers=redact_headers(request.headers))

        try:
            outgoing = self._client.build_request(
                request.method.value,
                url,
                headers=headers,
                content=request.body,
            )
            response = await self._client.send(outgoing, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise self._fail(
                ErrorResponse(
                    url=url,
                    kind=FetchErrorKind.TRANSPORT,
                    message=_describe(e),
                ),
                log,
            ) from e

        try:
            effective_url = str(response.url)
            redirected = response.url != outgoing.url
            status = response.status_code

            if not HTTP_STATUS_OK_MIN <= status < HTTP_STATUS_OK_MAX:
                raise self._fail(
                    ErrorResponse(
                        url=effective_url,
                        kind=FetchErrorKind.HTTP_STATUS,
                        message=f"HTTP status is not ok, got {status}",
                        status=status,
                        redirected=redirected,
                    ),
                    log,
                )

            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                raise self._fail(
                    ErrorResponse(
                        url=effective_url,
                        kind=FetchErrorKind.TRANSPORT,
                        message=_describe(e),
                        status=status,
                        redirected=redirected,
                    ),
                    log,
                ) from e
        finally:
            await response.aclose()

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_fetch_bytes(len(body))
        log.info(
            "fetch_complete",
            status=status,
            bytes=len(body),
            redirected=redirected,
            final_url=redact_url_credentials(effective_url),
            duration_ms=round(duration_ms, 2),
        )

        return SuccessResponse(
            url=effective_url,
            body=body,
            status=status,
            redirected=redirected,
        )

    def _fail(
        self,
        response: ErrorResponse,
        log: structlog.stdlib.BoundLogger,
    ) -> FetchFailedError:
        """Record and log a failure, returning the error to raise."""
        self._metrics.record_fetch_failure(response.kind)
        log.warning(
            "fetch_failed",
            kind=response.kind.value,
            message=response.message,
            status=response.status,
            redirected=response.redirected,
            path=response.path,
        )
        return FetchFailedError(response)
