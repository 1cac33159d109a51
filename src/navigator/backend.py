"""Navigator backend for environments that hand URLs to the platform."""

from collections.abc import Coroutine
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx
import structlog

from src.navigator.capabilities import (
    BrowserLauncher,
    ConfirmDialog,
    Filesystem,
    FolderPicker,
    UrlLauncher,
)
from src.navigator.config import NavigatorConfig
from src.navigator.constants import (
    COMPONENT_NAVIGATOR,
    OPEN_WEBSITE_MESSAGE,
    OPEN_WEBSITE_TITLE,
    SCHEME_JAVASCRIPT,
)
from src.navigator.errors import UrlParseError
from src.navigator.fetcher import FetchService, build_http_client
from src.navigator.metrics import NavigatorMetrics
from src.navigator.models import (
    DialogButtons,
    NavigationMethod,
    OpenUrlMode,
    Request,
    SuccessResponse,
)
from src.navigator.redact import redact_url_credentials
from src.navigator.resolver import UrlResolver
from src.navigator.scheduler import DeferredTask, TaskScheduler
from src.transport.tcp import TcpSocket


logger = structlog.get_logger()


def append_query_pairs(url: str, pairs: dict[str, str]) -> str:
    """Append form-encoded pairs to a URL's query string.

    Args:
        url: Absolute URL.
        pairs: Variables to append, in order.

    Returns:
        The URL with the pairs appended after any existing query.
    """
    if not pairs:
        return url
    parts = urlsplit(url)
    encoded = urlencode(list(pairs.items()))
    query = f"{parts.query}&{encoded}" if parts.query else encoded
    return urlunsplit(parts._replace(query=query))


class ExternalNavigatorBackend:
    """Navigator backend with fetch, task and socket capability.

    Navigation requests are handed to the platform's default
    application according to the configured open-URL policy.
    """

    def __init__(
        self,
        config: NavigatorConfig,
        scheduler: TaskScheduler,
        dialog: ConfirmDialog | None = None,
        folder_picker: FolderPicker | None = None,
        launcher: UrlLauncher | None = None,
        filesystem: Filesystem | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            config: Navigator configuration.
            scheduler: Scheduler receiving deferred tasks.
            dialog: Confirmation dialog capability.
            folder_picker: Directory grant capability.
            launcher: Default-application launcher (default: web browser).
            filesystem: Filesystem capability (default: local disk).
            client: HTTP client to share; built from the config if omitted.
        """
        self._config = config
        self._scheduler = scheduler
        self._dialog = dialog
        self._launcher = launcher or BrowserLauncher()
        self._resolver = UrlResolver(config.base_url, config.upgrade_to_https)
        self._fetcher = FetchService(
            resolver=self._resolver,
            client=client if client is not None else build_http_client(config.proxy),
            filesystem=filesystem,
            dialog=dialog,
            folder_picker=folder_picker,
        )
        self._metrics = NavigatorMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_NAVIGATOR)

    @property
    def config(self) -> NavigatorConfig:
        """Get the navigator configuration."""
        return self._config

    @property
    def resolver(self) -> UrlResolver:
        """Get the URL resolver."""
        return self._resolver

    def resolve_url(self, url: str) -> str:
        """Resolve a reference against the base URL.

        Raises:
            UrlParseError: If the reference is malformed.
        """
        return self._resolver.resolve(url)

    def pre_process_url(self, url: str) -> str:
        """Apply the HTTPS upgrade policy to an absolute URL."""
        return self._resolver.pre_process(url)

    def fetch(self, request: Request) -> Coroutine[Any, Any, SuccessResponse]:
        """Start a fetch; see FetchService.fetch."""
        return self._fetcher.fetch(request)

    def spawn_future(self, task: DeferredTask) -> None:
        """Hand a deferred task to the scheduler."""
        self._scheduler.spawn(task)

    def connect_socket(self, host: str, port: int) -> TcpSocket:
        """Open a non-blocking socket to a peer."""
        return TcpSocket.connect(host, port, self._config.socket_read_chunk_size)

    def navigate_to_url(
        self,
        url: str,
        target: str = "",
        vars_method: tuple[NavigationMethod, dict[str, str]] | None = None,
    ) -> bool:
        """Open a URL in the platform's default application.

        The target window is ignored, as desktop players do. Form
        variables are appended to the query regardless of method.

        Args:
            url: Absolute or relative URL.
            target: Target window name (ignored).
            vars_method: Optional method and variables to send.

        Returns:
            True if the URL was handed to the launcher successfully.
        """
        try:
            resolved = self._resolver.resolve(url)
        except UrlParseError as e:
            self._log.error("navigation_url_invalid", url=url, error=e.reason)
            self._metrics.record_navigation(opened=False)
            return False

        if vars_method is not None:
            _, variables = vars_method
            resolved = append_query_pairs(resolved, variables)

        log = self._log.bind(url=redact_url_credentials(resolved), target=target)

        if urlsplit(resolved).scheme == SCHEME_JAVASCRIPT:
            log.warning("navigation_refused", reason="javascript_not_allowed")
            self._metrics.record_navigation(opened=False)
            return False

        if not self._is_navigation_allowed(resolved, log):
            self._metrics.record_navigation(opened=False)
            return False

        opened = self._launcher.open(resolved)
        if opened:
            log.info("navigation_opened")
        else:
            log.error("navigation_open_failed")
        self._metrics.record_navigation(opened=opened)
        return opened

    def _is_navigation_allowed(
        self,
        url: str,
        log: structlog.stdlib.BoundLogger,
    ) -> bool:
        """Apply the open-URL policy."""
        mode = self._config.open_url_mode

        if mode == OpenUrlMode.DENY:
            log.warning("navigation_refused", reason="opening_websites_not_allowed")
            return False

        if mode == OpenUrlMode.CONFIRM:
            if self._dialog is None:
                log.warning("navigation_refused", reason="no_confirmation_dialog")
                return False
            confirmed = self._dialog.confirm(
                OPEN_WEBSITE_TITLE,
                OPEN_WEBSITE_MESSAGE.format(url=url),
                DialogButtons.OK_CANCEL,
            )
            if not confirmed:
                log.info("navigation_refused", reason="user_declined")
                return False

        return True

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        client = self._fetcher.client
        if client is not None:
            await client.aclose()
