"""Navigation, fetch and task scheduling for an embedded content player.

This module provides:
- Relative URL resolution with optional HTTPS upgrade
- Fetching from the filesystem or over HTTP with one success/error contract
- A scheduler bridging deferred tasks to a host-driven executor
- Policy-checked navigation handed to the platform
"""

from src.navigator.backend import ExternalNavigatorBackend, append_query_pairs
from src.navigator.capabilities import (
    BrowserLauncher,
    ConfirmDialog,
    Filesystem,
    FolderPicker,
    LocalFilesystem,
    UrlLauncher,
)
from src.navigator.config import NavigatorConfig, default_base_url
from src.navigator.errors import (
    EventLoopClosedError,
    FetchFailedError,
    NavigatorError,
    UrlParseError,
)
from src.navigator.executor import TaskExecutor
from src.navigator.fetcher import (
    FetchService,
    build_http_client,
    encode_headers,
    file_url_to_path,
)
from src.navigator.metrics import NavigatorMetrics
from src.navigator.models import (
    DialogButtons,
    ErrorResponse,
    FetchErrorKind,
    NavigationMethod,
    OpenUrlMode,
    Request,
    SuccessResponse,
)
from src.navigator.redact import redact_headers, redact_url_credentials
from src.navigator.resolver import UrlResolver, normalize_base_url
from src.navigator.scheduler import (
    AsyncioHostLoop,
    DeferredTask,
    HostEventLoop,
    PendingWorkFlag,
    TaskQueue,
    TaskScheduler,
)


__all__ = [
    # Backend
    "ExternalNavigatorBackend",
    "append_query_pairs",
    # Capabilities
    "BrowserLauncher",
    "ConfirmDialog",
    "Filesystem",
    "FolderPicker",
    "LocalFilesystem",
    "UrlLauncher",
    # Config
    "NavigatorConfig",
    "default_base_url",
    # Errors
    "EventLoopClosedError",
    "FetchFailedError",
    "NavigatorError",
    "UrlParseError",
    # Fetch
    "FetchService",
    "build_http_client",
    "encode_headers",
    "file_url_to_path",
    # Models
    "DialogButtons",
    "ErrorResponse",
    "FetchErrorKind",
    "NavigationMethod",
    "OpenUrlMode",
    "Request",
    "SuccessResponse",
    # Resolution
    "UrlResolver",
    "normalize_base_url",
    # Scheduling
    "AsyncioHostLoop",
    "DeferredTask",
    "HostEventLoop",
    "PendingWorkFlag",
    "TaskExecutor",
    "TaskQueue",
    "TaskScheduler",
    # Metrics
    "NavigatorMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
]
