"""Unit tests for the fetch service."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from src.navigator.capabilities import LocalFilesystem
from src.navigator.errors import FetchFailedError, UrlParseError
from src.navigator.fetcher import (
    FetchService,
    build_http_client,
    encode_headers,
    file_url_to_path,
)
from src.navigator.metrics import NavigatorMetrics
from src.navigator.models import (
    DialogButtons,
    FetchErrorKind,
    NavigationMethod,
    Request,
)
from src.navigator.resolver import UrlResolver


Handler = Callable[[httpx.Request], httpx.Response]


class RecordingFilesystem:
    """Filesystem that records every path it is asked to read."""

    def __init__(self, failures: list[OSError] | None = None) -> None:
        self.paths: list[Path] = []
        self._failures = list(failures or [])
        self._disk = LocalFilesystem()

    def read(self, path: Path) -> bytes:
        self.paths.append(path)
        if self._failures:
            raise self._failures.pop(0)
        return self._disk.read(path)


class StubDialog:
    """Dialog returning a fixed answer and recording calls."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.calls: list[tuple[str, str, DialogButtons]] = []

    def confirm(self, title: str, message: str, buttons: DialogButtons) -> bool:
        self.calls.append((title, message, buttons))
        return self.answer


class StubFolderPicker:
    """Folder picker recording where it was opened."""

    def __init__(self) -> None:
        self.opened_at: list[Path] = []

    def pick_folder(self, starting_at: Path) -> Path | None:
        self.opened_at.append(starting_at)
        return starting_at


def mock_client(handler: Handler) -> httpx.AsyncClient:
    """Create a redirect-following client backed by a handler."""
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        follow_redirects=True,
    )


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start every test with fresh metrics."""
    NavigatorMetrics.reset()


class TestFileFetch:
    """Tests for fetching file URLs."""

    @pytest.fixture
    def movie_dir(self, tmp_path: Path) -> Path:
        """Create a directory holding a movie and a data file."""
        (tmp_path / "main.swf").write_bytes(b"FWS")
        (tmp_path / "data.bin").write_bytes(b"\x00\x01payload\xff")
        return tmp_path

    def make_service(
        self,
        movie_dir: Path,
        filesystem: RecordingFilesystem,
        dialog: StubDialog | None = None,
        folder_picker: StubFolderPicker | None = None,
    ) -> FetchService:
        resolver = UrlResolver((movie_dir / "main.swf").as_uri())
        return FetchService(
            resolver=resolver,
            client=None,
            filesystem=filesystem,
            dialog=dialog,
            folder_picker=folder_picker,
        )

    def test_round_trip_keeps_query_in_url_only(self, movie_dir: Path) -> None:
        """The query stays in the response URL but not in the read path."""
        filesystem = RecordingFilesystem()
        service = self.make_service(movie_dir, filesystem)

        response = asyncio.run(service.fetch(Request.get("data.bin?x=1")))

        assert response.body == b"\x00\x01payload\xff"
        assert response.status == 0
        assert response.redirected is False
        assert response.url.endswith("data.bin?x=1")
        assert filesystem.paths == [movie_dir / "data.bin"]

    def test_fetch_does_not_read_before_driven(self, movie_dir: Path) -> None:
        """No filesystem access happens until the coroutine runs."""
        filesystem = RecordingFilesystem()
        service = self.make_service(movie_dir, filesystem)

        pending = service.fetch(Request.get("data.bin"))
        assert filesystem.paths == []
        pending.close()

    def test_missing_file_is_filesystem_error(self, movie_dir: Path) -> None:
        """A missing file fails with the OS message and path."""
        service = self.make_service(movie_dir, RecordingFilesystem())

        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("nope.bin")))

        error = exc_info.value.response
        assert error.kind == FetchErrorKind.FILESYSTEM
        assert error.path == str(movie_dir / "nope.bin")
        assert "Can't open file" in error.message
        assert NavigatorMetrics.get_instance().fetch_failures_total == {"FILESYSTEM": 1}

    def test_remote_host_cannot_become_path(self, movie_dir: Path) -> None:
        """File URLs naming another host are rejected."""
        service = self.make_service(movie_dir, RecordingFilesystem())

        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("file://fileserver/share/a.swf")))

        assert exc_info.value.kind == FetchErrorKind.FILESYSTEM
        assert "Unable to create path" in exc_info.value.response.message

    def test_nul_byte_in_path_is_filesystem_error(self, movie_dir: Path) -> None:
        """A path decoding to a NUL byte fails like any unusable file URL."""
        filesystem = RecordingFilesystem()
        service = FetchService(UrlResolver(movie_dir.as_uri() + "/"), None, filesystem)

        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("a%00b.swf")))

        assert exc_info.value.kind == FetchErrorKind.FILESYSTEM
        assert "Unable to create path" in exc_info.value.response.message
        assert filesystem.paths == []

    def test_permission_grant_retries_once(self, movie_dir: Path) -> None:
        """After consent the folder picker opens and the read is retried."""
        filesystem = RecordingFilesystem([PermissionError(13, "Permission denied")])
        dialog = StubDialog(answer=True)
        picker = StubFolderPicker()
        service = self.make_service(movie_dir, filesystem, dialog, picker)

        response = asyncio.run(service.fetch(Request.get("data.bin")))

        assert response.body.endswith(b"payload\xff")
        assert len(filesystem.paths) == 2
        assert len(dialog.calls) == 1
        assert dialog.calls[0][2] == DialogButtons.YES_NO
        assert str(movie_dir) in dialog.calls[0][1]
        assert picker.opened_at == [movie_dir]

    def test_permission_declined(self, movie_dir: Path) -> None:
        """Declining consent fails without a second read."""
        filesystem = RecordingFilesystem([PermissionError(13, "Permission denied")])
        picker = StubFolderPicker()
        service = self.make_service(movie_dir, filesystem, StubDialog(False), picker)

        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("data.bin")))

        assert exc_info.value.kind == FetchErrorKind.FILESYSTEM
        assert "Permission denied" in exc_info.value.response.message
        assert len(filesystem.paths) == 1
        assert picker.opened_at == []

    def test_permission_without_collaborators(self, movie_dir: Path) -> None:
        """Without a dialog and picker the permission error is final."""
        filesystem = RecordingFilesystem([PermissionError(13, "Permission denied")])
        service = self.make_service(movie_dir, filesystem)

        with pytest.raises(FetchFailedError):
            asyncio.run(service.fetch(Request.get("data.bin")))
        assert len(filesystem.paths) == 1

    def test_permission_denied_after_grant(self, movie_dir: Path) -> None:
        """The user is asked only once even if the retry fails too."""
        filesystem = RecordingFilesystem(
            [
                PermissionError(13, "Permission denied"),
                PermissionError(13, "Permission denied"),
            ]
        )
        dialog = StubDialog(answer=True)
        service = self.make_service(movie_dir, filesystem, dialog, StubFolderPicker())

        with pytest.raises(FetchFailedError):
            asyncio.run(service.fetch(Request.get("data.bin")))
        assert len(filesystem.paths) == 2
        assert len(dialog.calls) == 1


class TestHttpFetch:
    """Tests for fetching through the HTTP client."""

    BASE = "https://example.com/movies/main.swf"

    def make_service(self, handler: Handler) -> FetchService:
        return FetchService(UrlResolver(self.BASE), mock_client(handler))

    def test_success(self) -> None:
        """A 200 response is buffered with status and URL."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"level data")

        service = self.make_service(handler)
        response = asyncio.run(service.fetch(Request.get("level1.swf")))

        assert response.body == b"level data"
        assert response.status == 200
        assert response.url == "https://example.com/movies/level1.swf"
        assert response.redirected is False
        metrics = NavigatorMetrics.get_instance()
        assert metrics.fetch_requests_total == {"https": 1}
        assert metrics.fetch_bytes_total == len(b"level data")

    def test_method_headers_and_body_are_sent(self) -> None:
        """The caller's method, headers and body reach the wire."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"ok")

        service = self.make_service(handler)
        request = Request.post(
            "submit.php",
            body=b"score=10",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        asyncio.run(service.fetch(request))

        assert len(seen) == 1
        assert seen[0].method == NavigationMethod.POST.value
        assert seen[0].content == b"score=10"
        assert seen[0].headers["content-type"] == "application/x-www-form-urlencoded"

    def test_redirect_reports_final_url(self) -> None:
        """A 301 followed by a 200 elsewhere is a redirected success."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/movies/old.swf":
                return httpx.Response(
                    301, headers={"Location": "https://cdn.example.com/new.swf"}
                )
            return httpx.Response(200, content=b"moved")

        service = self.make_service(handler)
        response = asyncio.run(service.fetch(Request.get("old.swf")))

        assert response.status == 200
        assert response.redirected is True
        assert response.url == "https://cdn.example.com/new.swf"
        assert response.body == b"moved"

    def test_not_found_is_http_status_error(self) -> None:
        """A 404 without redirect fails with status 404."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, content=b"missing")

        service = self.make_service(handler)
        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("missing.swf")))

        error = exc_info.value.response
        assert error.kind == FetchErrorKind.HTTP_STATUS
        assert error.status == 404
        assert error.redirected is False
        assert error.url == "https://example.com/movies/missing.swf"

    def test_redirect_to_error_keeps_redirect_flag(self) -> None:
        """A redirect ending in an error status reports redirected."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/movies/old.swf":
                return httpx.Response(302, headers={"Location": "/gone.swf"})
            return httpx.Response(410)

        service = self.make_service(handler)
        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("old.swf")))

        error = exc_info.value.response
        assert error.status == 410
        assert error.redirected is True
        assert error.url == "https://example.com/gone.swf"

    def test_transport_failure(self) -> None:
        """Connection failures carry the underlying message."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = self.make_service(handler)
        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("a.swf")))

        assert exc_info.value.kind == FetchErrorKind.TRANSPORT
        assert "connection refused" in exc_info.value.response.message

    @pytest.mark.parametrize(
        "headers",
        [
            {"Bad Header": "x"},
            {"X-Split\r\nInjected": "x"},
            {"X-Value": "line\r\nbreak"},
            {"X-Unicode": "café"},
        ],
    )
    def test_header_encoding_error_before_io(self, headers: dict[str, str]) -> None:
        """Unsendable headers fail before any request is made."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        service = self.make_service(handler)
        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request(url="a.swf", headers=headers)))

        assert exc_info.value.kind == FetchErrorKind.HEADER_ENCODING
        assert calls == []

    def test_network_unavailable(self) -> None:
        """Without a client, network fetches fail immediately."""
        service = FetchService(UrlResolver(self.BASE), client=None)

        with pytest.raises(FetchFailedError) as exc_info:
            asyncio.run(service.fetch(Request.get("a.swf")))

        assert exc_info.value.kind == FetchErrorKind.NETWORK_UNAVAILABLE
        assert exc_info.value.url == "https://example.com/movies/a.swf"

    def test_fetch_does_not_send_before_driven(self) -> None:
        """The request is only sent once the coroutine is awaited."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        service = self.make_service(handler)
        pending = service.fetch(Request.get("a.swf"))
        assert calls == []
        pending.close()

    def test_url_parse_error_is_synchronous(self) -> None:
        """Malformed URLs raise before any coroutine exists."""
        service = self.make_service(lambda request: httpx.Response(200))

        with pytest.raises(UrlParseError):
            service.fetch(Request.get("http://[broken"))
        assert NavigatorMetrics.get_instance().fetch_requests_total == {}

    def test_upgrade_applies_to_fetch(self) -> None:
        """With upgrades enabled http requests go out over https."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200)

        service = FetchService(
            UrlResolver("http://example.com/", upgrade_to_https=True),
            mock_client(handler),
        )
        response = asyncio.run(service.fetch(Request.get("http://example.com/a?b=1")))

        assert seen == ["https://example.com/a?b=1"]
        assert response.url == "https://example.com/a?b=1"


class TestHelpers:
    """Tests for module-level helpers."""

    def test_encode_headers(self) -> None:
        """Valid headers encode to ASCII byte pairs."""
        assert encode_headers({"X-Token": "abc 123"}) == [(b"X-Token", b"abc 123")]

    def test_file_url_to_path_strips_query(self) -> None:
        """Query and fragment never reach the path."""
        assert file_url_to_path("file:///tmp/a%20b.swf?x=1#f") == Path("/tmp/a b.swf")

    def test_file_url_to_path_localhost(self) -> None:
        """localhost counts as the local machine."""
        assert file_url_to_path("file://localhost/tmp/a.swf") == Path("/tmp/a.swf")

    def test_file_url_to_path_rejects_nul(self) -> None:
        """Encoded NUL bytes cannot name a local file."""
        assert file_url_to_path("file:///tmp/a%00b.swf") is None

    def test_build_http_client(self) -> None:
        """A client is built with redirects followed."""
        client = build_http_client()

        assert isinstance(client, httpx.AsyncClient)
        assert client.follow_redirects is True
        asyncio.run(client.aclose())

    def test_build_http_client_ignores_bad_proxy(self) -> None:
        """An unsupported proxy scheme is dropped, not fatal."""
        client = build_http_client("ftp://proxy.example.com:21")

        assert client is not None
        asyncio.run(client.aclose())
