"""CLI commands for the navigator bridge."""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path

import click
from pydantic import ValidationError

from src.navigator.backend import ExternalNavigatorBackend
from src.navigator.config import NavigatorConfig
from src.navigator.constants import COMPONENT_CLI
from src.navigator.errors import FetchFailedError, UrlParseError
from src.navigator.executor import TaskExecutor
from src.navigator.models import (
    DialogButtons,
    NavigationMethod,
    OpenUrlMode,
    Request,
    SuccessResponse,
)
from src.navigator.scheduler import PendingWorkFlag, TaskQueue, TaskScheduler
from src.observability.logging import configure_logging, get_logger
from src.settings import get_settings
from src.transport.framing import frame_message
from src.transport.tcp import TcpSocket


logger = get_logger()


class TerminalDialog:
    """Confirmation dialog answered on the terminal."""

    def confirm(self, title: str, message: str, buttons: DialogButtons) -> bool:
        """Ask a yes/no question on stderr."""
        click.echo(title, err=True)
        suffix = " (OK/Cancel)" if buttons == DialogButtons.OK_CANCEL else ""
        return click.confirm(f"{message}{suffix}", default=False, err=True)


class TerminalFolderPicker:
    """Folder picker answered on the terminal."""

    def pick_folder(self, starting_at: Path) -> Path | None:
        """Prompt for a directory, defaulting to the starting point."""
        value = click.prompt(
            "Folder to grant",
            default=str(starting_at),
            type=click.Path(file_okay=False, path_type=Path),
            err=True,
        )
        return Path(value)


@dataclass
class FetchOutcome:
    """Result slot filled by the fetch task."""

    response: SuccessResponse | None = None
    error: FetchFailedError | None = None


def _setup_logging(verbose: bool, json_logs: bool) -> None:
    configure_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        json_format=json_logs,
    )


def _build_config(**overrides: object) -> NavigatorConfig:
    """Merge CLI overrides into the environment settings.

    Raises:
        click.ClickException: If the merged configuration is invalid.
    """
    base = get_settings().to_config().model_dump()
    base.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return NavigatorConfig(**base)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            msg = f"Expected 'Name: value', got {value!r}"
            raise click.BadParameter(msg, param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Navigator bridge CLI."""


@cli.command()
@click.argument("url")
@click.option("--base-url", default=None, help="URL relative references resolve against.")
@click.option(
    "--upgrade-https",
    is_flag=True,
    help="Rewrite http:// URLs to https://.",
)
@click.option(
    "--method",
    type=click.Choice([m.value for m in NavigationMethod], case_sensitive=False),
    default=NavigationMethod.GET.value,
    show_default=True,
)
@click.option(
    "-H",
    "--header",
    "headers",
    multiple=True,
    help="Request header as 'Name: value'. Repeatable.",
)
@click.option("--data", default=None, help="Request body (sent as UTF-8).")
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the body to a file instead of stdout.",
)
@click.option("--proxy", default=None, help="Proxy URL for HTTP fetches.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--json-logs", is_flag=True, help="Emit JSON logs.")
def fetch(  # noqa: PLR0913
    url: str,
    base_url: str | None,
    upgrade_https: bool,
    method: str,
    headers: tuple[str, ...],
    data: str | None,
    output_path: Path | None,
    proxy: str | None,
    verbose: bool,
    json_logs: bool,
) -> None:
    """Fetch URL through the scheduler and print the body."""
    _setup_logging(verbose, json_logs)
    config = _build_config(
        base_url=base_url,
        upgrade_to_https=True if upgrade_https else None,
        proxy=proxy,
    )

    task_queue = TaskQueue()
    host_loop = PendingWorkFlag()
    backend = ExternalNavigatorBackend(
        config,
        TaskScheduler(task_queue, host_loop),
        dialog=TerminalDialog(),
        folder_picker=TerminalFolderPicker(),
    )

    request = Request(
        url=url,
        method=NavigationMethod.from_str(method),
        headers=_parse_headers(headers),
        body=data.encode("utf-8") if data is not None else None,
    )

    try:
        pending = backend.fetch(request)
    except UrlParseError as e:
        asyncio.run(backend.aclose())
        raise click.ClickException(str(e)) from e

    outcome = FetchOutcome()

    async def run() -> None:
        try:
            outcome.response = await pending
        except FetchFailedError as e:
            outcome.error = e
        finally:
            await backend.aclose()

    backend.spawn_future(run())

    with TaskExecutor(task_queue) as executor:
        while host_loop.is_set():
            host_loop.clear()
            executor.run_until_idle()
    host_loop.close()

    if outcome.error is not None:
        raise click.ClickException(str(outcome.error))
    if outcome.response is None:
        raise click.ClickException("Fetch did not complete")

    logger.bind(component=COMPONENT_CLI).info(
        "cli_fetch_complete",
        url=outcome.response.url,
        status=outcome.response.status,
        bytes=outcome.response.body_size,
    )

    if output_path is not None:
        output_path.write_bytes(outcome.response.body)
        click.echo(
            f"Saved {outcome.response.body_size} bytes from {outcome.response.url} "
            f"to {output_path}",
            err=True,
        )
    else:
        click.get_binary_stream("stdout").write(outcome.response.body)


@cli.command("open")
@click.argument("url")
@click.option("--base-url", default=None, help="URL relative references resolve against.")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in OpenUrlMode], case_sensitive=False),
    default=None,
    help="Open-URL policy (default: from settings).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def open_url(url: str, base_url: str | None, mode: str | None, verbose: bool) -> None:
    """Hand URL to the default application, honoring the open-URL policy."""
    _setup_logging(verbose, json_logs=False)
    config = _build_config(
        base_url=base_url,
        open_url_mode=OpenUrlMode(mode.lower()) if mode else None,
    )

    backend = ExternalNavigatorBackend(
        config,
        TaskScheduler(TaskQueue(), PendingWorkFlag()),
        dialog=TerminalDialog(),
    )
    if not backend.navigate_to_url(url):
        raise click.ClickException(f"Did not open {url}")


@cli.command("socket")
@click.argument("host")
@click.argument("port", type=click.IntRange(1, 65535))
@click.option(
    "--send",
    "messages",
    multiple=True,
    help="Message to send, framed with a zero byte. Repeatable.",
)
@click.option("--polls", default=100, show_default=True, type=click.IntRange(min=1))
@click.option(
    "--interval",
    default=0.05,
    show_default=True,
    type=click.FloatRange(min=0.0),
    help="Seconds to sleep between idle polls.",
)
@click.option(
    "--expect",
    default=None,
    type=click.IntRange(min=1),
    help="Stop after this many messages.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def socket_command(  # noqa: PLR0913
    host: str,
    port: int,
    messages: tuple[str, ...],
    polls: int,
    interval: float,
    expect: int | None,
    verbose: bool,
) -> None:
    """Exchange zero-byte framed messages with HOST:PORT."""
    _setup_logging(verbose, json_logs=False)
    config = _build_config()

    with TcpSocket.connect(host, port, config.socket_read_chunk_size) as sock:
        if not sock.is_connected():
            raise click.ClickException(f"Could not connect to {host}:{port}")

        for message in messages:
            sock.send(frame_message(message.encode("utf-8")))

        received = 0
        for _ in range(polls):
            payload = sock.poll()
            if payload is not None:
                click.echo(payload.decode("utf-8", errors="replace"))
                received += 1
                if expect is not None and received >= expect:
                    break
                continue
            if not sock.is_connected():
                break
            time.sleep(interval)


if __name__ == "__main__":
    cli()
