"""Capability interfaces for collaborators outside the navigator.

Dialogs, folder pickers, URL launchers and filesystem access are
injected through these protocols so fetch and navigation logic can be
exercised without user interaction.
"""

import webbrowser
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from src.navigator.constants import COMPONENT_NAVIGATOR
from src.navigator.models import DialogButtons
from src.navigator.redact import redact_url_credentials


logger = structlog.get_logger()


@runtime_checkable
class ConfirmDialog(Protocol):
    """Protocol for yes/no style confirmation dialogs."""

    def confirm(self, title: str, message: str, buttons: DialogButtons) -> bool:
        """Ask the user to confirm an action.

        Args:
            title: Dialog title.
            message: Dialog body text.
            buttons: Button set to offer.

        Returns:
            True if the user accepted.
        """
        ...


@runtime_checkable
class FolderPicker(Protocol):
    """Protocol for directory pickers used to grant read access."""

    def pick_folder(self, starting_at: Path) -> Path | None:
        """Let the user pick a folder.

        Args:
            starting_at: Directory the picker opens at.

        Returns:
            The picked folder, or None if cancelled.
        """
        ...


@runtime_checkable
class UrlLauncher(Protocol):
    """Protocol for handing URLs to the platform's default application."""

    def open(self, url: str) -> bool:
        """Open a URL.

        Args:
            url: Absolute URL to open.

        Returns:
            True if the platform accepted the URL.
        """
        ...


@runtime_checkable
class Filesystem(Protocol):
    """Protocol for reading local files."""

    def read(self, path: Path) -> bytes:
        """Read a whole file.

        Args:
            path: File to read.

        Returns:
            File contents.

        Raises:
            OSError: If the file cannot be read.
        """
        ...


class LocalFilesystem:
    """Filesystem backed by the local disk."""

    def read(self, path: Path) -> bytes:
        """Read a whole file from disk."""
        return path.read_bytes()


class BrowserLauncher:
    """URL launcher backed by the default web browser."""

    def open(self, url: str) -> bool:
        """Open a URL in the default browser, logging failures."""
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            logger.error(
                "url_open_failed",
                component=COMPONENT_NAVIGATOR,
                url=redact_url_credentials(url),
                error=str(e),
            )
            return False

        if not opened:
            logger.error(
                "url_open_failed",
                component=COMPONENT_NAVIGATOR,
                url=redact_url_credentials(url),
                error="no runnable browser",
            )
        return opened
