"""Navigator settings loading."""

from .app import NavigatorSettings, get_settings


__all__ = ["NavigatorSettings", "get_settings"]
