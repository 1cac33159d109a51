"""Navigator settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.navigator.config import NavigatorConfig, default_base_url
from src.navigator.models import OpenUrlMode
from src.transport.constants import DEFAULT_READ_CHUNK_SIZE


class NavigatorSettings(BaseSettings):
    """Environment configuration, read from ``NAVIGATOR_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="NAVIGATOR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(default_factory=default_base_url)
    upgrade_to_https: bool = False
    open_url_mode: OpenUrlMode = OpenUrlMode.CONFIRM
    proxy: str | None = None
    socket_read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE

    def to_config(self) -> NavigatorConfig:
        """Build the validated navigator configuration."""
        return NavigatorConfig(
            base_url=self.base_url,
            upgrade_to_https=self.upgrade_to_https,
            open_url_mode=self.open_url_mode,
            proxy=self.proxy,
            socket_read_chunk_size=self.socket_read_chunk_size,
        )


def get_settings() -> NavigatorSettings:
    """Get a settings instance."""
    return NavigatorSettings()
