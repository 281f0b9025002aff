"""Centralized configuration: Pydantic BaseSettings with TOML + dotenv sources.

Settings live in config.toml. Environment variables override it using
``__`` as the nested delimiter (e.g. ``DATABASE__PATH``,
``WHATSAPP__MARK_ONLINE_ON_CONNECT``). Log verbosity is the plain
``LOG_LEVEL`` variable, read by :mod:`memberwatch.logger`.

Priority (highest wins): init args > env vars > .env > config.toml

Usage::

    from memberwatch.config import get_settings

    s = get_settings()
    print(s.database_path)
    print(s.TARGET_KEYWORD)
"""

from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)


class _StrictModel(BaseModel):
    """Config sections reject unknown keys so a typo in config.toml fails loudly."""

    model_config = {"extra": "forbid"}


class DatabaseConfig(_StrictModel):
    """``[database]``: where the membership store lives."""

    path: str = "data/memberwatch.db"


class WhatsAppConfig(_StrictModel):
    """``[whatsapp]``: linked-device session and presence."""

    auth_dir: str = "store"  # holds neonize.db; wiped on logout
    mark_online_on_connect: bool = False


def _under(root: Path, configured: str) -> Path:
    path = Path(configured)
    if not path.is_absolute():
        path = root / path
    return path.resolve()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        toml_file="config.toml",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseConfig = DatabaseConfig()
    whatsapp: WhatsAppConfig = WhatsAppConfig()

    # Class constant rather than a field, so no env var or TOML key reaches it.
    TARGET_KEYWORD: ClassVar[str] = "neol"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # config.toml sits below every env-derived source
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @cached_property
    def project_root(self) -> Path:
        """Directory relative config paths are resolved against (the cwd)."""
        return Path.cwd()

    @cached_property
    def database_path(self) -> Path:
        return _under(self.project_root, self.database.path)

    @cached_property
    def auth_dir(self) -> Path:
        return _under(self.project_root, self.whatsapp.auth_dir)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide Settings, parsed on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the parsed Settings so the next get_settings() re-reads sources."""
    global _settings
    _settings = None
