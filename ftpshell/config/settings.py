"""Application settings management for ftpshell.

Provides AppSettings dataclass and SettingsManager for persistence.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from ftpshell.config.paths import get_settings_path
from ftpshell.ftp.connection import FTPConnectionConfig
from ftpshell.ftp.keepalive import KeepAliveConfig

logger = logging.getLogger("ftpshell.settings")


@dataclass
class AppSettings:
    """Application settings that persist between sessions."""

    # Last connection
    last_host: str = ""
    last_port: int = 2121
    last_username: str = "anonymous"

    # Control channel deadlines (seconds)
    connect_timeout: float = 30
    write_timeout: float = 15
    read_timeout: float = 45

    # Keep-alive cadence
    keepalive_interval: float = 30
    keepalive_extended_interval: float = 120
    keepalive_success_threshold: int = 5

    # Transfers
    block_size: int = 8192

    # Shell
    prompt: str = "ftpshell> "

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    def connection_config(self, host: str, port: Optional[int] = None) -> FTPConnectionConfig:
        """Build the control connection config for a host."""
        return FTPConnectionConfig(
            host=host,
            port=port if port is not None else self.last_port,
            connect_timeout=self.connect_timeout,
            write_timeout=self.write_timeout,
            read_timeout=self.read_timeout,
        )

    def keepalive_config(self) -> KeepAliveConfig:
        return KeepAliveConfig(
            interval=self.keepalive_interval,
            extended_interval=self.keepalive_extended_interval,
            success_threshold=self.keepalive_success_threshold,
        )


class SettingsManager:
    """Manages application settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[AppSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> AppSettings:
        """
        Load settings from disk.

        Returns:
            AppSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._settings = AppSettings.from_dict(data)
            except (json.JSONDecodeError, IOError, TypeError) as e:
                logger.warning(f"Ignoring unreadable settings file {self._config_path}: {e}")
                self._settings = AppSettings()
        else:
            self._settings = AppSettings()

        return self._settings

    def save(self, settings: AppSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        # Ensure parent directory exists
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def update(self, **kwargs) -> AppSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated AppSettings instance
        """
        if self._settings is None:
            self.load()

        for key, value in kwargs.items():
            if hasattr(self._settings, key):
                setattr(self._settings, key, value)

        self.save(self._settings)
        return self._settings
