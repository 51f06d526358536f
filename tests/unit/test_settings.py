"""Unit tests for settings and credentials management."""

import json
import pytest
from pathlib import Path
from unittest.mock import patch

from keyring.errors import KeyringError, PasswordDeleteError

from ftpshell.config.settings import AppSettings, SettingsManager
from ftpshell.config.credentials import CredentialManager


class TestAppSettings:
    """Tests for AppSettings dataclass."""

    def test_default_values(self):
        """Test default settings values."""
        settings = AppSettings()
        assert settings.last_host == ""
        assert settings.last_port == 2121
        assert settings.last_username == "anonymous"
        assert settings.connect_timeout == 30
        assert settings.write_timeout == 15
        assert settings.read_timeout == 45
        assert settings.keepalive_interval == 30
        assert settings.keepalive_extended_interval == 120
        assert settings.keepalive_success_threshold == 5
        assert settings.block_size == 8192
        assert settings.prompt == "ftpshell> "

    def test_to_dict(self):
        """Test converting settings to dictionary."""
        data = AppSettings(last_host="test.local", last_port=1234).to_dict()

        assert isinstance(data, dict)
        assert data["last_host"] == "test.local"
        assert data["last_port"] == 1234
        assert "keepalive_interval" in data

    def test_from_dict_ignores_unknown_keys(self):
        """Test that unknown keys are ignored."""
        settings = AppSettings.from_dict({
            "last_host": "192.168.1.50",
            "read_timeout": 60,
            "window_width": 800,
        })
        assert settings.last_host == "192.168.1.50"
        assert settings.read_timeout == 60
        assert not hasattr(settings, "window_width")

    def test_connection_config(self):
        """Test the control connection config carries the timeouts."""
        settings = AppSettings(connect_timeout=10, write_timeout=5, read_timeout=20, last_port=21)

        config = settings.connection_config("ftp.example.com")

        assert config.host == "ftp.example.com"
        assert config.port == 21
        assert config.connect_timeout == 10
        assert config.write_timeout == 5
        assert config.read_timeout == 20
        assert settings.connection_config("ftp.example.com", 2121).port == 2121

    def test_connection_config_validates(self):
        with pytest.raises(ValueError, match="read_timeout"):
            AppSettings(read_timeout=0).connection_config("ftp.example.com")

    def test_keepalive_config(self):
        config = AppSettings(keepalive_interval=10, keepalive_extended_interval=60,
                             keepalive_success_threshold=3).keepalive_config()
        assert config.interval == 10
        assert config.extended_interval == 60
        assert config.success_threshold == 3


class TestSettingsManager:
    """Tests for SettingsManager class."""

    def test_load_nonexistent_returns_defaults(self, temp_settings_file: Path):
        """Test loading from non-existent file returns defaults."""
        settings = SettingsManager(temp_settings_file).load()
        assert settings.last_port == 2121

    def test_save_and_load(self, temp_settings_file: Path):
        """Test saving and loading settings."""
        manager = SettingsManager(temp_settings_file)
        manager.save(AppSettings(last_host="192.168.1.100", last_username="alice"))

        loaded = SettingsManager(temp_settings_file).load()

        assert loaded.last_host == "192.168.1.100"
        assert loaded.last_username == "alice"

    def test_save_creates_parent_dir(self, tmp_path: Path):
        """Test save creates parent directories."""
        path = tmp_path / "nested" / "dir" / "settings.json"
        SettingsManager(path).save(AppSettings())
        assert path.exists()

    def test_load_invalid_json_returns_defaults(self, temp_settings_file: Path):
        """Test loading invalid JSON returns defaults."""
        temp_settings_file.write_text("{ not json")
        settings = SettingsManager(temp_settings_file).load()
        assert settings.last_host == ""

    def test_update(self, temp_settings_file: Path):
        """Test updating specific fields persists them."""
        manager = SettingsManager(temp_settings_file)
        manager.update(last_host="ftp.example.com", last_port=21, unknown_field="x")

        data = json.loads(temp_settings_file.read_text())
        assert data["last_host"] == "ftp.example.com"
        assert data["last_port"] == 21
        assert "unknown_field" not in data


class TestCredentialManager:
    """Tests for CredentialManager class."""

    @patch("ftpshell.config.credentials.keyring")
    def test_save_password(self, mock_keyring):
        """Test saving password to keyring."""
        assert CredentialManager().save_password("ftp.local", "alice", "secret") is True
        mock_keyring.set_password.assert_called_once_with("ftpshell", "ftp.local:alice", "secret")

    @patch("ftpshell.config.credentials.keyring")
    def test_save_password_failure(self, mock_keyring):
        """Test keyring errors are reported as False."""
        mock_keyring.set_password.side_effect = KeyringError("no backend")
        assert CredentialManager().save_password("ftp.local", "alice", "secret") is False

    @patch("ftpshell.config.credentials.keyring")
    def test_get_password(self, mock_keyring):
        mock_keyring.get_password.return_value = "secret"
        assert CredentialManager().get_password("ftp.local", "alice") == "secret"
        mock_keyring.get_password.assert_called_once_with("ftpshell", "ftp.local:alice")

    @patch("ftpshell.config.credentials.keyring")
    def test_get_password_failure(self, mock_keyring):
        mock_keyring.get_password.side_effect = KeyringError("locked")
        assert CredentialManager().get_password("ftp.local", "alice") is None

    @patch("ftpshell.config.credentials.keyring")
    def test_delete_password(self, mock_keyring):
        assert CredentialManager().delete_password("ftp.local", "alice") is True
        mock_keyring.delete_password.side_effect = PasswordDeleteError("missing")
        assert CredentialManager().delete_password("ftp.local", "alice") is False

    @patch("ftpshell.config.credentials.keyring")
    def test_resolve_password_order(self, mock_keyring):
        """Test explicit password, then keyring, then empty string."""
        manager = CredentialManager()
        mock_keyring.get_password.return_value = "stored"

        assert manager.resolve_password("h", "u", "explicit") == "explicit"
        assert manager.resolve_password("h", "u", "") == ""
        assert manager.resolve_password("h", "u", None) == "stored"

        mock_keyring.get_password.return_value = None
        assert manager.resolve_password("h", "u", None) == ""
