"""Pytest configuration and shared fixtures for ftpshell tests."""

import pytest
from pathlib import Path
from typing import Generator, List
from dataclasses import dataclass

from ftpshell.ftp.keepalive import KeepAliveConfig
from ftpshell.ftp.session import Session

from tests.unit.scripted_server import ScriptedServer


# Test constants
TEST_FTP_HOST = "127.0.0.1"
TEST_FTP_USER = "testuser"
TEST_FTP_PASS = "testpass"


@dataclass
class MockFTPConfig:
    """Credentials shared by the fake and mock FTP servers."""
    host: str = TEST_FTP_HOST
    username: str = TEST_FTP_USER
    password: str = TEST_FTP_PASS


@pytest.fixture
def ftp_config() -> MockFTPConfig:
    """Provide mock FTP configuration for tests."""
    return MockFTPConfig()


@pytest.fixture
def scripted_server() -> Generator[ScriptedServer, None, None]:
    """Provide an unstarted scripted server; stopped after the test."""
    server = ScriptedServer()
    yield server
    server.stop()


@pytest.fixture
def output() -> List[str]:
    """Collects the lines a session prints."""
    return []


@pytest.fixture
def make_session(scripted_server: ScriptedServer, output: List[str], ftp_config: MockFTPConfig):
    """
    Build a Session on the scripted server.

    The server is started and the greeting consumed. The keep-alive
    interval is long enough that it never fires on its own.
    """
    sessions = []

    def make(authenticated: bool = False, **kwargs) -> Session:
        scripted_server.start()
        channel = scripted_server.channel()
        channel.read_response()
        kwargs.setdefault("keepalive_config", KeepAliveConfig(interval=60, extended_interval=120))
        session = Session(
            channel,
            ftp_config.username,
            ftp_config.password,
            output=output.append,
            **kwargs,
        )
        session.is_authenticated = authenticated
        sessions.append(session)
        return session

    yield make

    for session in sessions:
        session.close()


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary settings file path for testing."""
    settings_file = tmp_path / "settings.json"
    yield settings_file
    # Cleanup handled by tmp_path fixture
