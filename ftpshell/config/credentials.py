"""Secure credential storage for ftpshell.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) so the FTP password does not have to be typed
on the command line for every session.
"""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger("ftpshell.credentials")


class CredentialManager:
    """Secure credential storage using system keyring."""

    SERVICE_NAME = "ftpshell"

    def _make_key(self, host: str, username: str) -> str:
        """Unique key for a host/user pair."""
        return f"{host}:{username}"

    def save_password(self, host: str, username: str, password: str) -> bool:
        """
        Save FTP password securely.

        Args:
            host: FTP host
            username: FTP username
            password: Password to save

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            keyring.set_password(self.SERVICE_NAME, self._make_key(host, username), password)
            return True
        except KeyringError as e:
            logger.warning(f"Could not store password in keyring: {e}")
            return False

    def get_password(self, host: str, username: str) -> Optional[str]:
        """
        Retrieve saved password.

        Returns:
            Password string or None if not found
        """
        try:
            return keyring.get_password(self.SERVICE_NAME, self._make_key(host, username))
        except KeyringError as e:
            logger.debug(f"Keyring lookup failed: {e}")
            return None

    def delete_password(self, host: str, username: str) -> bool:
        """
        Remove saved password.

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            keyring.delete_password(self.SERVICE_NAME, self._make_key(host, username))
            return True
        except KeyringError:
            return False

    def resolve_password(self, host: str, username: str, explicit: Optional[str]) -> str:
        """
        Pick the password for a session.

        Args:
            host: FTP host
            username: FTP username
            explicit: Password given on the command line, if any

        Returns:
            The explicit password, else the stored one, else ""
        """
        if explicit is not None:
            return explicit
        stored = self.get_password(host, username)
        if stored is not None:
            logger.debug(f"Using keyring credentials for {username}@{host}")
            return stored
        return ""
