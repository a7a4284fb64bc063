"""Encrypted file storage for the Spotify OAuth credential.

This module keeps the access/refresh token pair on disk, encrypted with Fernet,
so the client stays logged in across runs.
"""

import logging
import os
import pathlib

import pydantic
from cryptography.fernet import Fernet, InvalidToken

from spotify_cli import app_logger
from spotify_cli.models import Credential


class CredentialStore:
    """Fernet-encrypted credential record in the client's config directory.

    Attributes:
        path: File holding the encrypted credential.
        key_path: File holding the generated key when no key is configured.
    """

    def __init__(
        self,
        path: pathlib.Path,
        key_path: pathlib.Path,
        encryption_key: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            path: File holding the encrypted credential.
            key_path: File holding the generated key, used when encryption_key is None.
            encryption_key: Fernet key from configuration.
            logger: Logger for storage problems.
        """
        self.path = path
        self.key_path = key_path
        self._configured_key = encryption_key
        self.logger = logger or app_logger.get_logger(__name__)

    def _existing_fernet(self) -> Fernet | None:
        """Fernet for the configured or stored key, None when no key exists yet.

        Raises:
            ValueError: If the key is not a valid Fernet key.
        """
        if self._configured_key:
            return Fernet(self._configured_key.encode())
        if self.key_path.exists():
            return Fernet(self.key_path.read_bytes().strip())
        return None

    def _create_fernet(self) -> Fernet:
        fernet = self._existing_fernet()
        if fernet is not None:
            return fernet
        key = Fernet.generate_key()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        # AIDEV-NOTE: Key file must only be readable by the owner
        fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as file:
            file.write(key)
        self.logger.debug("Generated credential key at %s", self.key_path)
        return Fernet(key)

    def load(self) -> Credential | None:
        """Read the stored credential.

        Returns:
            The credential, or None if nothing usable is stored.
        """
        if not self.path.exists():
            return None
        try:
            fernet = self._existing_fernet()
            if fernet is None:
                self.logger.warning("Credential file %s exists but no key is available", self.path)
                return None
            return Credential.model_validate_json(fernet.decrypt(self.path.read_bytes()))
        except (ValueError, pydantic.ValidationError) as e:
            self.logger.warning("Ignoring credential file %s, bad key or content: %s", self.path, e)
            return None
        except (InvalidToken, OSError) as e:
            self.logger.warning("Ignoring unreadable credential file %s: %s", self.path, e)
            return None

    def save(self, credential: Credential) -> None:
        """Encrypt and write the credential, replacing any previous one.

        Raises:
            ValueError: If the configured or stored key is not a valid Fernet key.
        """
        fernet = self._create_fernet()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as file:
            file.write(fernet.encrypt(credential.model_dump_json().encode()))
        self.logger.debug("Credential saved, expires at %d", credential.expires_at)

    def delete(self) -> None:
        """Remove the stored credential. Does nothing when none is stored."""
        self.path.unlink(missing_ok=True)
        self.logger.debug("Credential removed")
