"""Tests for the encrypted credential store."""

import pathlib
import stat

import pytest
from cryptography.fernet import Fernet

from spotify_cli.credential_store import CredentialStore
from spotify_cli.models import Credential

CREDENTIAL = Credential(access_token="access", refresh_token="refresh", expires_at=1_700_000_000_000)


@pytest.fixture
def store(tmp_path: pathlib.Path) -> CredentialStore:
    return CredentialStore(tmp_path / "credentials.enc", tmp_path / "credentials.key")


class TestCredentialStore:
    def test_load_without_file_returns_none(self, store: CredentialStore) -> None:
        assert store.load() is None

    def test_save_and_load(self, store: CredentialStore) -> None:
        store.save(CREDENTIAL)

        assert store.load() == CREDENTIAL

    def test_file_is_encrypted_and_private(self, store: CredentialStore) -> None:
        store.save(CREDENTIAL)

        content = store.path.read_bytes()
        assert b"access" not in content
        assert b"refresh" not in content
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600  # noqa: PLR2004
        assert stat.S_IMODE(store.key_path.stat().st_mode) == 0o600  # noqa: PLR2004

    def test_configured_key_is_used(self, tmp_path: pathlib.Path) -> None:
        key = Fernet.generate_key().decode()
        store = CredentialStore(tmp_path / "credentials.enc", tmp_path / "credentials.key", encryption_key=key)

        store.save(CREDENTIAL)

        assert not store.key_path.exists()
        assert CredentialStore(store.path, store.key_path, encryption_key=key).load() == CREDENTIAL

    def test_wrong_key_reads_as_logged_out(self, tmp_path: pathlib.Path) -> None:
        store = CredentialStore(tmp_path / "credentials.enc", tmp_path / "credentials.key")
        store.save(CREDENTIAL)
        other = CredentialStore(store.path, tmp_path / "other.key", encryption_key=Fernet.generate_key().decode())

        assert other.load() is None

    def test_corrupt_file_reads_as_logged_out(self, store: CredentialStore) -> None:
        store.save(CREDENTIAL)
        store.path.write_bytes(b"garbage")

        assert store.load() is None

    def test_malformed_key_reads_as_logged_out(self, store: CredentialStore) -> None:
        store.save(CREDENTIAL)
        store.key_path.write_bytes(b"not-a-fernet-key")

        assert store.load() is None

    def test_malformed_configured_key_reads_as_logged_out(self, tmp_path: pathlib.Path) -> None:
        CredentialStore(tmp_path / "credentials.enc", tmp_path / "credentials.key").save(CREDENTIAL)
        store = CredentialStore(tmp_path / "credentials.enc", tmp_path / "credentials.key", encryption_key="garbage")

        assert store.load() is None

    def test_delete(self, store: CredentialStore) -> None:
        store.save(CREDENTIAL)

        store.delete()
        store.delete()

        assert store.load() is None
