import os
import pathlib

import pytest
from pydantic import ValidationError

from spotify_cli.config import AppConfig, SpotifySettings, load_config

DATA_DIRECTORY = pathlib.Path(__file__).parent / "data"


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ.keys()):
        if key.startswith("SPOTIFY_"):
            monkeypatch.delenv(key, raising=False)


class TestSpotifySettings:
    """Test SpotifySettings with environment variables."""

    def test_load_from_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that SpotifySettings loads from SPOTIFY_ prefixed env vars."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test_client_secret")
        monkeypatch.setenv("SPOTIFY_REDIRECT_URI", "http://localhost:8080/callback")
        monkeypatch.setenv("SPOTIFY_SCOPE", "user-read-playback-state")

        settings = SpotifySettings()

        assert settings.client_id == "test_client_id"
        assert settings.client_secret == "test_client_secret"
        assert settings.redirect_uri == "http://localhost:8080/callback"
        assert settings.scope == "user-read-playback-state"

    def test_default_scope_and_redirect(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that scope and redirect URI have usable defaults."""
        _clear_env(monkeypatch)
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test_client_secret")

        settings = SpotifySettings()

        assert "user-read-playback-state" in settings.scope
        assert "user-modify-playback-state" in settings.scope
        assert "playlist-read-private" in settings.scope
        assert settings.redirect_uri == "http://127.0.0.1:8888/callback"

    def test_callback_address_from_redirect_uri(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the callback listener address is derived from the redirect URI."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test_client_secret")
        monkeypatch.setenv("SPOTIFY_REDIRECT_URI", "http://localhost:9090/auth/done")

        settings = SpotifySettings()

        assert settings.callback_host == "localhost"
        assert settings.callback_port == 9090  # noqa: PLR2004
        assert settings.callback_path == "/auth/done"

    def test_missing_required_fields_raises_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that missing required fields raise ValidationError."""
        _clear_env(monkeypatch)

        with pytest.raises(ValidationError):
            SpotifySettings()


class TestAppConfig:
    """Test AppConfig defaults and the YAML loader."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        """Test poll intervals, TTLs and derived paths."""
        _clear_env(monkeypatch)
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test_client_secret")
        monkeypatch.setenv("SPOTIFY_CLI_CONFIG_DIR", str(tmp_path))

        config = AppConfig()

        assert config.home_poll_interval == 5.0  # noqa: PLR2004
        assert config.now_playing_poll_interval == 1.0
        assert config.message_ttl == 2.0  # noqa: PLR2004
        assert config.error_ttl == 4.0  # noqa: PLR2004
        assert config.search_limit == 15  # noqa: PLR2004
        assert config.credentials_path == tmp_path / "credentials.enc"
        assert config.key_path == tmp_path / "credentials.key"
        assert config.resolved_log_file == tmp_path / "spotify-cli.log"
        assert config.spotify.client_id == "test_client_id"

    def test_load_yaml_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that values from the YAML file win over environment variables."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "env_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "env_client_secret")
        monkeypatch.setenv("SPOTIFY_CLI_SEARCH_LIMIT", "5")

        config = load_config(DATA_DIRECTORY / "config.yaml")

        assert config.log_level == "DEBUG"
        assert config.home_poll_interval == 10.0  # noqa: PLR2004
        assert config.search_limit == 20  # noqa: PLR2004
        assert config.spotify.client_id == "yaml_client_id"
        assert config.spotify.callback_port == 9999  # noqa: PLR2004
        assert config.spotify.callback_path == "/spotify/callback"

    def test_load_without_file_uses_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that load_config works from the environment alone."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "env_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "env_client_secret")
        monkeypatch.setenv("SPOTIFY_CLI_NOW_PLAYING_POLL_INTERVAL", "2.5")

        config = load_config(None)

        assert config.spotify.client_id == "env_client_id"
        assert config.now_playing_poll_interval == 2.5  # noqa: PLR2004

    def test_load_invalid_config(self, monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        """Test that an invalid YAML config raises ValidationError."""
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "test_client_secret")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("search_limit: 500\nhome_poll_interval: not_a_number\n")

        with pytest.raises(ValidationError):
            load_config(config_file)
