"""Configuration management for the Spotify terminal client.

This module defines the Spotify OAuth settings and the client's own settings.
Uses pydantic-settings with env_prefix for environment variable configuration,
optionally overridden by values from a YAML file.
"""

import pathlib
from typing import Any
from urllib.parse import urlparse

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_DIR = pathlib.Path.home() / ".config" / "spotify-cli"


class SpotifySettings(BaseSettings):
    """Spotify API credentials and OAuth settings.

    Environment variables (with SPOTIFY_ prefix):
        SPOTIFY_CLIENT_ID: Application client ID from Spotify developer dashboard.
        SPOTIFY_CLIENT_SECRET: Application client secret.
        SPOTIFY_REDIRECT_URI: OAuth redirect URI configured in Spotify app settings.
        SPOTIFY_SCOPE: Space-separated API scopes required by the client.
    """

    model_config = SettingsConfigDict(env_prefix="SPOTIFY_")

    client_id: str
    client_secret: str
    redirect_uri: str = "http://127.0.0.1:8888/callback"
    scope: str = (
        "user-read-playback-state user-modify-playback-state user-read-currently-playing "
        "playlist-read-private playlist-read-collaborative user-read-recently-played "
        "user-read-private user-read-email"
    )

    @property
    def callback_host(self) -> str:
        """Host the local OAuth callback listener binds to."""
        return urlparse(self.redirect_uri).hostname or "127.0.0.1"

    @property
    def callback_port(self) -> int:
        """Port of the local OAuth callback listener, taken from the redirect URI."""
        return urlparse(self.redirect_uri).port or 8888

    @property
    def callback_path(self) -> str:
        """Path the authorization server redirects to."""
        return urlparse(self.redirect_uri).path or "/"


class AppConfig(BaseSettings):
    """Settings of the terminal client itself.

    Environment variables (with SPOTIFY_CLI_ prefix) or YAML keys of the same name.

    Attributes:
        config_dir: Directory holding the encrypted credential, its key and the log file.
        log_level: Level name for the client's logger.
        log_file: Log file used by the interactive mode (defaults to config_dir/spotify-cli.log).
        encryption_key: Fernet key for the credential file; generated and stored when unset.
        home_poll_interval: Seconds between refreshes of the home screen.
        now_playing_poll_interval: Seconds between refreshes of the now-playing screen.
        message_ttl: Seconds a transient status message stays visible.
        error_ttl: Seconds a transient command error stays visible.
        login_timeout: Seconds to wait for the OAuth callback.
        requests_timeout: Timeout in seconds for Spotify Web API requests.
        search_limit: Number of tracks requested by the search screen.
        spotify: Spotify API credentials and OAuth settings.
    """

    model_config = SettingsConfigDict(env_prefix="SPOTIFY_CLI_")

    config_dir: pathlib.Path = DEFAULT_CONFIG_DIR
    log_level: str = "INFO"
    log_file: pathlib.Path | None = None
    encryption_key: str | None = None
    home_poll_interval: float = Field(default=5.0, gt=0)
    now_playing_poll_interval: float = Field(default=1.0, gt=0)
    message_ttl: float = Field(default=2.0, ge=0)
    error_ttl: float = Field(default=4.0, ge=0)
    login_timeout: float = Field(default=300.0, gt=0)
    requests_timeout: float = Field(default=10.0, gt=0)
    search_limit: int = Field(default=15, ge=1, le=50)

    # AIDEV-NOTE: Using default_factory to delay instantiation until AppConfig is created,
    # avoiding import-time validation errors when env vars are not yet set.
    spotify: SpotifySettings = Field(default_factory=lambda: SpotifySettings())

    @property
    def credentials_path(self) -> pathlib.Path:
        """Location of the encrypted credential record."""
        return self.config_dir / "credentials.enc"

    @property
    def key_path(self) -> pathlib.Path:
        """Location of the generated Fernet key."""
        return self.config_dir / "credentials.key"

    @property
    def resolved_log_file(self) -> pathlib.Path:
        """Log file of the interactive mode."""
        return self.log_file or self.config_dir / "spotify-cli.log"


def load_config(config_path: pathlib.Path | None = None) -> AppConfig:
    """Load the client configuration.

    Values from the YAML file take precedence over environment variables.

    Args:
        config_path: Optional path to a YAML configuration file.

    Returns:
        The validated configuration.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
        pydantic.ValidationError: If the merged configuration is invalid.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("r") as file:
            data = yaml.safe_load(file) or {}

    spotify_data = data.pop("spotify", None)
    if spotify_data is not None:
        data["spotify"] = SpotifySettings(**spotify_data)
    return AppConfig(**data)
