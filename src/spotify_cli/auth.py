"""Spotify OAuth authorization-code flow for the terminal client.

This module provides login through a single-use local callback listener,
silent token refresh, logout, and the auth-manager protocol spotipy uses to
obtain bearer tokens.
"""

import functools
import logging
import secrets
import threading
import time
import webbrowser
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

import jinja2
import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from spotify_cli import app_logger
from spotify_cli.config import SpotifySettings
from spotify_cli.credential_store import CredentialStore
from spotify_cli.exceptions import AuthError
from spotify_cli.models import Credential


def create_template_env() -> jinja2.Environment:
    """Jinja2 environment for the packaged callback pages."""
    return jinja2.Environment(
        loader=jinja2.PackageLoader("spotify_cli", "templates"),
        autoescape=True,
    )


class _CallbackServer(HTTPServer):
    """HTTP listener that accepts exactly one OAuth redirect."""

    def __init__(
        self,
        address: tuple[str, int],
        callback_path: str,
        on_callback: Callable[[dict[str, str]], Credential],
        render_page: Callable[[Exception | None], str],
        logger: logging.Logger,
    ) -> None:
        super().__init__(address, _CallbackHandler)
        self.callback_path = callback_path
        self.on_callback = on_callback
        self.render_page = render_page
        self.logger = logger
        self.credential: Credential | None = None
        self.error: AuthError | None = None
        self.done = threading.Event()
        self.timeout = 0.5

    def serve_until_done(self) -> None:
        while not self.done.is_set():
            self.handle_request()


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path:
            self.send_error(404)
            return

        params = {key: values[0] for key, values in parse_qs(parsed.query).items()}
        status = 200
        try:
            self.server.credential = self.server.on_callback(params)
            page = self.server.render_page(None)
        except AuthError as e:
            self.server.error = e
            status = 400
            page = self.server.render_page(e)

        body = page.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)
        self.server.done.set()

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        self.server.logger.debug("Callback listener: " + format, *args)


class AuthService:
    """Owns the stored credential and every OAuth exchange.

    Also acts as the spotipy auth manager: spotipy.Spotify calls
    get_access_token() before every request.

    Attributes:
        settings: Spotify client credentials and redirect URI.
        store: Persistent credential storage.
        oauth: spotipy helper for authorize URL, code exchange and refresh.
    """

    def __init__(
        self,
        settings: SpotifySettings,
        store: CredentialStore,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
        open_browser: Callable[[str], bool] = webbrowser.open,
        template_env: jinja2.Environment | None = None,
        requests_timeout: float | None = None,
    ) -> None:
        """Initialize the auth service.

        Args:
            settings: Spotify client credentials and redirect URI.
            store: Persistent credential storage.
            logger: Logger for auth events.
            clock: Wall clock in epoch seconds.
            open_browser: Opens the authorization URL; returns whether it succeeded.
            template_env: Jinja2 environment holding the callback pages.
            requests_timeout: Timeout for the token endpoint.
        """
        self.settings = settings
        self.store = store
        self.logger = logger or app_logger.get_logger(__name__)
        self._clock = clock
        self._open_browser = open_browser
        self.template_env = template_env or create_template_env()
        # AIDEV-NOTE: Memory cache keeps spotipy from writing its own .cache token file
        self.oauth = SpotifyOAuth(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            scope=settings.scope,
            cache_handler=MemoryCacheHandler(),
            open_browser=False,
            requests_timeout=requests_timeout,
        )
        self._credential: Credential | None = None
        self._lock = threading.RLock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _current(self) -> Credential | None:
        if self._credential is None:
            self._credential = self.store.load()
        return self._credential

    def _store_token_info(self, token_info: dict[str, Any], previous_refresh_token: str | None = None) -> Credential:
        refresh_token = token_info.get("refresh_token") or previous_refresh_token
        if not refresh_token:
            raise AuthError("Token response did not include a refresh token")
        credential = Credential(
            access_token=token_info["access_token"],
            refresh_token=refresh_token,
            expires_at=self._now_ms() + int(token_info["expires_in"]) * 1000,
        )
        self.store.save(credential)
        self._credential = credential
        return credential

    def is_authenticated(self) -> bool:
        """Check for a usable credential, refreshing an expired one once.

        Returns:
            True if a valid credential exists or the refresh succeeded. Never raises.
        """
        credential = self._current()
        if credential is None:
            return False
        if not credential.is_expired(self._now_ms()):
            return True
        try:
            self.refresh()
        except AuthError as e:
            self.logger.info("Stored credential expired and could not be refreshed: %s", e)
            return False
        return True

    def refresh(self) -> Credential:
        """Exchange the stored refresh token for a new access token.

        Returns:
            The new credential, already persisted.

        Raises:
            AuthError: If no refresh token is stored or the token endpoint refuses.
        """
        with self._lock:
            credential = self._current()
            if credential is None or not credential.refresh_token:
                raise AuthError("No refresh token available")
            try:
                token_info = self.oauth.refresh_access_token(credential.refresh_token)
            except (SpotifyOauthError, requests.RequestException) as e:
                raise AuthError(f"Token refresh failed: {e}") from e
            self.logger.debug("Access token refreshed")
            return self._store_token_info(token_info, previous_refresh_token=credential.refresh_token)

    def get_access_token(self, as_dict: bool = False) -> Any:
        """Return a valid access token for spotipy, refreshing it when expired.

        Args:
            as_dict: Return a spotipy-style token dict instead of the bare token.

        Raises:
            AuthError: If not logged in or the refresh fails.
        """
        with self._lock:
            credential = self._current()
            if credential is None:
                raise AuthError("Not logged in")
            if credential.is_expired(self._now_ms()):
                credential = self.refresh()
        if as_dict:
            return {
                "access_token": credential.access_token,
                "refresh_token": credential.refresh_token,
                "expires_at": credential.expires_at // 1000,
                "token_type": "Bearer",
            }
        return credential.access_token

    def _complete_login(self, expected_state: str, params: dict[str, str]) -> Credential:
        if "error" in params:
            raise AuthError(f"Authorization denied: {params['error']}")
        if params.get("state") != expected_state:
            raise AuthError("Authorization state mismatch")
        code = params.get("code")
        if not code:
            raise AuthError("No authorization code received")
        try:
            token_info = self.oauth.get_access_token(code, as_dict=True, check_cache=False)
        except (SpotifyOauthError, requests.RequestException) as e:
            raise AuthError(f"Token exchange failed: {e}") from e
        if not token_info:
            raise AuthError("Token exchange returned no token")
        with self._lock:
            return self._store_token_info(token_info)

    def _render_callback_page(self, error: Exception | None) -> str:
        template = self.template_env.get_template("callback.html.j2")
        return template.render(success=error is None, error=str(error) if error else "")

    def login(self, timeout: float = 300.0, on_authorize_url: Callable[[str], None] | None = None) -> Credential:
        """Run the authorization-code flow.

        Starts the local callback listener, opens the authorization URL in the
        browser and waits for the redirect. The listener is closed on every path.

        Args:
            timeout: Seconds to wait for the callback.
            on_authorize_url: Receives the authorization URL, e.g. to print it.

        Returns:
            The stored credential.

        Raises:
            AuthError: If the user denies access, the exchange fails, or the wait times out.
        """
        state = secrets.token_urlsafe(16)
        try:
            server = _CallbackServer(
                (self.settings.callback_host, self.settings.callback_port),
                self.settings.callback_path,
                functools.partial(self._complete_login, state),
                self._render_callback_page,
                self.logger,
            )
        except OSError as e:
            raise AuthError(f"Could not start callback listener on port {self.settings.callback_port}: {e}") from e

        thread = threading.Thread(target=server.serve_until_done, name="oauth-callback", daemon=True)
        try:
            thread.start()
            authorize_url = self.oauth.get_authorize_url(state=state)
            self.logger.info("Callback listener started on port %d", self.settings.callback_port)
            if on_authorize_url is not None:
                on_authorize_url(authorize_url)
            if not self._open_browser(authorize_url):
                self.logger.warning("Could not open a browser for the authorization URL")
            if not server.done.wait(timeout):
                raise AuthError("Timed out waiting for the authorization callback")
        finally:
            server.done.set()
            thread.join()
            server.server_close()
            self.logger.debug("Callback listener closed")

        if server.error is not None:
            raise server.error
        if server.credential is None:
            raise AuthError("Login did not complete")
        self.logger.info("Login successful")
        return server.credential

    def logout(self) -> None:
        """Forget the credential. Safe to call when not logged in."""
        with self._lock:
            self.store.delete()
            self._credential = None
        self.logger.info("Logged out")
