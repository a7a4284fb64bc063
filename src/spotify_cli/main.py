"""Main entry point for the Spotify terminal client.

This module provides the typer CLI: one-shot playback commands, login and
logout, and the interactive mode started when no command is given.
"""

import asyncio
import pathlib
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Annotated, Any, TypeVar

import pydantic
import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from spotify_cli import app_logger, config, tui, views
from spotify_cli.auth import AuthService
from spotify_cli.controllers import ScreenDependencies
from spotify_cli.credential_store import CredentialStore
from spotify_cli.exceptions import REMOTE_ERRORS, AuthError, ValidationError, validate_volume
from spotify_cli.formatting import format_duration, format_progress, join_artists
from spotify_cli.models import Track
from spotify_cli.spotify_service import SpotifyService, create_spotify_client

T = TypeVar("T")

app = typer.Typer(help="🎵 A beautiful CLI for Spotify", add_completion=False)
console = Console()


@dataclass
class CliDependencies:
    """Services shared by the commands of one invocation.

    Attributes:
        config: Loaded client configuration.
        auth: Login, logout and token refresh.
        service: Gateway to the Spotify Web API.
    """

    config: config.AppConfig
    auth: AuthService
    service: SpotifyService

    def screen_dependencies(self) -> ScreenDependencies:
        return ScreenDependencies(
            service=self.service,
            logger=app_logger.get_logger("controllers"),
            home_poll_interval=self.config.home_poll_interval,
            now_playing_poll_interval=self.config.now_playing_poll_interval,
            message_ttl=self.config.message_ttl,
            error_ttl=self.config.error_ttl,
            search_limit=self.config.search_limit,
        )


def build_dependencies(config_obj: config.AppConfig) -> CliDependencies:
    """Wire the credential store, auth service and gateway from configuration."""
    store = CredentialStore(
        config_obj.credentials_path,
        config_obj.key_path,
        encryption_key=config_obj.encryption_key,
        logger=app_logger.get_logger("credential_store"),
    )
    auth = AuthService(
        config_obj.spotify,
        store,
        logger=app_logger.get_logger("auth"),
        requests_timeout=config_obj.requests_timeout,
    )
    # AIDEV-NOTE: AuthService is the spotipy auth manager, so every request picks up refreshed tokens
    sp = create_spotify_client(auth, requests_timeout=config_obj.requests_timeout)
    service = SpotifyService(sp, logger=app_logger.get_logger("spotify_service"))
    return CliDependencies(config=config_obj, auth=auth, service=service)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        pathlib.Path | None,
        typer.Option("--config", envvar="SPOTIFY_CLI_CONFIG_PATH", help="YAML configuration file."),
    ] = None,
) -> None:
    """🎵 A beautiful CLI for Spotify. Without a command, starts the interactive mode."""
    try:
        config_obj = config.load_config(config_path)
    except (OSError, yaml.YAMLError, pydantic.ValidationError) as e:
        console.print(f"[red]✗ Invalid configuration:[/] {escape(str(e))}")
        raise typer.Exit(2) from e

    interactive = ctx.invoked_subcommand is None
    # AIDEV-NOTE: The TUI owns the terminal, so interactive runs log to a file only
    logger = app_logger.setup_logging(config_obj.log_level, config_obj.resolved_log_file if interactive else None)
    logger.debug("Loaded configuration from %s", config_path or "environment")

    deps = build_dependencies(config_obj)
    ctx.obj = deps
    if interactive:
        run_interactive(deps)


def run_interactive(deps: CliDependencies) -> None:
    """Start the full-screen client, or explain how to log in."""
    if not deps.auth.is_authenticated():
        console.print(
            Panel(
                "[bold]Welcome to Spotify CLI![/]\n\nYou need to authenticate first.\nRun: [cyan]spotify login[/]",
                title="🎵 Spotify CLI",
                border_style="green",
                padding=(1, 2),
                expand=False,
            )
        )
        return
    tui.SpotifyApp(deps.screen_dependencies()).run()


def _require_auth(deps: CliDependencies) -> None:
    if not deps.auth.is_authenticated():
        console.print("[yellow]Please login first: spotify login[/]")
        raise typer.Exit(1)


def _run_command(coro: Coroutine[Any, Any, T], failure: str) -> T:
    try:
        return asyncio.run(coro)
    except REMOTE_ERRORS as e:
        console.print(f"[red]✗ {failure}:[/] {escape(str(e))}")
        raise typer.Exit(1) from e


def _describe(track: Track) -> str:
    return f"[bold]{escape(track.name)}[/] by {escape(join_artists(track.artists))}"


@app.command()
def login(ctx: typer.Context) -> None:
    """Authenticate with Spotify."""
    deps: CliDependencies = ctx.obj
    console.print(views.render_header())
    console.print("[dim]Opening browser for authentication...[/]")

    def show_url(url: str) -> None:
        console.print(f"[dim]If the browser does not open, visit:[/]\n{escape(url)}", soft_wrap=True)

    try:
        deps.auth.login(timeout=deps.config.login_timeout, on_authorize_url=show_url)
    except AuthError as e:
        console.print(f"[red]✗ Authentication failed:[/] {escape(str(e))}")
        raise typer.Exit(1) from e
    console.print("[green]✓ Successfully authenticated with Spotify![/]")
    console.print("[dim]Run[/] [cyan]spotify[/] [dim]to start the CLI.[/]")


@app.command()
def logout(ctx: typer.Context) -> None:
    """Log out and remove stored credentials."""
    deps: CliDependencies = ctx.obj
    deps.auth.logout()
    console.print("[green]✓ Logged out successfully[/]")


@app.command()
def play(
    ctx: typer.Context,
    query: Annotated[str | None, typer.Argument(help="Search for a track and play it.")] = None,
) -> None:
    """Resume playback or play a track."""
    deps: CliDependencies = ctx.obj
    _require_auth(deps)
    if not query or not query.strip():
        _run_command(deps.service.play(), "Failed to resume playback")
        console.print("[green]▶ Playback resumed[/]")
        return

    results = _run_command(deps.service.search(query.strip(), ("track",), limit=1), "Search failed")
    if results is None:
        console.print("[red]✗ Search failed[/]")
        raise typer.Exit(1)
    if not results.tracks:
        console.print("[yellow]No tracks found[/]")
        return
    track = results.tracks[0]
    _run_command(deps.service.play(track.uri), "Failed to play track")
    console.print(f"[green]▶ Now playing:[/] {_describe(track)}")


@app.command()
def pause(ctx: typer.Context) -> None:
    """Pause playback."""
    deps: CliDependencies = ctx.obj
    _require_auth(deps)
    _run_command(deps.service.pause(), "Failed to pause")
    console.print("[yellow]⏸ Playback paused[/]")


@app.command("next")
def next_track(ctx: typer.Context) -> None:
    """Skip to next track."""
    deps: CliDependencies = ctx.obj
    _require_auth(deps)
    _run_command(deps.service.next(), "Failed to skip")
    console.print("[green]⏭ Skipped to next track[/]")


@app.command("prev")
def previous_track(ctx: typer.Context) -> None:
    """Go to previous track."""
    deps: CliDependencies = ctx.obj
    _require_auth(deps)
    _run_command(deps.service.previous(), "Failed to go back")
    console.print("[green]⏮ Went to previous track[/]")


@app.command()
def volume(
    ctx: typer.Context,
    level: Annotated[int, typer.Argument(help="Volume level (0-100).")],
) -> None:
    """Set volume (0-100)."""
    try:
        validate_volume(level)
    except ValidationError as e:
        console.print(f"[red]✗ {e}[/]")
        raise typer.Exit(1) from e

    deps: CliDependencies = ctx.obj
    _require_auth(deps)
    _run_command(deps.service.set_volume(level), "Failed to set volume")
    console.print(f"[green]🔊 Volume set to {level}%[/]")


@app.command()
def now(ctx: typer.Context) -> None:
    """Show currently playing track."""
    deps: CliDependencies = ctx.obj
    _require_auth(deps)
    track = _run_command(deps.service.get_currently_playing(), "Failed to get current track")
    if track is None:
        console.print("[dim]Nothing is currently playing[/]")
        return

    progress = track.progress_ms or 0
    glyph = "[green]▶[/]" if track.is_playing else "[yellow]⏸[/]"
    body = "\n".join(
        [
            f"{glyph} [bold]{escape(track.name)}[/]",
            f"[dim]by[/] [cyan]{escape(join_artists(track.artists))}[/]",
            f"[dim]on[/] [magenta]{escape(track.album)}[/]",
            "",
            f"{format_duration(progress)} [green]{format_progress(progress, track.duration_ms)}[/] "
            f"{format_duration(track.duration_ms)}",
        ]
    )
    console.print(Panel(body, border_style="green", padding=(1, 2), expand=False))


if __name__ == "__main__":
    app()
