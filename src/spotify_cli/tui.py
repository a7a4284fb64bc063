"""textual shell hosting the screen router."""

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.css.query import NoMatches
from textual.widgets import Static

from spotify_cli import views
from spotify_cli.controllers import Router, ScreenDependencies


class SpotifyApp(App[None]):
    """Spotify CLI: control Spotify from your terminal."""

    CSS = """
    Screen {
        background: $surface;
    }

    #header {
        height: auto;
        padding: 1 2 0 2;
    }

    #body {
        height: 1fr;
        padding: 1 2;
    }
    """

    TITLE = "♫ Spotify CLI"
    SUB_TITLE = "Your music, your terminal"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True, show=False),
    ]

    def __init__(self, deps: ScreenDependencies) -> None:
        super().__init__()
        self.router = Router(deps, on_change=self.refresh_body, on_exit=self.exit)

    def compose(self) -> ComposeResult:
        yield Static(views.render_header(), id="header")
        with VerticalScroll():
            yield Static("", id="body")

    def on_mount(self) -> None:
        self.router.start()

    def on_unmount(self) -> None:
        if self.router.controller is not None and not self.router.exited:
            self.router.controller.unmount()

    def refresh_body(self) -> None:
        controller = self.router.controller
        if controller is None:
            return
        try:
            body = self.query_one("#body", Static)
        except NoMatches:
            return
        body.update(views.render_screen(controller))

    def on_key(self, event: events.Key) -> None:
        # AIDEV-NOTE: One worker per key press; commands must not block further input
        self.run_worker(self.router.dispatch_key(event.key, event.character), group="keys")
