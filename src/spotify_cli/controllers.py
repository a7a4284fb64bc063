"""Screen controllers and the router of the interactive client.

Each screen owns its local state (loading flag, persistent fetch error,
transient status message and command error, list cursor) and translates key
presses into gateway calls. The router is a star: every screen is entered from
Home and returns to Home, never to another screen.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Final, Literal

from spotify_cli.exceptions import REMOTE_ERRORS, ValidationError, validate_query
from spotify_cli.models import Device, PlaybackState, Playlist, Track, UserProfile
from spotify_cli.spotify_service import SpotifyService, clamp_volume

VOLUME_STEP = 10
SEEK_STEP_MS = 10_000
RECENTLY_PLAYED_LIMIT = 5
PLAYBACK_FETCH_FAILED = "Failed to fetch playback state"

EXIT: Final = "exit"


class View(StrEnum):
    """Screens reachable through the router."""

    HOME = "home"
    NOW_PLAYING = "now-playing"
    SEARCH = "search"
    PLAYLISTS = "playlists"
    DEVICES = "devices"


Transition = View | Literal["exit"]


@dataclass
class ScreenDependencies:
    """Container for everything a screen needs, shared by all screens of a session.

    Attributes:
        service: Gateway to the Spotify Web API.
        logger: Logger for controller events.
        home_poll_interval: Seconds between refreshes of the home screen.
        now_playing_poll_interval: Seconds between refreshes of the now-playing screen.
        message_ttl: Seconds a status message stays visible.
        error_ttl: Seconds a command error stays visible.
        search_limit: Number of tracks requested per search.
    """

    service: SpotifyService
    logger: logging.Logger
    home_poll_interval: float = 5.0
    now_playing_poll_interval: float = 1.0
    message_ttl: float = 2.0
    error_ttl: float = 4.0
    search_limit: int = 15


def move_cursor(index: int, key: str, length: int) -> int:
    """Move a list cursor for an up/down key, staying inside the list."""
    if length <= 0:
        return 0
    if key == "up":
        return max(0, index - 1)
    if key == "down":
        return min(length - 1, index + 1)
    return min(index, length - 1)


class ScreenController:
    """Base class for the per-screen state machines.

    A controller is mounted once by the router and unmounted when the user
    leaves. Every mount bumps a generation counter; fetch results and transient
    timers belonging to an older generation are discarded. At most one fetch is
    in flight: timer polls are skipped while one runs, explicit refreshes are
    coalesced into a single follow-up fetch.
    """

    view: ClassVar[View]
    fetch_on_mount: ClassVar[bool] = True
    back_keys: ClassVar[frozenset[str]] = frozenset({"escape", "q"})

    def __init__(self, deps: ScreenDependencies) -> None:
        self.deps = deps
        self.service = deps.service
        self.logger = deps.logger
        self.loading = self.fetch_on_mount
        self.error: str | None = None
        self.action_error: str | None = None
        self.message: str | None = None
        self.on_change: Callable[[], None] | None = None
        self._generation = 0
        self._mounted = False
        self._in_flight = False
        self._refresh_pending = False
        self._poll_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._transient_tokens: dict[str, int] = {}

    @property
    def poll_interval(self) -> float | None:
        """Seconds between timer polls, or None for on-demand screens."""
        return None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def generation(self) -> int:
        return self._generation

    def mount(self) -> None:
        """Start the screen: fetch its data and start the poll timer."""
        self._generation += 1
        self._mounted = True
        self._in_flight = False
        self._refresh_pending = False
        self.logger.debug("Mounted %s screen (generation %d)", self.view, self._generation)
        if self.fetch_on_mount:
            self.loading = True
            self._spawn(self.refresh())
        interval = self.poll_interval
        if interval:
            self._poll_task = self._spawn(self._poll_loop(self._generation, interval))

    def unmount(self) -> None:
        """Stop the poll timer. In-flight fetches run on, their results are dropped."""
        self._generation += 1
        self._mounted = False
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        self.on_change = None
        self.logger.debug("Unmounted %s screen", self.view)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, generation: int) -> bool:
        return self._mounted and generation == self._generation

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    async def _poll_loop(self, generation: int, interval: float) -> None:
        while self._is_current(generation):
            await asyncio.sleep(interval)
            if self._is_current(generation):
                self._spawn(self.refresh())

    async def fetch(self) -> Any:
        """Load the screen's data from the gateway."""
        raise NotImplementedError

    def apply(self, data: Any) -> None:
        """Store the result of fetch() in the screen state."""
        raise NotImplementedError

    async def refresh(self, coalesce: bool = False) -> None:
        """Fetch and apply the screen's data.

        Args:
            coalesce: When a fetch is already running, schedule one more
                afterwards instead of skipping this request.
        """
        if not self._mounted:
            return
        if self._in_flight:
            if coalesce:
                self._refresh_pending = True
            else:
                self.logger.debug("Skipping %s poll, previous fetch still running", self.view)
            return

        generation = self._generation
        self._in_flight = True
        try:
            while True:
                self._refresh_pending = False
                data = await self.fetch()
                if not self._is_current(generation):
                    self.logger.debug("Discarding stale %s fetch", self.view)
                    return
                self.apply(data)
                self.loading = False
                self._changed()
                if not self._refresh_pending:
                    return
        finally:
            if generation == self._generation:
                self._in_flight = False

    def _show_transient(self, attribute: str, text: str, ttl: float) -> None:
        setattr(self, attribute, text)
        token = self._transient_tokens.get(attribute, 0) + 1
        self._transient_tokens[attribute] = token
        self._spawn(self._clear_transient(attribute, token, ttl, self._generation))
        self._changed()

    async def _clear_transient(self, attribute: str, token: int, ttl: float, generation: int) -> None:
        await asyncio.sleep(ttl)
        if self._is_current(generation) and self._transient_tokens.get(attribute) == token:
            setattr(self, attribute, None)
            self._changed()

    def show_message(self, text: str) -> None:
        """Show a status message that clears itself after message_ttl."""
        self._show_transient("message", text, self.deps.message_ttl)

    def show_action_error(self, text: str) -> None:
        """Show a command error that clears itself after error_ttl."""
        self._show_transient("action_error", text, self.deps.error_ttl)

    async def run_command(
        self,
        command: Awaitable[Any],
        success: str | Callable[[Any], str] | None = None,
        failure: str = "Command failed",
    ) -> bool:
        """Await a gateway command and report its outcome.

        Failures become a transient error; commands are never retried.

        Returns:
            Whether the command succeeded.
        """
        generation = self._generation
        try:
            result = await command
        except REMOTE_ERRORS as e:
            self.logger.warning("%s on %s screen: %s", failure, self.view, e)
            if self._is_current(generation):
                self.message = None
                self.show_action_error(failure)
            return False
        if self._is_current(generation) and success is not None:
            self.show_message(success(result) if callable(success) else success)
        return True

    async def handle_key(self, key: str, character: str | None = None) -> Transition | None:
        """Interpret a key press.

        Args:
            key: Key name as reported by the terminal, e.g. "escape", "up", "n".
            character: Printable character of the key, if any.

        Returns:
            The view to switch to, EXIT, or None to stay on this screen.
        """
        if key in self.back_keys:
            return View.HOME
        return None


@dataclass(frozen=True)
class MenuItem:
    label: str
    description: str
    target: Transition


HOME_MENU: tuple[MenuItem, ...] = (
    MenuItem("▶  Now Playing", "Control current playback", View.NOW_PLAYING),
    MenuItem("🔍 Search", "Find tracks and artists", View.SEARCH),
    MenuItem("📋 Playlists", "Browse your playlists", View.PLAYLISTS),
    MenuItem("📡 Devices", "Switch playback device", View.DEVICES),
    MenuItem("🚪 Exit", "Close Spotify CLI", EXIT),
)


class HomeController(ScreenController):
    """Menu screen with a greeting and a mini now-playing card."""

    view = View.HOME
    back_keys = frozenset()

    def __init__(self, deps: ScreenDependencies) -> None:
        super().__init__(deps)
        self.menu = HOME_MENU
        self.selected = 0
        self.track: Track | None = None
        self.profile: UserProfile | None = None
        self.recently_played: list[Track] = []

    @property
    def poll_interval(self) -> float | None:
        return self.deps.home_poll_interval

    async def fetch(self) -> tuple[PlaybackState | None, UserProfile | None, list[Track] | None]:
        if self.profile is None:
            # profile and history only change between sessions
            state, profile, recent = await asyncio.gather(
                self.service.get_playback_state(),
                self.service.get_me(),
                self.service.get_recently_played(limit=RECENTLY_PLAYED_LIMIT),
            )
            return state, profile, recent
        return await self.service.get_playback_state(), None, None

    def apply(self, data: tuple[PlaybackState | None, UserProfile | None, list[Track] | None]) -> None:
        state, profile, recent = data
        if state is None:
            self.error = PLAYBACK_FETCH_FAILED
        else:
            self.error = None
            self.track = state.track
        if profile is not None:
            self.profile = profile
        if recent is not None:
            self.recently_played = recent

    async def handle_key(self, key: str, character: str | None = None) -> Transition | None:
        if key in ("up", "down"):
            self.selected = move_cursor(self.selected, key, len(self.menu))
            self._changed()
            return None
        if key == "enter":
            return self.menu[self.selected].target
        if key == "q":
            return EXIT
        return None


class NowPlayingController(ScreenController):
    """Full playback state with transport, volume, shuffle, repeat and seek keys."""

    view = View.NOW_PLAYING

    def __init__(self, deps: ScreenDependencies) -> None:
        super().__init__(deps)
        self.state: PlaybackState | None = None

    @property
    def poll_interval(self) -> float | None:
        return self.deps.now_playing_poll_interval

    async def fetch(self) -> PlaybackState | None:
        return await self.service.get_playback_state()

    def apply(self, data: PlaybackState | None) -> None:
        if data is None:
            self.error = PLAYBACK_FETCH_FAILED
            return
        self.error = None
        self.state = data

    def _command_for(self, key: str) -> tuple[Awaitable[Any], str | Callable[[Any], str]] | None:
        state = self.state
        if key == "space":
            return self.service.toggle_play_pause(), lambda playing: "▶ Playing" if playing else "⏸ Paused"
        if key == "n":
            return self.service.next(), "⏭ Next track"
        if key == "p":
            return self.service.previous(), "⏮ Previous track"
        if state is None or state.track is None:
            return None
        if key in ("plus", "equals_sign"):
            volume = clamp_volume(state.volume + VOLUME_STEP)
            return self.service.set_volume(volume), f"🔊 Volume {volume}%"
        if key == "minus":
            volume = clamp_volume(state.volume - VOLUME_STEP)
            return self.service.set_volume(volume), f"🔉 Volume {volume}%"
        if key == "s":
            shuffle = not state.shuffle
            return self.service.set_shuffle(shuffle), f"Shuffle {'on' if shuffle else 'off'}"
        if key == "r":
            mode = state.repeat.next()
            return self.service.set_repeat(mode), f"Repeat {mode}"
        if key in ("right", "left"):
            step = SEEK_STEP_MS if key == "right" else -SEEK_STEP_MS
            position = min(max(0, (state.track.progress_ms or 0) + step), state.track.duration_ms)
            return self.service.seek(position), "Seek forward 10s" if step > 0 else "Seek back 10s"
        return None

    async def handle_key(self, key: str, character: str | None = None) -> Transition | None:
        if key in self.back_keys:
            return View.HOME
        command = self._command_for(key)
        if command is None:
            return None
        awaitable, success = command
        if await self.run_command(awaitable, success):
            await self.refresh(coalesce=True)
        return None


class SearchMode(StrEnum):
    INPUT = "input"
    RESULTS = "results"


class SearchController(ScreenController):
    """Track search with a text-entry mode and a results mode."""

    view = View.SEARCH
    fetch_on_mount = False
    # q is a search character here
    back_keys = frozenset({"escape"})

    def __init__(self, deps: ScreenDependencies) -> None:
        super().__init__(deps)
        self.mode = SearchMode.INPUT
        self.query = ""
        self.submitted_query = ""
        self.results: list[Track] = []
        self.selected = 0

    async def submit(self) -> None:
        """Run the search for the typed query."""
        try:
            query = validate_query(self.query)
        except ValidationError as e:
            self.show_action_error(str(e))
            return

        generation = self._generation
        self.loading = True
        self.error = None
        self.submitted_query = query
        self._changed()
        results = await self.service.search(query, ("track",), self.deps.search_limit)
        if not self._is_current(generation):
            return
        self.loading = False
        if results is None:
            self.error = "Search failed. Please try again."
            self.mode = SearchMode.INPUT
        else:
            self.results = results.tracks
            self.selected = 0
            self.mode = SearchMode.RESULTS
        self._changed()

    async def handle_key(self, key: str, character: str | None = None) -> Transition | None:
        if self.loading:
            return View.HOME if key == "escape" else None

        if self.mode == SearchMode.INPUT:
            if key == "escape":
                return View.HOME
            if key == "enter":
                await self.submit()
            elif key == "backspace":
                self.query = self.query[:-1]
                self._changed()
            elif character and len(character) == 1 and character.isprintable():
                self.query += character
                self._changed()
            return None

        if key == "escape":
            self.mode = SearchMode.INPUT
            self.results = []
            self.selected = 0
            self._changed()
        elif key in ("up", "down"):
            self.selected = move_cursor(self.selected, key, len(self.results))
            self._changed()
        elif key == "enter" and self.results:
            track = self.results[self.selected]
            self.show_message("Adding to queue...")
            await self.run_command(self.service.add_to_queue(track.uri), "✓ Added to queue!", "Failed to add to queue")
        elif key == "p" and self.results:
            track = self.results[self.selected]
            await self.run_command(self.service.play(track.uri), "✓ Now playing!", "Failed to play track")
        return None


class PlaylistsMode(StrEnum):
    LIST = "list"
    TRACKS = "tracks"


class PlaylistsController(ScreenController):
    """The user's playlists, with a local sub-view listing one playlist's tracks."""

    view = View.PLAYLISTS

    def __init__(self, deps: ScreenDependencies) -> None:
        super().__init__(deps)
        self.mode = PlaylistsMode.LIST
        self.playlists: list[Playlist] = []
        self.selected = 0
        self.selected_playlist: Playlist | None = None
        self.tracks: list[Track] = []
        self.track_selected = 0

    async def fetch(self) -> list[Playlist] | None:
        return await self.service.get_my_playlists()

    def apply(self, data: list[Playlist] | None) -> None:
        if data is None:
            self.error = "Failed to load playlists"
            return
        self.error = None
        self.playlists = data
        self.selected = move_cursor(self.selected, "", len(data))

    async def open_selected(self) -> None:
        """Load and show the tracks of the highlighted playlist."""
        if not self.playlists:
            return
        playlist = self.playlists[self.selected]
        generation = self._generation
        self.loading = True
        self.selected_playlist = playlist
        self._changed()
        tracks = await self.service.get_playlist_tracks(playlist.id)
        if not self._is_current(generation):
            return
        self.loading = False
        if tracks is None:
            self.error = "Failed to load tracks"
            self.selected_playlist = None
            self.mode = PlaylistsMode.LIST
        else:
            self.error = None
            self.tracks = tracks
            self.track_selected = 0
            self.mode = PlaylistsMode.TRACKS
        self._changed()

    async def _shuffle_play(self, playlist: Playlist) -> None:
        await self.service.set_shuffle(True)
        await self.service.play_context(playlist.uri)

    async def handle_key(self, key: str, character: str | None = None) -> Transition | None:
        if self.loading:
            return View.HOME if key in self.back_keys else None

        if self.mode == PlaylistsMode.LIST:
            if key in self.back_keys:
                return View.HOME
            if key in ("up", "down"):
                self.selected = move_cursor(self.selected, key, len(self.playlists))
                self._changed()
            elif key == "enter":
                await self.open_selected()
            elif key == "r":
                self.loading = True
                self._changed()
                await self.refresh(coalesce=True)
            return None

        playlist = self.selected_playlist
        if key == "escape":
            self.mode = PlaylistsMode.LIST
            self.selected_playlist = None
            self.tracks = []
            self._changed()
        elif key in ("up", "down"):
            self.track_selected = move_cursor(self.track_selected, key, len(self.tracks))
            self._changed()
        elif key == "enter" and playlist is not None and self.tracks:
            await self.run_command(
                self.service.play_context(playlist.uri, offset=self.track_selected),
                "✓ Now playing!",
                "Failed to play track",
            )
        elif key == "p" and playlist is not None:
            await self.run_command(self._shuffle_play(playlist), "✓ Playing playlist!", "Failed to play playlist")
        return None


class DevicesController(ScreenController):
    """Spotify Connect devices; selecting one transfers playback to it."""

    view = View.DEVICES

    def __init__(self, deps: ScreenDependencies) -> None:
        super().__init__(deps)
        self.devices: list[Device] = []
        self.selected = 0

    async def fetch(self) -> list[Device] | None:
        return await self.service.get_devices()

    def apply(self, data: list[Device] | None) -> None:
        if data is None:
            self.error = "Failed to load devices"
            return
        self.error = None
        self.devices = data
        self.selected = move_cursor(self.selected, "", len(data))

    async def handle_key(self, key: str, character: str | None = None) -> Transition | None:
        if key in self.back_keys:
            return View.HOME
        if key in ("up", "down"):
            self.selected = move_cursor(self.selected, key, len(self.devices))
            self._changed()
        elif key == "r":
            self.loading = True
            self._changed()
            await self.refresh(coalesce=True)
        elif key == "enter" and self.devices and not self.loading:
            device = self.devices[self.selected]
            self.show_message("Transferring playback...")
            transferred = await self.run_command(
                self.service.transfer_playback(device.id),
                "✓ Playback transferred!",
                "Failed to transfer playback",
            )
            if transferred:
                await self.refresh(coalesce=True)
        return None


SCREENS: dict[View, type[ScreenController]] = {
    View.HOME: HomeController,
    View.NOW_PLAYING: NowPlayingController,
    View.SEARCH: SearchController,
    View.PLAYLISTS: PlaylistsController,
    View.DEVICES: DevicesController,
}


class Router:
    """Active-screen state machine.

    Home is the hub: any screen can be entered from Home, and every screen's
    back action returns to Home. A screen never switches to another screen.

    Attributes:
        current_view: The mounted screen.
        controller: Controller of the mounted screen.
        exited: Whether the user chose to leave the client.
    """

    def __init__(
        self,
        deps: ScreenDependencies,
        on_change: Callable[[], None] | None = None,
        on_exit: Callable[[], None] | None = None,
        screens: dict[View, type[ScreenController]] | None = None,
    ) -> None:
        self.deps = deps
        self.logger = deps.logger
        self.on_change = on_change
        self.on_exit = on_exit
        self.screens = screens or SCREENS
        self.current_view = View.HOME
        self.controller: ScreenController | None = None
        self.exited = False

    def start(self) -> None:
        """Mount the initial Home screen."""
        self._mount(View.HOME)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _mount(self, view: View) -> None:
        if self.controller is not None:
            self.controller.unmount()
        controller = self.screens[view](self.deps)
        controller.on_change = self._notify
        self.current_view = view
        self.controller = controller
        controller.mount()
        self.logger.info("Switched to %s screen", view)
        self._notify()

    def navigate(self, view: View) -> bool:
        """Switch screens along the star topology.

        Returns:
            False if the transition was refused (non-Home to non-Home).
        """
        if self.current_view != View.HOME and view != View.HOME:
            self.logger.warning("Refusing transition %s -> %s", self.current_view, view)
            return False
        self._mount(view)
        return True

    def back(self) -> None:
        """Return to Home."""
        self._mount(View.HOME)

    def exit(self) -> None:
        """Unmount the active screen and signal the shell to quit."""
        if self.controller is not None:
            self.controller.unmount()
        self.exited = True
        if self.on_exit is not None:
            self.on_exit()

    async def dispatch_key(self, key: str, character: str | None = None) -> None:
        """Hand a key press to the active screen and apply the resulting transition."""
        controller = self.controller
        if controller is None or self.exited:
            return
        target = await controller.handle_key(key, character)
        # the user may have moved on while the command was running
        if target is None or controller is not self.controller:
            return
        if target == EXIT:
            self.exit()
        elif target == View.HOME:
            self.back()
        else:
            self.navigate(View(target))
