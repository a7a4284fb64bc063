"""Screen layouts.

Each render function turns a controller's state into rich console markup.
Layouts never call the gateway; every remote string is escaped before it is
embedded in markup.
"""

from collections.abc import Callable

from rich.markup import escape

from spotify_cli.controllers import (
    DevicesController,
    HomeController,
    NowPlayingController,
    PlaylistsController,
    PlaylistsMode,
    ScreenController,
    SearchController,
    SearchMode,
    View,
)
from spotify_cli.formatting import format_duration, format_number, format_progress, join_artists, pad_center, truncate
from spotify_cli.models import RepeatMode, Track

HEADER_WIDTH = 53
PROGRESS_WIDTH = 35
MAX_VISIBLE_ROWS = 10

DEVICE_ICONS = {
    "Computer": "💻",
    "Smartphone": "📱",
    "Speaker": "🔊",
    "TV": "📺",
    "Tablet": "📱",
    "CastVideo": "📺",
    "CastAudio": "🔊",
    "Automobile": "🚗",
}
DEFAULT_DEVICE_ICON = "🎵"

KEY_HELP: dict[View, str] = {
    View.HOME: "Use ↑↓ to navigate • ENTER to select • Q to quit",
    View.NOW_PLAYING: "SPACE Play/Pause • N Next • P Previous • +/- Volume • S Shuffle • R Repeat • ←→ Seek • ESC Back",
    View.SEARCH: "Type to search • ENTER to search • ESC to go back",
    View.PLAYLISTS: "↑↓ Navigate • ENTER Open • R Refresh • ESC Back",
    View.DEVICES: "↑↓ Navigate • ENTER Transfer playback • R Refresh • ESC Back",
}


def render_header(title: str = "SPOTIFY CLI") -> str:
    """Boxed banner shown above every screen."""
    inner = pad_center(f"♫ {title} • Your music, your terminal", HEADER_WIDTH)
    return "\n".join(
        [
            f"[bold magenta]╭{'─' * HEADER_WIDTH}╮[/]",
            f"[bold magenta]│[/][bold green]{escape(inner)}[/][bold magenta]│[/]",
            f"[bold magenta]╰{'─' * HEADER_WIDTH}╯[/]",
        ]
    )


def _cursor(selected: bool) -> str:
    return "[green]❯ [/]" if selected else "  "


def _window(length: int, selected: int, size: int = MAX_VISIBLE_ROWS) -> range:
    """Rows of a long list to show so that the cursor stays visible."""
    start = min(max(0, selected - size // 2), max(0, length - size))
    return range(start, min(length, start + size))


def _status_lines(controller: ScreenController) -> list[str]:
    lines = []
    if controller.error:
        lines.append(f"[red]✗ {escape(controller.error)}[/]")
    if controller.action_error:
        lines.append(f"[red]✗ {escape(controller.action_error)}[/]")
    if controller.message:
        lines.append(f"[green]{escape(controller.message)}[/]")
    return lines


def _footer(view: View) -> list[str]:
    return ["", f"[dim]{KEY_HELP[view]}[/]"]


def _track_row(track: Track, selected: bool, number: int | None = None) -> str:
    prefix = f"{number:>3}. " if number is not None else ""
    name = escape(truncate(track.name, 40))
    artists = escape(truncate(join_artists(track.artists), 30))
    style = "bold green" if selected else "white"
    return f"{_cursor(selected)}{prefix}[{style}]{name}[/] [dim]• {artists} • {format_duration(track.duration_ms)}[/]"


def render_home(controller: HomeController) -> str:
    name = controller.profile.name if controller.profile else "Spotify User"
    lines = [f"[dim]Welcome back, [/][bold green]{escape(name)}[/][dim]![/]", ""]

    track = controller.track
    if track is not None:
        glyph = "[green]▶[/]" if track.is_playing else "[yellow]⏸[/]"
        artists = escape(truncate(join_artists(track.artists), 30))
        lines.append(f"  {glyph} [bold]{escape(truncate(track.name, 35))}[/]")
        lines.append(f"    [dim]{artists} • {format_duration(track.duration_ms)}[/]")
    elif controller.loading:
        lines.append("  [dim]Loading...[/]")
    else:
        lines.append("  [dim]Nothing playing right now[/]")
        if controller.recently_played:
            lines.append("")
            lines.append("  [bold]Recently played[/]")
            for recent in controller.recently_played:
                recent_artists = escape(truncate(join_artists(recent.artists), 25))
                lines.append(f"    [dim]• {escape(truncate(recent.name, 35))} - {recent_artists}[/]")

    lines.extend(["", "[bold dim]What would you like to do?[/]"])
    for index, item in enumerate(controller.menu):
        selected = index == controller.selected
        label = f"[bold green]{item.label}[/]" if selected else item.label
        lines.append(f"{_cursor(selected)}{label}  [dim]{item.description}[/]")
    lines.extend(_status_lines(controller))
    lines.extend(_footer(View.HOME))
    return "\n".join(lines)


def _repeat_label(mode: RepeatMode) -> str:
    if mode == RepeatMode.TRACK:
        return "[green]🔂 Repeat Track[/]"
    if mode == RepeatMode.CONTEXT:
        return "[green]🔁 Repeat All[/]"
    return "[dim]🔁 Repeat OFF[/]"


def render_now_playing(controller: NowPlayingController) -> str:
    state = controller.state
    if controller.loading and state is None:
        return "\n".join(["[dim]Loading playback state...[/]", *_footer(View.NOW_PLAYING)])

    if state is None or state.track is None:
        lines = [
            "[yellow]⚠ [/]No active playback",
            "[dim]Start playing something on Spotify to control it here.[/]",
            "",
            "[dim]Press [/][cyan]ESC[/][dim] to go back[/]",
        ]
        lines.extend(_status_lines(controller))
        return "\n".join(lines)

    track = state.track
    progress = track.progress_ms or 0
    glyph = "▶" if state.is_playing else "⏸"
    lines = [
        f"[bold green]{glyph}[/] [bold white]{escape(truncate(track.name, 45))}[/]",
        f"[dim]by [/][cyan]{escape(truncate(join_artists(track.artists), 40))}[/]",
        f"[dim]on [/][magenta]{escape(truncate(track.album, 40))}[/]",
        "",
        f"[dim]{format_duration(progress)}[/] [green]{format_progress(progress, track.duration_ms, PROGRESS_WIDTH)}[/]"
        f" [dim]{format_duration(track.duration_ms)}[/]",
        "",
    ]
    shuffle = "[green]⤮ Shuffle ON[/]" if state.shuffle else "[dim]⤮ Shuffle OFF[/]"
    lines.append(f"{shuffle}   {_repeat_label(state.repeat)}   [dim]🔊 {state.volume}%[/]")
    if state.device is not None:
        lines.append(
            f"[dim]Playing on: [/][yellow]{escape(state.device.name)}[/][dim] ({escape(state.device.type)})[/]"
        )
    lines.extend(_status_lines(controller))
    lines.extend(_footer(View.NOW_PLAYING))
    return "\n".join(lines)


def render_search(controller: SearchController) -> str:
    lines = ["[bold green]🔍 Search Spotify[/]", ""]
    if controller.loading:
        lines.append(f"[dim]Searching for \"{escape(controller.submitted_query)}\"...[/]")
    elif controller.mode == SearchMode.INPUT:
        lines.append(f"[cyan]❯[/] {escape(controller.query)}[reverse] [/]")
    elif not controller.results:
        lines.append("[yellow]No results found. Try a different search.[/]")
    else:
        lines.append(
            f"[dim]Results for [/][bold]\"{escape(controller.submitted_query)}\"[/][dim] ({len(controller.results)})[/]"
        )
        lines.append("")
        for index in _window(len(controller.results), controller.selected):
            lines.append(_track_row(controller.results[index], index == controller.selected))
    lines.extend(_status_lines(controller))
    if controller.mode == SearchMode.RESULTS and not controller.loading:
        lines.extend(["", "[dim]↑↓ Navigate • ENTER Add to queue • P Play now • ESC New search[/]"])
    else:
        lines.extend(_footer(View.SEARCH))
    return "\n".join(lines)


def render_playlists(controller: PlaylistsController) -> str:
    playlist = controller.selected_playlist
    if controller.mode == PlaylistsMode.TRACKS and playlist is not None:
        lines = [
            f"[bold green]📋 {escape(playlist.name)}[/]",
            f"[dim]by {escape(playlist.owner)} • {format_number(playlist.track_count)} tracks[/]",
            "",
        ]
        if not controller.tracks:
            lines.append("[dim]This playlist has no tracks.[/]")
        for index in _window(len(controller.tracks), controller.track_selected):
            lines.append(_track_row(controller.tracks[index], index == controller.track_selected, index + 1))
        lines.extend(_status_lines(controller))
        lines.extend(["", "[dim]↑↓ Navigate • ENTER Play from track • P Shuffle play • ESC Back to playlists[/]"])
        return "\n".join(lines)

    lines = [f"[bold green]📋 Your Playlists[/][dim] ({len(controller.playlists)})[/]", ""]
    if controller.loading:
        loading_name = f" {escape(playlist.name)}" if playlist is not None else ""
        lines.append(f"[dim]Loading{loading_name}...[/]")
    elif not controller.playlists and not controller.error:
        lines.append("[dim]No playlists found.[/]")
    else:
        for index in _window(len(controller.playlists), controller.selected):
            item = controller.playlists[index]
            selected = index == controller.selected
            name = escape(truncate(item.name, 40))
            styled = f"[bold green]{name}[/]" if selected else name
            lines.append(f"{_cursor(selected)}{styled} [dim]• {format_number(item.track_count)} tracks[/]")
    lines.extend(_status_lines(controller))
    lines.extend(_footer(View.PLAYLISTS))
    return "\n".join(lines)


def device_icon(device_type: str) -> str:
    return DEVICE_ICONS.get(device_type, DEFAULT_DEVICE_ICON)


def render_devices(controller: DevicesController) -> str:
    lines = [f"[bold green]📡 Available Devices[/][dim] ({len(controller.devices)})[/]", ""]
    if controller.loading and not controller.devices:
        lines.append("[dim]Loading devices...[/]")
    elif not controller.devices and not controller.error:
        lines.extend(
            [
                "[yellow]No devices found.[/]",
                "[dim]Open Spotify on a phone, computer or speaker to make it show up here.[/]",
            ]
        )
    else:
        for index, device in enumerate(controller.devices):
            selected = index == controller.selected
            name = escape(device.name)
            styled = f"[bold green]{name}[/]" if selected else name
            active = " [green](Active)[/]" if device.is_active else ""
            lines.append(
                f"{_cursor(selected)}{device_icon(device.type)} {styled}{active} [dim]• Volume: {device.volume}%[/]"
            )
    lines.extend(_status_lines(controller))
    lines.extend(_footer(View.DEVICES))
    return "\n".join(lines)


RENDERERS: dict[type[ScreenController], Callable[..., str]] = {
    HomeController: render_home,
    NowPlayingController: render_now_playing,
    SearchController: render_search,
    PlaylistsController: render_playlists,
    DevicesController: render_devices,
}


def render_screen(controller: ScreenController) -> str:
    """Render whichever screen the controller belongs to."""
    for controller_type, renderer in RENDERERS.items():
        if isinstance(controller, controller_type):
            return renderer(controller)
    raise TypeError(f"No layout for {type(controller).__name__}")
