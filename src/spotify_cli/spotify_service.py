"""Async gateway to the Spotify Web API.

One method per user intent. Read methods absorb remote failures into None so
screens treat "no data" as a normal case; write methods let failures propagate
to the caller, which reports them to the user.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import spotipy

from spotify_cli import app_logger
from spotify_cli.exceptions import REMOTE_ERRORS
from spotify_cli.models import Device, PlaybackState, Playlist, RepeatMode, SearchResults, Track, UserProfile

SEARCH_TYPES = ("track", "playlist", "album", "artist")


def clamp_volume(percent: int) -> int:
    """Clamp a volume to the range the API accepts."""
    return max(0, min(100, int(percent)))


def create_spotify_client(auth_manager: Any, requests_timeout: float | None = None) -> spotipy.Spotify:
    """Build the single spotipy client shared by every screen."""
    return spotipy.Spotify(auth_manager=auth_manager, requests_timeout=requests_timeout)


class SpotifyService:
    """Typed async façade over spotipy.

    Every call is offloaded with asyncio.to_thread, so awaiting a method is the
    only point where a screen yields to the event loop.

    Attributes:
        sp: Spotify API client.
        logger: Logger for absorbed read failures.
    """

    def __init__(self, sp: spotipy.Spotify, logger: logging.Logger | None = None) -> None:
        self.sp = sp
        self.logger = logger or app_logger.get_logger(__name__)

    async def _read(self, description: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except REMOTE_ERRORS as e:
            self.logger.warning("Failed to %s: %s", description, e)
            return None

    # ── Playback ─────────────────────────────────────────────────────

    async def get_currently_playing(self) -> Track | None:
        """Return the playing track, or None if nothing (or a non-track item) is playing."""
        response = await self._read("get currently playing track", self.sp.current_user_playing_track)
        if not response or not response.get("item") or response["item"].get("type") != "track":
            return None
        return Track.from_api(
            response["item"],
            progress_ms=response.get("progress_ms") or 0,
            is_playing=bool(response.get("is_playing")),
        )

    async def get_playback_state(self) -> PlaybackState | None:
        """Return the full player state.

        Returns:
            The player state; a state without a track when nothing is playing,
            or None if the call failed.
        """
        try:
            response = await asyncio.to_thread(self.sp.current_playback)
        except REMOTE_ERRORS as e:
            self.logger.warning("Failed to get playback state: %s", e)
            return None
        # AIDEV-NOTE: spotipy answers 204 No Content with None
        if not response:
            return PlaybackState()
        return PlaybackState.from_api(response)

    async def get_queue(self) -> tuple[Track | None, list[Track]] | None:
        """Return the playing track and the upcoming tracks, skipping episodes.

        Returns:
            (current, upcoming), or None if the call failed.
        """
        response = await self._read("get queue", self.sp.queue)
        if response is None:
            return None
        current = response.get("currently_playing")
        upcoming = [
            Track.from_api(item) for item in response.get("queue") or [] if item and item.get("type") == "track"
        ]
        return (
            Track.from_api(current) if current and current.get("type") == "track" else None,
            upcoming,
        )

    async def play(self, uri: str | None = None) -> None:
        """Resume playback, or play a single track when uri is given."""
        if uri:
            await asyncio.to_thread(self.sp.start_playback, uris=[uri])
        else:
            await asyncio.to_thread(self.sp.start_playback)

    async def play_context(self, context_uri: str, offset: int | None = None) -> None:
        """Play an album or playlist, optionally starting at a track position."""
        await asyncio.to_thread(
            self.sp.start_playback,
            context_uri=context_uri,
            offset={"position": offset} if offset is not None else None,
        )

    async def pause(self) -> None:
        await asyncio.to_thread(self.sp.pause_playback)

    async def toggle_play_pause(self) -> bool:
        """Pause when playing, resume otherwise.

        Returns:
            Whether playback is running afterwards.
        """
        state = await self.get_playback_state()
        if state is not None and state.is_playing:
            await self.pause()
            return False
        await self.play()
        return True

    async def next(self) -> None:
        await asyncio.to_thread(self.sp.next_track)

    async def previous(self) -> None:
        await asyncio.to_thread(self.sp.previous_track)

    async def seek(self, position_ms: int) -> None:
        """Seek within the current track. Callers keep position_ms non-negative."""
        await asyncio.to_thread(self.sp.seek_track, position_ms=position_ms)

    async def set_volume(self, percent: int) -> None:
        """Set the active device's volume, clamped to [0, 100]."""
        await asyncio.to_thread(self.sp.volume, volume_percent=clamp_volume(percent))

    async def set_shuffle(self, state: bool) -> None:
        await asyncio.to_thread(self.sp.shuffle, state=state)

    async def set_repeat(self, mode: RepeatMode) -> None:
        await asyncio.to_thread(self.sp.repeat, state=RepeatMode(mode).value)

    async def add_to_queue(self, uri: str) -> None:
        await asyncio.to_thread(self.sp.add_to_queue, uri=uri)

    # ── Devices ──────────────────────────────────────────────────────

    async def get_devices(self) -> list[Device] | None:
        """Return the user's Connect devices, or None if the call failed."""
        response = await self._read("list devices", self.sp.devices)
        if response is None:
            return None
        return [Device.from_api(device) for device in response.get("devices") or []]

    async def transfer_playback(self, device_id: str, play: bool = True) -> None:
        await asyncio.to_thread(self.sp.transfer_playback, device_id=device_id, force_play=play)

    # ── Playlists ────────────────────────────────────────────────────

    async def get_my_playlists(self, limit: int = 50) -> list[Playlist] | None:
        """Return the user's playlists in API order, or None if the call failed."""
        response = await self._read("list playlists", self.sp.current_user_playlists, limit=limit)
        if response is None:
            return None
        return [Playlist.from_api(item) for item in response.get("items") or [] if item]

    async def get_playlist_tracks(self, playlist_id: str, limit: int = 100) -> list[Track] | None:
        """Return the tracks of a playlist, skipping episodes and removed entries."""
        response = await self._read(
            "list playlist tracks",
            self.sp.playlist_items,
            playlist_id,
            limit=limit,
            additional_types=("track",),
        )
        if response is None:
            return None
        tracks = []
        for entry in response.get("items") or []:
            item = (entry or {}).get("track") or (entry or {}).get("item")
            if item and item.get("type") == "track":
                tracks.append(Track.from_api(item))
        return tracks

    # ── Search ───────────────────────────────────────────────────────

    async def search(self, query: str, types: Iterable[str] = ("track",), limit: int = 10) -> SearchResults | None:
        """Search the catalogue.

        Args:
            query: Free-text query.
            types: Requested categories out of track, playlist, album and artist.
            limit: Maximum hits per category.

        Returns:
            Hits per category (empty for categories not requested), or None if the call failed.
        """
        requested = [kind for kind in types if kind in SEARCH_TYPES]
        if not requested:
            return SearchResults()
        response = await self._read("search", self.sp.search, q=query, limit=limit, type=",".join(requested))
        if response is None:
            return None
        return SearchResults.from_api(response)

    # ── User ─────────────────────────────────────────────────────────

    async def get_recently_played(self, limit: int = 20) -> list[Track] | None:
        response = await self._read("get recently played", self.sp.current_user_recently_played, limit=limit)
        if response is None:
            return None
        return [Track.from_api(entry["track"]) for entry in response.get("items") or [] if entry.get("track")]

    async def get_me(self) -> UserProfile | None:
        response = await self._read("get profile", self.sp.current_user)
        if response is None:
            return None
        return UserProfile.from_api(response)
