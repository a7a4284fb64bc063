"""View models for the Spotify terminal client.

This module defines immutable pydantic snapshots built from Spotify Web API
payloads. A fresh set is constructed on every gateway call; nothing is cached.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_ARTIST = "Unknown Artist"


class RepeatMode(StrEnum):
    """Repeat modes understood by the Spotify player."""

    OFF = "off"
    TRACK = "track"
    CONTEXT = "context"

    def next(self) -> "RepeatMode":
        """Return the mode the repeat toggle cycles to: off -> context -> track -> off."""
        cycle = [RepeatMode.OFF, RepeatMode.CONTEXT, RepeatMode.TRACK]
        return cycle[(cycle.index(self) + 1) % len(cycle)]


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


def _artist_names(payload: dict[str, Any]) -> list[str]:
    names = [artist["name"] for artist in payload.get("artists") or [] if artist.get("name")]
    return names or [UNKNOWN_ARTIST]


def _first_image_url(payload: dict[str, Any] | None) -> str | None:
    images = (payload or {}).get("images") or []
    return images[0].get("url") if images else None


class Track(_Snapshot):
    """A single track, optionally with the playback position when it is playing.

    Attributes:
        id: Spotify track ID.
        name: Track title.
        artists: Artist names, never empty.
        album: Album name.
        album_art: URL of the largest album image, if any.
        duration_ms: Track length in milliseconds.
        progress_ms: Playback position in milliseconds, only for the playing track.
        is_playing: Whether this track is currently playing.
        uri: Spotify URI used to start playback.
    """

    id: str
    name: str
    artists: list[str]
    album: str
    album_art: str | None = None
    duration_ms: int = Field(ge=0)
    progress_ms: int | None = Field(default=None, ge=0)
    is_playing: bool = False
    uri: str

    @field_validator("artists")
    @classmethod
    def _artists_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("a track needs at least one artist")
        return value

    @classmethod
    def from_api(
        cls,
        item: dict[str, Any],
        progress_ms: int | None = None,
        is_playing: bool = False,
    ) -> "Track":
        """Build a Track from a Spotify track object.

        Args:
            item: Track object as returned by the Web API.
            progress_ms: Playback position, clamped to [0, duration].
            is_playing: Whether the track is currently playing.

        Returns:
            Track snapshot.
        """
        duration = max(0, int(item.get("duration_ms") or 0))
        if progress_ms is not None:
            progress_ms = min(max(0, int(progress_ms)), duration)
        album = item.get("album") or {}
        return cls(
            id=item.get("id") or "",
            name=item.get("name") or "",
            artists=_artist_names(item),
            album=album.get("name") or "",
            album_art=_first_image_url(album),
            duration_ms=duration,
            progress_ms=progress_ms,
            is_playing=is_playing,
            uri=item.get("uri") or "",
        )


class Device(_Snapshot):
    """A Spotify Connect device."""

    id: str
    name: str
    type: str
    is_active: bool = False
    volume: int = Field(default=0, ge=0, le=100)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Device":
        """Build a Device from a Spotify device object; a missing volume reads as 0."""
        return cls(
            id=payload.get("id") or "",
            name=payload.get("name") or "",
            type=payload.get("type") or "Unknown",
            is_active=bool(payload.get("is_active")),
            volume=payload.get("volume_percent") or 0,
        )


class Playlist(_Snapshot):
    """A playlist owned or followed by the user."""

    id: str
    name: str
    description: str = ""
    track_count: int = Field(default=0, ge=0)
    owner: str
    uri: str
    is_public: bool = False

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Playlist":
        """Build a Playlist from a simplified Spotify playlist object."""
        owner = payload.get("owner") or {}
        tracks = payload.get("tracks") or payload.get("items") or {}
        return cls(
            id=payload.get("id") or "",
            name=payload.get("name") or "",
            description=payload.get("description") or "",
            track_count=tracks.get("total") or 0,
            owner=owner.get("display_name") or owner.get("id") or "",
            uri=payload.get("uri") or "",
            is_public=bool(payload.get("public")),
        )


class Album(_Snapshot):
    """An album search hit."""

    id: str
    name: str
    artists: list[str]
    release_date: str = ""
    total_tracks: int = 0
    uri: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Album":
        """Build an Album from a simplified Spotify album object."""
        return cls(
            id=payload.get("id") or "",
            name=payload.get("name") or "",
            artists=_artist_names(payload),
            release_date=payload.get("release_date") or "",
            total_tracks=payload.get("total_tracks") or 0,
            uri=payload.get("uri") or "",
        )


class Artist(_Snapshot):
    """An artist search hit."""

    id: str
    name: str
    genres: list[str] = []
    followers: int = 0
    uri: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Artist":
        """Build an Artist from a Spotify artist object."""
        return cls(
            id=payload.get("id") or "",
            name=payload.get("name") or "",
            genres=list(payload.get("genres") or []),
            followers=(payload.get("followers") or {}).get("total") or 0,
            uri=payload.get("uri") or "",
        )


class PlaybackState(_Snapshot):
    """Full player state.

    Attributes:
        is_playing: Whether playback is running.
        shuffle: Whether shuffle is enabled.
        repeat: Current repeat mode.
        volume: Volume of the active device, 0 when unknown.
        device: Active device, if the API reported one.
        track: Current track; None when nothing (or a non-track item) is playing.
    """

    is_playing: bool = False
    shuffle: bool = False
    repeat: RepeatMode = RepeatMode.OFF
    volume: int = Field(default=0, ge=0, le=100)
    device: Device | None = None
    track: Track | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "PlaybackState":
        """Build a PlaybackState from the Web API player object."""
        is_playing = bool(payload.get("is_playing"))
        item = payload.get("item")
        track = None
        if item and item.get("type") == "track":
            track = Track.from_api(item, progress_ms=payload.get("progress_ms") or 0, is_playing=is_playing)
        device = Device.from_api(payload["device"]) if payload.get("device") else None
        try:
            repeat = RepeatMode(payload.get("repeat_state") or RepeatMode.OFF)
        except ValueError:
            repeat = RepeatMode.OFF
        return cls(
            is_playing=is_playing,
            shuffle=bool(payload.get("shuffle_state")),
            repeat=repeat,
            volume=device.volume if device else 0,
            device=device,
            track=track,
        )


class SearchResults(_Snapshot):
    """Search hits per category, in the order the API returned them."""

    tracks: list[Track] = []
    playlists: list[Playlist] = []
    albums: list[Album] = []
    artists: list[Artist] = []

    @property
    def is_empty(self) -> bool:
        """Whether no category produced a hit."""
        return not (self.tracks or self.playlists or self.albums or self.artists)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "SearchResults":
        """Build SearchResults from a search response; absent categories stay empty."""

        def items(category: str) -> list[dict[str, Any]]:
            # the API pads playlist hits with nulls
            return [item for item in (payload.get(category) or {}).get("items") or [] if item]

        return cls(
            tracks=[Track.from_api(item) for item in items("tracks")],
            playlists=[Playlist.from_api(item) for item in items("playlists")],
            albums=[Album.from_api(item) for item in items("albums")],
            artists=[Artist.from_api(item) for item in items("artists")],
        )


class UserProfile(_Snapshot):
    """The signed-in user."""

    id: str
    name: str
    email: str = ""
    product: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "UserProfile":
        """Build a UserProfile; the display name falls back to the user ID."""
        return cls(
            id=payload.get("id") or "",
            name=payload.get("display_name") or payload.get("id") or "",
            email=payload.get("email") or "",
            product=payload.get("product") or "",
        )


class Credential(_Snapshot):
    """OAuth token pair persisted by the credential store.

    Attributes:
        access_token: Bearer token for Web API requests.
        refresh_token: Long-lived token used to obtain new access tokens.
        expires_at: Expiry of the access token in epoch milliseconds.
    """

    access_token: str
    refresh_token: str
    expires_at: int

    def is_expired(self, now_ms: int) -> bool:
        """Whether the access token is no longer valid at now_ms."""
        return now_ms >= self.expires_at
