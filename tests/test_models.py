"""Tests for building view models from Web API payloads."""

import pytest
from pydantic import ValidationError

from spotify_cli import models


def track_payload(**overrides: object) -> dict:
    payload = {
        "id": "track1",
        "name": "Bohemian Rhapsody",
        "type": "track",
        "uri": "spotify:track:track1",
        "duration_ms": 354000,
        "artists": [{"name": "Queen"}],
        "album": {"name": "A Night at the Opera", "images": [{"url": "https://img/large"}, {"url": "https://img/small"}]},
    }
    payload.update(overrides)
    return payload


class TestTrack:
    def test_from_api(self) -> None:
        track = models.Track.from_api(track_payload(), progress_ms=1000, is_playing=True)

        assert track.name == "Bohemian Rhapsody"
        assert track.artists == ["Queen"]
        assert track.album == "A Night at the Opera"
        assert track.album_art == "https://img/large"
        assert track.progress_ms == 1000  # noqa: PLR2004
        assert track.is_playing is True

    def test_missing_artists_become_unknown(self) -> None:
        track = models.Track.from_api(track_payload(artists=[]))

        assert track.artists == [models.UNKNOWN_ARTIST]

    def test_progress_is_clamped_to_duration(self) -> None:
        track = models.Track.from_api(track_payload(duration_ms=1000), progress_ms=5000)

        assert track.progress_ms == 1000  # noqa: PLR2004

    def test_empty_artist_list_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            models.Track(id="t", name="n", artists=[], album="a", duration_ms=0, uri="u")

    def test_snapshots_are_immutable(self) -> None:
        track = models.Track.from_api(track_payload())

        with pytest.raises(ValidationError):
            track.name = "other"  # type: ignore[misc]


class TestPlaybackState:
    def test_from_api(self) -> None:
        state = models.PlaybackState.from_api(
            {
                "is_playing": True,
                "shuffle_state": True,
                "repeat_state": "context",
                "progress_ms": 2000,
                "device": {"id": "d1", "name": "Kitchen", "type": "Speaker", "is_active": True, "volume_percent": 42},
                "item": track_payload(),
            }
        )

        assert state.is_playing is True
        assert state.shuffle is True
        assert state.repeat == models.RepeatMode.CONTEXT
        assert state.volume == 42  # noqa: PLR2004
        assert state.device is not None and state.device.name == "Kitchen"
        assert state.track is not None and state.track.progress_ms == 2000  # noqa: PLR2004

    def test_episode_is_not_a_track(self) -> None:
        state = models.PlaybackState.from_api({"is_playing": True, "item": {"type": "episode", "name": "Podcast"}})

        assert state.track is None
        assert state.device is None
        assert state.volume == 0

    def test_unknown_repeat_state_falls_back_to_off(self) -> None:
        state = models.PlaybackState.from_api({"repeat_state": "forever"})

        assert state.repeat == models.RepeatMode.OFF


class TestRepeatMode:
    def test_cycle(self) -> None:
        assert models.RepeatMode.OFF.next() == models.RepeatMode.CONTEXT
        assert models.RepeatMode.CONTEXT.next() == models.RepeatMode.TRACK
        assert models.RepeatMode.TRACK.next() == models.RepeatMode.OFF


class TestOtherModels:
    def test_device_defaults(self) -> None:
        device = models.Device.from_api({"id": "d1", "name": "Phone", "volume_percent": None})

        assert device.type == "Unknown"
        assert device.volume == 0
        assert device.is_active is False

    def test_playlist_owner_and_count(self) -> None:
        playlist = models.Playlist.from_api(
            {
                "id": "p1",
                "name": "Road Trip",
                "uri": "spotify:playlist:p1",
                "owner": {"id": "user1", "display_name": None},
                "tracks": {"total": 12},
            }
        )

        assert playlist.owner == "user1"
        assert playlist.track_count == 12  # noqa: PLR2004

    def test_search_results_skip_null_items(self) -> None:
        results = models.SearchResults.from_api(
            {"tracks": {"items": [track_payload()]}, "playlists": {"items": [None, None]}}
        )

        assert len(results.tracks) == 1
        assert results.playlists == []
        assert results.is_empty is False
        assert models.SearchResults().is_empty is True

    def test_user_profile_name_falls_back_to_id(self) -> None:
        profile = models.UserProfile.from_api({"id": "user1", "display_name": ""})

        assert profile.name == "user1"

    def test_credential_expiry(self) -> None:
        credential = models.Credential(access_token="a", refresh_token="r", expires_at=1000)

        assert credential.is_expired(999) is False
        assert credential.is_expired(1000) is True
