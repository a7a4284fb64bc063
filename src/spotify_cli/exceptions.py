"""Error taxonomy of the Spotify terminal client."""

import requests
import spotipy
from spotipy.oauth2 import SpotifyOauthError


class SpotifyCliError(Exception):
    """Base class for errors raised by the client itself."""


class AuthError(SpotifyCliError):
    """No usable credential: missing, expired and not refreshable, or login denied."""


class ValidationError(SpotifyCliError):
    """User input rejected before any remote call was made."""


# Failures of a remote call. Read paths absorb these into an absent value,
# write paths let them propagate to the screen that issued the command.
REMOTE_ERRORS: tuple[type[Exception], ...] = (
    spotipy.SpotifyException,
    SpotifyOauthError,
    requests.RequestException,
    AuthError,
)


def validate_volume(level: int) -> int:
    """Check a user-supplied volume level.

    Raises:
        ValidationError: If level is outside 0..100.
    """
    if not 0 <= level <= 100:  # noqa: PLR2004
        raise ValidationError("Volume must be between 0 and 100")
    return level


def validate_query(query: str) -> str:
    """Check a search query and return it stripped.

    Raises:
        ValidationError: If the query is empty or whitespace only.
    """
    stripped = query.strip()
    if not stripped:
        raise ValidationError("Type something to search for")
    return stripped
