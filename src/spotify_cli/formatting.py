"""Pure text transforms used by the screen layouts and one-shot commands."""

from collections.abc import Sequence

ELLIPSIS = "…"
BAR_FILLED = "━"
BAR_HEAD = "●"
BAR_EMPTY = "─"


def format_duration(ms: int) -> str:
    """Format milliseconds as M:SS."""
    total_seconds = max(0, int(ms)) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def format_progress(progress: int, duration: int, width: int = 30) -> str:
    """Render a progress bar of exactly width glyphs.

    The fraction is clamped to [0, 1], so clock drift past the end of a track
    never overflows the bar. A zero duration renders an empty bar.
    """
    if width <= 0:
        return ""
    fraction = min(max(progress / duration, 0.0), 1.0) if duration > 0 else 0.0
    filled = int(fraction * width)
    if filled >= width:
        return BAR_FILLED * width
    return BAR_FILLED * filled + BAR_HEAD + BAR_EMPTY * (width - filled - 1)


def truncate(text: str, max_length: int) -> str:
    """Shorten text to at most max_length characters, ending with an ellipsis when cut."""
    if len(text) <= max_length:
        return text
    if max_length <= 0:
        return ""
    return text[: max_length - 1] + ELLIPSIS


def format_number(num: int) -> str:
    """Abbreviate large counts: 1234 -> 1.2K, 2500000 -> 2.5M."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def pad_center(text: str, width: int) -> str:
    """Center text in width columns; extra padding goes to the right."""
    padding = max(0, width - len(text))
    left = padding // 2
    return " " * left + text + " " * (padding - left)


def join_artists(artists: Sequence[str]) -> str:
    return ", ".join(artists)
