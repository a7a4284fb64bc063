"""Tests for the text helpers used by layouts and commands."""

import pytest

from spotify_cli import formatting


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("ms", "expected"),
        [(0, "0:00"), (5000, "0:05"), (65000, "1:05"), (354000, "5:54"), (3600000, "60:00"), (-10, "0:00")],
    )
    def test_format(self, ms: int, expected: str) -> None:
        assert formatting.format_duration(ms) == expected


class TestFormatProgress:
    @pytest.mark.parametrize("progress", [0, 1, 5000, 9999, 10000, 15000, 20000])
    def test_width_is_constant(self, progress: int) -> None:
        bar = formatting.format_progress(progress, 10000, width=30)

        assert len(bar) == 30  # noqa: PLR2004

    def test_start_of_track(self) -> None:
        assert formatting.format_progress(0, 1000, width=5) == "●────"

    def test_halfway(self) -> None:
        assert formatting.format_progress(500, 1000, width=10) == "━━━━━●────"

    def test_finished_and_overflow_are_full(self) -> None:
        assert formatting.format_progress(1000, 1000, width=4) == "━━━━"
        assert formatting.format_progress(3000, 1000, width=4) == "━━━━"

    def test_zero_duration_renders_empty_bar(self) -> None:
        assert formatting.format_progress(500, 0, width=4) == "●───"


class TestTruncate:
    def test_short_text_is_unchanged(self) -> None:
        assert formatting.truncate("Queen", 10) == "Queen"
        assert formatting.truncate("Queen", 5) == "Queen"

    def test_long_text_ends_with_ellipsis(self) -> None:
        result = formatting.truncate("Bohemian Rhapsody", 10)

        assert result == "Bohemian …"
        assert len(result) == 10  # noqa: PLR2004

    @pytest.mark.parametrize("max_length", [1, 3, 8, 20])
    def test_never_longer_than_max(self, max_length: int) -> None:
        result = formatting.truncate("Somebody to Love", max_length)

        assert len(result) <= max_length
        assert result.endswith(formatting.ELLIPSIS) == (len("Somebody to Love") > max_length)


class TestOtherHelpers:
    @pytest.mark.parametrize(("num", "expected"), [(999, "999"), (1234, "1.2K"), (2500000, "2.5M")])
    def test_format_number(self, num: int, expected: str) -> None:
        assert formatting.format_number(num) == expected

    def test_pad_center(self) -> None:
        assert formatting.pad_center("ab", 6) == "  ab  "
        assert formatting.pad_center("abc", 6) == " abc  "
        assert formatting.pad_center("toolong", 3) == "toolong"

    def test_join_artists(self) -> None:
        assert formatting.join_artists(["Queen", "David Bowie"]) == "Queen, David Bowie"
