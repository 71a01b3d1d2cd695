"""Tests for utility helpers."""

from datetime import datetime, timedelta, timezone

from nftbot.utils.helpers import as_utc, clean_twitter_handle, format_error, split_into_thread


def test_as_utc():
    naive = datetime(2024, 1, 1, 10, 0)
    assert as_utc(naive) == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

    plus_two = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(plus_two).hour == 10
    assert as_utc(None) is None


def test_clean_twitter_handle():
    assert clean_twitter_handle("https://x.com/SomeArtist") == "@someartist"
    assert clean_twitter_handle("https://twitter.com/someone?s=21") == "@someone"
    assert clean_twitter_handle("@Handle") == "@handle"
    assert clean_twitter_handle("https://x.com/someone/") == "@someone"
    assert clean_twitter_handle("") is None
    assert clean_twitter_handle(None) is None


def test_split_into_thread_short_message():
    assert split_into_thread("gm") == ["gm"]


def test_split_into_thread_numbers_parts():
    message = " ".join(["word"] * 100)

    parts = split_into_thread(message, max_length=100)

    assert len(parts) > 1
    assert parts[0].startswith(f"1/{len(parts)} ")
    assert all(len(p.split(" ", 1)[1]) <= 100 for p in parts)


def test_format_error():
    assert format_error(ValueError("bad")) == "ValueError: bad"
