"""Utility functions."""

from nftbot.utils.helpers import clean_twitter_handle, format_error, split_into_thread, utcnow

__all__ = ["clean_twitter_handle", "format_error", "split_into_thread", "utcnow"]
