"""Posting channels."""

from nftbot.channels.base import BaseChannel
from nftbot.channels.twitter import TwitterChannel, retry_with_backoff

__all__ = ["BaseChannel", "TwitterChannel", "retry_with_backoff"]
