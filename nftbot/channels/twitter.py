"""X/Twitter channel using the v2 API with OAuth 1.0a user context."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from authlib.integrations.httpx_client import AsyncOAuth1Client
from loguru import logger

from nftbot.channels.base import BaseChannel
from nftbot.exceptions import PostingError

T = TypeVar("T")


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
) -> T:
    """
    Call ``fn`` until it succeeds, doubling the delay after each failure.

    Raises:
        Exception: Whatever the last attempt raised.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if attempt >= max_attempts:
                raise
            delay = initial_delay * (2 ** (attempt - 1))
            logger.info(f"Attempt {attempt} failed ({e}), retrying in {delay:.1f}s...")
            await asyncio.sleep(delay)
    raise RuntimeError("max_attempts must be at least 1")


class TwitterChannel(BaseChannel):
    """
    Posts tweets and reply threads.

    Requests are signed with authlib's OAuth1 httpx client; a plain
    ``httpx.AsyncClient`` can be injected instead.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        access_token: str,
        access_secret: str,
        api_base: str = "https://api.twitter.com/2",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.access_token = access_token
        self.access_secret = access_secret
        self.api_base = api_base.rstrip("/")
        self._client = client

    @property
    def name(self) -> str:
        return "twitter"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = AsyncOAuth1Client(
                client_id=self.api_key,
                client_secret=self.api_secret,
                token=self.access_token,
                token_secret=self.access_secret,
                timeout=30.0,
            )
        return self._client

    async def start(self) -> None:
        self._get_client()
        logger.debug("Twitter channel started")

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._get_client().request(method, f"{self.api_base}{path}", **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise PostingError(f"Twitter API {e.response.status_code}: {e.response.text}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise PostingError(f"Twitter request failed: {e}") from e

    async def post(self, text: str, reply_to: str | None = None) -> str:
        """
        Publish a tweet.

        Raises:
            PostingError: The API rejected the tweet or could not be reached.
        """
        payload: dict[str, Any] = {"text": text}
        if reply_to:
            payload["reply"] = {"in_reply_to_tweet_id": reply_to}

        data = await self._request("POST", "/tweets", json=payload)
        tweet_id = (data.get("data") or {}).get("id")
        if not tweet_id:
            raise PostingError(f"Twitter API returned no tweet id: {data}")
        return str(tweet_id)

    async def me(self) -> dict[str, Any]:
        """Authenticated account (``id``, ``name``, ``username``)."""
        data = await self._request("GET", "/users/me")
        return data.get("data") or {}

    async def post_thread(
        self,
        tweets: list[str],
        delay: tuple[float, float] = (2.0, 3.0),
        max_attempts: int = 3,
        initial_delay: float = 1.0,
    ) -> bool:
        """
        Post tweets as a reply chain, pausing between them.

        Each tweet is retried with backoff. Returns False at the first
        tweet that still fails; earlier tweets stay posted.
        """
        last_id: str | None = None
        for i, text in enumerate(tweets):
            if not text:
                continue
            try:
                last_id = await retry_with_backoff(
                    lambda: self.post(text, reply_to=last_id),
                    max_attempts=max_attempts,
                    initial_delay=initial_delay,
                )
            except Exception as e:
                logger.error(f"Failed to post tweet {i + 1}/{len(tweets)}: {e}")
                return False

            logger.info(f"Posted tweet {i + 1}/{len(tweets)}: {last_id}")
            if i < len(tweets) - 1:
                await asyncio.sleep(random.uniform(*delay))

        return True
