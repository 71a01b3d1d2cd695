"""Base class for posting channels."""

from abc import ABC, abstractmethod


class BaseChannel(ABC):
    """
    Abstract base class for social posting channels.

    Channels are responsible for:
    - Authenticating against the external platform
    - Publishing posts and reply chains
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """Open the connection to the platform."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Close the connection and clean up resources."""
        pass

    @abstractmethod
    async def post(self, text: str, reply_to: str | None = None) -> str:
        """
        Publish a post.

        Args:
            text: Post content.
            reply_to: Id of the post this one replies to.

        Returns:
            Id of the created post.
        """
        pass
