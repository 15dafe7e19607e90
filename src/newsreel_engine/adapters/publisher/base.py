"""Base interface for video publishing adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from newsreel_engine.domain.enums import PublishPrivacy


@dataclass
class PublishRequest:
    """A rendered video and the metadata it is published with."""

    video_data: bytes
    title: str
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    privacy: PublishPrivacy = PublishPrivacy.PRIVATE
    mime_type: str = "video/mp4"


@dataclass
class PublishResponse:
    """Response from publishing a video."""

    success: bool
    platform: str
    platform_video_id: str | None = None
    url: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class PublisherAdapter(ABC):
    """Abstract base class for publishing adapters.

    Implementations:
    - YouTubePublisher: Resumable upload through the YouTube Data API
    - StubPublisherAdapter: Returns a fake platform id for testing
    """

    @property
    @abstractmethod
    def platform(self) -> str:
        """The platform this adapter publishes to."""
        ...

    @abstractmethod
    async def publish(self, request: PublishRequest) -> PublishResponse:
        """Publish a video.

        Args:
            request: Video bytes, metadata and privacy

        Returns:
            PublishResponse with platform video ID and URL or error
        """
        ...

    async def health_check(self) -> bool:
        """Check if the publisher is available and authenticated."""
        return True
