"""Video publishing adapters."""

from newsreel_engine.adapters.publisher.base import (
    PublisherAdapter,
    PublishRequest,
    PublishResponse,
)
from newsreel_engine.adapters.publisher.stub import StubPublisherAdapter
from newsreel_engine.adapters.publisher.youtube import (
    YouTubeAuthError,
    YouTubePublisher,
    build_video_resource,
)

__all__ = [
    "PublishRequest",
    "PublishResponse",
    "PublisherAdapter",
    "StubPublisherAdapter",
    "YouTubeAuthError",
    "YouTubePublisher",
    "build_video_resource",
]
