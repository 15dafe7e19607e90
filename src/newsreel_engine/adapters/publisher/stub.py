"""Stub publisher adapter for testing."""

from uuid import uuid4

from newsreel_engine.adapters.publisher.base import (
    PublisherAdapter,
    PublishRequest,
    PublishResponse,
)
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)


class StubPublisherAdapter(PublisherAdapter):
    """Simulates publishing without external calls."""

    def __init__(self) -> None:
        self.requests: list[PublishRequest] = []

    @property
    def platform(self) -> str:
        return "stub"

    async def publish(self, request: PublishRequest) -> PublishResponse:
        self.requests.append(request)
        platform_video_id = f"stub_{uuid4().hex[:12]}"
        url = f"https://videos.example.com/watch/{platform_video_id}"
        logger.info(
            "stub_publish_completed",
            title=request.title,
            privacy=str(request.privacy),
            size=len(request.video_data),
            platform_video_id=platform_video_id,
        )
        return PublishResponse(
            success=True,
            platform=self.platform,
            platform_video_id=platform_video_id,
            url=url,
            metadata={"adapter": "stub", "privacy": str(request.privacy)},
        )
