"""YouTube publisher using the YouTube Data API v3.

Uploads go through the resumable protocol: one POST opens a session with the
video resource, the returned Location receives the bytes in one PUT.
"""

from typing import Any

import httpx

from newsreel_engine.adapters.publisher.base import (
    PublisherAdapter,
    PublishRequest,
    PublishResponse,
)
from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

YOUTUBE_TOKEN_URL = "https://oauth2.googleapis.com/token"
YOUTUBE_UPLOAD_URL = "https://www.googleapis.com/upload/youtube/v3/videos"
YOUTUBE_CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"

NEWS_AND_POLITICS_CATEGORY = "25"
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 5000
MAX_TAGS_TOTAL_LENGTH = 500


class YouTubeAuthError(Exception):
    """The refresh token could not be exchanged for an access token."""


def build_video_resource(
    request: PublishRequest,
    category_id: str = NEWS_AND_POLITICS_CATEGORY,
    language: str | None = None,
) -> dict[str, Any]:
    """Video resource sent when the upload session is opened.

    Generated narration and imagery are always declared as synthetic media.
    """
    tags: list[str] = []
    total = 0
    for tag in request.tags:
        if not tag or total + len(tag) > MAX_TAGS_TOTAL_LENGTH:
            continue
        tags.append(tag)
        total += len(tag)

    snippet: dict[str, Any] = {
        "title": request.title[:MAX_TITLE_LENGTH],
        "description": (request.description or "")[:MAX_DESCRIPTION_LENGTH],
        "tags": tags,
        "categoryId": category_id,
    }
    if language:
        snippet["defaultLanguage"] = language
        snippet["defaultAudioLanguage"] = language

    return {
        "snippet": snippet,
        "status": {
            "privacyStatus": str(request.privacy),
            "selfDeclaredMadeForKids": False,
            "containsSyntheticMedia": True,
        },
    }


def _error_message(response: httpx.Response) -> str:
    try:
        error = response.json().get("error", {})
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    reasons = {e.get("reason") for e in error.get("errors", [])}
    if "quotaExceeded" in reasons:
        return "YouTube API quota exceeded"
    if "uploadLimitExceeded" in reasons:
        return "YouTube upload limit exceeded for this account"
    return f"HTTP {response.status_code}: {error.get('message') or response.text[:200]}"


class YouTubePublisher(PublisherAdapter):
    """Publishes rendered videos to a YouTube channel.

    Args:
        client_id: OAuth client id. Defaults to settings.youtube_client_id
        client_secret: OAuth client secret. Defaults to settings.youtube_client_secret
        refresh_token: Channel refresh token. Defaults to settings.youtube_refresh_token
        transport: httpx transport override
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id or settings.youtube_client_id
        self.client_secret = client_secret or settings.youtube_client_secret
        self.refresh_token = refresh_token or settings.youtube_refresh_token
        self.transport = transport

    @property
    def platform(self) -> str:
        return "youtube"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=settings.publish_timeout_seconds, transport=self.transport
        )

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if not (self.client_id and self.client_secret and self.refresh_token):
            raise YouTubeAuthError("YouTube OAuth credentials are not configured")
        response = await client.post(
            YOUTUBE_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code != 200:
            raise YouTubeAuthError(f"Token refresh failed: {_error_message(response)}")
        token = response.json().get("access_token")
        if not token:
            raise YouTubeAuthError("Token refresh returned no access token")
        return str(token)

    async def publish(self, request: PublishRequest) -> PublishResponse:
        resource = build_video_resource(
            request,
            category_id=settings.youtube_category_id,
            language=settings.youtube_default_language,
        )
        async with self._client() as client:
            try:
                token = await self._access_token(client)
            except YouTubeAuthError as e:
                return PublishResponse(success=False, platform=self.platform, error_message=str(e))

            init = await client.post(
                YOUTUBE_UPLOAD_URL,
                params={"uploadType": "resumable", "part": "snippet,status,contentDetails"},
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json; charset=UTF-8",
                    "X-Upload-Content-Length": str(len(request.video_data)),
                    "X-Upload-Content-Type": request.mime_type,
                },
                json=resource,
            )
            if init.status_code != 200:
                return PublishResponse(
                    success=False,
                    platform=self.platform,
                    error_message=f"Failed to open upload session: {_error_message(init)}",
                )
            session_url = init.headers.get("Location")
            if not session_url:
                return PublishResponse(
                    success=False,
                    platform=self.platform,
                    error_message="No upload URL in response",
                )

            upload = await client.put(
                session_url,
                headers={
                    "Content-Type": request.mime_type,
                    "Content-Length": str(len(request.video_data)),
                },
                content=request.video_data,
            )

        if upload.status_code not in (200, 201):
            return PublishResponse(
                success=False,
                platform=self.platform,
                error_message=f"Upload failed: {_error_message(upload)}",
            )

        data = upload.json()
        video_id = data.get("id")
        if not video_id:
            return PublishResponse(
                success=False,
                platform=self.platform,
                error_message="Upload response carried no video id",
            )
        logger.info(
            "youtube_upload_completed",
            platform_video_id=video_id,
            privacy=data.get("status", {}).get("privacyStatus"),
            size=len(request.video_data),
        )
        return PublishResponse(
            success=True,
            platform=self.platform,
            platform_video_id=video_id,
            url=f"https://www.youtube.com/watch?v={video_id}",
            metadata={"privacy_status": data.get("status", {}).get("privacyStatus")},
        )

    async def health_check(self) -> bool:
        async with self._client() as client:
            try:
                token = await self._access_token(client)
                response = await client.get(
                    YOUTUBE_CHANNELS_URL,
                    params={"part": "id", "mine": "true"},
                    headers={"Authorization": f"Bearer {token}"},
                )
            except (YouTubeAuthError, httpx.HTTPError) as e:
                logger.warning("youtube_health_check_failed", error=str(e))
                return False
        return response.status_code == 200
