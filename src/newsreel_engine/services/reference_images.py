"""Fetch source-article photos used to ground image generation."""

import asyncio

import httpx

from newsreel_engine.adapters.image_gen.base import ReferenceImage
from newsreel_engine.config import settings
from newsreel_engine.domain.models import ArticleContext
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; newsreel-engine/0.1)"


async def fetch_reference_image(client: httpx.AsyncClient, url: str) -> ReferenceImage | None:
    """Download one image; any failure yields None."""
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("reference_image_fetch_failed", url=url, error=str(e))
        return None

    mime_type = response.headers.get("content-type", "image/jpeg").split(";")[0].strip()
    if not mime_type.startswith("image/"):
        logger.warning("reference_image_not_an_image", url=url, content_type=mime_type)
        return None
    return ReferenceImage(data=response.content, mime_type=mime_type, label=url)


async def fetch_reference_images(
    articles: list[ArticleContext],
    per_article: int | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ReferenceImage]:
    """Fetch at most ``per_article`` images from each article, in article order.

    Failed downloads are skipped; this never raises for a bad URL.
    """
    limit = per_article if per_article is not None else settings.reference_images_per_article
    urls = [url for article in articles for url in article.image_urls[:limit]]
    if not urls:
        return []

    async with httpx.AsyncClient(
        timeout=timeout or settings.reference_image_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    ) as client:
        fetched = await asyncio.gather(*(fetch_reference_image(client, url) for url in urls))

    images = [image for image in fetched if image is not None]
    logger.info("reference_images_fetched", requested=len(urls), fetched=len(images))
    return images
