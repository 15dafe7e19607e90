"""Gemini native image generation provider."""

from google import genai
from google.genai import types

from newsreel_engine.adapters.image_gen.base import (
    ImageGenProvider,
    ImageGenRequest,
    ImageGenResult,
)
from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)


class GeminiImageProvider(ImageGenProvider):
    """Image generation through the google-genai SDK.

    Reference images are sent as inline parts ahead of the prompt. The
    response carries the image as inline data on the first candidate.
    """

    def __init__(self, model: str, api_key: str | None = None) -> None:
        super().__init__(model)
        self.api_key = api_key or settings.google_api_key
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini image generation")

    @property
    def client(self) -> genai.Client:
        """Get or create the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("Google API key not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def name(self) -> str:
        return f"gemini:{self.model}"

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        parts: list[types.Part] = [
            types.Part(inline_data=types.Blob(mime_type=ref.mime_type, data=ref.data))
            for ref in request.reference_images
        ]
        parts.append(types.Part(text=request.prompt))

        image_config = types.ImageConfig(aspect_ratio=request.aspect_ratio)
        if request.image_size:
            image_config.image_size = request.image_size

        config = types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=image_config,
        )

        logger.debug(
            "gemini_image_request",
            model=self.model,
            aspect_ratio=request.aspect_ratio,
            image_size=request.image_size,
            reference_count=len(request.reference_images),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],  # type: ignore[arg-type]
                config=config,
            )
        except Exception as e:
            logger.error("gemini_image_request_failed", model=self.model, error=str(e))
            return ImageGenResult(success=False, error_message=str(e))

        image_data: bytes | None = None
        mime_type = "image/png"
        for candidate in response.candidates or []:
            content = candidate.content
            for part in (content.parts if content else None) or []:
                if part.inline_data and part.inline_data.data:
                    image_data = part.inline_data.data
                    mime_type = part.inline_data.mime_type or mime_type
                    break
            if image_data:
                break

        if not image_data:
            return ImageGenResult(success=False, error_message="Model returned no image data")

        usage = response.usage_metadata
        input_tokens = (getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        output_tokens = (getattr(usage, "candidates_token_count", 0) or 0) if usage else 0

        logger.info(
            "gemini_image_generated",
            model=self.model,
            bytes=len(image_data),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

        return ImageGenResult(
            success=True,
            image_data=image_data,
            mime_type=mime_type,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            metadata={"provider": "gemini", "model": self.model},
        )
