"""Google Gemini LLM provider."""

from google import genai
from google.genai import types

from newsreel_engine.adapters.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    VisionMessage,
    usage_from_response,
)
from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)


class GeminiProvider(LLMProvider):
    """Google Gemini API provider.

    Uses the google-genai SDK through its async client, so concurrent calls are
    bounded only by the caller.
    """

    def __init__(self, model: str, api_key: str | None = None) -> None:
        super().__init__(model)
        self.api_key = api_key or settings.google_api_key
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini")

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

    @property
    def supports_vision(self) -> bool:
        return True

    def _get_generation_config(
        self,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
        system_instruction: str | None = None,
    ) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if json_mode else None,
            system_instruction=system_instruction or None,
        )

    async def _generate(
        self,
        contents: list[types.Content],
        config: types.GenerateContentConfig,
    ) -> LLMResponse:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,  # type: ignore[arg-type]
            config=config,
        )
        usage = usage_from_response(response)

        logger.info(
            "gemini_response",
            model=self.model,
            tokens_used=usage.get("total_tokens", 0),
        )

        return LLMResponse(
            content=response.text or "",
            model=self.model,
            usage=usage,
            finish_reason=(
                str(response.candidates[0].finish_reason) if response.candidates else None
            ),
        )

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        contents = [
            types.Content(
                role="model" if m.role == "assistant" else "user",
                parts=[types.Part(text=m.content)],
            )
            for m in messages
            if m.role != "system"
        ]
        logger.debug("gemini_request", model=self.model, message_count=len(messages))
        config = self._get_generation_config(temperature, max_tokens, json_mode, system_prompt)
        return await self._generate(contents, config)

    async def complete_with_vision(
        self,
        messages: list[VisionMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        system_prompt = "\n\n".join(m.text for m in messages if m.role == "system")
        parts: list[types.Part] = []
        for msg in messages:
            if msg.role == "system":
                continue
            parts.append(types.Part(text=msg.text))
            for image in msg.images:
                if image.label:
                    parts.append(types.Part(text=f"[{image.label}]"))
                parts.append(
                    types.Part(inline_data=types.Blob(mime_type=image.mime_type, data=image.data))
                )

        logger.debug(
            "gemini_vision_request",
            model=self.model,
            message_count=len(messages),
            image_count=sum(len(m.images) for m in messages),
            json_mode=json_mode,
        )
        config = self._get_generation_config(temperature, max_tokens, json_mode, system_prompt)
        return await self._generate([types.Content(role="user", parts=parts)], config)
