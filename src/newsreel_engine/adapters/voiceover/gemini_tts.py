"""Gemini speech generation provider."""

from typing import Any

from google import genai
from google.genai import types

from newsreel_engine.adapters.voiceover.base import (
    VoiceoverProvider,
    VoiceoverRequest,
    VoiceoverResult,
)
from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger
from newsreel_engine.services.audio import TTS_VOICES

logger = get_logger(__name__)


class GeminiTTSProvider(VoiceoverProvider):
    """Narration through Gemini TTS models.

    The API returns 24 kHz mono 16-bit PCM as inline data on the first part
    of the first candidate.
    """

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key or settings.google_api_key
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini TTS")

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
        return "gemini-tts"

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=request.voice_name)
                )
            ),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=request.model,
                contents=request.text,
                config=config,
            )
        except Exception as e:
            logger.error(
                "gemini_tts_request_failed",
                model=request.model,
                voice=request.voice_name,
                error=str(e),
            )
            return VoiceoverResult(success=False, error_message=str(e))

        if not response.candidates:
            return VoiceoverResult(success=False, error_message="No candidates in TTS response")

        content = response.candidates[0].content
        parts = (content.parts if content else None) or []
        if not parts or not parts[0].inline_data or not parts[0].inline_data.data:
            return VoiceoverResult(success=False, error_message="No inline data in audio response")

        pcm = parts[0].inline_data.data
        usage = response.usage_metadata
        input_tokens = (getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        output_tokens = (getattr(usage, "candidates_token_count", 0) or 0) if usage else 0

        logger.info(
            "gemini_tts_generated",
            model=request.model,
            voice=request.voice_name,
            text_length=len(request.text),
            pcm_bytes=len(pcm),
        )

        return VoiceoverResult(
            success=True,
            pcm_data=pcm,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            metadata={"provider": "gemini", "model": request.model},
        )

    async def list_voices(self) -> list[dict[str, Any]]:
        return [{"voice_id": voice, "name": voice} for voice in TTS_VOICES]
