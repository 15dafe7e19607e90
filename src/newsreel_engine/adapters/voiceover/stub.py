"""Stub voiceover provider for testing."""

from typing import Any

from newsreel_engine.adapters.voiceover.base import (
    VoiceoverProvider,
    VoiceoverRequest,
    VoiceoverResult,
)
from newsreel_engine.logging import get_logger
from newsreel_engine.services.audio import TTS_VOICES, silent_pcm

logger = get_logger(__name__)

# Roughly 150 words per minute of narration
MS_PER_CHARACTER = 65


class StubVoiceoverProvider(VoiceoverProvider):
    """Returns silent PCM whose length follows the narration text."""

    @property
    def name(self) -> str:
        return "stub"

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        duration_ms = max(1000, len(request.text) * MS_PER_CHARACTER)
        pcm = silent_pcm(duration_ms)
        logger.info(
            "stub_voiceover_generated",
            voice=request.voice_name,
            text_length=len(request.text),
            duration_ms=duration_ms,
        )
        return VoiceoverResult(
            success=True,
            pcm_data=pcm,
            metadata={"provider": self.name, "model": request.model},
        )

    async def list_voices(self) -> list[dict[str, Any]]:
        return [{"voice_id": voice, "name": voice} for voice in TTS_VOICES]
