"""Base interface for narration TTS providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from newsreel_engine.services.audio import BIT_DEPTH, CHANNELS, SAMPLE_RATE


@dataclass
class VoiceoverRequest:
    """Request for one narration clip."""

    text: str
    voice_name: str
    model: str


@dataclass
class VoiceoverResult:
    """Result from narration generation.

    Audio is raw little-endian PCM; callers derive duration from its size.
    """

    success: bool
    pcm_data: bytes | None = None
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    bit_depth: int = BIT_DEPTH
    input_tokens: int = 0
    output_tokens: int = 0
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class VoiceoverProvider(ABC):
    """Abstract base class for narration providers.

    Implementations:
    - GeminiTTSProvider: Gemini speech generation with prebuilt voices
    - StubVoiceoverProvider: Silent PCM sized from the narration text
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        """Generate narration audio from text.

        Args:
            request: Text, voice and model

        Returns:
            VoiceoverResult with PCM data or error information
        """
        ...

    @abstractmethod
    async def list_voices(self) -> list[dict[str, Any]]:
        """List available voices."""
        ...

    async def health_check(self) -> bool:
        return True
