"""Narration TTS adapters."""

from newsreel_engine.adapters.voiceover.base import (
    VoiceoverProvider,
    VoiceoverRequest,
    VoiceoverResult,
)
from newsreel_engine.adapters.voiceover.gemini_tts import GeminiTTSProvider
from newsreel_engine.adapters.voiceover.stub import StubVoiceoverProvider

__all__ = [
    "GeminiTTSProvider",
    "StubVoiceoverProvider",
    "VoiceoverProvider",
    "VoiceoverRequest",
    "VoiceoverResult",
]
