"""LLM adapters used for policy review."""

from newsreel_engine.adapters.llm.base import (
    InlineImage,
    LLMMessage,
    LLMProvider,
    LLMResponse,
    VisionMessage,
)
from newsreel_engine.adapters.llm.gemini import GeminiProvider
from newsreel_engine.adapters.llm.stub import StubLLMProvider

__all__ = [
    "GeminiProvider",
    "InlineImage",
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "StubLLMProvider",
    "VisionMessage",
]
