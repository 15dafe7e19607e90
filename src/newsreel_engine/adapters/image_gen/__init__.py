"""Image generation adapters."""

from newsreel_engine.adapters.image_gen.base import (
    ImageGenProvider,
    ImageGenRequest,
    ImageGenResult,
    ReferenceImage,
)
from newsreel_engine.adapters.image_gen.gemini import GeminiImageProvider
from newsreel_engine.adapters.image_gen.stub import StubImageGenProvider

__all__ = [
    "GeminiImageProvider",
    "ImageGenProvider",
    "ImageGenRequest",
    "ImageGenResult",
    "ReferenceImage",
    "StubImageGenProvider",
]
