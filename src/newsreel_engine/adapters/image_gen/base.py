"""Base interface for image generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ReferenceImage:
    """An image passed to the model as visual context."""

    data: bytes
    mime_type: str = "image/png"
    label: str | None = None  # e.g. source URL or "previous-grid"


@dataclass
class ImageGenRequest:
    """Request for image generation."""

    prompt: str
    aspect_ratio: str = "9:16"
    image_size: str | None = None  # size tier hint (1K, 2K, 4K); not every model accepts one
    width: int | None = None  # requested pixel size, advisory
    height: int | None = None
    reference_images: list[ReferenceImage] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class ImageGenResult:
    """Result from image generation."""

    success: bool
    image_data: bytes | None = None
    mime_type: str = "image/png"
    input_tokens: int = 0
    output_tokens: int = 0
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ImageGenProvider(ABC):
    """Abstract base class for image generation providers.

    Implementations:
    - GeminiImageProvider: Gemini native image generation
    - StubImageGenProvider: Draws flat placeholder images locally
    """

    def __init__(self, model: str) -> None:
        self.model = model

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        """Generate one image from the given request.

        Args:
            request: Image generation request with prompt and parameters

        Returns:
            ImageGenResult with raw image bytes or error information
        """
        ...

    async def health_check(self) -> bool:
        return True
